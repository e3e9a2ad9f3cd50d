"""Tests for core/validators/business_rules.py - arithmetic consistency."""

from decimal import Decimal

import pytest

from core.exceptions import BusinessRuleViolationError, SchemaViolationError
from core.validators import round2, validate_business_rules, validate_document, validate_structure


def _document(payload):
    return validate_structure(payload).document


def _by_field(errors) -> dict:
    return {e.field: e for e in errors}


def _add_second_line(payload, line_number: int = 2) -> None:
    """Append a 1 x 5000 line at 13% and update the summary to match."""
    payload["detalleServicio"].append({
        "numeroLinea": line_number,
        "descripcion": "Repuesto",
        "cantidad": 1,
        "precioUnitario": 5000,
        "montoTotal": 5000,
        "subtotal": 5000,
        "impuesto": {"tarifa": 13, "monto": 650},
        "montoTotalLinea": 5650,
    })
    summary = payload["resumenFactura"]
    summary["totalGravado"] = 25000
    summary["totalVenta"] = 25000
    summary["totalVentaNeta"] = 25000
    summary["totalImpuesto"] = 3250
    summary["totalComprobante"] = 28250


class TestRound2:

    @pytest.mark.parametrize("value,expected", [
        (2.675, "2.68"),
        (1.005, "1.01"),
        (2600.0, "2600.00"),
        (0.125, "0.13"),
        (Decimal("2.675"), "2.68"),
    ])
    def test_half_up(self, value, expected):
        assert round2(value) == Decimal(expected)

    def test_beyond_default_decimal_precision(self):
        assert round2(Decimal("1E+30")) == Decimal("1E+30")


class TestConsistentDocuments:

    def test_single_line_document_is_valid(self, payload):
        """2 x 10000 at 13%: 20000 / 20000 / 2600 / 22600."""
        document = _document(payload)
        line = document.lines[0]

        assert validate_business_rules(document) == []
        assert line.total_amount == 20000
        assert line.subtotal == 20000
        assert line.tax.amount == 2600
        assert line.line_total == 22600

    def test_two_lines_are_valid(self, payload):
        _add_second_line(payload)
        assert validate_business_rules(_document(payload)) == []

    def test_discount_is_applied_before_tax(self, payload):
        line = payload["detalleServicio"][0]
        line["descuento"] = 2000
        line["subtotal"] = 18000
        line["impuesto"]["monto"] = 2340
        line["montoTotalLinea"] = 20340
        summary = payload["resumenFactura"]
        summary["totalDescuentos"] = 2000
        summary["totalVentaNeta"] = 18000
        summary["totalImpuesto"] = 2340
        summary["totalComprobante"] = 20340

        assert validate_business_rules(_document(payload)) == []

    def test_difference_within_tolerance_is_accepted(self, payload):
        payload["detalleServicio"][0]["impuesto"]["monto"] = 2600.01
        payload["detalleServicio"][0]["montoTotalLinea"] = 22600.01
        payload["resumenFactura"]["totalImpuesto"] = 2600.01
        payload["resumenFactura"]["totalComprobante"] = 22600.01

        assert validate_business_rules(_document(payload)) == []


class TestViolations:

    def test_wrong_line_amount_names_field_and_expected_value(self, payload):
        payload["detalleServicio"][0]["montoTotal"] = 15000

        errors = _by_field(validate_business_rules(_document(payload)))
        error = errors["detalleServicio[0].montoTotal"]

        assert error.expected == 20000
        assert error.value == 15000
        assert "Expected: 20000.00" in error.message
        assert "received: 15000.00" in error.message

    def test_line_numbers_must_be_contiguous(self, payload):
        _add_second_line(payload, line_number=3)

        errors = _by_field(validate_business_rules(_document(payload)))
        error = errors["detalleServicio[1].numeroLinea"]

        assert error.expected == 2
        assert error.value == 3
        assert "contiguous" in error.message
        assert "detalleServicio[0].numeroLinea" not in errors

    def test_line_numbers_must_start_at_one(self, payload):
        payload["detalleServicio"][0]["numeroLinea"] = 2

        errors = _by_field(validate_business_rules(_document(payload)))

        assert "detalleServicio[0].numeroLinea" in errors

    def test_wrong_tax_amount(self, payload):
        payload["detalleServicio"][0]["impuesto"]["monto"] = 2000

        fields = _by_field(validate_business_rules(_document(payload)))

        assert fields["detalleServicio[0].impuesto.monto"].expected == 2600

    def test_wrong_summary_totals(self, payload):
        payload["resumenFactura"]["totalVenta"] = 19000
        payload["resumenFactura"]["totalComprobante"] = 30000

        fields = _by_field(validate_business_rules(_document(payload)))

        assert fields["resumenFactura.totalVenta"].expected == 20000
        assert fields["resumenFactura.totalComprobante"].expected == 22600

    def test_net_sale_must_subtract_discounts(self, payload):
        payload["resumenFactura"]["totalDescuentos"] = 500

        fields = _by_field(validate_business_rules(_document(payload)))

        assert fields["resumenFactura.totalDescuentos"].expected == 0
        assert fields["resumenFactura.totalVentaNeta"].expected == 19500

    def test_errors_are_in_document_order(self, payload):
        payload["detalleServicio"][0]["montoTotal"] = 15000
        payload["resumenFactura"]["totalImpuesto"] = 1

        fields = [e.field for e in validate_business_rules(_document(payload))]

        assert fields.index("detalleServicio[0].montoTotal") < fields.index("resumenFactura.totalImpuesto")


class TestValidateDocument:

    def test_returns_document_when_valid(self, payload):
        document = validate_document(payload)
        assert document.summary.grand_total == 22600

    def test_raises_schema_violation_first(self, payload):
        payload["detalleServicio"][0]["montoTotal"] = 15000
        del payload["emisor"]

        with pytest.raises(SchemaViolationError) as exc_info:
            validate_document(payload)

        assert exc_info.value.kind == "SCHEMA_VIOLATION"
        assert [e.field for e in exc_info.value.errors] == ["emisor"]

    def test_raises_business_rule_violation(self, payload):
        payload["detalleServicio"][0]["montoTotal"] = 15000

        with pytest.raises(BusinessRuleViolationError) as exc_info:
            validate_document(payload)

        assert exc_info.value.kind == "BUSINESS_RULE_VIOLATION"
        assert exc_info.value.errors[0].field == "detalleServicio[0].montoTotal"


class TestLargeAmounts:

    def _scale(self, payload):
        """1000 x 5,000,000,000 at 13%: totals near the largest accepted amount."""
        line = payload["detalleServicio"][0]
        line["cantidad"] = 1000
        line["precioUnitario"] = 5_000_000_000
        line["montoTotal"] = 5_000_000_000_000
        line["subtotal"] = 5_000_000_000_000
        line["impuesto"]["monto"] = 650_000_000_000
        line["montoTotalLinea"] = 5_650_000_000_000
        summary = payload["resumenFactura"]
        summary["totalGravado"] = 5_000_000_000_000
        summary["totalVenta"] = 5_000_000_000_000
        summary["totalVentaNeta"] = 5_000_000_000_000
        summary["totalImpuesto"] = 650_000_000_000
        summary["totalComprobante"] = 5_650_000_000_000

    def test_consistent_large_document_is_valid(self, payload):
        self._scale(payload)

        assert validate_business_rules(_document(payload)) == []

    def test_large_inconsistency_is_reported(self, payload):
        self._scale(payload)
        payload["resumenFactura"]["totalComprobante"] = 9_999_999_999_999.99

        fields = _by_field(validate_business_rules(_document(payload)))

        assert fields["resumenFactura.totalComprobante"].expected == 5_650_000_000_000

    def test_unbounded_amount_is_a_schema_violation(self, payload):
        payload["detalleServicio"][0]["precioUnitario"] = 1e30

        with pytest.raises(SchemaViolationError) as exc_info:
            validate_document(payload)

        assert {e.field for e in exc_info.value.errors} == {"detalleServicio[0].precioUnitario"}
