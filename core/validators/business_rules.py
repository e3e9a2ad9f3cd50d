"""
Business-rule validation: arithmetic consistency of a document.

Runs only on structurally valid documents. Every line's computed amounts and
every summary aggregate are recomputed in Decimal and compared with a 0.01
tolerance. Line numbers must match their 1-based position exactly.

Any violation rejects the whole document; there is no partial acceptance.
"""

from decimal import Context, Decimal, ROUND_HALF_UP, localcontext
from typing import Any

from core.exceptions import BusinessRuleViolationError, FieldError, SchemaViolationError
from core.models import Document, LineItem
from core.validators.structural import validate_structure

TOLERANCE = Decimal("0.01")

_CENT = Decimal("0.01")

# Wide enough that products and sums of schema-bounded amounts stay exact
_ARITHMETIC = Context(prec=60, rounding=ROUND_HALF_UP)


def round2(value: Decimal | float) -> Decimal:
    """Round half-up to cents. Floats go through their repr, not their binary value."""
    return Decimal(str(value)).quantize(_CENT, context=_ARITHMETIC)


def _fmt(value: Decimal) -> str:
    return f"{value:.2f}"


def _check(errors: list[FieldError], field: str, label: str, expected: Decimal, actual: Decimal) -> None:
    if abs(actual - expected) > TOLERANCE:
        errors.append(FieldError(
            field=field,
            message=f"{label} is incorrect. Expected: {_fmt(expected)}, received: {_fmt(actual)}",
            value=float(actual),
            expected=float(expected),
        ))


def _check_line(errors: list[FieldError], index: int, line: LineItem) -> None:
    prefix = f"detalleServicio[{index}]"

    if line.line_number != index + 1:
        errors.append(FieldError(
            field=f"{prefix}.numeroLinea",
            message=(
                f"Line numbers must be contiguous. Expected: {index + 1}, "
                f"received: {line.line_number}"
            ),
            value=line.line_number,
            expected=index + 1,
        ))

    # Each step is recomputed from the supplied upstream values, not the
    # recomputed ones.
    _check(errors, f"{prefix}.montoTotal", "Line amount",
           round2(line.quantity * line.unit_price), line.total_amount)
    _check(errors, f"{prefix}.subtotal", "Line subtotal",
           round2(line.total_amount - line.discount), line.subtotal)
    _check(errors, f"{prefix}.impuesto.monto", "Line tax",
           round2(line.subtotal * line.tax.rate / 100), line.tax.amount)
    _check(errors, f"{prefix}.montoTotalLinea", "Line total",
           round2(line.subtotal + line.tax.amount), line.line_total)


def validate_business_rules(document: Document) -> list[FieldError]:
    """
    Re-verify every arithmetic invariant of a typed document.

    Args:
        document: Output of structural validation

    Returns:
        Field errors in document order (lines first, then summary).
        Empty list when the document is consistent.
    """
    errors: list[FieldError] = []

    with localcontext(_ARITHMETIC):
        for index, line in enumerate(document.lines):
            _check_line(errors, index, line)

        summary = document.summary
        _check(errors, "resumenFactura.totalVenta", "Total sale",
               round2(sum(line.total_amount for line in document.lines)), summary.total_sale)
        _check(errors, "resumenFactura.totalDescuentos", "Total discounts",
               round2(sum(line.discount for line in document.lines)), summary.total_discounts)
        _check(errors, "resumenFactura.totalImpuesto", "Total tax",
               round2(sum(line.tax.amount for line in document.lines)), summary.total_tax)
        _check(errors, "resumenFactura.totalVentaNeta", "Net sale",
               round2(summary.total_sale - summary.total_discounts), summary.total_net_sale)
        _check(errors, "resumenFactura.totalComprobante", "Grand total",
               round2(summary.total_net_sale + summary.total_tax), summary.grand_total)

    return errors


def validate_document(payload: Any) -> Document:
    """
    Full validation: structure first, then arithmetic.

    Returns:
        The normalized Document.

    Raises:
        SchemaViolationError: Payload does not match the schema
        BusinessRuleViolationError: Amounts are inconsistent
    """
    result = validate_structure(payload)
    if not result.valid:
        raise SchemaViolationError(result.errors)

    errors = validate_business_rules(result.document)
    if errors:
        raise BusinessRuleViolationError(errors)

    return result.document
