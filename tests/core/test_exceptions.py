"""Tests for core/exceptions.py."""

import pytest

from core.exceptions import (
    BusinessRuleViolationError,
    DocumentNotFoundError,
    EInvoiceError,
    FieldError,
    GatewayNotInitializedError,
    GatewayUnavailableError,
    OperationNotAllowedError,
    ResetNotAllowedError,
    SchemaViolationError,
    StorageIOError,
)


class TestKinds:

    @pytest.mark.parametrize("exc,kind", [
        (SchemaViolationError([]), "SCHEMA_VIOLATION"),
        (BusinessRuleViolationError([]), "BUSINESS_RULE_VIOLATION"),
        (DocumentNotFoundError("00100101000000000001"), "NOT_FOUND"),
        (GatewayNotInitializedError(), "NOT_INITIALIZED"),
        (GatewayUnavailableError("down"), "UNAVAILABLE"),
        (StorageIOError("disk"), "STORAGE_IO"),
        (OperationNotAllowedError("no"), "NOT_ALLOWED"),
        (ResetNotAllowedError(), "NOT_ALLOWED"),
    ])
    def test_kind_and_base_class(self, exc, kind):
        assert exc.kind == kind
        assert isinstance(exc, EInvoiceError)
        assert str(exc) == exc.message


class TestFieldErrors:

    def test_errors_are_copied_into_a_list(self):
        errors = (FieldError(field="emisor", message="Field required"),)

        exc = SchemaViolationError(errors)

        assert exc.errors == list(errors)

    def test_not_found_names_sequence(self):
        exc = DocumentNotFoundError("00100101000000000001")

        assert exc.sequence == "00100101000000000001"
        assert "00100101000000000001" in exc.message
