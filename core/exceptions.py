"""Typed exceptions for e-invoicing failures.

Every exception carries a stable ``kind`` tag. The transport layer maps kinds
to status codes; nothing in core knows about HTTP.
"""

from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str = Field(..., description="Dotted path, e.g. detalleServicio[0].montoTotal")
    message: str
    value: Any = None
    expected: float | None = Field(None, description="Recomputed value for arithmetic checks")


class EInvoiceError(Exception):
    """Base class for all e-invoicing errors."""

    kind = "EINVOICE_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class SchemaViolationError(EInvoiceError):
    """Payload failed structural validation. Never retried."""

    kind = "SCHEMA_VIOLATION"

    def __init__(self, errors: list[FieldError], message: str = "Invalid document payload"):
        self.errors = list(errors)
        super().__init__(message)


class BusinessRuleViolationError(EInvoiceError):
    """An arithmetic invariant between line items and totals failed."""

    kind = "BUSINESS_RULE_VIOLATION"

    def __init__(self, errors: list[FieldError], message: str = "Document totals are inconsistent"):
        self.errors = list(errors)
        super().__init__(message)


class DocumentNotFoundError(EInvoiceError):
    """No stored files exist for a sequence number."""

    kind = "NOT_FOUND"

    def __init__(self, sequence: str):
        self.sequence = sequence
        super().__init__(f"Invoice {sequence} not found")


class GatewayNotInitializedError(EInvoiceError):
    """
    Gateway operation invoked before init().

    A wiring bug in the caller. Fatal to the request, not the process.
    """

    kind = "NOT_INITIALIZED"

    def __init__(self, message: str = "Tax gateway is not initialized. Call init() first."):
        super().__init__(message)


class GatewayUnavailableError(EInvoiceError):
    """The real submission path cannot be used."""

    kind = "UNAVAILABLE"


class StorageIOError(EInvoiceError):
    """Filesystem failure for a whole operation (partial failures are reported, not raised)."""

    kind = "STORAGE_IO"


class OperationNotAllowedError(EInvoiceError):
    """Administrative operation attempted in an environment that forbids it."""

    kind = "NOT_ALLOWED"


class ResetNotAllowedError(OperationNotAllowedError):
    """Sequence counter reset attempted in production."""

    def __init__(self):
        super().__init__("Sequence counter reset is not allowed in production")
