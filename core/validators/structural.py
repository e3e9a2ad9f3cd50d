"""
Structural validation of incoming document payloads.

Checks types, required fields, lengths, patterns, numeric bounds, precision
and enum membership. Collects every violation instead of stopping at the
first one. Pure: no I/O, no sequence allocation.
"""

from typing import Annotated, Any

from pydantic import BaseModel, StringConstraints, TypeAdapter, ValidationError

from core.exceptions import FieldError
from core.models import Document

_KEY_ADAPTER = TypeAdapter(
    Annotated[str, StringConstraints(min_length=50, max_length=50, pattern=r"^[0-9A-Za-z]+$")]
)
_SEQUENCE_ADAPTER = TypeAdapter(
    Annotated[str, StringConstraints(min_length=20, max_length=20, pattern=r"^[0-9]+$")]
)


class StructuralResult(BaseModel):
    """Either a typed document or the list of field errors."""

    valid: bool
    errors: list[FieldError]
    document: Document | None = None


def format_loc(loc: tuple[Any, ...], root: str = "payload") -> str:
    """
    Render a pydantic error location as a dotted path.

    ('detalleServicio', 0, 'impuesto', 'monto') -> 'detalleServicio[0].impuesto.monto'
    """
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or root


def errors_from_exception(exc: ValidationError, root: str = "payload") -> list[FieldError]:
    """Translate a pydantic ValidationError into FieldErrors, preserving order."""
    errors = []
    for detail in exc.errors():
        # For missing fields pydantic reports the parent object as input
        value = None if detail["type"] == "missing" else detail.get("input")
        errors.append(FieldError(
            field=format_loc(detail["loc"], root),
            message=detail["msg"],
            value=value,
        ))
    return errors


def validate_structure(payload: Any) -> StructuralResult:
    """
    Validate a raw payload against the document schema.

    Args:
        payload: Untyped document (usually a dict decoded from JSON)

    Returns:
        StructuralResult with the normalized Document (defaults applied)
        or every field-level violation found.
    """
    try:
        document = Document.model_validate(payload)
    except ValidationError as e:
        return StructuralResult(valid=False, errors=errors_from_exception(e))

    return StructuralResult(valid=True, errors=[], document=document)


def validate_document_key(key: Any) -> list[FieldError]:
    """A document key is exactly 50 alphanumeric characters."""
    try:
        _KEY_ADAPTER.validate_python(key)
    except ValidationError as e:
        return errors_from_exception(e, root="clave")
    return []


def validate_sequence_number(sequence: Any) -> list[FieldError]:
    """A sequence number is exactly 20 digits."""
    try:
        _SEQUENCE_ADAPTER.validate_python(sequence)
    except ValidationError as e:
        return errors_from_exception(e, root="consecutivo")
    return []
