"""Document validation: structure first, then arithmetic."""

from core.validators.structural import (
    StructuralResult,
    validate_structure,
    validate_document_key,
    validate_sequence_number,
)
from core.validators.business_rules import (
    TOLERANCE,
    round2,
    validate_business_rules,
    validate_document,
)
