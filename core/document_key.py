"""
Document key (clave) encoding.

Layout (50 characters):

    country(3) + date YYYYMMDD(8) + issuer id(12) + sequence(20)
    + situation(1) + security code(8) -> 52, truncated to 50

The key is one-way: the security code is random, so two encodings of the
same document differ.
"""

import secrets
from datetime import datetime

from utils.timezone import now_utc, to_local

COUNTRY_CODE = "506"
KEY_LENGTH = 50

SITUATION_NORMAL = "1"
SITUATION_CONTINGENCY = "2"
SITUATION_NO_INTERNET = "3"


def security_code() -> str:
    """Random 8-digit code. Not a secret; only needs to vary between calls."""
    return f"{secrets.randbelow(100_000_000):08d}"


def encode_document_key(
    sequence: str,
    issuer_tax_id: str,
    issued_at: datetime | None = None,
    situation: str = SITUATION_NORMAL,
) -> str:
    """
    Build the 50-character key for a document.

    Args:
        sequence: 20-digit sequence number
        issuer_tax_id: Issuer identification, 1-12 digits
        issued_at: Issuance time (timezone-aware); defaults to now.
            The date is taken in the authority's local calendar.
        situation: Single-digit situation code

    Returns:
        Exactly KEY_LENGTH characters.

    Raises:
        ValueError: If sequence, issuer id or situation code is malformed
    """
    if len(sequence) != 20 or not sequence.isdigit():
        raise ValueError(f"Sequence must be 20 digits, got {sequence!r}")
    if not issuer_tax_id.isdigit() or len(issuer_tax_id) > 12:
        raise ValueError(f"Issuer id must be 1-12 digits, got {issuer_tax_id!r}")
    if len(situation) != 1 or not situation.isdigit():
        raise ValueError(f"Situation code must be a single digit, got {situation!r}")

    issued_at = issued_at or now_utc()
    date_part = to_local(issued_at).strftime("%Y%m%d")

    key = (
        f"{COUNTRY_CODE}{date_part}{issuer_tax_id.zfill(12)}"
        f"{sequence}{situation}{security_code()}"
    )
    return key.ljust(KEY_LENGTH, "0")[:KEY_LENGTH]
