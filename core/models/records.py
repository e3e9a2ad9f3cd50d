"""Result and record models returned by the storage, gateway and invoice services."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class DocumentStatus(str, Enum):
    """Lifecycle state of a stored document."""

    ISSUED = "pending"
    SENT = "sent"


class StatusFilter(str, Enum):
    ALL = "all"
    PENDING = "pending"
    SENT = "sent"


class GatewayMode(str, Enum):
    SIMULATED = "SIMULATED"
    REAL = "REAL"


# =============================================================================
# DOCUMENT STORE
# =============================================================================


class FileInfo(BaseModel):
    """Stat information for one stored artifact."""

    path: Path
    size: int
    created_at: datetime
    modified_at: datetime


class StoredDocument(BaseModel):
    """A document as read back from the pending area."""

    sequence: str
    files: dict[str, Any] = Field(default_factory=dict, description="'json' (parsed) and/or 'xml' (text)")
    file_info: dict[str, FileInfo] = Field(default_factory=dict)
    found_at: datetime
    sent: bool = False
    sent_files: int = 0

    @property
    def content(self) -> dict | None:
        return self.files.get("json")

    @property
    def xml(self) -> str | None:
        return self.files.get("xml")


class DocumentSummary(BaseModel):
    """Listing entry for one stored JSON document."""

    sequence: str
    status: DocumentStatus
    filename: str
    size: int
    created_at: datetime
    modified_at: datetime
    content: dict | None = None


class TransferResult(BaseModel):
    """Outcome of mark_sent: copied paths plus per-file failures."""

    moved: list[Path] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class DeleteResult(BaseModel):
    deleted: list[Path] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class AreaStats(BaseModel):
    pending: int = 0
    sent: int = 0
    total: int = 0


class StorageStats(BaseModel):
    """Counts and byte sizes of stored JSON documents per lifecycle state."""

    invoices_dir: Path
    sent_dir: Path
    counts: AreaStats = Field(default_factory=AreaStats)
    sizes: AreaStats = Field(default_factory=AreaStats)


# =============================================================================
# SEQUENCE COUNTER
# =============================================================================


class SequenceCounter(BaseModel):
    """Persisted counter file contents."""

    current: int = Field(1, ge=1)
    last_updated: str | None = Field(None, alias="lastUpdated")
    last_generated: str | None = Field(None, alias="lastGenerated")
    format: str = "YYYYMMDDHHMMSS"
    prefix: str = "00100101000000"
    reset_at: str | None = Field(None, alias="resetAt")

    model_config = {"populate_by_name": True}


class SequenceStats(BaseModel):
    current_number: int
    last_updated: str | None
    last_generated: str | None
    next_sequence: str
    file_exists: bool
    file_path: Path
    error: str | None = None


# =============================================================================
# GATEWAY
# =============================================================================


class IssueResult(BaseModel):
    """Authority response to an issuance."""

    success: bool = True
    mode: GatewayMode
    sequence: str
    key: str
    state: str
    timestamp: datetime
    xml: str | None = None
    payload: dict
    degraded_sequence: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class KeyValidationResult(BaseModel):
    success: bool = True
    mode: GatewayMode
    key: str
    valid: bool
    timestamp: datetime
    hash: str
    messages: list[str] = Field(default_factory=list)
    state: str


class AuthorityResponse(BaseModel):
    code: str
    message: str
    date: datetime


class SendResult(BaseModel):
    success: bool = True
    mode: GatewayMode
    key: str
    state: str
    timestamp: datetime
    receipt: str
    authority_response: AuthorityResponse


class RemoteStatus(BaseModel):
    success: bool = True
    mode: GatewayMode
    key: str
    state: str
    timestamp: datetime
    remote_state: str
    details: dict[str, Any] = Field(default_factory=dict)


class GatewayStatus(BaseModel):
    initialized: bool
    mode: GatewayMode
    configured_mode: GatewayMode
    degraded: bool
    timestamp: datetime


# =============================================================================
# INVOICE SERVICE
# =============================================================================


class IssuedInvoice(BaseModel):
    sequence: str
    key: str
    state: str
    mode: GatewayMode
    timestamp: datetime
    files: dict[str, Path | None]
    degraded_sequence: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class ValidationOutcome(BaseModel):
    valid: bool
    messages: list[str] = Field(default_factory=list)
    key: str | None = None
    sequence: str | None = None
    mode: GatewayMode | None = None
    hash: str | None = None
    structural_only: bool = False


class SendOutcome(BaseModel):
    key: str
    sequence: str | None
    state: str
    mode: GatewayMode
    receipt: str
    authority_response: AuthorityResponse
    files_marked: int = 0


class QueryOutcome(BaseModel):
    sequence: str
    found: bool
    content: dict | None = None
    xml: str | None = None
    sent: bool = False
    remote_state: RemoteStatus | None = None
    remote_error: str | None = None


class DocumentPage(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool
    status: StatusFilter
    documents: list[DocumentSummary]
