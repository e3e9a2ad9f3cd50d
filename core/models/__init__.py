"""Core domain models."""

from core.models.document import (
    Document, Issuer, Receiver, LineItem, Tax, Summary,
    DocumentType, IdType, Currency, UnitOfMeasure, TaxCode, TaxRateCode, SaleCondition,
)
from core.models.records import (
    DocumentStatus, StatusFilter, GatewayMode,
    FileInfo, StoredDocument, DocumentSummary, TransferResult, DeleteResult,
    AreaStats, StorageStats,
    SequenceCounter, SequenceStats,
    IssueResult, KeyValidationResult, AuthorityResponse, SendResult, RemoteStatus, GatewayStatus,
    IssuedInvoice, ValidationOutcome, SendOutcome, QueryOutcome, DocumentPage,
)

__all__ = [
    # Document
    "Document", "Issuer", "Receiver", "LineItem", "Tax", "Summary",
    "DocumentType", "IdType", "Currency", "UnitOfMeasure", "TaxCode", "TaxRateCode", "SaleCondition",
    # Lifecycle
    "DocumentStatus", "StatusFilter", "GatewayMode",
    # Storage
    "FileInfo", "StoredDocument", "DocumentSummary", "TransferResult", "DeleteResult",
    "AreaStats", "StorageStats",
    # Sequence
    "SequenceCounter", "SequenceStats",
    # Gateway
    "IssueResult", "KeyValidationResult", "AuthorityResponse", "SendResult", "RemoteStatus", "GatewayStatus",
    # Invoice service
    "IssuedInvoice", "ValidationOutcome", "SendOutcome", "QueryOutcome", "DocumentPage",
]
