"""
Invoice service: issuance, validation, sending and retrieval of documents.

Composes the validators, the tax gateway, the sequence counter and the
document store. Every operation raises typed exceptions from core.exceptions;
HTTP mapping happens in the api package.
"""

import logging
from typing import Any

from core.exceptions import EInvoiceError, OperationNotAllowedError, SchemaViolationError
from core.models import (
    DeleteResult,
    DocumentPage,
    IssuedInvoice,
    QueryOutcome,
    SendOutcome,
    StatusFilter,
    ValidationOutcome,
)
from core.services.document_store import DocumentStore
from core.services.gateway import TaxGateway
from core.services.sequence_service import SequenceGenerator
from core.validators import validate_document, validate_document_key, validate_sequence_number
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

STRUCTURAL_ONLY_MESSAGE = (
    "Structural validation passed. Provide a key or sequence number for full validation."
)


class InvoiceService:
    """Service for electronic invoice operations."""

    def __init__(
        self,
        gateway: TaxGateway,
        store: DocumentStore,
        sequences: SequenceGenerator,
        is_production: bool = False,
        max_limit: int = 100,
    ):
        self.gateway = gateway
        self.store = store
        self.sequences = sequences
        self.is_production = is_production
        self.max_limit = max_limit

    def _ensure_gateway(self) -> None:
        if not self.gateway.initialized:
            self.gateway.init()

    def _require_sequence(self, sequence: Any) -> None:
        errors = validate_sequence_number(sequence)
        if errors:
            raise SchemaViolationError(errors, "Invalid sequence number")

    def _require_key(self, key: Any) -> None:
        errors = validate_document_key(key)
        if errors:
            raise SchemaViolationError(errors, "Invalid document key")

    def _stored_key(self, sequence: str) -> str:
        """
        Document key recorded at issuance for a sequence.

        Raises:
            DocumentNotFoundError: If the sequence has no stored document
            SchemaViolationError: If the stored document carries no key
        """
        stored = self.store.get(sequence)
        key = (stored.content or {}).get("key")
        if not key:
            raise SchemaViolationError(
                [], f"Stored invoice {sequence} has no document key"
            )
        logger.info(f"Key resolved from sequence {sequence}: {key}")
        return key

    # -------------------------------------------------------------------------
    # Issue
    # -------------------------------------------------------------------------

    def issue(self, payload: dict) -> IssuedInvoice:
        """
        Validate, number, issue and persist a new document.

        Args:
            payload: Raw document (wire field names)

        Returns:
            IssuedInvoice with the sequence, key and stored file paths

        Raises:
            SchemaViolationError: Payload is structurally invalid
            BusinessRuleViolationError: Totals are inconsistent
            GatewayUnavailableError: Real gateway cannot issue
            StorageIOError: JSON could not be written
        """
        logger.info("Issuing invoice")
        document = validate_document(payload)

        if not document.issued_at:
            document = document.model_copy(update={"issued_at": now_utc().isoformat()})

        self._ensure_gateway()
        result = self.gateway.issue(document)

        json_path = self.store.save_json(
            result.sequence, result.model_dump(mode="json", exclude={"xml"})
        )
        xml_path = None
        if result.xml:
            xml_path = self.store.save_xml(result.sequence, result.xml)

        invoice = IssuedInvoice(
            sequence=result.sequence,
            key=result.key,
            state=result.state,
            mode=result.mode,
            timestamp=result.timestamp,
            files={"json": json_path, "xml": xml_path},
            degraded_sequence=result.degraded_sequence,
            metadata=result.metadata,
        )

        logger.info(f"Invoice issued: {invoice.sequence}")
        return invoice

    # -------------------------------------------------------------------------
    # Validate
    # -------------------------------------------------------------------------

    def validate_by_key_or_payload(
        self,
        key: str | None = None,
        sequence: str | None = None,
        payload: dict | None = None,
    ) -> ValidationOutcome:
        """
        Validate a document by key, by stored sequence, or by payload.

        A payload alone gets structural and business-rule validation only.
        With a key (or a sequence whose stored key is used) the gateway
        validates the issued document as well.

        Raises:
            ValueError: None of key, sequence, payload given
            SchemaViolationError: Payload, key or sequence malformed
            BusinessRuleViolationError: Payload totals are inconsistent
            DocumentNotFoundError: Sequence has no stored document
        """
        if not key and not sequence and payload is None:
            raise ValueError("Provide a key, sequence or payload to validate")

        if payload is not None:
            validate_document(payload)
            if not key and not sequence:
                logger.info("Payload validated without key (structural only)")
                return ValidationOutcome(
                    valid=True,
                    messages=[STRUCTURAL_ONLY_MESSAGE],
                    structural_only=True,
                )

        if sequence:
            self._require_sequence(sequence)
            if not key:
                key = self._stored_key(sequence)

        self._require_key(key)

        self._ensure_gateway()
        result = self.gateway.validate(key)

        logger.info(f"Invoice validated: {key}, valid: {result.valid}")
        return ValidationOutcome(
            valid=result.valid,
            messages=result.messages,
            key=key,
            sequence=sequence,
            mode=result.mode,
            hash=result.hash,
        )

    # -------------------------------------------------------------------------
    # Send
    # -------------------------------------------------------------------------

    def send(self, key: str | None = None, sequence: str | None = None) -> SendOutcome:
        """
        Send an issued document to the authority and mark it as sent.

        Once the authority accepted the send, a failure to copy files into
        the sent area is logged and reported as files_marked=0, never raised.

        Raises:
            ValueError: Neither key nor sequence given
            SchemaViolationError: Key or sequence malformed
            DocumentNotFoundError: Sequence has no stored document
            GatewayUnavailableError: Real gateway cannot send
        """
        if not key and not sequence:
            raise ValueError("Provide a key or sequence to send")

        if sequence:
            self._require_sequence(sequence)
            if not key:
                key = self._stored_key(sequence)
        else:
            logger.warning(f"Sending {key} without sequence; files will not be marked as sent")

        self._require_key(key)

        self._ensure_gateway()
        result = self.gateway.send(key)

        files_marked = 0
        if sequence:
            try:
                transfer = self.store.mark_sent(sequence, {
                    "envioAt": result.timestamp.isoformat(),
                    "respuestaHacienda": result.authority_response.model_dump(mode="json"),
                    "numeroComprobante": result.receipt,
                    "mode": result.mode.value,
                })
                files_marked = len(transfer.moved)
            except EInvoiceError as e:
                logger.warning(f"Invoice {sequence} sent but could not be marked as sent: {e}")

        outcome = SendOutcome(
            key=key,
            sequence=sequence,
            state=result.state,
            mode=result.mode,
            receipt=result.receipt,
            authority_response=result.authority_response,
            files_marked=files_marked,
        )

        logger.info(f"Invoice sent: {key}")
        return outcome

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def query(self, sequence: str, include_content: bool = True) -> QueryOutcome:
        """
        Read a stored document and ask the authority for its state.

        A failed remote query leaves remote_state empty and sets remote_error.

        Raises:
            SchemaViolationError: Sequence malformed
            DocumentNotFoundError: Nothing stored for the sequence
        """
        self._require_sequence(sequence)
        stored = self.store.get(sequence)

        outcome = QueryOutcome(sequence=sequence, found=True, sent=stored.sent)
        if include_content:
            outcome.content = stored.content
            outcome.xml = stored.xml

        key = (stored.content or {}).get("key")
        if key:
            try:
                self._ensure_gateway()
                outcome.remote_state = self.gateway.query(key)
            except EInvoiceError as e:
                logger.warning(f"Remote status query failed for {sequence}: {e}")
                outcome.remote_error = str(e)

        logger.info(f"Invoice queried: {sequence}")
        return outcome

    def list(
        self,
        status: StatusFilter = StatusFilter.ALL,
        include_content: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> DocumentPage:
        """List stored documents, one page at a time. Limit is clamped to max_limit."""
        limit = max(1, min(limit, self.max_limit))
        offset = max(0, offset)

        documents = self.store.list(status=status, include_content=include_content)
        total = len(documents)

        return DocumentPage(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
            status=status,
            documents=documents[offset:offset + limit],
        )

    # -------------------------------------------------------------------------
    # Admin
    # -------------------------------------------------------------------------

    def delete(self, sequence: str) -> DeleteResult:
        """
        Remove every stored artifact for a sequence.

        Raises:
            OperationNotAllowedError: In production
            SchemaViolationError: Sequence malformed
            DocumentNotFoundError: Nothing stored for the sequence
        """
        if self.is_production:
            raise OperationNotAllowedError("Invoice deletion is not allowed in production")

        self._require_sequence(sequence)
        logger.warning(f"Deleting invoice {sequence}")
        return self.store.delete(sequence)

    def status(self) -> dict:
        """Gateway status, storage statistics and sequence counter state."""
        gateway = self.gateway.status()
        return {
            "timestamp": now_utc(),
            "mode": gateway.mode,
            "gateway": gateway,
            "storage": self.store.stats(),
            "sequence": self.sequences.stats(),
        }
