"""
Tax administration gateway.

Two backends, chosen once at construction:

- SimulatedBackend: fabricates plausible authority responses locally.
- RealBackend: placeholder for the authority's submission client. No client
  ships with this package, so every operation fails closed with
  GatewayUnavailableError.

If the REAL backend cannot initialize, the gateway degrades to SIMULATED for
the rest of the process. The degradation is logged and visible through
``degraded`` and ``status()``; it never raises.
"""

import logging
import secrets
from pathlib import Path

from core.config import ATVCredentials
from core.document_key import encode_document_key
from core.document_xml import render_document_xml
from core.exceptions import GatewayNotInitializedError, GatewayUnavailableError
from core.models import (
    AuthorityResponse,
    Document,
    GatewayMode,
    GatewayStatus,
    IssueResult,
    KeyValidationResult,
    RemoteStatus,
    SendResult,
)
from core.services.sequence_service import Allocation, SequenceGenerator
from utils.timezone import now_utc, parse_local_iso

logger = logging.getLogger(__name__)


class SimulatedBackend:
    """Local stand-in for the tax authority."""

    mode = GatewayMode.SIMULATED

    def __init__(self, sequences: SequenceGenerator):
        self.sequences = sequences

    def connect(self) -> None:
        logger.info("Simulated tax gateway ready")

    def issue(self, document: Document) -> IssueResult:
        timestamp = now_utc()
        issued_at = timestamp
        if document.issued_at:
            # Dates without an offset are local to the authority
            issued_at = parse_local_iso(document.issued_at)

        if document.sequence:
            allocation = Allocation(sequence=document.sequence)
        else:
            allocation = self.sequences.allocate()

        key = encode_document_key(allocation.sequence, document.issuer.tax_id, issued_at)
        document = document.model_copy(update={"sequence": allocation.sequence})

        result = IssueResult(
            mode=self.mode,
            sequence=allocation.sequence,
            key=key,
            state="SIMULATED_EMITIDO",
            timestamp=timestamp,
            xml=render_document_xml(document, key, allocation.sequence, issued_at),
            payload=document.to_payload(),
            degraded_sequence=allocation.degraded,
            metadata={
                "emisor": document.issuer.name,
                "receptor": document.receiver.name,
                "total": float(document.summary.grand_total),
                "moneda": document.currency.value,
            },
        )

        logger.info(f"Simulated document issued: {allocation.sequence}")
        return result

    def validate(self, key: str) -> KeyValidationResult:
        result = KeyValidationResult(
            mode=self.mode,
            key=key,
            valid=True,
            timestamp=now_utc(),
            hash=secrets.token_hex(32),
            messages=[],
            state="VALIDADO_SIMULADO",
        )
        logger.info(f"Simulated document validated: {key}")
        return result

    def send(self, key: str) -> SendResult:
        timestamp = now_utc()
        result = SendResult(
            mode=self.mode,
            key=key,
            state="ENVIADO_SIMULADO",
            timestamp=timestamp,
            receipt=f"{secrets.randbelow(1_000_000_000):09d}",
            authority_response=AuthorityResponse(
                code="01",
                message="Document received successfully (SIMULATED)",
                date=timestamp,
            ),
        )
        logger.info(f"Simulated document sent: {key}")
        return result

    def query(self, key: str) -> RemoteStatus:
        timestamp = now_utc()
        result = RemoteStatus(
            mode=self.mode,
            key=key,
            state="PROCESADO_SIMULADO",
            timestamp=timestamp,
            remote_state="ACEPTADO",
            details={
                "processedAt": timestamp.isoformat(),
                "responseCode": "01",
                "responseMessage": "Accepted (SIMULATED)",
            },
        )
        logger.info(f"Simulated status queried: {key}")
        return result


class RealBackend:
    """Authority submission backend. Fails closed: no client is bundled."""

    mode = GatewayMode.REAL

    def __init__(self, credentials: ATVCredentials):
        self.credentials = credentials

    def connect(self) -> None:
        """
        Check that credentials are present and readable.

        Raises:
            GatewayUnavailableError: If credentials are incomplete or unreadable
        """
        if not self.credentials.is_configured:
            raise GatewayUnavailableError("ATV credentials are not configured")

        for path in (self.credentials.key_path, self.credentials.cert_path):
            try:
                Path(path).read_bytes()
            except OSError as e:
                raise GatewayUnavailableError(f"Cannot read ATV credential {path}: {e}")

        logger.info("Real tax gateway credentials loaded")

    def _unavailable(self, operation: str):
        logger.error(f"Real tax gateway {operation} requested but no submission client is available")
        raise GatewayUnavailableError(
            f"Real tax gateway is unavailable: cannot {operation}"
        )

    def issue(self, document: Document) -> IssueResult:
        self._unavailable("issue")

    def validate(self, key: str) -> KeyValidationResult:
        self._unavailable("validate")

    def send(self, key: str) -> SendResult:
        self._unavailable("send")

    def query(self, key: str) -> RemoteStatus:
        self._unavailable("query")


class TaxGateway:
    """Mode-switching front over the authority backends."""

    def __init__(
        self,
        mode: GatewayMode,
        sequences: SequenceGenerator,
        credentials: ATVCredentials | None = None,
    ):
        self.configured_mode = mode
        self.sequences = sequences
        self.credentials = credentials or ATVCredentials()
        self.initialized = False
        self.degraded = False

        if mode == GatewayMode.REAL:
            self._backend = RealBackend(self.credentials)
        else:
            self._backend = SimulatedBackend(sequences)

        logger.info(f"Tax gateway created in {mode.value} mode")

    @property
    def mode(self) -> GatewayMode:
        """Effective mode (differs from configured_mode after degradation)."""
        return self._backend.mode

    def init(self) -> None:
        """
        Prepare the backend. Must run before any operation.

        A REAL backend that fails to connect is replaced by the simulated one.
        """
        if self.initialized:
            return

        try:
            self._backend.connect()
        except GatewayUnavailableError as e:
            logger.warning(f"Real tax gateway failed to initialize ({e}); degrading to SIMULATED")
            self._backend = SimulatedBackend(self.sequences)
            self._backend.connect()
            self.degraded = True

        self.initialized = True
        logger.info(f"Tax gateway initialized in {self.mode.value} mode")

    def _ensure_initialized(self) -> None:
        if not self.initialized:
            raise GatewayNotInitializedError()

    def issue(self, document: Document) -> IssueResult:
        """Issue a document, allocating a sequence number when it has none."""
        self._ensure_initialized()
        return self._backend.issue(document)

    def validate(self, key: str) -> KeyValidationResult:
        self._ensure_initialized()
        return self._backend.validate(key)

    def send(self, key: str) -> SendResult:
        self._ensure_initialized()
        return self._backend.send(key)

    def query(self, key: str) -> RemoteStatus:
        self._ensure_initialized()
        return self._backend.query(key)

    def status(self) -> GatewayStatus:
        return GatewayStatus(
            initialized=self.initialized,
            mode=self.mode,
            configured_mode=self.configured_mode,
            degraded=self.degraded,
            timestamp=now_utc(),
        )
