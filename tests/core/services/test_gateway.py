"""Tests for TaxGateway and its backends."""

import logging
import re
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from lxml import etree

from core.config import ATVCredentials
from core.exceptions import GatewayNotInitializedError, GatewayUnavailableError
from core.models import GatewayMode
from core.services.gateway import RealBackend, TaxGateway
from core.validators import validate_document
from utils.timezone import AUTHORITY_TZ

KEY = "5" * 50


@pytest.fixture
def document(payload):
    payload["fechaEmision"] = "2024-03-15T12:00:00-06:00"
    return validate_document(payload)


@pytest.fixture
def credentials(tmp_path) -> ATVCredentials:
    key_path = tmp_path / "atv.p12"
    cert_path = tmp_path / "atv.crt"
    key_path.write_bytes(b"key")
    cert_path.write_bytes(b"cert")
    return ATVCredentials(key_path=str(key_path), cert_path=str(cert_path), client_id="api-stag")


# =============================================================================
# INITIALIZATION
# =============================================================================


class TestInit:

    def test_operations_require_init(self, sequences):
        gateway = TaxGateway(GatewayMode.SIMULATED, sequences)

        with pytest.raises(GatewayNotInitializedError):
            gateway.validate(KEY)

        assert gateway.status().initialized is False

    def test_simulated_init(self, gateway):
        status = gateway.status()

        assert status.initialized is True
        assert status.mode == GatewayMode.SIMULATED
        assert status.degraded is False

    def test_init_is_idempotent(self, gateway):
        gateway.init()
        assert gateway.initialized is True

    def test_real_without_credentials_degrades(self, sequences, caplog):
        gateway = TaxGateway(GatewayMode.REAL, sequences)

        with caplog.at_level(logging.WARNING, logger="core.services.gateway"):
            gateway.init()

        assert gateway.mode == GatewayMode.SIMULATED
        assert gateway.configured_mode == GatewayMode.REAL
        assert gateway.degraded is True
        assert gateway.status().degraded is True
        assert "degrading to SIMULATED" in caplog.text

    def test_real_with_unreadable_credentials_degrades(self, sequences, credentials, tmp_path):
        credentials.cert_path = str(tmp_path / "missing.crt")
        gateway = TaxGateway(GatewayMode.REAL, sequences, credentials)

        gateway.init()

        assert gateway.mode == GatewayMode.SIMULATED
        assert gateway.degraded is True

    def test_degraded_gateway_still_serves(self, sequences, document):
        gateway = TaxGateway(GatewayMode.REAL, sequences)
        gateway.init()

        assert gateway.issue(document).mode == GatewayMode.SIMULATED


class TestRealBackend:

    def test_real_with_credentials_stays_real_and_fails_closed(self, sequences, credentials, document):
        gateway = TaxGateway(GatewayMode.REAL, sequences, credentials)
        gateway.init()

        assert gateway.mode == GatewayMode.REAL
        assert gateway.degraded is False

        with pytest.raises(GatewayUnavailableError):
            gateway.issue(document)
        with pytest.raises(GatewayUnavailableError):
            gateway.send(KEY)

    def test_connect_requires_client_id(self, credentials):
        credentials.client_id = None

        with pytest.raises(GatewayUnavailableError, match="not configured"):
            RealBackend(credentials).connect()


# =============================================================================
# SIMULATED OPERATIONS
# =============================================================================


class TestSimulatedIssue:

    def test_allocates_sequence_and_builds_key(self, gateway, document):
        result = gateway.issue(document)

        assert result.success is True
        assert result.state == "SIMULATED_EMITIDO"
        assert result.sequence == "00100101000000000001"
        assert result.degraded_sequence is False
        assert len(result.key) == 50
        assert result.key[3:11] == "20240315"
        assert result.key[11:23] == "003101123456"
        assert result.key[23:43] == result.sequence

    def test_keeps_supplied_sequence(self, gateway, payload, sequences):
        payload["numeroConsecutivo"] = "00100101000000000777"
        result = gateway.issue(validate_document(payload))

        assert result.sequence == "00100101000000000777"
        assert sequences.stats().file_exists is False

    def test_payload_carries_sequence_and_wire_names(self, gateway, document):
        result = gateway.issue(document)

        assert result.payload["numeroConsecutivo"] == result.sequence
        assert result.payload["emisor"]["nombre"] == "Servicios Tecnicos S.A."

    def test_metadata(self, gateway, document):
        metadata = gateway.issue(document).metadata

        assert metadata == {
            "emisor": "Servicios Tecnicos S.A.",
            "receptor": "Maria Rodriguez",
            "total": 22600,
            "moneda": "CRC",
        }

    @pytest.mark.parametrize("issued_at,local", [
        ("2024-03-15", datetime(2024, 3, 15)),
        ("2024-03-15T12:00:00", datetime(2024, 3, 15, 12)),
        # Already the 16th in UTC
        ("2024-03-15T23:30:00", datetime(2024, 3, 15, 23, 30)),
    ])
    def test_issue_date_without_offset_is_local(self, gateway, payload, issued_at, local):
        payload["fechaEmision"] = issued_at
        result = gateway.issue(validate_document(payload))
        root = etree.fromstring(result.xml.encode("utf-8"))
        fecha = root.findtext("f:FechaEmision", namespaces={"f": root.nsmap[None]})

        assert result.key[3:11] == "20240315"
        assert datetime.fromisoformat(fecha) == local.replace(tzinfo=ZoneInfo(AUTHORITY_TZ))

    def test_xml_rendition(self, gateway, document):
        result = gateway.issue(document)
        root = etree.fromstring(result.xml.encode("utf-8"))
        ns = {"f": root.nsmap[None]}

        assert root.tag.endswith("FacturaElectronica")
        assert root.findtext("f:Clave", namespaces=ns) == result.key
        assert root.findtext("f:NumeroConsecutivo", namespaces=ns) == result.sequence
        assert root.findtext("f:Emisor/f:Identificacion/f:Numero", namespaces=ns) == "3101123456"
        assert len(root.findall("f:DetalleServicio/f:LineaDetalle", namespaces=ns)) == 1
        assert root.findtext("f:ResumenFactura/f:TotalComprobante", namespaces=ns) == "22600.00000"

    def test_xml_escapes_text(self, gateway, payload):
        payload["emisor"]["nombre"] = "Perez & Hijos <Ltda>"
        result = gateway.issue(validate_document(payload))

        assert "Perez &amp; Hijos &lt;Ltda&gt;" in result.xml


class TestSimulatedCalls:

    def test_validate(self, gateway):
        result = gateway.validate(KEY)

        assert result.valid is True
        assert result.state == "VALIDADO_SIMULADO"
        assert result.messages == []
        assert re.fullmatch(r"[0-9a-f]{64}", result.hash)

    def test_send(self, gateway):
        result = gateway.send(KEY)

        assert result.state == "ENVIADO_SIMULADO"
        assert re.fullmatch(r"[0-9]{9}", result.receipt)
        assert result.authority_response.code == "01"
        assert "SIMULATED" in result.authority_response.message

    def test_query(self, gateway):
        result = gateway.query(KEY)

        assert result.state == "PROCESADO_SIMULADO"
        assert result.remote_state == "ACEPTADO"
        assert result.details["responseCode"] == "01"
