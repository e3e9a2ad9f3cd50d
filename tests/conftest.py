"""Shared test fixtures for the e-invoicing test suite."""

import copy
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env")

from core.models import GatewayMode
from core.services.document_store import DocumentStore
from core.services.gateway import TaxGateway
from core.services.invoice_service import InvoiceService
from core.services.sequence_service import SequenceGenerator


# =============================================================================
# TEST DATA
# =============================================================================

ISSUER_TAX_ID = "3101123456"

# One line: 2 x 10000, no discount, 13% VAT
VALID_PAYLOAD = {
    "tipoDocumento": "01",
    "codigoMoneda": "CRC",
    "tipoCambio": 1,
    "emisor": {
        "nombre": "Servicios Tecnicos S.A.",
        "identificacion": ISSUER_TAX_ID,
        "tipoIdentificacion": "02",
        "correoElectronico": "facturas@servicios.example.com",
        "provincia": "San Jose",
    },
    "receptor": {
        "nombre": "Maria Rodriguez",
        "identificacion": "112340567",
        "correoElectronico": "",
    },
    "detalleServicio": [
        {
            "numeroLinea": 1,
            "codigo": "SRV-001",
            "descripcion": "Mantenimiento preventivo",
            "cantidad": 2,
            "unidadMedida": "Hrs",
            "precioUnitario": 10000,
            "montoTotal": 20000,
            "descuento": 0,
            "subtotal": 20000,
            "impuesto": {"codigo": "01", "codigoTarifa": "08", "tarifa": 13, "monto": 2600},
            "montoTotalLinea": 22600,
        }
    ],
    "resumenFactura": {
        "montoTotalServiciosGravados": 20000,
        "totalGravado": 20000,
        "totalVenta": 20000,
        "totalDescuentos": 0,
        "totalVentaNeta": 20000,
        "totalImpuesto": 2600,
        "totalComprobante": 22600,
    },
    "condicionVenta": "01",
}


def make_payload() -> dict:
    """Fresh deep copy of a valid, arithmetically consistent document."""
    return copy.deepcopy(VALID_PAYLOAD)


@pytest.fixture
def payload() -> dict:
    return make_payload()


@pytest.fixture
def payload_factory():
    """For tests that need several independent payloads."""
    return make_payload


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def counter_file(tmp_path) -> Path:
    return tmp_path / "data" / "consecutivo.json"


@pytest.fixture
def invoices_dir(tmp_path) -> Path:
    return tmp_path / "invoices"


@pytest.fixture
def sequences(counter_file):
    return SequenceGenerator(counter_file)


@pytest.fixture
def store(invoices_dir):
    return DocumentStore(invoices_dir)


@pytest.fixture
def gateway(sequences):
    gw = TaxGateway(GatewayMode.SIMULATED, sequences)
    gw.init()
    return gw


@pytest.fixture
def invoice_service(gateway, store, sequences):
    return InvoiceService(gateway, store, sequences)
