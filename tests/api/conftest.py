"""API test fixtures: TestClient over real services on a temporary directory."""

import pytest
from starlette.testclient import TestClient

from api.app import create_app
from core.config import EInvoiceConfig
from core.container import build_services


# =============================================================================
# CONFIG & SERVICES
# =============================================================================


@pytest.fixture
def config(tmp_path):
    return EInvoiceConfig(
        environment="test",
        invoices_dir=tmp_path / "invoices",
        counter_file=tmp_path / "data" / "consecutivo.json",
    )


@pytest.fixture
def services(config):
    return build_services(config)


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def production_client(tmp_path):
    config = EInvoiceConfig(
        environment="production",
        invoices_dir=tmp_path / "prod" / "invoices",
        counter_file=tmp_path / "prod" / "consecutivo.json",
    )
    return TestClient(create_app(config), raise_server_exceptions=False)


@pytest.fixture
def issued(client, payload):
    """An invoice issued through the API."""
    response = client.post("/api/invoices/issue", json=payload)
    assert response.status_code == 201
    return response.json()["data"]
