"""E-invoicing configuration.

Loaded once by the composition root. Environment variables (optionally from a
.env file) override the defaults below.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from core.models import GatewayMode

logger = logging.getLogger(__name__)


class ATVCredentials(BaseModel):
    """Credentials for the tax authority's submission API (ATV)."""

    key_path: str | None = None
    cert_path: str | None = None
    client_id: str | None = None
    username: str | None = None
    pin: str | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.key_path and self.cert_path and self.client_id)


class EInvoiceConfig(BaseModel):
    """
    Runtime configuration.

    Paths are relative to the working directory unless absolute.
    """

    environment: str = Field(
        default="development",
        description="development | test | production",
    )
    log_level: str = Field(default="INFO", description="Root logger level")

    invoices_dir: Path = Field(
        default=Path("./invoices"),
        description="Pending area; the sent area is its 'sent' subdirectory",
    )
    counter_file: Path = Field(
        default=Path("./data/consecutivo.json"),
        description="Persisted sequence counter",
    )

    simulate_if_no_keys: bool = Field(
        default=True,
        description=(
            "Expect SIMULATED when ATV credentials are absent. Only affects logging: "
            "without credentials the gateway always runs SIMULATED, and False adds a warning"
        ),
    )
    atv: ATVCredentials = Field(default_factory=ATVCredentials)

    list_default_limit: int = Field(default=50, ge=1, le=100)
    list_max_limit: int = Field(
        default=100,
        description="Upper bound for a single page of stored documents",
        ge=1,
        le=1000,
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def detect_mode(self) -> GatewayMode:
        """
        Choose the gateway mode from credential availability.

        REAL requires key path, cert path and client id to be set and both
        files to exist. Everything else runs SIMULATED.
        """
        if not self.atv.is_configured:
            if not self.simulate_if_no_keys:
                logger.warning("ATV credentials missing; running SIMULATED anyway")
            return GatewayMode.SIMULATED

        if Path(self.atv.key_path).exists() and Path(self.atv.cert_path).exists():
            return GatewayMode.REAL

        logger.warning("ATV key or certificate file not found; running SIMULATED")
        return GatewayMode.SIMULATED

    def safe_dump(self) -> dict:
        """Config for logs and status endpoints, with secrets masked."""
        data = self.model_dump(mode="json")
        for field in ("key_path", "cert_path", "pin"):
            data["atv"][field] = "[CONFIGURED]" if getattr(self.atv, field) else "[NOT CONFIGURED]"
        return data


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def from_env(env_file: Path | None = None) -> EInvoiceConfig:
    """
    Build configuration from environment variables.

    Variables: APP_ENV, LOG_LEVEL, INVOICES_DIR, CONSECUTIVE_FILE,
    SIMULATE_IF_NO_KEYS, ATV_KEY_PATH, ATV_CERT_PATH, ATV_CLIENT_ID,
    ATV_USERNAME, ATV_PIN.
    """
    load_dotenv(env_file)

    values = {
        "environment": os.getenv("APP_ENV"),
        "log_level": os.getenv("LOG_LEVEL"),
        "invoices_dir": os.getenv("INVOICES_DIR"),
        "counter_file": os.getenv("CONSECUTIVE_FILE"),
    }
    values = {k: v for k, v in values.items() if v}

    return EInvoiceConfig(
        **values,
        simulate_if_no_keys=_env_bool("SIMULATE_IF_NO_KEYS", True),
        atv=ATVCredentials(
            key_path=os.getenv("ATV_KEY_PATH"),
            cert_path=os.getenv("ATV_CERT_PATH"),
            client_id=os.getenv("ATV_CLIENT_ID"),
            username=os.getenv("ATV_USERNAME"),
            pin=os.getenv("ATV_PIN"),
        ),
    )
