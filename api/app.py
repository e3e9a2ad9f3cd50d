"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request

from api.base import success_response
from api.errors import register_error_handlers
from api.invoices import create_invoice_router
from api.middleware import RequestIDMiddleware, SystemModeMiddleware
from core.config import EInvoiceConfig, from_env
from core.container import build_services
from utils.logging_setup import configure_logging
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


def create_app(config: EInvoiceConfig | None = None, services: dict | None = None) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        config: Runtime configuration (read from the environment when omitted)
        services: Pre-built services (built from config when omitted)
    """
    if config is None:
        config = services["config"] if services else from_env()
    configure_logging(config.log_level)

    if services is None:
        services = build_services(config)
    gateway = services["gateway"]

    app = FastAPI(title="E-Invoicing Core")
    app.add_middleware(SystemModeMiddleware, mode_provider=lambda: gateway.mode.value)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)

    app.include_router(create_invoice_router(services), prefix="/api")

    @app.get("/health")
    def health(request: Request):
        return success_response(
            {
                "status": "ok",
                "timestamp": now_utc().isoformat(),
                "environment": config.environment,
                "mode": gateway.mode.value,
            },
            getattr(request.state, "request_id", None),
        ).model_dump(mode="json")

    app.state.services = services
    logger.info(f"Application created (environment={config.environment})")
    return app
