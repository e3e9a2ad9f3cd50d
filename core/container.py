"""Service wiring. The only place that constructs core services."""

import logging

from core.config import EInvoiceConfig
from core.services.document_store import DocumentStore
from core.services.gateway import TaxGateway
from core.services.invoice_service import InvoiceService
from core.services.sequence_service import SequenceGenerator

logger = logging.getLogger(__name__)


def build_services(config: EInvoiceConfig) -> dict:
    """
    Construct and initialize every service for a configuration.

    Returns:
        Dict with keys: config, sequence, store, gateway, invoice
    """
    sequences = SequenceGenerator(config.counter_file, is_production=config.is_production)
    store = DocumentStore(config.invoices_dir)
    gateway = TaxGateway(config.detect_mode(), sequences, config.atv)
    gateway.init()

    invoice = InvoiceService(
        gateway,
        store,
        sequences,
        is_production=config.is_production,
        max_limit=config.list_max_limit,
    )

    logger.info(
        f"Services ready (environment={config.environment}, mode={gateway.mode.value})"
    )

    return {
        "config": config,
        "sequence": sequences,
        "store": store,
        "gateway": gateway,
        "invoice": invoice,
    }
