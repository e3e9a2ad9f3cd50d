"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, to_local, parse_local_iso, file_timestamp
from utils.logging_setup import configure_logging
