"""Tests for utils/logging_setup.py."""

import logging

import pytest

from utils.logging_setup import configure_logging


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _einvoice_handlers(root):
    return [h for h in root.handlers if getattr(h, "_einvoice_handler", False)]


class TestConfigureLogging:

    def test_installs_one_handler(self, root_logger):
        configure_logging("DEBUG")
        configure_logging("WARNING")

        assert len(_einvoice_handlers(root_logger)) == 1
        assert root_logger.level == logging.WARNING

    def test_level_is_case_insensitive(self, root_logger):
        configure_logging("info")
        assert root_logger.level == logging.INFO
