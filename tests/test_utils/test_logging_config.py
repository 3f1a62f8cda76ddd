"""Tests for logging setup."""

import logging

from rich.logging import RichHandler

from docchat.logging_config import setup_logging


def test_single_rich_handler():
    root = logging.getLogger()
    original = list(root.handlers)
    try:
        setup_logging("debug")
        setup_logging("info")

        assert sum(isinstance(h, RichHandler) for h in root.handlers) == 1
        assert root.level == logging.INFO
        assert logging.getLogger("openai").level == logging.WARNING
    finally:
        root.handlers = original
