"""Tests for logging helpers."""
import logging

import pytest

from nunupy import setup_logging
from nunupy.core.logging import get_logger


class TestGetLogger:
    """Test suite for get_logger."""

    @pytest.fixture(autouse=True)
    def reset_logger(self):
        logger = logging.getLogger('nunupy.test')
        logger.setLevel(logging.NOTSET)
        yield
        logger.setLevel(logging.NOTSET)

    def test_returns_named_logger(self):
        assert get_logger('nunupy.test').name == 'nunupy.test'

    def test_propagates(self):
        assert get_logger('nunupy.test').propagate is True

    def test_default_level_without_root_handlers(self):
        root = logging.getLogger()
        saved = root.handlers[:]
        root.handlers.clear()
        try:
            assert get_logger('nunupy.test').level == logging.WARNING
        finally:
            root.handlers[:] = saved

    def test_keeps_explicit_level(self):
        logging.getLogger('nunupy.test').setLevel(logging.DEBUG)

        assert get_logger('nunupy.test').level == logging.DEBUG


class TestSetupLogging:
    """Test suite for setup_logging."""

    def test_sets_package_levels(self):
        setup_logging(logging.DEBUG)
        try:
            assert logging.getLogger('nunupy').level == logging.DEBUG
            assert logging.getLogger('nunupy.upload.multipart').level == logging.DEBUG
        finally:
            setup_logging(logging.WARNING)
