# tests/test_log.py
import logging

import structlog

from storefront import __version__
from storefront.log import configure_logging, get_log_level


def test_log_level_per_environment():
    assert get_log_level("production") == "INFO"
    assert get_log_level("Development") == "DEBUG"
    assert get_log_level("test") == "WARNING"
    assert get_log_level("unknown") == "INFO"
    assert get_log_level("production", "debug") == "DEBUG"


def test_serving_the_module_app_configures_logging():
    from storefront.main import app

    assert app.version == __version__
    assert structlog.is_configured()
    assert logging.getLogger().handlers


def test_configure_logging_sets_root_level():
    configure_logging("production")
    assert logging.getLogger().level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
    configure_logging("test")
    assert logging.getLogger().level == logging.WARNING
