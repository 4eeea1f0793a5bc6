# tests/conftest.py
"""Shared test setup for windpack."""

import sys
from collections.abc import Generator

import pytest

import windpack.logs as mod_logs
import windpack.module_loader as mod_loader
from tests.utils import DEFAULT_TEST_LOG_LEVEL
from tests.utils.log_fixtures import (
    direct_logger,
    module_logger,
)


# These fixtures are intentionally re-exported so pytest can discover them.
__all__ = [
    "direct_logger",
    "module_logger",
]


# ----------------------------------------------------------------------
# Fixtures
# ----------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_logger_level() -> Generator[None, None, None]:
    """Reset the app logger to DEFAULT_TEST_LOG_LEVEL around each test.

    The logger is a module-level singleton, so a test that changes its level
    (the CLI does) would otherwise leak into the next one.
    """
    logger = mod_logs.get_app_logger()
    logger.setLevel(DEFAULT_TEST_LOG_LEVEL)
    yield
    logger.setLevel(DEFAULT_TEST_LOG_LEVEL)


@pytest.fixture(autouse=True)
def no_leftover_config_modules() -> Generator[None, None, None]:
    """Fail loudly if a config load leaves its unit in sys.modules."""
    yield
    prefix = mod_loader.EPHEMERAL_MODULE_PREFIX
    leftovers = [name for name in sys.modules if name.startswith(prefix)]
    assert not leftovers, f"config modules leaked into sys.modules: {leftovers}"
