"""
Root Pytest Fixtures.

Shared fixtures available to all test types.
"""

from collections.abc import Generator

import pytest

from billing_shell.core.config import get_app_config, get_settings
from billing_shell.core.logging import setup_logging


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    """Keep log output out of captured stdout/stderr."""
    setup_logging(level="CRITICAL", enable_console=False, enable_file_logging=False)


# =============================================================================
# Configuration Caches
# =============================================================================


@pytest.fixture(autouse=True)
def clear_config_caches() -> Generator[None, None, None]:
    """Drop cached YAML settings and secrets so tests can change cwd and env."""
    get_app_config.cache_clear()
    get_settings.cache_clear()
    yield
    get_app_config.cache_clear()
    get_settings.cache_clear()


@pytest.fixture
def anyio_backend() -> str:
    """Specify the async backend for anyio."""
    return "asyncio"
