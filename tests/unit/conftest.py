"""
Unit Test Fixtures.

Fixtures for unit tests - all external dependencies are mocked.
Unit tests never touch the network.
"""

import io
from typing import Any
from unittest.mock import MagicMock, create_autospec

import pytest

from billing_shell.cli.client import ChargifyClient
from billing_shell.cli.options import ShellOptions
from billing_shell.cli.output import OutputFormatter
from billing_shell.cli.session import ShellSession
from billing_shell.core.config import Settings
from billing_shell.core.config_schema import ShellSchema


# =============================================================================
# Client Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_client() -> MagicMock:
    """
    Autospecced ChargifyClient.

    Async methods are awaitable and calls are checked against the real
    signatures, so argument-count errors surface as they would in the shell.

    Usage:
        async def test_ls(mock_client):
            mock_client.get.return_value = {"customer": {"id": 1}}
    """
    client = create_autospec(ChargifyClient, instance=True)
    client.get.return_value = {"ok": True}
    client.post.return_value = {"created": True}
    client.put.return_value = {"updated": True}
    client.delete.return_value = None
    client.close.return_value = None
    return client


# =============================================================================
# Options and Session Fixtures
# =============================================================================


@pytest.fixture
def options() -> ShellOptions:
    """Options with credentials, as after a successful resolve."""
    return ShellOptions(subdomain="acme", api_key="secret")


@pytest.fixture
def empty_settings() -> Settings:
    """Environment settings with nothing set, independent of the real environment."""
    return Settings.model_construct()


@pytest.fixture
def session(mock_client: MagicMock, options: ShellOptions) -> ShellSession:
    """Shell session at the root path with a mocked client."""
    return ShellSession(
        client=mock_client,
        options=options,
        settings=ShellSchema(),
        output=OutputFormatter(),
        commands=["cd", "help", "less", "ll", "ls", "pwd"],
    )


# =============================================================================
# Terminal Fixtures
# =============================================================================


class TerminalStream(io.StringIO):
    """StringIO that reports itself as a terminal."""

    def __init__(self, tty: bool = True) -> None:
        super().__init__()
        self.tty = tty

    def isatty(self) -> bool:
        return self.tty


@pytest.fixture
def terminal() -> type[TerminalStream]:
    """Provide TerminalStream for tests that need tty detection."""
    return TerminalStream


def make_response(status_code: int, payload: Any = None) -> Any:
    """Build an httpx.Response with an optional JSON body."""
    import httpx

    if payload is None:
        return httpx.Response(status_code)
    return httpx.Response(status_code, json=payload)


@pytest.fixture
def response_factory() -> Any:
    """Provide make_response for client tests."""
    return make_response
