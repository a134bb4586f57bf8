"""Unit tests for command dispatch and the interactive loop."""

import asyncio
import json
from unittest.mock import MagicMock, patch

import httpx
import pytest

from billing_shell.cli.builtins import BUILTINS
from billing_shell.cli.commands import CLIENT_COMMANDS
from billing_shell.cli.options import ShellOptions
from billing_shell.cli.shell import BillingShell, InteractiveShell, ShellState, command_names
from billing_shell.core.config_schema import ShellSchema
from billing_shell.core.exceptions import CredentialsError, NotFoundError, ValidationError


@pytest.fixture
def shell(mock_client: MagicMock, options: ShellOptions) -> BillingShell:
    return BillingShell(mock_client, options)


class TestExecuteBuiltins:
    """Tests for builtin dispatch through execute()."""

    @pytest.mark.asyncio
    async def test_reference_lookup(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        """ls customers/acme123 at / should GET the lookup and print JSON."""
        mock_client.get.return_value = {"customer": {"id": 7}}

        ok = await shell.execute("ls customers/acme123")

        assert ok is True
        mock_client.get.assert_awaited_once_with("/customers/lookup?reference=acme123")
        assert json.loads(capsys.readouterr().out) == {"customer": {"id": 7}}

    @pytest.mark.asyncio
    async def test_mk_with_json_body(self, shell: BillingShell, mock_client: MagicMock) -> None:
        await shell.execute('mk {"customer_id":5}')

        mock_client.post.assert_awaited_once_with("/subscriptions", {"customer_id": 5})

    @pytest.mark.asyncio
    async def test_cd_changes_session_path(self, shell: BillingShell, capsys) -> None:
        await shell.execute("cd customers")
        await shell.execute("pwd")

        assert shell.session.cwd == "/customers"
        assert capsys.readouterr().out == "/customers\n"

    @pytest.mark.asyncio
    async def test_argument_error_is_printed(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        """Should report missing arguments on stderr and keep going."""
        ok = await shell.execute("rm")

        assert ok is False
        assert "Argument required: path" in capsys.readouterr().err
        mock_client.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_line_is_ignored(self, shell: BillingShell, capsys) -> None:
        assert await shell.execute("   ") is True
        assert capsys.readouterr() == ("", "")


class TestExecuteClientCommands:
    """Tests for generic client command dispatch."""

    @pytest.mark.asyncio
    async def test_async_command(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        mock_client.get_customer.return_value = {"customer": {"id": 5}}

        await shell.execute("get-customer 5")

        mock_client.get_customer.assert_awaited_once_with("5")
        assert json.loads(capsys.readouterr().out) == {"customer": {"id": 5}}

    @pytest.mark.asyncio
    async def test_json_literal_argument(self, shell: BillingShell, mock_client: MagicMock) -> None:
        await shell.execute('create-customer {"customer":{"reference":"acme"}}')

        mock_client.create_customer.assert_awaited_once_with({"customer": {"reference": "acme"}})

    @pytest.mark.asyncio
    async def test_malformed_literal_passed_as_text(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        """Should not report JSON parse failures."""
        await shell.execute("create-customer {reference:acme}")

        mock_client.create_customer.assert_awaited_once_with("{reference:acme}")
        assert capsys.readouterr().err == ""

    @pytest.mark.asyncio
    async def test_returned_command_is_synchronous(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        mock_client.url.return_value = "https://acme.chargify.com/customers.json"

        await shell.execute("url /customers")

        mock_client.url.assert_called_once_with("/customers")
        assert capsys.readouterr().out == "https://acme.chargify.com/customers.json\n"

    @pytest.mark.asyncio
    async def test_returned_command_error_is_printed(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        mock_client.hosted_page_url.side_effect = ValidationError("A site key is required for hosted page URLs")

        ok = await shell.execute("hosted-page-url update_payment 5")

        assert ok is False
        assert "site key is required" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_api_error_is_printed(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        mock_client.get_customer.side_effect = NotFoundError("Not found: /customers/9")

        ok = await shell.execute("get-customer 9")

        assert ok is False
        assert capsys.readouterr().err == "Not found: /customers/9\n"

    @pytest.mark.asyncio
    async def test_transport_error_is_printed(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        mock_client.list_products.side_effect = httpx.ConnectError("connection refused")

        ok = await shell.execute("list-products")

        assert ok is False
        assert "connection refused" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_unexpected_client_error_is_printed(
        self, shell: BillingShell, mock_client: MagicMock, capsys
    ) -> None:
        """Should report any other failure and keep the shell usable."""
        mock_client.cancel_subscription.side_effect = TypeError("sequence item 0: expected str instance, dict found")

        ok = await shell.execute('cancel-subscription 5 {"a":1}')

        assert ok is False
        assert capsys.readouterr().err == (
            "cancel-subscription: sequence item 0: expected str instance, dict found\n"
        )
        assert await shell.execute("pwd") is True

    @pytest.mark.asyncio
    async def test_wrong_argument_count(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        """Should report a signature mismatch instead of calling the client."""
        ok = await shell.execute("get-customer")

        assert ok is False
        assert capsys.readouterr().err.startswith("get-customer:")
        mock_client.get_customer.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_command(self, shell: BillingShell, capsys) -> None:
        ok = await shell.execute("frobnicate now")

        assert ok is False
        assert capsys.readouterr().err == "Unknown command: frobnicate\n"

    @pytest.mark.asyncio
    async def test_http_primitives_are_not_commands(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        await shell.execute("request GET /customers")

        assert "Unknown command: request" in capsys.readouterr().err
        mock_client.request.assert_not_called()


class TestDebugMode:
    """Tests for --debug echoing."""

    @pytest.mark.asyncio
    async def test_echoes_instead_of_running(self, mock_client: MagicMock, capsys) -> None:
        shell = BillingShell(mock_client, ShellOptions(subdomain="acme", api_key="k", debug=True))

        await shell.execute('get-customer 5 {"a":1}')

        assert json.loads(capsys.readouterr().out) == {
            "command": "get-customer",
            "method": "get_customer",
            "args": ["5", {"a": 1}],
        }
        mock_client.get_customer.assert_not_called()


class TestExclusiveExecution:
    """Tests for the busy guard."""

    @pytest.mark.asyncio
    async def test_input_while_busy_is_dropped(self, shell: BillingShell, mock_client: MagicMock) -> None:
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_get(path: str) -> dict:
            started.set()
            await release.wait()
            return {"path": path}

        mock_client.get.side_effect = slow_get

        first = asyncio.create_task(shell.execute_exclusive("ls products"))
        await started.wait()

        assert shell.busy is True
        assert await shell.execute_exclusive("ls customers") is False

        release.set()
        assert await first is True
        assert shell.busy is False
        mock_client.get.assert_awaited_once_with("/products")

    @pytest.mark.asyncio
    async def test_guard_released_after_error(self, shell: BillingShell, mock_client: MagicMock) -> None:
        mock_client.get.side_effect = NotFoundError()

        await shell.execute_exclusive("ls products")

        assert shell.busy is False


class TestCommandNames:
    def test_builtins_and_client_commands(self) -> None:
        names = command_names()

        assert names == sorted(names)
        assert set(BUILTINS) <= set(names)
        assert set(CLIENT_COMMANDS) <= set(names)


class TestCollectCredentials:
    """Tests for the credential prompts."""

    def test_prompts_for_missing_credentials(self) -> None:
        console = MagicMock()
        console.input.side_effect = ["acme", "secret"]
        interactive = InteractiveShell(console=console)

        options = interactive.collect_credentials(ShellOptions())

        assert options.subdomain == "acme"
        assert options.api_key == "secret"
        assert interactive.state is ShellState.PROMPTING
        assert console.input.call_args_list[1].kwargs["password"] is True

    def test_skips_known_values(self) -> None:
        console = MagicMock()
        console.input.side_effect = ["secret"]

        options = InteractiveShell(console=console).collect_credentials(ShellOptions(subdomain="acme"))

        assert options.api_key == "secret"
        assert console.input.call_count == 1

    def test_reprompts_on_empty_answer(self) -> None:
        console = MagicMock()
        console.input.side_effect = ["", "  ", "acme", "secret"]

        options = InteractiveShell(console=console).collect_credentials(ShellOptions())

        assert options.subdomain == "acme"

    def test_optional_prompts_when_enabled(self) -> None:
        console = MagicMock()
        console.input.side_effect = ["acme", "secret", "", "12"]
        interactive = InteractiveShell(console=console, settings=ShellSchema(prompt_optional_fields=True))

        options = interactive.collect_credentials(ShellOptions())

        assert options.site_key is None
        assert options.default_family == "12"

    def test_end_of_input_is_a_credentials_error(self) -> None:
        console = MagicMock()
        console.input.side_effect = EOFError
        interactive = InteractiveShell(console=console)

        with pytest.raises(CredentialsError):
            interactive.collect_credentials(ShellOptions())

        assert interactive.state is ShellState.AWAITING_SUBDOMAIN


class TestInteractiveLoop:
    """Tests for InteractiveShell.run."""

    @pytest.fixture(autouse=True)
    def no_readline(self):
        with patch("billing_shell.cli.shell.install_completion"), \
                patch("billing_shell.cli.shell.load_history", return_value=None), \
                patch("billing_shell.cli.shell.save_history"):
            yield

    @pytest.mark.asyncio
    async def test_runs_until_end_of_input(self, shell: BillingShell, mock_client: MagicMock, capsys) -> None:
        console = MagicMock()
        console.input.side_effect = ["cd products", "", "pwd", EOFError]
        interactive = InteractiveShell(console=console)

        code = await interactive.run(shell)

        assert code == 0
        assert interactive.state is ShellState.CLOSED
        assert capsys.readouterr().out == "/products\n"
        mock_client.close.assert_awaited_once()
        assert console.input.call_args_list[2].args[0] == "acme:/products> "

    @pytest.mark.asyncio
    async def test_quit_ends_loop(self, shell: BillingShell) -> None:
        console = MagicMock()
        console.input.side_effect = ["quit", "pwd"]

        assert await InteractiveShell(console=console).run(shell) == 0
        assert console.input.call_count == 1

    @pytest.mark.asyncio
    async def test_interrupt_keeps_running(self, shell: BillingShell) -> None:
        console = MagicMock()
        console.input.side_effect = [KeyboardInterrupt, "pwd", EOFError]

        assert await InteractiveShell(console=console).run(shell) == 0
        assert console.input.call_count == 3

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_running(self, shell: BillingShell, capsys) -> None:
        console = MagicMock()
        console.input.side_effect = ["pwd", "pwd", EOFError]

        with patch.object(shell, "execute", side_effect=[RuntimeError("boom"), True]):
            await InteractiveShell(console=console).run(shell)

        assert "Error: boom" in capsys.readouterr().err
