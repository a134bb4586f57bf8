"""
Command Shell.

BillingShell parses a command line and dispatches it to a builtin or to a
client method. InteractiveShell collects missing credentials and runs the
prompt loop on top of it.

Usage:
    shell = BillingShell(client, options)
    await shell.execute("ls customers/acme")

    interactive = InteractiveShell()
    options = interactive.collect_credentials(options)
    await interactive.run(BillingShell(create_client(options), options))
"""

import enum
import inspect
from typing import Any

import httpx
from rich.console import Console

from billing_shell.cli.builtins import BUILTINS
from billing_shell.cli.commands import (
    CLIENT_COMMANDS,
    RETURNED_COMMANDS,
    parse_command_line,
)
from billing_shell.cli.completion import Completer, install_completion, load_history, save_history
from billing_shell.cli.options import ShellOptions
from billing_shell.cli.output import OutputFormatter
from billing_shell.cli.session import ShellSession
from billing_shell.core.config_schema import ShellSchema
from billing_shell.core.exceptions import (
    ApplicationError,
    CredentialsError,
    UnknownCommandError,
    ValidationError,
)
from billing_shell.core.logging import get_logger, log_with_source

logger = get_logger(__name__)


def command_names() -> list[str]:
    """All commands available in the shell, sorted."""
    return sorted(set(BUILTINS) | set(CLIENT_COMMANDS))


def _check_arguments(name: str, method: Any, args: list[Any]) -> None:
    """Reject calls whose arguments do not fit the client method's signature."""
    try:
        signature = inspect.signature(method)
    except (TypeError, ValueError):
        return
    try:
        signature.bind(*args)
    except TypeError as e:
        raise ValidationError(f"{name}: {e}") from e


class BillingShell:
    """
    Executes shell command lines against a billing API client.

    Commands run one at a time: execute_exclusive drops a line that arrives
    while another command is still running. InteractiveShell reads the next
    line only after the previous command finishes, so there the guard never
    fires; it protects callers that feed lines from concurrent tasks.
    """

    def __init__(
        self,
        client: Any,
        options: ShellOptions,
        settings: ShellSchema | None = None,
        output: OutputFormatter | None = None,
    ) -> None:
        self.session = ShellSession(
            client=client,
            options=options,
            settings=settings or ShellSchema(),
            output=output or OutputFormatter(),
            commands=command_names(),
        )
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    async def dispatch(self, name: str, args: list[Any]) -> Any:
        """Run one command and return its result."""
        session = self.session

        if session.options.debug:
            return {"command": name, "method": CLIENT_COMMANDS.get(name, name), "args": args}

        handler = BUILTINS.get(name)
        if handler is not None:
            return await handler(session, args)

        method_name = CLIENT_COMMANDS.get(name)
        if method_name is None:
            raise UnknownCommandError(name)

        method = getattr(session.client, method_name)
        _check_arguments(name, method, args)
        if name in RETURNED_COMMANDS:
            return method(*args)
        return await method(*args)

    async def execute(self, line: str) -> bool:
        """
        Execute a command line, printing its result or error.

        Returns:
            True if the command succeeded
        """
        name, args = parse_command_line(line)
        if name is None:
            return True

        output = self.session.output
        log_with_source(logger, "shell", "debug", "Executing command", command=name, arg_count=len(args))

        try:
            result = await self.dispatch(name, args)
        except ApplicationError as e:
            output.error(e.message)
            return False
        except httpx.HTTPError as e:
            output.error(str(e) or e.__class__.__name__)
            return False
        except OSError as e:
            output.error(f"{name}: {e}")
            return False
        except Exception as e:
            log_with_source(logger, "shell", "error", "Command failed", command=name, error=str(e))
            output.error(f"{name}: {e}")
            return False

        output.emit(result)
        return True

    async def execute_exclusive(self, line: str) -> bool:
        """
        Execute a line unless another command is running.

        Returns:
            False if the line was dropped
        """
        if self._busy:
            log_with_source(logger, "shell", "debug", "Busy, dropping input")
            return False
        self._busy = True
        try:
            await self.execute(line)
        finally:
            self._busy = False
        return True


class ShellState(enum.Enum):
    AWAITING_SUBDOMAIN = "awaiting-subdomain"
    AWAITING_API_KEY = "awaiting-api-key"
    AWAITING_SITE_KEY = "awaiting-site-key"
    AWAITING_FAMILY = "awaiting-family"
    PROMPTING = "prompting"
    CLOSED = "closed"


# (state, option field, label, hidden input, required)
_PROMPTS = (
    (ShellState.AWAITING_SUBDOMAIN, "subdomain", "Subdomain: ", False, True),
    (ShellState.AWAITING_API_KEY, "api_key", "API key: ", True, True),
    (ShellState.AWAITING_SITE_KEY, "site_key", "Site key (optional): ", True, False),
    (ShellState.AWAITING_FAMILY, "default_family", "Default product family (optional): ", False, False),
)


class InteractiveShell:
    """
    Interactive prompt loop.

    Starts in AWAITING_SUBDOMAIN; each credential prompt is its own state.
    The optional site key and family prompts are only entered when
    shell.prompt_optional_fields is set. The loop ends on end of input.
    """

    def __init__(self, console: Console | None = None, settings: ShellSchema | None = None) -> None:
        self.console = console or Console()
        self.settings = settings or ShellSchema()
        self.state = ShellState.AWAITING_SUBDOMAIN

    def collect_credentials(self, options: ShellOptions) -> ShellOptions:
        """
        Prompt for missing settings and return the completed options.

        Raises:
            CredentialsError: If input ends before the subdomain and API key are known
        """
        updates: dict[str, str] = {}
        for state, field_name, label, hidden, required in _PROMPTS:
            if getattr(options, field_name):
                continue
            if not required and not self.settings.prompt_optional_fields:
                continue
            self.state = state
            while True:
                try:
                    value = self.console.input(label, password=hidden, markup=False).strip()
                except EOFError as e:
                    raise CredentialsError() from e
                if value or not required:
                    break
            if value:
                updates[field_name] = value

        self.state = ShellState.PROMPTING
        return options.model_copy(update=updates)

    def prompt(self, session: ShellSession) -> str:
        return f"{session.options.subdomain}:{session.cwd}> "

    async def run(self, shell: BillingShell) -> int:
        """Run the prompt loop until end of input or `quit`."""
        session = shell.session
        self.state = ShellState.PROMPTING

        install_completion(Completer(session.commands, BUILTINS), lambda: session.cwd)
        history = load_history(self.settings.history_file, self.settings.history_length)

        try:
            while not session.closed:
                try:
                    line = self.console.input(self.prompt(session), markup=False)
                except KeyboardInterrupt:
                    self.console.print("\n[dim]Use 'quit' or Ctrl-D to exit[/dim]")
                    continue
                except EOFError:
                    self.console.print()
                    break

                if not line.strip():
                    continue

                try:
                    await shell.execute_exclusive(line)
                except Exception as e:
                    log_with_source(logger, "shell", "error", "Command failed", error=str(e))
                    session.output.error(f"Error: {e}")
        finally:
            self.state = ShellState.CLOSED
            save_history(history)
            await session.client.close()

        return 0
