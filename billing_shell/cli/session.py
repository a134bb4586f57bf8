"""Session context passed to every command handler."""

from dataclasses import dataclass, field
from typing import Any

from billing_shell.cli.options import ShellOptions
from billing_shell.cli.output import OutputFormatter
from billing_shell.core.config_schema import ShellSchema


@dataclass
class ShellSession:
    """
    Per-process shell state.

    `cwd` is the virtual current path. Only the `cd` builtin changes it.
    `client` is the billing API client (ChargifyClient or a test double).
    `closed` is set by `quit` and `exit` to end the interactive loop.
    """

    client: Any
    options: ShellOptions
    settings: ShellSchema = field(default_factory=ShellSchema)
    output: OutputFormatter = field(default_factory=OutputFormatter)
    commands: list[str] = field(default_factory=list)
    cwd: str = "/"
    closed: bool = False
