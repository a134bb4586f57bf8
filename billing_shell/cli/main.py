"""
Entry point.

Raw arguments are handed to the option resolver unchanged, so click's own
option parsing and help are disabled.

Usage:
    billing-shell acme 0123456789abcdef
    billing-shell -s acme -k 0123456789abcdef -c "ls customers/acme123"
    billing-shell --config ~/.chargify.json --raw < commands.txt
"""

import asyncio
import sys
from typing import TextIO

import click
import structlog

from billing_shell.cli.client import create_client
from billing_shell.cli.options import USAGE, ShellOptions, resolve_options
from billing_shell.cli.output import OutputFormatter
from billing_shell.cli.shell import BillingShell, InteractiveShell
from billing_shell.core.config import get_app_config
from billing_shell.core.exceptions import ApplicationError
from billing_shell.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def run(
    options: ShellOptions,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """
    Run one-shot or interactive mode.

    Returns:
        Process exit code
    """
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    output = OutputFormatter()
    settings = get_app_config().shell

    command = options.command
    if command is None and (options.raw or not stdin.isatty()):
        try:
            command = stdin.read()
        except OSError as e:
            output.error(f"Error: could not read stdin: {e}")
            return 1

    interactive = InteractiveShell(settings=settings)
    if not options.has_credentials:
        if options.raw or not stdin.isatty() or not stdout.isatty():
            output.error("Error: subdomain and API key are required (see --help)")
            return 1
        try:
            options = interactive.collect_credentials(options)
        except ApplicationError as e:
            output.error(f"Error: {e.message}")
            return 1

    shell = BillingShell(create_client(options), options, settings=settings, output=output)

    if command is None:
        return await interactive.run(shell)

    try:
        for line in command.splitlines():
            if line.strip():
                await shell.execute(line)
    finally:
        await shell.session.client.close()
    return 0


@click.command(
    context_settings={
        "ignore_unknown_options": True,
        "allow_interspersed_args": False,
    },
    add_help_option=False,
)
@click.argument("argv", nargs=-1, type=click.UNPROCESSED)
def main(argv: tuple[str, ...]) -> None:
    """Filesystem-style shell for the Chargify billing API."""
    # Option parsing logs, so stderr handlers must exist before it runs.
    setup_logging(format_type="console")
    try:
        options = resolve_options(list(argv))
    except ApplicationError as e:
        click.echo(click.style(f"Error: {e.message}", fg="red"), err=True)
        sys.exit(1)

    if options.show_help:
        click.echo(USAGE)
        sys.exit(0)

    if options.verbose:
        setup_logging(level="INFO", format_type="console")
    structlog.contextvars.bind_contextvars(source="shell")
    logger.debug("Shell invoked", raw=options.raw, debug=options.debug, one_shot=options.command is not None)

    sys.exit(asyncio.run(run(options)))


if __name__ == "__main__":
    main()
