"""
Output Formatting.

Results go to stdout, errors to stderr. When stdout is a terminal results
are pretty-printed with Rich; otherwise they are serialized as indented JSON
so the shell can be used in pipelines. The check runs on every call.
"""

import json
import sys
from typing import Any, TextIO

import click
from rich.console import Console
from rich.pretty import Pretty, pretty_repr


def is_interactive(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def to_json(result: Any) -> str:
    return json.dumps(result, indent=2, default=str)


def to_text(result: Any) -> str:
    """Human-readable serialization used by the pager."""
    if isinstance(result, str):
        return result
    return pretty_repr(result)


class OutputFormatter:
    """
    Prints command results and error messages.

    Streams default to the current sys.stdout / sys.stderr at call time.
    """

    def __init__(self, stdout: TextIO | None = None, stderr: TextIO | None = None) -> None:
        self._stdout = stdout
        self._stderr = stderr

    @property
    def stdout(self) -> TextIO:
        return self._stdout or sys.stdout

    @property
    def stderr(self) -> TextIO:
        return self._stderr or sys.stderr

    def emit(self, result: Any) -> None:
        """Print a command result."""
        if result is None:
            return
        stream = self.stdout
        if isinstance(result, str):
            click.echo(result, file=stream)
        elif is_interactive(stream):
            Console(file=stream).print(Pretty(result))
        else:
            click.echo(to_json(result), file=stream)

    def error(self, message: str) -> None:
        """Print an error message."""
        stream = self.stderr
        click.echo(click.style(message, fg="red"), file=stream, color=is_interactive(stream))
