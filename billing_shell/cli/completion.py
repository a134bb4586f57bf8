"""
Tab completion.

The first word completes against the command table. The second word of a
builtin completes against the top-level directories, either as an absolute
path (/cu -> /customers) or, at the root only, as a relative one.
"""

from pathlib import Path
from typing import Callable, Iterable

from billing_shell.cli.paths import TOPLEVEL
from billing_shell.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

try:
    import readline
except ImportError:  # Windows without pyreadline
    readline = None  # type: ignore[assignment]


class Completer:
    """Computes completions for a partially typed line."""

    def __init__(
        self,
        commands: Iterable[str],
        builtins: Iterable[str],
        toplevel: Iterable[str] = TOPLEVEL,
    ) -> None:
        self.commands = sorted(set(commands))
        self.builtins = frozenset(builtins)
        self.toplevel = list(toplevel)

    def complete(self, line: str, cwd: str = "/") -> list[str]:
        words = line.split()
        if line.endswith(" ") or not words:
            words.append("")

        if len(words) == 1:
            return [name for name in self.commands if name.startswith(words[0])]

        if len(words) == 2 and words[0] in self.builtins:
            return self._complete_path(words[1], cwd)

        return []

    def _complete_path(self, text: str, cwd: str) -> list[str]:
        if text.startswith("/"):
            prefix, partial = "/", text[1:]
        elif cwd == "/":
            prefix, partial = "", text
        else:
            return []
        if "/" in partial:
            return []
        return [prefix + name for name in self.toplevel if name.startswith(partial)]


def install_completion(completer: Completer, get_cwd: Callable[[], str]) -> bool:
    """
    Register the completer with readline.

    Returns:
        False when readline is unavailable
    """
    if readline is None:
        return False

    matches: list[str] = []

    def _readline_complete(text: str, state: int) -> str | None:
        if state == 0:
            buffer = readline.get_line_buffer()[: readline.get_endidx()]
            matches[:] = completer.complete(buffer, get_cwd())
        return matches[state] if state < len(matches) else None

    readline.set_completer_delims(" \t\n")
    readline.set_completer(_readline_complete)
    readline.parse_and_bind("tab: complete")
    return True


def load_history(history_file: str | None, length: int) -> Path | None:
    """Load readline history. Returns the resolved path to save to on exit."""
    if readline is None or not history_file:
        return None
    path = Path(history_file).expanduser()
    readline.set_history_length(length)
    if path.exists():
        try:
            readline.read_history_file(str(path))
        except OSError as e:
            log_with_source(logger, "shell", "warning", "Could not read history", path=str(path), error=str(e))
    return path


def save_history(path: Path | None) -> None:
    if readline is None or path is None:
        return
    try:
        readline.write_history_file(str(path))
    except OSError as e:
        log_with_source(logger, "shell", "warning", "Could not write history", path=str(path), error=str(e))
