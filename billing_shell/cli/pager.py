"""
Pager integration for the `less` builtin.

Text is written to a scratch file in the user's home directory, the pager
runs on it with the terminal's stdio, and the file is removed once the
pager exits.
"""

import asyncio
import contextlib
import time
from pathlib import Path

from billing_shell.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

DEFAULT_PAGER = ("less", "-R")


def scratch_path(home: Path | None = None) -> Path:
    """Timestamp-named scratch file under the home directory."""
    base = home if home is not None else Path.home()
    return base / f".billing-shell-{int(time.time() * 1000)}.txt"


async def page(text: str, command: list[str] | tuple[str, ...] = DEFAULT_PAGER, home: Path | None = None) -> int:
    """
    Show text in an external pager.

    Returns:
        The pager's exit code
    """
    path = scratch_path(home)
    path.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
    try:
        log_with_source(logger, "pager", "debug", "Starting pager", command=list(command), path=str(path))
        process = await asyncio.create_subprocess_exec(*command, str(path))
        return await process.wait()
    finally:
        with contextlib.suppress(OSError):
            path.unlink()
