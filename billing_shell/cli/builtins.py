"""
Shell builtins.

Filesystem-style verbs mapped onto the billing API. Every handler takes the
session and the parsed argument list and returns a result to print (or None).
Paths are resolved against the session's current path unless absolute.
"""

import json
import textwrap
from typing import Any, Awaitable, Callable

from billing_shell.cli.commands import to_setting_name
from billing_shell.cli.options import USAGE
from billing_shell.cli.output import to_text
from billing_shell.cli.pager import page
from billing_shell.cli.paths import (
    TOPLEVEL,
    extract_customer_reference,
    path_segments,
    resolve_path,
    rewrite_resource_path,
    to_resource_path,
)
from billing_shell.cli.session import ShellSession
from billing_shell.core.exceptions import ArgumentRequiredError

Handler = Callable[[ShellSession, list[Any]], Awaitable[Any]]


def _text(value: Any) -> str:
    """Path arguments that were parsed as JSON go back to text."""
    return value if isinstance(value, str) else json.dumps(value)


async def cd(session: ShellSession, args: list[Any]) -> None:
    session.cwd = resolve_path(session.cwd, _text(args[0]) if args else "/")


async def pwd(session: ShellSession, args: list[Any]) -> str:
    return session.cwd


async def ls(session: ShellSession, args: list[Any]) -> Any:
    """List the root directories, or GET the resource at a path."""
    segments = path_segments(resolve_path(session.cwd, _text(args[0]) if args else None))
    if not segments and session.cwd == "/":
        return "\n".join(TOPLEVEL)

    reference = extract_customer_reference(segments)
    if reference is None:
        return await session.client.get(to_resource_path(segments))
    if reference.wants_subscriptions:
        return await session.client.customer_subscriptions_by_reference(reference.reference)
    return await session.client.get(reference.lookup_path())


async def less(session: ShellSession, args: list[Any]) -> None:
    result = await ls(session, args)
    await page(to_text(result), session.settings.pager)


async def rm(session: ShellSession, args: list[Any]) -> Any:
    if not args:
        raise ArgumentRequiredError("path", "rm")
    return await session.client.delete(rewrite_resource_path(session.cwd, _text(args[0])))


async def mv(session: ShellSession, args: list[Any]) -> Any:
    if not args:
        raise ArgumentRequiredError("body", "mv")
    if len(args) < 2:
        raise ArgumentRequiredError("path", "mv")
    body, path = args[0], _text(args[1])
    return await session.client.put(rewrite_resource_path(session.cwd, path), body)


async def mk(session: ShellSession, args: list[Any]) -> Any:
    if not args:
        raise ArgumentRequiredError("body", "mk")
    if len(args) == 1:
        path, body = "subscriptions", args[0]
    else:
        path, body = _text(args[0]), args[1]
    target = to_resource_path(path_segments(resolve_path(session.cwd, path)))
    return await session.client.post(target, body)


async def set_option(session: ShellSession, args: list[Any]) -> None:
    if not args:
        raise ArgumentRequiredError("key", "set")
    if len(args) < 2:
        raise ArgumentRequiredError("value", "set")
    session.client.configure(to_setting_name(_text(args[0])), args[1])


async def help_command(session: ShellSession, args: list[Any]) -> str:
    if args and _text(args[0]) in HELP_TEXT:
        return HELP_TEXT[_text(args[0])]
    listing = textwrap.fill(" ".join(session.commands), width=session.settings.wrap_width)
    return f"{USAGE}\nCommands:\n{listing}"


async def quit_shell(session: ShellSession, args: list[Any]) -> None:
    session.closed = True


HELP_TEXT: dict[str, str] = {
    "cd": "cd <path>\n  Change the current virtual path.",
    "pwd": "pwd\n  Print the current virtual path.",
    "ls": (
        "ls [path]\n"
        "  List the top level, or GET the resource at path.\n"
        "  customers/<reference> looks a customer up by reference."
    ),
    "ll": "ll [path]\n  Same as ls.",
    "cat": "cat [path]\n  Same as ls.",
    "less": "less [path]\n  Like ls, shown in a pager.",
    "rm": "rm <path>\n  DELETE the resource at path.",
    "mv": "mv <body> <path>\n  PUT body (JSON) to path.",
    "mk": "mk [path] <body>\n  POST body (JSON) to path (default: subscriptions).",
    "set": "set <key> <value>\n  Change a client setting, e.g. set timeout 10.",
    "help": "help [command]\n  Show help for a command, or list all commands.",
    "hosted-page-url": (
        "hosted-page-url <page> <subscription-id>\n"
        "  Signed hosted page URL (needs --site-key)."
    ),
}

BUILTINS: dict[str, Handler] = {
    "cd": cd,
    "pwd": pwd,
    "ls": ls,
    "ll": ls,
    "cat": ls,
    "less": less,
    "rm": rm,
    "mv": mv,
    "mk": mk,
    "set": set_option,
    "help": help_command,
    "exit": quit_shell,
    "quit": quit_shell,
}
