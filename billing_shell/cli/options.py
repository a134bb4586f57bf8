"""
Argument & Config Resolver.

Turns the process argument list, an optional JSON config file and the
CHARGIFY_* environment into a frozen ShellOptions record.

Arguments are consumed left to right, so a flag given before --config wins
over the file while a flag given after it overrides the file. Unknown flags
are accepted and ignored.
"""

import json
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from billing_shell.core.config import Settings, get_settings
from billing_shell.core.exceptions import ConfigurationError
from billing_shell.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

USAGE = """\
Usage: billing-shell [subdomain] [api-key] [options] [command...]

Options:
  -s, --subdomain, --site <name>   Chargify subdomain
  -k, --key, --api-key <key>       API key
      --site-key <key>             Site shared key (hosted page URLs)
      --family <id>                Default product family
  -c, --command <cmd>              Run one command and exit
      --cfg, --conf, --config <f>  Load settings from a JSON file
      --raw                        Non-interactive: run one command from args or stdin
      --debug                      Print the resolved command instead of running it
  -v, --verbose                    Log at INFO level
  opt.<name> <value>               Set a client option (e.g. opt.timeout 10)
  -h, --help                       Show this message

Commands read from stdin when it is not a terminal.
"""

VALUE_FLAGS: dict[str, str] = {
    "-k": "api_key",
    "--key": "api_key",
    "--api-key": "api_key",
    "-s": "subdomain",
    "--subdomain": "subdomain",
    "--site": "subdomain",
    "--family": "default_family",
    "--site-key": "site_key",
    "-c": "command",
    "--command": "command",
}

BOOLEAN_FLAGS: dict[str, str] = {
    "--raw": "raw",
    "--debug": "debug",
    "-v": "verbose",
    "--verbose": "verbose",
    "-h": "show_help",
    "--help": "show_help",
}

CONFIG_FLAGS = frozenset({"--cfg", "--conf", "--config"})

CONFIG_SECTION = "chargify"

_SHORT_GROUP = re.compile(r"^-[A-Za-z]{2,}$")
_CLIENT_OPTION = re.compile(r"^(?:--)?opt\.(.+)$")


class ShellOptions(BaseModel):
    """Resolved startup options. Config files use the camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    subdomain: str | None = None
    api_key: str | None = None
    site_key: str | None = None
    default_family: str | None = None
    command: str | None = None
    raw: bool = False
    debug: bool = False
    verbose: bool = False
    show_help: bool = False
    client_options: dict[str, str] = Field(default_factory=dict)

    @property
    def has_credentials(self) -> bool:
        return bool(self.subdomain and self.api_key)


_ALIASES: dict[str, str] = {
    **{name: name for name in ShellOptions.model_fields},
    **{to_camel(name): name for name in ShellOptions.model_fields},
    "key": "api_key",
    "site": "subdomain",
    "family": "default_family",
}

_CONFIG_KEYS = frozenset({"subdomain", "api_key", "site_key", "default_family", "command", "raw", "debug"})


def expand_short_flags(argv: list[str]) -> list[str]:
    """Expand combined short flags: -abc becomes -a -b -c."""
    expanded: list[str] = []
    for arg in argv:
        if _SHORT_GROUP.match(arg):
            expanded.extend(f"-{letter}" for letter in arg[1:])
        else:
            expanded.append(arg)
    return expanded


def load_config_file(path: str) -> dict[str, Any]:
    """
    Read a JSON config file, returning its `chargify` section if it has one.

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON object
    """
    config_path = Path(path).expanduser()
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {config_path}: {e.strerror}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file {config_path}: {e.msg}") from e

    if isinstance(data, dict) and isinstance(data.get(CONFIG_SECTION), dict):
        data = data[CONFIG_SECTION]
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
    return data


def _merge_config(values: dict[str, Any], client_options: dict[str, str], data: dict[str, Any]) -> None:
    """Fill option slots from config data without overriding values already set."""
    for key, value in data.items():
        name = _ALIASES.get(key)
        if name in _CONFIG_KEYS:
            if values.get(name) is None:
                values[name] = value
        elif key == "opt" and isinstance(value, dict):
            for opt_key, opt_value in value.items():
                client_options.setdefault(opt_key, str(opt_value))
        elif name is not None:
            log_with_source(logger, "options", "debug", "Ignoring config key", key=key)
        else:
            client_options.setdefault(key, str(value))


def resolve_options(argv: list[str], settings: Settings | None = None) -> ShellOptions:
    """
    Build the options record from command-line arguments.

    Args:
        argv: Arguments without the program name
        settings: Environment-backed credentials used as the last fallback

    Returns:
        Frozen ShellOptions

    Raises:
        ConfigurationError: If a --config file cannot be loaded or holds invalid values
    """
    values: dict[str, Any] = {}
    client_options: dict[str, str] = {}
    command_words: list[str] = []
    command_from_flag = False

    args = expand_short_flags(list(argv))
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1

        if arg in VALUE_FLAGS:
            value = args[i] if i < len(args) else None
            i += 1
            name = VALUE_FLAGS[arg]
            values[name] = value
            if name == "command":
                command_from_flag = True
            continue

        if arg in BOOLEAN_FLAGS:
            values[BOOLEAN_FLAGS[arg]] = True
            if arg in ("-h", "--help"):
                break
            continue

        if arg in CONFIG_FLAGS:
            if i >= len(args):
                raise ConfigurationError(f"{arg} requires a file path")
            path = args[i]
            i += 1
            _merge_config(values, client_options, load_config_file(path))
            if values.get("command") is not None:
                command_from_flag = True
            log_with_source(logger, "options", "debug", "Loaded config file", path=path)
            continue

        match = _CLIENT_OPTION.match(arg)
        if match:
            client_options[match.group(1)] = args[i] if i < len(args) else ""
            i += 1
            continue

        if arg.startswith("-") and arg != "-":
            log_with_source(logger, "options", "debug", "Ignoring unknown flag", flag=arg)
            continue

        if values.get("subdomain") is None:
            values["subdomain"] = arg
        elif values.get("api_key") is None:
            values["api_key"] = arg
        elif command_from_flag:
            log_with_source(logger, "options", "debug", "Ignoring argument, command already set", argument=arg)
        else:
            command_words.append(arg)
            values["command"] = " ".join(command_words)

    env = settings if settings is not None else get_settings()
    for name in ("subdomain", "api_key", "site_key", "default_family"):
        if values.get(name) is None and getattr(env, name):
            values[name] = getattr(env, name)

    try:
        return ShellOptions(client_options=client_options, **values)
    except PydanticValidationError as e:
        fields = ", ".join(str(error["loc"][0]) for error in e.errors())
        raise ConfigurationError(f"Invalid option value for: {fields}") from e
