"""
Command table.

Client methods callable from the shell are listed explicitly; their command
names are the dash-case form of the method names. HTTP primitives
(get/post/put/delete/request) and lifecycle methods are never exposed.
"""

import json
import re
from typing import Any

from billing_shell.core.logging import get_logger, log_with_source

logger = get_logger(__name__)

CLIENT_METHODS: tuple[str, ...] = (
    "url",
    "hosted_page_url",
    "list_customers",
    "get_customer",
    "get_customer_by_reference",
    "create_customer",
    "update_customer",
    "delete_customer",
    "customer_subscriptions",
    "customer_subscriptions_by_reference",
    "list_subscriptions",
    "get_subscription",
    "create_subscription",
    "update_subscription",
    "cancel_subscription",
    "reactivate_subscription",
    "subscription_components",
    "subscription_transactions",
    "list_products",
    "get_product",
    "get_product_by_handle",
    "list_product_families",
    "get_product_family",
    "product_family_components",
    "list_coupons",
    "get_coupon",
    "find_coupon",
    "list_events",
    "list_transactions",
    "get_transaction",
    "list_invoices",
    "get_statement",
    "get_stats",
    "list_webhooks",
)

IGNORED_METHODS = frozenset({"get", "post", "put", "delete", "request", "close", "configure"})

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_command_name(method_name: str) -> str:
    """list_customers -> list-customers"""
    return method_name.replace("_", "-")


def to_method_name(command_name: str) -> str:
    """list-customers -> list_customers"""
    return command_name.replace("-", "_")


def to_setting_name(key: str) -> str:
    """apiKey, api-key and api_key all name the api_key setting."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).replace("-", "_").lower()


CLIENT_COMMANDS: dict[str, str] = {
    to_command_name(name): name for name in CLIENT_METHODS if name not in IGNORED_METHODS
}

RETURNED_COMMANDS = frozenset({"url", "hosted-page-url"})


def parse_argument(arg: str) -> Any:
    """Parse a bracketed argument as JSON; anything else stays a string."""
    if not arg.startswith(("{", "[")):
        return arg
    try:
        return json.loads(arg)
    except json.JSONDecodeError:
        log_with_source(logger, "shell", "debug", "Argument is not valid JSON, passing as text", argument=arg)
        return arg


def parse_command_line(line: str) -> tuple[str | None, list[Any]]:
    """Split a command line on whitespace into a command name and parsed arguments."""
    words = line.split()
    if not words:
        return None, []
    return words[0], [parse_argument(word) for word in words[1:]]
