"""
Virtual path handling.

The shell tracks a POSIX-style current path that maps onto REST resource
paths. The API only accepts numeric customer IDs in path position, so a
customer reference is turned into a reference lookup query.
"""

import posixpath
from dataclasses import dataclass

TOPLEVEL: tuple[str, ...] = (
    "coupons",
    "customers",
    "events",
    "invoices",
    "product_families",
    "products",
    "statements",
    "stats",
    "subscriptions",
    "transactions",
    "webhooks",
)


def resolve_path(cwd: str, path: str | None = None) -> str:
    """Resolve `path` against `cwd` into a normalized absolute path."""
    joined = posixpath.join(cwd or "/", path or "")
    normalized = posixpath.normpath(joined)
    # normpath keeps a leading double slash; collapse it
    return "/" + normalized.lstrip("/")


def path_segments(path: str) -> list[str]:
    return [segment for segment in path.strip("/").split("/") if segment]


def to_resource_path(segments: list[str]) -> str:
    return "/" + "/".join(segments)


@dataclass(frozen=True)
class CustomerReference:
    """A customers/<ref>/... path whose reference was pulled out."""

    reference: str
    segments: list[str]

    @property
    def wants_subscriptions(self) -> bool:
        return self.segments[1:2] == ["subscriptions"]

    def lookup_path(self) -> str:
        return to_resource_path(self.segments + [f"lookup?reference={self.reference}"])


def extract_customer_reference(segments: list[str]) -> CustomerReference | None:
    """Return the reference when segments look like customers/<non-numeric>/..."""
    if len(segments) < 2 or segments[0] != "customers" or segments[1].isdigit():
        return None
    remaining = segments[:1] + segments[2:]
    return CustomerReference(reference=segments[1], segments=remaining)


def rewrite_resource_path(cwd: str, path: str | None) -> str:
    """Resolve a virtual path to its REST path, rewriting customer references."""
    segments = path_segments(resolve_path(cwd, path))
    reference = extract_customer_reference(segments)
    if reference is not None:
        return reference.lookup_path()
    return to_resource_path(segments)
