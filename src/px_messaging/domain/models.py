"""Messaging domain models — pure dataclasses, no transport dependency."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.px_common.errors import UpstreamUnavailableError

MIN_RETRY_AFTER_MS = 100

_UINT_RE = re.compile(r"\d+")


@dataclass(frozen=True)
class Tag:
    name: str
    value: str


def make_tags(values: Mapping[str, Any]) -> list[Tag]:
    """Build a tag list from a mapping, in insertion order.

    None values are dropped; booleans become 'true' / 'false'.
    """
    tags: list[Tag] = []
    for name, value in values.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        tags.append(Tag(name=name, value=str(value)))
    return tags


@dataclass(frozen=True)
class TagFilter:
    """One conjunctive constraint: tag `name` must equal one of `values`.

    Filters are passed as an ordered sequence, most selective first.
    """
    name: str
    values: tuple[str, ...]

    @classmethod
    def of(cls, name: str, *values: str) -> "TagFilter":
        return cls(name=name, values=tuple(values))

    def to_variables(self) -> dict[str, Any]:
        return {"name": self.name, "values": list(self.values)}


@dataclass(frozen=True)
class AoMessage:
    id: str
    from_address: str
    to: str
    tags: dict[str, str] = field(default_factory=dict)
    data: str = ""
    ingested_at: int | None = None  # unix seconds, gateway messages only

    @classmethod
    def from_gateway(cls, node: Mapping[str, Any]) -> "AoMessage":
        """Parse a gateway transaction node (id, owner, recipient, tags)."""
        return cls(
            id=node["id"],
            from_address=node["owner"]["address"],
            to=node["recipient"],
            tags={t["name"]: t["value"] for t in node.get("tags") or []},
            ingested_at=node.get("ingested_at"),
        )

    @classmethod
    def from_cu(cls, message: Mapping[str, Any], process_id: str) -> "AoMessage":
        """Parse an output message of a CU result or dryrun."""
        return cls(
            id=message.get("Id", ""),
            from_address=process_id,
            to=message.get("Target", ""),
            tags={t["name"]: t["value"] for t in message.get("Tags") or []},
            data=message.get("Data") or "",
        )

    def int_tag(self, name: str, default: int | None = None) -> int:
        """Read a base-unit integer tag; missing or malformed is an upstream fault."""
        value = self.tags.get(name)
        if value is None and default is not None:
            return default
        if value is None or not _UINT_RE.fullmatch(value):
            raise UpstreamUnavailableError(
                f"Message {self.id} has no valid {name} tag: {value!r}"
            )
        return int(value)


@dataclass(frozen=True)
class ProcessResult:
    """Output of a dryrun or of an evaluated message."""
    messages: list[AoMessage]
    error: str | None = None


@dataclass(frozen=True)
class MessagePage:
    messages: list[AoMessage]
    end_cursor: str | None
    has_next_page: bool


@dataclass(frozen=True)
class PollArgs:
    max_retries: int
    retry_after_ms: int

    @property
    def delay_seconds(self) -> float:
        return max(self.retry_after_ms, MIN_RETRY_AFTER_MS) / 1000


@dataclass(frozen=True)
class SignedDataItem:
    """Opaque signed submission produced by a Signer."""
    id: str
    raw: bytes
