"""Turn container user-data into an ordered list of actions.

User-data comes in three shapes:

    eipalloc-0123,10.3.0.10,fd12::a          comma-separated tokens
    {"AllocationId": "eipalloc-0123"}        a single entry object
    [{"Filters": [...]}, "10.3.0.10"]        a JSON array of entries

Each entry inside JSON is either a token string (same rules as the
comma form, taken exactly as written with no whitespace trimming) or an
object with ``AllocationId``, ``AllowReassociation`` and ``Filters``.
Object fields are not coerced: ``AllowReassociation`` must be a JSON
boolean. The whole batch is validated before anything runs.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from ipaddress import IPv4Address, IPv6Address

from pydantic import BaseModel, Field, StrictBool, ValidationError

from associate_eip.control.errors import (
    AmbiguousEipSpec,
    InvalidIdentifier,
    MalformedInput,
)

ALLOCATION_PREFIX = "eipalloc-"
_ALLOCATION_ID_RE = re.compile(r"eipalloc-[^\s,]+")


@dataclass(frozen=True)
class Filter:
    name: str
    values: tuple[str, ...]

    def to_request(self) -> dict:
        return {"Name": self.name, "Values": list(self.values)}


@dataclass(frozen=True)
class EipAction:
    allocation_id: str | None = None
    filters: tuple[Filter, ...] | None = None
    allow_reassociation: bool = True

    def __post_init__(self):
        if (self.allocation_id is None) == (self.filters is None):
            raise AmbiguousEipSpec(
                "An EIP entry needs exactly one of AllocationId or Filters"
            )


@dataclass(frozen=True)
class AssignIpv4:
    address: IPv4Address


@dataclass(frozen=True)
class AssignIpv6:
    address: IPv6Address


Action = EipAction | AssignIpv4 | AssignIpv6


class FilterEntry(BaseModel):
    name: str = Field(alias="Name")
    values: list[str] = Field(alias="Values")


class EipEntry(BaseModel):
    allocation_id: str | None = Field(default=None, alias="AllocationId")
    allow_reassociation: StrictBool | None = Field(default=None, alias="AllowReassociation")
    filters: list[FilterEntry] | None = Field(default=None, alias="Filters")


def validate_allocation_id(value: str) -> str:
    if not _ALLOCATION_ID_RE.fullmatch(value):
        raise InvalidIdentifier(f"Not an Elastic IP allocation id: {value!r}")
    return value


def _parse_token(token: str) -> Action:
    if token.startswith(ALLOCATION_PREFIX):
        return EipAction(allocation_id=validate_allocation_id(token))
    try:
        return AssignIpv4(IPv4Address(token))
    except ValueError:
        pass
    try:
        return AssignIpv6(IPv6Address(token))
    except ValueError:
        pass
    raise MalformedInput(
        f"Expected an eipalloc id, IPv4 or IPv6 address, got {token!r}"
    )


def _entry_to_action(entry: EipEntry) -> EipAction:
    if entry.allocation_id is not None and entry.filters is not None:
        raise AmbiguousEipSpec("AllocationId and Filters cannot be combined")
    if entry.allocation_id is None and entry.filters is None:
        raise AmbiguousEipSpec("Either AllocationId or Filters is required")

    allow = True if entry.allow_reassociation is None else entry.allow_reassociation
    if entry.allocation_id is not None:
        return EipAction(
            allocation_id=validate_allocation_id(entry.allocation_id),
            allow_reassociation=allow,
        )
    filters = tuple(Filter(f.name, tuple(f.values)) for f in entry.filters)
    return EipAction(filters=filters, allow_reassociation=allow)


def _parse_entry(raw) -> Action:
    if isinstance(raw, str):
        return _parse_token(raw)
    if isinstance(raw, dict):
        try:
            entry = EipEntry.model_validate(raw)
        except ValidationError as e:
            raise MalformedInput(f"Invalid EIP entry: {e}") from e
        return _entry_to_action(entry)
    raise MalformedInput(f"Unsupported entry: {raw!r}")


def _load_json(text: str):
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        raise MalformedInput(f"user-data is not valid JSON: {e}") from e


def parse_user_data(raw: str) -> list[Action]:
    """Parse user-data into actions, failing on the first invalid entry."""
    text = raw.strip()
    if not text:
        raise MalformedInput("user-data is empty")

    if text.startswith("["):
        entries = _load_json(text)
        if not isinstance(entries, list):
            raise MalformedInput("user-data is not a JSON array")
        return [_parse_entry(e) for e in entries]

    if text.startswith("{"):
        return [_parse_entry(_load_json(text))]

    return [_parse_token(token.strip()) for token in text.split(",")]


def describe_action(action: Action) -> str:
    if isinstance(action, EipAction):
        if action.allocation_id is not None:
            return f"associate {action.allocation_id}"
        return f"associate EIP matching {len(action.filters)} filter(s)"
    if isinstance(action, AssignIpv4):
        return f"assign private IPv4 {action.address}"
    return f"assign IPv6 {action.address}"
