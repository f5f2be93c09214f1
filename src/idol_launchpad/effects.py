"""
Typed view over a transaction's `objectChanges`.

Raw records are decoded into `ObjectChange` values tagged with a `ChangeKind`
and carrying a parsed `MoveType`. Extraction sites declare a `TypePattern` and
match on structure (address / module / name) rather than on substrings of the
type tag.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from idol_launchpad.utils import normalize_address, normalize_type_string

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    PUBLISHED = "published"
    CREATED = "created"
    TRANSFERRED = "transferred"
    MUTATED = "mutated"
    DELETED = "deleted"
    WRAPPED = "wrapped"
    UNKNOWN = "unknown"


def split_type_args(s: str) -> list[str]:
    """Split a comma-separated type argument list at nesting depth zero."""
    out: list[str] = []
    depth = 0
    cur = []
    for ch in s:
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
        if ch == "," and depth == 0:
            out.append("".join(cur).strip())
            cur = []
            continue
        cur.append(ch)
    tail = "".join(cur).strip()
    if tail:
        out.append(tail)
    return out


@dataclass(frozen=True)
class MoveType:
    address: str
    module: str
    name: str
    type_args: tuple[str, ...] = ()

    @classmethod
    def parse(cls, type_str: str) -> MoveType | None:
        """Parse `0xADDR::module::Name<Args...>`; returns None for non-struct tags."""
        s = type_str.strip()
        i = s.find("<")
        base = s[:i] if i != -1 else s
        args: tuple[str, ...] = ()
        if i != -1:
            if not s.endswith(">"):
                return None
            args = tuple(normalize_type_string(a) for a in split_type_args(s[i + 1 : -1]))
        parts = base.split("::")
        if len(parts) != 3 or not parts[0].startswith("0x"):
            return None
        return cls(address=normalize_address(parts[0]), module=parts[1], name=parts[2], type_args=args)

    def __str__(self) -> str:
        base = f"{self.address}::{self.module}::{self.name}"
        if self.type_args:
            return f"{base}<{', '.join(self.type_args)}>"
        return base


@dataclass(frozen=True)
class ObjectChange:
    kind: ChangeKind
    object_id: str | None = None
    object_type: MoveType | None = None
    package_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class TypePattern:
    """Declarative match on a struct type; `None` fields are wildcards."""

    module: str
    name: str
    address: str | None = None
    type_arg: str | None = None

    def matches(self, t: MoveType | None) -> bool:
        if t is None:
            return False
        if t.module != self.module or t.name != self.name:
            return False
        if self.address is not None and t.address != normalize_address(self.address):
            return False
        if self.type_arg is not None:
            if not t.type_args or t.type_args[0] != normalize_type_string(self.type_arg):
                return False
        return True


TREASURY_CAP = TypePattern(module="coin", name="TreasuryCap", address="0x2")
COIN_METADATA = TypePattern(module="coin", name="CoinMetadata", address="0x2")
IAO_POOL = TypePattern(module="iao", name="IAO")
IAO_LP_CAP = TypePattern(module="iao", name="LPCap")
BONDING_CURVE = TypePattern(module="bonding_curve", name="BondingCurve")


def coin_of(coin_type: str) -> TypePattern:
    return TypePattern(module="coin", name="Coin", address="0x2", type_arg=coin_type)


def decode_change(raw: dict[str, Any]) -> ObjectChange:
    try:
        kind = ChangeKind(raw.get("type"))
    except ValueError:
        kind = ChangeKind.UNKNOWN
    type_str = raw.get("objectType")
    return ObjectChange(
        kind=kind,
        object_id=raw.get("objectId"),
        object_type=MoveType.parse(type_str) if isinstance(type_str, str) else None,
        package_id=raw.get("packageId"),
        raw=raw,
    )


def decode_changes(result: dict[str, Any]) -> list[ObjectChange]:
    """Decode `objectChanges` from an execution response (top level or nested under `effects`)."""
    changes = result.get("objectChanges")
    if changes is None and isinstance(result.get("effects"), dict):
        changes = result["effects"].get("objectChanges")
    if not isinstance(changes, list):
        return []
    out = []
    for c in changes:
        if isinstance(c, dict):
            out.append(decode_change(c))
        else:
            logger.debug(f"Skipping non-object change record: {c!r}")
    return out


def select(
    changes: Iterable[ObjectChange],
    pattern: TypePattern,
    kinds: frozenset[ChangeKind] = frozenset({ChangeKind.CREATED}),
) -> list[ObjectChange]:
    return [c for c in changes if c.kind in kinds and c.object_id and pattern.matches(c.object_type)]


def published_packages(changes: Iterable[ObjectChange]) -> list[str]:
    return [c.package_id for c in changes if c.kind is ChangeKind.PUBLISHED and c.package_id]
