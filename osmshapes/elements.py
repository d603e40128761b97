"""
Typed OpenStreetMap element records.

These are the inputs to every conversion in osmshapes. They are plain,
immutable values: the ingestion boundary (osmshapes.parsers) builds them,
the assemblers only read them.

Usage:
    from osmshapes.elements import ElementMeta, Member, MemberType, Node, Relation, Way

    meta = ElementMeta(id=1, user="alice", uid=7, changeset=42, version=1,
                       timestamp=datetime(2024, 1, 1, tzinfo=UTC))
    node = Node(lat=41.878, lon=-87.630, meta=meta)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TypeVar

# Closed ways carrying one of these keys are linear features (roundabouts,
# fences) unless explicitly tagged area=yes.
LINEAR_KEYS = ("highway", "barrier")


@dataclass(frozen=True)
class ElementMeta:
    """Metadata shared by every OSM element."""

    id: int
    user: str
    uid: int
    changeset: int
    version: int
    timestamp: datetime
    visible: bool = True
    tags: dict[str, str] = field(default_factory=dict)

    def copy(self) -> ElementMeta:
        """Return an equal meta that owns a fresh tags dict."""
        return replace(self, tags=dict(self.tags))

    def with_tags(self, tags: Mapping[str, str]) -> ElementMeta:
        return replace(self, tags=dict(tags))


class MemberType(str, Enum):
    NODE = "node"
    WAY = "way"
    RELATION = "relation"

    @classmethod
    def parse(cls, value: str | MemberType) -> MemberType:
        """
        Accept "node"/"way"/"relation" as well as osmium's one-letter
        codes "n"/"w"/"r".
        """
        if isinstance(value, MemberType):
            return value
        code = str(value).strip().lower()
        for member_type in cls:
            if code in (member_type.value, member_type.value[0]):
                return member_type
        raise ValueError(f"Unknown member type {value!r}")


@dataclass(frozen=True)
class Node:
    lat: float
    lon: float
    meta: ElementMeta

    @property
    def id(self) -> int:
        return self.meta.id


@dataclass(frozen=True)
class Way:
    """An ordered list of node references. Order defines vertex order."""

    node_refs: tuple[int, ...]
    meta: ElementMeta

    def __post_init__(self):
        if not isinstance(self.node_refs, tuple):
            object.__setattr__(self, "node_refs", tuple(self.node_refs))

    @property
    def id(self) -> int:
        return self.meta.id

    @property
    def is_closed(self) -> bool:
        return bool(self.node_refs) and self.node_refs[0] == self.node_refs[-1]

    @property
    def is_area(self) -> bool:
        return self.meta.tags.get("area") == "yes"

    @property
    def is_line(self) -> bool:
        """
        Open ways are lines. Closed ways are lines only when they are
        highways or barriers not explicitly marked as areas.
        """
        if len(self.node_refs) < 2:
            return False
        if not self.is_closed:
            return True
        return not self.is_area and any(key in self.meta.tags for key in LINEAR_KEYS)

    @property
    def is_polygon(self) -> bool:
        return self.is_closed and not self.is_line and len(self.node_refs) > 3


@dataclass(frozen=True)
class Member:
    type: MemberType
    ref: int
    role: str = ""

    def __post_init__(self):
        object.__setattr__(self, "type", MemberType.parse(self.type))


@dataclass(frozen=True)
class Relation:
    members: tuple[Member, ...]
    meta: ElementMeta

    def __post_init__(self):
        if not isinstance(self.members, tuple):
            object.__setattr__(self, "members", tuple(self.members))

    @property
    def id(self) -> int:
        return self.meta.id

    @property
    def is_multipolygon(self) -> bool:
        return self.meta.tags.get("type") == "multipolygon"


Element = TypeVar("Element", Node, Way, Relation)


def keyed(elements: Mapping[int, Element] | Iterable[Element]) -> dict[int, Element]:
    """
    Index elements by OSM id.

    Mappings are taken as already keyed. For a plain iterable holding
    several versions of one id, the highest version wins.
    """
    if isinstance(elements, Mapping):
        return dict(elements)

    index: dict[int, Element] = {}
    for element in elements:
        current = index.get(element.meta.id)
        if current is None or element.meta.version >= current.meta.version:
            index[element.meta.id] = element
    return index
