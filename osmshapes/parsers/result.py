from __future__ import annotations

from dataclasses import dataclass, field

from osmshapes.elements import Node, Relation, Way
from osmshapes.exceptions import IngestionError


@dataclass
class ElementSet:
    """Every element a source contained, all versions included."""

    nodes: list[Node] = field(default_factory=list)
    ways: list[Way] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes) + len(self.ways) + len(self.relations)


@dataclass
class ReadResult:
    """
    Outcome of reading an element source: either elements or an error.

    Readers never raise for a bad source; callers check `ok` or call
    unwrap().
    """

    source: str
    elements: ElementSet | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.elements is not None

    def unwrap(self) -> ElementSet:
        if not self.ok:
            raise IngestionError(f"Failed to read {self.source}: {self.error}")
        return self.elements
