"""
Relation graph decomposition.

Relations may reference other Relations, and the raw reference graph can
contain cycles, self-references and shared descendants. decompose() turns
it into a forest where every Relation has at most one parent, so that
anything walking the forest parent-first visits each Relation once and
always terminates.

The forest is an arena: Relation ids in discovery order plus the arena
index of each one's parent. No object graph, no recursion.

Usage:
    forest = decompose(relations)
    for parent_id, child_id in forest.edges():
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from osmshapes.elements import MemberType, Relation, keyed

logger = logging.getLogger(__name__)

ROOT = -1


@dataclass
class RelationForest:
    """
    Parent-pointer forest over Relation ids.

    Attributes:
        ids:       Relation ids in discovery order. A parent always
                   precedes its children.
        parents:   For each entry of ids, the index of its parent in ids,
                   or ROOT.
        cut_edges: (parent, child) references that were dropped to keep
                   the structure a forest.
    """

    ids: list[int] = field(default_factory=list)
    parents: list[int] = field(default_factory=list)
    cut_edges: list[tuple[int, int]] = field(default_factory=list)
    _index: dict[int, int] = field(init=False, repr=False, compare=False)
    _children: dict[int, list[int]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if len(self.ids) != len(self.parents):
            raise ValueError("ids and parents must have the same length")
        self._index = {rid: i for i, rid in enumerate(self.ids)}
        self._children = {i: [] for i in range(len(self.ids))}
        for i, p in enumerate(self.parents):
            if p != ROOT:
                self._children[p].append(i)

    def __len__(self) -> int:
        return len(self.ids)

    def __contains__(self, relation_id: object) -> bool:
        return relation_id in self._index

    def __iter__(self) -> Iterator[int]:
        return iter(self.ids)

    def _add(self, relation_id: int, parent_index: int) -> int:
        index = len(self.ids)
        self.ids.append(relation_id)
        self.parents.append(parent_index)
        self._index[relation_id] = index
        self._children[index] = []
        if parent_index != ROOT:
            self._children[parent_index].append(index)
        return index

    def parent(self, relation_id: int) -> int | None:
        parent_index = self.parents[self._index[relation_id]]
        return None if parent_index == ROOT else self.ids[parent_index]

    def children(self, relation_id: int) -> list[int]:
        return [self.ids[i] for i in self._children[self._index[relation_id]]]

    def roots(self) -> list[int]:
        return [rid for rid, p in zip(self.ids, self.parents) if p == ROOT]

    def edges(self) -> list[tuple[int, int]]:
        """Retained (parent, child) edges, every parent before its children."""
        return [
            (self.ids[p], rid) for rid, p in zip(self.ids, self.parents) if p != ROOT
        ]

    def lineage(self, relation_id: int) -> list[int]:
        """Relation ids from the tree root down to relation_id."""
        chain = []
        index = self._index[relation_id]
        while index != ROOT:
            chain.append(self.ids[index])
            index = self.parents[index]
        chain.reverse()
        return chain

    def depth(self, relation_id: int) -> int:
        return len(self.lineage(relation_id)) - 1


def child_relations(relation: Relation, known: Mapping[int, Relation]) -> list[int]:
    """Ids of Relation members present in `known`, in member order."""
    return [
        m.ref for m in relation.members if m.type is MemberType.RELATION and m.ref in known
    ]


def decompose(relations: Mapping[int, Relation] | Iterable[Relation]) -> RelationForest:
    """
    Break the Relation reference graph into a spanning forest.

    Roots are visited in ascending id order: first Relations nobody else
    references, then whatever is left (members of pure cycles). Children are
    visited depth-first in member order. A reference to a Relation that was
    already discovered is cut, so each Relation keeps the first path that
    reached it.
    """
    by_id = keyed(relations)
    children = {rid: child_relations(rel, by_id) for rid, rel in by_id.items()}

    referenced = {
        child for rid, kids in children.items() for child in kids if child != rid
    }
    ordered = sorted(by_id)
    candidates = [rid for rid in ordered if rid not in referenced] + [
        rid for rid in ordered if rid in referenced
    ]

    forest = RelationForest()
    for root in candidates:
        if root in forest:
            continue
        forest._add(root, ROOT)
        stack = [(root, iter(children[root]))]
        while stack:
            rid, pending = stack[-1]
            for child in pending:
                if child in forest:
                    forest.cut_edges.append((rid, child))
                    continue
                forest._add(child, forest._index[rid])
                stack.append((child, iter(children[child])))
                break
            else:
                stack.pop()

    logger.info(
        "Decomposed %d relations into %d trees (%d edges kept, %d cut)",
        len(forest),
        len(forest.roots()),
        len(forest) - len(forest.roots()),
        len(forest.cut_edges),
    )
    return forest
