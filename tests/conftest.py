from __future__ import annotations

from datetime import UTC, datetime

import pytest

from osmshapes.elements import ElementMeta, Member, Node, Relation, Way

T0 = datetime(2024, 1, 1, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_meta(
    element_id: int,
    tags: dict[str, str] | None = None,
    version: int = 1,
    timestamp: datetime = T0,
    visible: bool = True,
) -> ElementMeta:
    return ElementMeta(
        id=element_id,
        user="mapper",
        uid=7,
        changeset=100 + version,
        version=version,
        timestamp=timestamp,
        visible=visible,
        tags=dict(tags or {}),
    )


# ---------------------------------------------------------------------------
# Element factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_meta():
    return build_meta


@pytest.fixture
def make_node():
    def _make(node_id: int, lon: float, lat: float, tags=None, **kwargs) -> Node:
        return Node(lat=lat, lon=lon, meta=build_meta(node_id, tags, **kwargs))

    return _make


@pytest.fixture
def make_way():
    def _make(way_id: int, refs: list[int], tags=None, **kwargs) -> Way:
        return Way(node_refs=tuple(refs), meta=build_meta(way_id, tags, **kwargs))

    return _make


@pytest.fixture
def make_relation():
    def _make(relation_id: int, members: list[tuple[str, int, str]], tags=None, **kwargs):
        return Relation(
            members=tuple(Member(type=t, ref=ref, role=role) for t, ref, role in members),
            meta=build_meta(relation_id, tags, **kwargs),
        )

    return _make


@pytest.fixture
def square_nodes(make_node) -> dict[int, Node]:
    """
    A 10x10 square (1-4), a 2x2 square inside it (5-8), and a 2x2 square
    outside it (9-12).
    """
    coords = {
        1: (0, 0),
        2: (10, 0),
        3: (10, 10),
        4: (0, 10),
        5: (2, 2),
        6: (4, 2),
        7: (4, 4),
        8: (2, 4),
        9: (20, 20),
        10: (22, 20),
        11: (22, 22),
        12: (20, 22),
    }
    return {nid: make_node(nid, float(lon), float(lat)) for nid, (lon, lat) in coords.items()}
