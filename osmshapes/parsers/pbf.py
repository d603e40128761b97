"""
OpenStreetMap file reader.

Reads any file pyosmium understands (.osm, .osm.pbf, .osh.pbf, ...)
element by element and converts each one into the typed records of
osmshapes.elements. History files yield every version.

Usage:
    from osmshapes.parsers.pbf import read_elements

    result = read_elements("illinois-latest.osm.pbf")
    if not result.ok:
        print(result.error)
    elements = result.unwrap()
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from osmshapes.elements import ElementMeta, Member, MemberType, Node, Relation, Way
from osmshapes.parsers.result import ElementSet, ReadResult

logger = logging.getLogger(__name__)

EPOCH = datetime.fromtimestamp(0, UTC)


def read_elements(filepath: str | Path) -> ReadResult:
    """
    Read every Node, Way and Relation in an OSM file.

    Args:
        filepath: Path to an OSM file in any format pyosmium can read.

    Returns:
        A ReadResult holding an ElementSet, or the error that stopped the
        read. Nothing is raised for a missing or malformed file.
    """
    filepath = Path(filepath)
    result = ReadResult(source=str(filepath))

    if not filepath.is_file():
        result.error = f"No such file: {filepath}"
        logger.error("Cannot read %s: file does not exist", filepath)
        return result

    try:
        result.elements = _read(filepath)
    except Exception as e:
        logger.error("Failed to read %s: %s", filepath, e)
        result.error = str(e)
        return result

    elements = result.elements
    logger.info(
        "Read %d nodes, %d ways, %d relations from %s",
        len(elements.nodes),
        len(elements.ways),
        len(elements.relations),
        filepath.name,
    )
    return result


def _read(filepath: Path) -> ElementSet:
    import osmium

    elements = ElementSet()

    # osmium objects are only valid inside the loop body, so each one is
    # converted before moving on.
    for obj in osmium.FileProcessor(str(filepath)):
        if obj.is_node():
            elements.nodes.append(_node(obj))
        elif obj.is_way():
            elements.ways.append(_way(obj))
        elif obj.is_relation():
            elements.relations.append(_relation(obj))

    return elements


def _meta(obj) -> ElementMeta:
    timestamp = obj.timestamp
    if timestamp is None:
        timestamp = EPOCH
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)

    return ElementMeta(
        id=obj.id,
        user=obj.user or "",
        uid=obj.uid,
        changeset=obj.changeset,
        version=obj.version,
        timestamp=timestamp,
        visible=bool(obj.visible),
        tags={tag.k: tag.v for tag in obj.tags},
    )


def _node(obj) -> Node:
    # Deleted node versions carry no location.
    if obj.location.valid():
        lat, lon = obj.location.lat, obj.location.lon
    else:
        lat, lon = 0.0, 0.0
    return Node(lat=lat, lon=lon, meta=_meta(obj))


def _way(obj) -> Way:
    return Way(node_refs=tuple(n.ref for n in obj.nodes), meta=_meta(obj))


def _relation(obj) -> Relation:
    members = tuple(
        Member(type=MemberType.parse(m.type), ref=m.ref, role=m.role) for m in obj.members
    )
    return Relation(members=members, meta=_meta(obj))
