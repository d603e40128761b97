"""
Point, line and polygon assembly from Nodes and Ways.

Partial extracts are expected: a Way whose node references are not all
present degrades to the coordinates that do resolve, and a Way with too
few coordinates is dropped. Neither case is an error.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import NamedTuple

from shapely.geometry import LineString, Point, Polygon

from osmshapes.elements import Node, Way, keyed
from osmshapes.features import GeometryKind, OSMFeature

logger = logging.getLogger(__name__)

Coordinate = tuple[float, float]


class Geometries(NamedTuple):
    points: list[OSMFeature]
    lines: list[OSMFeature]
    polygons: list[OSMFeature]


def node_point(node: Node) -> OSMFeature:
    return OSMFeature.point(Point(node.lon, node.lat), node.meta.copy())


def resolve_coordinates(way: Way, lookup: Mapping[int, Node]) -> list[Coordinate]:
    """
    Map a Way's node references to (lon, lat) pairs in source order.

    References missing from the lookup are skipped positionally.
    """
    coords: list[Coordinate] = []
    for ref in way.node_refs:
        node = lookup.get(ref)
        if node is not None:
            coords.append((node.lon, node.lat))
    return coords


def way_feature(way: Way, coords: list[Coordinate]) -> OSMFeature | None:
    """
    Build the Line or Polygon feature for a Way from its resolved coordinates.

    A Way becomes a Polygon when it is a polygon way and its resolved ring
    is still closed with at least four points; otherwise a Line when at
    least two coordinates resolved. Returns None when neither is possible.
    """
    if way.is_polygon and len(coords) >= 4 and coords[0] == coords[-1]:
        return OSMFeature.polygon(Polygon(coords), way.meta.copy())
    if len(coords) >= 2:
        return OSMFeature.line(LineString(coords), way.meta.copy())
    return None


def geometries(
    nodes: Mapping[int, Node] | Iterable[Node],
    ways: Mapping[int, Way] | Iterable[Way],
) -> Geometries:
    """
    Assemble every Node into a Point and every Way into a Line or Polygon.

    Args:
        nodes: Nodes keyed by id (or an iterable of Nodes).
        ways:  Ways keyed by id (or an iterable of Ways).

    Returns:
        Geometries(points, lines, polygons). Elements marked invisible are
        treated as deleted: nodes produce no point and resolve no vertex,
        ways produce nothing.
    """
    lookup = {nid: node for nid, node in keyed(nodes).items() if node.meta.visible}
    result = Geometries([], [], [])

    for node in lookup.values():
        result.points.append(node_point(node))

    dropped = 0
    for way in keyed(ways).values():
        if not way.meta.visible:
            continue
        coords = resolve_coordinates(way, lookup)
        feature = way_feature(way, coords)
        if feature is None:
            logger.debug(
                "Dropping way %d: %d of %d node references resolved",
                way.id,
                len(coords),
                len(way.node_refs),
            )
            dropped += 1
        elif feature.kind is GeometryKind.POLYGON:
            result.polygons.append(feature)
        else:
            result.lines.append(feature)

    logger.info(
        "Assembled %d points, %d lines, %d polygons (%d ways dropped)",
        len(result.points),
        len(result.lines),
        len(result.polygons),
        dropped,
    )
    return result
