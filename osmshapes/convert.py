"""
Element-to-feature conversion entry points.

to_snapshot() turns the current state of a set of Nodes, Ways and
Relations into one feature collection. to_history() rebuilds points,
lines and polygons for every version of every Way.

The conversion aims to sanitize its input without losing information:
member references to elements outside the working set are culled,
self-intersecting polygons are removed, and type=multipolygon Relations
are folded into the geometry of their members. Non-multipolygon Relations
have no sensible single geometry and produce no features.

Usage:
    from osmshapes.convert import to_history, to_snapshot
    from osmshapes.diagnostics import DiagnosticLog

    log = DiagnosticLog()
    features = to_snapshot(log, nodes, ways, relations)

    points, lines, polygons = to_history(node_versions, way_versions)
"""

from __future__ import annotations

import logging
import warnings
from bisect import bisect_right
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import NamedTuple

from osmshapes.assembly.geometries import geometries, node_point, resolve_coordinates, way_feature
from osmshapes.assembly.multipolygons import multipolygons
from osmshapes.assembly.validity import filter_valid
from osmshapes.diagnostics import ErrorReporter
from osmshapes.elements import Element, Node, Relation, Way, keyed
from osmshapes.features import GeometryKind, OSMFeature

logger = logging.getLogger(__name__)


class HistoryFeatures(NamedTuple):
    points: list[OSMFeature]
    lines: list[OSMFeature]
    polygons: list[OSMFeature]


def to_snapshot(
    report: ErrorReporter,
    nodes: Mapping[int, Node] | Iterable[Node],
    ways: Mapping[int, Way] | Iterable[Way],
    relations: Mapping[int, Relation] | Iterable[Relation],
) -> list[OSMFeature]:
    """
    Convert the current state of a set of elements into features.

    Args:
        report:    ErrorReporter receiving rings and multipolygon
                   Relations that could not be assembled.
        nodes:     Nodes keyed by id, or an iterable of Nodes.
        ways:      Ways keyed by id, or an iterable of Ways.
        relations: Relations keyed by id, or an iterable of Relations.

    Returns:
        Points, standalone lines, standalone polygons and multipolygons in
        one list. No element is represented twice.
    """
    geometric = [r for r in keyed(relations).values() if r.is_multipolygon]

    points, raw_lines, raw_polygons = geometries(nodes, ways)

    # Ways clipped by an extract's bounding box lose nodes and often
    # self-intersect; they must not contribute rings.
    simple_polygons = filter_valid(raw_polygons)

    multis, lines, polygons = multipolygons(report, raw_lines, simple_polygons, geometric)

    features = [*points, *lines, *polygons, *multis]
    logger.info(
        "Snapshot: %d features (%d points, %d lines, %d polygons, %d multipolygons)",
        len(features),
        len(points),
        len(lines),
        len(polygons),
        len(multis),
    )
    return features


def to_features(
    report: ErrorReporter,
    nodes: Mapping[int, Node] | Iterable[Node],
    ways: Mapping[int, Way] | Iterable[Way],
    relations: Mapping[int, Relation] | Iterable[Relation],
) -> list[OSMFeature]:
    """Deprecated alias of to_snapshot()."""
    warnings.warn(
        "to_features() is deprecated, use to_snapshot() instead",
        DeprecationWarning,
        stacklevel=2,
    )
    return to_snapshot(report, nodes, ways, relations)


# ------------------------------------------------------------------ #
#  History
# ------------------------------------------------------------------ #


def group_versions(
    elements: Mapping[int, Iterable[Element]] | Iterable[Element],
) -> dict[int, list[Element]]:
    """
    Group element versions by id, each group sorted by (timestamp, version).
    """
    grouped: dict[int, list[Element]] = defaultdict(list)
    if isinstance(elements, Mapping):
        for element_id, versions in elements.items():
            grouped[element_id].extend(versions)
    else:
        for element in elements:
            grouped[element.meta.id].append(element)

    for versions in grouped.values():
        versions.sort(key=lambda e: (e.meta.timestamp, e.meta.version))
    return dict(grouped)


class NodeTimeline:
    """Looks up the version of each Node that was current at a moment."""

    def __init__(self, versions: dict[int, list[Node]]):
        self._versions = versions
        self._stamps = {
            node_id: [n.meta.timestamp for n in nodes] for node_id, nodes in versions.items()
        }

    def at(self, node_id: int, moment: datetime) -> Node | None:
        """
        The latest version with timestamp <= moment. Versions sharing a
        timestamp resolve to the highest version number. A deleted
        (invisible) version counts as absent.
        """
        stamps = self._stamps.get(node_id)
        if not stamps:
            return None
        i = bisect_right(stamps, moment)
        if i == 0:
            return None
        node = self._versions[node_id][i - 1]
        return node if node.meta.visible else None

    def snapshot(self, way: Way) -> dict[int, Node]:
        """The Nodes a Way version referenced, as they were at its timestamp."""
        resolved: dict[int, Node] = {}
        for ref in way.node_refs:
            if ref in resolved:
                continue
            node = self.at(ref, way.meta.timestamp)
            if node is not None:
                resolved[ref] = node
        return resolved


def to_history(
    nodes: Mapping[int, Iterable[Node]] | Iterable[Node],
    ways: Mapping[int, Iterable[Way]] | Iterable[Way],
) -> HistoryFeatures:
    """
    Reconstruct points, lines and polygons for every element version.

    Each Way version is built from the Node versions that were current at
    the Way version's timestamp. Relations are not versioned here, so no
    multipolygons are produced.

    Args:
        nodes: Every Node version, as an iterable or a mapping of
               id -> versions.
        ways:  Every Way version, in the same forms.

    Returns:
        HistoryFeatures(points, lines, polygons), one feature per element
        version that has a geometry. Invalid polygons are removed.
    """
    node_versions = group_versions(nodes)
    timeline = NodeTimeline(node_versions)

    points = [
        node_point(node)
        for versions in node_versions.values()
        for node in versions
        if node.meta.visible
    ]

    lines: list[OSMFeature] = []
    raw_polygons: list[OSMFeature] = []
    dropped = 0
    for versions in group_versions(ways).values():
        for way in versions:
            if not way.meta.visible:
                continue
            coords = resolve_coordinates(way, timeline.snapshot(way))
            feature = way_feature(way, coords)
            if feature is None:
                logger.debug("Dropping way %d v%d: no geometry", way.id, way.meta.version)
                dropped += 1
            elif feature.kind is GeometryKind.POLYGON:
                raw_polygons.append(feature)
            else:
                lines.append(feature)

    polygons = filter_valid(raw_polygons)
    logger.info(
        "History: %d point, %d line, %d polygon versions (%d way versions dropped)",
        len(points),
        len(lines),
        len(polygons),
        dropped,
    )
    return HistoryFeatures(points, lines, polygons)
