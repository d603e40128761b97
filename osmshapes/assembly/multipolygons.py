"""
Multipolygon assembly from type=multipolygon Relations.

Each geometric Relation's member Ways are stitched into outer and inner
rings, inner rings are placed in the outer ring that contains them, and
the result becomes one MultiPolygon feature carrying the Relation's tags.
The Relation itself never appears in the output, and member Ways whose
meaning it absorbed are removed from the standalone line/polygon streams.

Nothing here raises on bad data. A Relation that cannot be assembled is
reported through the ErrorReporter and skipped. So is each member Way
that has no geometry to contribute; the rest of the Relation is still
assembled without it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import NamedTuple

from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.prepared import prep

from osmshapes.diagnostics import Diagnostic, DiagnosticKind, ErrorReporter
from osmshapes.elements import ElementMeta, MemberType, Relation, keyed
from osmshapes.features import GeometryKind, OSMFeature

logger = logging.getLogger(__name__)

OUTER = "outer"
INNER = "inner"

Coordinate = tuple[float, float]


class AssemblyResult(NamedTuple):
    multipolygons: list[OSMFeature]
    lines: list[OSMFeature]
    polygons: list[OSMFeature]


@dataclass
class Chain:
    """A run of coordinates stitched from one or more member Ways."""

    coords: list[Coordinate]
    way_ids: list[int]

    @property
    def is_ring(self) -> bool:
        return len(self.coords) >= 4 and self.coords[0] == self.coords[-1]

    @classmethod
    def from_feature(cls, feature: OSMFeature) -> Chain:
        if feature.kind is GeometryKind.POLYGON:
            coords = list(feature.geometry.exterior.coords)
        else:
            coords = list(feature.geometry.coords)
        return cls([tuple(c) for c in coords], [feature.id])


def close_rings(segments: Iterable[Chain]) -> tuple[list[Chain], list[Chain]]:
    """
    Chain segments end to end until they close.

    Segments that are already closed are rings on their own and never take
    part in stitching. The open ones are taken in order: each open chain is
    extended with the first remaining open segment that shares an endpoint
    with either of its ends, reversing the segment when needed.

    Returns:
        (rings, leftovers): closed rings with at least four points, and the
        chains that could not be closed.
    """
    pending: list[Chain] = []
    rings: list[Chain] = []
    leftovers: list[Chain] = []

    for segment in segments:
        chain = Chain(list(segment.coords), list(segment.way_ids))
        if chain.coords[0] != chain.coords[-1]:
            pending.append(chain)
        elif chain.is_ring:
            rings.append(chain)
        else:
            leftovers.append(chain)

    while pending:
        chain = pending.pop(0)
        coords = chain.coords
        while coords[0] != coords[-1]:
            for i, seg in enumerate(pending):
                if seg.coords[0] == coords[-1]:
                    coords.extend(seg.coords[1:])
                elif seg.coords[-1] == coords[-1]:
                    coords.extend(reversed(seg.coords[:-1]))
                elif seg.coords[-1] == coords[0]:
                    coords[:0] = seg.coords[:-1]
                elif seg.coords[0] == coords[0]:
                    coords[:0] = reversed(seg.coords[1:])
                else:
                    continue
                chain.way_ids.extend(seg.way_ids)
                del pending[i]
                break
            else:
                break

        if chain.is_ring:
            rings.append(chain)
        else:
            leftovers.append(chain)

    return rings, leftovers


def disseminated_tags(relation: Relation, outer_members: list[OSMFeature]) -> dict[str, str]:
    """
    Tags for the multipolygon assembled from `relation`.

    The Relation's own tags, unless it carries nothing but its type. In
    that case the tags every outer member Way agrees on are added, and
    nothing else is invented.
    """
    tags = dict(relation.meta.tags)
    if set(tags) - {"type"} or not outer_members:
        return tags

    consensus = dict(outer_members[0].tags)
    for member in outer_members[1:]:
        consensus = {k: v for k, v in consensus.items() if member.tags.get(k) == v}
    consensus.update(tags)
    return consensus


def _is_closed(feature: OSMFeature) -> bool:
    if feature.kind is GeometryKind.POLYGON:
        return True
    coords = feature.geometry.coords
    return len(coords) >= 4 and coords[0] == coords[-1]


def _chain_feature(chain: Chain, meta: ElementMeta) -> OSMFeature:
    return OSMFeature.line(LineString(chain.coords), meta.copy())


def _report(report: ErrorReporter, diagnostic: Diagnostic, feature: OSMFeature) -> None:
    try:
        report(diagnostic)(feature)
    except Exception as e:
        logger.error(
            "Error reporter failed for relation %d (%s): %s",
            diagnostic.relation_id,
            diagnostic.kind.value,
            e,
        )


def assemble_relation(
    relation: Relation,
    ways: Mapping[int, OSMFeature],
    report: ErrorReporter,
) -> tuple[OSMFeature | None, set[int]]:
    """
    Build the MultiPolygon feature for one geometric Relation.

    Args:
        relation: A type=multipolygon Relation.
        ways:     Line and Polygon features keyed by Way id.
        report:   Receives one report per failure.

    Returns:
        (feature, way_ids): the feature, or None when no valid multipolygon
        could be formed, and the ids of the Ways whose rings it contains.
    """
    outer: list[Chain] = []
    inner: list[Chain] = []
    outer_members: list[OSMFeature] = []
    seen: set[int] = set()
    reported = False

    for member in relation.members:
        if member.type is not MemberType.WAY or member.ref in seen:
            continue
        seen.add(member.ref)

        role = member.role.strip()
        feature = ways.get(member.ref)
        if feature is None:
            diagnostic = Diagnostic(
                DiagnosticKind.MISSING_MEMBER, relation.id, role, (member.ref,)
            )
            _report(report, diagnostic, OSMFeature.line(LineString(), relation.meta.copy()))
            reported = True
            continue

        if role == INNER:
            inner.append(Chain.from_feature(feature))
        elif role == OUTER or _is_closed(feature):
            outer.append(Chain.from_feature(feature))
            outer_members.append(feature)
        else:
            _report(report, Diagnostic(DiagnosticKind.UNCLOSED_MEMBER, relation.id, role), feature)
            reported = True

    shells, open_outer = close_rings(outer)
    holes, open_inner = close_rings(inner)

    for role, leftovers in ((OUTER, open_outer), (INNER, open_inner)):
        if leftovers:
            way_ids = tuple(w for chain in leftovers for w in chain.way_ids)
            diagnostic = Diagnostic(DiagnosticKind.RING_UNCLOSABLE, relation.id, role, way_ids)
            _report(report, diagnostic, _chain_feature(leftovers[0], relation.meta))
            reported = True

    shell_polygons: list[Polygon] = []
    valid_shells: list[Chain] = []
    for ring in shells:
        polygon = Polygon(ring.coords)
        if polygon.is_valid:
            shell_polygons.append(polygon)
            valid_shells.append(ring)
        else:
            diagnostic = Diagnostic(
                DiagnosticKind.INVALID_GEOMETRY, relation.id, OUTER, tuple(ring.way_ids)
            )
            _report(report, diagnostic, _chain_feature(ring, relation.meta))
            reported = True

    if not valid_shells:
        if not reported:
            _report(
                report,
                Diagnostic(DiagnosticKind.NO_OUTER_RING, relation.id),
                OSMFeature.line(LineString(), relation.meta.copy()),
            )
        return None, set()

    prepared = [prep(polygon) for polygon in shell_polygons]
    assigned: list[list[Chain]] = [[] for _ in valid_shells]
    for hole in holes:
        hole_polygon = Polygon(hole.coords)
        if not hole_polygon.is_valid:
            diagnostic = Diagnostic(
                DiagnosticKind.INVALID_GEOMETRY, relation.id, INNER, tuple(hole.way_ids)
            )
            _report(report, diagnostic, _chain_feature(hole, relation.meta))
            continue

        point = hole_polygon.representative_point()
        containing = [
            i
            for i, shell in enumerate(prepared)
            if shell.contains(point) and shell.contains(hole_polygon)
        ]
        if not containing:
            diagnostic = Diagnostic(
                DiagnosticKind.UNASSIGNED_INNER, relation.id, INNER, tuple(hole.way_ids)
            )
            _report(report, diagnostic, _chain_feature(hole, relation.meta))
            continue

        smallest = min(containing, key=lambda i: shell_polygons[i].area)
        assigned[smallest].append(hole)

    geometry = MultiPolygon(
        [
            Polygon(shell.coords, [hole.coords for hole in shell_holes])
            for shell, shell_holes in zip(valid_shells, assigned)
        ]
    )
    used = {w for ring in valid_shells for w in ring.way_ids}
    used.update(w for shell_holes in assigned for hole in shell_holes for w in hole.way_ids)

    if not geometry.is_valid:
        diagnostic = Diagnostic(
            DiagnosticKind.INVALID_GEOMETRY, relation.id, OUTER, tuple(sorted(used))
        )
        _report(report, diagnostic, _chain_feature(valid_shells[0], relation.meta))
        return None, set()

    meta = relation.meta.with_tags(disseminated_tags(relation, outer_members))
    return OSMFeature.multipolygon(geometry, meta), used


def multipolygons(
    report: ErrorReporter,
    lines: Iterable[OSMFeature],
    polygons: Iterable[OSMFeature],
    relations: Mapping[int, Relation] | Iterable[Relation],
) -> AssemblyResult:
    """
    Assemble every geometric Relation and split out the Ways it consumed.

    A member Way is consumed when its rings went into an emitted
    multipolygon and all of its own tags are carried by that multipolygon.
    Consumed Ways are removed from the returned lines and polygons, so the
    three streams never describe the same element twice.

    Args:
        report:    ErrorReporter for rings and Relations that fail.
        lines:     Candidate Line features.
        polygons:  Candidate Polygon features, already validity-filtered.
        relations: type=multipolygon Relations. Others are ignored.

    Returns:
        AssemblyResult(multipolygons, lines, polygons).
    """
    lines = list(lines)
    polygons = list(polygons)
    ways: dict[int, OSMFeature] = {f.id: f for f in lines}
    ways.update((f.id, f) for f in polygons)

    by_id = keyed(relations)
    assembled: list[OSMFeature] = []
    consumed: set[int] = set()
    failed = 0

    for relation_id in sorted(by_id):
        relation = by_id[relation_id]
        if not relation.is_multipolygon or not relation.meta.visible:
            continue

        feature, used = assemble_relation(relation, ways, report)
        if feature is None:
            failed += 1
            continue

        assembled.append(feature)
        for way_id in used:
            own_tags = ways[way_id].tags.items()
            if all(feature.tags.get(k) == v for k, v in own_tags):
                consumed.add(way_id)

    logger.info(
        "Assembled %d multipolygons (%d relations failed, %d member ways consumed)",
        len(assembled),
        failed,
        len(consumed),
    )
    return AssemblyResult(
        assembled,
        [f for f in lines if f.id not in consumed],
        [f for f in polygons if f.id not in consumed],
    )
