from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from shapely.geometry import LineString, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry

from osmshapes.elements import ElementMeta


class GeometryKind(str, Enum):
    POINT = "point"
    LINE = "line"
    POLYGON = "polygon"
    MULTIPOLYGON = "multipolygon"


_GEOMETRY_TYPES: dict[GeometryKind, type[BaseGeometry]] = {
    GeometryKind.POINT: Point,
    GeometryKind.LINE: LineString,
    GeometryKind.POLYGON: Polygon,
    GeometryKind.MULTIPOLYGON: MultiPolygon,
}

# Points come from nodes, lines and polygons from ways, and multipolygons
# from the relations whose tags they absorbed.
_ELEMENT_TYPES: dict[GeometryKind, str] = {
    GeometryKind.POINT: "node",
    GeometryKind.LINE: "way",
    GeometryKind.POLYGON: "way",
    GeometryKind.MULTIPOLYGON: "relation",
}


@dataclass(frozen=True)
class OSMFeature:
    """
    A geometry paired with the metadata of the element it came from.

    The kind is the discriminant, so points, lines, polygons and
    multipolygons can share one collection without losing their type.
    """

    kind: GeometryKind
    geometry: BaseGeometry
    meta: ElementMeta

    def __post_init__(self):
        kind = GeometryKind(self.kind)
        object.__setattr__(self, "kind", kind)
        expected = _GEOMETRY_TYPES[kind]
        if not isinstance(self.geometry, expected):
            raise ValueError(
                f"{kind.value} feature needs a {expected.__name__}, "
                f"got {self.geometry.geom_type}"
            )

    @classmethod
    def point(cls, geometry: Point, meta: ElementMeta) -> OSMFeature:
        return cls(GeometryKind.POINT, geometry, meta)

    @classmethod
    def line(cls, geometry: LineString, meta: ElementMeta) -> OSMFeature:
        return cls(GeometryKind.LINE, geometry, meta)

    @classmethod
    def polygon(cls, geometry: Polygon, meta: ElementMeta) -> OSMFeature:
        return cls(GeometryKind.POLYGON, geometry, meta)

    @classmethod
    def multipolygon(cls, geometry: MultiPolygon, meta: ElementMeta) -> OSMFeature:
        return cls(GeometryKind.MULTIPOLYGON, geometry, meta)

    @property
    def id(self) -> int:
        return self.meta.id

    @property
    def tags(self) -> dict[str, str]:
        return self.meta.tags

    @property
    def version(self) -> int:
        return self.meta.version

    @property
    def element_type(self) -> str:
        """The OSM element type this feature traces back to."""
        return _ELEMENT_TYPES[self.kind]
