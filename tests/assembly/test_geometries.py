"""
Tests for point, line and polygon assembly.

Fixtures use the squares from conftest.square_nodes: nodes 1-4 are the
corners of a 10x10 square at the origin.
"""

from __future__ import annotations

from shapely.geometry import Point

from osmshapes.assembly.geometries import geometries, resolve_coordinates, way_feature
from osmshapes.features import GeometryKind


class TestPoints:
    def test_every_visible_node_becomes_a_point(self, square_nodes):
        points, lines, polygons = geometries(square_nodes, {})
        assert len(points) == len(square_nodes)
        assert lines == []
        assert polygons == []

    def test_point_is_lon_lat(self, make_node):
        points, _, _ = geometries([make_node(1, -87.63, 41.88)], [])
        assert points[0].geometry.equals(Point(-87.63, 41.88))

    def test_point_keeps_meta(self, make_node):
        node = make_node(1, 0, 0, {"amenity": "cafe"}, version=4)
        points, _, _ = geometries([node], [])
        assert points[0].meta == node.meta
        assert points[0].kind is GeometryKind.POINT

    def test_invisible_node_is_skipped(self, make_node):
        points, _, _ = geometries([make_node(1, 0, 0, visible=False)], [])
        assert points == []


class TestWays:
    def test_open_way_becomes_line(self, square_nodes, make_way):
        _, lines, polygons = geometries(square_nodes, [make_way(10, [1, 2, 3])])
        assert [f.id for f in lines] == [10]
        assert list(lines[0].geometry.coords) == [(0, 0), (10, 0), (10, 10)]
        assert polygons == []

    def test_closed_way_becomes_polygon(self, square_nodes, make_way):
        way = make_way(10, [1, 2, 3, 4, 1], {"building": "yes"})
        _, lines, polygons = geometries(square_nodes, [way])
        assert lines == []
        assert polygons[0].geometry.area == 100
        assert polygons[0].tags == {"building": "yes"}

    def test_closed_highway_becomes_line(self, square_nodes, make_way):
        way = make_way(10, [1, 2, 3, 4, 1], {"highway": "service"})
        _, lines, polygons = geometries(square_nodes, [way])
        assert [f.id for f in lines] == [10]
        assert polygons == []

    def test_missing_node_is_skipped_positionally(self, square_nodes, make_way):
        _, lines, _ = geometries(square_nodes, [make_way(10, [1, 2, 999])])
        assert list(lines[0].geometry.coords) == [(0, 0), (10, 0)]

    def test_way_with_one_resolved_node_is_dropped(self, square_nodes, make_way):
        _, lines, polygons = geometries(square_nodes, [make_way(10, [1, 998, 999])])
        assert lines == []
        assert polygons == []

    def test_polygon_missing_a_corner_stays_closed(self, square_nodes, make_way):
        _, lines, polygons = geometries(square_nodes, [make_way(10, [1, 2, 3, 999, 1])])
        assert lines == []
        assert list(polygons[0].geometry.exterior.coords) == [(0, 0), (10, 0), (10, 10), (0, 0)]

    def test_polygon_missing_its_closing_node_degrades_to_line(self, square_nodes, make_way):
        way = make_way(10, [999, 2, 3, 4, 999])
        _, lines, polygons = geometries(square_nodes, [way])
        assert polygons == []
        assert list(lines[0].geometry.coords) == [(10, 0), (10, 10), (0, 10)]

    def test_invisible_way_is_skipped(self, square_nodes, make_way):
        _, lines, _ = geometries(square_nodes, [make_way(10, [1, 2], visible=False)])
        assert lines == []

    def test_invisible_node_does_not_resolve(self, square_nodes, make_node, make_way):
        nodes = dict(square_nodes)
        nodes[2] = make_node(2, 10, 0, visible=False)
        _, lines, _ = geometries(nodes, [make_way(10, [1, 2, 3])])
        assert list(lines[0].geometry.coords) == [(0, 0), (10, 10)]

    def test_way_is_never_both_line_and_polygon(self, square_nodes, make_way):
        ways = [
            make_way(10, [1, 2, 3]),
            make_way(11, [1, 2, 3, 4, 1]),
            make_way(12, [5, 6, 7, 8, 5], {"barrier": "wall"}),
            make_way(13, [9, 10, 11, 12, 9], {"barrier": "wall", "area": "yes"}),
        ]
        _, lines, polygons = geometries(square_nodes, ways)
        line_ids = {f.id for f in lines}
        polygon_ids = {f.id for f in polygons}
        assert line_ids == {10, 12}
        assert polygon_ids == {11, 13}


class TestHelpers:
    def test_resolve_coordinates_keeps_source_order(self, square_nodes, make_way):
        coords = resolve_coordinates(make_way(10, [3, 1, 2]), square_nodes)
        assert coords == [(10, 10), (0, 0), (10, 0)]

    def test_way_feature_returns_none_for_single_coordinate(self, make_way):
        assert way_feature(make_way(10, [1, 2]), [(0.0, 0.0)]) is None
