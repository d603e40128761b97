from __future__ import annotations

import pytest

from osmshapes.assembly.relation_graph import ROOT, RelationForest, decompose


@pytest.fixture
def relation_with_children(make_relation):
    def _make(relation_id: int, *children: int, tags=None):
        members = [("r", child, "subarea") for child in children]
        return make_relation(relation_id, members, tags or {"type": "collection"})

    return _make


class TestDecompose:
    def test_cycle_keeps_one_edge(self, relation_with_children):
        forest = decompose([relation_with_children(1, 2), relation_with_children(2, 1)])
        assert forest.edges() == [(1, 2)]
        assert forest.cut_edges == [(2, 1)]
        assert forest.roots() == [1]

    def test_self_reference_is_cut(self, relation_with_children):
        forest = decompose([relation_with_children(3, 3)])
        assert forest.roots() == [3]
        assert forest.edges() == []
        assert forest.cut_edges == [(3, 3)]

    def test_shared_child_has_one_parent(self, relation_with_children):
        forest = decompose(
            [
                relation_with_children(1, 3),
                relation_with_children(2, 3),
                relation_with_children(3),
            ]
        )
        assert forest.parent(3) == 1
        assert forest.roots() == [1, 2]
        assert forest.cut_edges == [(2, 3)]

    def test_every_relation_appears_once(self, relation_with_children):
        relations = [
            relation_with_children(1, 2, 3),
            relation_with_children(2, 3, 1),
            relation_with_children(3, 1, 2),
            relation_with_children(4, 4),
            relation_with_children(5),
        ]
        forest = decompose(relations)
        assert sorted(forest) == [1, 2, 3, 4, 5]
        assert len(forest.ids) == len(set(forest.ids))

    def test_unreferenced_relation_becomes_root(self, relation_with_children):
        # 5 is a pure root even though its id sorts after the cycle members.
        forest = decompose(
            [
                relation_with_children(1, 2),
                relation_with_children(2, 1),
                relation_with_children(5, 1),
            ]
        )
        assert forest.roots() == [5]
        assert forest.lineage(2) == [5, 1, 2]

    def test_members_outside_the_set_are_ignored(self, relation_with_children):
        forest = decompose([relation_with_children(1, 99)])
        assert list(forest) == [1]
        assert forest.cut_edges == []

    def test_non_relation_members_are_ignored(self, make_relation):
        forest = decompose([make_relation(1, [("w", 1, "outer"), ("n", 1, "")])])
        assert forest.edges() == []

    def test_edges_list_parents_before_children(self, relation_with_children):
        forest = decompose(
            [
                relation_with_children(1, 2),
                relation_with_children(2, 4),
                relation_with_children(4),
            ]
        )
        edges = forest.edges()
        assert edges == [(1, 2), (2, 4)]
        assert forest.depth(4) == 2
        assert forest.children(1) == [2]

    def test_children_visited_in_member_order(self, relation_with_children):
        forest = decompose(
            [
                relation_with_children(1, 3, 2),
                relation_with_children(2),
                relation_with_children(3),
            ]
        )
        assert forest.ids == [1, 3, 2]

    def test_empty_input(self):
        forest = decompose([])
        assert len(forest) == 0
        assert forest.roots() == []


class TestRelationForest:
    def test_mismatched_lengths_raise(self):
        with pytest.raises(ValueError, match="same length"):
            RelationForest(ids=[1, 2], parents=[ROOT])

    def test_built_from_arrays(self):
        forest = RelationForest(ids=[10, 20, 30], parents=[ROOT, 0, 0])
        assert 20 in forest
        assert 40 not in forest
        assert forest.parent(10) is None
        assert forest.children(10) == [20, 30]

    def test_lookup_tables_stay_out_of_repr_and_equality(self):
        forest = RelationForest(ids=[10, 20], parents=[ROOT, 0])
        assert "_index" not in repr(forest)
        assert "_children" not in repr(forest)
        assert forest == RelationForest(ids=[10, 20], parents=[ROOT, 0])

    def test_children_follow_discovery(self, relation_with_children):
        forest = decompose(
            [
                relation_with_children(1, 3, 2),
                relation_with_children(2, 4),
                relation_with_children(3),
                relation_with_children(4),
            ]
        )
        assert forest.children(1) == [3, 2]
        assert forest.children(2) == [4]
        assert forest.children(4) == []
