"""Test dependency graph ordering and catalog-backed resolution."""

import pytest
from derived_views.catalog import RelationInfo
from derived_views.dependencies import (
    DEPENDENCIES_QUERY,
    DependencyGraph,
    DependencyGraphNode,
    DependencyResolver,
)
from derived_views.errors import InternalInconsistency

from conftest import RecordingConnection


class TestDependencyGraph:
    """Test in-memory dependency ordering."""

    def test_chain_orders_dependencies_first(self):
        """Test that the deepest dependency comes first."""
        graph = DependencyGraph()
        graph.add_dependency("c", "b")
        graph.add_dependency("b", "a")

        assert graph.refresh_order("c") == ["a", "b"]
        assert graph.refresh_order("c", include_target=True) == ["a", "b", "c"]

    def test_diamond_visits_shared_dependency_once(self):
        """Test that a dependency reachable along two paths is refreshed once."""
        graph = DependencyGraph()
        graph.add_dependency("d", "b")
        graph.add_dependency("d", "c")
        graph.add_dependency("b", "a")
        graph.add_dependency("c", "a")

        order = graph.refresh_order("d", include_target=True)

        assert order == ["a", "b", "c", "d"]
        assert order.count("a") == 1

    def test_unrelated_objects_are_ignored(self):
        graph = DependencyGraph()
        graph.add_dependency("b", "a")
        graph.add_dependency("y", "x")

        assert graph.refresh_order("b") == ["a"]

    def test_unknown_target_has_no_dependencies(self):
        assert DependencyGraph().refresh_order("missing") == []

    def test_node(self):
        graph = DependencyGraph()
        graph.add_dependency("b", "a")
        graph.add_dependency("b", "a")

        assert graph.node("b") == DependencyGraphNode(object="b", depends_on=("a",))
        assert graph.node("a").depends_on == ()

    def test_cycle_is_an_internal_inconsistency(self):
        """Test that a cycle raises instead of being truncated."""
        graph = DependencyGraph()
        graph.add_dependency("a", "b")
        graph.add_dependency("b", "c")
        graph.add_dependency("c", "a")

        with pytest.raises(InternalInconsistency, match="cycle"):
            graph.refresh_order("a")


class TestDependencyResolver:
    """Test resolution against catalog rows."""

    @staticmethod
    def _connection(edges):
        def responder(sql, params):
            return edges if sql == DEPENDENCIES_QUERY else []

        return RecordingConnection(responder=responder)

    def test_returns_materialized_views_through_plain_views(self):
        """Test that plain views are traversed but not returned."""
        edges = [
            # totals (m) reads recent (v), which reads events_mv (m)
            ("public", "totals", "m", "public", "recent", "v"),
            ("public", "recent", "v", "public", "events_mv", "m"),
            ("public", "events_mv", "m", "reporting", "raw_mv", "m"),
        ]
        conn = self._connection(edges)
        target = RelationInfo(
            schema="public", relname="totals", name="totals", kind="m", is_populated=True
        )

        result = DependencyResolver().dependencies_of(conn, target)

        assert result == ['"reporting"."raw_mv"', '"public"."events_mv"']

    def test_target_without_dependencies(self):
        conn = self._connection([])
        target = RelationInfo(
            schema="public", relname="solo", name="solo", kind="m", is_populated=True
        )

        assert DependencyResolver().dependencies_of(conn, target) == []

    def test_cycle_in_catalog_raises(self):
        edges = [
            ("public", "a", "m", "public", "b", "m"),
            ("public", "b", "m", "public", "a", "m"),
        ]
        conn = self._connection(edges)
        target = RelationInfo(schema="public", relname="a", name="a", kind="m", is_populated=True)

        with pytest.raises(InternalInconsistency):
            DependencyResolver().dependencies_of(conn, target)
