"""Materialized view dependency resolution."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Hashable, List, Set, Tuple

from derived_views.backend import fetch_all
from derived_views.catalog import MATERIALIZED_VIEW, RelationInfo
from derived_views.errors import InternalInconsistency
from derived_views.parser import quote_parts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependencyGraphNode:
    """An object and the objects it reads from."""

    object: Hashable
    depends_on: Tuple[Hashable, ...]


class DependencyGraph:
    """Dependencies between views, built from catalog rows.

    The catalog cannot express a cycle between views, so finding one
    means the input is corrupt.
    """

    def __init__(self) -> None:
        """Initialize dependency graph."""
        self.graph: Dict[Hashable, List[Hashable]] = {}

    def add_dependency(self, dependent: Hashable, depends_on: Hashable) -> None:
        """Record that ``dependent`` reads from ``depends_on``."""
        self.graph.setdefault(depends_on, [])
        upstream = self.graph.setdefault(dependent, [])
        if depends_on not in upstream:
            upstream.append(depends_on)

    def node(self, name: Hashable) -> DependencyGraphNode:
        """Return the node for ``name``; unknown names have no dependencies."""
        return DependencyGraphNode(object=name, depends_on=tuple(self.graph.get(name, ())))

    def refresh_order(self, target: Hashable, include_target: bool = False) -> List[Hashable]:
        """Return everything ``target`` reads from, transitively, dependencies first.

        Each object appears once even when reachable along several paths.

        Args:
            target: Object whose upstream objects are wanted
            include_target: Append ``target`` itself as the last entry

        Returns:
            Objects ordered so each comes after everything it reads from

        Raises:
            InternalInconsistency: If a cycle is reachable from ``target``
        """
        ordered: List[Hashable] = []
        done: Set[Hashable] = set()
        path: List[Hashable] = []

        def visit(node: Hashable) -> None:
            if node in done:
                return
            if node in path:
                cycle = " -> ".join(str(n) for n in path[path.index(node):] + [node])
                raise InternalInconsistency(f"Dependency cycle detected: {cycle}")

            path.append(node)
            for upstream in sorted(self.graph.get(node, ()), key=str):
                visit(upstream)
            path.pop()

            done.add(node)
            ordered.append(node)

        visit(target)

        if not include_target:
            ordered.pop()
        return ordered


DEPENDENCIES_QUERY = """
SELECT DISTINCT
    dependent_ns.nspname AS dependent_schema,
    dependent.relname AS dependent_name,
    dependent.relkind AS dependent_kind,
    referenced_ns.nspname AS referenced_schema,
    referenced.relname AS referenced_name,
    referenced.relkind AS referenced_kind
FROM pg_rewrite r
JOIN pg_depend d
  ON d.classid = 'pg_rewrite'::regclass
 AND d.objid = r.oid
 AND d.refclassid = 'pg_class'::regclass
JOIN pg_class dependent ON dependent.oid = r.ev_class
JOIN pg_namespace dependent_ns ON dependent_ns.oid = dependent.relnamespace
JOIN pg_class referenced ON referenced.oid = d.refobjid
JOIN pg_namespace referenced_ns ON referenced_ns.oid = referenced.relnamespace
WHERE dependent.relkind IN ('m', 'v')
  AND referenced.relkind IN ('m', 'v')
  AND referenced.oid <> dependent.oid
"""


class DependencyResolver:
    """Finds the materialized views a target must wait for when cascading."""

    def load_graph(self, connection: Any) -> Tuple[DependencyGraph, Dict[Tuple[str, str], str]]:
        """Load the view dependency graph from the catalog.

        Returns:
            The graph keyed by (schema, name) and the relkind of every node
        """
        graph = DependencyGraph()
        kinds: Dict[Tuple[str, str], str] = {}

        for row in fetch_all(connection, DEPENDENCIES_QUERY):
            dep_schema, dep_name, dep_kind, ref_schema, ref_name, ref_kind = row
            dependent = (dep_schema, dep_name)
            referenced = (ref_schema, ref_name)
            kinds[dependent] = dep_kind
            kinds[referenced] = ref_kind
            graph.add_dependency(dependent, referenced)

        return graph, kinds

    def dependencies_of(self, connection: Any, target: RelationInfo) -> List[str]:
        """Materialized views ``target`` reads from, in refresh order.

        Plain views are followed but never returned. The target itself is
        not included.

        Returns:
            Quoted schema-qualified names, deepest dependency first

        Raises:
            InternalInconsistency: If the catalog reports a cycle
        """
        graph, kinds = self.load_graph(connection)
        order = graph.refresh_order((target.schema, target.relname))

        dependencies = [
            quote_parts(schema, relname)
            for schema, relname in order
            if kinds.get((schema, relname)) == MATERIALIZED_VIEW
        ]
        logger.debug("Dependencies of %s: %s", target.name, dependencies)
        return dependencies
