"""Catalog introspection for views and materialized views."""

import logging
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional, Tuple

from derived_views.backend import fetch_all, fetch_one
from derived_views.capabilities import CapabilityGate
from derived_views.errors import ObjectNotFound
from derived_views.parser import (
    normalize_definition,
    qualify,
    quote_name,
    quote_parts,
)

logger = logging.getLogger(__name__)

VIEW = "v"
MATERIALIZED_VIEW = "m"


@dataclass(frozen=True)
class ViewDescriptor:
    """A view or materialized view as found in the catalog."""

    schema: str
    relname: str
    name: str
    materialized: bool
    definition: str

    @property
    def key(self) -> Tuple[str, str]:
        """Identity of the object."""
        return (self.schema, self.relname)

    def __str__(self) -> str:
        kind = "MaterializedView" if self.materialized else "View"
        return f"{kind}({self.name})"


@dataclass(frozen=True)
class RelationInfo:
    """A relation resolved through the active search path."""

    schema: str
    relname: str
    name: str
    kind: str
    is_populated: bool

    @property
    def qualified_name(self) -> str:
        """Quoted schema-qualified name, safe to embed in DDL."""
        return quote_parts(self.schema, self.relname)


@dataclass(frozen=True)
class UniqueIndexDescriptor:
    """A unique index on a relation."""

    on_table: str
    name: str
    columns: FrozenSet[str]
    has_where_clause: bool
    has_expressions: bool = False
    is_valid: bool = True

    @property
    def qualifies_for_concurrent_refresh(self) -> bool:
        """Whether REFRESH ... CONCURRENTLY can use this index."""
        return (
            not self.has_where_clause
            and not self.has_expressions
            and self.is_valid
            and len(self.columns) > 0
        )


VIEWS_QUERY = """
SELECT
    n.nspname AS schema_name,
    c.relname AS view_name,
    c.relkind AS kind,
    pg_get_viewdef(c.oid) AS definition
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE c.relkind IN ('m', 'v')
  AND n.nspname = ANY (current_schemas(false))
  AND NOT EXISTS (
      SELECT 1
      FROM pg_depend d
      WHERE d.classid = 'pg_class'::regclass
        AND d.objid = c.oid
        AND d.deptype = 'e'
  )
ORDER BY n.nspname, c.relname
"""

RESOLVE_QUERY = """
SELECT
    n.nspname AS schema_name,
    c.relname AS relation_name,
    c.relkind AS kind,
    c.relispopulated AS is_populated
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE c.oid = to_regclass(%s)
"""

UNIQUE_INDEXES_QUERY = """
SELECT
    i.relname AS index_name,
    ARRAY(
        SELECT a.attname::text
        FROM pg_attribute a
        WHERE a.attrelid = ix.indrelid
          AND a.attnum = ANY (ix.indkey)
        ORDER BY a.attnum
    ) AS columns,
    ix.indpred IS NOT NULL AS has_where_clause,
    ix.indexprs IS NOT NULL AS has_expressions,
    ix.indisvalid AS is_valid
FROM pg_index ix
JOIN pg_class i ON i.oid = ix.indexrelid
WHERE ix.indrelid = to_regclass(%s)
  AND ix.indisunique
ORDER BY i.relname
"""

INDEX_NAMES_QUERY = """
SELECT i.relname
FROM pg_index ix
JOIN pg_class i ON i.oid = ix.indexrelid
WHERE ix.indrelid = to_regclass(%s)
ORDER BY i.relname
"""


def _catalog_definition(definition: Optional[str]) -> str:
    # pg_get_viewdef returns NULL for objects dropped mid-query
    if not definition or not definition.strip(" ;\n\t"):
        return ""
    return normalize_definition(definition)


class ViewCatalog:
    """Reads views, materialized views and their indexes from the catalog."""

    def __init__(self, gate: CapabilityGate, default_schema: str = "public") -> None:
        self.gate = gate
        self.default_schema = default_schema

    def list_views(self, connection: Any) -> List[ViewDescriptor]:
        """List views and materialized views on the active search path.

        Objects outside the default schema are named ``schema.name``.
        Objects owned by extensions are skipped.

        Returns:
            Descriptors ordered by (schema, name)
        """
        views = [
            ViewDescriptor(
                schema=schema,
                relname=relname,
                name=qualify(schema, relname, self.default_schema),
                materialized=kind == MATERIALIZED_VIEW,
                definition=_catalog_definition(definition),
            )
            for schema, relname, kind, definition in fetch_all(connection, VIEWS_QUERY)
        ]
        return sorted(views, key=lambda view: view.key)

    def resolve(self, connection: Any, name: str, kind: str = MATERIALIZED_VIEW) -> RelationInfo:
        """Resolve ``name`` through the search path to a relation of ``kind``.

        Raises:
            ObjectNotFound: If nothing of that kind answers to the name
        """
        row = fetch_one(connection, RESOLVE_QUERY, (quote_name(name),))
        if row is None or row[2] != kind:
            raise ObjectNotFound(name, "view" if kind == VIEW else "materialized view")
        return RelationInfo(
            schema=row[0],
            relname=row[1],
            name=qualify(row[0], row[1], self.default_schema),
            kind=row[2],
            is_populated=bool(row[3]),
        )

    def is_populated(self, connection: Any, name: str) -> bool:
        """Report whether a materialized view holds data.

        A bare name resolves through the search path; a qualified name,
        including one in the default schema, names exactly one object.

        Raises:
            MaterializedViewsNotSupportedError: If the server lacks materialized views
            ObjectNotFound: If no such materialized view exists
        """
        self.gate.require_materialized_views(connection)
        row = fetch_one(connection, RESOLVE_QUERY, (quote_name(name),))
        if row is None or row[2] != MATERIALIZED_VIEW:
            raise ObjectNotFound(name)
        return bool(row[3])

    def unique_indexes(self, connection: Any, relation: RelationInfo) -> List[UniqueIndexDescriptor]:
        """List the unique indexes defined on ``relation``."""
        rows = fetch_all(connection, UNIQUE_INDEXES_QUERY, (relation.qualified_name,))
        return [
            UniqueIndexDescriptor(
                on_table=relation.name,
                name=index_name,
                columns=frozenset(columns or ()),
                has_where_clause=bool(has_where_clause),
                has_expressions=bool(has_expressions),
                is_valid=bool(is_valid),
            )
            for index_name, columns, has_where_clause, has_expressions, is_valid in rows
        ]

    def index_names(self, connection: Any, relation: RelationInfo) -> List[str]:
        """List the names of every index on ``relation``."""
        return [row[0] for row in fetch_all(connection, INDEX_NAMES_QUERY, (relation.qualified_name,))]
