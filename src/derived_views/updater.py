"""Redefining materialized views while they stay queryable."""

import logging
from typing import Any

from derived_views.backend import execute
from derived_views.capabilities import CapabilityGate
from derived_views.catalog import RelationInfo, ViewCatalog
from derived_views.lifecycle import LifecycleExecutor
from derived_views.parser import normalize_definition, quote_identifier, quote_parts, temporary_name

logger = logging.getLogger(__name__)


class ZeroDowntimeUpdater:
    """Replaces the definition of an existing materialized view.

    In place, the view is dropped and recreated and is unavailable while
    the new query runs. Side by side, the replacement is built under a
    temporary name while the old view keeps serving reads, then the two
    are swapped by renames sent to the backend as one statement batch.
    PostgreSQL runs a batch as a single transaction, so readers see
    either the old view or the new one, blocking briefly on the lock the
    renames take. Indexes on the old view are not rebuilt on the new one.
    """

    def __init__(
        self,
        gate: CapabilityGate,
        catalog: ViewCatalog,
        lifecycle: LifecycleExecutor,
        side_by_side_suffix: str = "_new",
        retired_suffix: str = "_old",
    ) -> None:
        self.gate = gate
        self.catalog = catalog
        self.lifecycle = lifecycle
        self.side_by_side_suffix = side_by_side_suffix
        self.retired_suffix = retired_suffix

    def update_materialized_view(
        self, connection: Any, name: str, new_definition: str, side_by_side: bool = False
    ) -> None:
        """Redefine materialized view ``name``; the new view is populated.

        Raises:
            MaterializedViewsNotSupportedError: If the server lacks materialized views
            ObjectNotFound: If a side-by-side update targets a missing view
        """
        self.gate.require_materialized_views(connection)
        definition = normalize_definition(new_definition)

        if side_by_side:
            self._update_side_by_side(connection, name, definition)
        else:
            self.lifecycle.drop_materialized_view(connection, name)
            self.lifecycle.create_materialized_view(connection, name, definition, populated=True)
            logger.info("Updated materialized view %s in place", name)

    def _update_side_by_side(self, connection: Any, name: str, definition: str) -> None:
        current = self.catalog.resolve(connection, name)
        staged_relname = temporary_name(current.relname, self.side_by_side_suffix)
        retired_relname = temporary_name(current.relname, self.retired_suffix)

        self.lifecycle.create_materialized_view(
            connection, quote_parts(current.schema, staged_relname), definition, populated=True
        )
        left_behind = self.catalog.index_names(connection, current)

        self.swap(connection, current, staged_relname, retired_relname)

        if left_behind:
            logger.warning(
                "Indexes %s on materialized view %s were dropped with the old definition "
                "and must be recreated",
                ", ".join(left_behind),
                current.name,
            )
        logger.info("Updated materialized view %s side by side", current.name)

    def swap(
        self, connection: Any, current: RelationInfo, staged_relname: str, retired_relname: str
    ) -> None:
        """Put ``staged_relname`` in place of ``current`` and drop the old view.

        The three statements go out in a single execute so the name is
        never left unresolved between them.
        """
        statements = [
            f"ALTER MATERIALIZED VIEW {current.qualified_name} "
            f"RENAME TO {quote_identifier(retired_relname)}",
            f"ALTER MATERIALIZED VIEW {quote_parts(current.schema, staged_relname)} "
            f"RENAME TO {quote_identifier(current.relname)}",
            f"DROP MATERIALIZED VIEW {quote_parts(current.schema, retired_relname)}",
        ]
        execute(connection, ";\n".join(statements))
        logger.debug("Swapped %s into place as %s", staged_relname, current.name)
