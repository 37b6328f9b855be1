"""Create, replace, rename and drop views and materialized views."""

import logging
from typing import Any

from derived_views.backend import execute
from derived_views.capabilities import CapabilityGate
from derived_views.parser import normalize_definition, quote_identifier, quote_name, split_name

logger = logging.getLogger(__name__)


class LifecycleExecutor:
    """Issues view DDL against a caller-supplied connection.

    Materialized view statements are gated on server support and never
    reach the backend when it is missing.
    """

    def __init__(self, gate: CapabilityGate) -> None:
        self.gate = gate

    def create_view(self, connection: Any, name: str, definition: str) -> None:
        """Create a plain view."""
        sql = f"CREATE VIEW {quote_name(name)} AS {normalize_definition(definition)}"
        execute(connection, sql)
        logger.info("Created view %s", name)

    def create_materialized_view(
        self, connection: Any, name: str, definition: str, populated: bool = True
    ) -> None:
        """Create a materialized view.

        Args:
            connection: Open backend connection
            name: View name, optionally schema-qualified
            definition: SELECT statement; trailing terminators are dropped
                so WITH NO DATA lands after the query
            populated: Run the query now; False creates the view WITH NO DATA

        Raises:
            MaterializedViewsNotSupportedError: If the server lacks materialized views
        """
        self.gate.require_materialized_views(connection)

        sql = f"CREATE MATERIALIZED VIEW {quote_name(name)} AS {normalize_definition(definition)}"
        if not populated:
            # On its own line so a trailing line comment cannot swallow it
            sql += "\nWITH NO DATA"
        execute(connection, sql)
        logger.info("Created materialized view %s%s", name, "" if populated else " (no data)")

    def replace_view(self, connection: Any, name: str, definition: str) -> None:
        """Atomically redefine a plain view with CREATE OR REPLACE."""
        sql = f"CREATE OR REPLACE VIEW {quote_name(name)} AS {normalize_definition(definition)}"
        execute(connection, sql)
        logger.info("Replaced view %s", name)

    def update_view(self, connection: Any, name: str, definition: str) -> None:
        """Drop and recreate a plain view.

        Covers changes CREATE OR REPLACE rejects, such as removing columns.
        The caller decides whether both statements share a transaction.
        """
        definition = normalize_definition(definition)
        self.drop_view(connection, name)
        self.create_view(connection, name, definition)

    def rename_view(self, connection: Any, name: str, new_name: str) -> None:
        """Rename a plain view within its schema."""
        _, new_relname = split_name(new_name)
        execute(connection, f"ALTER VIEW {quote_name(name)} RENAME TO {quote_identifier(new_relname)}")
        logger.info("Renamed view %s to %s", name, new_relname)

    def rename_materialized_view(self, connection: Any, name: str, new_name: str) -> None:
        """Rename a materialized view within its schema.

        Raises:
            MaterializedViewsNotSupportedError: If the server lacks materialized views
        """
        self.gate.require_materialized_views(connection)
        _, new_relname = split_name(new_name)
        execute(
            connection,
            f"ALTER MATERIALIZED VIEW {quote_name(name)} RENAME TO {quote_identifier(new_relname)}",
        )
        logger.info("Renamed materialized view %s to %s", name, new_relname)

    def drop_view(self, connection: Any, name: str) -> None:
        """Drop a plain view."""
        execute(connection, f"DROP VIEW {quote_name(name)}")
        logger.info("Dropped view %s", name)

    def drop_materialized_view(self, connection: Any, name: str) -> None:
        """Drop a materialized view.

        Raises:
            MaterializedViewsNotSupportedError: If the server lacks materialized views
        """
        self.gate.require_materialized_views(connection)
        execute(connection, f"DROP MATERIALIZED VIEW {quote_name(name)}")
        logger.info("Dropped materialized view %s", name)
