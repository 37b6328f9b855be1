"""PostgreSQL adapter for view and materialized view lifecycle."""

import logging
from typing import Any, List, Optional

from derived_views.backend import unit_of_work
from derived_views.capabilities import Capabilities, CapabilityGate
from derived_views.catalog import ViewCatalog, ViewDescriptor
from derived_views.config import AdapterConfig
from derived_views.dependencies import DependencyResolver
from derived_views.lifecycle import LifecycleExecutor
from derived_views.refresh import RefreshEngine, RefreshRequest, RefreshResult
from derived_views.updater import ZeroDowntimeUpdater

logger = logging.getLogger(__name__)


class PostgresViewAdapter:
    """Manages views and materialized views on one PostgreSQL connection.

    The connection is supplied and owned by the caller. Unless
    ``config.commit`` is false, every method is its own unit of work:
    committed when it returns and rolled back when it raises.

    Example:
        conn = psycopg2.connect(dsn)
        adapter = PostgresViewAdapter(conn)
        adapter.create_materialized_view("greetings", "SELECT text 'hi' AS greeting")
        adapter.refresh_materialized_view("greetings", concurrently=True)
    """

    def __init__(
        self,
        connection: Any,
        config: Optional[AdapterConfig] = None,
        gate: Optional[CapabilityGate] = None,
    ) -> None:
        """Initialize adapter.

        Args:
            connection: Open psycopg2 connection (or compatible DB-API object)
            config: Adapter settings; defaults suit a stock PostgreSQL server
            gate: Capability gate; pass one holding fixed Capabilities to
                skip version detection
        """
        self.connection = connection
        self.config = config or AdapterConfig()
        self.gate = gate or CapabilityGate()

        self.catalog = ViewCatalog(self.gate, default_schema=self.config.default_schema)
        self.resolver = DependencyResolver()
        self.lifecycle = LifecycleExecutor(self.gate)
        self.refresher = RefreshEngine(
            self.gate,
            self.catalog,
            self.resolver,
            cascade_fallback=self.config.cascade_fallback,
        )
        self.updater = ZeroDowntimeUpdater(
            self.gate,
            self.catalog,
            self.lifecycle,
            side_by_side_suffix=self.config.side_by_side_suffix,
            retired_suffix=self.config.retired_suffix,
        )

    @property
    def capabilities(self) -> Capabilities:
        """Capabilities of the connected server."""
        return self.gate.capabilities(self.connection)

    def _unit_of_work(self):
        return unit_of_work(self.connection, self.config.commit)

    def views(self) -> List[ViewDescriptor]:
        """Views and materialized views on the search path, sorted by (schema, name)."""
        with self._unit_of_work():
            return self.catalog.list_views(self.connection)

    def is_populated(self, name: str) -> bool:
        """Whether materialized view ``name`` holds data."""
        with self._unit_of_work():
            return self.catalog.is_populated(self.connection, name)

    def create_view(self, name: str, definition: str) -> None:
        with self._unit_of_work():
            self.lifecycle.create_view(self.connection, name, definition)

    def create_materialized_view(self, name: str, definition: str, no_data: bool = False) -> None:
        """Create a materialized view, leaving it unpopulated when ``no_data`` is set."""
        with self._unit_of_work():
            self.lifecycle.create_materialized_view(
                self.connection, name, definition, populated=not no_data
            )

    def replace_view(self, name: str, definition: str) -> None:
        with self._unit_of_work():
            self.lifecycle.replace_view(self.connection, name, definition)

    def update_view(self, name: str, definition: str) -> None:
        """Drop and recreate a plain view in one unit of work."""
        with self._unit_of_work():
            self.lifecycle.update_view(self.connection, name, definition)

    def rename_view(self, name: str, new_name: str) -> None:
        with self._unit_of_work():
            self.lifecycle.rename_view(self.connection, name, new_name)

    def rename_materialized_view(self, name: str, new_name: str) -> None:
        with self._unit_of_work():
            self.lifecycle.rename_materialized_view(self.connection, name, new_name)

    def drop_view(self, name: str) -> None:
        with self._unit_of_work():
            self.lifecycle.drop_view(self.connection, name)

    def drop_materialized_view(self, name: str) -> None:
        with self._unit_of_work():
            self.lifecycle.drop_materialized_view(self.connection, name)

    def refresh_materialized_view(
        self, name: str, cascade: bool = False, concurrently: bool = False
    ) -> List[RefreshResult]:
        """Refresh a materialized view.

        Args:
            name: Materialized view to refresh
            cascade: Refresh the materialized views it reads from first
            concurrently: Keep the view readable during the refresh; needs a
                unique index without a WHERE clause once the view is populated

        Returns:
            One result per refreshed materialized view, ``name`` last
        """
        request = RefreshRequest(target=name, cascade=cascade, concurrently=concurrently)
        with self._unit_of_work():
            return self.refresher.refresh(self.connection, request)

    def update_materialized_view(
        self, name: str, new_definition: str, side_by_side: bool = False
    ) -> None:
        """Redefine a materialized view, optionally without an unavailability window."""
        with self._unit_of_work():
            self.updater.update_materialized_view(
                self.connection, name, new_definition, side_by_side=side_by_side
            )
