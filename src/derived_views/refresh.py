"""Materialized view refresh logic."""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, List

from derived_views.backend import execute
from derived_views.capabilities import CapabilityGate
from derived_views.catalog import RelationInfo, ViewCatalog
from derived_views.dependencies import DependencyResolver
from derived_views.errors import ConcurrentRefreshPreconditionError

logger = logging.getLogger(__name__)


class RefreshStrategy(Enum):
    """How a materialized view was refreshed."""

    STANDARD = "STANDARD"
    CONCURRENT = "CONCURRENT"


@dataclass(frozen=True)
class RefreshRequest:
    """A single call to refresh a materialized view."""

    target: str
    cascade: bool = False
    concurrently: bool = False


@dataclass(frozen=True)
class RefreshResult:
    """Outcome of refreshing one materialized view."""

    name: str
    strategy: RefreshStrategy
    duration_ms: int


class RefreshEngine:
    """Refreshes materialized views, cascading to their dependencies on request."""

    def __init__(
        self,
        gate: CapabilityGate,
        catalog: ViewCatalog,
        resolver: DependencyResolver,
        cascade_fallback: bool = True,
    ) -> None:
        """Initialize refresh engine.

        Args:
            gate: Capability gate bound to the caller's session
            catalog: Catalog used to resolve names and inspect indexes
            resolver: Dependency resolver used for cascades
            cascade_fallback: Refresh a cascaded dependency the standard way
                when it cannot be refreshed concurrently, instead of failing
        """
        self.gate = gate
        self.catalog = catalog
        self.resolver = resolver
        self.cascade_fallback = cascade_fallback

    def refresh(self, connection: Any, request: RefreshRequest) -> List[RefreshResult]:
        """Refresh ``request.target``, its dependencies first when cascading.

        Dependencies are refreshed one at a time on the same connection,
        each with the caller's ``concurrently`` flag. The refresh statement
        is always issued, even when the data is already current.

        Args:
            connection: Open backend connection
            request: What to refresh and how

        Returns:
            One result per refreshed materialized view, target last

        Raises:
            MaterializedViewsNotSupportedError: If the server lacks materialized views
            ConcurrentRefreshesNotSupportedError: If a concurrent refresh was
                requested and the server cannot do one
            ObjectNotFound: If the target does not exist
            ConcurrentRefreshPreconditionError: If the populated target has no
                qualifying unique index
        """
        self.gate.require_materialized_views(connection)
        if request.concurrently:
            self.gate.require_concurrent_refresh(connection)

        target = self.catalog.resolve(connection, request.target)
        results: List[RefreshResult] = []

        if request.cascade:
            for dependency in self.resolver.dependencies_of(connection, target):
                relation = self.catalog.resolve(connection, dependency)
                results.append(
                    self._refresh_one(
                        connection,
                        relation,
                        request.concurrently,
                        strict=not self.cascade_fallback,
                    )
                )

        results.append(self._refresh_one(connection, target, request.concurrently, strict=True))
        return results

    def choose_strategy(
        self, connection: Any, relation: RelationInfo, concurrently: bool, strict: bool = True
    ) -> RefreshStrategy:
        """Pick the refresh strategy for one materialized view.

        A concurrent refresh of an unpopulated view is meaningless, so it
        becomes a standard refresh without error.

        Raises:
            ConcurrentRefreshPreconditionError: If ``strict`` and the populated
                view has no unique index without a WHERE clause
        """
        if not concurrently:
            return RefreshStrategy.STANDARD

        if not relation.is_populated:
            logger.info(
                "Materialized view %s is not populated; refreshing without CONCURRENTLY",
                relation.name,
            )
            return RefreshStrategy.STANDARD

        indexes = self.catalog.unique_indexes(connection, relation)
        if any(index.qualifies_for_concurrent_refresh for index in indexes):
            return RefreshStrategy.CONCURRENT

        if strict:
            raise ConcurrentRefreshPreconditionError(relation.name)

        logger.warning(
            "Materialized view %s has no unique index without a WHERE clause; "
            "refreshing without CONCURRENTLY",
            relation.name,
        )
        return RefreshStrategy.STANDARD

    def _refresh_one(
        self, connection: Any, relation: RelationInfo, concurrently: bool, strict: bool
    ) -> RefreshResult:
        strategy = self.choose_strategy(connection, relation, concurrently, strict)
        keyword = "CONCURRENTLY " if strategy is RefreshStrategy.CONCURRENT else ""

        start_time = time.time()
        execute(connection, f"REFRESH MATERIALIZED VIEW {keyword}{relation.qualified_name}")
        duration_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "Refreshed materialized view %s (%s, %d ms)",
            relation.name,
            strategy.value,
            duration_ms,
        )
        return RefreshResult(
            name=relation.name, strategy=strategy, duration_ms=duration_ms
        )
