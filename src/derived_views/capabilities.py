"""Backend capability detection."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from derived_views.errors import (
    ConcurrentRefreshesNotSupportedError,
    MaterializedViewsNotSupportedError,
)

logger = logging.getLogger(__name__)

MATERIALIZED_VIEWS_MIN_VERSION = 90300
CONCURRENT_REFRESH_MIN_VERSION = 90400


@dataclass(frozen=True)
class Capabilities:
    """Features available on the connected server."""

    supports_materialized_views: bool
    supports_concurrent_refresh: bool

    @classmethod
    def from_server_version(cls, server_version: int) -> "Capabilities":
        """Derive capabilities from a libpq-style version number (e.g. 160002)."""
        return cls(
            supports_materialized_views=server_version >= MATERIALIZED_VIEWS_MIN_VERSION,
            supports_concurrent_refresh=server_version >= CONCURRENT_REFRESH_MIN_VERSION,
        )


class CapabilityGate:
    """Computes capabilities once per connection and enforces them.

    Pass ``capabilities`` to pin a fixed value instead of reading the
    server version.
    """

    def __init__(self, capabilities: Optional[Capabilities] = None) -> None:
        self._fixed = capabilities
        # Keyed by id(); the connection is kept alive alongside its entry
        self._cache: Dict[int, Tuple[Any, Capabilities]] = {}

    def capabilities(self, connection: Any) -> Capabilities:
        """Return the memoized capabilities for ``connection``."""
        if self._fixed is not None:
            return self._fixed

        entry = self._cache.get(id(connection))
        if entry is not None and entry[0] is connection:
            return entry[1]

        server_version = int(connection.server_version)
        caps = Capabilities.from_server_version(server_version)
        logger.debug("Server version %s: %s", server_version, caps)
        self._cache[id(connection)] = (connection, caps)
        return caps

    def require_materialized_views(self, connection: Any) -> None:
        """Raise MaterializedViewsNotSupportedError unless supported."""
        if not self.capabilities(connection).supports_materialized_views:
            raise MaterializedViewsNotSupportedError()

    def require_concurrent_refresh(self, connection: Any) -> None:
        """Raise ConcurrentRefreshesNotSupportedError unless supported."""
        if not self.capabilities(connection).supports_concurrent_refresh:
            raise ConcurrentRefreshesNotSupportedError()
