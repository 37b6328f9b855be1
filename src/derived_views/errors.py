"""Error types raised by the view lifecycle core."""

from typing import Optional


class DerivedViewsError(Exception):
    """Base class for errors raised by derived_views."""


class UnsupportedFeature(DerivedViewsError, RuntimeError):
    """The backend version lacks a feature the operation requires."""

    feature = "unknown"

    def __init__(self, feature: Optional[str] = None, message: Optional[str] = None):
        if feature is not None:
            self.feature = feature
        super().__init__(
            message or f"The connected PostgreSQL server does not support {self.feature}"
        )


class MaterializedViewsNotSupportedError(UnsupportedFeature):
    """Materialized views require PostgreSQL 9.3 or newer."""

    feature = "materialized views"

    def __init__(self) -> None:
        super().__init__(
            message="Materialized views require PostgreSQL 9.3 or newer"
        )


class ConcurrentRefreshesNotSupportedError(UnsupportedFeature):
    """Concurrent refreshes require PostgreSQL 9.4 or newer."""

    feature = "concurrent refresh"

    def __init__(self) -> None:
        super().__init__(
            message="Concurrent materialized view refreshes require PostgreSQL 9.4 or newer"
        )


class ObjectNotFound(DerivedViewsError, ValueError):
    """No view or materialized view with the given name exists."""

    def __init__(self, name: str, kind: str = "materialized view"):
        self.name = name
        self.kind = kind
        super().__init__(f"{kind.capitalize()} '{name}' does not exist")


class ConcurrentRefreshPreconditionError(DerivedViewsError, RuntimeError):
    """A populated materialized view has no index usable by a concurrent refresh."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Cannot refresh materialized view '{name}' concurrently. "
            "Create a unique index with no WHERE clause on one or more columns "
            "of the materialized view."
        )


class InternalInconsistency(DerivedViewsError, RuntimeError):
    """The catalog reported something that cannot happen, such as a dependency cycle."""
