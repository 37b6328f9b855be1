"""Derived Views - lifecycle management for PostgreSQL views and materialized views."""

from derived_views.adapter import PostgresViewAdapter
from derived_views.capabilities import Capabilities, CapabilityGate
from derived_views.catalog import RelationInfo, UniqueIndexDescriptor, ViewCatalog, ViewDescriptor
from derived_views.config import AdapterConfig
from derived_views.dependencies import DependencyGraph, DependencyGraphNode, DependencyResolver
from derived_views.errors import (
    ConcurrentRefreshesNotSupportedError,
    ConcurrentRefreshPreconditionError,
    DerivedViewsError,
    InternalInconsistency,
    MaterializedViewsNotSupportedError,
    ObjectNotFound,
    UnsupportedFeature,
)
from derived_views.lifecycle import LifecycleExecutor
from derived_views.parser import normalize_definition
from derived_views.refresh import RefreshEngine, RefreshRequest, RefreshResult, RefreshStrategy
from derived_views.updater import ZeroDowntimeUpdater

__version__ = "0.1.0"

__all__ = [
    "PostgresViewAdapter",
    "AdapterConfig",
    "Capabilities",
    "CapabilityGate",
    "ViewCatalog",
    "ViewDescriptor",
    "RelationInfo",
    "UniqueIndexDescriptor",
    "DependencyGraph",
    "DependencyGraphNode",
    "DependencyResolver",
    "RefreshEngine",
    "RefreshRequest",
    "RefreshResult",
    "RefreshStrategy",
    "LifecycleExecutor",
    "ZeroDowntimeUpdater",
    "normalize_definition",
    "DerivedViewsError",
    "UnsupportedFeature",
    "MaterializedViewsNotSupportedError",
    "ConcurrentRefreshesNotSupportedError",
    "ObjectNotFound",
    "ConcurrentRefreshPreconditionError",
    "InternalInconsistency",
]
