"""Adapter configuration."""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class AdapterConfig:
    """Settings shared by every component bound to one adapter."""

    # Views in this schema are reported without a schema qualifier
    default_schema: str = "public"
    # Commit each caller-facing operation, rolling back on failure
    commit: bool = True
    side_by_side_suffix: str = "_new"
    retired_suffix: str = "_old"
    # Cascaded dependencies fall back to a standard refresh when they
    # cannot be refreshed concurrently
    cascade_fallback: bool = True

    @classmethod
    def from_env(cls) -> "AdapterConfig":
        """Build a config from DERIVED_VIEWS_* environment variables.

        Unset variables keep their defaults.
        """
        defaults = cls()
        return cls(
            default_schema=os.environ.get(
                "DERIVED_VIEWS_DEFAULT_SCHEMA", defaults.default_schema
            ),
            commit=_env_flag("DERIVED_VIEWS_COMMIT", defaults.commit),
            side_by_side_suffix=os.environ.get(
                "DERIVED_VIEWS_SIDE_BY_SIDE_SUFFIX", defaults.side_by_side_suffix
            ),
            retired_suffix=os.environ.get(
                "DERIVED_VIEWS_RETIRED_SUFFIX", defaults.retired_suffix
            ),
            cascade_fallback=_env_flag(
                "DERIVED_VIEWS_CASCADE_FALLBACK", defaults.cascade_fallback
            ),
        )
