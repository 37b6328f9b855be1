"""Test that unsupported features fail before any backend call."""

import pytest
from derived_views import (
    Capabilities,
    CapabilityGate,
    ConcurrentRefreshesNotSupportedError,
    MaterializedViewsNotSupportedError,
    PostgresViewAdapter,
)

from conftest import RecordingConnection

MATERIALIZED_VIEW_OPERATIONS = [
    ("create_materialized_view", ("greetings", "select 1")),
    ("create_materialized_view", ("greetings", "select 1", True)),
    ("drop_materialized_view", ("greetings",)),
    ("rename_materialized_view", ("greetings", "salutations")),
    ("refresh_materialized_view", ("tests",)),
    ("refresh_materialized_view", ("tests", True, True)),
    ("is_populated", ("greetings",)),
    ("update_materialized_view", ("hi", "SELECT 'hello' AS greeting")),
    ("update_materialized_view", ("hi", "SELECT 'hello' AS greeting", True)),
]


class TestMaterializedViewsUnsupported:
    """Test servers without materialized views."""

    @pytest.mark.parametrize("operation, args", MATERIALIZED_VIEW_OPERATIONS)
    def test_injected_capabilities(self, operation, args):
        """Test gating with a fixed Capabilities value."""
        conn = RecordingConnection()
        gate = CapabilityGate(
            Capabilities(supports_materialized_views=False, supports_concurrent_refresh=False)
        )
        adapter = PostgresViewAdapter(conn, gate=gate)

        with pytest.raises(MaterializedViewsNotSupportedError):
            getattr(adapter, operation)(*args)

        assert conn.cursor_calls == 0
        assert conn.statements == []

    @pytest.mark.parametrize("operation, args", MATERIALIZED_VIEW_OPERATIONS)
    def test_old_server_version(self, operation, args):
        """Test gating detected from a pre-9.3 server version."""
        conn = RecordingConnection(server_version=90205)
        adapter = PostgresViewAdapter(conn)

        with pytest.raises(MaterializedViewsNotSupportedError):
            getattr(adapter, operation)(*args)

        assert conn.cursor_calls == 0

    def test_plain_views_still_work(self):
        conn = RecordingConnection(server_version=90205)
        adapter = PostgresViewAdapter(conn)

        adapter.create_view("greetings", "SELECT text 'hi' AS greeting;")

        assert conn.executed("CREATE VIEW") == [
            "CREATE VIEW \"greetings\" AS SELECT text 'hi' AS greeting"
        ]


class TestConcurrentRefreshUnsupported:
    """Test servers with materialized views but no concurrent refresh."""

    def test_concurrent_refresh_on_9_3(self):
        conn = RecordingConnection(server_version=90300)
        adapter = PostgresViewAdapter(conn)

        with pytest.raises(ConcurrentRefreshesNotSupportedError):
            adapter.refresh_materialized_view("tests", concurrently=True)

        assert conn.cursor_calls == 0

    def test_cascading_concurrent_refresh_on_9_3(self):
        conn = RecordingConnection(server_version=90300)
        adapter = PostgresViewAdapter(conn)

        with pytest.raises(ConcurrentRefreshesNotSupportedError):
            adapter.refresh_materialized_view("tests", cascade=True, concurrently=True)

        assert conn.cursor_calls == 0
