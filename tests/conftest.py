"""Test fixtures using testcontainers, plus recording connection doubles."""

from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple
import pytest
import psycopg2
from testcontainers.postgres import PostgresContainer

from derived_views import AdapterConfig, PostgresViewAdapter

Responder = Callable[[str, Optional[Sequence[Any]]], List[tuple]]


class RecordingCursor:
    """Cursor double that records statements and replays scripted rows."""

    def __init__(self, connection: "RecordingConnection") -> None:
        self.connection = connection
        self._rows: List[tuple] = []

    def __enter__(self) -> "RecordingCursor":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> None:
        self.connection.statements.append((sql, params))
        self._rows = list(self.connection.responder(sql, params))

    def fetchall(self) -> List[tuple]:
        return self._rows

    def fetchone(self) -> Optional[tuple]:
        return self._rows[0] if self._rows else None


class RecordingConnection:
    """Connection double counting every call that would reach the backend."""

    def __init__(self, server_version: int = 160002, responder: Optional[Responder] = None) -> None:
        self._server_version = server_version
        self.responder: Responder = responder or (lambda sql, params: [])
        self.statements: List[Tuple[str, Optional[Sequence[Any]]]] = []
        self.cursor_calls = 0
        self.version_reads = 0
        self.commits = 0
        self.rollbacks = 0

    @property
    def server_version(self) -> int:
        self.version_reads += 1
        return self._server_version

    def cursor(self) -> RecordingCursor:
        self.cursor_calls += 1
        return RecordingCursor(self)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def executed(self, prefix: str) -> List[str]:
        """Statements issued that start with ``prefix``."""
        return [sql for sql, _ in self.statements if sql.startswith(prefix)]


@pytest.fixture
def recording_connection() -> RecordingConnection:
    """A connection double reporting PostgreSQL 16."""
    return RecordingConnection()


@pytest.fixture(scope="session")
def postgres_container() -> Iterator[Any]:
    """PostgreSQL container for integration tests."""
    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture
def connection(postgres_container: Any) -> Iterator[Any]:
    """Fresh connection with empty schemas."""
    # Get connection URL and replace sqlalchemy driver with postgresql
    connection_string = postgres_container.get_connection_url().replace(
        "postgresql+psycopg2://", "postgresql://"
    )
    conn = psycopg2.connect(connection_string)
    yield conn

    # Reset schemas between tests
    conn.rollback()
    conn.autocommit = True
    with conn.cursor() as cur:
        cur.execute("DROP SCHEMA IF EXISTS reporting CASCADE")
        cur.execute("DROP SCHEMA IF EXISTS public CASCADE")
        cur.execute("CREATE SCHEMA public")
    conn.close()


@pytest.fixture
def adapter(connection: Any) -> PostgresViewAdapter:
    """Adapter bound to the test connection."""
    return PostgresViewAdapter(connection, AdapterConfig())


def run_sql(conn: Any, sql: str) -> None:
    """Execute and commit raw SQL outside the adapter."""
    with conn.cursor() as cur:
        cur.execute(sql)
    conn.commit()


def query_all(conn: Any, sql: str) -> List[tuple]:
    """Fetch every row of a query and end the transaction."""
    with conn.cursor() as cur:
        cur.execute(sql)
        rows = cur.fetchall()
    conn.commit()
    return rows
