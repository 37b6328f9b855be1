"""Statement execution helpers over a DB-API connection."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)


def execute(connection: Any, sql: str, params: Optional[Sequence[Any]] = None) -> None:
    """Run a statement that returns no rows."""
    logger.debug("Executing: %s", sql)
    with connection.cursor() as cur:
        cur.execute(sql, params)


def fetch_all(connection: Any, sql: str, params: Optional[Sequence[Any]] = None) -> List[tuple]:
    """Run a query and return every row."""
    logger.debug("Querying: %s", sql)
    with connection.cursor() as cur:
        cur.execute(sql, params)
        return list(cur.fetchall())


def fetch_one(connection: Any, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[tuple]:
    """Run a query and return its first row, or None."""
    logger.debug("Querying: %s", sql)
    with connection.cursor() as cur:
        cur.execute(sql, params)
        return cur.fetchone()


@contextmanager
def unit_of_work(connection: Any, commit: bool) -> Iterator[Any]:
    """Commit on success and roll back on failure when ``commit`` is set.

    With ``commit`` false the caller owns transaction control and the
    block runs unchanged.
    """
    if not commit:
        yield connection
        return

    try:
        yield connection
    except Exception:
        connection.rollback()
        raise
    connection.commit()
