"""Definition normalization and identifier handling."""

import hashlib
import re
from typing import Optional, Tuple

from sqlglot import exp
from sqlglot.errors import SqlglotError

# PostgreSQL truncates identifiers longer than NAMEDATALEN - 1 bytes
MAX_IDENTIFIER_LENGTH = 63

_TRAILING_TERMINATORS = re.compile(r"[\s;]+$")
_PLAIN_IDENTIFIER = re.compile(r"[a-z_][a-z0-9_$]*")


def normalize_definition(sql: str) -> str:
    """Canonicalize view definition text.

    Surrounding whitespace and any run of trailing statement terminators
    are removed so the text can be embedded in a larger statement (for
    example before ``WITH NO DATA``) and compared with catalog output.
    Terminators inside the text are left alone.

    Args:
        sql: Raw definition text

    Returns:
        Normalized definition

    Raises:
        ValueError: If nothing but whitespace and terminators remain
    """
    normalized = _TRAILING_TERMINATORS.sub("", sql.strip())
    if not normalized:
        raise ValueError("View definition is empty")
    return normalized


def split_name(name: str) -> Tuple[Optional[str], str]:
    """Split a possibly schema-qualified name into (schema, name).

    Quoted parts keep their case and may contain dots.

    Raises:
        ValueError: If the name is empty, malformed or has more than two parts
    """
    if not name or not name.strip():
        raise ValueError("Relation name is empty")

    try:
        table = exp.to_table(name.strip(), dialect="postgres")
    except SqlglotError as e:
        raise ValueError(f"Invalid relation name '{name}': {e}") from e

    if table.catalog or table.alias:
        raise ValueError(f"Invalid relation name '{name}': expected [schema.]name")

    return (table.db or None), table.name


def quote_name(name: str) -> str:
    """Quote every part of a possibly schema-qualified name."""
    schema, relname = split_name(name)
    return quote_parts(schema, relname)


def quote_identifier(identifier: str) -> str:
    """Quote a single identifier, such as the target of a RENAME TO."""
    return exp.to_identifier(identifier, quoted=True).sql(dialect="postgres")


def _display_part(part: str) -> str:
    if _PLAIN_IDENTIFIER.fullmatch(part):
        return part
    return quote_identifier(part)


def qualify(schema: str, relname: str, default_schema: str) -> str:
    """Name a relation as callers see it: bare in the default schema.

    Parts that would not survive case folding or contain special
    characters are quoted, so the result can be passed back in.
    """
    if schema == default_schema:
        return _display_part(relname)
    return f"{_display_part(schema)}.{_display_part(relname)}"


def temporary_name(relname: str, suffix: str) -> str:
    """Derive a sibling relation name that fits PostgreSQL's identifier limit.

    Long names are shortened and given a stable hash so two different
    long names never collide on the same temporary name.
    """
    candidate = f"{relname}{suffix}"
    if len(candidate.encode("utf-8")) <= MAX_IDENTIFIER_LENGTH:
        return candidate

    digest = hashlib.sha1(relname.encode("utf-8")).hexdigest()[:8]
    budget = MAX_IDENTIFIER_LENGTH - len(suffix) - len(digest) - 1
    base = relname.encode("utf-8")[:budget].decode("utf-8", errors="ignore")
    return f"{base}_{digest}{suffix}"


def quote_parts(schema: Optional[str], relname: str) -> str:
    """Quote a relation given its already-split parts."""
    return exp.table_(relname, db=schema, quoted=True).sql(dialect="postgres")
