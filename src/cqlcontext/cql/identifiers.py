"""CQL identifier quoting and table identity construction."""

from __future__ import annotations

from cqlcontext.domain.errors import TableIdentityError


def quote_identifier(name: str) -> str:
    """Quote ``name`` as a case-sensitive CQL identifier."""

    return '"' + name.replace('"', '""') + '"'


def quoted_table_name(table_name: str | None, keyspace: str | None = None) -> str:
    """Return the keyspace-qualified quoted identity of a table.

    >>> quoted_table_name("users", "app")
    '"app"."users"'
    """

    if not table_name or not table_name.strip():
        raise TableIdentityError("Cannot compute a table identity from an empty table name")
    if keyspace:
        return f"{quote_identifier(keyspace)}.{quote_identifier(table_name)}"
    return quote_identifier(table_name)
