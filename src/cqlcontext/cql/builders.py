"""Render the write statements a tracker emits for a table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cqlcontext.cql.identifiers import quote_identifier
from cqlcontext.cql.statements import BIND_MARKER, CqlStatement
from cqlcontext.domain.model.enums import ColumnKind

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cqlcontext.domain.model.schema import TableSchema
    from cqlcontext.domain.model.tables import TableIdentity


def _where_clause(keys: Mapping[str, object]) -> tuple[str, tuple[object, ...]]:
    clause = " AND ".join(f"{quote_identifier(name)} = {BIND_MARKER}" for name in keys)
    return clause, tuple(keys.values())


def insert_statement(identity: TableIdentity, values: Mapping[str, object]) -> CqlStatement:
    columns = ", ".join(quote_identifier(name) for name in values)
    markers = ", ".join(BIND_MARKER for _ in values)
    return CqlStatement(
        cql=f"INSERT INTO {identity}({columns}) VALUES ({markers})",
        values=tuple(values.values()),
    )


def update_statement(
    identity: TableIdentity,
    assignments: Mapping[str, object],
    keys: Mapping[str, object],
) -> CqlStatement:
    set_clause = ", ".join(f"{quote_identifier(name)} = {BIND_MARKER}" for name in assignments)
    where, key_values = _where_clause(keys)
    return CqlStatement(
        cql=f"UPDATE {identity} SET {set_clause} WHERE {where}",
        values=(*assignments.values(), *key_values),
    )


def counter_update_statement(
    identity: TableIdentity,
    increments: Mapping[str, object],
    keys: Mapping[str, object],
) -> CqlStatement:
    set_clause = ", ".join(
        f"{quote_identifier(name)} = {quote_identifier(name)} + {BIND_MARKER}"
        for name in increments
    )
    where, key_values = _where_clause(keys)
    return CqlStatement(
        cql=f"UPDATE {identity} SET {set_clause} WHERE {where}",
        values=(*increments.values(), *key_values),
    )


def delete_statement(identity: TableIdentity, keys: Mapping[str, object]) -> CqlStatement:
    where, key_values = _where_clause(keys)
    return CqlStatement(cql=f"DELETE FROM {identity} WHERE {where}", values=key_values)


def create_table_statement(identity: TableIdentity, schema: TableSchema) -> CqlStatement:
    definitions: list[str] = []
    for col in schema.columns:
        suffix = " static" if col.kind is ColumnKind.STATIC else ""
        definitions.append(f"{quote_identifier(col.name)} {col.cql_type}{suffix}")

    partition = ", ".join(quote_identifier(col.name) for col in schema.partition_keys)
    primary_key = [f"({partition})"]
    primary_key.extend(quote_identifier(col.name) for col in schema.clustering_keys)
    definitions.append(f"PRIMARY KEY ({', '.join(primary_key)})")
    return CqlStatement(cql=f"CREATE TABLE {identity} ({', '.join(definitions)})")
