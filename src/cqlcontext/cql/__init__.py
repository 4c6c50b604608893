"""CQL text rendering: identifiers, bound statements and batch payloads."""

from __future__ import annotations

from .builders import (
    counter_update_statement,
    create_table_statement,
    delete_statement,
    insert_statement,
    update_statement,
)
from .identifiers import quote_identifier, quoted_table_name
from .statements import BIND_MARKER, CqlStatement, Payload, StructuredBatch

__all__ = [
    "BIND_MARKER",
    "CqlStatement",
    "Payload",
    "StructuredBatch",
    "counter_update_statement",
    "create_table_statement",
    "delete_statement",
    "insert_statement",
    "quote_identifier",
    "quoted_table_name",
    "update_statement",
]
