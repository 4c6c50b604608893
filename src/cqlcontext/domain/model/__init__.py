from __future__ import annotations

from .enums import (
    SINGLE_TABLE_TYPES,
    BatchKind,
    ColumnKind,
    ConsistencyLevel,
    EntityTrackingMode,
    EntityUpdateMode,
    MutationState,
    SaveChangesMode,
    TableType,
)
from .schema import (
    Column,
    TableSchema,
    clustering_key,
    column,
    counter,
    partition_key,
    static_column,
)
from .tables import TableIdentity, TableMetadata

__all__ = [
    "SINGLE_TABLE_TYPES",
    "BatchKind",
    "Column",
    "ColumnKind",
    "ConsistencyLevel",
    "EntityTrackingMode",
    "EntityUpdateMode",
    "MutationState",
    "SaveChangesMode",
    "TableIdentity",
    "TableMetadata",
    "TableSchema",
    "TableType",
    "clustering_key",
    "column",
    "counter",
    "partition_key",
    "static_column",
]
