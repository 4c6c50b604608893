"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import Flag, StrEnum


class TableType(Flag):
    """Write semantics of a table; counter and standard writes never share a batch."""

    STANDARD = 1
    COUNTER = 2
    ALL = STANDARD | COUNTER


SINGLE_TABLE_TYPES: tuple[TableType, ...] = (TableType.COUNTER, TableType.STANDARD)
"""Order in which a multi-class save visits the classes."""


class SaveChangesMode(StrEnum):
    ONE_BY_ONE = "one_by_one"
    BATCH = "batch"


class MutationState(StrEnum):
    NEW = "new"
    ATTACHED = "attached"
    DELETED = "deleted"
    DETACHED = "detached"


class EntityUpdateMode(StrEnum):
    ALL_OR_NONE = "all_or_none"
    MODIFIED_ONLY = "modified_only"


class EntityTrackingMode(StrEnum):
    KEEP_ATTACHED_AFTER_SAVE = "keep_attached_after_save"
    DETACH_AFTER_SAVE = "detach_after_save"


class ColumnKind(StrEnum):
    PARTITION_KEY = "partition_key"
    CLUSTERING_KEY = "clustering_key"
    STATIC = "static"
    REGULAR = "regular"
    COUNTER = "counter"


class BatchKind(StrEnum):
    LOGGED = "logged"
    COUNTER = "counter"


class ConsistencyLevel(StrEnum):
    """Consistency levels by their CQL names."""

    ANY = "ANY"
    ONE = "ONE"
    TWO = "TWO"
    THREE = "THREE"
    QUORUM = "QUORUM"
    ALL = "ALL"
    LOCAL_QUORUM = "LOCAL_QUORUM"
    EACH_QUORUM = "EACH_QUORUM"
    SERIAL = "SERIAL"
    LOCAL_SERIAL = "LOCAL_SERIAL"
    LOCAL_ONE = "LOCAL_ONE"
