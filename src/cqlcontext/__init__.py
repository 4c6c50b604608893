"""Unit-of-work change tracking and batched saves for Cassandra tables."""

from __future__ import annotations

from importlib import metadata

from cqlcontext.config.context import ContextSettings
from cqlcontext.domain.context import Context, ContextTable, PendingSave
from cqlcontext.domain.model.enums import (
    ConsistencyLevel,
    EntityTrackingMode,
    EntityUpdateMode,
    SaveChangesMode,
    TableType,
)

try:
    __version__ = metadata.version("cqlcontext")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"

__all__ = [
    "ConsistencyLevel",
    "Context",
    "ContextSettings",
    "ContextTable",
    "EntityTrackingMode",
    "EntityUpdateMode",
    "PendingSave",
    "SaveChangesMode",
    "TableType",
    "__version__",
]
