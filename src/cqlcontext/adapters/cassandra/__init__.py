from __future__ import annotations

from .executor import CassandraExecutionHandle, CassandraExecutor, driver_consistency
from .session import StartupError, create_context, get_executor, is_started, shutdown, startup

__all__ = [
    "CassandraExecutionHandle",
    "CassandraExecutor",
    "StartupError",
    "create_context",
    "driver_consistency",
    "get_executor",
    "is_started",
    "shutdown",
    "startup",
]
