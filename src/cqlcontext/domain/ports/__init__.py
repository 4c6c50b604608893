"""Interfaces the unit-of-work core consumes."""

from __future__ import annotations

from .execution import ExecutionCallback, ExecutionHandle, ExecutionResult, StatementExecutor
from .tracking import BatchSink, MutationTrackerPort

__all__ = [
    "BatchSink",
    "ExecutionCallback",
    "ExecutionHandle",
    "ExecutionResult",
    "MutationTrackerPort",
    "StatementExecutor",
]
