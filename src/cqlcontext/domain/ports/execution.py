"""Ports for executing statements against the store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from cqlcontext.cql.statements import Payload
    from cqlcontext.domain.model.enums import ConsistencyLevel
    from cqlcontext.domain.model.tables import TableMetadata


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Outcome of a write: the query trace (when tracing was requested) and any rows."""

    trace: object | None = None
    rows: Sequence[object] | None = None


@runtime_checkable
class ExecutionHandle(Protocol):
    """In-flight asynchronous execution started by ``begin_execute``."""

    @property
    def tag(self) -> object: ...


type ExecutionCallback = Callable[[ExecutionHandle], None]


@runtime_checkable
class StatementExecutor(Protocol):
    """Execution capability consumed by the unit-of-work context."""

    def execute(
        self, payload: Payload, consistency: ConsistencyLevel, tracing: bool
    ) -> ExecutionResult: ...

    def begin_execute(
        self,
        payload: Payload,
        consistency: ConsistencyLevel,
        tracing: bool,
        tag: object,
        callback: ExecutionCallback | None = None,
        state: object | None = None,
    ) -> ExecutionHandle: ...

    def end_execute(self, handle: ExecutionHandle) -> ExecutionResult: ...

    def prepare(self, cql: str) -> object: ...

    def supports_structured_batch(self) -> bool: ...

    def create_table_if_not_exists(self, table: TableMetadata[object]) -> None:
        """Create ``table``; raise ``TableAlreadyExistsError`` if it is already there."""
        ...
