"""Ports for per-table mutation tracking."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cqlcontext.cql.statements import CqlStatement
    from cqlcontext.domain.model.enums import (
        ConsistencyLevel,
        EntityTrackingMode,
        EntityUpdateMode,
        MutationState,
    )
    from cqlcontext.domain.model.tables import TableIdentity
    from cqlcontext.domain.ports.execution import StatementExecutor


@runtime_checkable
class BatchSink(Protocol):
    """Anything pending mutations can be appended to while a batch is assembled."""

    def add(self, statement: CqlStatement) -> None: ...

    @property
    def is_empty(self) -> bool: ...


@runtime_checkable
class MutationTrackerPort[TEntity](Protocol):
    """Per-table owner of tracked entity state."""

    def attach(
        self,
        entity: TEntity,
        update_mode: EntityUpdateMode,
        tracking_mode: EntityTrackingMode,
    ) -> None: ...

    def detach(self, entity: TEntity) -> None: ...

    def add_new(self, entity: TEntity, tracking_mode: EntityTrackingMode) -> None: ...

    def delete(self, entity: TEntity) -> None: ...

    def state_of(self, entity: TEntity) -> MutationState: ...

    def enable_tracing(self, entity: TEntity, enable: bool) -> None: ...

    def get_all_traces(self) -> list[object]: ...

    def get_trace(self, entity: TEntity) -> object | None: ...

    @property
    def pending_count(self) -> int: ...

    def pending_statements(self, identity: TableIdentity) -> list[CqlStatement]:
        """Render the pending mutations without recording them as part of a batch."""
        ...

    def append_pending_mutations(self, sink: BatchSink, identity: TableIdentity) -> bool:
        """Append every pending mutation to ``sink``; return whether any needs tracing.

        The tracker remembers what it contributed so ``mark_batch_complete`` can
        settle exactly that work once the batch is confirmed.
        """
        ...

    def execute_one_by_one(
        self,
        executor: StatementExecutor,
        identity: TableIdentity,
        consistency: ConsistencyLevel,
    ) -> None: ...

    def mark_batch_complete(self, trace: object | None) -> None:
        """Settle the contribution recorded by the last ``append_pending_mutations``."""
        ...
