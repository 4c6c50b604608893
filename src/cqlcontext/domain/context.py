"""Unit-of-work context: entity routing and the save-changes orchestration.

A save moves through ``Idle -> Assembling -> Dispatched -> Reconciling -> Idle``.
The synchronous entry point ``save_changes`` runs the whole cycle; the
``begin_save_changes_batch`` / ``end_save_changes_batch`` pair exposes the
dispatched and reconciling halves separately. Trackers and the command queue
are only touched while reconciling a confirmed write, so a failed save leaves
all pending work in place for a retry.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from cqlcontext.config.context import ContextSettings
from cqlcontext.cql.statements import CqlStatement
from cqlcontext.domain.batching import BatchAssembler, SaveTag
from cqlcontext.domain.commands import AdditionalCommand, AdditionalCommandQueue
from cqlcontext.domain.errors import ContractViolationError, UnknownTableError
from cqlcontext.domain.model.enums import (
    SINGLE_TABLE_TYPES,
    EntityTrackingMode,
    EntityUpdateMode,
    SaveChangesMode,
    TableType,
)
from cqlcontext.domain.registry import TableRegistry

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from cqlcontext.domain.model.enums import ConsistencyLevel, MutationState
    from cqlcontext.domain.model.schema import TableSchema
    from cqlcontext.domain.model.tables import TableIdentity, TableMetadata
    from cqlcontext.domain.ports.execution import (
        ExecutionCallback,
        ExecutionHandle,
        ExecutionResult,
        StatementExecutor,
    )
    from cqlcontext.domain.ports.tracking import MutationTrackerPort


log = getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class PendingSave:
    """Handle for a dispatched batch save; pass it to ``end_save_changes_batch``."""

    handle: ExecutionHandle
    table_type: TableType

    @property
    def tag(self) -> SaveTag:
        tag = self.handle.tag
        if not isinstance(tag, SaveTag):
            raise ContractViolationError("Execution handle does not carry a save tag")
        return tag


class ContextTable[TEntity]:
    """Entity-facing view of a table registered in a ``Context``."""

    def __init__(self, table: TableMetadata[TEntity], context: Context) -> None:
        self.table = table
        self._context = context

    @property
    def identity(self) -> TableIdentity:
        return self.table.identity

    @property
    def tracker(self) -> MutationTrackerPort[TEntity]:
        return self._context.tracker_for(self.table)

    def insert(
        self,
        entity: TEntity,
        tracking_mode: EntityTrackingMode = EntityTrackingMode.DETACH_AFTER_SAVE,
    ) -> None:
        self.add_new(entity, tracking_mode)

    def add_new(
        self,
        entity: TEntity,
        tracking_mode: EntityTrackingMode = EntityTrackingMode.DETACH_AFTER_SAVE,
    ) -> None:
        self.tracker.add_new(entity, tracking_mode)

    def attach(
        self,
        entity: TEntity,
        update_mode: EntityUpdateMode = EntityUpdateMode.ALL_OR_NONE,
        tracking_mode: EntityTrackingMode = EntityTrackingMode.KEEP_ATTACHED_AFTER_SAVE,
    ) -> None:
        self.tracker.attach(entity, update_mode, tracking_mode)

    def detach(self, entity: TEntity) -> None:
        self.tracker.detach(entity)

    def delete(self, entity: TEntity) -> None:
        self.tracker.delete(entity)

    def state_of(self, entity: TEntity) -> MutationState:
        return self.tracker.state_of(entity)

    def enable_query_tracing(self, entity: TEntity, enable: bool = True) -> None:
        self.tracker.enable_tracing(entity, enable)

    def retrieve_all_query_traces(self) -> list[object]:
        return self.tracker.get_all_traces()

    def retrieve_query_trace(self, entity: TEntity) -> object | None:
        return self.tracker.get_trace(entity)

    def command(
        self,
        cql: str,
        values: Sequence[object] = (),
        *,
        tracing: bool = False,
    ) -> AdditionalCommand:
        """Queue a free-standing write against this table and return it."""

        command = AdditionalCommand(
            table=self.table,
            statement=CqlStatement(cql=cql, values=tuple(values)),
            tracing=tracing,
        )
        self._context.append_command(command)
        return command

    def __repr__(self) -> str:
        return f"ContextTable({self.identity})"


class Context:
    """Tracks entity mutations across tables and saves them in minimal batches."""

    def __init__(
        self,
        executor: StatementExecutor,
        settings: ContextSettings | None = None,
    ) -> None:
        self.executor = executor
        self.settings = settings or ContextSettings()
        self.registry = TableRegistry(default_keyspace=self.settings.keyspace)
        self._commands = AdditionalCommandQueue()
        self._assembler = BatchAssembler.for_executor(self.registry, executor)
        self._in_flight: PendingSave | None = None

    @property
    def keyspace(self) -> str | None:
        return self.settings.keyspace

    # Tables --------------------------------------------------------------
    def add_table[TEntity](
        self,
        entity_type: type[TEntity],
        *,
        schema: TableSchema | None = None,
        table_name: str | None = None,
        keyspace: str | None = None,
    ) -> ContextTable[TEntity]:
        table = self.registry.register(
            entity_type, schema=schema, table_name=table_name, keyspace=keyspace
        )
        return ContextTable(table, self)

    def has_table(
        self,
        entity_type: type[object],
        *,
        table_name: str | None = None,
        keyspace: str | None = None,
    ) -> bool:
        identity = self.registry.identity_for(
            entity_type, table_name=table_name, keyspace=keyspace
        )
        return identity in self.registry

    def get_table[TEntity](
        self,
        entity_type: type[TEntity],
        *,
        table_name: str | None = None,
        keyspace: str | None = None,
    ) -> ContextTable[TEntity]:
        identity = self.registry.identity_for(
            entity_type, table_name=table_name, keyspace=keyspace
        )
        table = self.registry.get(identity)
        if table.entity_type is not entity_type:
            raise ContractViolationError(
                f"Table {identity} tracks {table.entity_type.__name__}, not {entity_type.__name__}"
            )
        return ContextTable(table, self)

    def tracker_for[TEntity](self, table: TableMetadata[TEntity]) -> MutationTrackerPort[TEntity]:
        return self.registry.tracker(table.identity)

    def create_tables_if_not_exist(self) -> None:
        self.registry.create_all_if_not_exist(self.executor)

    # Additional commands -------------------------------------------------
    def append_command(self, command: AdditionalCommand) -> None:
        if command.identity not in self.registry:
            raise UnknownTableError(
                f"Command targets table {command.identity}, which is not registered"
            )
        self._commands.append(command)

    @property
    def pending_commands(self) -> tuple[AdditionalCommand, ...]:
        return self._commands.snapshot()

    # Saving --------------------------------------------------------------
    def save_changes(
        self,
        consistency: ConsistencyLevel | None = None,
        mode: SaveChangesMode = SaveChangesMode.BATCH,
        table_type: TableType = TableType.ALL,
    ) -> None:
        level = consistency or self.settings.default_consistency
        log.info("Saving changes: mode=%s, table_type=%s, consistency=%s", mode, table_type, level)

        if mode is SaveChangesMode.ONE_BY_ONE:
            self._save_one_by_one(level, table_type)
            return

        for single in SINGLE_TABLE_TYPES:
            if single not in table_type:
                continue
            pending = self.begin_save_changes_batch(single, level)
            if pending is not None:
                self.end_save_changes_batch(pending)

    def begin_save_changes_batch(
        self,
        table_type: TableType,
        consistency: ConsistencyLevel | None = None,
        callback: ExecutionCallback | None = None,
        state: object | None = None,
    ) -> PendingSave | None:
        """Dispatch the batch for one table class; ``None`` means there is nothing to save."""

        if table_type not in SINGLE_TABLE_TYPES:
            raise ContractViolationError(
                f"begin_save_changes_batch needs a single table type, got {table_type!r}"
            )
        if self._in_flight is not None:
            raise ContractViolationError(
                "A batch save is already in flight; call end_save_changes_batch first"
            )

        assembled = self._assembler.assemble(table_type, self._commands)
        if assembled is None:
            # entities without a pending mutation still follow their tracking mode
            self._settle(self.registry.classification(), table_type, None)
            return None

        handle = self.executor.begin_execute(
            assembled.payload,
            consistency or self.settings.default_consistency,
            assembled.tracing,
            assembled.tag,
            callback,
            state,
        )
        pending = PendingSave(handle=handle, table_type=table_type)
        self._in_flight = pending
        return pending

    def end_save_changes_batch(self, pending: PendingSave) -> ExecutionResult:
        """Wait for ``pending`` and mark the saved work complete."""

        if pending is not self._in_flight:
            raise ContractViolationError("Pending save does not belong to this context's batch")
        try:
            tag = pending.tag
            result = self.executor.end_execute(pending.handle)
        finally:
            self._in_flight = None

        saved = self._settle(tag.classification, tag.table_type, result.trace)
        self._commands.requeue(tag.leftover_commands, tag.queued_count)
        log.info(
            "Saved %s batch for %s tables, %s commands requeued",
            tag.table_type.name,
            saved,
            len(tag.leftover_commands),
        )
        return result

    def _settle(
        self,
        classification: Mapping[TableIdentity, TableType],
        table_type: TableType,
        trace: object | None,
    ) -> int:
        settled = 0
        for identity, tracker in self.registry.trackers():
            if classification.get(identity) is table_type:
                tracker.mark_batch_complete(trace)
                settled += 1
        return settled

    def _save_one_by_one(self, consistency: ConsistencyLevel, table_type: TableType) -> None:
        if self._in_flight is not None:
            raise ContractViolationError(
                "A batch save is in flight; call end_save_changes_batch before saving again"
            )
        classification = self.registry.classification()
        for identity, tracker in self.registry.trackers():
            if classification[identity] in table_type:
                tracker.execute_one_by_one(self.executor, identity, consistency)

        included, leftover = self._commands.partition(classification, table_type)
        for command in included:
            self.executor.execute(command.statement, consistency, command.tracing)
        self._commands.replace(leftover)

    # Rendering -----------------------------------------------------------
    def to_cql(self, table_type: TableType = TableType.ALL) -> str:
        """Render the pending work as legacy batch scripts, one per table class."""

        return "\n".join(self._assembler.render_all(table_type, self._commands))

    def __str__(self) -> str:
        return self._assembler.render_script(TableType.STANDARD, self._commands)

    def __repr__(self) -> str:
        return (
            f"Context(keyspace={self.keyspace!r}, tables={len(self.registry)}, "
            f"commands={len(self._commands)})"
        )
