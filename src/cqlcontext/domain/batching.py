"""Assemble pending work into one batch payload per table class."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from cqlcontext.cql.statements import CqlStatement, StructuredBatch
from cqlcontext.domain.errors import ContractViolationError
from cqlcontext.domain.model.enums import SINGLE_TABLE_TYPES, BatchKind, TableType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from cqlcontext.cql.statements import Payload
    from cqlcontext.domain.commands import AdditionalCommand, AdditionalCommandQueue
    from cqlcontext.domain.model.tables import TableIdentity
    from cqlcontext.domain.ports.execution import StatementExecutor
    from cqlcontext.domain.ports.tracking import BatchSink
    from cqlcontext.domain.registry import TableRegistry


log = getLogger(__name__)


@dataclass(slots=True)
class ScriptBatch:
    """Legacy batch: a literal ``BEGIN BATCH ... APPLY BATCH`` script."""

    batch_kind: BatchKind
    statements: list[CqlStatement] = field(default_factory=list[CqlStatement])

    def add(self, statement: CqlStatement) -> None:
        self.statements.append(statement)

    @property
    def is_empty(self) -> bool:
        return not self.statements

    def render(self) -> str:
        header = "BEGIN COUNTER BATCH" if self.batch_kind is BatchKind.COUNTER else "BEGIN BATCH"
        body = "".join(f"{statement.to_literal_cql()};\n" for statement in self.statements)
        return f"{header}\n{body}APPLY BATCH"

    def to_statement(self) -> CqlStatement:
        return CqlStatement(cql=self.render())


@dataclass(frozen=True, slots=True)
class SaveTag:
    """Continuation carried from the begin half of a batch save to its end half."""

    classification: Mapping[TableIdentity, TableType]
    table_type: TableType
    leftover_commands: tuple[AdditionalCommand, ...]
    queued_count: int = 0


@dataclass(frozen=True, slots=True)
class AssembledBatch:
    payload: Payload
    tracing: bool
    tag: SaveTag


def batch_kind_for(table_type: TableType) -> BatchKind:
    if table_type is TableType.COUNTER:
        return BatchKind.COUNTER
    if table_type is TableType.STANDARD:
        return BatchKind.LOGGED
    raise ContractViolationError(
        f"A batch is assembled for exactly one table type, got {table_type!r}"
    )


class BatchAssembler:
    """Builds per-class batch payloads from the registry and the command queue.

    The payload encoding is negotiated once, when the assembler is created:
    executors that support protocol-level batches get a ``StructuredBatch`` of
    bound statements, the others a literal CQL script.
    """

    def __init__(self, registry: TableRegistry, *, structured: bool) -> None:
        self._registry = registry
        self.structured = structured

    @classmethod
    def for_executor(cls, registry: TableRegistry, executor: StatementExecutor) -> BatchAssembler:
        return cls(registry, structured=executor.supports_structured_batch())

    def assemble(
        self,
        table_type: TableType,
        commands: AdditionalCommandQueue,
    ) -> AssembledBatch | None:
        """Return the batch for ``table_type``, or ``None`` when it would be empty."""

        kind = batch_kind_for(table_type)
        classification = self._registry.classification()
        sink: ScriptBatch | StructuredBatch = (
            StructuredBatch(batch_kind=kind) if self.structured else ScriptBatch(batch_kind=kind)
        )
        tracing, leftover = self._fill(sink, classification, table_type, commands)
        if sink.is_empty:
            log.debug("Nothing to save for %s tables", table_type.name)
            return None

        payload: Payload = sink if isinstance(sink, StructuredBatch) else sink.to_statement()
        log.debug(
            "Assembled %s batch with %s statements (tracing=%s, leftover commands=%s)",
            kind,
            len(sink.statements),
            tracing,
            len(leftover),
        )
        return AssembledBatch(
            payload=payload,
            tracing=tracing,
            tag=SaveTag(
                classification=classification,
                table_type=table_type,
                leftover_commands=tuple(leftover),
                queued_count=len(commands),
            ),
        )

    def render_script(self, table_type: TableType, commands: AdditionalCommandQueue) -> str:
        """Render the legacy script for ``table_type`` without executing anything."""

        sink = ScriptBatch(batch_kind=batch_kind_for(table_type))
        classification = self._registry.classification()
        for identity, tracker in self._registry.trackers():
            if classification[identity] is table_type:
                for statement in tracker.pending_statements(identity):
                    sink.add(statement)
        included, _ = commands.partition(classification, table_type)
        for command in included:
            sink.add(command.statement)
        return "" if sink.is_empty else sink.render()

    def render_all(self, table_type: TableType, commands: AdditionalCommandQueue) -> list[str]:
        return [
            script
            for single in SINGLE_TABLE_TYPES
            if single in table_type and (script := self.render_script(single, commands))
        ]

    def _fill(
        self,
        sink: BatchSink,
        classification: Mapping[TableIdentity, TableType],
        table_type: TableType,
        commands: AdditionalCommandQueue,
    ) -> tuple[bool, list[AdditionalCommand]]:
        tracing = False
        for identity, tracker in self._registry.trackers():
            if classification[identity] is table_type:
                tracing |= tracker.append_pending_mutations(sink, identity)

        included, leftover = commands.partition(classification, table_type)
        for command in included:
            sink.add(command.statement)
            tracing |= command.tracing
        return tracing, leftover
