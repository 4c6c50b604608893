"""Execution capability backed by a DataStax ``cassandra-driver`` session."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from cassandra import AlreadyExists
from cassandra import ConsistencyLevel as DriverConsistencyLevel
from cassandra.query import BatchStatement, BatchType, SimpleStatement

from cqlcontext.cql.builders import create_table_statement
from cqlcontext.cql.statements import CqlStatement, StructuredBatch
from cqlcontext.domain.errors import ContractViolationError, TableAlreadyExistsError
from cqlcontext.domain.model.enums import BatchKind
from cqlcontext.domain.ports.execution import ExecutionResult

if TYPE_CHECKING:
    from cassandra.cluster import ResponseFuture, Session
    from cassandra.query import PreparedStatement, Statement

    from cqlcontext.cql.statements import Payload
    from cqlcontext.domain.model.enums import ConsistencyLevel
    from cqlcontext.domain.model.tables import TableMetadata
    from cqlcontext.domain.ports.execution import ExecutionCallback, ExecutionHandle


log = getLogger(__name__)

_BATCH_TYPES = {
    BatchKind.LOGGED: BatchType.LOGGED,
    BatchKind.COUNTER: BatchType.COUNTER,
}


def driver_consistency(level: ConsistencyLevel) -> int:
    return DriverConsistencyLevel.name_to_value[level.value]


@dataclass(slots=True, eq=False)
class CassandraExecutionHandle:
    future: ResponseFuture
    tag: object
    tracing: bool
    state: object | None = None


class CassandraExecutor:
    """Runs payloads through a driver ``Session``, preparing bound statements once."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._prepared: dict[str, PreparedStatement] = {}

    def supports_structured_batch(self) -> bool:
        protocol_version = self.session.cluster.protocol_version
        return protocol_version is not None and protocol_version > 1

    def prepare(self, cql: str) -> PreparedStatement:
        prepared = self._prepared.get(cql)
        if prepared is None:
            prepared = self.session.prepare(cql)
            self._prepared[cql] = prepared
        return prepared

    def execute(
        self, payload: Payload, consistency: ConsistencyLevel, tracing: bool
    ) -> ExecutionResult:
        statement = self.to_driver_statement(payload, consistency)
        result_set = self.session.execute(statement, trace=tracing)
        trace = result_set.get_query_trace() if tracing else None
        return ExecutionResult(trace=trace, rows=result_set.current_rows)

    def begin_execute(
        self,
        payload: Payload,
        consistency: ConsistencyLevel,
        tracing: bool,
        tag: object,
        callback: ExecutionCallback | None = None,
        state: object | None = None,
    ) -> CassandraExecutionHandle:
        """Start ``payload`` on the driver and return a handle for ``end_execute``.

        ``callback`` fires once the request settles, whether it succeeded or
        failed; the outcome itself is only reported by ``end_execute``.
        """

        statement = self.to_driver_statement(payload, consistency)
        future = self.session.execute_async(statement, trace=tracing)
        handle = CassandraExecutionHandle(future=future, tag=tag, tracing=tracing, state=state)
        if callback is not None:
            future.add_callbacks(
                callback=lambda _rows: callback(handle),
                errback=lambda _exc: callback(handle),
            )
        return handle

    def end_execute(self, handle: ExecutionHandle) -> ExecutionResult:
        if not isinstance(handle, CassandraExecutionHandle):
            raise ContractViolationError(
                f"{type(handle).__name__} was not issued by CassandraExecutor.begin_execute"
            )
        result_set = handle.future.result()
        trace = handle.future.get_query_trace() if handle.tracing else None
        return ExecutionResult(trace=trace, rows=result_set.current_rows)

    def create_table_if_not_exists(self, table: TableMetadata[Any]) -> None:
        statement = create_table_statement(table.identity, table.schema)
        try:
            self.session.execute(SimpleStatement(statement.cql))
        except AlreadyExists as exc:
            raise TableAlreadyExistsError(table.identity) from exc

    def to_driver_statement(self, payload: Payload, consistency: ConsistencyLevel) -> Statement:
        level = driver_consistency(consistency)
        if isinstance(payload, StructuredBatch):
            batch = BatchStatement(
                batch_type=_BATCH_TYPES[payload.batch_kind], consistency_level=level
            )
            for statement in payload.statements:
                if statement.is_bound:
                    batch.add(self.prepare(statement.cql), statement.values)
                else:
                    batch.add(SimpleStatement(statement.cql))
            return batch
        return self._single_statement(payload, level)

    def _single_statement(self, statement: CqlStatement, level: int) -> Statement:
        if statement.is_bound:
            bound = self.prepare(statement.cql).bind(statement.values)
            bound.consistency_level = level
            return bound
        return SimpleStatement(statement.cql, consistency_level=level)
