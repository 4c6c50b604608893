"""In-memory mutation tracker for a single table.

The tracker keeps every entity the caller attached, inserted or deleted along
with a snapshot of its column values. Pending mutations are derived on demand
from the entity state and the snapshot, so rendering never changes the tracker.

Appending to a batch records a contribution per tracked entity: the state and
column values it had when the batch was assembled. ``mark_batch_complete``
settles exactly those contributions, so entities added or edited while the
write was in flight stay pending for the next save.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from cqlcontext.cql.builders import (
    counter_update_statement,
    delete_statement,
    insert_statement,
    update_statement,
)
from cqlcontext.domain.errors import EntityTrackingError
from cqlcontext.domain.model.enums import EntityTrackingMode, EntityUpdateMode, MutationState

if TYPE_CHECKING:
    from cqlcontext.cql.statements import CqlStatement
    from cqlcontext.domain.model.enums import ConsistencyLevel
    from cqlcontext.domain.model.schema import TableSchema
    from cqlcontext.domain.model.tables import TableIdentity
    from cqlcontext.domain.ports.execution import StatementExecutor
    from cqlcontext.domain.ports.tracking import BatchSink


log = getLogger(__name__)

type MutationKind = Literal["insert", "update", "increment", "delete"]


@dataclass(slots=True, eq=False)
class TrackedEntity[TEntity]:
    entity: TEntity
    state: MutationState
    update_mode: EntityUpdateMode
    tracking_mode: EntityTrackingMode
    snapshot: dict[str, object] = field(default_factory=dict[str, object])
    tracing: bool = False


@dataclass(frozen=True, slots=True)
class Mutation:
    kind: MutationKind
    assignments: dict[str, object]
    keys: dict[str, object]

    def render(self, identity: TableIdentity) -> CqlStatement:
        match self.kind:
            case "insert":
                return insert_statement(identity, {**self.keys, **self.assignments})
            case "update":
                return update_statement(identity, self.assignments, self.keys)
            case "increment":
                return counter_update_statement(identity, self.assignments, self.keys)
            case "delete":
                return delete_statement(identity, self.keys)


@dataclass(frozen=True, slots=True, eq=False)
class Contribution[TEntity]:
    """One tracked entity as it was when a save was assembled."""

    entry: TrackedEntity[TEntity]
    state: MutationState
    values: dict[str, object]
    mutation: Mutation | None


class MutationTracker[TEntity]:
    """Tracks entity state for one table and renders its pending writes."""

    def __init__(self, schema: TableSchema) -> None:
        self._schema = schema
        self._is_counter_table = bool(schema.counter_columns)
        self._entries: dict[int, TrackedEntity[TEntity]] = {}
        self._traces: dict[int, tuple[TEntity, object]] = {}
        self._in_batch: list[Contribution[TEntity]] = []

    # Entity lifecycle ----------------------------------------------------
    def attach(
        self,
        entity: TEntity,
        update_mode: EntityUpdateMode = EntityUpdateMode.ALL_OR_NONE,
        tracking_mode: EntityTrackingMode = EntityTrackingMode.KEEP_ATTACHED_AFTER_SAVE,
    ) -> None:
        if id(entity) in self._entries:
            raise EntityTrackingError(f"{type(entity).__name__} entity is already tracked")
        self._entries[id(entity)] = TrackedEntity(
            entity=entity,
            state=MutationState.ATTACHED,
            update_mode=update_mode,
            tracking_mode=tracking_mode,
            snapshot=self._schema.read_values(entity),
        )

    def detach(self, entity: TEntity) -> None:
        if self._entries.pop(id(entity), None) is None:
            raise EntityTrackingError(f"{type(entity).__name__} entity is not tracked")

    def add_new(
        self,
        entity: TEntity,
        tracking_mode: EntityTrackingMode = EntityTrackingMode.DETACH_AFTER_SAVE,
    ) -> None:
        if id(entity) in self._entries:
            raise EntityTrackingError(f"{type(entity).__name__} entity is already tracked")
        self._entries[id(entity)] = TrackedEntity(
            entity=entity,
            state=MutationState.NEW,
            update_mode=EntityUpdateMode.ALL_OR_NONE,
            tracking_mode=tracking_mode,
        )

    def delete(self, entity: TEntity) -> None:
        """Schedule a DELETE for ``entity``'s row.

        A NEW entity whose insert has not been handed to a batch is simply
        forgotten, since its row was never written. Untracked entities are
        tracked as deleted so their row is removed on the next save.
        """

        entry = self._entries.get(id(entity))
        if entry is None:
            self._entries[id(entity)] = TrackedEntity(
                entity=entity,
                state=MutationState.DELETED,
                update_mode=EntityUpdateMode.ALL_OR_NONE,
                tracking_mode=EntityTrackingMode.DETACH_AFTER_SAVE,
            )
            return
        if entry.state is MutationState.NEW and not self._is_in_batch(entry):
            del self._entries[id(entity)]
            return
        entry.state = MutationState.DELETED
        entry.tracking_mode = EntityTrackingMode.DETACH_AFTER_SAVE

    def state_of(self, entity: TEntity) -> MutationState:
        entry = self._entries.get(id(entity))
        return MutationState.DETACHED if entry is None else entry.state

    def __contains__(self, entity: object) -> bool:
        return id(entity) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # Tracing -------------------------------------------------------------
    def enable_tracing(self, entity: TEntity, enable: bool = True) -> None:
        entry = self._entries.get(id(entity))
        if entry is None:
            raise EntityTrackingError(f"{type(entity).__name__} entity is not tracked")
        entry.tracing = enable

    def get_all_traces(self) -> list[object]:
        return [trace for _, trace in self._traces.values()]

    def get_trace(self, entity: TEntity) -> object | None:
        stored = self._traces.get(id(entity))
        if stored is None or stored[0] is not entity:
            return None
        return stored[1]

    # Pending work --------------------------------------------------------
    @property
    def pending_count(self) -> int:
        return sum(1 for item in self._contributions() if item.mutation is not None)

    def pending_statements(self, identity: TableIdentity) -> list[CqlStatement]:
        return [
            item.mutation.render(identity)
            for item in self._contributions()
            if item.mutation is not None
        ]

    def append_pending_mutations(self, sink: BatchSink, identity: TableIdentity) -> bool:
        contributions = self._contributions()
        tracing = False
        for item in contributions:
            if item.mutation is not None:
                sink.add(item.mutation.render(identity))
                tracing |= item.entry.tracing
        self._in_batch = contributions
        return tracing

    def execute_one_by_one(
        self,
        executor: StatementExecutor,
        identity: TableIdentity,
        consistency: ConsistencyLevel,
    ) -> None:
        for item in self._contributions():
            trace = None
            if item.mutation is not None:
                result = executor.execute(
                    item.mutation.render(identity), consistency, item.entry.tracing
                )
                trace = result.trace
            self._complete(item, trace)

    def mark_batch_complete(self, trace: object | None) -> None:
        contributions, self._in_batch = self._in_batch, []
        for item in contributions:
            self._complete(item, trace)
        log.debug("Settled %s tracked entities after a confirmed batch", len(contributions))

    def _contributions(self) -> list[Contribution[TEntity]]:
        contributions: list[Contribution[TEntity]] = []
        for entry in self._entries.values():
            values = self._schema.read_values(entry.entity)
            contributions.append(
                Contribution(
                    entry=entry,
                    state=entry.state,
                    values=values,
                    mutation=self._mutation_for(entry, values),
                )
            )
        return contributions

    def _is_in_batch(self, entry: TrackedEntity[TEntity]) -> bool:
        return any(
            item.entry is entry and item.mutation is not None for item in self._in_batch
        )

    def _complete(self, item: Contribution[TEntity], trace: object | None) -> None:
        entry = item.entry
        key = id(entry.entity)
        if item.mutation is not None and entry.tracing and trace is not None:
            self._traces[key] = (entry.entity, trace)
        if self._entries.get(key) is not entry or entry.state is not item.state:
            # detached, deleted or replaced while the write was in flight
            return
        if (
            entry.state is MutationState.DELETED
            or entry.tracking_mode is EntityTrackingMode.DETACH_AFTER_SAVE
        ):
            del self._entries[key]
            return
        entry.state = MutationState.ATTACHED
        entry.snapshot = item.values

    # Mutation rendering --------------------------------------------------
    def _mutation_for(
        self, entry: TrackedEntity[TEntity], values: dict[str, object]
    ) -> Mutation | None:
        keys = self._key_values(entry.entity, values)

        if entry.state is MutationState.DELETED:
            return Mutation(kind="delete", assignments={}, keys=keys)

        if entry.state is MutationState.NEW:
            if self._is_counter_table:
                increments = {
                    col.name: values[col.name]
                    for col in self._schema.counter_columns
                    if values[col.name] not in (None, 0)
                }
                if not increments:
                    return None
                return Mutation(kind="increment", assignments=increments, keys=keys)
            assignments = {
                col.name: values[col.name]
                for col in self._schema.value_columns
                if values[col.name] is not None
            }
            return Mutation(kind="insert", assignments=assignments, keys=keys)

        if entry.state is MutationState.ATTACHED:
            changed = [
                col
                for col in self._schema.value_columns
                if values[col.name] != entry.snapshot.get(col.name)
            ]
            if not changed:
                return None
            if self._is_counter_table:
                increments = {
                    col.name: self._counter_delta(col.name, values, entry.snapshot)
                    for col in changed
                }
                return Mutation(kind="increment", assignments=increments, keys=keys)
            columns = (
                changed
                if entry.update_mode is EntityUpdateMode.MODIFIED_ONLY
                else self._schema.value_columns
            )
            assignments = {col.name: values[col.name] for col in columns}
            return Mutation(kind="update", assignments=assignments, keys=keys)

        return None

    def _key_values(self, entity: TEntity, values: dict[str, object]) -> dict[str, object]:
        keys = {col.name: values[col.name] for col in self._schema.primary_key}
        missing = [name for name, value in keys.items() if value is None]
        if missing:
            raise EntityTrackingError(
                f"{type(entity).__name__} entity has no value for key column(s): "
                f"{', '.join(missing)}"
            )
        return keys

    @staticmethod
    def _counter_delta(name: str, values: dict[str, object], snapshot: dict[str, object]) -> int:
        current = values[name] or 0
        previous = snapshot.get(name) or 0
        if not isinstance(current, int) or not isinstance(previous, int):
            raise EntityTrackingError(f"Counter column {name!r} must hold an integer")
        return current - previous
