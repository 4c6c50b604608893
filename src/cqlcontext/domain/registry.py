"""Registry of the tables a context tracks."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from cqlcontext.cql.identifiers import quoted_table_name
from cqlcontext.domain.errors import (
    ClassificationError,
    ContractViolationError,
    TableAlreadyExistsError,
    UnknownTableError,
)
from cqlcontext.domain.model.enums import ColumnKind, TableType
from cqlcontext.domain.model.schema import TableSchema
from cqlcontext.domain.model.tables import TableMetadata
from cqlcontext.domain.tracking import MutationTracker

if TYPE_CHECKING:
    from collections.abc import Iterator

    from cqlcontext.domain.model.tables import TableIdentity
    from cqlcontext.domain.ports.execution import StatementExecutor
    from cqlcontext.domain.ports.tracking import MutationTrackerPort


log = getLogger(__name__)

SCHEMA_ATTRIBUTE = "__table_schema__"


@dataclass(slots=True)
class _Registration:
    table: TableMetadata[Any]
    tracker: MutationTrackerPort[Any]


def resolve_schema(entity_type: type[object], schema: TableSchema | None = None) -> TableSchema:
    """Return the explicit ``schema`` or the one declared on ``entity_type``."""

    if schema is not None:
        return schema
    declared = getattr(entity_type, SCHEMA_ATTRIBUTE, None)
    if isinstance(declared, TableSchema):
        return declared
    raise ClassificationError(
        f"{entity_type.__name__} declares no table schema; pass schema= or set "
        f"{SCHEMA_ATTRIBUTE}"
    )


class TableRegistry:
    """Maps quoted table identities to table metadata and mutation trackers."""

    def __init__(self, *, default_keyspace: str | None = None) -> None:
        self.default_keyspace = default_keyspace
        self._registrations: dict[TableIdentity, _Registration] = {}

    def identity_for(
        self,
        entity_type: type[object],
        *,
        schema: TableSchema | None = None,
        table_name: str | None = None,
        keyspace: str | None = None,
    ) -> TableIdentity:
        if schema is None:
            declared = getattr(entity_type, SCHEMA_ATTRIBUTE, None)
            schema = declared if isinstance(declared, TableSchema) else None
        name = self._resolve_name(entity_type, schema, table_name)
        return quoted_table_name(name, keyspace or self.default_keyspace)

    def register[TEntity](
        self,
        entity_type: type[TEntity],
        *,
        schema: TableSchema | None = None,
        table_name: str | None = None,
        keyspace: str | None = None,
    ) -> TableMetadata[TEntity]:
        """Register ``entity_type``'s table, returning the existing one if already present."""

        resolved_schema = resolve_schema(entity_type, schema)
        name = self._resolve_name(entity_type, resolved_schema, table_name)
        resolved_keyspace = keyspace or self.default_keyspace
        identity = quoted_table_name(name, resolved_keyspace)

        existing = self._registrations.get(identity)
        if existing is not None:
            if existing.table.entity_type is not entity_type:
                raise ContractViolationError(
                    f"Table {identity} is already registered for "
                    f"{existing.table.entity_type.__name__}, not {entity_type.__name__}"
                )
            return existing.table

        table = TableMetadata(
            entity_type=entity_type,
            schema=resolved_schema,
            name=name,
            keyspace=resolved_keyspace,
            identity=identity,
        )
        self._registrations[identity] = _Registration(
            table=table, tracker=MutationTracker(resolved_schema)
        )
        log.debug("Registered table %s for %s", identity, entity_type.__name__)
        return table

    def classify(self, table: TableMetadata[Any]) -> TableType:
        """Return COUNTER when the table declares counter columns, else STANDARD."""

        if table.classification is not None:
            return table.classification

        schema = table.schema
        if not schema.counter_columns:
            table.classification = TableType.STANDARD
            return table.classification

        mixed = [
            col.name
            for col in schema.value_columns
            if col.kind is not ColumnKind.COUNTER
        ]
        if mixed:
            raise ClassificationError(
                f"Table {table.identity} mixes counter columns with non-counter columns: "
                f"{', '.join(mixed)}"
            )
        table.classification = TableType.COUNTER
        return table.classification

    def classification(self) -> dict[TableIdentity, TableType]:
        return {
            identity: self.classify(registration.table)
            for identity, registration in self._registrations.items()
        }

    def has(self, identity: TableIdentity) -> bool:
        return identity in self._registrations

    def get(self, identity: TableIdentity) -> TableMetadata[Any]:
        return self._lookup(identity).table

    def tracker(self, identity: TableIdentity) -> MutationTrackerPort[Any]:
        return self._lookup(identity).tracker

    def trackers(self) -> Iterator[tuple[TableIdentity, MutationTrackerPort[Any]]]:
        for identity, registration in self._registrations.items():
            yield identity, registration.tracker

    def tables(self) -> list[TableMetadata[Any]]:
        return [registration.table for registration in self._registrations.values()]

    def __len__(self) -> int:
        return len(self._registrations)

    def __contains__(self, identity: object) -> bool:
        return identity in self._registrations

    def create_all_if_not_exist(self, executor: StatementExecutor) -> None:
        """Create every registered table, treating "already exists" as success."""

        for registration in self._registrations.values():
            table = registration.table
            try:
                executor.create_table_if_not_exists(table)
            except TableAlreadyExistsError:
                log.debug("Table %s already exists", table.identity)
            else:
                log.info("Created table %s", table.identity)

    def _lookup(self, identity: TableIdentity) -> _Registration:
        registration = self._registrations.get(identity)
        if registration is None:
            raise UnknownTableError(f"Table {identity} is not registered in this context")
        return registration

    @staticmethod
    def _resolve_name(
        entity_type: type[object],
        schema: TableSchema | None,
        table_name: str | None,
    ) -> str:
        if table_name:
            return table_name
        if schema is not None and schema.name:
            return schema.name
        return entity_type.__name__
