"""Table metadata owned by the registry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cqlcontext.domain.model.enums import TableType
    from cqlcontext.domain.model.schema import TableSchema

type TableIdentity = str


@dataclass(slots=True, eq=False)
class TableMetadata[TEntity]:
    """A registered table: its entity type, schema and resolved identity."""

    entity_type: type[TEntity]
    schema: TableSchema
    name: str
    keyspace: str | None
    identity: TableIdentity
    classification: TableType | None = None  # cached by TableRegistry.classify

    def __repr__(self) -> str:
        return f"TableMetadata({self.identity}, entity_type={self.entity_type.__name__})"
