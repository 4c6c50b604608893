"""Pydantic descriptors of table schemas.

Entities are plain Python objects; the schema says which attribute feeds which
column and what role each column plays in the primary key. Counter detection
is driven entirely by these descriptors.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cqlcontext.domain.errors import EntityTrackingError
from cqlcontext.domain.model.enums import ColumnKind

_KEY_KINDS = frozenset({ColumnKind.PARTITION_KEY, ColumnKind.CLUSTERING_KEY})


class SchemaBaseModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Column(SchemaBaseModel):
    name: str = Field(min_length=1)
    cql_type: str = "text"
    kind: ColumnKind = ColumnKind.REGULAR
    attribute: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_counter_type(cls, value: object) -> object:
        if isinstance(value, Mapping):
            data = dict(cast(Mapping[str, object], value))
            if data.get("kind") == ColumnKind.COUNTER and "cql_type" not in data:
                data["cql_type"] = "counter"
            return data
        return value

    @property
    def attribute_name(self) -> str:
        return self.attribute or self.name

    @property
    def is_key(self) -> bool:
        return self.kind in _KEY_KINDS

    @property
    def is_counter(self) -> bool:
        return self.kind is ColumnKind.COUNTER


class TableSchema(SchemaBaseModel):
    name: str | None = None
    columns: tuple[Column, ...]

    @model_validator(mode="after")
    def _check_columns(self) -> TableSchema:
        if not self.columns:
            raise ValueError("a table schema needs at least one column")
        names = [column.name for column in self.columns]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"duplicate column names: {', '.join(duplicates)}")
        if not self.partition_keys:
            raise ValueError("a table schema needs at least one partition key column")
        return self

    @property
    def partition_keys(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if c.kind is ColumnKind.PARTITION_KEY)

    @property
    def clustering_keys(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if c.kind is ColumnKind.CLUSTERING_KEY)

    @property
    def primary_key(self) -> tuple[Column, ...]:
        return self.partition_keys + self.clustering_keys

    @property
    def value_columns(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if not c.is_key)

    @property
    def counter_columns(self) -> tuple[Column, ...]:
        return tuple(c for c in self.columns if c.is_counter)

    def read_values(self, entity: object) -> dict[str, object]:
        """Return ``{column name: value}`` read from ``entity`` in column order."""

        values: dict[str, object] = {}
        for column in self.columns:
            try:
                values[column.name] = getattr(entity, column.attribute_name)
            except AttributeError as exc:
                raise EntityTrackingError(
                    f"{type(entity).__name__} has no attribute {column.attribute_name!r} "
                    f"for column {column.name!r}"
                ) from exc
        return values


def partition_key(name: str, cql_type: str = "text", *, attribute: str | None = None) -> Column:
    return Column(name=name, cql_type=cql_type, kind=ColumnKind.PARTITION_KEY, attribute=attribute)


def clustering_key(name: str, cql_type: str = "text", *, attribute: str | None = None) -> Column:
    return Column(
        name=name, cql_type=cql_type, kind=ColumnKind.CLUSTERING_KEY, attribute=attribute
    )


def column(name: str, cql_type: str = "text", *, attribute: str | None = None) -> Column:
    return Column(name=name, cql_type=cql_type, kind=ColumnKind.REGULAR, attribute=attribute)


def static_column(name: str, cql_type: str = "text", *, attribute: str | None = None) -> Column:
    return Column(name=name, cql_type=cql_type, kind=ColumnKind.STATIC, attribute=attribute)


def counter(name: str, *, attribute: str | None = None) -> Column:
    return Column(name=name, cql_type="counter", kind=ColumnKind.COUNTER, attribute=attribute)
