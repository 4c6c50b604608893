"""Free-standing write commands queued alongside tracked mutations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cqlcontext.domain.errors import UnknownTableError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from cqlcontext.cql.statements import CqlStatement
    from cqlcontext.domain.model.enums import TableType
    from cqlcontext.domain.model.tables import TableIdentity, TableMetadata


@dataclass(frozen=True, slots=True, eq=False)
class AdditionalCommand:
    """A write not tied to entity tracking, classified through its owning table."""

    table: TableMetadata[Any]
    statement: CqlStatement
    tracing: bool = False

    @property
    def identity(self) -> TableIdentity:
        return self.table.identity

    def to_cql(self) -> str:
        return self.statement.to_literal_cql()

    def __str__(self) -> str:
        return self.to_cql()


class AdditionalCommandQueue:
    """Ordered queue of additional commands; insertion order is kept throughout."""

    def __init__(self, commands: Iterable[AdditionalCommand] = ()) -> None:
        self._commands: list[AdditionalCommand] = list(commands)

    def append(self, command: AdditionalCommand) -> None:
        self._commands.append(command)

    def replace(self, commands: Iterable[AdditionalCommand]) -> None:
        self._commands = list(commands)

    def requeue(self, leftover: Iterable[AdditionalCommand], consumed: int) -> None:
        """Swap the first ``consumed`` commands for ``leftover``, keeping later appends."""

        self._commands = [*leftover, *self._commands[consumed:]]

    def clear(self) -> None:
        self._commands.clear()

    def snapshot(self) -> tuple[AdditionalCommand, ...]:
        return tuple(self._commands)

    def partition(
        self,
        classification: Mapping[TableIdentity, TableType],
        table_type: TableType,
    ) -> tuple[list[AdditionalCommand], list[AdditionalCommand]]:
        """Split the queue into commands saved under ``table_type`` and leftovers.

        A command is included when its table's class is part of ``table_type``;
        every other command is leftover and must be requeued by the caller. Both
        lists keep queue order.
        """

        included: list[AdditionalCommand] = []
        leftover: list[AdditionalCommand] = []
        for command in self._commands:
            command_type = classification.get(command.identity)
            if command_type is None:
                raise UnknownTableError(
                    f"Command targets table {command.identity}, which is not registered"
                )
            if command_type in table_type:
                included.append(command)
            else:
                leftover.append(command)
        return included, leftover

    def __iter__(self) -> Iterator[AdditionalCommand]:
        return iter(tuple(self._commands))

    def __len__(self) -> int:
        return len(self._commands)

    def __bool__(self) -> bool:
        return bool(self._commands)
