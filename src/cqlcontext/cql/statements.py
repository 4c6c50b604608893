"""Statement payloads handed to the execution capability."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cassandra.encoder import Encoder

if TYPE_CHECKING:
    from cqlcontext.domain.model.enums import BatchKind

BIND_MARKER = "?"

_DEFAULT_ENCODER = Encoder()


def split_on_bind_markers(cql: str) -> list[str]:
    """Split ``cql`` on ``?`` markers that are not inside quoted text or identifiers."""

    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for char in cql:
        if quote is not None:
            current.append(char)
            if char == quote:
                # doubled quotes re-enter the quoted run on the next character
                quote = None
            continue
        if char in {"'", '"'}:
            quote = char
            current.append(char)
        elif char == BIND_MARKER:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


@dataclass(frozen=True, slots=True)
class CqlStatement:
    """A single CQL statement with ``?`` bind markers and positional values."""

    cql: str
    values: tuple[object, ...] = ()

    def __post_init__(self) -> None:
        markers = len(split_on_bind_markers(self.cql)) - 1
        if markers != len(self.values):
            raise ValueError(
                f"Statement has {markers} bind markers but {len(self.values)} values: {self.cql}"
            )

    @property
    def is_bound(self) -> bool:
        return bool(self.values)

    def to_literal_cql(self, encoder: Encoder | None = None) -> str:
        """Render the statement with every value inlined as a CQL literal."""

        if not self.values:
            return self.cql
        active_encoder = encoder or _DEFAULT_ENCODER
        fragments = split_on_bind_markers(self.cql)
        rendered = [fragments[0]]
        for value, fragment in zip(self.values, fragments[1:], strict=True):
            rendered.append(active_encoder.cql_encode_all_types(value))
            rendered.append(fragment)
        return "".join(rendered)

    def __str__(self) -> str:
        return self.to_literal_cql()


@dataclass(slots=True)
class StructuredBatch:
    """A typed batch of bound statements (protocol v2+ batch messages)."""

    batch_kind: BatchKind
    statements: list[CqlStatement] = field(default_factory=list[CqlStatement])

    def add(self, statement: CqlStatement) -> None:
        self.statements.append(statement)

    @property
    def is_empty(self) -> bool:
        return not self.statements

    def __len__(self) -> int:
        return len(self.statements)


type Payload = CqlStatement | StructuredBatch
