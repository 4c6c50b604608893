"""Settings threaded into every unit-of-work context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from cqlcontext.domain.model.enums import ConsistencyLevel

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_CONSISTENCY: Final[ConsistencyLevel] = ConsistencyLevel.LOCAL_ONE


@dataclass(frozen=True, slots=True)
class ContextSettings:
    """Explicit defaults for a context; nothing is read from the session at save time."""

    keyspace: str | None = None
    default_consistency: ConsistencyLevel = DEFAULT_CONSISTENCY


def parse_consistency(value: str) -> ConsistencyLevel:
    normalized = value.strip().upper().replace("-", "_")
    try:
        return ConsistencyLevel(normalized)
    except ValueError as exc:
        valid = ", ".join(level.value for level in ConsistencyLevel)
        raise ConfigurationError(
            f"Unknown consistency level {value!r}; expected one of: {valid}"
        ) from exc


def get_context_settings() -> ContextSettings:
    raw_consistency = optional_env_var("CQLCONTEXT_DEFAULT_CONSISTENCY")
    return ContextSettings(
        keyspace=optional_env_var("CASSANDRA_KEYSPACE"),
        default_consistency=(
            DEFAULT_CONSISTENCY if raw_consistency is None else parse_consistency(raw_consistency)
        ),
    )
