"""Cassandra cluster connection configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_env_var, optional_int_env_var, require_env_vars
from .errors import ConfigurationError

DEFAULT_CQL_PORT: Final[int] = 9042


@dataclass(frozen=True, slots=True)
class CassandraConfig:
    """Holds the values needed to open a driver session."""

    contact_points: tuple[str, ...]
    port: int = DEFAULT_CQL_PORT
    keyspace: str | None = None
    protocol_version: int | None = None


def _split_contact_points(raw: str) -> tuple[str, ...]:
    points = tuple(part.strip() for part in raw.split(",") if part.strip())
    if not points:
        raise ConfigurationError(
            "CASSANDRA_CONTACT_POINTS does not name any host",
            variable="CASSANDRA_CONTACT_POINTS",
        )
    return points


def get_cassandra_config() -> CassandraConfig:
    values = require_env_vars(("CASSANDRA_CONTACT_POINTS",))
    port = optional_int_env_var("CASSANDRA_PORT")
    return CassandraConfig(
        contact_points=_split_contact_points(values["CASSANDRA_CONTACT_POINTS"]),
        port=DEFAULT_CQL_PORT if port is None else port,
        keyspace=optional_env_var("CASSANDRA_KEYSPACE"),
        protocol_version=optional_int_env_var("CASSANDRA_PROTOCOL_VERSION"),
    )
