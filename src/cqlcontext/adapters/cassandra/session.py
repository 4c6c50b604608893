"""Managed driver cluster/session lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from cassandra.cluster import Cluster

from cqlcontext.adapters.cassandra.executor import CassandraExecutor
from cqlcontext.config.cassandra import get_cassandra_config
from cqlcontext.config.context import get_context_settings
from cqlcontext.domain.context import Context

if TYPE_CHECKING:
    from cassandra.cluster import Session

    from cqlcontext.config.cassandra import CassandraConfig
    from cqlcontext.config.context import ContextSettings


log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the Cassandra adapter is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    cluster: Cluster | None = None
    session: Session | None = None

    def require_session(self) -> Session:
        if self.session is None:
            raise StartupError(
                "Cassandra adapter not initialised. Call cqlcontext.adapters.cassandra."
                "session.startup() before requesting an executor."
            )
        return self.session


_STATE = _AdapterState()


def build_cluster(config: CassandraConfig) -> Cluster:
    options: dict[str, Any] = {"contact_points": list(config.contact_points), "port": config.port}
    if config.protocol_version is not None:
        options["protocol_version"] = config.protocol_version
    return Cluster(**options)


def startup(
    *,
    config: CassandraConfig | None = None,
    cluster: Cluster | None = None,
    force: bool = False,
) -> Session:
    """Connect the managed cluster and open its session."""

    if _STATE.session is not None and not force:
        raise StartupError("Cassandra adapter already initialised. Pass force=True to reconnect.")
    if _STATE.session is not None:
        shutdown()

    resolved_config = config or get_cassandra_config()
    resolved_cluster = cluster or build_cluster(resolved_config)
    session = resolved_cluster.connect(resolved_config.keyspace)
    log.info(
        "Connected to %s (keyspace=%s, protocol v%s)",
        ", ".join(resolved_config.contact_points),
        resolved_config.keyspace,
        resolved_cluster.protocol_version,
    )
    _STATE.cluster = resolved_cluster
    _STATE.session = session
    return session


def is_started() -> bool:
    return _STATE.session is not None


def shutdown() -> None:
    """Close the managed cluster and reset state (primarily for tests)."""

    if _STATE.cluster is not None:
        _STATE.cluster.shutdown()
    _STATE.cluster = None
    _STATE.session = None


def get_executor() -> CassandraExecutor:
    return CassandraExecutor(_STATE.require_session())


def create_context(settings: ContextSettings | None = None) -> Context:
    """Return a fresh unit-of-work context bound to the managed session."""

    return Context(get_executor(), settings or get_context_settings())
