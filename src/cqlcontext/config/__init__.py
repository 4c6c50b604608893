"""Application configuration helpers."""

from __future__ import annotations

from .cassandra import DEFAULT_CQL_PORT, CassandraConfig, get_cassandra_config
from .context import DEFAULT_CONSISTENCY, ContextSettings, get_context_settings, parse_consistency
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError

__all__ = [
    "DEFAULT_CONSISTENCY",
    "DEFAULT_CQL_PORT",
    "CassandraConfig",
    "ConfigurationError",
    "ContextSettings",
    "MissingConfigurationError",
    "get_cassandra_config",
    "get_context_settings",
    "parse_consistency",
    "require_env_vars",
]
