from __future__ import annotations

import pytest

from cqlcontext.config.context import ContextSettings
from cqlcontext.domain.context import Context
from cqlcontext.domain.model import ConsistencyLevel
from tests.helpers.execution import RecordingExecutor


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def legacy_executor() -> RecordingExecutor:
    return RecordingExecutor(structured=False)


@pytest.fixture
def settings() -> ContextSettings:
    return ContextSettings(keyspace="app", default_consistency=ConsistencyLevel.QUORUM)


@pytest.fixture
def context(executor: RecordingExecutor, settings: ContextSettings) -> Context:
    return Context(executor, settings)


@pytest.fixture
def legacy_context(legacy_executor: RecordingExecutor, settings: ContextSettings) -> Context:
    return Context(legacy_executor, settings)
