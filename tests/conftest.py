"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import pytest

from indexsync import IndexSync, SearchIndex
from indexsync.registry import StrategyRegistry
from indexsync.strategies import register_builtin_strategies
from tests.helpers.index_client import RecordingIndexClient
from tests.helpers.log_capture import RecordingLogger, install_recording_logger
from tests.helpers.records import serialize_county, serialize_state, serialize_user

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@pytest.fixture
def index_client() -> RecordingIndexClient:
    """Return an index client that records every request."""
    return RecordingIndexClient()


@pytest.fixture
def registry() -> StrategyRegistry:
    """Return a private registry holding the built-in strategies."""
    registry = StrategyRegistry()
    register_builtin_strategies(registry)
    return registry


@pytest.fixture
def sync(
    registry: StrategyRegistry, index_client: RecordingIndexClient
) -> cabc.Iterator[IndexSync]:
    """Return a context with ``geographies`` and ``users`` indices.

    ``geographies`` holds the ``state`` and ``county`` collections and
    ``users`` holds a single ``user`` collection. Nothing is bound yet.
    Enablement entries are dropped after the test.
    """
    sync = IndexSync(registry=registry)
    geographies = sync.add_index(SearchIndex("geographies", index_client))
    geographies.collection("state", serialize_state)
    geographies.collection("county", serialize_county)
    users = sync.add_index(SearchIndex("users", index_client))
    users.collection("user", serialize_user)
    yield sync
    sync.enablement.reset()


@pytest.fixture
def sync_events(monkeypatch: pytest.MonkeyPatch) -> RecordingLogger:
    """Capture structured synchronisation events."""
    return install_recording_logger(monkeypatch, "indexsync.observability")
