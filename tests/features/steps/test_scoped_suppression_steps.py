"""Step definitions for scoped suppression scenarios."""

from __future__ import annotations

import typing as typ

import pytest
from pytest_bdd import given, parsers, scenarios, then, when

from tests.helpers.records import State, User

if typ.TYPE_CHECKING:
    from indexsync import IndexSync
    from tests.helpers.index_client import RecordingIndexClient

scenarios("../scoped_suppression.feature")


class _BulkJobError(RuntimeError):
    """Raised from inside a suppressed block."""


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------


@given(parsers.parse('states are indexed into "{target_name}"'))
def given_states_indexed(sync: IndexSync, target_name: str) -> None:
    """Bind states to ``target_name``."""
    sync.index_callback(State, target_name)


@given(parsers.parse('users are indexed into "{target_name}"'))
def given_users_indexed(sync: IndexSync, target_name: str) -> None:
    """Bind users to ``target_name``."""
    sync.index_callback(User, target_name)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------


def _create_state_and_user(sync: IndexSync) -> None:
    sync.handle(State(17, "Illinois"), "create")
    sync.handle(User(1, "a@example.com"), "create")


@when(
    parsers.parse(
        'a state and a user are created while "{target_name}" is suppressed'
    )
)
def when_created_with_collection_suppressed(
    sync: IndexSync, target_name: str
) -> None:
    """Create records inside a collection suppression block."""
    with sync.without_indexing(target_name):
        _create_state_and_user(sync)


@when("a state and a user are created while users are suppressed")
def when_created_with_source_suppressed(sync: IndexSync) -> None:
    """Create records inside a source-kind suppression block."""
    with sync.without_indexing_for(User):
        _create_state_and_user(sync)


@when("a block suppressing every collection raises an error")
def when_block_raises(sync: IndexSync) -> None:
    """Raise from inside a global suppression block."""
    with pytest.raises(_BulkJobError), sync.without_indexing():
        assert sync.enablement.is_disabled()
        raise _BulkJobError


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------


@then(parsers.parse('only the "{collection}" collection receives requests'))
def then_only_collection(
    index_client: RecordingIndexClient, collection: str
) -> None:
    """Assert every request targeted ``collection``."""
    assert {call.collection for call in index_client.calls} == {collection}


@then("every collection is enabled afterwards")
def then_all_enabled(sync: IndexSync) -> None:
    """Assert no suppression outlived its block."""
    assert sync.enablement.is_enabled()


@then("users are enabled afterwards")
def then_users_enabled(sync: IndexSync) -> None:
    """Assert the source-kind suppression ended with its block."""
    assert sync.enablement.is_enabled_for_source(User)
