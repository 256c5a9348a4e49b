"""Behavioural tests for routing migration on update."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import pytest
from pytest_bdd import given, parsers, scenario, then, when

from tests.helpers.records import County

if typ.TYPE_CHECKING:
    from indexsync import IndexSync
    from tests.helpers.index_client import RecordingIndexClient


class MigrationContext(typ.TypedDict, total=False):
    """Shared state for routing migration scenarios."""

    target_name: str
    update_with: str
    county: County
    error: Exception | None


@pytest.fixture
def migration_context() -> MigrationContext:
    """Provide fresh context for each scenario."""
    return {}


@scenario(
    "../routing_migration.feature",
    "Moving a county deletes its copy from the old routing",
)
def test_moving_county_deletes_old_copy() -> None:
    """Run the routing change scenario."""


@scenario(
    "../routing_migration.feature",
    "A missing copy on the old routing is not an error",
)
def test_missing_old_copy_is_absorbed() -> None:
    """Run the absorbed not-found scenario."""


@scenario("../routing_migration.feature", "Renaming a county keeps its routing")
def test_rename_keeps_routing() -> None:
    """Run the unchanged routing scenario."""


@scenario(
    "../routing_migration.feature",
    "Update mode falls back to indexing a missing document",
)
def test_update_mode_fallback() -> None:
    """Run the update-mode fallback scenario."""


@given(parsers.parse('counties are indexed into "{target_name}"'))
def given_counties_indexed(
    migration_context: MigrationContext, target_name: str
) -> None:
    """Record the collection counties will be bound to."""
    migration_context["target_name"] = target_name


@given(
    parsers.parse(
        'the county "{name}" with id {county_id:d} belongs to state {state_id:d}'
    )
)
def given_county(
    migration_context: MigrationContext, name: str, county_id: int, state_id: int
) -> None:
    """Store the committed county."""
    migration_context["county"] = County(county_id, name, state_id)


@given(parsers.parse('updates are written in "{mode}" mode'))
def given_update_mode(migration_context: MigrationContext, mode: str) -> None:
    """Choose the binding's update mode."""
    migration_context["update_with"] = mode


@given(parsers.parse('the index answers "{action}" with not found'))
def given_not_found(index_client: RecordingIndexClient, action: str) -> None:
    """Make the index client answer ``action`` with a 404."""
    index_client.not_found.add(action)


def _commit_update(
    sync: IndexSync,
    migration_context: MigrationContext,
    changes: dict[str, object],
) -> None:
    options: dict[str, object] = {}
    if "update_with" in migration_context:
        options["update_with"] = migration_context["update_with"]
    sync.index_callback(County, migration_context["target_name"], **options)

    before = migration_context["county"]
    after = dc.replace(before, **changes)
    previous = {key: getattr(before, key) for key in changes}
    try:
        sync.handle(after, "update", previous_values=previous)
    except Exception as exc:  # noqa: BLE001
        migration_context["error"] = exc
    else:
        migration_context["error"] = None


@when(parsers.parse("the county moves to state {state_id:d}"))
def when_county_moves(
    sync: IndexSync, migration_context: MigrationContext, state_id: int
) -> None:
    """Commit a change of the county's state."""
    _commit_update(sync, migration_context, {"state_id": state_id})


@when(parsers.parse('the county is renamed to "{name}"'))
def when_county_renamed(
    sync: IndexSync, migration_context: MigrationContext, name: str
) -> None:
    """Commit a change of the county's name."""
    _commit_update(sync, migration_context, {"name": name})


@then(parsers.parse('the index receives "{action}" with routing {routing:d}'))
def then_index_receives(
    index_client: RecordingIndexClient, action: str, routing: int
) -> None:
    """Assert a request of ``action`` was sent for ``routing``."""
    routings = [call.routing for call in index_client.calls_for(action)]
    assert routing in routings, f"Expected {action} on routing {routing}: {routings}"


@then(parsers.parse('the index receives only "{action}" requests'))
def then_only_action(index_client: RecordingIndexClient, action: str) -> None:
    """Assert every request was of ``action``."""
    assert set(index_client.actions()) == {action}, index_client.actions()


@then("no error is raised")
def then_no_error(migration_context: MigrationContext) -> None:
    """Assert the dispatch completed."""
    assert migration_context["error"] is None
