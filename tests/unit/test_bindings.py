"""Unit tests for source-kind callback bindings."""

from __future__ import annotations

import pytest

from indexsync import IndexSync
from indexsync.bindings import SourceBindings
from indexsync.errors import (
    AmbiguousCollectionError,
    DuplicateBindingError,
    UnknownCollectionError,
    UnregisteredStrategyError,
)
from indexsync.registry import LifecycleEvent, StrategyRegistry
from indexsync.strategies import IndexOnCreate, IndexOnUpdate
from tests.helpers.records import AdminUser, County, State, User


def test_bind_returns_one_callback_per_event(registry: StrategyRegistry) -> None:
    """Binding a kind covers every requested event."""
    bindings = SourceBindings(registry)

    callbacks = bindings.bind(State, "geographies:state", "index")

    assert [c.identifier for c in callbacks] == [
        "create_index",
        "update_index",
        "destroy_index",
    ]
    assert callbacks[0].factory is IndexOnCreate
    assert callbacks[1].factory is IndexOnUpdate


def test_bind_limited_to_selected_events(registry: StrategyRegistry) -> None:
    """``on`` narrows the events, accepting names or members."""
    bindings = SourceBindings(registry)

    bindings.bind(State, "geographies:state", "index", on=["update"])

    assert bindings.for_event(State, LifecycleEvent.CREATE) == []
    assert [c.identifier for c in bindings.for_event(State, "update")] == [
        "update_index"
    ]


def test_duplicate_binding_is_rejected(registry: StrategyRegistry) -> None:
    """The same identifier cannot be bound twice to one target."""
    bindings = SourceBindings(registry)
    bindings.bind(State, "geographies:state", "index", on=["create"])

    with pytest.raises(
        DuplicateBindingError, match="State already binds create_index"
    ):
        bindings.bind(State, "geographies:state", "index")

    assert [c.identifier for c in bindings.for_event(State, "update")] == []


def test_same_kind_may_target_several_collections(
    registry: StrategyRegistry,
) -> None:
    """Distinct targets keep distinct bindings for the same kind."""
    bindings = SourceBindings(registry)
    bindings.bind(County, "geographies:county", "index")
    bindings.bind(County, "search:county", "index")

    targets = [c.target_name for c in bindings.for_event(County, "create")]

    assert targets == ["geographies:county", "search:county"]
    assert bindings.target_names(County) == ("geographies:county", "search:county")


def test_unregistered_kind_binds_nothing(registry: StrategyRegistry) -> None:
    """A missing strategy for any event leaves the source unbound."""
    bindings = SourceBindings(registry)

    with pytest.raises(UnregisteredStrategyError, match="audit for create"):
        bindings.bind(State, "geographies:state", "audit")

    assert not bindings.is_known(State)


def test_options_and_predicates_are_carried(registry: StrategyRegistry) -> None:
    """Options are frozen and predicates evaluate against the record."""
    bindings = SourceBindings(registry)

    (callback,) = bindings.bind(
        User,
        "users",
        "index",
        on=["create"],
        condition=lambda user: user.email,
        unless=lambda user: user.hidden,
        refresh=True,
    )

    assert dict(callback.options) == {"refresh": True}
    with pytest.raises(TypeError):
        callback.options["refresh"] = False  # type: ignore[index]
    assert callback.predicates_allow(User(1, "a@example.com"))
    assert not callback.predicates_allow(User(2, ""))
    assert not callback.predicates_allow(User(3, "c@example.com", hidden=True))


def test_record_override_is_materialized(registry: StrategyRegistry) -> None:
    """The record override maps the changed record; absent it yields None."""
    bindings = SourceBindings(registry)
    county = County(7, "Cook", 17)

    (with_override,) = bindings.bind(
        County,
        "geographies:state",
        "index",
        on=["update"],
        record=lambda c: State(c.state_id, "Illinois"),
    )
    (plain,) = bindings.bind(County, "geographies:county", "index", on=["update"])

    assert with_override.materialize(county) == State(17, "Illinois")
    assert plain.materialize(county) is None


def test_subclass_inherits_without_affecting_parent(
    registry: StrategyRegistry,
) -> None:
    """Subclasses see parent bindings; their own stay private."""
    bindings = SourceBindings(registry)
    bindings.bind(User, "users", "index")
    bindings.bind(
        AdminUser, "audit:admin", "update_lazy_attribute", attribute_name="role"
    )

    assert bindings.is_known(AdminUser)
    assert len(bindings.for_event(AdminUser, "create")) == 2
    assert len(bindings.for_event(User, "create")) == 1
    assert bindings.source_kinds == (User, AdminUser)


def test_subclass_cannot_rebind_inherited_identifier(
    registry: StrategyRegistry,
) -> None:
    """An inherited binding counts as a duplicate for the subclass."""
    bindings = SourceBindings(registry)
    bindings.bind(User, "users", "index")

    with pytest.raises(DuplicateBindingError):
        bindings.bind(AdminUser, "users", "index", on=["destroy"])


def test_callbacks_for_is_read_only(registry: StrategyRegistry) -> None:
    """Returned bindings cannot be mutated by callers."""
    bindings = SourceBindings(registry)
    bindings.bind(State, "geographies:state", "index")

    view = bindings.callbacks_for(State)

    with pytest.raises(TypeError):
        view["users"] = {}  # type: ignore[index]


class TestIndexSyncBinding:
    """Tests for binding through the ``IndexSync`` context."""

    def test_target_name_is_validated_at_bind_time(self, sync: IndexSync) -> None:
        """Unknown collections are rejected before anything is bound."""
        with pytest.raises(UnknownCollectionError):
            sync.index_callback(State, "geographies:city")

        assert not sync.bindings.is_known(State)

    def test_ambiguous_target_name_is_rejected(self, sync: IndexSync) -> None:
        """A multi-collection index must be qualified."""
        with pytest.raises(AmbiguousCollectionError):
            sync.index_callback(State, "geographies")

    def test_lazy_attribute_callback_binds_every_event(
        self, sync: IndexSync
    ) -> None:
        """Lazy attribute refreshes run on create, update and destroy."""
        callbacks = sync.lazy_attribute_callback(
            County, "geographies:state", "counties"
        )

        assert [c.identifier for c in callbacks] == [
            "create_update_lazy_attribute",
            "update_update_lazy_attribute",
            "destroy_update_lazy_attribute",
        ]
        assert dict(callbacks[0].options) == {"attribute_name": "counties"}

    def test_callback_decorator_binds_and_returns_class(
        self, sync: IndexSync
    ) -> None:
        """The class decorator binds the decorated class."""

        @sync.callback("users:user", on=["create"])
        class Member(User):
            pass

        callbacks = sync.bindings.for_event(Member, "create")
        assert Member.__name__ == "Member"
        assert [c.identifier for c in callbacks] == ["create_index"]
