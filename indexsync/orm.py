"""SQLAlchemy lifecycle trigger.

:func:`install` attaches session events that collect created, updated and
deleted instances of bound source kinds during flushes and hand them to
:meth:`IndexSync.handle` once the root transaction commits. Rolling back a
transaction or a savepoint discards the changes flushed inside it.

Records are read after the commit, so sessions must not expire instances on
commit::

    Session = sessionmaker(engine, expire_on_commit=False)
    trigger = install(sync, Session)

For ``AsyncSession`` install on the synchronous class it drives, e.g.
``install(sync, async_sessionmaker(...).class_.sync_session_class)`` or
simply :class:`sqlalchemy.orm.Session`.

Update events carry the pre-change values of column attributes taken from
attribute history. The previous-state record built from them is a fresh,
never-attached instance; attaching it to a session raises
:class:`~indexsync.errors.ReadOnlyRecordError`.
"""

from __future__ import annotations

import dataclasses
import typing as typ
import weakref

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from indexsync.documents import unwrap_record
from indexsync.errors import ReadOnlyRecordError
from indexsync.logging import get_logger, log_debug
from indexsync.registry import LifecycleEvent

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.orm import SessionTransaction, UOWTransaction

    from indexsync.sync import IndexSync

logger = get_logger(__name__)

PENDING_KEY = "indexsync.pending"

_previous_records: weakref.WeakValueDictionary[int, object] = (
    weakref.WeakValueDictionary()
)


@dataclasses.dataclass(slots=True)
class PendingChange:
    """A flushed change waiting for its transaction to commit."""

    instance: object
    event: LifecycleEvent
    previous_values: dict[str, object] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(slots=True)
class PendingScope:
    """Changes flushed inside one root transaction or savepoint."""

    changes: dict[int, PendingChange] = dataclasses.field(default_factory=dict)
    committed: bool = False

    def add(self, change: PendingChange) -> None:
        """Fold ``change`` into the changes already held for its instance.

        A destroy replaces any earlier entry and moves to the end. Otherwise
        the earliest entry wins, and repeated updates keep the oldest previous
        value of each attribute.
        """
        key = id(change.instance)
        existing = self.changes.get(key)
        if existing is None or change.event is LifecycleEvent.DESTROY:
            self.changes.pop(key, None)
            self.changes[key] = change
        elif existing.event is change.event is LifecycleEvent.UPDATE:
            for name, value in change.previous_values.items():
                existing.previous_values.setdefault(name, value)


def previous_column_values(instance: object) -> dict[str, object]:
    """Return the pre-change values of ``instance``'s modified columns.

    Only values present in attribute history are returned; an attribute
    changed while unloaded has no recorded old value.
    """
    state = inspect(instance)
    previous: dict[str, object] = {}
    for column_attr in state.mapper.column_attrs:
        history = state.attrs[column_attr.key].history
        if history.deleted:
            previous[column_attr.key] = history.deleted[0]
    return previous


def build_orm_previous_record(
    record: object, previous_values: cabc.Mapping[str, object]
) -> object:
    """Rebuild a mapped ``record`` from its current and previous values.

    The result is a new instance of the record's class, created through its
    mapper without calling ``__init__``, with every loaded column attribute
    set as committed state and ``previous_values`` laid over the top. The
    instance is never attached to a session and refuses to join one.
    """
    instance = unwrap_record(record)
    state = inspect(instance)
    previous = state.mapper.class_manager.new_instance()
    for column_attr in state.mapper.column_attrs:
        key = column_attr.key
        if key in previous_values:
            set_committed_value(previous, key, previous_values[key])
        elif key in state.dict:
            set_committed_value(previous, key, state.dict[key])
    _previous_records[id(previous)] = previous
    return previous


class OrmTrigger:
    """Session event listeners feeding committed changes to an ``IndexSync``.

    Flushed changes are held per scope, the root transaction or a savepoint,
    in ``session.info[PENDING_KEY]``. Releasing a savepoint folds its changes
    into the enclosing scope; rolling one back discards only its own. Changes
    are dispatched once the root transaction has committed.
    """

    def __init__(self, sync: IndexSync, target: object = Session) -> None:
        """Prepare listeners for ``target`` without attaching them."""
        self.sync = sync
        self.target = target
        self._listeners: tuple[tuple[str, cabc.Callable[..., None]], ...] = (
            ("after_flush", self._after_flush),
            ("after_commit", self._after_commit),
            ("after_transaction_end", self._after_transaction_end),
            ("before_attach", self._before_attach),
        )

    def install(self) -> OrmTrigger:
        """Attach the listeners to :attr:`target`."""
        for name, listener in self._listeners:
            event.listen(self.target, name, listener)
        return self

    def uninstall(self) -> None:
        """Detach the listeners from :attr:`target`."""
        for name, listener in self._listeners:
            if event.contains(self.target, name, listener):
                event.remove(self.target, name, listener)

    def _tracks(self, instance: object) -> bool:
        return self.sync.bindings.is_known(type(instance))

    @staticmethod
    def _scope_of(transaction: SessionTransaction) -> SessionTransaction:
        while not transaction.nested and transaction.parent is not None:
            transaction = transaction.parent
        return transaction

    @staticmethod
    def _current_scope(session: Session) -> SessionTransaction | None:
        return session.get_nested_transaction() or session.get_transaction()

    def _after_flush(self, session: Session, flush_context: UOWTransaction) -> None:
        del flush_context
        transaction = self._current_scope(session)
        if transaction is None:
            return
        scopes: dict[SessionTransaction, PendingScope] = session.info.setdefault(
            PENDING_KEY, {}
        )
        scope = scopes.setdefault(transaction, PendingScope())

        for instance in session.new:
            if self._tracks(instance):
                scope.add(PendingChange(instance, LifecycleEvent.CREATE))

        for instance in session.dirty:
            if self._tracks(instance) and session.is_modified(instance):
                scope.add(
                    PendingChange(
                        instance,
                        LifecycleEvent.UPDATE,
                        previous_column_values(instance),
                    )
                )

        for instance in session.deleted:
            if self._tracks(instance):
                scope.add(PendingChange(instance, LifecycleEvent.DESTROY))

    def _after_commit(self, session: Session) -> None:
        # Fires for the root transaction and for released savepoints.
        transaction = self._current_scope(session)
        scopes = session.info.get(PENDING_KEY, {})
        if transaction in scopes:
            scopes[transaction].committed = True

    def _after_transaction_end(
        self, session: Session, transaction: SessionTransaction
    ) -> None:
        scopes: dict[SessionTransaction, PendingScope] = session.info.get(
            PENDING_KEY, {}
        )
        scope = scopes.pop(transaction, None)
        if not scopes:
            session.info.pop(PENDING_KEY, None)
        if scope is None or not scope.changes:
            return

        if not scope.committed:
            log_debug(
                logger, "Discarded %d rolled-back change(s)", len(scope.changes)
            )
            return

        if transaction.parent is not None:
            parent = self._scope_of(transaction.parent)
            outer = session.info.setdefault(PENDING_KEY, {}).setdefault(
                parent, PendingScope()
            )
            for change in scope.changes.values():
                outer.add(change)
            return

        log_debug(logger, "Dispatching %d committed change(s)", len(scope.changes))
        for change in scope.changes.values():
            self.sync.handle(
                change.instance,
                change.event,
                previous_values=change.previous_values,
                previous_builder=build_orm_previous_record,
            )

    def _before_attach(self, session: Session, instance: object) -> None:
        del session
        if _previous_records.get(id(instance)) is instance:
            raise ReadOnlyRecordError(type(instance), "attach to a session")


def install(sync: IndexSync, target: object = Session) -> OrmTrigger:
    """Attach an :class:`OrmTrigger` for ``sync`` to ``target`` and return it."""
    return OrmTrigger(sync, target).install()


__all__ = [
    "PENDING_KEY",
    "OrmTrigger",
    "PendingChange",
    "PendingScope",
    "build_orm_previous_record",
    "install",
    "previous_column_values",
]
