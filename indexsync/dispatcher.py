"""Route committed record changes to their bound strategies."""

from __future__ import annotations

import typing as typ

from indexsync.documents import RecordChange, build_previous_record
from indexsync.observability import SyncEventLogger
from indexsync.registry import LifecycleEvent

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from indexsync.bindings import BoundCallback, SourceBindings
    from indexsync.config import IndexSyncConfig
    from indexsync.documents import PreviousRecordBuilder
    from indexsync.enablement import EnablementController
    from indexsync.targets import CollectionCatalog


class Dispatcher:
    """Run every bound callback whose guard passes for a record change.

    The guard of a callback is its ``condition`` predicate, the negation of
    its ``unless`` predicate, and the enablement state of its collection both
    globally and for the record's source kind. A failing guard skips the
    callback silently. Errors raised by strategies are logged and propagate
    unchanged; strategies absorb not-found responses themselves.
    """

    def __init__(
        self,
        bindings: SourceBindings,
        catalog: CollectionCatalog,
        enablement: EnablementController,
        config: IndexSyncConfig,
    ) -> None:
        """Wire the dispatcher to its bindings, catalog and control plane."""
        self._bindings = bindings
        self._catalog = catalog
        self._enablement = enablement
        self._config = config
        self._events = SyncEventLogger()

    def handle(
        self,
        record: object,
        event: LifecycleEvent | str,
        *,
        previous_values: cabc.Mapping[str, object] | None = None,
        previous_builder: PreviousRecordBuilder = build_previous_record,
    ) -> int:
        """Synchronise one committed change of ``record``.

        Parameters
        ----------
        record
            The committed record.
        event
            Which mutation was committed.
        previous_values
            Attribute values before an update, keyed by attribute name.
        previous_builder
            Rebuilds the pre-change record from ``record`` and
            ``previous_values``.

        Returns
        -------
        int
            Number of strategies that ran.

        """
        change = RecordChange(
            record=record,
            event=LifecycleEvent.coerce(event),
            previous_values=dict(previous_values or {}),
            previous_builder=previous_builder,
        )
        return self.dispatch(change)

    def dispatch(self, change: RecordChange) -> int:
        """Run the guarded callbacks bound to ``change``'s source kind."""
        ran = 0
        for callback in self._bindings.for_event(change.source_kind, change.event):
            if self._run(callback, change):
                ran += 1
        return ran

    def guard_failure(
        self, callback: BoundCallback, change: RecordChange
    ) -> str | None:
        """Return why ``callback`` must not run for ``change``, or None."""
        if not callback.predicates_allow(change.record):
            return "predicate"
        if not self._enablement.is_enabled(callback.target_name):
            return "collection_disabled"
        if not self._enablement.is_enabled_for_source(
            change.source_kind, callback.target_name
        ):
            return "source_disabled"
        return None

    def _run(self, callback: BoundCallback, change: RecordChange) -> bool:
        reason = self.guard_failure(callback, change)
        if reason is not None:
            self._events.log_dispatch_suppressed(
                source_kind=change.source_kind,
                event=change.event,
                target_name=callback.target_name,
                reason=reason,
            )
            return False

        target = self._catalog.resolve(callback.target_name)
        strategy = callback.factory(
            target,
            block_result=callback.materialize(change.record),
            config=self._config,
            **callback.options,
        )
        try:
            strategy.call(change)
        except Exception as exc:
            self._events.log_dispatch_failed(
                source_kind=change.source_kind,
                event=change.event,
                target_name=callback.target_name,
                error=exc,
            )
            raise
        self._events.log_dispatch_completed(
            source_kind=change.source_kind,
            event=change.event,
            target_name=callback.target_name,
            identifier=callback.identifier,
        )
        return True
