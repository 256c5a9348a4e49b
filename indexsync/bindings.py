"""Callbacks bound to source kinds at model-definition time.

Each source kind owns a frozen, append-only map of
``target name -> derived identifier -> BoundCallback``. A subclass sees the
bindings of its ancestors, and adding a binding to a subclass never changes
what its parent sees.
"""

from __future__ import annotations

import dataclasses
import threading
import types
import typing as typ

from indexsync.errors import DuplicateBindingError
from indexsync.logging import get_logger, log_debug
from indexsync.registry import ALL_EVENTS, LifecycleEvent, StrategyKey

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from indexsync.registry import StrategyFactory, StrategyRegistry

logger = get_logger(__name__)

type RecordOverride = cabc.Callable[[typ.Any], typ.Any]
type RecordPredicate = cabc.Callable[[typ.Any], object]
type TargetBindings = cabc.Mapping[str, cabc.Mapping[str, BoundCallback]]

_EMPTY: TargetBindings = types.MappingProxyType({})


@dataclasses.dataclass(frozen=True, slots=True)
class BoundCallback:
    """A strategy attached to a source kind for one target collection.

    Attributes
    ----------
    key
        Strategy kind and lifecycle event.
    target_name
        Collection name as written at the binding site, resolved lazily.
    factory
        Strategy constructor looked up from the registry at bind time.
    options
        Read-only options passed to the strategy constructor.
    record
        Optional override that maps the changed record to what the strategy
        should synchronise.
    condition
        Optional predicate that must hold for the callback to run.
    unless
        Optional predicate that must not hold for the callback to run.

    """

    key: StrategyKey
    target_name: str
    factory: StrategyFactory
    options: cabc.Mapping[str, object] = dataclasses.field(
        default_factory=lambda: types.MappingProxyType({})
    )
    record: RecordOverride | None = None
    condition: RecordPredicate | None = None
    unless: RecordPredicate | None = None

    @property
    def identifier(self) -> str:
        """Return the derived ``<event>_<kind>`` identifier."""
        return self.key.identifier

    @property
    def event(self) -> LifecycleEvent:
        """Return the lifecycle event this callback handles."""
        return self.key.event

    def predicates_allow(self, record: object) -> bool:
        """Return True when ``condition`` holds and ``unless`` does not."""
        if self.condition is not None and not self.condition(record):
            return False
        return not (self.unless is not None and self.unless(record))

    def materialize(self, record: object) -> object | None:
        """Return the override result for ``record``, or None without one."""
        return None if self.record is None else self.record(record)


class SourceBindings:
    """Per-source-kind callback bindings validated against a registry."""

    def __init__(self, registry: StrategyRegistry) -> None:
        """Bind against ``registry``."""
        self._registry = registry
        self._lock = threading.Lock()
        self._bindings: dict[type, TargetBindings] = {}

    def bind(  # noqa: PLR0913
        self,
        source_kind: type,
        target_name: str,
        kind: str,
        *,
        on: cabc.Iterable[LifecycleEvent | str] = ALL_EVENTS,
        record: RecordOverride | None = None,
        condition: RecordPredicate | None = None,
        unless: RecordPredicate | None = None,
        **options: object,
    ) -> tuple[BoundCallback, ...]:
        """Bind strategy ``kind`` on each event in ``on`` to ``target_name``.

        Nothing is bound unless every requested event can be bound.

        Returns
        -------
        tuple[BoundCallback, ...]
            The new bindings in event order.

        Raises
        ------
        UnregisteredStrategyError
            If ``(kind, event)`` is not registered for one of the events.
        DuplicateBindingError
            If ``source_kind`` (or an ancestor) already binds the same
            derived identifier to ``target_name``.

        """
        events = tuple(dict.fromkeys(LifecycleEvent.coerce(e) for e in on))
        frozen_options = types.MappingProxyType(dict(options))
        callbacks: list[BoundCallback] = []
        for event in events:
            _, factory = self._registry.lookup(kind, event)
            callbacks.append(
                BoundCallback(
                    key=StrategyKey(kind=kind, event=event),
                    target_name=target_name,
                    factory=factory,
                    options=frozen_options,
                    record=record,
                    condition=condition,
                    unless=unless,
                )
            )

        with self._lock:
            existing = self.callbacks_for(source_kind).get(target_name, _EMPTY)
            for callback in callbacks:
                if callback.identifier in existing:
                    raise DuplicateBindingError(
                        source_kind, target_name, callback.identifier
                    )
            own = self._bindings.get(source_kind, _EMPTY)
            per_target = {
                **own.get(target_name, _EMPTY),
                **{callback.identifier: callback for callback in callbacks},
            }
            self._bindings[source_kind] = types.MappingProxyType(
                {**own, target_name: types.MappingProxyType(per_target)}
            )

        log_debug(
            logger,
            "Bound %s to %s on %s",
            source_kind.__qualname__,
            target_name,
            ", ".join(callback.identifier for callback in callbacks),
        )
        return tuple(callbacks)

    def callbacks_for(self, source_kind: type) -> TargetBindings:
        """Return the frozen bindings visible to ``source_kind``.

        Bindings of ancestor classes are merged in, most distant first.
        """
        merged: dict[str, dict[str, BoundCallback]] = {}
        for klass in reversed(source_kind.__mro__):
            for target_name, callbacks in self._bindings.get(klass, _EMPTY).items():
                merged.setdefault(target_name, {}).update(callbacks)
        return types.MappingProxyType(
            {name: types.MappingProxyType(cbs) for name, cbs in merged.items()}
        )

    def for_event(
        self, source_kind: type, event: LifecycleEvent | str
    ) -> list[BoundCallback]:
        """Return the callbacks ``source_kind`` runs for ``event``."""
        event = LifecycleEvent.coerce(event)
        return [
            callback
            for callbacks in self.callbacks_for(source_kind).values()
            for callback in callbacks.values()
            if callback.event is event
        ]

    def target_names(self, source_kind: type) -> tuple[str, ...]:
        """Return the target names bound by ``source_kind`` or its ancestors."""
        return tuple(self.callbacks_for(source_kind))

    def is_known(self, source_kind: type) -> bool:
        """Return True when ``source_kind`` or an ancestor has bindings."""
        return any(klass in self._bindings for klass in source_kind.__mro__)

    @property
    def source_kinds(self) -> tuple[type, ...]:
        """Return every source kind that declared bindings of its own."""
        return tuple(self._bindings)
