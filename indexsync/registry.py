"""Catalog of synchronisation strategies keyed by kind and lifecycle event.

The registry is append-only. Every registration publishes a fresh read-only
mapping, so a reader holding an earlier :meth:`StrategyRegistry.snapshot`
never sees a partial update and a ``(kind, event)`` pair, once registered,
keeps its factory for the lifetime of the registry.

Usage
-----
Register a strategy for the process-wide registry::

    from indexsync.registry import LifecycleEvent, register_strategy

    register_strategy("audit", LifecycleEvent.CREATE, AuditOnCreate)

"""

from __future__ import annotations

import dataclasses
import enum
import threading
import types
import typing as typ

from indexsync.errors import DuplicateStrategyError, UnregisteredStrategyError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

type StrategyFactory = cabc.Callable[..., typ.Any]


class LifecycleEvent(enum.StrEnum):
    """Committed record mutations that can trigger synchronisation."""

    CREATE = "create"
    UPDATE = "update"
    DESTROY = "destroy"

    @classmethod
    def coerce(cls, value: LifecycleEvent | str) -> LifecycleEvent:
        """Return ``value`` as a member, accepting its string form."""
        return value if isinstance(value, cls) else cls(str(value).lower())


ALL_EVENTS: tuple[LifecycleEvent, ...] = tuple(LifecycleEvent)


@dataclasses.dataclass(frozen=True, slots=True)
class StrategyKey:
    """Identity of a registered strategy."""

    kind: str
    event: LifecycleEvent

    @property
    def identifier(self) -> str:
        """Return the derived ``<event>_<kind>`` identifier, e.g. ``update_index``."""
        return f"{self.event.value}_{self.kind}"


class StrategyRegistry:
    """Append-only, copy-on-write map of strategy factories."""

    def __init__(self) -> None:
        """Start with an empty, sealed registry."""
        self._lock = threading.Lock()
        self._entries: types.MappingProxyType[StrategyKey, StrategyFactory] = (
            types.MappingProxyType({})
        )

    def register(
        self,
        kind: str,
        event: LifecycleEvent | str,
        factory: StrategyFactory,
    ) -> StrategyKey:
        """Register ``factory`` for ``(kind, event)``.

        Raises
        ------
        DuplicateStrategyError
            If the pair is already registered. The existing entry is kept.
        TypeError
            If ``factory`` is not callable.

        """
        if not callable(factory):
            msg = f"strategy factory for {kind} must be callable, got {factory!r}"
            raise TypeError(msg)

        key = StrategyKey(kind=kind, event=LifecycleEvent.coerce(event))
        with self._lock:
            if key in self._entries:
                raise DuplicateStrategyError(key.kind, key.event.value)
            self._entries = types.MappingProxyType({**self._entries, key: factory})
        return key

    def registered(self, kind: str, event: LifecycleEvent | str) -> bool:
        """Return True when ``(kind, event)`` has a factory."""
        key = StrategyKey(kind=kind, event=LifecycleEvent.coerce(event))
        return key in self._entries

    def lookup(
        self, kind: str, event: LifecycleEvent | str
    ) -> tuple[str, StrategyFactory]:
        """Return the derived identifier and factory for ``(kind, event)``.

        Raises
        ------
        UnregisteredStrategyError
            If no factory is registered for the pair.

        """
        key = StrategyKey(kind=kind, event=LifecycleEvent.coerce(event))
        try:
            factory = self._entries[key]
        except KeyError:
            raise UnregisteredStrategyError(key.kind, key.event.value) from None
        return key.identifier, factory

    def snapshot(self) -> cabc.Mapping[StrategyKey, StrategyFactory]:
        """Return the current read-only mapping of registrations."""
        return self._entries

    def __len__(self) -> int:
        """Return the number of registrations."""
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Return True when ``key`` is a registered :class:`StrategyKey`."""
        return key in self._entries


default_registry = StrategyRegistry()


def register_strategy(
    kind: str, event: LifecycleEvent | str, factory: StrategyFactory
) -> StrategyKey:
    """Register ``factory`` in the process-wide :data:`default_registry`."""
    return default_registry.register(kind, event, factory)


__all__ = [
    "ALL_EVENTS",
    "LifecycleEvent",
    "StrategyFactory",
    "StrategyKey",
    "StrategyRegistry",
    "default_registry",
    "register_strategy",
]
