"""Context-local switches that suppress synchronisation.

State has two layers:

``collections``
    ``TargetCollection -> bool`` entries set by :meth:`enable` and
    :meth:`disable`. A collection without an entry uses the configured
    default (enabled unless ``INDEXSYNC_ENABLED=false``).
``sources``
    ``source kind -> TargetCollection -> bool`` overrides set by
    :meth:`enable_for_source` and :meth:`disable_for_source`. A missing entry
    means enabled.

The state lives in a :class:`contextvars.ContextVar`, so every thread and
every asyncio task that copies its context starts from its own view. States
are immutable and replaced wholesale on each change, so a mutation in one
context never leaks into another. The controller is still not meant to be
shared by concurrent work inside one context.

Tests that touch enablement must call :meth:`EnablementController.reset`
between cases.

Target resolution
-----------------
Targets may be names, :class:`~indexsync.targets.SearchIndex` objects or
:class:`~indexsync.targets.TargetCollection` objects; an index stands for all
of its collections. Requested collections are intersected with the known
universe (every collection some source kind is bound to). When that
intersection is empty, including when no target is given, the operation
applies to the whole universe.
"""

from __future__ import annotations

import contextlib
import contextvars
import dataclasses
import itertools
import types
import typing as typ

from indexsync.errors import UnknownSourceError
from indexsync.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from indexsync.bindings import SourceBindings
    from indexsync.targets import CollectionCatalog, TargetCollection, TargetRef

logger = get_logger(__name__)

type Layer = cabc.Mapping[TargetCollection, bool]

_EMPTY_LAYER: Layer = types.MappingProxyType({})
_controller_ids = itertools.count()


@dataclasses.dataclass(frozen=True, slots=True)
class EnablementState:
    """Immutable enablement state of one execution context."""

    default: bool = True
    collections: Layer = _EMPTY_LAYER
    sources: cabc.Mapping[type, Layer] = dataclasses.field(
        default_factory=lambda: types.MappingProxyType({})
    )

    def collection_enabled(self, collection: TargetCollection) -> bool:
        """Return the global-layer state of ``collection``."""
        return self.collections.get(collection, self.default)

    def source_layer(self, source_kind: type) -> Layer | None:
        """Return the override layer of ``source_kind``, if it exists."""
        return self.sources.get(source_kind)

    def with_collections(
        self, collections: cabc.Iterable[TargetCollection], *, enabled: bool
    ) -> EnablementState:
        """Return a copy with ``collections`` set to ``enabled``."""
        layer = {**self.collections, **dict.fromkeys(collections, enabled)}
        return dataclasses.replace(self, collections=types.MappingProxyType(layer))

    def with_source_layer(
        self, source_kind: type, layer: Layer | None
    ) -> EnablementState:
        """Return a copy with the layer of ``source_kind`` replaced or removed."""
        sources = dict(self.sources)
        if layer is None:
            sources.pop(source_kind, None)
        else:
            sources[source_kind] = types.MappingProxyType(dict(layer))
        return dataclasses.replace(self, sources=types.MappingProxyType(sources))


class EnablementController:
    """Enable/disable control plane consulted before every dispatch.

    Parameters
    ----------
    catalog
        Resolves target names and indices to collections.
    bindings
        Defines the known universe and which source kinds are known.
    default
        State of a collection with no explicit entry in a fresh context.

    """

    def __init__(
        self,
        catalog: CollectionCatalog,
        bindings: SourceBindings,
        *,
        default: bool = True,
    ) -> None:
        """Create a controller whose context state is built lazily."""
        self._catalog = catalog
        self._bindings = bindings
        self._default = default
        self._state: contextvars.ContextVar[EnablementState | None] = (
            contextvars.ContextVar(
                f"indexsync_enablement_{next(_controller_ids)}", default=None
            )
        )

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> EnablementState:
        """Return the state of the current context, creating it on first use."""
        state = self._state.get()
        if state is None:
            state = EnablementState(default=self._default)
            self._state.set(state)
        return state

    def _replace(self, state: EnablementState) -> None:
        self._state.set(state)

    def reset(self) -> None:
        """Drop every enable/disable entry of the current context."""
        self._state.set(None)

    # -- target sets ---------------------------------------------------------

    def _expand(self, targets: cabc.Iterable[TargetRef]) -> list[TargetCollection]:
        expanded: dict[TargetCollection, None] = {}
        for target in targets:
            expanded.update(dict.fromkeys(self._catalog.expand(target)))
        return list(expanded)

    def _source_collections(self, source_kind: type) -> list[TargetCollection]:
        collections: dict[TargetCollection, None] = {}
        for name in self._bindings.target_names(source_kind):
            collections.update(dict.fromkeys(self._catalog.expand(name)))
        return list(collections)

    def universe(self) -> tuple[TargetCollection, ...]:
        """Return every collection some source kind is bound to."""
        collections: dict[TargetCollection, None] = {}
        for source_kind in self._bindings.source_kinds:
            collections.update(dict.fromkeys(self._source_collections(source_kind)))
        return tuple(collections)

    def resolve(self, *targets: TargetRef) -> tuple[TargetCollection, ...]:
        """Resolve ``targets`` against the universe, falling back to all."""
        universe = self.universe()
        requested = [c for c in self._expand(targets) if c in universe]
        return tuple(requested) or universe

    def resolve_for_source(
        self, source_kind: type, *targets: TargetRef
    ) -> tuple[TargetCollection, ...]:
        """Resolve ``targets`` against the collections of ``source_kind``."""
        universe = self.universe()
        own = [c for c in self._source_collections(source_kind) if c in universe]
        requested = [c for c in self._expand(targets) if c in own]
        return tuple(requested or own)

    # -- global layer --------------------------------------------------------

    def enable(self, *targets: TargetRef) -> None:
        """Enable synchronisation into ``targets`` (all when none match)."""
        collections = self.resolve(*targets)
        self._replace(self.state.with_collections(collections, enabled=True))
        log_debug(logger, "Enabled indexing for %s", _paths(collections))

    def disable(self, *targets: TargetRef) -> None:
        """Disable synchronisation into ``targets`` (all when none match)."""
        collections = self.resolve(*targets)
        self._replace(self.state.with_collections(collections, enabled=False))
        log_debug(logger, "Disabled indexing for %s", _paths(collections))

    def is_enabled(self, *targets: TargetRef) -> bool:
        """Return True when every resolved collection is enabled."""
        state = self.state
        return all(state.collection_enabled(c) for c in self.resolve(*targets))

    def is_disabled(self, *targets: TargetRef) -> bool:
        """Return True when every resolved collection is disabled.

        This is not the negation of :meth:`is_enabled`: with one resolved
        collection enabled and another disabled, both return False.
        """
        state = self.state
        return all(not state.collection_enabled(c) for c in self.resolve(*targets))

    @contextlib.contextmanager
    def disabled(self, *targets: TargetRef) -> cabc.Iterator[None]:
        """Disable ``targets`` for the duration of the ``with`` block.

        On exit, normal or not, the whole global layer is restored to its value
        on entry, discarding any other global change made inside the block.
        Source-kind layers are left alone.
        """
        saved = self.state.collections
        self.disable(*targets)
        try:
            yield
        finally:
            self._replace(dataclasses.replace(self.state, collections=saved))

    def with_disabled[T](
        self, *targets: TargetRef, fn: cabc.Callable[[], T]
    ) -> T:
        """Run ``fn`` with ``targets`` disabled and return its result."""
        with self.disabled(*targets):
            return fn()

    # -- source-kind layer ---------------------------------------------------

    def _ensure_known(self, source_kind: type) -> None:
        if not self._bindings.is_known(source_kind):
            raise UnknownSourceError(source_kind)

    def _set_for_source(
        self, source_kind: type, targets: tuple[TargetRef, ...], *, enabled: bool
    ) -> None:
        self._ensure_known(source_kind)
        state = self.state
        collections = self.resolve_for_source(source_kind, *targets)
        layer = {
            **(state.source_layer(source_kind) or {}),
            **dict.fromkeys(collections, enabled),
        }
        self._replace(state.with_source_layer(source_kind, layer))

    def enable_for_source(self, source_kind: type, *targets: TargetRef) -> None:
        """Enable ``source_kind`` for ``targets`` (all of its own when none match).

        Raises
        ------
        UnknownSourceError
            If ``source_kind`` has no bound callbacks.

        """
        self._set_for_source(source_kind, targets, enabled=True)

    def disable_for_source(self, source_kind: type, *targets: TargetRef) -> None:
        """Disable ``source_kind`` for ``targets`` (all of its own when none match).

        Raises
        ------
        UnknownSourceError
            If ``source_kind`` has no bound callbacks.

        """
        self._set_for_source(source_kind, targets, enabled=False)

    def is_enabled_for_source(self, source_kind: type, *targets: TargetRef) -> bool:
        """Return True when no override disables ``source_kind`` for ``targets``.

        Overrides set on ancestor classes apply to their subclasses. An
        unknown source kind is never enabled.
        """
        if not self._bindings.is_known(source_kind):
            return False
        state = self.state
        layers = [
            layer
            for klass in source_kind.__mro__
            if (layer := state.source_layer(klass)) is not None
        ]
        return all(
            layer.get(collection) is not False
            for collection in self.resolve_for_source(source_kind, *targets)
            for layer in layers
        )

    @contextlib.contextmanager
    def disabled_for_source(
        self, source_kind: type, *targets: TargetRef
    ) -> cabc.Iterator[None]:
        """Disable ``source_kind`` for ``targets`` inside the ``with`` block.

        On exit the layer of ``source_kind`` is restored to its value on
        entry, or removed when it did not exist.

        Raises
        ------
        UnknownSourceError
            If ``source_kind`` has no bound callbacks.

        """
        saved = self.state.source_layer(source_kind)
        self.disable_for_source(source_kind, *targets)
        try:
            yield
        finally:
            self._replace(self.state.with_source_layer(source_kind, saved))

    def with_disabled_for_source[T](
        self, source_kind: type, *targets: TargetRef, fn: cabc.Callable[[], T]
    ) -> T:
        """Run ``fn`` with ``source_kind`` disabled for ``targets``."""
        with self.disabled_for_source(source_kind, *targets):
            return fn()


def _paths(collections: cabc.Iterable[TargetCollection]) -> str:
    return ", ".join(c.path for c in collections) or "<none>"


__all__ = ["EnablementController", "EnablementState"]
