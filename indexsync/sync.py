"""The ``IndexSync`` context object.

An :class:`IndexSync` owns everything a process needs to keep a search index
in step with its records: the collection catalog, the source bindings, the
context-local enablement controller and the dispatcher. Only the strategy
registry is shared process-wide by default.

Usage
-----
Declare an index, bind a model to it, and feed committed changes in::

    from indexsync import IndexSync, SearchIndex

    sync = IndexSync()
    geographies = sync.add_index(SearchIndex("geographies", client))
    geographies.collection("state", serialize_state)

    sync.index_callback(State, "geographies:state", update_with="update")

    sync.handle(state, "update", previous_values={"name": "Illinois"})

Suppress indexing for a block::

    with sync.without_indexing("geographies"):
        import_states()

"""

from __future__ import annotations

import typing as typ

from indexsync import strategies
from indexsync.bindings import SourceBindings
from indexsync.config import IndexSyncConfig
from indexsync.dispatcher import Dispatcher
from indexsync.documents import build_previous_record
from indexsync.enablement import EnablementController
from indexsync.logging import configure_logging, get_logger, log_warning
from indexsync.registry import ALL_EVENTS, default_registry
from indexsync.targets import CollectionCatalog

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import contextlib

    from indexsync.bindings import BoundCallback, RecordOverride, RecordPredicate
    from indexsync.documents import PreviousRecordBuilder
    from indexsync.registry import LifecycleEvent, StrategyRegistry
    from indexsync.targets import SearchIndex, TargetRef

logger = get_logger(__name__)

type Events = cabc.Iterable[LifecycleEvent | str]


class IndexSync:
    """Synchronisation context tying bindings, enablement and dispatch.

    Parameters
    ----------
    registry:
        Strategy registry; defaults to the process-wide registry with the
        built-in strategies.
    catalog:
        Collection catalog; a new empty catalog by default.
    config:
        Settings; defaults to :class:`IndexSyncConfig` defaults.

    """

    def __init__(
        self,
        *,
        registry: StrategyRegistry | None = None,
        catalog: CollectionCatalog | None = None,
        config: IndexSyncConfig | None = None,
    ) -> None:
        """Build the bindings, controller and dispatcher for this context."""
        self.config = config or IndexSyncConfig()
        self.registry = registry if registry is not None else default_registry
        self.catalog = catalog if catalog is not None else CollectionCatalog()
        self.bindings = SourceBindings(self.registry)
        self.enablement = EnablementController(
            self.catalog, self.bindings, default=self.config.enabled
        )
        self.dispatcher = Dispatcher(
            self.bindings, self.catalog, self.enablement, self.config
        )

    @classmethod
    def from_env(cls, **kwargs: typ.Any) -> IndexSync:  # noqa: ANN401
        """Create a context configured from ``INDEXSYNC_*`` variables.

        Also configures femtologging at ``INDEXSYNC_LOG_LEVEL``.
        """
        config = IndexSyncConfig.from_env()
        level, invalid = configure_logging(config.log_level)
        if invalid:
            log_warning(
                logger,
                "Invalid INDEXSYNC_LOG_LEVEL %r; using %s",
                config.log_level,
                level,
            )
        return cls(config=config, **kwargs)

    # -- definition ----------------------------------------------------------

    def add_index(self, index: SearchIndex) -> SearchIndex:
        """Register ``index`` in the catalog and return it."""
        return self.catalog.add(index)

    def bind_callback(  # noqa: PLR0913
        self,
        source_kind: type,
        target_name: str,
        kind: str,
        *,
        on: Events = ALL_EVENTS,
        record: RecordOverride | None = None,
        condition: RecordPredicate | None = None,
        unless: RecordPredicate | None = None,
        **options: object,
    ) -> tuple[BoundCallback, ...]:
        """Bind strategy ``kind`` of ``source_kind`` to ``target_name``.

        Raises
        ------
        UnknownCollectionError
            If ``target_name`` does not resolve in the catalog.
        AmbiguousCollectionError
            If ``target_name`` omits the collection of a multi-collection
            index.
        UnregisteredStrategyError
            If ``(kind, event)`` is not registered for a requested event.
        DuplicateBindingError
            If the same binding already exists for ``source_kind``.

        """
        self.catalog.resolve(target_name)
        return self.bindings.bind(
            source_kind,
            target_name,
            kind,
            on=on,
            record=record,
            condition=condition,
            unless=unless,
            **options,
        )

    def index_callback(
        self,
        source_kind: type,
        target_name: str,
        *,
        on: Events = ALL_EVENTS,
        **options: typ.Any,  # noqa: ANN401
    ) -> tuple[BoundCallback, ...]:
        """Bind the built-in index/re-index/delete strategies."""
        return self.bind_callback(
            source_kind, target_name, strategies.INDEX_KIND, on=on, **options
        )

    def lazy_attribute_callback(
        self,
        source_kind: type,
        target_name: str,
        attribute_name: str,
        *,
        on: Events = ALL_EVENTS,
        **options: typ.Any,  # noqa: ANN401
    ) -> tuple[BoundCallback, ...]:
        """Bind a refresh of ``attribute_name`` on related documents."""
        return self.bind_callback(
            source_kind,
            target_name,
            strategies.LAZY_ATTRIBUTE_KIND,
            on=on,
            attribute_name=attribute_name,
            **options,
        )

    def callback[K: type](
        self,
        target_name: str,
        kind: str = strategies.INDEX_KIND,
        **options: typ.Any,  # noqa: ANN401
    ) -> cabc.Callable[[K], K]:
        """Return a class decorator that binds ``kind`` to ``target_name``."""

        def decorate(source_kind: K) -> K:
            self.bind_callback(source_kind, target_name, kind, **options)
            return source_kind

        return decorate

    # -- control -------------------------------------------------------------

    def without_indexing(
        self, *targets: TargetRef
    ) -> contextlib.AbstractContextManager[None]:
        """Suppress synchronisation into ``targets`` inside a ``with`` block."""
        return self.enablement.disabled(*targets)

    def without_indexing_for(
        self, source_kind: type, *targets: TargetRef
    ) -> contextlib.AbstractContextManager[None]:
        """Suppress ``source_kind`` synchronisation inside a ``with`` block."""
        return self.enablement.disabled_for_source(source_kind, *targets)

    # -- dispatch ------------------------------------------------------------

    def handle(
        self,
        record: object,
        event: LifecycleEvent | str,
        *,
        previous_values: cabc.Mapping[str, object] | None = None,
        previous_builder: PreviousRecordBuilder = build_previous_record,
    ) -> int:
        """Dispatch one committed change; see :meth:`Dispatcher.handle`."""
        return self.dispatcher.handle(
            record,
            event,
            previous_values=previous_values,
            previous_builder=previous_builder,
        )
