"""Keep search indices in step with committed record changes.

The package provides:

- a process-wide registry of synchronisation strategies keyed by kind and
  lifecycle event
- per-source-kind bindings of those strategies to index collections
- a context-local control plane to suppress synchronisation globally, per
  collection, or per source kind
- the built-in strategies, including routing migration on update
- a SQLAlchemy trigger that dispatches changes after commit

Usage
-----
Bind a model and run synchronisation from SQLAlchemy commits::

    from indexsync import IndexSync, SearchIndex
    from indexsync.orm import install

    sync = IndexSync.from_env()
    counties = sync.add_index(SearchIndex("geographies", client))
    counties.collection("county", serialize_county)
    sync.index_callback(County, "geographies:county")
    install(sync, Session)

Suppress indexing for a block::

    with sync.without_indexing():
        bulk_import()

"""

from indexsync.bindings import BoundCallback, SourceBindings
from indexsync.config import IndexSyncConfig, UpdateMode
from indexsync.dispatcher import Dispatcher
from indexsync.documents import (
    DocumentSnapshot,
    IndexClient,
    ReadOnlyRecord,
    RecordChange,
    Serializer,
)
from indexsync.enablement import EnablementController, EnablementState
from indexsync.errors import (
    AmbiguousCollectionError,
    DuplicateBindingError,
    DuplicateStrategyError,
    IndexSyncConfigurationError,
    IndexSyncError,
    NotFoundError,
    ReadOnlyRecordError,
    UnknownCollectionError,
    UnknownSourceError,
    UnregisteredStrategyError,
)
from indexsync.registry import (
    LifecycleEvent,
    StrategyKey,
    StrategyRegistry,
    default_registry,
    register_strategy,
)
from indexsync.strategies import (
    DeleteOnDestroy,
    IndexOnCreate,
    IndexOnUpdate,
    RefreshDerivedAttribute,
    SyncStrategy,
)
from indexsync.sync import IndexSync
from indexsync.targets import CollectionCatalog, SearchIndex, TargetCollection

__all__ = [
    "AmbiguousCollectionError",
    "BoundCallback",
    "CollectionCatalog",
    "DeleteOnDestroy",
    "Dispatcher",
    "DocumentSnapshot",
    "DuplicateBindingError",
    "DuplicateStrategyError",
    "EnablementController",
    "EnablementState",
    "IndexClient",
    "IndexOnCreate",
    "IndexOnUpdate",
    "IndexSync",
    "IndexSyncConfig",
    "IndexSyncConfigurationError",
    "IndexSyncError",
    "LifecycleEvent",
    "NotFoundError",
    "ReadOnlyRecord",
    "ReadOnlyRecordError",
    "RecordChange",
    "RefreshDerivedAttribute",
    "SearchIndex",
    "Serializer",
    "SourceBindings",
    "StrategyKey",
    "StrategyRegistry",
    "SyncStrategy",
    "TargetCollection",
    "UnknownCollectionError",
    "UnknownSourceError",
    "UnregisteredStrategyError",
    "UpdateMode",
    "default_registry",
    "register_strategy",
]
