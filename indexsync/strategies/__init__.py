"""Built-in synchronisation strategies.

Importing this package registers the built-ins in
:data:`indexsync.registry.default_registry`:

========================  ==========  =========================
kind                      event       strategy
========================  ==========  =========================
``index``                 create      :class:`IndexOnCreate`
``index``                 update      :class:`IndexOnUpdate`
``index``                 destroy     :class:`DeleteOnDestroy`
``update_lazy_attribute`` all three   :class:`RefreshDerivedAttribute`
========================  ==========  =========================

"""

from __future__ import annotations

from indexsync.registry import (
    LifecycleEvent,
    StrategyRegistry,
    default_registry,
)
from indexsync.strategies.base import SyncStrategy
from indexsync.strategies.indexing import DeleteOnDestroy, IndexOnCreate, IndexOnUpdate
from indexsync.strategies.lazy_attribute import RefreshDerivedAttribute

INDEX_KIND = "index"
LAZY_ATTRIBUTE_KIND = "update_lazy_attribute"


def register_builtin_strategies(registry: StrategyRegistry) -> None:
    """Register the built-in strategies in ``registry``."""
    registry.register(INDEX_KIND, LifecycleEvent.CREATE, IndexOnCreate)
    registry.register(INDEX_KIND, LifecycleEvent.UPDATE, IndexOnUpdate)
    registry.register(INDEX_KIND, LifecycleEvent.DESTROY, DeleteOnDestroy)
    for event in LifecycleEvent:
        registry.register(LAZY_ATTRIBUTE_KIND, event, RefreshDerivedAttribute)


register_builtin_strategies(default_registry)

__all__ = [
    "INDEX_KIND",
    "LAZY_ATTRIBUTE_KIND",
    "DeleteOnDestroy",
    "IndexOnCreate",
    "IndexOnUpdate",
    "RefreshDerivedAttribute",
    "SyncStrategy",
    "register_builtin_strategies",
]
