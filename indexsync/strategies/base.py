"""Base class for synchronisation strategies."""

from __future__ import annotations

import abc
import typing as typ

from indexsync.config import IndexSyncConfig
from indexsync.observability import SyncEventLogger

if typ.TYPE_CHECKING:
    from indexsync.documents import DocumentSnapshot, RecordChange
    from indexsync.targets import TargetCollection


class SyncStrategy(abc.ABC):
    """One synchronisation behaviour for one ``(kind, event)`` pair.

    Strategies are built per dispatch with the resolved collection, the
    result of the binding's record override (``None`` when the binding has
    none), the context configuration and the binding's remaining options.
    Options not consumed by a subclass constructor are forwarded to every
    index client call.

    Parameters
    ----------
    target
        Collection the record is synchronised into.
    block_result
        Value returned by the binding's record override, if any.
    config
        Settings of the owning ``IndexSync`` context.
    **options
        Binding options passed through to the index client.

    """

    def __init__(
        self,
        target: TargetCollection,
        *,
        block_result: object | None = None,
        config: IndexSyncConfig | None = None,
        **options: object,
    ) -> None:
        """Store the collection, override result, config and client options."""
        self.target = target
        self.block_result = block_result
        self.config = config or IndexSyncConfig()
        self.options = options
        self.events = SyncEventLogger()

    @abc.abstractmethod
    def call(self, change: RecordChange) -> None:
        """Synchronise ``change`` into :attr:`target`."""

    def record_for(self, change: RecordChange) -> object:
        """Return the override result, falling back to the changed record."""
        return change.record if self.block_result is None else self.block_result

    def serialize(self, record: object) -> DocumentSnapshot | None:
        """Serialize ``record`` with the collection's serializer."""
        return self.target.serializer(record)

    def _client_kwargs(self) -> dict[str, object]:
        return {
            **self.options,
            "index": self.target.index_name,
            "collection": self.target.name,
        }

    def index_document(self, document: DocumentSnapshot) -> object:
        """Index (upsert) ``document``."""
        return self.target.client.index(document, **self._client_kwargs())

    def update_document(self, document: DocumentSnapshot) -> object:
        """Partially update an existing ``document``."""
        return self.target.client.update(document, **self._client_kwargs())

    def delete_document(self, document: DocumentSnapshot) -> object:
        """Delete ``document``."""
        return self.target.client.delete(document, **self._client_kwargs())

    def __repr__(self) -> str:
        """Show the strategy class and its collection."""
        return f"{type(self).__name__}({self.target.path!r})"
