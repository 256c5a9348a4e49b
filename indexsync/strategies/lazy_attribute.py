"""Strategy that refreshes one derived attribute across related documents."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from indexsync.strategies.base import SyncStrategy

if typ.TYPE_CHECKING:
    from indexsync.config import IndexSyncConfig
    from indexsync.documents import DocumentId, RecordChange
    from indexsync.targets import TargetCollection


class RefreshDerivedAttribute(SyncStrategy):
    """Ask the index client to recompute ``attribute_name`` for related ids.

    The ids come from the binding's record override, which may return a single
    id or an iterable of ids. Without an override the changed record's own
    ``id`` is used. An empty id set sends nothing.
    """

    def __init__(
        self,
        target: TargetCollection,
        *,
        attribute_name: str,
        block_result: object | None = None,
        config: IndexSyncConfig | None = None,
        **options: object,
    ) -> None:
        """Store the attribute to refresh and the remaining options."""
        super().__init__(target, block_result=block_result, config=config, **options)
        self.attribute_name = attribute_name

    def related_ids(self, change: RecordChange) -> list[DocumentId]:
        """Return the ids whose derived attribute must be recomputed."""
        source = self.block_result
        if source is None:
            source = getattr(change.record, "id", None)
        if source is None:
            return []
        if isinstance(source, str | bytes) or not isinstance(source, cabc.Iterable):
            return [typ.cast("DocumentId", source)]
        return [item for item in source if item is not None]

    def call(self, change: RecordChange) -> None:
        """Send one bulk attribute refresh for every related id."""
        ids = self.related_ids(change)
        if not ids:
            return
        self.target.client.bulk_update_attribute(
            self.attribute_name, ids, **self._client_kwargs()
        )
