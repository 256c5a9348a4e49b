"""Strategies that index, re-index and delete whole documents."""

from __future__ import annotations

import typing as typ

from indexsync.config import UpdateMode
from indexsync.errors import NotFoundError
from indexsync.strategies.base import SyncStrategy

if typ.TYPE_CHECKING:
    from indexsync.config import IndexSyncConfig
    from indexsync.documents import DocumentSnapshot, RecordChange
    from indexsync.targets import TargetCollection


class IndexOnCreate(SyncStrategy):
    """Index the document of a newly created record."""

    def call(self, change: RecordChange) -> None:
        """Index the serialized record unless it is absent or marked skip."""
        document = self.serialize(self.record_for(change))
        if document is None or document.skip_index:
            return
        self.index_document(document)


class IndexOnUpdate(SyncStrategy):
    """Write the current document and migrate it when its routing changes.

    The write uses :attr:`update_with`. In update mode a missing document is
    indexed instead. When the current document carries a routing key, the
    record is rebuilt from its pre-change values; if that previous document
    has the same id but a different routing, its copy is deleted from the old
    routing. A missing old copy counts as deleted.

    Parameters
    ----------
    target
        Collection the record is synchronised into.
    update_with
        Explicit write mode. Without one, collections with lazy attributes
        use update mode so a full write does not drop those attributes, and
        other collections use the configured default.

    """

    def __init__(
        self,
        target: TargetCollection,
        *,
        update_with: UpdateMode | str | None = None,
        block_result: object | None = None,
        config: IndexSyncConfig | None = None,
        **options: object,
    ) -> None:
        """Resolve the write mode and store the remaining options."""
        super().__init__(target, block_result=block_result, config=config, **options)
        if update_with is not None:
            self.update_with = UpdateMode(update_with)
        elif target.lazy_attributes:
            self.update_with = UpdateMode.UPDATE
        else:
            self.update_with = self.config.update_with

    def call(self, change: RecordChange) -> None:
        """Write the current document, then delete any stale routed copy."""
        document = self.serialize(self.record_for(change))
        if document is None:
            return

        self.write_document(document)
        if document.routing is None:
            return

        previous = self.serialize(change.previous_record())
        if not _routing_moved(previous, document):
            return

        try:
            self.delete_document(previous)
        except NotFoundError:
            self.events.log_document_not_found(
                collection=self.target.path,
                document_id=previous.id,
                action="delete_previous_routing",
            )
            return
        self.events.log_stale_document_deleted(
            collection=self.target.path,
            document_id=previous.id,
            previous_routing=previous.routing,
            routing=document.routing,
        )

    def write_document(self, document: DocumentSnapshot) -> None:
        """Index or update ``document`` according to :attr:`update_with`."""
        if self.update_with is not UpdateMode.UPDATE:
            self.index_document(document)
            return
        try:
            self.update_document(document)
        except NotFoundError:
            self.events.log_document_not_found(
                collection=self.target.path,
                document_id=document.id,
                action="update",
            )
            self.index_document(document)


def _routing_moved(
    previous: DocumentSnapshot | None, current: DocumentSnapshot
) -> typ.TypeGuard[DocumentSnapshot]:
    """Return True when ``previous`` is the same document on another routing."""
    if previous is None:
        return False
    if previous.id is None or previous.routing is None:
        return False
    if previous.routing == current.routing:
        return False
    return previous.id == current.id


class DeleteOnDestroy(SyncStrategy):
    """Delete the document of a destroyed record."""

    def call(self, change: RecordChange) -> None:
        """Delete the serialized record; a missing document is not an error."""
        document = self.serialize(self.record_for(change))
        if document is None:
            return
        try:
            self.delete_document(document)
        except NotFoundError:
            self.events.log_document_not_found(
                collection=self.target.path,
                document_id=document.id,
                action="delete",
            )
