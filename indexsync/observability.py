"""Structured log events for record synchronisation.

Events are emitted as pre-formatted ``[event] key=value`` lines through
femtologging, suitable for parsing by log aggregators.

Usage
-----
>>> event_logger = SyncEventLogger()
>>> event_logger.log_document_not_found(
...     collection="geographies:state", document_id=1, action="delete"
... )

"""

from __future__ import annotations

import enum
import typing as typ

from indexsync.logging import get_logger, log_debug, log_error, log_info

if typ.TYPE_CHECKING:
    from indexsync.registry import LifecycleEvent

logger = get_logger(__name__)


class SyncEventType(enum.StrEnum):
    """Structured log event types for synchronisation runs."""

    DISPATCH_SUPPRESSED = "sync.dispatch.suppressed"
    DISPATCH_COMPLETED = "sync.dispatch.completed"
    DISPATCH_FAILED = "sync.dispatch.failed"
    DOCUMENT_NOT_FOUND = "sync.document.not_found"
    STALE_DOCUMENT_DELETED = "sync.document.stale_deleted"


class SyncEventLogger:
    """Emit structured synchronisation events via femtologging."""

    def log_dispatch_suppressed(
        self,
        *,
        source_kind: type,
        event: LifecycleEvent,
        target_name: str,
        reason: str,
    ) -> None:
        """Log a bound callback skipped by its guard."""
        log_debug(
            logger,
            "[%s] source=%s event=%s target=%s reason=%s",
            SyncEventType.DISPATCH_SUPPRESSED,
            source_kind.__qualname__,
            event,
            target_name,
            reason,
        )

    def log_dispatch_completed(
        self,
        *,
        source_kind: type,
        event: LifecycleEvent,
        target_name: str,
        identifier: str,
    ) -> None:
        """Log a strategy that ran to completion."""
        log_info(
            logger,
            "[%s] source=%s event=%s target=%s strategy=%s",
            SyncEventType.DISPATCH_COMPLETED,
            source_kind.__qualname__,
            event,
            target_name,
            identifier,
        )

    def log_dispatch_failed(
        self,
        *,
        source_kind: type,
        event: LifecycleEvent,
        target_name: str,
        error: BaseException,
    ) -> None:
        """Log a strategy failure before it propagates to the caller.

        Parameters
        ----------
        source_kind
            Class of the record whose change was being synchronised.
        event
            Lifecycle event being dispatched.
        target_name
            Collection name the callback was bound to.
        error
            Exception raised by the strategy or its index client.

        """
        log_error(
            logger,
            "[%s] source=%s event=%s target=%s error_type=%s error_message=%s",
            SyncEventType.DISPATCH_FAILED,
            source_kind.__qualname__,
            event,
            target_name,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_document_not_found(
        self, *, collection: str, document_id: object, action: str
    ) -> None:
        """Log a 404-class response absorbed by a strategy."""
        log_debug(
            logger,
            "[%s] collection=%s id=%s action=%s",
            SyncEventType.DOCUMENT_NOT_FOUND,
            collection,
            document_id,
            action,
        )

    def log_stale_document_deleted(
        self,
        *,
        collection: str,
        document_id: object,
        previous_routing: object,
        routing: object,
    ) -> None:
        """Log removal of a document copy left on its previous routing."""
        log_info(
            logger,
            "[%s] collection=%s id=%s previous_routing=%s routing=%s",
            SyncEventType.STALE_DOCUMENT_DELETED,
            collection,
            document_id,
            previous_routing,
            routing,
        )


__all__ = ["SyncEventLogger", "SyncEventType"]
