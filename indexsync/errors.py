"""Errors raised by the index synchronisation core."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class IndexSyncError(Exception):
    """Base class for index synchronisation errors."""


class IndexSyncConfigurationError(IndexSyncError):
    """Base class for setup-time programmer and configuration errors.

    These are never retried; they indicate a model definition or strategy
    registration that cannot work.
    """


class DuplicateStrategyError(IndexSyncConfigurationError):
    """Raised when a ``(kind, event)`` strategy pair is registered twice."""

    def __init__(self, kind: str, event: str) -> None:
        """Initialise with the colliding strategy kind and event."""
        self.kind = kind
        self.event = event
        super().__init__(f"strategy {kind} for {event} operation already registered")


class UnregisteredStrategyError(IndexSyncConfigurationError):
    """Raised when a ``(kind, event)`` strategy pair has not been registered."""

    def __init__(self, kind: str, event: str) -> None:
        """Initialise with the missing strategy kind and event."""
        self.kind = kind
        self.event = event
        super().__init__(f"strategy {kind} for {event} operation not registered")


class DuplicateBindingError(IndexSyncConfigurationError):
    """Raised when a source kind binds the same callback to a target twice."""

    def __init__(self, source_kind: type, target_name: str, identifier: str) -> None:
        """Initialise with the source kind, target name and derived identifier."""
        self.source_kind = source_kind
        self.target_name = target_name
        self.identifier = identifier
        super().__init__(
            f"{source_kind.__qualname__} already binds {identifier} "
            f"to {target_name!r}"
        )


class UnknownSourceError(IndexSyncConfigurationError):
    """Raised when a source kind has no bound callbacks."""

    def __init__(self, source_kind: type) -> None:
        """Initialise with the unregistered source kind."""
        self.source_kind = source_kind
        super().__init__(
            f"Source kind {source_kind.__qualname__} is not registered. "
            "Bind at least one callback to it before controlling its indexing"
        )


class UnknownCollectionError(IndexSyncConfigurationError):
    """Raised when a target collection name cannot be resolved."""

    def __init__(self, name: str) -> None:
        """Initialise with the unresolvable name."""
        self.name = name
        super().__init__(f"Unknown index or collection: {name!r}")


class AmbiguousCollectionError(IndexSyncConfigurationError):
    """Raised when an index name without a collection suffix is ambiguous."""

    def __init__(self, name: str, candidates: cabc.Iterable[str]) -> None:
        """Initialise with the index name and its collection names."""
        self.name = name
        self.candidates = tuple(candidates)
        super().__init__(
            f"Index {name!r} has multiple collections "
            f"({', '.join(self.candidates)}); name one explicitly"
        )


class NotFoundError(IndexSyncError):
    """Raised by index clients when the addressed document does not exist."""

    def __init__(
        self, message: str = "document not found", *, status_code: int = 404
    ) -> None:
        """Initialise with a message and the response status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def for_document(cls, index: str, document_id: object) -> NotFoundError:
        """Return an error for a missing document in an index."""
        return cls(f"document {document_id!r} not found in {index}")


class ReadOnlyRecordError(AttributeError, IndexSyncError):
    """Raised when a reconstructed previous-state record is modified."""

    def __init__(self, record_type: type, action: str) -> None:
        """Initialise with the record type and the refused action."""
        self.record_type = record_type
        self.action = action
        super().__init__(
            f"{record_type.__qualname__} previous-state record is read-only; "
            f"cannot {action}"
        )


__all__ = [
    "AmbiguousCollectionError",
    "DuplicateBindingError",
    "DuplicateStrategyError",
    "IndexSyncConfigurationError",
    "IndexSyncError",
    "NotFoundError",
    "ReadOnlyRecordError",
    "UnknownCollectionError",
    "UnknownSourceError",
    "UnregisteredStrategyError",
]
