"""Documents, record changes and the collaborator protocols.

A serializer turns a domain record into a :class:`DocumentSnapshot`; an index
client ships snapshots to the search engine. Neither is implemented here.
:class:`RecordChange` carries a committed record together with the attribute
values it held before the change, so update strategies can rebuild the
previous document.
"""

from __future__ import annotations

import copy
import dataclasses
import typing as typ

import msgspec

from indexsync.errors import ReadOnlyRecordError
from indexsync.registry import LifecycleEvent

if typ.TYPE_CHECKING:
    import collections.abc as cabc

type DocumentId = str | int
type Routing = str | int
type PreviousRecordBuilder = cabc.Callable[
    [object, cabc.Mapping[str, object]], object
]


class DocumentSnapshot(msgspec.Struct, frozen=True, kw_only=True):
    """Serialized form of a record at a point in time.

    Attributes
    ----------
    id : DocumentId | None
        Document identifier within its collection.
    routing : Routing | None
        Shard selector, independent of ``id``.
    source : dict[str, object]
        Document body.
    skip_index : bool
        When set, create events do not index this document.

    """

    id: str | int | None
    routing: str | int | None = None
    source: dict[str, object] = msgspec.field(default_factory=dict)
    skip_index: bool = False


class Serializer(typ.Protocol):
    """Turns a domain record into a document, or ``None`` to skip it."""

    def __call__(self, record: typ.Any, /) -> DocumentSnapshot | None: ...


class IndexClient(typ.Protocol):
    """Synchronous client for a search engine.

    ``index``, ``update`` and ``delete`` raise
    :class:`indexsync.errors.NotFoundError` for 404-class responses. Every
    method receives the target index and collection names as keywords along
    with the binding's options.
    """

    def index(
        self,
        document: DocumentSnapshot,
        *,
        index: str,
        collection: str,
        **options: object,
    ) -> object: ...

    def update(
        self,
        document: DocumentSnapshot,
        *,
        index: str,
        collection: str,
        **options: object,
    ) -> object: ...

    def delete(
        self,
        document: DocumentSnapshot,
        *,
        index: str,
        collection: str,
        **options: object,
    ) -> object: ...

    def bulk_update_attribute(
        self,
        attribute: str,
        ids: cabc.Sequence[DocumentId],
        *,
        index: str,
        collection: str,
        **options: object,
    ) -> object: ...


class ReadOnlyRecord:
    """Attribute-forwarding view that refuses writes.

    Wraps previous-state copies of plain objects, which have no frozen form
    of their own. ``isinstance`` checks see the wrapped record's class.
    """

    __slots__ = ("_record",)

    def __init__(self, record: object) -> None:
        """Wrap ``record``."""
        object.__setattr__(self, "_record", record)

    @property  # type: ignore[misc]
    def __class__(self) -> type:  # noqa: D105
        return type(object.__getattribute__(self, "_record"))

    def __getattr__(self, name: str) -> object:
        """Read ``name`` from the wrapped record."""
        return getattr(object.__getattribute__(self, "_record"), name)

    def __setattr__(self, name: str, value: object) -> None:
        """Refuse attribute assignment."""
        raise ReadOnlyRecordError(self.__class__, f"set {name}")

    def __delattr__(self, name: str) -> None:
        """Refuse attribute deletion."""
        raise ReadOnlyRecordError(self.__class__, f"delete {name}")

    def __repr__(self) -> str:
        """Mark the wrapped record's repr as read-only."""
        return f"<read-only {object.__getattribute__(self, '_record')!r}>"


def unwrap_record(record: object) -> object:
    """Return the record behind a :class:`ReadOnlyRecord`, or ``record``."""
    if type(record) is ReadOnlyRecord:
        return object.__getattribute__(record, "_record")
    return record


def build_previous_record(
    record: object, previous_values: cabc.Mapping[str, object]
) -> object:
    """Overlay ``previous_values`` onto a fresh copy of ``record``.

    Dataclass and msgspec struct records are rebuilt as new instances of
    their own class, so serializers receive the same type they handle for
    the committed record; frozen classes stay frozen. Anything else is
    shallow-copied, assigned attribute by attribute and wrapped in a
    :class:`ReadOnlyRecord`.
    """
    if isinstance(record, msgspec.Struct):
        return msgspec.structs.replace(record, **previous_values)
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return dataclasses.replace(record, **previous_values)
    previous = copy.copy(record)
    for key, value in previous_values.items():
        setattr(previous, key, value)
    return ReadOnlyRecord(previous)


@dataclasses.dataclass(frozen=True, slots=True)
class RecordChange:
    """A committed mutation of one source record."""

    record: object
    event: LifecycleEvent
    previous_values: cabc.Mapping[str, object] = dataclasses.field(
        default_factory=dict
    )
    previous_builder: PreviousRecordBuilder = build_previous_record

    @property
    def source_kind(self) -> type:
        """Return the class of the changed record."""
        return type(self.record)

    def previous_record(self) -> object:
        """Rebuild the record as it was before this change."""
        return self.previous_builder(self.record, self.previous_values)


__all__ = [
    "DocumentId",
    "DocumentSnapshot",
    "IndexClient",
    "PreviousRecordBuilder",
    "ReadOnlyRecord",
    "RecordChange",
    "Routing",
    "Serializer",
    "build_previous_record",
    "unwrap_record",
]
