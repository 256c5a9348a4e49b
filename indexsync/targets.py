"""Search indices, their collections, and name resolution.

A :class:`SearchIndex` groups one or more :class:`TargetCollection` entries
that share an index client. A :class:`CollectionCatalog` is the explicit
``name -> collection`` registry consulted by bindings and the enablement
controller.

Names are normalized before lookup, so for an index ``users`` holding a
collection ``user`` all of these resolve to the same collection::

    users   users_index   UsersIndex
    users:user   users_index:user   UsersIndex::User   users_index/user

"""

from __future__ import annotations

import dataclasses
import re
import typing as typ

from indexsync.errors import AmbiguousCollectionError, UnknownCollectionError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from indexsync.documents import IndexClient, Serializer

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_INDEX_SUFFIX = "_index"


def underscore(name: str) -> str:
    """Convert ``CamelCase`` and ``Ns::Name`` spellings to ``snake/case``."""
    path = name.strip().replace("::", "/")
    return "/".join(
        _CAMEL_BOUNDARY.sub("_", segment).lower() for segment in path.split("/")
    )


def normalize_index_name(name: str) -> str:
    """Return the catalog key for an index name."""
    return underscore(name).removesuffix(_INDEX_SUFFIX)


@dataclasses.dataclass(frozen=True, slots=True)
class TargetCollection:
    """A synchronisation destination: one collection within a search index.

    Equality and hashing use only ``(index_name, name)``, so a collection can
    key enablement state.
    """

    index_name: str
    name: str
    serializer: Serializer = dataclasses.field(compare=False, repr=False)
    client: IndexClient = dataclasses.field(compare=False, repr=False)
    lazy_attributes: tuple[str, ...] = dataclasses.field(default=(), compare=False)

    @property
    def path(self) -> str:
        """Return the ``index:collection`` name of this collection."""
        return f"{self.index_name}:{self.name}"

    def __str__(self) -> str:
        """Return :attr:`path`."""
        return self.path


class SearchIndex:
    """A named search index and the collections it stores."""

    def __init__(self, name: str, client: IndexClient) -> None:
        """Create an empty index called ``name`` served by ``client``."""
        self.name = name
        self.client = client
        self._collections: dict[str, TargetCollection] = {}

    def collection(
        self,
        name: str,
        serializer: Serializer,
        *,
        lazy_attributes: cabc.Iterable[str] = (),
    ) -> TargetCollection:
        """Define a collection in this index and return it.

        Raises
        ------
        ValueError
            If the index already defines a collection called ``name``.

        """
        key = underscore(name)
        if key in self._collections:
            msg = f"index {self.name!r} already defines collection {key!r}"
            raise ValueError(msg)
        collection = TargetCollection(
            index_name=self.name,
            name=key,
            serializer=serializer,
            client=self.client,
            lazy_attributes=tuple(lazy_attributes),
        )
        self._collections[key] = collection
        return collection

    @property
    def collections(self) -> tuple[TargetCollection, ...]:
        """Return the collections in definition order."""
        return tuple(self._collections.values())

    def get(self, name: str) -> TargetCollection | None:
        """Return the collection called ``name``, if defined."""
        return self._collections.get(underscore(name))

    def default_collection(self) -> TargetCollection:
        """Return the sole collection of this index.

        Raises
        ------
        UnknownCollectionError
            If the index has no collections.
        AmbiguousCollectionError
            If the index has more than one collection.

        """
        match self.collections:
            case (only,):
                return only
            case ():
                raise UnknownCollectionError(self.name)
            case many:
                raise AmbiguousCollectionError(self.name, (c.name for c in many))

    def __repr__(self) -> str:
        """Show the index name and its collection names."""
        names = ", ".join(self._collections)
        return f"SearchIndex({self.name!r}, collections=[{names}])"


type TargetRef = str | SearchIndex | TargetCollection


class CollectionCatalog:
    """Explicit registry of search indices, queried by normalized name."""

    def __init__(self, indices: cabc.Iterable[SearchIndex] = ()) -> None:
        """Create a catalog holding ``indices``."""
        self._indices: dict[str, SearchIndex] = {}
        for index in indices:
            self.add(index)

    def add(self, index: SearchIndex) -> SearchIndex:
        """Register ``index`` under its normalized name.

        Raises
        ------
        ValueError
            If another index already uses the same normalized name.

        """
        key = normalize_index_name(index.name)
        existing = self._indices.get(key)
        if existing is not None and existing is not index:
            msg = f"index name {index.name!r} collides with {existing.name!r}"
            raise ValueError(msg)
        self._indices[key] = index
        return index

    @property
    def indices(self) -> tuple[SearchIndex, ...]:
        """Return every registered index."""
        return tuple(self._indices.values())

    def _split(self, name: str) -> tuple[SearchIndex, str | None]:
        path = underscore(name)
        index_part, _, collection_part = path.partition(":")
        index = self._indices.get(normalize_index_name(index_part))
        if index is None and not collection_part and "/" in index_part:
            head, _, tail = index_part.rpartition("/")
            index = self._indices.get(normalize_index_name(head))
            collection_part = tail
        if index is None:
            raise UnknownCollectionError(name)
        return index, collection_part or None

    def resolve(self, name: str) -> TargetCollection:
        """Resolve a binding name to exactly one collection.

        Raises
        ------
        UnknownCollectionError
            If neither the index nor the named collection exists.
        AmbiguousCollectionError
            If ``name`` omits the collection of a multi-collection index.

        """
        index, collection_name = self._split(name)
        if collection_name is None:
            return index.default_collection()
        collection = index.get(collection_name)
        if collection is None:
            raise UnknownCollectionError(name)
        return collection

    def expand(self, target: TargetRef) -> tuple[TargetCollection, ...]:
        """Expand a name, index or collection to the collections it covers.

        An index, or a name without a collection suffix, covers every
        collection of that index.

        Raises
        ------
        TypeError
            If ``target`` is not a name, index or collection.

        """
        match target:
            case TargetCollection():
                return (target,)
            case SearchIndex():
                return target.collections
            case str():
                index, collection_name = self._split(target)
                if collection_name is None:
                    return index.collections
                return (self.resolve(target),)
            case _:
                msg = f"Invalid index or collection reference: {target!r}"
                raise TypeError(msg)


__all__ = [
    "CollectionCatalog",
    "SearchIndex",
    "TargetCollection",
    "TargetRef",
    "normalize_index_name",
    "underscore",
]
