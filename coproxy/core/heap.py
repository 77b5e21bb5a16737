# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Resource Registry

Maps opaque numeric ids to live OS handles (client connections).

- ResourceId: value-type id, ordered by allocation, never reused
- Heap: persistent mapping; every update returns a new Heap
- ResourceTable: owner of the single live Heap value for a server

Ids are allocated from a monotonic counter carried by the Heap itself,
so removing an entry never frees its id for reuse.
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Generic, Iterator, List, Mapping, Optional, Tuple, TypeVar

from .exceptions import InvalidResourceIdError, ResourceNotFoundError

T = TypeVar("T")

_ID_PATTERN = re.compile(r"[0-9]+")


@dataclass(frozen=True, order=True)
class ResourceId:
    """Opaque resource identifier"""

    value: int

    def __str__(self) -> str:
        return str(self.value)

    @classmethod
    def parse(cls, text: str) -> "ResourceId":
        """Parse the textual form produced by str()"""
        if not _ID_PATTERN.fullmatch(text):
            raise InvalidResourceIdError(
                f"Invalid resource id: {text!r}", resource_id=text
            )
        return cls(int(text))


class Heap(Generic[T]):
    """Persistent id -> handle mapping"""

    __slots__ = ("_entries", "_next_id")

    def __init__(self, entries: Optional[Mapping[ResourceId, T]] = None, next_id: int = 0):
        self._entries: Mapping[ResourceId, T] = MappingProxyType(dict(entries or {}))
        self._next_id = next_id

    def add(self, handle: T) -> Tuple[ResourceId, "Heap[T]"]:
        """Store a handle under a fresh id"""
        resource_id = ResourceId(self._next_id)
        entries: Dict[ResourceId, T] = dict(self._entries)
        entries[resource_id] = handle
        return resource_id, Heap(entries, self._next_id + 1)

    def find(self, resource_id: ResourceId) -> Optional[T]:
        return self._entries.get(resource_id)

    def remove(self, resource_id: ResourceId) -> "Heap[T]":
        """Drop an id; removing an absent id returns an equal heap"""
        if resource_id not in self._entries:
            return self
        entries = {k: v for k, v in self._entries.items() if k != resource_id}
        return Heap(entries, self._next_id)

    def cleared(self) -> "Heap[T]":
        """Empty heap that keeps the id counter"""
        return Heap({}, self._next_id)

    def ids(self) -> List[ResourceId]:
        return sorted(self._entries)

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._entries

    def __iter__(self) -> Iterator[Tuple[ResourceId, T]]:
        return iter(sorted(self._entries.items()))

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Heap(size={len(self._entries)}, next_id={self._next_id})"


class ResourceTable(Generic[T]):
    """
    Single owner of the live Heap.

    Every mutation swaps the whole heap in one step with no await in
    between, so concurrent command tasks never see a half-applied update.
    """

    def __init__(self, name: str = "resources"):
        self.name = name
        self._heap: Heap[T] = Heap()

    @property
    def heap(self) -> Heap[T]:
        return self._heap

    def add(self, handle: T) -> ResourceId:
        resource_id, self._heap = self._heap.add(handle)
        return resource_id

    def find(self, resource_id: ResourceId) -> Optional[T]:
        return self._heap.find(resource_id)

    def require(self, resource_id: ResourceId) -> T:
        handle = self._heap.find(resource_id)
        if handle is None:
            raise ResourceNotFoundError(
                f"{self.name}: no resource with id {resource_id}",
                resource_id=str(resource_id),
            )
        return handle

    def remove(self, resource_id: ResourceId) -> None:
        self._heap = self._heap.remove(resource_id)

    def drain(self) -> List[T]:
        """Remove every entry and return the handles"""
        handles = [handle for _, handle in self._heap]
        self._heap = self._heap.cleared()
        return handles

    def __len__(self) -> int:
        return len(self._heap)
