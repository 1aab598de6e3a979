"""
In-memory catalog of index entries, unique by identifier.
"""

from typing import Dict, Iterator, List, Optional

from .entry import IndexEntry


class EntryCatalog:
    """
    Mapping of package identifier to IndexEntry.

    Adding an entry whose identifier is already present replaces it.
    Iteration follows insertion order, but callers should only rely on
    set semantics.
    """

    def __init__(self):
        self._entries: Dict[str, IndexEntry] = {}

    def add(self, entry: IndexEntry) -> None:
        self._entries[entry.identifier] = entry

    def remove(self, identifier: str) -> None:
        self._entries.pop(identifier, None)

    def contains(self, identifier: str) -> bool:
        return identifier in self._entries

    def get(self, identifier: str) -> Optional[IndexEntry]:
        return self._entries.get(identifier)

    def size(self) -> int:
        return len(self._entries)

    def values(self) -> List[IndexEntry]:
        return list(self._entries.values())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, identifier: str) -> bool:
        return self.contains(identifier)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.values())

    def __repr__(self) -> str:
        return f"EntryCatalog(size={self.size()})"
