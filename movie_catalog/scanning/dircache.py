"""
In-memory directory cache used for incremental scanning.
"""
import threading
from typing import Dict, Iterator, Optional, Tuple

from ..models import DirCacheEntry


class DirectoryCache:
    """
    Maps directory path -> DirCacheEntry.

    Scanner workers only ever write the key of the directory they are
    listing, so concurrent sibling updates touch disjoint keys.
    """

    def __init__(self, entries: Optional[Dict[str, DirCacheEntry]] = None):
        self._entries: Dict[str, DirCacheEntry] = dict(entries or {})
        self._lock = threading.Lock()

    def lookup(self, directory: str, mtime_ns: int) -> Optional[DirCacheEntry]:
        """Returns the entry only if it is still valid for the given mtime."""
        entry = self._entries.get(directory)
        if entry is not None and entry.mtime_ns == mtime_ns:
            return entry
        return None

    def store(self, directory: str, entry: DirCacheEntry):
        with self._lock:
            self._entries[directory] = entry

    def items(self) -> Iterator[Tuple[str, DirCacheEntry]]:
        with self._lock:
            snapshot = list(self._entries.items())
        return iter(snapshot)

    def __len__(self) -> int:
        return len(self._entries)
