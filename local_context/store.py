"""Ordered, deduplicated reference store owned by a single document."""

from threading import Lock
from typing import Iterable, Iterator, List, Tuple


class ReferenceStore:
    """Insertion-ordered set of reference strings.

    Deduplication is by exact, case-sensitive string equality. Every
    operation takes the store's lock, so a merge working from ``snapshot()``
    sees one consistent list even if the store is edited meanwhile.
    """

    def __init__(self, references: Iterable[str] = ()):
        self._references: List[str] = []
        self._lock = Lock()
        self.add(references)

    def add(self, references: Iterable[str]) -> List[str]:
        """Append references not already present. Returns the ones added."""
        added: List[str] = []
        with self._lock:
            for ref in references:
                if ref and ref not in self._references:
                    self._references.append(ref)
                    added.append(ref)
        return added

    def remove(self, references: Iterable[str]) -> List[str]:
        """Remove references, keeping the order of the rest. Returns the ones removed."""
        targets = set(references)
        with self._lock:
            removed = [r for r in self._references if r in targets]
            self._references = [r for r in self._references if r not in targets]
        return removed

    def clear(self) -> int:
        """Remove every reference. Returns how many were dropped."""
        with self._lock:
            count = len(self._references)
            self._references = []
        return count

    def replace(self, references: Iterable[str]) -> None:
        """Swap the whole list, deduplicating the new content."""
        fresh: List[str] = []
        for ref in references:
            if ref and ref not in fresh:
                fresh.append(ref)
        with self._lock:
            self._references = fresh

    def count(self) -> int:
        with self._lock:
            return len(self._references)

    def snapshot(self) -> Tuple[str, ...]:
        """Immutable copy of the current order."""
        with self._lock:
            return tuple(self._references)

    def __len__(self) -> int:
        return self.count()

    def __iter__(self) -> Iterator[str]:
        return iter(self.snapshot())

    def __contains__(self, reference: object) -> bool:
        with self._lock:
            return reference in self._references

    def __repr__(self) -> str:
        return f"ReferenceStore({list(self.snapshot())!r})"
