from __future__ import annotations

from typing import Callable, Generic, Hashable, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class EntityInterner(Generic[T]):
    """Insert-if-absent registry that hands out one canonical instance per value.

    Two values are the same entity when their keys are equal. The default key
    is the value itself, which suits frozen value types; entities with mutable
    parts or back-references supply a key function describing their
    structural identity. Entries are never removed.
    """

    def __init__(self, key: Optional[Callable[[T], Hashable]] = None) -> None:
        self._key = key or (lambda value: value)
        self._items: List[T] = []
        self._index: dict[Hashable, T] = {}

    def add_if_required(self, value: T) -> T:
        key = self._key(value)
        existing = self._index.get(key)
        if existing is not None:
            return existing
        self._index[key] = value
        self._items.append(value)
        return value

    def add_all_if_required(self, values: Iterable[T]) -> List[T]:
        """Intern every value, returning the distinct canonical instances in first-seen order."""

        result: List[T] = []
        seen: set[int] = set()
        for value in values:
            canonical = self.add_if_required(value)
            if id(canonical) not in seen:
                seen.add(id(canonical))
                result.append(canonical)
        return result

    def find(self, key: Hashable) -> Optional[T]:
        return self._index.get(key)

    def __contains__(self, value: object) -> bool:
        return self._key(value) in self._index  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> List[T]:
        return list(self._items)


class OccurrenceCounter:
    """Counts how many distinct subjects carry each key, e.g. packages per license."""

    def __init__(self) -> None:
        self._subjects: dict[str, set[Hashable]] = {}

    def count(self, key: str, subject: Hashable) -> None:
        self._subjects.setdefault(key, set()).add(subject)

    def as_sorted_counts(self) -> dict[str, int]:
        return {key: len(self._subjects[key]) for key in sorted(self._subjects)}
