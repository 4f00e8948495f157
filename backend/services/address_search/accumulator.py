"""
Result Accumulator

Per-source bucket of placemarks collected during one search pass.
Insertion order is discovery order. try_append() keeps the first record
for any formatted text and drops later duplicates.
"""

from typing import Iterable, Iterator, List, Set, Tuple

from .placemark import PlacemarkRecord, format_placemark


class ResultAccumulator:
    def __init__(self, source: str = ""):
        self.source = source
        self._items: List[PlacemarkRecord] = []
        self._keys: Set[str] = set()

    def clear(self):
        self._items = []
        self._keys = set()

    def try_append(self, record: PlacemarkRecord) -> bool:
        """Append unless a record with the same formatted text is already present."""
        key = format_placemark(record)
        if key in self._keys:
            return False
        self._keys.add(key)
        self._items.append(record)
        return True

    def replace(self, records: Iterable[PlacemarkRecord]):
        """Take a single result set as-is (no dedup)."""
        self.clear()
        self.extend(records)

    def extend(self, records: Iterable[PlacemarkRecord]):
        """Append every record as-is (no dedup)."""
        for record in records:
            self._keys.add(format_placemark(record))
            self._items.append(record)

    def items(self) -> Tuple[PlacemarkRecord, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[PlacemarkRecord]:
        return iter(list(self._items))

    def __repr__(self) -> str:
        return f"ResultAccumulator(source={self.source!r}, items={len(self._items)})"
