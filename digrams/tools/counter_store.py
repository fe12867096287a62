"""In-memory digram counter store.

Maps a composite key to a positive count. Full keys are
``DigramKey(context, predecessor, event)``; the reduced views produced by
``filter_by_context`` and ``group_across_contexts`` are keyed by
``DigramPair(predecessor, event)``. Zero counts are never stored.

Not thread-safe; the control layer serializes access.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Hashable, Iterator, List, NamedTuple, Optional, Set, Tuple


class DigramKey(NamedTuple):
    context: str
    predecessor: str
    event: str


class DigramPair(NamedTuple):
    predecessor: str
    event: str


class Order(str, Enum):
    DESCENDING = "descending"
    ASCENDING = "ascending"
    UNSORTED = "unsorted"


def _threshold_admits(count: int, threshold: int) -> bool:
    # 0: everything, -1: nothing, >0: count above threshold, < -1: count below |threshold|
    if threshold == 0:
        return True
    if threshold > 0:
        return count > threshold
    if threshold < -1:
        return count < -threshold
    return False


class CounterStore:
    def __init__(self, counts: Optional[Dict[Hashable, int]] = None) -> None:
        self._counts: Dict[Hashable, int] = {}
        if counts:
            for key, value in counts.items():
                self.add(key, value)

    # Mutation ----------------------------------------------------------
    def increment(self, key: Hashable) -> None:
        self._counts[key] = self._counts.get(key, 0) + 1

    def add(self, key: Hashable, count: int) -> None:
        """Accumulate ``count`` onto ``key``; a zero count is a no-op."""
        if count < 0:
            raise ValueError(f"negative count {count} for {key!r}")
        if count == 0:
            return
        self._counts[key] = self._counts.get(key, 0) + count

    def merge_from(self, other: "CounterStore") -> None:
        for key, value in other.items():
            self.add(key, value)

    def clear(self) -> None:
        self._counts.clear()

    # Views -------------------------------------------------------------
    def filter_by_context(self, context: str) -> "CounterStore":
        out = CounterStore()
        for key, value in self._counts.items():
            if key[0] == context:
                out.add(DigramPair(key[1], key[2]), value)
        return out

    def group_across_contexts(self) -> "CounterStore":
        out = CounterStore()
        for key, value in self._counts.items():
            out.add(DigramPair(key[1], key[2]), value)
        return out

    def distinct_contexts(self) -> Set[str]:
        return {key[0] for key in self._counts}

    def extract_sorted(
        self, order: Order = Order.DESCENDING, threshold: int = 0
    ) -> Tuple[int, List[Tuple[Hashable, int]]]:
        """Return ``(total, rows)``.

        ``total`` sums every count regardless of ``threshold``; ``rows`` holds
        only the admitted ``(key, count)`` entries in the requested order.
        """
        order = Order(order)
        total = 0
        rows: List[Tuple[Hashable, int]] = []
        for key, value in self._counts.items():
            total += value
            if _threshold_admits(value, threshold):
                rows.append((key, value))
        if order is Order.DESCENDING:
            rows.sort(key=lambda kv: kv[1], reverse=True)
        elif order is Order.ASCENDING:
            rows.sort(key=lambda kv: kv[1])
        return total, rows

    # Container protocol -------------------------------------------------
    def is_empty(self) -> bool:
        return not self._counts

    def get(self, key: Hashable, default: int = 0) -> int:
        return self._counts.get(key, default)

    def items(self):
        return self._counts.items()

    def total(self) -> int:
        return sum(self._counts.values())

    def copy(self) -> "CounterStore":
        out = CounterStore()
        out._counts = dict(self._counts)
        return out

    def as_dict(self) -> Dict[Hashable, int]:
        return dict(self._counts)

    def __len__(self) -> int:
        return len(self._counts)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._counts)

    def __contains__(self, key: object) -> bool:
        return key in self._counts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CounterStore):
            return NotImplemented
        return self._counts == other._counts

    def __repr__(self) -> str:
        return f"CounterStore({len(self._counts)} entries, total={self.total()})"


__all__ = ["CounterStore", "DigramKey", "DigramPair", "Order"]
