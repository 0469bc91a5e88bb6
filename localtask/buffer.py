"""
In-memory buffer for map output records.
"""

import sys
import threading
from typing import Any, List, Optional, Tuple

from localtask.comparators import ComparatorAdapter
from localtask.counters import Counters, TaskCounter

Record = Tuple[Any, Any]


def record_size(key, value) -> int:
    """Approximate in-memory footprint of a record in bytes."""
    return sys.getsizeof(key) + sys.getsizeof(value)


class RecordBuffer:
    """Accumulates (key, value) records until a spill threshold is reached"""

    def __init__(self, comparator: ComparatorAdapter, counters: Counters,
                 spill_bytes: int, spill_records: Optional[int] = None):
        """
        Initialize the buffer

        Args:
            comparator: Adapter whose sort comparator orders drained records
            counters: Task counters; MAP_OUTPUT_RECORDS/BYTES grow on every add
            spill_bytes: Buffered bytes at which should_spill() turns true
            spill_records: Optional buffered record count with the same effect
        """
        self.comparator = comparator
        self.counters = counters
        self.spill_bytes = spill_bytes
        self.spill_records = spill_records

        self._records: List[Record] = []
        self._bytes = 0
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._records)

    @property
    def buffered_bytes(self) -> int:
        with self._lock:
            return self._bytes

    def add(self, key, value):
        size = record_size(key, value)
        with self._lock:
            self._records.append((key, value))
            self._bytes += size
        self.counters.increment(TaskCounter.MAP_OUTPUT_RECORDS)
        self.counters.increment(TaskCounter.MAP_OUTPUT_BYTES, size)

    def should_spill(self, force: bool = False) -> bool:
        """True once a threshold is crossed, or on a forced flush of a non-empty buffer."""
        with self._lock:
            if not self._records:
                return False
            if force or self._bytes >= self.spill_bytes:
                return True
            return self.spill_records is not None and len(self._records) >= self.spill_records

    def swap(self) -> List[Record]:
        """Hand the buffered records over and continue with an empty buffer."""
        with self._lock:
            records, self._records = self._records, []
            self._bytes = 0
        return records

    def sort(self, records: List[Record]) -> List[Record]:
        """Stable sort by the sort comparator."""
        sort_key = self.comparator.sort_key
        return sorted(records, key=lambda record: sort_key(record[0]))

    def drain(self) -> List[Record]:
        """Return all buffered records sorted, leaving the buffer empty."""
        return self.sort(self.swap())
