"""
Task counters.
A Counters instance lives for one task execution and is passed down to every
stage that records activity; counters only ever grow.
"""

import threading
from enum import Enum
from typing import Dict, Tuple, Union


class TaskCounter(Enum):
    """Record flow counters for the spill/merge/reduce pipeline"""
    MAP_OUTPUT_RECORDS = "MAP_OUTPUT_RECORDS"
    MAP_OUTPUT_BYTES = "MAP_OUTPUT_BYTES"
    SPILLED_RECORDS = "SPILLED_RECORDS"
    COMBINE_INPUT_RECORDS = "COMBINE_INPUT_RECORDS"
    COMBINE_OUTPUT_RECORDS = "COMBINE_OUTPUT_RECORDS"
    REDUCE_INPUT_GROUPS = "REDUCE_INPUT_GROUPS"
    REDUCE_INPUT_RECORDS = "REDUCE_INPUT_RECORDS"
    REDUCE_OUTPUT_RECORDS = "REDUCE_OUTPUT_RECORDS"


class SpillCounter(Enum):
    """Spill bookkeeping counters"""
    SPILL_COUNT = "SPILL_COUNT"


CounterName = Union[TaskCounter, SpillCounter]


class Counters:
    """Thread-safe (group, name) -> int counter set"""

    def __init__(self):
        self._values: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(counter: CounterName) -> Tuple[str, str]:
        return type(counter).__name__, counter.value

    def increment(self, counter: CounterName, amount: int = 1):
        """Add amount to a counter. Counters never decrease."""
        if amount < 0:
            raise ValueError(f"Counter {counter.value} cannot decrease (amount={amount})")
        if amount == 0:
            return
        key = self._key(counter)
        with self._lock:
            self._values[key] = self._values.get(key, 0) + amount

    def get(self, counter: CounterName) -> int:
        return self.find_counter(*self._key(counter))

    def find_counter(self, group: str, name: str) -> int:
        """Look a counter up by group and name; unknown counters read as 0."""
        with self._lock:
            return self._values.get((group, name), 0)

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        """Snapshot of all non-zero counters grouped by counter group."""
        snapshot: Dict[str, Dict[str, int]] = {}
        with self._lock:
            for (group, name), value in sorted(self._values.items()):
                snapshot.setdefault(group, {})[name] = value
        return snapshot

    def __repr__(self):
        return f"Counters({self.as_dict()!r})"
