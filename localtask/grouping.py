"""
Group iteration over a sorted record stream.

GroupIterator turns a stream that is already sorted by the sort comparator
into (representative_key, values) pairs, where a group is a maximal run of
records the group comparator considers equal. Both the outer sequence and
each values iterator are lazy and single-pass: advancing to the next group
skips whatever the caller left unread in the current one.
"""

from typing import Iterable, Iterator, Optional, Tuple

from localtask.comparators import ComparatorAdapter
from localtask.counters import Counters, CounterName, TaskCounter
from localtask.errors import PipelineStateError

_EXHAUSTED = object()


class GroupValues:
    """Forward-only iterator over the values of the current group"""

    def __init__(self, groups: "GroupIterator", key, first_value):
        self.key = key
        self._groups = groups
        self._first = first_value
        self._done = False

    def __iter__(self):
        return self

    def __next__(self):
        if self._done:
            raise StopIteration
        if self._first is not _EXHAUSTED:
            value, self._first = self._first, _EXHAUSTED
            return value

        record = self._groups._pull()
        if record is _EXHAUSTED:
            self._done = True
            raise StopIteration

        comparator = self._groups.comparator
        if comparator.same_group(self.key, record[0]):
            return record[1]
        comparator.check_group_order(self.key, record[0])
        self._groups._pending = record
        self._done = True
        raise StopIteration

    def skip_rest(self):
        """Discard unread values so the stream sits at the next group."""
        for _ in self:
            pass


class GroupIterator:
    """Lazy, single-pass (key, values) view of a sorted record stream"""

    def __init__(self, records: Iterable[Tuple], comparator: ComparatorAdapter,
                 counters: Optional[Counters] = None,
                 group_counter: Optional[CounterName] = TaskCounter.REDUCE_INPUT_GROUPS,
                 record_counter: Optional[CounterName] = TaskCounter.REDUCE_INPUT_RECORDS):
        """
        Args:
            records: (key, value) stream sorted by comparator's sort order
            comparator: Adapter whose group comparator defines group boundaries
            counters: Counters to update while iterating (optional)
            group_counter: Counter incremented once per group
            record_counter: Counter incremented once per record read
        """
        self.comparator = comparator
        self.counters = counters
        self.group_counter = group_counter
        self.record_counter = record_counter
        self._stream = iter(records)
        self._pending = _EXHAUSTED
        self._started = False

    def _pull(self):
        record = next(self._stream, _EXHAUSTED)
        if record is not _EXHAUSTED and self.counters is not None and self.record_counter:
            self.counters.increment(self.record_counter)
        return record

    def __iter__(self) -> Iterator[Tuple[object, GroupValues]]:
        if self._started:
            raise PipelineStateError("GroupIterator can only be iterated once")
        self._started = True
        return self._iter_groups()

    def _iter_groups(self):
        self._pending = self._pull()
        while self._pending is not _EXHAUSTED:
            key, value = self._pending
            self._pending = _EXHAUSTED
            values = GroupValues(self, key, value)
            if self.counters is not None and self.group_counter:
                self.counters.increment(self.group_counter)
            yield key, values
            values.skip_rest()
