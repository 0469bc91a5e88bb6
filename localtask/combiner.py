"""
Group-aware combining shared by the spill writer and the spill merger.
"""

from typing import Iterable, Iterator, Tuple

from localtask.comparators import ComparatorAdapter
from localtask.counters import Counters, TaskCounter
from localtask.errors import UserCallableError
from localtask.functions import ReduceFunction, invoke
from localtask.grouping import GroupIterator


class Combiner:
    """Applies a combine function once per group of a sorted record stream"""

    def __init__(self, combine_fn: ReduceFunction, comparator: ComparatorAdapter,
                 counters: Counters):
        """
        Args:
            combine_fn: User combine function (key, values) -> iterable of records
            comparator: Sort comparator plus the combiner's group comparator
            counters: Receives COMBINE_INPUT_RECORDS and COMBINE_OUTPUT_RECORDS
        """
        self.combine_fn = combine_fn
        self.comparator = comparator
        self.counters = counters

    def combine(self, sorted_records: Iterable[Tuple]) -> Iterator[Tuple]:
        """
        Combine a sorted stream group by group

        Yields:
            Combined (key, value) records, still in sort order

        Raises:
            UserCallableError: If the combine function fails or emits keys
                that would break the sort order of the stream
        """
        groups = GroupIterator(sorted_records, self.comparator, self.counters,
                               group_counter=None,
                               record_counter=TaskCounter.COMBINE_INPUT_RECORDS)
        last_key = None
        emitted_any = False
        for key, values in groups:
            for out_key, out_value in invoke('combine', self.combine_fn, key, values):
                if emitted_any and self.comparator.compare_for_sort(last_key, out_key) > 0:
                    raise UserCallableError(
                        'combine', f"emitted {out_key!r} after {last_key!r}, out of sort order")
                last_key, emitted_any = out_key, True
                self.counters.increment(TaskCounter.COMBINE_OUTPUT_RECORDS)
                yield out_key, out_value
