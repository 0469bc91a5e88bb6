"""
Reduce driver: runs the reduce function over every final group.
"""

import logging

from localtask.counters import Counters, TaskCounter
from localtask.functions import ReduceFunction, invoke
from localtask.grouping import GroupIterator

logger = logging.getLogger(__name__)


class ReduceDriver:
    """Feeds groups to the reduce function and forwards its output"""

    def __init__(self, reduce_fn: ReduceFunction, collector, counters: Counters):
        self.reduce_fn = reduce_fn
        self.collector = collector
        self.counters = counters

    def run(self, groups: GroupIterator) -> int:
        """
        Reduce every group

        Args:
            groups: Final groups; the collector is aborted if any of them fails

        Returns:
            Number of records forwarded to the collector
        """
        written = 0
        try:
            for key, values in groups:
                for out_key, out_value in invoke('reduce', self.reduce_fn, key, values):
                    self.collector.collect(out_key, out_value)
                    self.counters.increment(TaskCounter.REDUCE_OUTPUT_RECORDS)
                    written += 1
        except BaseException:
            self.collector.abort()
            raise
        logger.info(f"Reduce wrote {written} records")
        return written
