"""
Spill writer: streams a sorted run of buffered records into a new segment,
combining group by group when the combiner is enabled for that spill.
"""

import logging
import threading
from typing import List, Optional, Tuple

from localtask.combiner import Combiner
from localtask.counters import Counters, SpillCounter, TaskCounter
from localtask.segments import SegmentStore, SpillSegment

logger = logging.getLogger(__name__)


class SpillWriter:
    """Writes sorted records to spill segments"""

    def __init__(self, store: SegmentStore, counters: Counters,
                 combiner: Optional[Combiner] = None, min_spills_for_combine: int = 3):
        """
        Initialize the spill writer

        Args:
            store: Segment store that owns the temporary files
            counters: Task counters
            combiner: Combiner to apply per group, or None to write records raw
            min_spills_for_combine: Spill number (1-based) from which spills are
                combined; 0 combines every spill including the first
        """
        self.store = store
        self.counters = counters
        self.combiner = combiner
        self.min_spills_for_combine = min_spills_for_combine
        self._spill_count = 0
        self._lock = threading.Lock()

    @property
    def spill_count(self) -> int:
        return self._spill_count

    def next_spill_id(self) -> int:
        """Reserve the number of the next spill."""
        with self._lock:
            self._spill_count += 1
            return self._spill_count

    def combines(self, spill_id: int) -> bool:
        return self.combiner is not None and spill_id >= self.min_spills_for_combine

    def spill(self, sorted_records: List[Tuple], spill_id: Optional[int] = None) -> SpillSegment:
        """
        Write one sorted run to a new segment

        Args:
            sorted_records: Records sorted by the sort comparator
            spill_id: Number reserved with next_spill_id(); reserved here when None

        Returns:
            The finalized segment, ready to register with the merger

        Raises:
            SpillIOError: If the segment cannot be written (nothing is left behind)
            UserCallableError: If the combine function fails
        """
        if spill_id is None:
            spill_id = self.next_spill_id()

        combine = self.combines(spill_id)
        records = self.combiner.combine(sorted_records) if combine else sorted_records

        with self.store.create(spill_id) as writer:
            for key, value in records:
                writer.append(key, value)
        segment = writer.segment

        self.counters.increment(TaskCounter.SPILLED_RECORDS, segment.record_count)
        self.counters.increment(SpillCounter.SPILL_COUNT)
        logger.info(f"Spill {spill_id}: wrote {segment.record_count} of {len(sorted_records)} "
                    f"records ({segment.size_bytes} bytes, combined={combine})")
        return segment
