"""
Spill merger: k-way merge of spill segments into one sorted stream.

Records that compare equal under the sort comparator come out in segment
creation order, so the merge is stable. When there are enough spills and a
combiner is configured, groups that straddle spill boundaries are combined
again on the way out.
"""

import heapq
import logging
import threading
from typing import Iterator, List, Optional, Tuple

from localtask.combiner import Combiner
from localtask.comparators import ComparatorAdapter
from localtask.errors import PipelineStateError
from localtask.segments import SegmentStore, SpillSegment

logger = logging.getLogger(__name__)


class SpillMerger:
    """Owns registered spill segments until they are merged and consumed"""

    def __init__(self, store: SegmentStore, comparator: ComparatorAdapter,
                 combiner: Optional[Combiner] = None, min_spills_for_combine: int = 3):
        self.store = store
        self.comparator = comparator
        self.combiner = combiner
        self.min_spills_for_combine = min_spills_for_combine
        self._segments: List[SpillSegment] = []
        self._sealed = False
        self._lock = threading.Lock()

    @property
    def segments(self) -> List[SpillSegment]:
        with self._lock:
            return list(self._segments)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, segment: SpillSegment):
        """
        Take ownership of a finalized segment

        Raises:
            PipelineStateError: If merging has already started
        """
        with self._lock:
            if self._sealed:
                raise PipelineStateError(
                    f"Cannot register spill {segment.spill_id}: merge already started")
            self._segments.append(segment)

    def seal(self) -> List[SpillSegment]:
        """Close registration; no spill may be added afterwards."""
        with self._lock:
            self._sealed = True
            return sorted(self._segments, key=lambda s: s.spill_id)

    def combines(self, num_segments: int, num_runs: int) -> bool:
        return (self.combiner is not None and num_runs > 1
                and num_segments >= self.min_spills_for_combine)

    def merge(self, resident: Optional[List[Tuple]] = None) -> Iterator[Tuple]:
        """
        Merge every registered segment (and an optional in-memory run)

        Args:
            resident: Sorted records still in memory; ranked after all segments
                on ties

        Returns:
            Lazy iterator of (key, value) records sorted by the sort comparator
        """
        segments = self.seal()
        runs = [self.store.read(segment) for segment in segments]
        if resident:
            runs.append(iter(resident))

        combine = self.combines(len(segments), len(runs))
        logger.info(f"Merging {len(segments)} segments"
                    f"{' and a resident run' if resident else ''} (combine={combine})")
        return self._merge_runs(runs, combine)

    def _merge_runs(self, runs, combine: bool) -> Iterator[Tuple]:
        if not runs:
            return
        if len(runs) == 1:
            yield from runs[0]
            return

        sort_key = self.comparator.sort_key
        merged = heapq.merge(*runs, key=lambda record: sort_key(record[0]))
        if combine:
            yield from self.combiner.combine(merged)
        else:
            yield from merged
