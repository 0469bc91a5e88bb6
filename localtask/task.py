"""
LocalTask, runs one task's buffer -> spill -> merge -> group -> reduce pipeline.

The caller's thread produces: it appends map output to the record buffer and,
whenever a spill threshold is crossed, swaps the buffer out and hands the old
records to a single spill worker that sorts and writes them. Only one spill
is in flight at a time; a producer that needs a second spill waits for the
first. Once the map output is exhausted the remainder is flushed, the merger
is sealed, and merge, grouping and reduce run in the caller's thread.
"""

import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Iterable, List, Optional, Tuple

import psutil

from localtask.buffer import RecordBuffer
from localtask.combiner import Combiner
from localtask.comparators import Comparator, ComparatorAdapter
from localtask.config import TaskConfig
from localtask.counters import Counters
from localtask.errors import ConfigurationError, TaskAbortedError
from localtask.functions import ReduceFunction, guarded
from localtask.grouping import GroupIterator
from localtask.merge import SpillMerger
from localtask.output import ListCollector
from localtask.reduce_driver import ReduceDriver
from localtask.segments import SegmentStore, SpillSegment
from localtask.spill import SpillWriter

logger = logging.getLogger(__name__)


class LocalTask:
    """Single-node execution of one map output -> reduce output task"""

    def __init__(self, reduce_fn: ReduceFunction, config: Optional[TaskConfig] = None,
                 combine_fn: Optional[ReduceFunction] = None,
                 sort_comparator: Optional[Comparator] = None,
                 combine_group_comparator: Optional[Comparator] = None,
                 reduce_group_comparator: Optional[Comparator] = None,
                 collector=None, store: Optional[SegmentStore] = None,
                 probe_keys: Optional[Iterable] = None):
        """
        Initialize the task

        Args:
            reduce_fn: Reduce function (key, values) -> iterable of (key, value)
            config: Spill/combine settings (defaults when None)
            combine_fn: Optional combine function with the reduce signature
            sort_comparator: Total order over keys (natural order when None)
            combine_group_comparator: Grouping used by the combiner
            reduce_group_comparator: Grouping used for the final reduce
            collector: Output collector (an in-memory ListCollector when None)
            store: Segment store (a temp directory under config.temp_dir when None)
            probe_keys: Sample keys used to validate comparator pairings up front
        """
        self.config = config or TaskConfig()
        self.reduce_fn = reduce_fn
        self.combine_fn = combine_fn
        self.sort_comparator = ComparatorAdapter(sort_comparator)
        self.combine_comparator = ComparatorAdapter(sort_comparator, combine_group_comparator)
        self.reduce_comparator = ComparatorAdapter(sort_comparator, reduce_group_comparator)
        self.collector = collector if collector is not None else ListCollector()
        self.store = store
        self.probe_keys = list(probe_keys) if probe_keys is not None else None

        self._cancelled = threading.Event()
        self.process = psutil.Process()

    @property
    def task_id(self) -> str:
        return self.config.task_id

    def cancel(self):
        """Abort the task at the next record or group it processes."""
        logger.warning(f"Task {self.task_id}: cancellation requested")
        self._cancelled.set()

    def get_memory_usage(self) -> int:
        """Get current memory usage in bytes."""
        return self.process.memory_info().rss

    def validate(self):
        """
        Check configuration, functions and comparators before reading input

        Raises:
            ConfigurationError: On any invalid setting or comparator pairing
        """
        self.config.validate()
        if not callable(self.reduce_fn):
            raise ConfigurationError(f"Reduce function is not callable: {self.reduce_fn!r}")
        if self.combine_fn is not None and not callable(self.combine_fn):
            raise ConfigurationError(f"Combine function is not callable: {self.combine_fn!r}")
        self.combine_comparator.validate(self.probe_keys)
        self.reduce_comparator.validate(self.probe_keys)

    def run(self, map_output: Iterable[Tuple]) -> Counters:
        """
        Execute the task over an iterable of (key, value) map output records

        Returns:
            Counters of the completed task

        Raises:
            ConfigurationError: Before any record is read, on invalid settings
            SpillIOError: If a spill segment cannot be written or read
            UserCallableError: If the map output, combine or reduce function fails
            TaskAbortedError: If cancel() was called
        """
        self.validate()
        start_time = time.time()

        counters = Counters()
        store = self.store or SegmentStore(self.config.temp_dir, self.task_id)
        combiner = (Combiner(self.combine_fn, self.combine_comparator, counters)
                    if self.combine_fn is not None else None)
        buffer = RecordBuffer(self.sort_comparator, counters,
                              self.config.spill_bytes, self.config.spill_records)
        writer = SpillWriter(store, counters, combiner, self.config.min_spills_for_combine)
        merger = SpillMerger(store, self.sort_comparator, combiner,
                             self.config.min_spills_for_combine)

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"spill-{self.task_id}")
        in_flight: Optional[Future] = None
        try:
            logger.info(f"Task {self.task_id}: collecting map output")
            for key, value in guarded('map', map_output):
                self._check_cancelled()
                buffer.add(key, value)
                if buffer.should_spill():
                    in_flight = self._start_spill(pool, in_flight, buffer, writer, merger)

            self._check_cancelled()
            self._finish_spill(in_flight, merger)
            in_flight = None
            if buffer.should_spill(force=True):
                merger.register(writer.spill(buffer.drain()))

            logger.info(f"Task {self.task_id}: {writer.spill_count} spills, starting merge")
            groups = GroupIterator(self._cancellable(merger.merge()), self.reduce_comparator,
                                   counters)
            ReduceDriver(self.reduce_fn, self.collector, counters).run(groups)
            self._check_cancelled()
            self.collector.commit()
        except BaseException as e:
            logger.error(f"Task {self.task_id} failed: {e}")
            if in_flight is not None:
                in_flight.cancel()
            self.collector.abort()
            raise
        finally:
            pool.shutdown(wait=True)
            store.cleanup()

        execution_time = int((time.time() - start_time) * 1000)
        logger.info(f"Task {self.task_id}: completed in {execution_time}ms, "
                    f"rss={self.get_memory_usage()} bytes")
        return counters

    def _check_cancelled(self):
        if self._cancelled.is_set():
            raise TaskAbortedError(f"Task {self.task_id} was cancelled")

    def _cancellable(self, records: Iterable[Tuple]):
        for record in records:
            self._check_cancelled()
            yield record

    def _start_spill(self, pool: ThreadPoolExecutor, in_flight: Optional[Future],
                     buffer: RecordBuffer, writer: SpillWriter, merger: SpillMerger) -> Future:
        """Swap the buffer out and spill it on the worker, after any spill in flight."""
        self._finish_spill(in_flight, merger)
        spill_id = writer.next_spill_id()
        records = buffer.swap()
        logger.debug(f"Task {self.task_id}: handing {len(records)} records to spill {spill_id}")
        return pool.submit(self._sort_and_spill, buffer, writer, records, spill_id)

    def _finish_spill(self, in_flight: Optional[Future], merger: SpillMerger):
        if in_flight is not None:
            merger.register(in_flight.result())

    def _sort_and_spill(self, buffer: RecordBuffer, writer: SpillWriter,
                        records: List[Tuple], spill_id: int) -> SpillSegment:
        segment = writer.spill(buffer.sort(records), spill_id)
        logger.debug(f"Task {self.task_id}: rss after spill {spill_id} is "
                     f"{self.get_memory_usage()} bytes")
        return segment
