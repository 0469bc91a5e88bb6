"""
Spill segment storage.
Segments are private temporary files holding a stream of pickled
(key, value) records. A segment is written once under a .tmp name, renamed
into place when finalized, read once by the merger and then deleted.
"""

import os
import errno
import pickle
import shutil
import logging
import tempfile
from dataclasses import dataclass
from typing import Iterator, Optional

from localtask.errors import ResourceExhaustedError, SpillIOError

logger = logging.getLogger(__name__)


def _io_error(action: str, path: str, error: OSError) -> SpillIOError:
    if error.errno == errno.ENOSPC:
        return ResourceExhaustedError(f"No space left to {action} {path}")
    return SpillIOError(f"Failed to {action} {path}: {error}")


@dataclass(frozen=True)
class SpillSegment:
    """A finalized, immutable spill segment"""
    spill_id: int
    path: str
    record_count: int
    size_bytes: int


class SegmentWriter:
    """Appends records to one segment; commits on clean exit, discards on error"""

    def __init__(self, spill_id: int, path: str):
        self.spill_id = spill_id
        self.path = path
        self.tmp_path = path + '.tmp'
        self.record_count = 0
        self.segment: Optional[SpillSegment] = None
        self._file = None

    def __enter__(self):
        try:
            self._file = open(self.tmp_path, 'wb')
        except OSError as e:
            raise _io_error('create segment', self.tmp_path, e) from e
        return self

    def append(self, key, value):
        try:
            pickle.dump((key, value), self._file, protocol=pickle.HIGHEST_PROTOCOL)
        except OSError as e:
            raise _io_error('write segment', self.tmp_path, e) from e
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SpillIOError(f"Cannot serialize record with key {key!r} "
                               f"into {self.tmp_path}: {e}") from e
        self.record_count += 1

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self._commit()
        else:
            self._discard()
        return False

    def _commit(self):
        try:
            self._file.close()
            os.replace(self.tmp_path, self.path)
            size = os.path.getsize(self.path)
        except OSError as e:
            self._discard()
            raise _io_error('finalize segment', self.path, e) from e
        self.segment = SpillSegment(self.spill_id, self.path, self.record_count, size)

    def _discard(self):
        if self._file is not None and not self._file.closed:
            self._file.close()
        try:
            os.remove(self.tmp_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial segment {self.tmp_path}: {e}")


class SegmentStore:
    """Creates, reads and deletes the temporary segment files of one task"""

    def __init__(self, base_dir: Optional[str] = None, task_id: str = "local"):
        """
        Initialize the store

        Args:
            base_dir: Parent directory for the task's spill directory
                (system temp directory when None)
            task_id: Used to name the spill directory
        """
        self.base_dir = base_dir
        self.task_id = task_id
        self.spill_dir: Optional[str] = None

    def _ensure_dir(self) -> str:
        if self.spill_dir is None:
            try:
                self.spill_dir = tempfile.mkdtemp(prefix=f"localtask-{self.task_id}-",
                                                  dir=self.base_dir)
            except OSError as e:
                raise _io_error('create spill directory in', str(self.base_dir), e) from e
            logger.debug(f"Task {self.task_id}: spill directory {self.spill_dir}")
        return self.spill_dir

    def create(self, spill_id: int) -> SegmentWriter:
        """Open a writer for a new, empty segment."""
        path = os.path.join(self._ensure_dir(), f"spill_{spill_id}.seg")
        return SegmentWriter(spill_id, path)

    def read(self, segment: SpillSegment, delete_when_done: bool = True) -> Iterator[tuple]:
        """
        Stream the records of a segment in the order they were written

        Args:
            segment: Finalized segment to read
            delete_when_done: Delete the file as soon as the last record is read

        Yields:
            (key, value) tuples
        """
        count = 0
        try:
            with open(segment.path, 'rb') as f:
                while True:
                    try:
                        record = pickle.load(f)
                    except EOFError:
                        break
                    count += 1
                    yield record
        except OSError as e:
            raise _io_error('read segment', segment.path, e) from e
        except pickle.UnpicklingError as e:
            raise SpillIOError(f"Corrupt segment {segment.path}: {e}") from e
        if count != segment.record_count:
            raise SpillIOError(f"Truncated segment {segment.path}: read {count} of "
                               f"{segment.record_count} records")
        if delete_when_done:
            self.delete(segment)

    def delete(self, segment: SpillSegment):
        try:
            os.remove(segment.path)
            logger.debug(f"Task {self.task_id}: deleted segment {segment.path}")
        except FileNotFoundError:
            pass

    def cleanup(self):
        """Remove the spill directory and every segment left in it."""
        if self.spill_dir is not None:
            shutil.rmtree(self.spill_dir, ignore_errors=True)
            logger.info(f"Task {self.task_id}: removed spill directory {self.spill_dir}")
            self.spill_dir = None
