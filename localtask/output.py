"""
Output collectors for final reduce output.
Records are staged while the task runs and become visible only on commit().
"""

import os
import shutil
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


class ListCollector:
    """Collects output in memory; committed holds the records of a successful task"""

    def __init__(self):
        self.staged: List[Tuple] = []
        self.committed: List[Tuple] = []

    def collect(self, key, value):
        self.staged.append((key, value))

    def commit(self):
        self.committed = self.staged
        self.staged = []

    def abort(self):
        self.staged = []


class TextOutputCollector:
    """Writes key<TAB>value lines to a part file under output_dir"""

    def __init__(self, output_dir: str, partition: int = 0):
        """
        Initialize the collector

        Args:
            output_dir: Directory that receives part-r-NNNNN on commit
            partition: Partition number used in the part file name
        """
        self.output_dir = output_dir
        self.partition = partition
        self.filename = f"part-r-{partition:05d}"
        self.temp_dir = os.path.join(output_dir, '_temporary')
        self.temp_path = os.path.join(self.temp_dir, self.filename)
        self.output_file = os.path.join(output_dir, self.filename)
        self._file = None

    def collect(self, key, value):
        if self._file is None:
            os.makedirs(self.temp_dir, exist_ok=True)
            self._file = open(self.temp_path, 'w', encoding='utf-8')
        self._file.write(f"{key}\t{value}\n")

    def commit(self):
        """Move the staged part file into place (an empty one if nothing was written)."""
        if self._file is None:
            os.makedirs(self.temp_dir, exist_ok=True)
            self._file = open(self.temp_path, 'w', encoding='utf-8')
        self._file.close()
        os.replace(self.temp_path, self.output_file)
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logger.info(f"Committed output to {self.output_file}")

    def abort(self):
        if self._file is not None:
            self._file.close()
            self._file = None
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logger.info(f"Discarded uncommitted output in {self.temp_dir}")
