#!/usr/bin/env python3
"""
Local Task Runner
Runs one map -> spill -> merge -> reduce task over a text input file with
user functions loaded from a job file, and writes part-r-00000
"""

import sys
import time
import logging
import argparse
from typing import Optional

from localtask.config import TaskConfig
from localtask.job_loader import JobLoader
from localtask.output import TextOutputCollector
from localtask.task import LocalTask
from localtask.text_input import apply_map, read_text_records

logger = logging.getLogger(__name__)


class TaskRunner:
    """Executes a single local task from a job file"""

    def __init__(self, job_file: str, input_path: str, output_dir: str,
                 config: Optional[TaskConfig] = None, use_combiner: bool = False):
        """
        Initialize the task runner

        Args:
            job_file: Path to user's Python file with map/reduce functions
            input_path: Text input file, one record per line
            output_dir: Directory that receives part-r-00000
            config: Spill/combine settings (environment defaults when None)
            use_combiner: Whether to apply the combiner function
        """
        self.job_file = job_file
        self.input_path = input_path
        self.output_dir = output_dir
        self.config = config or TaskConfig.from_env()
        self.use_combiner = use_combiner
        self.loader = JobLoader(job_file)
        self.task: Optional[LocalTask] = None

    def execute(self) -> dict:
        """
        Execute the task

        Returns:
            Dictionary with 'success', 'execution_time_ms', 'error_message'
            and 'counters' fields
        """
        start_time = time.time()

        try:
            logger.info(f"Task {self.config.task_id}: loading job file {self.job_file}")
            job = self.loader.load_job(use_combiner=self.use_combiner)

            self.task = LocalTask(
                job.reduce_function,
                config=self.config,
                combine_fn=job.combiner_function,
                sort_comparator=job.sort_comparator,
                combine_group_comparator=job.combiner_grouping_comparator,
                reduce_group_comparator=job.grouping_comparator,
                collector=TextOutputCollector(self.output_dir),
            )
            map_output = apply_map(job.map_function, read_text_records(self.input_path))
            counters = self.task.run(map_output)

            execution_time = int((time.time() - start_time) * 1000)
            return {
                'success': True,
                'execution_time_ms': execution_time,
                'error_message': '',
                'counters': counters
            }

        except Exception as e:
            execution_time = int((time.time() - start_time) * 1000)
            logger.error(f"Task {self.config.task_id} failed: {e}")
            return {
                'success': False,
                'execution_time_ms': execution_time,
                'error_message': str(e),
                'counters': None
            }

    def cancel(self):
        if self.task is not None:
            self.task.cancel()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Run a local MapReduce task')
    parser.add_argument('--job-file', required=True, help='Python file with map/reduce functions')
    parser.add_argument('--input', required=True, help='Input text file')
    parser.add_argument('--output', required=True, help='Output directory')
    parser.add_argument('--use-combiner', action='store_true', help='Apply the combiner function')
    parser.add_argument('--min-spills-for-combine', type=int,
                        help='Spills required before combining (0 = always)')
    parser.add_argument('--spill-records', type=int, help='Spill after this many buffered records')
    parser.add_argument('--sort-mb', type=float, help='Buffer size in MiB')
    parser.add_argument('--temp-dir', help='Directory for spill segments')
    parser.add_argument('--task-id', help='Task identifier used in logs and temp names')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    config = TaskConfig.from_env().with_overrides(
        min_spills_for_combine=args.min_spills_for_combine,
        spill_records=args.spill_records,
        sort_mb=args.sort_mb,
        temp_dir=args.temp_dir,
        task_id=args.task_id,
    )
    runner = TaskRunner(args.job_file, args.input, args.output, config, args.use_combiner)
    result = runner.execute()

    if not result['success']:
        print(f"Task failed: {result['error_message']}")
        return 1

    print(f"✓ Task completed in {result['execution_time_ms']}ms")
    for group, values in result['counters'].as_dict().items():
        print(group)
        for name, value in values.items():
            print(f"  {name}={value}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
