"""
Integration tests for TaskRunner and the command line entry point
"""

import os
from unittest.mock import patch

import pytest

from localtask.config import TaskConfig
from localtask.counters import TaskCounter
from localtask.runner import TaskRunner, main
from localtask.task import LocalTask


def read_lines(path):
    with open(path) as f:
        return f.read().splitlines()


@pytest.mark.integration
class TestTaskRunner:
    """Tests for running job files end to end"""

    def test_prefix_max_job(self, temp_dir, prefix_input_file, prefix_max_job_file):
        output_dir = os.path.join(temp_dir, 'output')
        runner = TaskRunner(prefix_max_job_file, prefix_input_file, output_dir,
                            TaskConfig(temp_dir=temp_dir, min_spills_for_combine=0),
                            use_combiner=True)

        result = runner.execute()

        assert result['success'], result['error_message']
        counters = result['counters']
        combine_in = counters.find_counter('TaskCounter', 'COMBINE_INPUT_RECORDS')
        combine_out = counters.find_counter('TaskCounter', 'COMBINE_OUTPUT_RECORDS')
        assert combine_in > 0
        assert combine_in > combine_out

        lines = read_lines(os.path.join(output_dir, 'part-r-00000'))
        assert len(lines) == 2
        assert {line[0:1] + line[4:5] for line in lines} == {'A2', 'B5'}

    def test_wordcount_job(self, temp_dir, sample_input_file, wordcount_job_file):
        output_dir = os.path.join(temp_dir, 'output')
        runner = TaskRunner(wordcount_job_file, sample_input_file, output_dir,
                            TaskConfig(temp_dir=temp_dir, spill_records=4),
                            use_combiner=True)

        result = runner.execute()

        assert result['success'], result['error_message']
        counts = dict(line.split('\t') for line in read_lines(
            os.path.join(output_dir, 'part-r-00000')))
        assert counts['the'] == '4'
        assert counts['fox'] == '2'
        assert counts['lazy'] == '2'
        assert result['counters'].get(TaskCounter.REDUCE_OUTPUT_RECORDS) == len(counts)

    def test_missing_job_file_reports_failure(self, temp_dir, sample_input_file):
        runner = TaskRunner('/nonexistent/job.py', sample_input_file,
                            os.path.join(temp_dir, 'output'), TaskConfig(temp_dir=temp_dir))

        result = runner.execute()

        assert not result['success']
        assert 'not found' in result['error_message']
        assert result['counters'] is None

    def test_failed_map_leaves_no_output(self, temp_dir, prefix_input_file):
        with open(prefix_input_file, 'a') as f:
            f.write("not-a-record\n")
        job_file = os.path.join(temp_dir, 'strict.py')
        with open(job_file, 'w') as f:
            f.write("def map_function(key, value):\n"
                    "    k, v = value.split(',')\n"
                    "    yield k, int(v)\n\n"
                    "def reduce_function(key, values):\n"
                    "    yield key, sum(values)\n")
        output_dir = os.path.join(temp_dir, 'output')

        result = TaskRunner(job_file, prefix_input_file, output_dir,
                            TaskConfig(temp_dir=temp_dir)).execute()

        assert not result['success']
        assert 'map function failed' in result['error_message']
        assert not os.path.exists(os.path.join(output_dir, 'part-r-00000'))

    def test_unserializable_map_output_reports_failure(self, temp_dir, prefix_input_file):
        job_file = os.path.join(temp_dir, 'locks.py')
        with open(job_file, 'w') as f:
            f.write("import threading\n\n"
                    "def map_function(key, value):\n"
                    "    yield value, threading.Lock()\n\n"
                    "def reduce_function(key, values):\n"
                    "    yield key, len(list(values))\n")
        output_dir = os.path.join(temp_dir, 'output')

        result = TaskRunner(job_file, prefix_input_file, output_dir,
                            TaskConfig(temp_dir=temp_dir)).execute()

        assert not result['success']
        assert 'Cannot serialize' in result['error_message']
        assert result['counters'] is None
        assert not os.path.exists(os.path.join(output_dir, 'part-r-00000'))

    def test_unexpected_errors_are_reported(self, temp_dir, prefix_input_file,
                                            prefix_max_job_file):
        runner = TaskRunner(prefix_max_job_file, prefix_input_file,
                            os.path.join(temp_dir, 'output'), TaskConfig(temp_dir=temp_dir))

        with patch.object(LocalTask, 'run', side_effect=TypeError('unexpected')):
            result = runner.execute()

        assert not result['success']
        assert result['error_message'] == 'unexpected'


@pytest.mark.integration
class TestCommandLine:
    """Tests for the localtask command"""

    def test_main_runs_job(self, temp_dir, prefix_input_file, prefix_max_job_file, capsys):
        output_dir = os.path.join(temp_dir, 'output')

        exit_code = main(['--job-file', prefix_max_job_file, '--input', prefix_input_file,
                          '--output', output_dir, '--use-combiner',
                          '--min-spills-for-combine', '0', '--temp-dir', temp_dir])

        assert exit_code == 0
        assert 'COMBINE_OUTPUT_RECORDS=2' in capsys.readouterr().out
        assert read_lines(os.path.join(output_dir, 'part-r-00000')) == ['A|a\t2', 'B|a\t5']

    def test_main_reports_failure(self, temp_dir, prefix_input_file, capsys):
        exit_code = main(['--job-file', os.path.join(temp_dir, 'missing.py'),
                          '--input', prefix_input_file,
                          '--output', os.path.join(temp_dir, 'output')])

        assert exit_code == 1
        assert 'Task failed' in capsys.readouterr().out

    def test_main_reports_unexpected_failure(self, temp_dir, prefix_input_file,
                                             prefix_max_job_file, capsys):
        with patch.object(LocalTask, 'run', side_effect=TypeError('unexpected')):
            exit_code = main(['--job-file', prefix_max_job_file, '--input', prefix_input_file,
                              '--output', os.path.join(temp_dir, 'output'),
                              '--temp-dir', temp_dir])

        assert exit_code == 1
        assert 'Task failed' in capsys.readouterr().out
