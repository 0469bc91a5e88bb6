"""
Pytest configuration and shared fixtures
"""

import pytest
import os
import tempfile
import shutil

EXAMPLES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'examples')


@pytest.fixture
def temp_dir():
    """Create temporary directory for test files"""
    dirpath = tempfile.mkdtemp()
    yield dirpath
    shutil.rmtree(dirpath)


@pytest.fixture
def prefix_records():
    """Map output of the prefix grouping scenario"""
    return [('A|a', 1), ('A|b', 2), ('B|a', 3), ('B|b', 4), ('B|c', 5)]


@pytest.fixture
def prefix_input_file(temp_dir):
    """Text input of the prefix grouping scenario"""
    filepath = os.path.join(temp_dir, 'data.txt')
    with open(filepath, 'w') as f:
        f.write("A|a,1\nA|b,2\nB|a,3\nB|b,4\nB|c,5\n")
    return filepath


@pytest.fixture
def sample_input_file(temp_dir):
    """Create a sample input file for word count"""
    filepath = os.path.join(temp_dir, 'input.txt')
    with open(filepath, 'w') as f:
        f.write("""The quick brown fox jumps over the lazy dog.
The dog was really lazy.
The fox was very quick and brown.""")
    return filepath


@pytest.fixture
def wordcount_job_file():
    """Path to word count example job file"""
    return os.path.join(EXAMPLES_DIR, 'wordcount.py')


@pytest.fixture
def prefix_max_job_file():
    """Path to prefix maximum example job file"""
    return os.path.join(EXAMPLES_DIR, 'prefix_max.py')
