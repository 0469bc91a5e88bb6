"""
Unit tests for text input and map application
"""

import os

import pytest

from localtask.errors import UserCallableError
from localtask.text_input import apply_map, read_text_records


class TestReadTextRecords:
    """Tests for line records keyed by byte offset"""

    def test_yields_offsets_and_lines(self, temp_dir):
        path = os.path.join(temp_dir, 'in.txt')
        with open(path, 'w', newline='') as f:
            f.write("A|a,1\nB|b,22\r\nlast")

        assert list(read_text_records(path)) == [(0, 'A|a,1'), (6, 'B|b,22'), (14, 'last')]

    def test_empty_file_has_no_records(self, temp_dir):
        path = os.path.join(temp_dir, 'empty.txt')
        open(path, 'w').close()
        assert list(read_text_records(path)) == []


class TestApplyMap:
    """Tests for flattening map output"""

    def test_flattens_map_output(self):
        def split_words(key, value):
            for word in value.split():
                yield word, key

        records = list(apply_map(split_words, [(0, 'a b'), (4, 'c')]))

        assert records == [('a', 0), ('b', 0), ('c', 4)]

    def test_map_returning_none_emits_nothing(self):
        assert list(apply_map(lambda key, value: None, [(0, 'x')])) == []

    def test_map_errors_are_user_errors(self):
        def broken(key, value):
            raise ValueError('unparseable')

        with pytest.raises(UserCallableError) as excinfo:
            list(apply_map(broken, [(0, 'x')]))
        assert excinfo.value.stage == 'map'
