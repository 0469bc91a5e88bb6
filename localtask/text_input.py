"""
Text input for local tasks: one record per line, keyed by byte offset.
"""

from typing import Iterable, Iterator, Tuple

from localtask.functions import MapFunction, guarded


def read_text_records(input_path: str) -> Iterator[Tuple[int, str]]:
    """
    Read an input file line by line

    Args:
        input_path: Path to a text file

    Yields:
        (byte_offset, line) tuples, line without its trailing newline
    """
    offset = 0
    with open(input_path, 'rb') as f:
        for raw in f:
            yield offset, raw.decode('utf-8', errors='replace').rstrip('\r\n')
            offset += len(raw)


def apply_map(map_fn: MapFunction, records: Iterable[Tuple]) -> Iterator[Tuple]:
    """Lazily run the map function over input records and flatten its output."""
    for key, value in records:
        yield from guarded('map', _call_map(map_fn, key, value))


def _call_map(map_fn, key, value):
    # defer the call so guarded() also wraps failures raised by the call itself
    yield from map_fn(key, value) or ()
