"""
Invocation of user supplied map, combine and reduce functions.
Any exception raised by user code, whether on the call itself or while
iterating its output, surfaces as UserCallableError.
"""

from typing import Callable, Iterable, Iterator, Tuple

from localtask.errors import LocalTaskError, UserCallableError

MapFunction = Callable[[object, object], Iterable[Tuple]]
ReduceFunction = Callable[[object, Iterator], Iterable[Tuple]]


def _as_pair(stage: str, item) -> Tuple:
    try:
        key, value = item
    except (TypeError, ValueError) as e:
        raise UserCallableError(stage, f"expected (key, value) pairs, got {item!r}") from e
    return key, value


def guarded(stage: str, records: Iterable) -> Iterator[Tuple]:
    """
    Iterate user produced records, wrapping failures as UserCallableError

    Args:
        stage: 'map', 'combine' or 'reduce'; used in error messages
        records: Iterable yielded or returned by user code (None means no output)

    Yields:
        (key, value) tuples
    """
    if records is None:
        return
    iterator = iter(records)
    while True:
        try:
            item = next(iterator)
        except StopIteration:
            return
        except LocalTaskError:
            raise
        except Exception as e:
            raise UserCallableError(stage, str(e) or type(e).__name__) from e
        yield _as_pair(stage, item)


def invoke(stage: str, fn: ReduceFunction, key, values: Iterator) -> Iterator[Tuple]:
    """Call a combine or reduce function for one group and iterate its output."""
    try:
        result = fn(key, values)
    except LocalTaskError:
        raise
    except Exception as e:
        raise UserCallableError(stage, str(e) or type(e).__name__) from e
    return guarded(stage, result)
