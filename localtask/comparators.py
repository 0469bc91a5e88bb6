"""
Comparator adapter used by the sort, combine and reduce stages.

A comparator is any callable ``compare(a, b) -> int`` returning a negative
number, zero or a positive number. The sort comparator must be a total order.
The group comparator decides which adjacent keys belong to the same group and
must be coarser than (or equal to) the sort comparator: keys it considers equal
always share a prefix of the sort key, so they end up adjacent after sorting.
"""

import functools
from typing import Any, Callable, Iterable, Optional

from localtask.errors import ConfigurationError, LocalTaskError, UserCallableError

Comparator = Callable[[Any, Any], int]


def natural_order(a, b) -> int:
    """Compare two keys using their natural Python ordering."""
    return (a > b) - (a < b)


def deserializing(compare: Comparator, decode: Callable[[Any], Any]) -> Comparator:
    """
    Turn a typed comparator into one that accepts serialized keys

    Args:
        compare: Comparator over decoded keys
        decode: Function turning a serialized key (e.g. bytes) into a typed key

    Returns:
        Comparator over serialized keys
    """
    @functools.wraps(compare)
    def compare_serialized(a, b):
        return compare(decode(a), decode(b))
    return compare_serialized


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _compare(comparator: Comparator, a, b) -> int:
    try:
        return _sign(comparator(a, b))
    except LocalTaskError:
        raise
    except Exception as e:
        raise UserCallableError('compare', f"{type(e).__name__}: {e} (keys {a!r}, {b!r})") from e


class ComparatorAdapter:
    """Pairs a sort comparator with the group comparator of one stage"""

    def __init__(self, sort_comparator: Optional[Comparator] = None,
                 group_comparator: Optional[Comparator] = None):
        self.sort_comparator = sort_comparator or natural_order
        self.group_comparator = group_comparator
        self.sort_key = functools.cmp_to_key(self.compare_for_sort)

    def compare_for_sort(self, a, b) -> int:
        return _compare(self.sort_comparator, a, b)

    def compare_for_group(self, a, b) -> int:
        if self.group_comparator is None:
            return self.compare_for_sort(a, b)
        return _compare(self.group_comparator, a, b)

    def same_group(self, a, b) -> bool:
        return self.compare_for_group(a, b) == 0

    def check_group_order(self, representative, key):
        """
        Verify that key, which sorts at or after representative, does not
        fall before it under the group comparator.

        Raises:
            ConfigurationError: If the group comparator is not coarser than
                the sort comparator
        """
        if self.compare_for_group(representative, key) > 0:
            raise ConfigurationError(
                f"Group comparator is not coarser than the sort comparator: "
                f"{key!r} sorts after {representative!r} but groups before it")

    def validate(self, probe_keys: Optional[Iterable[Any]] = None):
        """
        Check the comparator pairing before any record is processed

        Args:
            probe_keys: Optional sample keys. When given they are sorted with the
                sort comparator and checked pairwise with check_group_order.

        Raises:
            ConfigurationError: If a comparator is not callable or the probes
                show a group that would not be contiguous after sorting
        """
        if not callable(self.sort_comparator):
            raise ConfigurationError(f"Sort comparator is not callable: {self.sort_comparator!r}")
        if self.group_comparator is not None and not callable(self.group_comparator):
            raise ConfigurationError(f"Group comparator is not callable: {self.group_comparator!r}")
        if probe_keys is None:
            return self

        probes = sorted(probe_keys, key=self.sort_key)
        # group order must be non-decreasing along the sorted probes
        for i, first in enumerate(probes):
            for later in probes[i + 1:]:
                self.check_group_order(first, later)
        return self
