"""
Maximum value per key prefix.

Input lines look like ``A|a,1``: a composite key, a comma, then a number.
Keys are sorted in full but grouped by the part before ``|``, both when
combining spills and when reducing, so the job emits one maximum per prefix.
"""


def _prefix(key):
    return key[:key.index('|')]


def map_function(key, value):
    """
    Map function: split a line into (composite_key, number).

    Args:
        key: Byte offset of the line (unused)
        value: Text line

    Yields:
        (composite_key, int) tuple
    """
    if not value:
        return
    composite_key, number = value.split(',', 1)
    yield (composite_key, int(number))


def reduce_function(key, values):
    """
    Reduce function: keep the largest value of the group.

    Args:
        key: First composite key of the prefix group
        values: Iterator over the group's numbers

    Yields:
        (key, max_value) tuple
    """
    max_value = None
    for value in values:
        if max_value is None or value > max_value:
            max_value = value
    yield (key, max_value)


combiner_function = reduce_function


def grouping_comparator(a, b):
    """Compare composite keys by their prefix only."""
    a, b = _prefix(a), _prefix(b)
    return (a > b) - (a < b)


combiner_grouping_comparator = grouping_comparator
