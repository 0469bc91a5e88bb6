"""
Unit tests for ComparatorAdapter
"""

import json

import pytest

from localtask.comparators import ComparatorAdapter, deserializing, natural_order
from localtask.errors import ConfigurationError, UserCallableError
from job_helpers import prefix_comparator


class TestComparatorAdapter:
    """Tests for sort and group comparison"""

    def test_natural_order_is_default(self):
        adapter = ComparatorAdapter()
        assert adapter.compare_for_sort('a', 'b') == -1
        assert adapter.compare_for_sort('b', 'a') == 1
        assert adapter.compare_for_sort('a', 'a') == 0

    def test_results_are_normalized_to_sign(self):
        adapter = ComparatorAdapter(lambda a, b: (a - b) * 10)
        assert adapter.compare_for_sort(1, 5) == -1
        assert adapter.compare_for_sort(5, 1) == 1

    def test_same_group_defaults_to_sort_equality(self):
        adapter = ComparatorAdapter()
        assert adapter.same_group('A|a', 'A|a')
        assert not adapter.same_group('A|a', 'A|b')

    def test_group_comparator_is_independent_of_sort(self):
        adapter = ComparatorAdapter(group_comparator=prefix_comparator)
        assert adapter.compare_for_sort('A|a', 'A|b') == -1
        assert adapter.same_group('A|a', 'A|b')
        assert not adapter.same_group('A|b', 'B|a')

    def test_sort_key_orders_with_custom_comparator(self):
        descending = ComparatorAdapter(lambda a, b: natural_order(b, a))
        assert sorted([1, 3, 2], key=descending.sort_key) == [3, 2, 1]

    def test_deserializing_compares_decoded_keys(self):
        compare = deserializing(natural_order, lambda raw: json.loads(raw.decode('utf-8')))
        assert compare(b'10', b'9') == 1
        assert compare(b'"a"', b'"a"') == 0

    def test_comparator_errors_are_user_errors(self):
        def broken(a, b):
            raise KeyError('rank')

        with pytest.raises(UserCallableError) as excinfo:
            ComparatorAdapter(broken).compare_for_sort('a', 'b')
        assert excinfo.value.stage == 'compare'
        assert isinstance(excinfo.value.__cause__, KeyError)

    def test_incomparable_keys_are_user_errors(self):
        adapter = ComparatorAdapter(group_comparator=prefix_comparator)
        with pytest.raises(UserCallableError):
            sorted(['a', 1], key=adapter.sort_key)
        with pytest.raises(UserCallableError):
            adapter.same_group('A|a', 7)


class TestComparatorValidation:
    """Tests for eager comparator validation"""

    def test_rejects_non_callable_comparators(self):
        with pytest.raises(ConfigurationError):
            ComparatorAdapter(group_comparator='prefix').validate()
        with pytest.raises(ConfigurationError):
            ComparatorAdapter(sort_comparator=42).validate()

    def test_accepts_prefix_grouping_over_probes(self):
        adapter = ComparatorAdapter(group_comparator=prefix_comparator)
        adapter.validate(['B|c', 'A|a', 'B|a', 'A|b'])

    def test_rejects_group_comparator_finer_orders_on_probes(self):
        # groups by the suffix, which does not follow the sort order
        def suffix_comparator(a, b):
            a, b = a.split('|')[1], b.split('|')[1]
            return (a > b) - (a < b)

        adapter = ComparatorAdapter(group_comparator=suffix_comparator)
        with pytest.raises(ConfigurationError):
            adapter.validate(['A|a', 'A|b', 'B|a'])

    def test_check_group_order_raises_on_backwards_group(self):
        adapter = ComparatorAdapter(group_comparator=lambda a, b: natural_order(b, a))
        with pytest.raises(ConfigurationError):
            adapter.check_group_order(1, 2)
