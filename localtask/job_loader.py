#!/usr/bin/env python3
"""
Dynamic Job Loader for local tasks
Loads user-provided Python modules containing map, reduce and combiner
functions plus optional sort and grouping comparators
"""

import importlib.util
import sys
import os
from dataclasses import dataclass
from typing import Callable, Optional

from localtask.errors import ConfigurationError


@dataclass
class JobFunctions:
    """Everything a job file can contribute to a task"""
    map_function: Callable
    reduce_function: Callable
    combiner_function: Optional[Callable] = None
    sort_comparator: Optional[Callable] = None
    grouping_comparator: Optional[Callable] = None
    combiner_grouping_comparator: Optional[Callable] = None


class JobLoader:
    """Dynamically loads user-provided job functions from Python files"""

    def __init__(self, job_file: str):
        """
        Initialize the job loader

        Args:
            job_file: Path to user's Python file containing map/reduce functions
        """
        self.job_file = job_file
        self.module = None

    def load_module(self):
        """
        Dynamically load user-provided module

        Returns:
            The loaded module object

        Raises:
            FileNotFoundError: If the job file doesn't exist
        """
        if not os.path.exists(self.job_file):
            raise FileNotFoundError(f"Job file not found: {self.job_file}")

        module_name = f"localtask_job_{os.path.splitext(os.path.basename(self.job_file))[0]}"
        spec = importlib.util.spec_from_file_location(module_name, self.job_file)
        if spec is None or spec.loader is None:
            raise ImportError(f"Failed to load job file: {self.job_file}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
        self.module = module
        return module

    def _get(self, name: str):
        if not self.module:
            self.load_module()
        return getattr(self.module, name, None)

    def get_map_function(self):
        """
        Get map function from loaded module

        Raises:
            AttributeError: If module doesn't define 'map_function'
        """
        map_function = self._get('map_function')
        if map_function is None:
            raise AttributeError("Module must define 'map_function'")
        return map_function

    def get_reduce_function(self):
        """
        Get reduce function from loaded module

        Raises:
            AttributeError: If module doesn't define 'reduce_function'
        """
        reduce_function = self._get('reduce_function')
        if reduce_function is None:
            raise AttributeError("Module must define 'reduce_function'")
        return reduce_function

    def get_combiner_function(self):
        """
        Get combiner function from loaded module

        Returns:
            The combiner_function callable, or reduce_function as default, or None
        """
        return self._get('combiner_function') or self._get('reduce_function')

    def _get_comparator(self, name: str):
        comparator = self._get(name)
        if comparator is not None and not callable(comparator):
            raise ConfigurationError(f"'{name}' in {self.job_file} is not callable")
        return comparator

    def get_sort_comparator(self):
        return self._get_comparator('sort_comparator')

    def get_grouping_comparator(self):
        return self._get_comparator('grouping_comparator')

    def get_combiner_grouping_comparator(self):
        return self._get_comparator('combiner_grouping_comparator')

    def load_job(self, use_combiner: bool = True) -> JobFunctions:
        """Load every job function; the combiner is left out unless use_combiner."""
        return JobFunctions(
            map_function=self.get_map_function(),
            reduce_function=self.get_reduce_function(),
            combiner_function=self.get_combiner_function() if use_combiner else None,
            sort_comparator=self.get_sort_comparator(),
            grouping_comparator=self.get_grouping_comparator(),
            combiner_grouping_comparator=self.get_combiner_grouping_comparator(),
        )
