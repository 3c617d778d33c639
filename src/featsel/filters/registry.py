"""
Filter Registry

Registry of filter methods keyed by stable identifier strings. Methods are
resolved when `score` is called; a method that cannot handle the task's
problem type is rejected before any scoring takes place.
"""

import logging
import time
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from ..config import SelectionConfig
from ..exceptions import InvalidParameterError, UnsupportedMeasureError
from ..task import ProblemType, Task
from .base import FilterMethod, FilterResult
from .importance import LightGBMImportanceFilter
from .mutual_info import MutualInfoFilter
from .statistical import (
    AnovaFilter,
    ChiSquaredFilter,
    KruskalFilter,
    LinearCorrelationFilter,
    RankCorrelationFilter,
    UnivariateConcordanceFilter,
    VarianceFilter,
)

logger = logging.getLogger(__name__)


class FilterRegistry:
    """Registry of filter methods with problem-type checks."""

    def __init__(self):
        self._methods: Dict[str, FilterMethod] = {}

    @classmethod
    def with_defaults(cls) -> 'FilterRegistry':
        """Create a registry holding all built-in filter methods."""
        registry = cls()
        for method in (
            VarianceFilter(),
            AnovaFilter(),
            KruskalFilter(),
            ChiSquaredFilter(),
            LinearCorrelationFilter(),
            RankCorrelationFilter(),
            MutualInfoFilter(),
            LightGBMImportanceFilter(),
            UnivariateConcordanceFilter(),
        ):
            registry.register(method)
        return registry

    def register(self, method: FilterMethod, replace: bool = False) -> None:
        """Register a filter method under its id."""
        if not method.id:
            raise InvalidParameterError("Filter methods need a non-empty id")
        if method.id in self._methods and not replace:
            raise InvalidParameterError(f"Filter method {method.id} already registered", method=method.id)
        self._methods[method.id] = method
        logger.debug(f"Registered filter method: {method.id}")

    def unregister(self, method_id: str) -> None:
        self._methods.pop(method_id, None)

    def get(self, method_id: str) -> FilterMethod:
        if method_id not in self._methods:
            raise InvalidParameterError(
                f"Unknown filter method: {method_id}. Available: {sorted(self._methods)}",
                method=method_id,
            )
        return self._methods[method_id]

    def __contains__(self, method_id: str) -> bool:
        return method_id in self._methods

    def method_ids(self, problem_type: Optional[ProblemType] = None) -> List[str]:
        """Registered ids, optionally only those supporting a problem type."""
        return [
            method_id for method_id, method in self._methods.items()
            if problem_type is None or method.supports(problem_type)
        ]

    def list_methods(self, problem_type: Optional[ProblemType] = None) -> pd.DataFrame:
        """Table of registered methods with their supported problem types."""
        rows = []
        for method_id in self.method_ids(problem_type):
            method = self._methods[method_id]
            rows.append({
                'id': method_id,
                'description': method.description,
                'problem_types': ','.join(sorted(p.value for p in method.problem_types)),
            })
        return pd.DataFrame(rows, columns=['id', 'description', 'problem_types'])

    def score(
        self,
        task: Task,
        method_names: Union[str, Iterable[str]],
        config: Optional[SelectionConfig] = None
    ) -> FilterResult:
        """
        Compute filter scores for the task with each requested method.

        Args:
            task: Task whose features are scored
            method_names: One method id or several; each yields its own ranking
            config: Run configuration (seed for randomised filters)

        Returns:
            FilterResult with one score vector per method
        """
        config = config or SelectionConfig()
        if isinstance(method_names, str):
            method_names = [method_names]
        method_names = list(dict.fromkeys(method_names))
        if not method_names:
            raise InvalidParameterError("At least one filter method must be requested")

        methods = [self.get(name) for name in method_names]
        for method in methods:
            if not method.supports(task.problem_type):
                raise UnsupportedMeasureError(
                    f"Filter method '{method.id}' does not support {task.problem_type.value} tasks",
                    method=method.id,
                    problem_type=task.problem_type.value,
                )

        logger.info(f"Computing {len(methods)} filter method(s) on {task.n_features} features of {task.task_id}")
        scores = {}
        for method in methods:
            start = time.perf_counter()
            scores[method.id] = method.score(task, config)
            logger.info(f"Filter '{method.id}' computed in {time.perf_counter() - start:.2f}s")

        return FilterResult(task_id=task.task_id, feature_names=task.feature_names, scores=scores)
