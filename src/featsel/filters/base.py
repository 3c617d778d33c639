"""
Filter Method Base Classes

A filter scores every feature of a task independently of any learner. The
FilterResult keeps one independent score vector per method; nothing is
aggregated across methods.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from ..config import SelectionConfig
from ..exceptions import FilterScoringError, InvalidParameterError
from ..task import ProblemType, Task

logger = logging.getLogger(__name__)


class FilterMethod(ABC):
    """
    Abstract filter method.

    Subclasses declare a stable id, the problem types they can score and
    implement `_compute` returning one value per task feature.
    """

    id: str = "filter"
    description: str = ""
    problem_types: FrozenSet[ProblemType] = frozenset()

    def supports(self, problem_type: ProblemType) -> bool:
        return problem_type in self.problem_types

    def score(self, task: Task, config: SelectionConfig) -> pd.Series:
        """Score all features of the task, validating completeness."""
        raw = self._compute(task, config)
        return self._validate_scores(task, raw)

    @abstractmethod
    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        """Return a Series of scores indexed by feature name."""

    def _validate_scores(self, task: Task, scores: pd.Series) -> pd.Series:
        scores = pd.Series(scores, dtype=float)
        if scores.index.has_duplicates:
            raise FilterScoringError(
                f"Filter '{self.id}' scored some features more than once",
                method=self.id,
                features=scores.index[scores.index.duplicated()].tolist(),
            )

        expected = list(task.feature_names)
        expected_set = set(expected)
        missing = [f for f in expected if f not in scores.index]
        extra = [f for f in scores.index if f not in expected_set]
        if missing or extra:
            raise FilterScoringError(
                f"Filter '{self.id}' returned scores for the wrong features "
                f"(missing={missing}, unexpected={extra})",
                method=self.id, missing=missing, unexpected=extra,
            )

        scores = scores.reindex(expected)
        invalid = scores.index[~np.isfinite(scores.to_numpy())].tolist()
        if invalid:
            raise FilterScoringError(
                f"Filter '{self.id}' could not score features: {invalid}",
                method=self.id, features=invalid,
            )
        return scores

    def __repr__(self) -> str:
        types = sorted(p.value for p in self.problem_types)
        return f"{type(self).__name__}(id={self.id!r}, problem_types={types})"


def numeric_features(task: Task, method_id: str) -> pd.DataFrame:
    """Feature table for methods that need numeric columns."""
    X = task.features()
    non_numeric = [col for col in X.columns if not pd.api.types.is_numeric_dtype(X[col])]
    if non_numeric:
        raise FilterScoringError(
            f"Filter '{method_id}' needs numeric features, got non-numeric: {non_numeric}",
            method=method_id, features=non_numeric,
        )
    return X


@dataclass(frozen=True)
class FilterResult:
    """
    Feature scores per filter method.

    Args:
        task_id: Task the scores were computed on
        feature_names: Features in original task order
        scores: Method id -> Series of scores indexed by feature name
    """

    task_id: str
    feature_names: Sequence[str]
    scores: Mapping[str, pd.Series] = field(default_factory=dict)

    @classmethod
    def from_scores(
        cls,
        scores: Mapping[str, Mapping[str, float]],
        feature_names: Optional[Sequence[str]] = None,
        task_id: str = "precomputed"
    ) -> 'FilterResult':
        """Build a result from precomputed {method: {feature: score}} values."""
        if not scores:
            raise InvalidParameterError("No filter scores given")

        series = {method: pd.Series(values, dtype=float) for method, values in scores.items()}
        names = list(feature_names) if feature_names is not None else list(next(iter(series.values())).index)
        for method, values in series.items():
            if values.index.has_duplicates or set(values.index) != set(names) or values.isna().any():
                raise FilterScoringError(
                    f"Scores for method '{method}' must cover every feature exactly once",
                    method=method,
                )
            series[method] = values.reindex(names)
        return cls(task_id=task_id, feature_names=tuple(names), scores=series)

    @property
    def methods(self) -> List[str]:
        return list(self.scores)

    def get(self, method: Optional[str] = None) -> pd.Series:
        """Scores for one method; method may be omitted when only one is present."""
        if method is None:
            if len(self.scores) != 1:
                raise InvalidParameterError(
                    f"Filter result holds {len(self.scores)} methods {self.methods}; name one",
                    methods=self.methods,
                )
            method = self.methods[0]
        if method not in self.scores:
            raise InvalidParameterError(
                f"Method '{method}' not in filter result {self.methods}", method=method
            )
        return self.scores[method].copy()

    def to_frame(self) -> pd.DataFrame:
        """Long format table with one row per (feature, method)."""
        rows = [
            {'name': feature, 'method': method, 'value': float(value)}
            for method, values in self.scores.items()
            for feature, value in values.items()
        ]
        return pd.DataFrame(rows, columns=['name', 'method', 'value'])

    def ranking(self, method: Optional[str] = None) -> pd.DataFrame:
        """Features sorted by descending score, ties in original order."""
        values = self.get(method)
        frame = pd.DataFrame({
            'feature': values.index,
            'score': values.to_numpy(),
            'position': np.arange(len(values)),
        })
        frame = frame.sort_values(['score', 'position'], ascending=[False, True], kind='mergesort')
        frame['rank'] = np.arange(1, len(frame) + 1)
        return frame.drop(columns='position').reset_index(drop=True)
