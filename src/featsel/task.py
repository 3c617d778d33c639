"""
Task and Feature Subset Definitions

A Task is the immutable description of a supervised learning problem: a
feature table, the target column(s) and the problem type. Selection never
mutates a Task; restricting features or rows always yields a new Task.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Hashable, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .exceptions import InvalidParameterError

logger = logging.getLogger(__name__)


class ProblemType(Enum):
    """Supervised problem types understood by the engine."""
    CLASSIFICATION = "classification"
    REGRESSION = "regression"
    SURVIVAL = "survival"


@dataclass(frozen=True)
class FeatureSubset:
    """Ordered set of selected feature names (no duplicates)."""

    features: Tuple[Hashable, ...] = ()

    def __post_init__(self):
        features = tuple(self.features)
        if len(set(features)) != len(features):
            duplicates = sorted({f for f in features if features.count(f) > 1}, key=str)
            raise InvalidParameterError(
                f"Feature subset contains duplicates: {duplicates}", duplicates=duplicates
            )
        object.__setattr__(self, 'features', features)

    @classmethod
    def from_mask(cls, mask: Sequence[bool], feature_names: Sequence[str]) -> 'FeatureSubset':
        """Build a subset from an inclusion mask over feature_names."""
        if len(mask) != len(feature_names):
            raise InvalidParameterError(
                f"Mask length {len(mask)} does not match {len(feature_names)} features"
            )
        return cls(tuple(name for name, bit in zip(feature_names, mask) if bit))

    @property
    def key(self) -> Tuple[Hashable, ...]:
        """Canonical sorted representation used as cache key."""
        return tuple(sorted(self.features, key=str))

    def to_mask(self, feature_names: Sequence[str]) -> np.ndarray:
        members = set(self.features)
        return np.array([name in members for name in feature_names], dtype=bool)

    def __iter__(self) -> Iterator[str]:
        return iter(self.features)

    def __len__(self) -> int:
        return len(self.features)

    def __contains__(self, feature: object) -> bool:
        return feature in self.features

    def __repr__(self) -> str:
        return f"FeatureSubset({list(self.features)})"


TargetSpec = Union[str, Tuple[str, str]]


@dataclass(frozen=True, eq=False)
class Task:
    """
    Immutable supervised learning task.

    Args:
        data: Feature table including the target column(s)
        target: Target column name, or a (time, event) pair for survival tasks
        problem_type: Classification, regression or survival
        task_id: Identifier used in logs and results
    """

    data: pd.DataFrame
    target: TargetSpec
    problem_type: ProblemType
    task_id: str = "task"
    _feature_names: Tuple[Hashable, ...] = field(init=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.problem_type, ProblemType):
            try:
                object.__setattr__(self, 'problem_type', ProblemType(self.problem_type))
            except ValueError:
                raise InvalidParameterError(
                    f"Unknown problem type: {self.problem_type}", problem_type=self.problem_type
                )

        if self.data.columns.has_duplicates:
            duplicates = self.data.columns[self.data.columns.duplicated()].tolist()
            raise InvalidParameterError(
                f"Column names must be unique, duplicates: {duplicates}", duplicates=duplicates
            )

        target_columns = self.target_columns
        if self.problem_type == ProblemType.SURVIVAL and len(target_columns) != 2:
            raise InvalidParameterError(
                "Survival tasks need a (time, event) target pair", target=self.target
            )
        if self.problem_type != ProblemType.SURVIVAL and len(target_columns) != 1:
            raise InvalidParameterError(
                f"{self.problem_type.value} tasks need a single target column", target=self.target
            )

        missing = [col for col in target_columns if col not in self.data.columns]
        if missing:
            raise InvalidParameterError(f"Target column(s) not found: {missing}", missing=missing)

        feature_names = tuple(col for col in self.data.columns if col not in target_columns)
        object.__setattr__(self, '_feature_names', feature_names)

    @property
    def target_columns(self) -> Tuple[str, ...]:
        if isinstance(self.target, (tuple, list)):
            return tuple(self.target)
        return (self.target,)

    @property
    def feature_names(self) -> Tuple[Hashable, ...]:
        """Candidate feature labels in original column order (target excluded)."""
        return self._feature_names

    @property
    def n_features(self) -> int:
        return len(self._feature_names)

    @property
    def n_obs(self) -> int:
        return len(self.data)

    def features(self, subset: Optional[Iterable[str]] = None) -> pd.DataFrame:
        """Feature columns, optionally restricted to a subset."""
        columns = list(self._feature_names) if subset is None else list(subset)
        return self.data.loc[:, columns]

    def target_values(self) -> Union[pd.Series, pd.DataFrame]:
        """Target as a Series, or a (time, event) DataFrame for survival tasks."""
        if self.problem_type == ProblemType.SURVIVAL:
            return self.data.loc[:, list(self.target_columns)]
        return self.data[self.target]

    def stratification_labels(self) -> Optional[np.ndarray]:
        """Labels to stratify resampling on: classes, event indicator, or None."""
        if self.problem_type == ProblemType.CLASSIFICATION:
            return self.data[self.target].to_numpy()
        if self.problem_type == ProblemType.SURVIVAL:
            return self.data[self.target_columns[1]].astype(int).to_numpy()
        return None

    def subset_features(self, features: Iterable[str]) -> 'Task':
        """Return a new Task keeping only the given features (plus target)."""
        features = list(features)
        unknown = [f for f in features if f not in self._feature_names]
        if unknown:
            raise InvalidParameterError(
                f"Features not present in task {self.task_id}: {unknown}", unknown=unknown
            )
        keep = set(features)
        ordered = [f for f in self._feature_names if f in keep]
        data = self.data.loc[:, ordered + list(self.target_columns)]
        return Task(data=data, target=self.target, problem_type=self.problem_type, task_id=self.task_id)

    def subset_rows(self, index: Sequence[int]) -> 'Task':
        """Return a new Task with the given positional rows."""
        data = self.data.iloc[np.asarray(index)]
        return Task(data=data, target=self.target, problem_type=self.problem_type, task_id=self.task_id)

    def __repr__(self) -> str:
        return (
            f"Task(id={self.task_id!r}, type={self.problem_type.value}, "
            f"obs={self.n_obs}, features={self.n_features})"
        )


def as_feature_list(subset: Union[FeatureSubset, Iterable[str], None], task: Task) -> List[str]:
    """Resolve an optional subset against a task (None means all features)."""
    if subset is None:
        return list(task.feature_names)
    return list(subset)
