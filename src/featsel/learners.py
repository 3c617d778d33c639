"""
Learner Interface and Adapters

The selection engine treats learning algorithms as black boxes with a
train/predict capability. Implementations must be reentrant: the engine
trains many models concurrently, each on a different feature subset.

Adapters:
- SklearnLearner: clones a scikit-learn estimator for every train call;
  survival tasks are fitted as regression on a 1-D risk score
- LightGBMLearner: LightGBM classifier/regressor with ML4T-style defaults
- FeaturelessLearner: majority-class / mean baseline used for empty subsets
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Optional

import lightgbm as lgb
import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, clone

from .exceptions import UnsupportedMeasureError
from .task import FeatureSubset, ProblemType, Task, as_feature_list

logger = logging.getLogger(__name__)


def survival_risk_target(target: pd.DataFrame) -> np.ndarray:
    """Negative log(1 + time) of a (time, event) frame; censoring is ignored."""
    time = target.iloc[:, 0].to_numpy(dtype=float)
    return -np.log1p(time)


@dataclass
class TrainedModel:
    """Fitted state returned by a Learner together with the features it used."""

    learner_name: str
    subset: FeatureSubset
    fitted: Any
    metadata: Dict[str, Any] = field(default_factory=dict)


class Learner(ABC):
    """Abstract learner: train on a task restricted to a subset, predict on a task."""

    name: str = "learner"
    problem_types: FrozenSet[ProblemType] = frozenset(ProblemType)

    def check_task(self, task: Task) -> None:
        if task.problem_type not in self.problem_types:
            raise UnsupportedMeasureError(
                f"Learner '{self.name}' does not support {task.problem_type.value} tasks",
                learner=self.name,
                problem_type=task.problem_type.value,
            )

    @abstractmethod
    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> TrainedModel:
        """Train on task rows using only the features in subset (None = all)."""

    @abstractmethod
    def predict(self, model: TrainedModel, task: Task) -> np.ndarray:
        """Predict for every row of task."""


class SklearnLearner(Learner):
    """
    Adapter for scikit-learn estimators.

    The estimator is cloned on every train call so a single adapter can be
    used from many threads at once.

    For survival tasks the estimator must be a regressor: it is fitted on
    the risk score from `survival_risk_target` and its predictions are used
    as risk (higher means earlier event).
    """

    def __init__(
        self,
        estimator: BaseEstimator,
        problem_type: ProblemType,
        name: Optional[str] = None
    ):
        self.estimator = estimator
        self.problem_types = frozenset({problem_type})
        self.name = name or type(estimator).__name__

    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> TrainedModel:
        self.check_task(task)
        features = as_feature_list(subset, task)
        if not features:
            return FeaturelessLearner().train(task, features)

        estimator = clone(self.estimator)
        if task.problem_type == ProblemType.SURVIVAL:
            target = survival_risk_target(task.target_values())
        else:
            target = task.target_values()
        estimator.fit(task.features(features), target)
        return TrainedModel(self.name, FeatureSubset(tuple(features)), estimator)

    def predict(self, model: TrainedModel, task: Task) -> np.ndarray:
        if isinstance(model.fitted, _FeaturelessState):
            return FeaturelessLearner().predict(model, task)
        return np.asarray(model.fitted.predict(task.features(model.subset)))


class LightGBMLearner(Learner):
    """LightGBM learner for classification and regression tasks."""

    name = "lightgbm"
    problem_types = frozenset({ProblemType.CLASSIFICATION, ProblemType.REGRESSION})

    def __init__(
        self,
        lgb_params: Optional[Dict[str, Any]] = None,
        n_estimators: int = 100
    ):
        self.lgb_params = lgb_params or {
            'boosting_type': 'gbdt',
            'num_leaves': 31,
            'max_depth': 6,
            'learning_rate': 0.1,
            'min_child_samples': 20,
            'verbose': -1,
            'random_state': 42,
            'n_jobs': 1
        }
        self.n_estimators = n_estimators

    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> TrainedModel:
        self.check_task(task)
        features = as_feature_list(subset, task)
        if not features:
            return FeaturelessLearner().train(task, features)

        if task.problem_type == ProblemType.CLASSIFICATION:
            model = lgb.LGBMClassifier(n_estimators=self.n_estimators, **self.lgb_params)
        else:
            model = lgb.LGBMRegressor(n_estimators=self.n_estimators, **self.lgb_params)

        model.fit(task.features(features), task.target_values())
        return TrainedModel(self.name, FeatureSubset(tuple(features)), model)

    def predict(self, model: TrainedModel, task: Task) -> np.ndarray:
        if isinstance(model.fitted, _FeaturelessState):
            return FeaturelessLearner().predict(model, task)
        return np.asarray(model.fitted.predict(task.features(model.subset)))


@dataclass
class _FeaturelessState:
    value: Any
    problem_type: ProblemType


class FeaturelessLearner(Learner):
    """
    Baseline that ignores all features.

    Predicts the majority class (classification), the target mean
    (regression) or a constant risk (survival).
    """

    name = "featureless"

    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> TrainedModel:
        target = task.target_values()
        if task.problem_type == ProblemType.CLASSIFICATION:
            counts = pd.Series(target).value_counts(sort=False)
            value = counts.idxmax()
        elif task.problem_type == ProblemType.REGRESSION:
            value = float(np.mean(target))
        else:
            value = 0.0
        return TrainedModel(self.name, FeatureSubset(), _FeaturelessState(value, task.problem_type))

    def predict(self, model: TrainedModel, task: Task) -> np.ndarray:
        return np.full(task.n_obs, model.fitted.value)
