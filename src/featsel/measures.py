"""
Performance Measures

Scalar performance metrics with a declared optimisation direction. Search
strategies compare normalised scores (higher is better); results are always
reported in the measure's native direction.

Built-in measures:
- Classification: acc, mmce, bac
- Regression: mse, rmse, mae, rsq
- Survival: cindex (Harrell's concordance of risk scores)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, FrozenSet, List, Sequence

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    balanced_accuracy_score,
    mean_absolute_error,
    mean_squared_error,
    r2_score,
)

from .exceptions import InvalidParameterError, UnsupportedMeasureError
from .task import ProblemType, Task

logger = logging.getLogger(__name__)


class Direction(Enum):
    MINIMIZE = "minimize"
    MAXIMIZE = "maximize"


def _mean_aggregate(scores: Sequence[float]) -> float:
    return float(np.mean(scores))


@dataclass(frozen=True)
class Measure:
    """
    Performance measure.

    Args:
        name: Measure identifier
        direction: Whether lower or higher values are better
        compute: Function (predictions, truth) -> float
        problem_types: Problem types the measure applies to
        aggregate: Combines per-fold values (arithmetic mean by default)
    """

    name: str
    direction: Direction
    compute: Callable[[np.ndarray, np.ndarray], float]
    problem_types: FrozenSet[ProblemType] = field(
        default_factory=lambda: frozenset(ProblemType)
    )
    aggregate: Callable[[Sequence[float]], float] = _mean_aggregate

    @property
    def minimize(self) -> bool:
        return self.direction == Direction.MINIMIZE

    def normalize(self, value: float) -> float:
        """Map a native score onto the higher-is-better scale."""
        return -value if self.minimize else value

    def denormalize(self, value: float) -> float:
        return -value if self.minimize else value

    def check_task(self, task: Task) -> None:
        """Raise UnsupportedMeasureError when the measure cannot score this task."""
        if task.problem_type not in self.problem_types:
            raise UnsupportedMeasureError(
                f"Measure '{self.name}' does not support {task.problem_type.value} tasks",
                measure=self.name,
                problem_type=task.problem_type.value,
            )


def _rmse(predictions: np.ndarray, truth: np.ndarray) -> float:
    return float(np.sqrt(mean_squared_error(truth, predictions)))


def _rmse_aggregate(scores: Sequence[float]) -> float:
    # Root of the mean squared error over folds, not the mean of roots
    return float(np.sqrt(np.mean(np.square(scores))))


def concordance_index(risk: np.ndarray, time: np.ndarray, event: np.ndarray) -> float:
    """
    Harrell's C-index for risk scores (higher risk means earlier event).

    Comparable pairs are those where the earlier time is an observed event.
    Ties in risk count one half.
    """
    risk = np.asarray(risk, dtype=float)
    time = np.asarray(time, dtype=float)
    event = np.asarray(event).astype(bool)

    concordant = 0.0
    comparable = 0
    for i in np.flatnonzero(event):
        later = time > time[i]
        n_later = int(later.sum())
        if n_later == 0:
            continue
        comparable += n_later
        concordant += float((risk[i] > risk[later]).sum()) + 0.5 * float((risk[i] == risk[later]).sum())

    if comparable == 0:
        return 0.5
    return concordant / comparable


def _cindex(predictions: np.ndarray, truth: np.ndarray) -> float:
    predictions = np.asarray(predictions)
    if predictions.ndim != 1:
        raise ValueError(f"cindex needs one risk score per observation, got shape {predictions.shape}")
    truth = np.asarray(truth)
    return concordance_index(predictions, truth[:, 0], truth[:, 1])


_CLASSIF = frozenset({ProblemType.CLASSIFICATION})
_REGR = frozenset({ProblemType.REGRESSION})
_SURV = frozenset({ProblemType.SURVIVAL})

ACC = Measure('acc', Direction.MAXIMIZE, lambda p, t: float(accuracy_score(t, p)), _CLASSIF)
MMCE = Measure('mmce', Direction.MINIMIZE, lambda p, t: float(1.0 - accuracy_score(t, p)), _CLASSIF)
BAC = Measure('bac', Direction.MAXIMIZE, lambda p, t: float(balanced_accuracy_score(t, p)), _CLASSIF)
MSE = Measure('mse', Direction.MINIMIZE, lambda p, t: float(mean_squared_error(t, p)), _REGR)
RMSE = Measure('rmse', Direction.MINIMIZE, _rmse, _REGR, aggregate=_rmse_aggregate)
MAE = Measure('mae', Direction.MINIMIZE, lambda p, t: float(mean_absolute_error(t, p)), _REGR)
RSQ = Measure('rsq', Direction.MAXIMIZE, lambda p, t: float(r2_score(t, p)), _REGR)
CINDEX = Measure('cindex', Direction.MAXIMIZE, _cindex, _SURV)

_MEASURES: Dict[str, Measure] = {m.name: m for m in (ACC, MMCE, BAC, MSE, RMSE, MAE, RSQ, CINDEX)}

_DEFAULT_MEASURES = {
    ProblemType.CLASSIFICATION: 'mmce',
    ProblemType.REGRESSION: 'mse',
    ProblemType.SURVIVAL: 'cindex',
}


def get_measure(name: str) -> Measure:
    """Look up a built-in measure by name."""
    try:
        return _MEASURES[name]
    except KeyError:
        raise InvalidParameterError(
            f"Unknown measure: {name}. Available: {sorted(_MEASURES)}", measure=name
        )


def default_measure(problem_type: ProblemType) -> Measure:
    return _MEASURES[_DEFAULT_MEASURES[problem_type]]


def list_measures() -> List[str]:
    return sorted(_MEASURES)
