"""
Pytest configuration and shared fixtures for feature selection tests.

Provides small synthetic tasks for each problem type plus a scripted
learner/measure pair whose resampled score is read from a lookup table, so
search behaviour can be pinned to exact values.
"""

import logging
from typing import Callable, Dict, Iterable, Optional

import numpy as np
import pandas as pd
import pytest

from featsel.learners import Learner, TrainedModel
from featsel.measures import Direction, Measure
from featsel.task import FeatureSubset, ProblemType, Task, as_feature_list

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )


class ScriptedLearner(Learner):
    """
    Learner whose predictions are the table score of its training subset.

    Combined with the `table_score` measure (mean of predictions) every fold
    scores exactly the table value, whatever the data.
    """

    name = "scripted"

    def __init__(self, table: Dict[frozenset, float], default: Callable[[frozenset], float] = None):
        self.table = table
        self.default = default or (lambda subset: 0.0)
        self.trained_subsets = []

    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> TrainedModel:
        features = as_feature_list(subset, task)
        key = frozenset(features)
        self.trained_subsets.append(key)
        value = self.table.get(key, self.default(key))
        return TrainedModel(self.name, FeatureSubset(tuple(features)), value)

    def predict(self, model: TrainedModel, task: Task) -> np.ndarray:
        return np.full(task.n_obs, model.fitted, dtype=float)


TABLE_SCORE = Measure(
    'table_score',
    Direction.MAXIMIZE,
    lambda predictions, truth: float(np.mean(predictions)),
)

TABLE_LOSS = Measure(
    'table_loss',
    Direction.MINIMIZE,
    lambda predictions, truth: float(np.mean(predictions)),
)


@pytest.fixture
def scripted_learner():
    """Factory for ScriptedLearner instances."""
    def make(table: Dict[Iterable[str], float], default: Callable[[frozenset], float] = None):
        return ScriptedLearner({frozenset(k): v for k, v in table.items()}, default)
    return make


@pytest.fixture
def table_score():
    return TABLE_SCORE


@pytest.fixture
def table_loss():
    return TABLE_LOSS


@pytest.fixture
def abcd_task():
    """Balanced binary task with four features A, B, C, D."""
    np.random.seed(42)
    n = 40
    data = pd.DataFrame(
        np.random.randn(n, 4),
        columns=['A', 'B', 'C', 'D']
    )
    data['label'] = np.tile(['yes', 'no'], n // 2)
    return Task(data=data, target='label', problem_type=ProblemType.CLASSIFICATION, task_id='abcd')


@pytest.fixture
def classification_task():
    """Three-class task with two informative and three noise features."""
    np.random.seed(42)
    n_per_class = 50
    classes = np.repeat([0, 1, 2], n_per_class)
    n = len(classes)
    data = pd.DataFrame({
        'informative_1': classes * 2.0 + np.random.randn(n) * 0.5,
        'informative_2': classes * -1.5 + np.random.randn(n) * 0.5,
        'noise_1': np.random.randn(n),
        'noise_2': np.random.randn(n),
        'noise_3': np.random.rand(n),
    })
    data['species'] = pd.Categorical.from_codes(classes, ['setosa', 'versicolor', 'virginica']).astype(str)
    return Task(data=data, target='species', problem_type=ProblemType.CLASSIFICATION, task_id='species')


@pytest.fixture
def regression_task():
    """Linear target driven by x1 and x2, with two noise features."""
    np.random.seed(42)
    n = 200
    data = pd.DataFrame({
        'x1': np.random.randn(n),
        'x2': np.random.randn(n),
        'noise_1': np.random.randn(n),
        'noise_2': np.random.randn(n),
    })
    data['y'] = 3.0 * data['x1'] - 2.0 * data['x2'] + np.random.randn(n) * 0.1
    return Task(data=data, target='y', problem_type=ProblemType.REGRESSION, task_id='linear')


@pytest.fixture
def survival_task():
    """Exponential survival times driven by risk_factor, with censoring."""
    np.random.seed(42)
    n = 150
    risk_factor = np.random.randn(n)
    noise = np.random.randn(n)
    time = np.random.exponential(scale=np.exp(-risk_factor))
    censor = np.random.exponential(scale=2.0, size=n)
    data = pd.DataFrame({
        'risk_factor': risk_factor,
        'noise': noise,
        'time': np.minimum(time, censor),
        'event': (time <= censor).astype(int),
    })
    return Task(
        data=data, target=('time', 'event'), problem_type=ProblemType.SURVIVAL, task_id='survival'
    )
