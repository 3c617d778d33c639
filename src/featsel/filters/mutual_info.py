"""
Mutual Information Filter

Ranks features by their mutual information with the target, capturing
linear and non-linear dependence. Large feature sets are scored in chunks
to bound memory; the estimator is seeded from the run configuration so
scores are reproducible.
"""

import logging

import numpy as np
import pandas as pd
import psutil
from sklearn.feature_selection import mutual_info_classif, mutual_info_regression

from ..config import SelectionConfig
from ..exceptions import FilterScoringError
from ..task import ProblemType, Task
from .base import FilterMethod, numeric_features

logger = logging.getLogger(__name__)


class MutualInfoFilter(FilterMethod):
    """
    Mutual information between each feature and the target.

    Uses the k-nearest-neighbour estimator of scikit-learn; classification
    targets use `mutual_info_classif`, numeric targets `mutual_info_regression`.
    """

    id = "information_gain"
    description = "Mutual information with the target (kNN estimator)"
    problem_types = frozenset({ProblemType.CLASSIFICATION, ProblemType.REGRESSION})

    def __init__(self, n_neighbors: int = 3, chunk_size: int = 50):
        self.n_neighbors = n_neighbors
        self.chunk_size = chunk_size

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        y = task.target_values().to_numpy()
        feature_names = X.columns.tolist()
        n_features = len(feature_names)

        estimator = (
            mutual_info_classif if task.problem_type == ProblemType.CLASSIFICATION
            else mutual_info_regression
        )

        n_chunks = int(np.ceil(n_features / self.chunk_size)) if n_features else 0
        if n_chunks > 1:
            logger.info(f"Processing MI calculation in {n_chunks} chunks of {self.chunk_size}")

        mi_scores = {}
        for i in range(n_chunks):
            chunk_features = feature_names[i * self.chunk_size:(i + 1) * self.chunk_size]
            try:
                chunk_scores = estimator(
                    X[chunk_features].to_numpy(),
                    y,
                    n_neighbors=self.n_neighbors,
                    random_state=config.seed
                )
            except ValueError as e:
                raise FilterScoringError(
                    f"Mutual information failed for chunk {i + 1}/{n_chunks}: {e}",
                    method=self.id, features=chunk_features,
                ) from e
            mi_scores.update(zip(chunk_features, chunk_scores))

            if n_chunks > 1:
                memory_gb = psutil.Process().memory_info().rss / 1024 ** 3
                if memory_gb > config.memory_limit_gb:
                    logger.warning(f"Memory usage ({memory_gb:.2f}GB) exceeds limit during MI chunk {i + 1}")

        positive = sum(1 for score in mi_scores.values() if score > 0)
        logger.debug(f"MI scores: {positive}/{len(mi_scores)} positive")
        return pd.Series(mi_scores)
