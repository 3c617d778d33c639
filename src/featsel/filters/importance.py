"""
LightGBM Importance Filter

Tree-based importance ranking: a LightGBM model owned by the filter (never
the learner under selection) is fitted on all features and each feature is
scored by its total split gain.
"""

import logging
from typing import Any, Dict, Optional

import lightgbm as lgb
import pandas as pd

from ..config import SelectionConfig
from ..task import ProblemType, Task
from .base import FilterMethod, numeric_features

logger = logging.getLogger(__name__)


class LightGBMImportanceFilter(FilterMethod):
    """Gain importance of a LightGBM model fitted on the full task."""

    id = "lightgbm_importance"
    description = "Total split gain in a LightGBM model"
    problem_types = frozenset({ProblemType.CLASSIFICATION, ProblemType.REGRESSION})

    def __init__(
        self,
        lgb_params: Optional[Dict[str, Any]] = None,
        n_estimators: int = 100,
        importance_type: str = 'gain'
    ):
        self.lgb_params = lgb_params or {
            'boosting_type': 'gbdt',
            'num_leaves': 31,
            'max_depth': 6,
            'learning_rate': 0.1,
            'feature_fraction': 0.8,
            'bagging_fraction': 0.8,
            'bagging_freq': 5,
            'min_child_samples': 20,
            'verbose': -1,
            'n_jobs': 1
        }
        self.n_estimators = n_estimators
        self.importance_type = importance_type

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        y = task.target_values()

        params = dict(self.lgb_params)
        params['random_state'] = config.seed
        if task.problem_type == ProblemType.CLASSIFICATION:
            model = lgb.LGBMClassifier(n_estimators=self.n_estimators, **params)
        else:
            model = lgb.LGBMRegressor(n_estimators=self.n_estimators, **params)

        # Positional input: LightGBM rejects some characters in column names
        model.fit(X.to_numpy(), y.to_numpy())
        importance = model.booster_.feature_importance(importance_type=self.importance_type)

        logger.debug(f"LightGBM {self.importance_type} importance computed for {X.shape[1]} features")
        return pd.Series(importance, index=X.columns, dtype=float)
