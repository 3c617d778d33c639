"""
Statistical Filter Methods

Univariate scoring of feature/target relationships:
- variance: column variance, usable for every problem type
- anova_f: one-way ANOVA F statistic across classes
- kruskal: Kruskal-Wallis H statistic across classes
- chi_squared: Cramér's V between the quantile-binned feature and the class
- linear_correlation / rank_correlation: absolute Pearson / Spearman correlation
- univariate_concordance: distance of the feature's C-index from 0.5 (survival)

Features a test cannot score (constant columns for ANOVA, correlation or
Kruskal-Wallis) come back as NaN and are reported by the base class as a
FilterScoringError.
"""

import logging
import warnings

import numpy as np
import pandas as pd
from scipy import stats
from sklearn.feature_selection import f_classif
from sklearn.preprocessing import KBinsDiscretizer

from ..config import SelectionConfig
from ..measures import concordance_index
from ..task import ProblemType, Task
from .base import FilterMethod, numeric_features

logger = logging.getLogger(__name__)


class VarianceFilter(FilterMethod):
    """Feature variance; ignores the target, so any problem type is accepted."""

    id = "variance"
    description = "Sample variance of each feature (target-agnostic)"
    problem_types = frozenset(ProblemType)

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        variances = X.var(axis=0, ddof=1)
        logger.debug(f"Variance range: {variances.min():.6f} - {variances.max():.6f}")
        return variances


class AnovaFilter(FilterMethod):
    """One-way ANOVA F statistic of each feature across target classes."""

    id = "anova_f"
    description = "ANOVA F statistic of feature across classes"
    problem_types = frozenset({ProblemType.CLASSIFICATION})

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        with warnings.catch_warnings():
            # Constant features yield NaN, reported by the base class
            warnings.simplefilter("ignore", category=RuntimeWarning)
            warnings.simplefilter("ignore", category=UserWarning)
            f_values, _ = f_classif(X.to_numpy(), task.target_values().to_numpy())
        return pd.Series(f_values, index=X.columns)


class KruskalFilter(FilterMethod):
    """Kruskal-Wallis H statistic of each feature across target classes."""

    id = "kruskal"
    description = "Kruskal-Wallis rank sum statistic across classes"
    problem_types = frozenset({ProblemType.CLASSIFICATION})

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        y = task.target_values()
        classes = pd.unique(y)

        scores = {}
        for feature in X.columns:
            groups = [X.loc[(y == label).to_numpy(), feature].to_numpy() for label in classes]
            try:
                statistic, _ = stats.kruskal(*groups)
            except ValueError as e:
                logger.debug(f"Kruskal-Wallis failed for {feature}: {e}")
                statistic = np.nan
            scores[feature] = statistic
        return pd.Series(scores)


class ChiSquaredFilter(FilterMethod):
    """
    Chi-squared association between binned feature and class.

    Numeric features are discretised into quantile bins; the score is
    Cramér's V so that values are comparable across bin counts.
    """

    id = "chi_squared"
    description = "Cramér's V of quantile-binned feature vs class"
    problem_types = frozenset({ProblemType.CLASSIFICATION})

    def __init__(self, n_bins: int = 5):
        self.n_bins = n_bins

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        y = task.target_values().to_numpy()

        discretizer = KBinsDiscretizer(n_bins=self.n_bins, encode='ordinal', strategy='quantile')
        with warnings.catch_warnings():
            # Low-cardinality features trigger bin-merging warnings
            warnings.simplefilter("ignore", category=UserWarning)
            warnings.simplefilter("ignore", category=FutureWarning)
            binned = discretizer.fit_transform(X.to_numpy())

        n_obs = len(y)
        scores = {}
        for position, feature in enumerate(X.columns):
            table = pd.crosstab(binned[:, position], y)
            min_dim = min(table.shape) - 1
            if min_dim == 0:
                scores[feature] = 0.0
                continue
            chi2, _, _, _ = stats.chi2_contingency(table.to_numpy(), correction=False)
            scores[feature] = float(np.sqrt(chi2 / (n_obs * min_dim)))
        return pd.Series(scores)


class LinearCorrelationFilter(FilterMethod):
    """Absolute Pearson correlation with a numeric target."""

    id = "linear_correlation"
    description = "Absolute Pearson correlation with the target"
    problem_types = frozenset({ProblemType.REGRESSION})

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        return X.corrwith(task.target_values(), method='pearson').abs()


class RankCorrelationFilter(FilterMethod):
    """Absolute Spearman rank correlation with a numeric target."""

    id = "rank_correlation"
    description = "Absolute Spearman correlation with the target"
    problem_types = frozenset({ProblemType.REGRESSION})

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        return X.corrwith(task.target_values(), method='spearman').abs()


class UnivariateConcordanceFilter(FilterMethod):
    """Distance of each feature's concordance index from random (0.5)."""

    id = "univariate_concordance"
    description = "|C-index - 0.5| of the feature used as a risk score"
    problem_types = frozenset({ProblemType.SURVIVAL})

    def _compute(self, task: Task, config: SelectionConfig) -> pd.Series:
        X = numeric_features(task, self.id)
        time_col, event_col = task.target_columns
        time = task.data[time_col].to_numpy()
        event = task.data[event_col].to_numpy()

        return pd.Series({
            feature: abs(concordance_index(X[feature].to_numpy(), time, event) - 0.5)
            for feature in X.columns
        })
