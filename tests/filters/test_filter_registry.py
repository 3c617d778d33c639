"""
Tests for the filter registry and built-in filter methods.
"""

import numpy as np
import pandas as pd
import pytest

from featsel.config import SelectionConfig
from featsel.exceptions import FilterScoringError, InvalidParameterError, UnsupportedMeasureError
from featsel.filters import FilterMethod, FilterRegistry, FilterResult
from featsel.task import ProblemType


class ConstantFilter(FilterMethod):
    """Scores every feature 1.0, optionally leaving one feature out."""

    id = "constant"
    description = "Constant test filter"
    problem_types = frozenset(ProblemType)

    def __init__(self, drop=None, value=1.0):
        self.drop = drop
        self.value = value

    def _compute(self, task, config):
        names = [f for f in task.feature_names if f != self.drop]
        return pd.Series(self.value, index=names)


class TestFilterRegistry:
    """Test registry resolution and problem type checks."""

    @pytest.fixture
    def registry(self):
        return FilterRegistry.with_defaults()

    def test_default_methods(self, registry):
        ids = registry.method_ids()
        for method_id in ('variance', 'anova_f', 'kruskal', 'chi_squared', 'linear_correlation',
                          'rank_correlation', 'information_gain', 'lightgbm_importance',
                          'univariate_concordance'):
            assert method_id in ids

    def test_method_ids_by_problem_type(self, registry):
        survival_ids = registry.method_ids(ProblemType.SURVIVAL)
        assert 'univariate_concordance' in survival_ids
        assert 'variance' in survival_ids
        assert 'anova_f' not in survival_ids

    def test_list_methods_frame(self, registry):
        frame = registry.list_methods(ProblemType.REGRESSION)
        assert list(frame.columns) == ['id', 'description', 'problem_types']
        assert 'linear_correlation' in frame['id'].tolist()

    def test_unsupported_problem_type_fails_before_scoring(self, registry, regression_task):
        with pytest.raises(UnsupportedMeasureError):
            registry.score(regression_task, ['variance', 'anova_f'])

    def test_unknown_method(self, registry, regression_task):
        with pytest.raises(InvalidParameterError):
            registry.score(regression_task, 'relief')

    def test_duplicate_registration(self, registry):
        registry.register(ConstantFilter())
        with pytest.raises(InvalidParameterError):
            registry.register(ConstantFilter())
        registry.register(ConstantFilter(value=2.0), replace=True)

    def test_missing_feature_is_reported(self, regression_task):
        registry = FilterRegistry()
        registry.register(ConstantFilter(drop='x2'))
        with pytest.raises(FilterScoringError) as exc_info:
            registry.score(regression_task, 'constant')
        assert exc_info.value.context['missing'] == ['x2']

    def test_multiple_methods_independent_rankings(self, registry, classification_task):
        result = registry.score(classification_task, ['anova_f', 'variance'])
        assert result.methods == ['anova_f', 'variance']
        for method in result.methods:
            assert list(result.get(method).index) == list(classification_task.feature_names)
        with pytest.raises(InvalidParameterError):
            result.get()


class TestBuiltinFilters:
    """Test that built-in filters rank informative features first."""

    @pytest.fixture
    def registry(self):
        return FilterRegistry.with_defaults()

    @pytest.mark.parametrize("method", ['anova_f', 'kruskal', 'chi_squared', 'information_gain'])
    def test_classification_filters(self, registry, classification_task, method):
        result = registry.score(classification_task, method, SelectionConfig(seed=42))
        top_two = result.ranking(method)['feature'].iloc[:2].tolist()
        assert set(top_two) == {'informative_1', 'informative_2'}

    @pytest.mark.parametrize("method", ['linear_correlation', 'rank_correlation', 'information_gain'])
    def test_regression_filters(self, registry, regression_task, method):
        result = registry.score(regression_task, method, SelectionConfig(seed=42))
        top_two = result.ranking(method)['feature'].iloc[:2].tolist()
        assert set(top_two) == {'x1', 'x2'}

    def test_lightgbm_importance(self, registry, regression_task):
        result = registry.score(regression_task, 'lightgbm_importance')
        assert set(result.ranking()['feature'].iloc[:2]) == {'x1', 'x2'}

    def test_univariate_concordance(self, registry, survival_task):
        result = registry.score(survival_task, 'univariate_concordance')
        scores = result.get()
        assert scores['risk_factor'] > scores['noise']
        assert (scores >= 0).all() and (scores <= 0.5).all()

    def test_variance(self, registry, classification_task):
        scores = registry.score(classification_task, 'variance').get()
        expected = classification_task.features().var()
        assert scores.to_numpy() == pytest.approx(expected.to_numpy())

    def test_information_gain_is_seeded(self, registry, classification_task):
        config = SelectionConfig(seed=3)
        first = registry.score(classification_task, 'information_gain', config).get()
        second = registry.score(classification_task, 'information_gain', config).get()
        pd.testing.assert_series_equal(first, second)


class TestFilterResult:
    """Test the filter result container."""

    def test_from_scores_and_frame(self):
        result = FilterResult.from_scores({'manual': {'a': 0.3, 'b': 0.9}}, feature_names=['a', 'b'])
        frame = result.to_frame()
        assert frame.columns.tolist() == ['name', 'method', 'value']
        assert frame['value'].tolist() == [0.3, 0.9]

    def test_from_scores_requires_full_coverage(self):
        with pytest.raises(FilterScoringError):
            FilterResult.from_scores({'manual': {'a': 0.3}}, feature_names=['a', 'b'])

    def test_ranking_ties_keep_original_order(self):
        result = FilterResult.from_scores({'m': {'a': 0.5, 'b': 0.9, 'c': 0.5, 'd': 0.1}})
        ranking = result.ranking('m')
        assert ranking['feature'].tolist() == ['b', 'a', 'c', 'd']
        assert ranking['rank'].tolist() == [1, 2, 3, 4]
        assert not np.isnan(ranking['score']).any()
