"""
Tests for performance measures and direction normalisation.
"""

import numpy as np
import pytest

from featsel.exceptions import InvalidParameterError, UnsupportedMeasureError
from featsel.measures import (
    ACC,
    CINDEX,
    MMCE,
    RMSE,
    concordance_index,
    default_measure,
    get_measure,
    list_measures,
)
from featsel.task import ProblemType


class TestMeasures:
    """Test built-in measures."""

    def test_accuracy_and_error_rate(self):
        truth = np.array(['a', 'a', 'b', 'b'])
        predictions = np.array(['a', 'b', 'b', 'b'])
        assert ACC.compute(predictions, truth) == pytest.approx(0.75)
        assert MMCE.compute(predictions, truth) == pytest.approx(0.25)

    def test_direction_normalisation(self):
        assert ACC.normalize(0.8) == 0.8
        assert MMCE.normalize(0.2) == -0.2
        assert MMCE.denormalize(MMCE.normalize(0.2)) == 0.2
        # Lower error must compare as better after normalisation
        assert MMCE.normalize(0.1) > MMCE.normalize(0.3)

    def test_rmse_aggregates_root_of_mean_squares(self):
        assert RMSE.aggregate([1.0, 3.0]) == pytest.approx(np.sqrt(5.0))

    def test_default_aggregation_is_mean(self):
        assert ACC.aggregate([0.5, 0.7]) == pytest.approx(0.6)

    def test_check_task_rejects_other_problem_types(self, regression_task):
        with pytest.raises(UnsupportedMeasureError) as exc_info:
            ACC.check_task(regression_task)
        assert exc_info.value.context['measure'] == 'acc'

    def test_lookup(self):
        assert get_measure('rmse') is RMSE
        assert 'cindex' in list_measures()
        assert default_measure(ProblemType.SURVIVAL) is CINDEX
        with pytest.raises(InvalidParameterError):
            get_measure('auc_pr')


class TestConcordanceIndex:
    """Test Harrell's C-index."""

    def test_perfect_ranking(self):
        time = np.array([1.0, 2.0, 3.0, 4.0])
        event = np.array([1, 1, 1, 1])
        risk = np.array([4.0, 3.0, 2.0, 1.0])
        assert concordance_index(risk, time, event) == pytest.approx(1.0)
        assert concordance_index(-risk, time, event) == pytest.approx(0.0)

    def test_ties_count_half(self):
        time = np.array([1.0, 2.0])
        event = np.array([1, 1])
        assert concordance_index(np.zeros(2), time, event) == pytest.approx(0.5)

    def test_censored_first_is_not_comparable(self):
        time = np.array([1.0, 2.0])
        event = np.array([0, 1])
        assert concordance_index(np.array([0.0, 1.0]), time, event) == pytest.approx(0.5)
