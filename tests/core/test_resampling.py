"""
Tests for the resampling evaluator.
"""

import time

import numpy as np
import pytest
from sklearn.linear_model import LinearRegression
from sklearn.tree import DecisionTreeClassifier

from featsel.config import SelectionConfig
from featsel.exceptions import (
    BudgetExceededError,
    EvaluationFailure,
    InvalidParameterError,
    UnsupportedMeasureError,
)
from featsel.learners import Learner, SklearnLearner
from featsel.measures import ACC, MSE, RMSE
from featsel.resampling import ResampleInstance, ResamplingEvaluator, ResamplingSpec
from featsel.task import ProblemType


class FailingLearner(Learner):
    """Learner that fails to train on one fold."""

    name = "failing"

    def __init__(self, fail_on_call: int = 2):
        self.fail_on_call = fail_on_call
        self.calls = 0

    def train(self, task, subset=None):
        self.calls += 1
        if self.calls == self.fail_on_call:
            raise RuntimeError("singular matrix")
        return None

    def predict(self, model, task):
        return np.zeros(task.n_obs)


class TestResamplingSpec:
    """Test resampling descriptions."""

    def test_iterations(self):
        assert ResamplingSpec.cv(5).iterations == 5
        assert ResamplingSpec.repcv(folds=3, reps=2).iterations == 6
        assert ResamplingSpec.holdout(0.7).iterations == 1

    @pytest.mark.parametrize("kwargs", [
        {'method': 'bootstrap'},
        {'method': 'cv', 'folds': 1},
        {'method': 'holdout', 'split': 1.0},
        {'method': 'repcv', 'reps': 0},
    ])
    def test_invalid_specs(self, kwargs):
        with pytest.raises(InvalidParameterError):
            ResamplingSpec(**kwargs)


class TestResampleInstance:
    """Test partition generation."""

    def test_cv_partitions_cover_all_rows_once(self, classification_task):
        instance = ResampleInstance.make(classification_task, ResamplingSpec.cv(5), seed=42)
        test_rows = np.concatenate([test for _, test in instance.splits])
        assert instance.size == 5
        assert sorted(test_rows.tolist()) == list(range(classification_task.n_obs))

    def test_cv_is_stratified(self, classification_task):
        instance = ResampleInstance.make(classification_task, ResamplingSpec.cv(5), seed=42)
        labels = classification_task.stratification_labels()
        for _, test in instance.splits:
            # 50 rows per class split over 5 folds
            _, counts = np.unique(labels[test], return_counts=True)
            assert counts.tolist() == [10, 10, 10]

    def test_partitions_deterministic_in_seed(self, regression_task):
        first = ResampleInstance.make(regression_task, ResamplingSpec.cv(4), seed=7)
        second = ResampleInstance.make(regression_task, ResamplingSpec.cv(4), seed=7)
        other = ResampleInstance.make(regression_task, ResamplingSpec.cv(4), seed=8)
        for (_, a), (_, b) in zip(first.splits, second.splits):
            assert np.array_equal(a, b)
        assert not all(np.array_equal(a, b) for (_, a), (_, b) in zip(first.splits, other.splits))

    def test_holdout_split(self, regression_task):
        instance = ResampleInstance.make(regression_task, ResamplingSpec.holdout(0.75), seed=42)
        train, test = instance.splits[0]
        assert len(train) == 150
        assert len(test) == 50

    def test_stratify_regression_rejected(self, regression_task):
        with pytest.raises(InvalidParameterError):
            ResampleInstance.make(regression_task, ResamplingSpec.cv(5, stratify=True), seed=42)


class TestResamplingEvaluator:
    """Test evaluation of learners on subsets."""

    @pytest.fixture
    def evaluator(self):
        return ResamplingEvaluator(config=SelectionConfig(seed=42))

    def test_informative_subset_beats_noise(self, evaluator, classification_task):
        learner = SklearnLearner(DecisionTreeClassifier(random_state=0), ProblemType.CLASSIFICATION)
        spec = ResamplingSpec.cv(5)

        good = evaluator.evaluate(classification_task, learner, spec, ACC, ['informative_1', 'informative_2'])
        noise = evaluator.evaluate(classification_task, learner, spec, ACC, ['noise_1', 'noise_2'])

        assert len(good.per_fold) == 5
        assert good.aggregate == pytest.approx(np.mean(good.per_fold))
        assert good.aggregate > noise.aggregate
        assert good.measure_name == 'acc'

    def test_rmse_uses_measure_aggregation(self, evaluator, regression_task):
        learner = SklearnLearner(LinearRegression(), ProblemType.REGRESSION)
        result = evaluator.evaluate(regression_task, learner, ResamplingSpec.cv(4), RMSE, ['x1'])
        assert result.aggregate == pytest.approx(np.sqrt(np.mean(np.square(result.per_fold))))

    def test_parallel_folds_match_serial(self, regression_task):
        learner = SklearnLearner(LinearRegression(), ProblemType.REGRESSION)
        spec = ResamplingSpec.repcv(folds=3, reps=2)
        serial = ResamplingEvaluator(SelectionConfig(seed=1)).evaluate(regression_task, learner, spec, MSE)
        parallel = ResamplingEvaluator(SelectionConfig(seed=1, fold_n_jobs=3)).evaluate(
            regression_task, learner, spec, MSE
        )
        assert serial.per_fold == pytest.approx(parallel.per_fold)

    def test_fold_failure_is_fatal(self, evaluator, regression_task):
        with pytest.raises(EvaluationFailure) as exc_info:
            evaluator.evaluate(regression_task, FailingLearner(fail_on_call=2), ResamplingSpec.cv(3), MSE)
        assert exc_info.value.fold == 1
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_measure_task_mismatch(self, evaluator, regression_task):
        learner = SklearnLearner(LinearRegression(), ProblemType.REGRESSION)
        with pytest.raises(UnsupportedMeasureError):
            evaluator.evaluate(regression_task, learner, ResamplingSpec.cv(3), ACC)

    def test_expired_deadline_aborts_at_fold_boundary(self, regression_task):
        learner = SklearnLearner(LinearRegression(), ProblemType.REGRESSION)
        evaluator = ResamplingEvaluator(SelectionConfig(), deadline=time.monotonic() - 1.0)
        with pytest.raises(BudgetExceededError):
            evaluator.evaluate(regression_task, learner, ResamplingSpec.cv(3), MSE)

    def test_empty_subset_trains_featureless_baseline(self, evaluator, regression_task):
        learner = SklearnLearner(LinearRegression(), ProblemType.REGRESSION)
        result = evaluator.evaluate(regression_task, learner, ResamplingSpec.cv(3), MSE, [])
        assert np.isfinite(result.aggregate)
