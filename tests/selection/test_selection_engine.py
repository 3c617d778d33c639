"""
Tests for the wrapper selection engine.
"""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest
from sklearn.tree import DecisionTreeClassifier

from featsel.config import SelectionConfig
from featsel.engine import SelectionEngine, SelectionResult
from featsel.exceptions import EvaluationFailure, InvalidParameterError, UnsupportedMeasureError
from featsel.learners import SklearnLearner
from featsel.measures import ACC, MSE
from featsel.resampling import ResamplingSpec
from featsel.search import ExhaustiveSearch, GeneticSearch, RandomSearch, SequentialSearch
from featsel.task import ProblemType, Task


SINGLE_SCORES = {
    ('A',): 0.70, ('B',): 0.55, ('C',): 0.60, ('D',): 0.58,
    ('A', 'B'): 0.71, ('A', 'C'): 0.705, ('A', 'D'): 0.69,
}


class TestSelectionEngine:
    """Test the propose/evaluate/accept loop."""

    @pytest.fixture
    def engine(self):
        return SelectionEngine(SelectionConfig(seed=42))

    @pytest.fixture
    def cv3(self):
        return ResamplingSpec.cv(3)

    def test_forward_example(self, engine, cv3, abcd_task, scripted_learner, table_score):
        learner = scripted_learner(SINGLE_SCORES)
        result = engine.select(abcd_task, learner, cv3, table_score, SequentialSearch('sfs', alpha=0.02))

        assert isinstance(result, SelectionResult)
        assert result.subset.features == ('A',)
        assert result.score == pytest.approx(0.70)
        assert result.n_evaluations == 7
        assert not result.terminated_early
        assert len(result.per_fold) == 3

    def test_exhaustive_visits_each_subset_once(self, engine, cv3, abcd_task, scripted_learner, table_score):
        learner = scripted_learner({}, default=lambda key: len(key) / 10.0)
        result = engine.select(abcd_task, learner, cv3, table_score, ExhaustiveSearch(batch_size=4))

        keys = [entry.subset.key for entry in result.trace]
        assert len(keys) == 15
        assert len(set(keys)) == 15
        assert result.subset.key == ('A', 'B', 'C', 'D')
        # Three folds per evaluation, no retraining of cached subsets
        assert len(learner.trained_subsets) == 15 * 3

    def test_cached_subsets_short_circuit(self, engine, cv3, abcd_task, scripted_learner, table_score):
        scores = {
            ('A',): 0.60, ('B',): 0.50, ('C',): 0.40, ('D',): 0.40,
            ('A', 'B'): 0.70, ('A', 'C'): 0.55, ('A', 'D'): 0.55,
            ('A', 'B', 'C'): 0.705, ('A', 'B', 'D'): 0.69,
        }
        learner = scripted_learner(scores)
        result = engine.select(abcd_task, learner, cv3, table_score, SequentialSearch('sffs', alpha=0.01))

        keys = [entry.subset.key for entry in result.trace]
        assert len(keys) == len(set(keys))
        # {B} is proposed again by both floating steps but only resampled in step one
        assert keys.count(('B',)) == 1
        assert result.n_evaluations == 9

    def test_minimized_measure_reported_natively(self, engine, cv3, abcd_task, scripted_learner, table_loss):
        learner = scripted_learner({('A',): 0.3, ('B',): 0.1, ('C',): 0.5, ('D',): 0.4},
                                   default=lambda key: 1.0)
        result = engine.select(abcd_task, learner, cv3, table_loss, SequentialSearch('sfs', alpha=0.0))

        assert result.subset.features == ('B',)
        assert result.score == pytest.approx(0.1)

    def test_evaluation_budget(self, cv3, abcd_task, scripted_learner, table_score):
        engine = SelectionEngine(SelectionConfig(max_evaluations=5))
        learner = scripted_learner({}, default=lambda key: len(key) / 10.0)
        result = engine.select(abcd_task, learner, cv3, table_score, ExhaustiveSearch())

        assert result.terminated_early
        assert result.termination_reason == "evaluation budget exhausted"
        assert result.n_evaluations == 5
        # Best of the evaluated prefix: singles then the first pair
        assert result.subset.key == ('A', 'B')

    def test_time_budget_returns_best_so_far(self, cv3, abcd_task, scripted_learner, table_score):
        engine = SelectionEngine(SelectionConfig(time_budget_seconds=0.5))
        learner = scripted_learner({}, default=lambda key: len(key) / 10.0)
        clock = iter([0.0] + [0.1] * 20 + [10.0] * 1000)

        with patch('time.monotonic', side_effect=lambda: next(clock)), \
                patch.object(SelectionEngine, '_monitor_memory'):
            result = engine.select(abcd_task, learner, cv3, table_score, ExhaustiveSearch(batch_size=2))

        assert result.terminated_early
        assert result.termination_reason == "time budget exhausted"
        assert 0 < result.n_evaluations < 15
        assert len(result.subset) > 0

    def test_evaluation_failure_propagates(self, engine, cv3, abcd_task, scripted_learner, table_score):
        def explode(key):
            if key == frozenset({'C'}):
                raise ValueError("cannot fit")
            return 0.5

        learner = scripted_learner({}, default=explode)
        with pytest.raises(EvaluationFailure):
            engine.select(abcd_task, learner, cv3, table_score, ExhaustiveSearch())

    def test_parallel_matches_serial(self, cv3, abcd_task, scripted_learner, table_score):
        learner = scripted_learner({}, default=lambda key: sum(ord(f) for f in key) % 7 / 7.0)
        serial = SelectionEngine(SelectionConfig(seed=3)).select(
            abcd_task, learner, cv3, table_score, RandomSearch(maxit=10)
        )
        parallel = SelectionEngine(SelectionConfig(seed=3, n_jobs=4)).select(
            abcd_task, learner, cv3, table_score, RandomSearch(maxit=10)
        )

        assert [e.subset.key for e in serial.trace] == [e.subset.key for e in parallel.trace]
        assert serial.subset == parallel.subset

    def test_random_search_reproducible(self, cv3, abcd_task, scripted_learner, table_score):
        learner = scripted_learner({}, default=lambda key: len(key) / 10.0)
        np.random.seed(42)
        data = pd.DataFrame(np.random.randn(40, 6), columns=[f'f{i}' for i in range(6)])
        data['label'] = np.tile([0, 1], 20)
        task = Task(data=data, target='label', problem_type=ProblemType.CLASSIFICATION)

        first = SelectionEngine(SelectionConfig(seed=9)).select(task, learner, cv3, table_score, RandomSearch(maxit=20))
        second = SelectionEngine(SelectionConfig(seed=9)).select(task, learner, cv3, table_score, RandomSearch(maxit=20))

        assert first.n_evaluations == 20
        assert [e.subset.features for e in first.trace] == [e.subset.features for e in second.trace]

    def test_genetic_run_without_empty_subsets(self, engine, cv3, abcd_task, scripted_learner, table_score):
        learner = scripted_learner({}, default=lambda key: 1.0 if 'A' in key else 0.2)
        result = engine.select(abcd_task, learner, cv3, table_score,
                               GeneticSearch(maxit=5, mu=4, lambda_=4, mutation_rate=0.5))
        assert all(len(entry.subset) > 0 for entry in result.trace)
        assert 'A' in result.subset

    def test_measure_problem_type_checked(self, engine, cv3, abcd_task, scripted_learner):
        with pytest.raises(UnsupportedMeasureError):
            engine.select(abcd_task, scripted_learner({}), cv3, MSE, ExhaustiveSearch())

    def test_trace_frame(self, engine, cv3, abcd_task, scripted_learner, table_score):
        learner = scripted_learner(SINGLE_SCORES)
        result = engine.select(abcd_task, learner, cv3, table_score, SequentialSearch('sfs', alpha=0.02))
        frame = result.trace_frame()

        assert list(frame.columns[:4]) == ['A', 'B', 'C', 'D']
        assert len(frame) == 7
        assert frame.loc[0, ['A', 'B', 'C', 'D']].tolist() == [1, 0, 0, 0]
        assert frame['step'].tolist() == [1, 1, 1, 1, 2, 2, 2]
        assert frame['table_score'].iloc[0] == pytest.approx(0.70)

    def test_real_learner_prefers_informative_features(self, classification_task):
        learner = SklearnLearner(DecisionTreeClassifier(max_depth=3, random_state=0), ProblemType.CLASSIFICATION)
        engine = SelectionEngine(SelectionConfig(seed=42))
        result = engine.select(
            classification_task, learner, ResamplingSpec.cv(3), ACC, SequentialSearch('sfs', alpha=0.01)
        )
        assert result.subset.features[0].startswith('informative')
        assert result.score > 0.8

    def test_invalid_config(self):
        with pytest.raises(InvalidParameterError):
            SelectionConfig(n_jobs=0)
        with pytest.raises(InvalidParameterError):
            SelectionConfig(time_budget_seconds=0)

    def test_memory_limit_warning(self, cv3, abcd_task, scripted_learner, table_score, caplog):
        engine = SelectionEngine(SelectionConfig(memory_limit_gb=1e-6))
        engine.select(abcd_task, scripted_learner(SINGLE_SCORES), cv3, table_score,
                      SequentialSearch('sfs', alpha=0.02))

        assert set(engine.memory_stats_) == {'selection_start', 'selection_end'}
        assert engine.memory_stats_['selection_start']['warning']
        assert any('exceeds limit' in record.message for record in caplog.records)
        assert any('selection_start' in record.message for record in caplog.records)
