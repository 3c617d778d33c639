"""
Wrapper Selection Engine

Drives a search control against the resampling evaluator and returns the
best feature subset found together with the full evaluation trace.

Key Features:
- Step-wise propose/evaluate/accept loop until the control terminates
- Candidates of one step evaluated on a bounded thread pool; cache and trace
  written by a single writer in step order
- Cached subsets short-circuit and are never resampled twice
- Evaluation and wall-clock budgets end the run early with the best so far
- Memory monitoring at run boundaries
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
import psutil

from .config import SelectionConfig
from .exceptions import BudgetExceededError
from .learners import Learner
from .measures import Measure
from .resampling import AggregatedScore, ResampleInstance, ResamplingEvaluator, ResamplingSpec
from .search import TERMINATE, EvaluationRecord, SearchControl, SearchState
from .task import FeatureSubset, Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraceEntry:
    """One resampled subset, in evaluation order."""

    index: int
    step: int
    subset: FeatureSubset
    score: float
    per_fold: Tuple[float, ...]
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class SelectionResult:
    """
    Outcome of a wrapper selection run.

    `score` is reported in the measure's native direction. The trace lists
    every resampled subset once, in evaluation order.
    """

    subset: FeatureSubset
    score: float
    per_fold: Tuple[float, ...]
    measure_name: str
    trace: Tuple[TraceEntry, ...]
    feature_names: Tuple[str, ...]
    terminated_early: bool = False
    termination_reason: Optional[str] = None
    search_name: str = ""
    minimize: bool = False  # Direction of the measure behind `score`

    @property
    def n_evaluations(self) -> int:
        return len(self.trace)

    def trace_frame(self) -> pd.DataFrame:
        """Optimisation path with one 0/1 inclusion column per feature."""
        rows = []
        for entry in self.trace:
            row = {name: int(name in entry.subset) for name in self.feature_names}
            row.update({
                self.measure_name: entry.score,
                'n_features': len(entry.subset),
                'step': entry.step,
                'index': entry.index,
                'elapsed_seconds': entry.elapsed_seconds,
            })
            rows.append(row)
        columns = list(self.feature_names) + [
            self.measure_name, 'n_features', 'step', 'index', 'elapsed_seconds'
        ]
        return pd.DataFrame(rows, columns=columns)

    def summary(self) -> Dict[str, Any]:
        return {
            'search': self.search_name,
            'measure': self.measure_name,
            'score': self.score,
            'n_selected': len(self.subset),
            'selected_features': list(self.subset),
            'n_evaluations': self.n_evaluations,
            'terminated_early': self.terminated_early,
            'termination_reason': self.termination_reason,
        }


class SelectionEngine:
    """
    Wrapper feature selection orchestrator.

    Args:
        config: Seed, budgets, pool sizes and logging verbosity
    """

    def __init__(self, config: Optional[SelectionConfig] = None):
        self.config = config or SelectionConfig()
        self.memory_stats_: Dict[str, Dict[str, Any]] = {}

    def _monitor_memory(self, stage: str) -> Dict[str, Any]:
        """Record process RSS at a run stage (selection_start, selection_end) and warn above the limit."""
        process = psutil.Process()
        memory_gb = process.memory_info().rss / 1024 / 1024 / 1024

        self.memory_stats_[stage] = {
            'memory_gb': memory_gb,
            'timestamp': datetime.now(),
            'warning': memory_gb > self.config.memory_limit_gb
        }

        if memory_gb > self.config.memory_limit_gb:
            logger.warning(
                f"Memory usage ({memory_gb:.2f}GB) exceeds limit of {self.config.memory_limit_gb}GB at {stage}"
            )

        return self.memory_stats_[stage]

    def _log_evaluation(self, message: str) -> None:
        if self.config.show_info:
            logger.info(message)
        else:
            logger.debug(message)

    def select(
        self,
        task: Task,
        learner: Learner,
        resampling_spec: ResamplingSpec,
        measure: Measure,
        search_control: SearchControl
    ) -> SelectionResult:
        """
        Run wrapper feature selection.

        Args:
            task: Task whose features are searched (never modified)
            learner: Learner resampled on each candidate subset
            resampling_spec: Partitioning used for every candidate
            measure: Performance measure (direction handled internally)
            search_control: Strategy generating candidate subsets

        Returns:
            SelectionResult with the best subset, its score and the trace
        """
        measure.check_task(task)
        learner.check_task(task)

        start = time.monotonic()
        deadline = (
            start + self.config.time_budget_seconds
            if self.config.time_budget_seconds is not None else None
        )
        self._monitor_memory("selection_start")
        logger.info(
            f"Starting {search_control!r} on {task.task_id}: {task.n_features} features, "
            f"learner={learner.name}, measure={measure.name}, resampling={resampling_spec.method}"
        )

        instance = ResampleInstance.make(task, resampling_spec, self.config.seed)
        evaluator = ResamplingEvaluator(config=self.config, deadline=deadline)
        state = SearchState.create(task.feature_names, self.config.seed, self.config.max_evaluations)
        trace: List[TraceEntry] = []

        terminated_early = False
        reason = None
        while True:
            if deadline is not None and time.monotonic() > deadline:
                terminated_early, reason = True, "time budget exhausted"
                break

            first = search_control.propose(state)
            if first is TERMINATE:
                break
            candidates = [first]
            while state.pending:
                candidates.append(search_control.propose(state))

            uncached = [c for c in candidates if not state.is_cached(c)]
            to_evaluate = uncached
            if state.budget_remaining is not None and len(uncached) > state.budget_remaining:
                to_evaluate = uncached[:state.budget_remaining]
                terminated_early, reason = True, "evaluation budget exhausted"

            scores, budget_error = self._evaluate_batch(
                task, learner, resampling_spec, measure, instance, evaluator, to_evaluate
            )
            if budget_error is not None:
                terminated_early, reason = True, "time budget exhausted"

            for subset, record in self._record(state, trace, measure, candidates, scores):
                if record is None:
                    # Not evaluated: budget ran out before this candidate
                    continue
                search_control.accept(state, subset, record.normalized)

            if terminated_early:
                break

        result = self._build_result(task, measure, search_control, state, trace, terminated_early, reason)
        self._monitor_memory("selection_end")

        elapsed = time.monotonic() - start
        if terminated_early:
            logger.warning(
                f"Selection on {task.task_id} stopped early ({reason}) after "
                f"{result.n_evaluations} evaluations"
            )
        logger.info(
            f"Selection completed in {elapsed:.2f}s: {len(result.subset)} features, "
            f"{measure.name}={result.score:.6f}, {result.n_evaluations} evaluations"
        )
        return result

    def _evaluate_batch(
        self,
        task: Task,
        learner: Learner,
        resampling_spec: ResamplingSpec,
        measure: Measure,
        instance: ResampleInstance,
        evaluator: ResamplingEvaluator,
        subsets: List[FeatureSubset]
    ) -> Tuple[Dict[Tuple[str, ...], AggregatedScore], Optional[BudgetExceededError]]:
        """Resample every subset; budget aborts keep the completed evaluations."""
        scores: Dict[Tuple[str, ...], AggregatedScore] = {}
        budget_error = None
        if not subsets:
            return scores, budget_error

        def run(subset: FeatureSubset) -> AggregatedScore:
            return evaluator.evaluate(task, learner, resampling_spec, measure, subset, instance=instance)

        if self.config.n_jobs == 1 or len(subsets) == 1:
            for subset in subsets:
                try:
                    scores[subset.key] = run(subset)
                except BudgetExceededError as e:
                    budget_error = e
                    break
            return scores, budget_error

        with ThreadPoolExecutor(max_workers=min(self.config.n_jobs, len(subsets))) as executor:
            futures = [(subset, executor.submit(run, subset)) for subset in subsets]
            try:
                for subset, future in futures:
                    try:
                        scores[subset.key] = future.result()
                    except BudgetExceededError as e:
                        budget_error = e
            except Exception:
                for _, future in futures:
                    future.cancel()
                raise
        return scores, budget_error

    def _record(
        self,
        state: SearchState,
        trace: List[TraceEntry],
        measure: Measure,
        candidates: List[FeatureSubset],
        scores: Dict[Tuple[str, ...], AggregatedScore]
    ) -> List[Tuple[FeatureSubset, Optional[EvaluationRecord]]]:
        """Write new evaluations to cache and trace in candidate order."""
        outcomes = []
        for subset in candidates:
            record = state.lookup(subset)
            if record is None and subset.key in scores:
                score = scores[subset.key]
                record = EvaluationRecord(
                    subset=subset,
                    score=score.aggregate,
                    normalized=measure.normalize(score.aggregate),
                    per_fold=score.per_fold,
                    step=state.iteration,
                    index=len(trace),
                    elapsed_seconds=score.elapsed_seconds,
                )
                state.record(record)
                trace.append(TraceEntry(
                    index=record.index,
                    step=record.step,
                    subset=subset,
                    score=record.score,
                    per_fold=record.per_fold,
                    elapsed_seconds=record.elapsed_seconds,
                ))
                self._log_evaluation(
                    f"[{record.index + 1}] step {record.step}: {len(subset)} features "
                    f"{measure.name}={record.score:.6f}"
                )
            outcomes.append((subset, record))
        return outcomes

    def _build_result(
        self,
        task: Task,
        measure: Measure,
        search_control: SearchControl,
        state: SearchState,
        trace: List[TraceEntry],
        terminated_early: bool,
        reason: Optional[str]
    ) -> SelectionResult:
        best = state.lookup(state.best_subset) if state.best_subset is not None else None
        if best is None and state.cache:
            # Stopped before the control accepted anything: fall back to the best evaluation
            best = max(state.cache.values(), key=lambda r: (r.normalized, -r.index))

        if best is None:
            subset, score, per_fold = FeatureSubset(), float('nan'), ()
        else:
            subset, score, per_fold = best.subset, best.score, best.per_fold

        return SelectionResult(
            subset=subset,
            score=score,
            per_fold=per_fold,
            measure_name=measure.name,
            trace=tuple(trace),
            feature_names=task.feature_names,
            terminated_early=terminated_early,
            termination_reason=reason,
            search_name=search_control.name,
            minimize=measure.minimize,
        )
