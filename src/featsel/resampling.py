"""
Resampling Evaluation

Estimates the performance of a learner on a feature subset by repeated
train/test partitioning (k-fold CV, repeated CV or holdout).

Key Features:
- Deterministic partitions from the run seed, stratified on class labels
  (classification) or event indicator (survival)
- ResampleInstance fixes partitions once so every subset in a selection run
  is compared on identical folds
- Any fold failure is fatal for the whole evaluation
- Optional bounded thread pool over folds with deadline checks at fold
  boundaries
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

import numpy as np
from sklearn.model_selection import (
    KFold,
    RepeatedKFold,
    RepeatedStratifiedKFold,
    StratifiedKFold,
    train_test_split,
)

from .config import SelectionConfig
from .exceptions import BudgetExceededError, EvaluationFailure, InvalidParameterError
from .learners import Learner
from .measures import Measure
from .task import Task, as_feature_list

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResamplingSpec:
    """
    Partitioning scheme.

    Args:
        method: 'cv', 'repcv' or 'holdout'
        folds: Number of folds for cv/repcv
        reps: Repetitions for repcv
        split: Training fraction for holdout
        stratify: Stratify partitions; None stratifies whenever the task has
            stratification labels
    """

    method: str = 'cv'
    folds: int = 5
    reps: int = 1
    split: float = 2 / 3
    stratify: Optional[bool] = None

    def __post_init__(self):
        if self.method not in ('cv', 'repcv', 'holdout'):
            raise InvalidParameterError(f"Unknown resampling method: {self.method}", method=self.method)
        if self.method in ('cv', 'repcv') and self.folds < 2:
            raise InvalidParameterError(f"folds must be >= 2, got {self.folds}", parameter='folds')
        if self.method == 'repcv' and self.reps < 1:
            raise InvalidParameterError(f"reps must be >= 1, got {self.reps}", parameter='reps')
        if self.method == 'holdout' and not 0.0 < self.split < 1.0:
            raise InvalidParameterError(f"split must be in (0, 1), got {self.split}", parameter='split')

    @classmethod
    def cv(cls, folds: int = 5, stratify: Optional[bool] = None) -> 'ResamplingSpec':
        return cls(method='cv', folds=folds, stratify=stratify)

    @classmethod
    def repcv(cls, folds: int = 5, reps: int = 2, stratify: Optional[bool] = None) -> 'ResamplingSpec':
        return cls(method='repcv', folds=folds, reps=reps, stratify=stratify)

    @classmethod
    def holdout(cls, split: float = 2 / 3, stratify: Optional[bool] = None) -> 'ResamplingSpec':
        return cls(method='holdout', split=split, stratify=stratify)

    @property
    def iterations(self) -> int:
        if self.method == 'holdout':
            return 1
        if self.method == 'repcv':
            return self.folds * self.reps
        return self.folds


@dataclass(frozen=True, eq=False)
class ResampleInstance:
    """Concrete train/test index pairs for one task."""

    spec: ResamplingSpec
    splits: Tuple[Tuple[np.ndarray, np.ndarray], ...]
    seed: int

    @classmethod
    def make(cls, task: Task, spec: ResamplingSpec, seed: int) -> 'ResampleInstance':
        labels = task.stratification_labels()
        stratify = spec.stratify if spec.stratify is not None else labels is not None
        if stratify and labels is None:
            raise InvalidParameterError(
                f"Cannot stratify {task.problem_type.value} task without class labels",
                task=task.task_id,
            )

        positions = np.arange(task.n_obs)
        try:
            if spec.method == 'holdout':
                train_idx, test_idx = train_test_split(
                    positions,
                    train_size=spec.split,
                    random_state=seed,
                    shuffle=True,
                    stratify=labels if stratify else None,
                )
                splits = ((np.sort(train_idx), np.sort(test_idx)),)
            else:
                if spec.method == 'cv':
                    splitter = (
                        StratifiedKFold(n_splits=spec.folds, shuffle=True, random_state=seed) if stratify
                        else KFold(n_splits=spec.folds, shuffle=True, random_state=seed)
                    )
                else:
                    splitter = (
                        RepeatedStratifiedKFold(n_splits=spec.folds, n_repeats=spec.reps, random_state=seed)
                        if stratify
                        else RepeatedKFold(n_splits=spec.folds, n_repeats=spec.reps, random_state=seed)
                    )
                y_split = labels if stratify else None
                splits = tuple(splitter.split(positions, y_split))
        except ValueError as e:
            raise InvalidParameterError(
                f"Cannot partition task {task.task_id} with {spec}: {e}", task=task.task_id
            ) from e

        logger.debug(f"Created {len(splits)} resampling iterations ({spec.method}, stratify={stratify})")
        return cls(spec=spec, splits=splits, seed=seed)

    @property
    def size(self) -> int:
        return len(self.splits)


@dataclass(frozen=True)
class AggregatedScore:
    """Aggregated performance and the per-fold values it came from."""

    aggregate: float
    per_fold: Tuple[float, ...]
    measure_name: str
    elapsed_seconds: float = 0.0

    @property
    def std(self) -> float:
        return float(np.std(self.per_fold)) if self.per_fold else float('nan')


@dataclass
class ResamplingEvaluator:
    """
    Trains and scores a learner on every partition of a resampling scheme.

    Args:
        config: Run configuration (seed, fold pool size)
        deadline: Absolute time.monotonic() value after which folds abort
    """

    config: SelectionConfig = field(default_factory=SelectionConfig)
    deadline: Optional[float] = None

    def evaluate(
        self,
        task: Task,
        learner: Learner,
        resampling_spec: ResamplingSpec,
        measure: Measure,
        subset: Optional[Iterable[str]] = None,
        instance: Optional[ResampleInstance] = None
    ) -> AggregatedScore:
        """
        Resample the learner on the task restricted to subset.

        Args:
            task: Full task (never modified)
            learner: Learner to train on each training partition
            resampling_spec: Partitioning scheme
            measure: Performance measure
            subset: Features to use (None = all task features)
            instance: Precomputed partitions (created from the seed if omitted)

        Returns:
            AggregatedScore with the measure's aggregate and per-fold values
        """
        measure.check_task(task)
        learner.check_task(task)
        features = as_feature_list(subset, task)
        reduced = task.subset_features(features)

        if instance is None:
            instance = ResampleInstance.make(task, resampling_spec, self.config.seed)
        elif instance.spec != resampling_spec:
            raise InvalidParameterError("Resample instance does not match the resampling spec")

        start = time.perf_counter()
        fold_ids = range(instance.size)

        if self.config.fold_n_jobs > 1 and instance.size > 1:
            with ThreadPoolExecutor(max_workers=min(self.config.fold_n_jobs, instance.size)) as executor:
                futures = [
                    executor.submit(self._run_fold, reduced, learner, measure, features, instance, fold)
                    for fold in fold_ids
                ]
                try:
                    fold_scores = [future.result() for future in futures]
                except Exception:
                    for future in futures:
                        future.cancel()
                    raise
        else:
            fold_scores = [
                self._run_fold(reduced, learner, measure, features, instance, fold)
                for fold in fold_ids
            ]

        aggregate = float(measure.aggregate(fold_scores))
        elapsed = time.perf_counter() - start
        return AggregatedScore(
            aggregate=aggregate,
            per_fold=tuple(float(s) for s in fold_scores),
            measure_name=measure.name,
            elapsed_seconds=elapsed,
        )

    def _run_fold(
        self,
        task: Task,
        learner: Learner,
        measure: Measure,
        features: List[str],
        instance: ResampleInstance,
        fold: int
    ) -> float:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise BudgetExceededError(
                f"Time budget exhausted before fold {fold + 1}/{instance.size}", fold=fold
            )

        train_idx, test_idx = instance.splits[fold]
        try:
            model = learner.train(task.subset_rows(train_idx), features)
            test_task = task.subset_rows(test_idx)
            predictions = learner.predict(model, test_task)
            truth = np.asarray(test_task.target_values())
            score = float(measure.compute(np.asarray(predictions), truth))
        except (BudgetExceededError, EvaluationFailure):
            raise
        except Exception as e:
            raise EvaluationFailure(
                f"Fold {fold + 1}/{instance.size} failed for subset {features}: {e}",
                fold=fold,
                subset=tuple(features),
                learner=learner.name,
            ) from e

        if not np.isfinite(score):
            raise EvaluationFailure(
                f"Measure {measure.name} returned a non-finite value on fold {fold + 1}",
                fold=fold,
                subset=tuple(features),
            )
        return score
