"""
Search State

All mutable state of one selection run. A SearchState is created by the
engine at the start of `select`, passed to the search control on every
propose/accept call and discarded once the SelectionResult is built.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

import numpy as np

from ..task import FeatureSubset


class _Terminate:
    """Sentinel returned by propose/next_batch when the search is finished."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TERMINATE"

    def __bool__(self) -> bool:
        return False


TERMINATE = _Terminate()


@dataclass(frozen=True)
class EvaluationRecord:
    """Cached outcome of resampling one subset."""

    subset: FeatureSubset
    score: float  # Native measure direction
    normalized: float  # Higher is better
    per_fold: Tuple[float, ...]
    step: int
    index: int
    elapsed_seconds: float = 0.0


@dataclass
class SearchState:
    """
    Mutable state of a single selection run.

    Invariant: a subset present in `cache` is never resampled again within
    the run. `best_score` is on the normalised (higher is better) scale.
    """

    feature_names: Tuple[str, ...]
    rng: np.random.Generator
    budget_remaining: Optional[int] = None
    cache: Dict[Tuple[str, ...], EvaluationRecord] = field(default_factory=dict)
    best_subset: Optional[FeatureSubset] = None
    best_score: float = -np.inf
    iteration: int = 0
    n_evaluations: int = 0
    control_state: Dict[str, Any] = field(default_factory=dict)
    pending: Deque[FeatureSubset] = field(default_factory=deque)
    awaiting: int = 0
    batch_results: List[Tuple[FeatureSubset, float]] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def create(
        cls,
        feature_names: Tuple[str, ...],
        seed: int,
        max_evaluations: Optional[int] = None
    ) -> 'SearchState':
        return cls(
            feature_names=tuple(feature_names),
            rng=np.random.default_rng(seed),
            budget_remaining=max_evaluations,
        )

    @property
    def n_features(self) -> int:
        return len(self.feature_names)

    def is_cached(self, subset: FeatureSubset) -> bool:
        return subset.key in self.cache

    def lookup(self, subset: FeatureSubset) -> Optional[EvaluationRecord]:
        return self.cache.get(subset.key)

    def record(self, record: EvaluationRecord) -> None:
        """Store a new evaluation; re-recording a cached subset is an error."""
        with self.lock:
            key = record.subset.key
            if key in self.cache:
                raise RuntimeError(f"Subset {list(key)} evaluated twice in one run")
            self.cache[key] = record
            self.n_evaluations += 1
            if self.budget_remaining is not None:
                self.budget_remaining -= 1

    def update_best(self, subset: FeatureSubset, normalized: float) -> bool:
        """Keep the best subset seen; earlier subsets win ties."""
        if self.best_subset is None or normalized > self.best_score:
            self.best_subset = subset
            self.best_score = normalized
            return True
        return False

    def subset_from_mask(self, mask) -> FeatureSubset:
        return FeatureSubset.from_mask(mask, self.feature_names)
