"""
Selection Configuration

Explicit run configuration threaded through every entry point of the engine.
There is no process-wide default: the resampling seed, the evaluation and
time budgets, and pool sizes all come from the SelectionConfig passed in.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .exceptions import InvalidParameterError


@dataclass(frozen=True)
class SelectionConfig:
    """Configuration for filter scoring and wrapper selection runs."""

    # Reproducibility
    seed: int = 42  # Drives resampling partitions, random/genetic search and seeded filters

    # Safety valves
    max_evaluations: Optional[int] = None  # Distinct subsets resampled per run
    time_budget_seconds: Optional[float] = None  # Wall-clock limit per run

    # Parallelism
    n_jobs: int = 1  # Candidate subsets evaluated concurrently
    fold_n_jobs: int = 1  # Resampling folds evaluated concurrently

    # Resource monitoring
    memory_limit_gb: float = 8.0

    # Logging
    show_info: bool = False  # Log every evaluation at INFO instead of DEBUG

    def __post_init__(self):
        if self.max_evaluations is not None and self.max_evaluations < 0:
            raise InvalidParameterError(
                f"max_evaluations must be >= 0, got {self.max_evaluations}",
                parameter='max_evaluations'
            )
        if self.time_budget_seconds is not None and self.time_budget_seconds <= 0:
            raise InvalidParameterError(
                f"time_budget_seconds must be > 0, got {self.time_budget_seconds}",
                parameter='time_budget_seconds'
            )
        if self.n_jobs < 1:
            raise InvalidParameterError(f"n_jobs must be >= 1, got {self.n_jobs}", parameter='n_jobs')
        if self.fold_n_jobs < 1:
            raise InvalidParameterError(
                f"fold_n_jobs must be >= 1, got {self.fold_n_jobs}", parameter='fold_n_jobs'
            )
        if self.memory_limit_gb <= 0:
            raise InvalidParameterError(
                f"memory_limit_gb must be > 0, got {self.memory_limit_gb}",
                parameter='memory_limit_gb'
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
