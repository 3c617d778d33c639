"""
Random Search

Draws subsets at random without replacement: each feature is included
independently with probability `prob`. Under a `max_features` cap the subset
size is drawn first from the binomial(n, prob) distribution truncated to
[1, max_features], then that many features are chosen uniformly, which is the
same distribution conditioned on an admissible size. Empty and already
visited draws are rejected and redrawn. All randomness
comes from the run's seeded generator, so a run is reproducible.
"""

import logging
import math
from typing import Any, Dict, List, Optional

import numpy as np
from scipy import stats

from ..exceptions import InvalidParameterError
from ..params import ParamSpec
from .base import Batch, SearchControl
from .state import TERMINATE, SearchState

logger = logging.getLogger(__name__)


class RandomSearch(SearchControl):
    """
    Random subset search.

    Args:
        maxit: Number of distinct subsets to draw
        prob: Inclusion probability of each feature
        max_features: Largest admissible subset size
        batch_size: Draws per step (None = all maxit draws in one step)
        max_attempts: Rejected draws tolerated per subset before giving up
    """

    name = "random"

    def __init__(
        self,
        maxit: int = 100,
        prob: float = 0.5,
        max_features: Optional[int] = None,
        batch_size: Optional[int] = None,
        max_attempts: int = 10000
    ):
        super().__init__(max_features=max_features)
        if maxit < 1:
            raise InvalidParameterError(f"maxit must be >= 1, got {maxit}", parameter='maxit')
        if not 0.0 < prob <= 1.0:
            raise InvalidParameterError(f"prob must be in (0, 1], got {prob}", parameter='prob')
        if batch_size is not None and batch_size < 1:
            raise InvalidParameterError(f"batch_size must be >= 1, got {batch_size}", parameter='batch_size')
        self.maxit = maxit
        self.prob = prob
        self.batch_size = batch_size
        self.max_attempts = max_attempts

    def get_params(self) -> Dict[str, Any]:
        return {
            'maxit': self.maxit,
            'prob': self.prob,
            'max_features': self.max_features,
            'batch_size': self.batch_size,
            'max_attempts': self.max_attempts,
        }

    def param_schema(self) -> List[ParamSpec]:
        return [
            ParamSpec('maxit', 'int', lower=1, default=self.maxit),
            ParamSpec('prob', 'float', lower=0.0, upper=1.0, default=self.prob),
            ParamSpec('max_features', 'int', lower=1, default=self.max_features),
        ]

    def start(self, state: SearchState) -> None:
        limit = self.feature_limit(state)
        state.control_state['drawn'] = 0
        state.control_state['seen'] = set(state.cache)
        state.control_state['space_size'] = sum(
            math.comb(state.n_features, k) for k in range(1, limit + 1)
        )
        if limit < state.n_features:
            state.control_state['size_probs'] = self._size_distribution(state.n_features, limit)

    def _size_distribution(self, n_features: int, limit: int) -> np.ndarray:
        """Binomial(n, prob) size probabilities truncated to 1..limit."""
        log_weights = stats.binom.logpmf(np.arange(1, limit + 1), n_features, self.prob)
        if not np.isfinite(log_weights).any():
            # prob == 1 puts all mass above the cap; use the largest admissible size
            weights = np.zeros(limit)
            weights[-1] = 1.0
            return weights
        weights = np.exp(log_weights - log_weights.max())
        return weights / weights.sum()

    def _draw_mask(self, state: SearchState, limit: int) -> np.ndarray:
        n = state.n_features
        if limit >= n:
            return state.rng.random(n) < self.prob
        probs = state.control_state['size_probs']
        size = int(state.rng.choice(limit, p=probs)) + 1
        mask = np.zeros(n, dtype=bool)
        mask[state.rng.choice(n, size=size, replace=False)] = True
        return mask

    def _draw(self, state: SearchState, limit: int) -> Optional[np.ndarray]:
        seen = state.control_state['seen']
        for _ in range(self.max_attempts):
            mask = self._draw_mask(state, limit)
            if not mask.any():
                continue
            key = state.subset_from_mask(mask).key
            if key in seen:
                continue
            seen.add(key)
            return mask
        return None

    def next_batch(self, state: SearchState) -> Batch:
        cs = state.control_state
        remaining = self.maxit - cs['drawn']
        if remaining <= 0:
            return TERMINATE

        limit = self.feature_limit(state)
        n_draws = remaining if self.batch_size is None else min(self.batch_size, remaining)
        batch = []
        for _ in range(n_draws):
            if len(cs['seen']) >= cs['space_size']:
                logger.info(f"Random search exhausted all {cs['space_size']} subsets")
                break
            mask = self._draw(state, limit)
            if mask is None:
                logger.warning(
                    f"Random search found no unvisited subset in {self.max_attempts} draws; stopping"
                )
                break
            batch.append(state.subset_from_mask(mask))

        cs['drawn'] += len(batch)
        if len(batch) < n_draws:
            # Space exhausted: make the next step terminate
            cs['drawn'] = self.maxit
        return batch if batch else TERMINATE
