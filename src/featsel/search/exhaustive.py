"""
Exhaustive Search

Enumerates every non-empty subset (up to an optional size ceiling) in a
fixed order: by size, then lexicographically by original column position.
"""

import itertools
import logging
import math
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..exceptions import InvalidParameterError
from ..params import ParamSpec
from ..task import FeatureSubset
from .base import Batch, SearchControl
from .state import TERMINATE, SearchState

logger = logging.getLogger(__name__)


class ExhaustiveSearch(SearchControl):
    """
    Visit all 2^n - 1 non-empty subsets (or all subsets of size <= max_features).

    Args:
        max_features: Largest subset size to enumerate
        batch_size: Subsets handed to the engine per step (evaluated concurrently)
    """

    name = "exhaustive"

    def __init__(self, max_features: Optional[int] = None, batch_size: int = 64):
        super().__init__(max_features=max_features)
        if batch_size < 1:
            raise InvalidParameterError(f"batch_size must be >= 1, got {batch_size}", parameter='batch_size')
        self.batch_size = batch_size

    def get_params(self) -> Dict[str, Any]:
        return {'max_features': self.max_features, 'batch_size': self.batch_size}

    def param_schema(self) -> List[ParamSpec]:
        return [ParamSpec('max_features', 'int', lower=1, default=self.max_features)]

    def n_candidates(self, n_features: int) -> int:
        """Number of subsets the search will visit."""
        limit = n_features if self.max_features is None else min(self.max_features, n_features)
        return sum(math.comb(n_features, k) for k in range(1, limit + 1))

    def _enumerate(self, n_features: int, limit: int) -> Iterator[Tuple[int, ...]]:
        for size in range(1, limit + 1):
            yield from itertools.combinations(range(n_features), size)

    def start(self, state: SearchState) -> None:
        limit = self.feature_limit(state)
        state.control_state['positions'] = self._enumerate(state.n_features, limit)
        logger.info(f"Exhaustive search over {self.n_candidates(state.n_features)} subsets")

    def next_batch(self, state: SearchState) -> Batch:
        positions = state.control_state['positions']
        batch = [
            FeatureSubset(tuple(state.feature_names[i] for i in combo))
            for combo in itertools.islice(positions, self.batch_size)
        ]
        if not batch:
            return TERMINATE
        return batch
