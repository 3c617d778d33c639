"""
Sequential Feature Selection

Greedy hill-climbing over single-feature moves with an explicit
noise-tolerance stopping rule.

Methods:
- sfs: forward selection, start from the empty set and add features
- sbs: backward elimination, start from the full set and remove features
- sffs: floating forward, every add step is followed by removal attempts
- sfbs: floating backward, every removal step is followed by add attempts

A primary move is accepted when the best candidate beats the current score
by more than `alpha`; a floating move when it beats it by more than `beta`.
Plain variants stop at the first failed primary step. Floating variants stop
only when a primary step and the floating attempt that follows it both fail.
Moves never return to a subset accepted earlier on the path and removals
never empty the subset.

The reported subset is the best one accepted on the path. Candidates that
were evaluated but not accepted (improvement within the tolerance) are kept
in the trace only.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from ..exceptions import InvalidParameterError
from ..params import ParamSpec
from ..task import FeatureSubset
from .base import Batch, SearchControl
from .state import TERMINATE, SearchState

logger = logging.getLogger(__name__)

METHODS = ('sfs', 'sbs', 'sffs', 'sfbs')

_PRIMARY = 'primary'
_FLOATING = 'floating'
_INIT = 'init'


class SequentialSearch(SearchControl):
    """
    Sequential forward/backward (floating) search.

    Args:
        method: 'sfs', 'sbs', 'sffs' or 'sfbs'
        alpha: Minimum improvement for a primary move
        beta: Minimum improvement for a floating move (may be negative)
        max_features: Largest subset size reachable by adding features
    """

    name = "sequential"

    def __init__(
        self,
        method: str = 'sfs',
        alpha: float = 0.01,
        beta: float = -0.001,
        max_features: Optional[int] = None
    ):
        super().__init__(max_features=max_features)
        if method not in METHODS:
            raise InvalidParameterError(
                f"Unknown sequential method: {method}. Available: {list(METHODS)}", parameter='method'
            )
        if np.isnan(alpha) or np.isnan(beta):
            raise InvalidParameterError("alpha and beta must not be NaN")
        self.method = method
        self.alpha = alpha
        self.beta = beta

    @property
    def forward(self) -> bool:
        return self.method in ('sfs', 'sffs')

    @property
    def floating(self) -> bool:
        return self.method in ('sffs', 'sfbs')

    def get_params(self) -> Dict[str, Any]:
        return {
            'method': self.method,
            'alpha': self.alpha,
            'beta': self.beta,
            'max_features': self.max_features,
        }

    def param_schema(self) -> List[ParamSpec]:
        schema = [
            ParamSpec('method', 'discrete', values=METHODS, default=self.method),
            ParamSpec('alpha', 'float', lower=0.0, upper=1.0, default=self.alpha),
            ParamSpec('max_features', 'int', lower=1, default=self.max_features),
        ]
        if self.floating:
            schema.insert(2, ParamSpec('beta', 'float', lower=-1.0, upper=1.0, default=self.beta))
        return schema

    def start(self, state: SearchState) -> None:
        cs = state.control_state
        cs['accepted'] = set()
        cs['primary_failed'] = False
        cs['done'] = False
        if self.forward:
            cs['current'] = FeatureSubset()
            cs['current_score'] = -np.inf
            cs['phase'] = _PRIMARY
            cs['accepted'].add(cs['current'].key)
        else:
            cs['current'] = FeatureSubset(state.feature_names)
            cs['current_score'] = -np.inf
            cs['phase'] = _INIT

    def _adds(self, state: SearchState) -> bool:
        """Whether the current phase adds features."""
        return (state.control_state['phase'] == _PRIMARY) == self.forward

    def _candidates(self, state: SearchState) -> List[FeatureSubset]:
        cs = state.control_state
        current = cs['current']
        if self._adds(state):
            if len(current) >= self.feature_limit(state):
                return []
            moves = [
                FeatureSubset(current.features + (name,))
                for name in state.feature_names if name not in current
            ]
        else:
            if len(current) <= 1:
                return []
            moves = [
                FeatureSubset(tuple(f for f in current if f != name))
                for name in state.feature_names if name in current
            ]
        return [subset for subset in moves if subset.key not in cs['accepted']]

    def next_batch(self, state: SearchState) -> Batch:
        cs = state.control_state
        while not cs['done']:
            if cs['phase'] == _INIT:
                return [cs['current']]
            candidates = self._candidates(state)
            if candidates:
                return candidates
            self._transition(state, improved=False)
        return TERMINATE

    def update_best(self, state: SearchState, subset: FeatureSubset, score: float) -> None:
        # Only accepted moves compete for the reported subset
        return None

    def finish_batch(self, state: SearchState, results: List[tuple]) -> None:
        cs = state.control_state
        if cs['phase'] == _INIT:
            subset, score = results[0]
            self._accept_move(state, subset, score)
            cs['phase'] = _PRIMARY
            return

        # First maximum in batch order: ties go to the earlier column
        best_subset, best_score = results[0]
        for subset, score in results[1:]:
            if score > best_score:
                best_subset, best_score = subset, score

        threshold = self.alpha if cs['phase'] == _PRIMARY else self.beta
        improved = best_score - cs['current_score'] > threshold
        if improved:
            self._accept_move(state, best_subset, best_score)
        else:
            logger.debug(
                f"{self.method}: no {cs['phase']} move beats {cs['current_score']:.6f} "
                f"by more than {threshold} (best candidate {best_score:.6f})"
            )
        self._transition(state, improved)

    def _accept_move(self, state: SearchState, subset: FeatureSubset, score: float) -> None:
        cs = state.control_state
        previous = cs['current']
        cs['current'] = subset
        cs['current_score'] = score
        cs['accepted'].add(subset.key)
        state.update_best(subset, score)

        added = [f for f in subset if f not in previous]
        removed = [f for f in previous if f not in subset]
        if added:
            logger.info(f"{self.method}: added {added[0]} -> {len(subset)} features, score {score:.6f}")
        elif removed:
            logger.info(f"{self.method}: removed {removed[0]} -> {len(subset)} features, score {score:.6f}")
        else:
            logger.info(f"{self.method}: starting from {len(subset)} features, score {score:.6f}")

    def _transition(self, state: SearchState, improved: bool) -> None:
        cs = state.control_state
        phase = cs['phase']
        if not self.floating:
            if not improved:
                cs['done'] = True
            return

        if phase == _PRIMARY:
            cs['primary_failed'] = not improved
            cs['phase'] = _FLOATING
        elif improved:
            cs['primary_failed'] = False
        elif cs['primary_failed']:
            cs['done'] = True
        else:
            cs['phase'] = _PRIMARY
