"""
Search Control Base Class

A search control generates candidate feature subsets step by step and
updates its private state from their scores. Controls hold configuration
only; everything that changes during a run lives in the SearchState, so one
control instance can drive any number of runs.

Protocol:
- next_batch(state): candidates of the next step, or TERMINATE
- propose(state): hands out the current step's candidates one at a time
- accept(state, subset, score): reports a normalised score; once every
  candidate of the step has been accepted, finish_batch runs
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

from ..exceptions import InvalidParameterError
from ..params import ParamSpec
from ..task import FeatureSubset
from .state import TERMINATE, SearchState, _Terminate

logger = logging.getLogger(__name__)

Batch = Union[List[FeatureSubset], _Terminate]


class SearchControl(ABC):
    """Abstract search strategy over feature subsets."""

    name: str = "search"

    def __init__(self, max_features: Optional[int] = None):
        if max_features is not None and max_features < 1:
            raise InvalidParameterError(
                f"max_features must be >= 1, got {max_features}", parameter='max_features'
            )
        self.max_features = max_features

    # Parameters

    def get_params(self) -> Dict[str, Any]:
        return {'max_features': self.max_features}

    def param_schema(self) -> List[ParamSpec]:
        """Tunable knobs of this control; subclasses extend."""
        return [ParamSpec('max_features', 'int', lower=1, default=self.max_features)]

    def with_params(self, **values: Any) -> 'SearchControl':
        """Return a copy of this control with some parameters replaced."""
        params = self.get_params()
        unknown = sorted(set(values) - set(params))
        if unknown:
            raise InvalidParameterError(
                f"Unknown parameter(s) for {self.name}: {unknown}. Available: {sorted(params)}",
                unknown=unknown,
            )
        params.update(values)
        return type(self)(**params)

    def feature_limit(self, state: SearchState) -> int:
        if self.max_features is None:
            return state.n_features
        return min(self.max_features, state.n_features)

    # Run protocol

    def start(self, state: SearchState) -> None:
        """Initialise control_state at the beginning of a run."""

    @abstractmethod
    def next_batch(self, state: SearchState) -> Batch:
        """Candidates of the next step (mutually independent), or TERMINATE."""

    def finish_batch(self, state: SearchState, results: List[tuple]) -> None:
        """Update control_state once every candidate of a step has a score."""

    def propose(self, state: SearchState) -> Union[FeatureSubset, _Terminate]:
        """Next candidate subset, or TERMINATE."""
        if not state.control_state.get('started'):
            state.control_state['started'] = True
            self.start(state)

        if not state.pending:
            if state.awaiting:
                raise InvalidParameterError(
                    f"{state.awaiting} candidate(s) of step {state.iteration} have not been accepted yet"
                )
            batch = self.next_batch(state)
            if batch is TERMINATE or not batch:
                return TERMINATE

            seen = set()
            unique = []
            for subset in batch:
                if subset.key not in seen:
                    seen.add(subset.key)
                    unique.append(subset)
            state.iteration += 1
            state.pending.extend(unique)
            state.awaiting = len(unique)
            state.batch_results = []
            logger.debug(f"{self.name}: step {state.iteration} with {len(unique)} candidate(s)")

        return state.pending.popleft()

    def accept(self, state: SearchState, subset: FeatureSubset, score: float) -> SearchState:
        """Report the normalised score of a proposed subset."""
        self.update_best(state, subset, score)
        state.batch_results.append((subset, score))
        state.awaiting -= 1
        if state.awaiting == 0 and not state.pending:
            self.finish_batch(state, list(state.batch_results))
        return state

    def update_best(self, state: SearchState, subset: FeatureSubset, score: float) -> None:
        state.update_best(subset, score)

    def __repr__(self) -> str:
        params = ', '.join(f"{k}={v!r}" for k, v in self.get_params().items())
        return f"{type(self).__name__}({params})"
