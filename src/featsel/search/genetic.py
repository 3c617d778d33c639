"""
Genetic Search

(mu + lambda) genetic algorithm on fixed-length inclusion masks.

Each generation draws lambda_ offspring from parents selected proportional
to their shifted fitness (normalised score minus the population minimum),
applies uniform crossover and per-bit mutation, repairs the offspring so
they are non-empty and within max_features, and keeps the best mu of
parents and offspring. Fitness ties keep the older individual.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from ..exceptions import InvalidParameterError
from ..params import ParamSpec
from .base import Batch, SearchControl
from .state import TERMINATE, SearchState

logger = logging.getLogger(__name__)

_FITNESS_EPS = 1e-9


class GeneticSearch(SearchControl):
    """
    Genetic feature subset search.

    Args:
        maxit: Number of generations after the initial population
        mu: Population size
        lambda_: Offspring per generation
        crossover_rate: Probability that an offspring is produced by
            crossover (otherwise it copies its first parent)
        mutation_rate: Per-bit flip probability
        patience: Generations without improvement before stopping
        max_features: Largest admissible subset size
        init_prob: Inclusion probability for the initial random population
    """

    name = "genetic"

    def __init__(
        self,
        maxit: int = 50,
        mu: int = 10,
        lambda_: int = 5,
        crossover_rate: float = 0.5,
        mutation_rate: float = 0.05,
        patience: Optional[int] = None,
        max_features: Optional[int] = None,
        init_prob: float = 0.5
    ):
        super().__init__(max_features=max_features)
        if maxit < 1:
            raise InvalidParameterError(f"maxit must be >= 1, got {maxit}", parameter='maxit')
        if mu < 1:
            raise InvalidParameterError(f"mu must be >= 1, got {mu}", parameter='mu')
        if lambda_ < 1:
            raise InvalidParameterError(f"lambda_ must be >= 1, got {lambda_}", parameter='lambda_')
        for name, value in (
            ('crossover_rate', crossover_rate),
            ('mutation_rate', mutation_rate),
            ('init_prob', init_prob),
        ):
            if not 0.0 <= value <= 1.0:
                raise InvalidParameterError(f"{name} must be in [0, 1], got {value}", parameter=name)
        if patience is not None and patience < 1:
            raise InvalidParameterError(f"patience must be >= 1, got {patience}", parameter='patience')

        self.maxit = maxit
        self.mu = mu
        self.lambda_ = lambda_
        self.crossover_rate = crossover_rate
        self.mutation_rate = mutation_rate
        self.patience = patience
        self.init_prob = init_prob

    def get_params(self) -> Dict[str, Any]:
        return {
            'maxit': self.maxit,
            'mu': self.mu,
            'lambda_': self.lambda_,
            'crossover_rate': self.crossover_rate,
            'mutation_rate': self.mutation_rate,
            'patience': self.patience,
            'max_features': self.max_features,
            'init_prob': self.init_prob,
        }

    def param_schema(self) -> List[ParamSpec]:
        return [
            ParamSpec('maxit', 'int', lower=1, default=self.maxit),
            ParamSpec('mu', 'int', lower=1, default=self.mu),
            ParamSpec('lambda_', 'int', lower=1, default=self.lambda_),
            ParamSpec('crossover_rate', 'float', lower=0.0, upper=1.0, default=self.crossover_rate),
            ParamSpec('mutation_rate', 'float', lower=0.0, upper=1.0, default=self.mutation_rate),
            ParamSpec('max_features', 'int', lower=1, default=self.max_features),
        ]

    def start(self, state: SearchState) -> None:
        cs = state.control_state
        cs['population'] = []  # (mask, normalised score), best first
        cs['generation'] = 0
        cs['stall'] = 0
        cs['initialized'] = False

    def repair(self, mask: np.ndarray, state: SearchState) -> np.ndarray:
        """Force at least one bit and at most max_features bits."""
        mask = mask.copy()
        if not mask.any():
            mask[state.rng.integers(state.n_features)] = True
        limit = self.feature_limit(state)
        on = np.flatnonzero(mask)
        if len(on) > limit:
            drop = state.rng.choice(on, size=len(on) - limit, replace=False)
            mask[drop] = False
        return mask

    def _initial_population(self, state: SearchState) -> List[np.ndarray]:
        masks = []
        keys = set()
        # Small feature spaces may hold fewer than mu distinct subsets
        for _ in range(self.mu * 20):
            if len(masks) >= self.mu:
                break
            mask = self.repair(state.rng.random(state.n_features) < self.init_prob, state)
            key = mask.tobytes()
            if key not in keys:
                keys.add(key)
                masks.append(mask)
        return masks

    def _select_parent(self, state: SearchState, weights: np.ndarray) -> np.ndarray:
        population = state.control_state['population']
        idx = state.rng.choice(len(population), p=weights)
        return population[idx][0]

    def _offspring(self, state: SearchState) -> List[np.ndarray]:
        population = state.control_state['population']
        fitness = np.array([score for _, score in population], dtype=float)
        shifted = fitness - fitness.min() + _FITNESS_EPS
        weights = shifted / shifted.sum()

        children = []
        for _ in range(self.lambda_):
            parent1 = self._select_parent(state, weights)
            parent2 = self._select_parent(state, weights)
            if state.rng.random() < self.crossover_rate:
                take_first = state.rng.random(state.n_features) < 0.5
                child = np.where(take_first, parent1, parent2)
            else:
                child = parent1.copy()
            flips = state.rng.random(state.n_features) < self.mutation_rate
            child = np.logical_xor(child, flips)
            children.append(self.repair(child, state))
        return children

    def next_batch(self, state: SearchState) -> Batch:
        cs = state.control_state
        if not cs['initialized']:
            masks = self._initial_population(state)
        else:
            if cs['generation'] >= self.maxit:
                logger.info(f"Genetic search finished after {cs['generation']} generations")
                return TERMINATE
            if self.patience is not None and cs['stall'] >= self.patience:
                logger.info(
                    f"Genetic search stopped: no improvement for {cs['stall']} generations "
                    f"(generation {cs['generation']})"
                )
                return TERMINATE
            masks = self._offspring(state)
        return [state.subset_from_mask(mask) for mask in masks]

    def finish_batch(self, state: SearchState, results: List[tuple]) -> None:
        cs = state.control_state
        scored = [(subset.to_mask(state.feature_names), score) for subset, score in results]

        if not cs['initialized']:
            cs['initialized'] = True
            cs['population'] = self._survivors([], scored)
            logger.debug(f"Initial population of {len(cs['population'])}")
            return

        previous_best = cs['population'][0][1]
        cs['population'] = self._survivors(cs['population'], scored)
        cs['generation'] += 1
        if cs['population'][0][1] > previous_best:
            cs['stall'] = 0
        else:
            cs['stall'] += 1
        logger.debug(
            f"Generation {cs['generation']}: best {cs['population'][0][1]:.6f}, stall {cs['stall']}"
        )

    def _survivors(self, parents: List[tuple], offspring: List[tuple]) -> List[tuple]:
        unique = {}
        for mask, score in parents + offspring:
            key = mask.tobytes()
            if key not in unique:
                unique[key] = (mask, score)
        # Stable sort: older individuals win ties
        ranked = sorted(unique.values(), key=lambda item: -item[1])
        return ranked[:self.mu]
