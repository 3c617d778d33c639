"""
Wrapper Search Strategies

Search controls generating candidate feature subsets for the selection
engine. All run state lives in SearchState; controls hold configuration only.

Key Components:
- ExhaustiveSearch: every subset up to a size ceiling
- RandomSearch: seeded random draws without replacement
- SequentialSearch: sfs / sbs / sffs / sfbs hill climbing
- GeneticSearch: (mu + lambda) genetic algorithm on inclusion masks
"""

from .base import SearchControl
from .exhaustive import ExhaustiveSearch
from .genetic import GeneticSearch
from .random_search import RandomSearch
from .sequential import SequentialSearch
from .state import TERMINATE, EvaluationRecord, SearchState

__all__ = [
    'SearchControl',
    'SearchState',
    'EvaluationRecord',
    'TERMINATE',
    'ExhaustiveSearch',
    'RandomSearch',
    'SequentialSearch',
    'GeneticSearch',
]
