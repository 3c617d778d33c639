"""
featsel: Feature Selection Engine

Filter and wrapper feature selection for supervised learning tasks.

Key Components:
- Task / FeatureSubset: immutable problem description and subsets
- FilterRegistry + select_features: statistical scoring and subset policies
- ResamplingEvaluator: cross-validated performance of a learner on a subset
- SearchControl family + SelectionEngine: wrapper subset search
- FilterWrapperLearner / SelectionWrapperLearner: selection fused into training
"""

from .analysis import analyze_selection_result
from .config import SelectionConfig
from .engine import SelectionEngine, SelectionResult, TraceEntry
from .exceptions import (
    BudgetExceededError,
    EvaluationFailure,
    FeatSelError,
    FilterScoringError,
    InvalidParameterError,
    UnsupportedMeasureError,
)
from .filters import FilterRegistry, FilterResult, SelectionPolicy, select_features
from .learners import FeaturelessLearner, Learner, LightGBMLearner, SklearnLearner, TrainedModel
from .measures import Direction, Measure, default_measure, get_measure
from .params import ParamSpec
from .resampling import AggregatedScore, ResampleInstance, ResamplingEvaluator, ResamplingSpec
from .search import (
    TERMINATE,
    ExhaustiveSearch,
    GeneticSearch,
    RandomSearch,
    SearchControl,
    SearchState,
    SequentialSearch,
)
from .task import FeatureSubset, ProblemType, Task
from .wrappers import FilterWrapperLearner, SelectionWrapperLearner, WrapperLearner, WrapperModel

__version__ = "0.1.0"

__all__ = [
    'Task',
    'ProblemType',
    'FeatureSubset',
    'SelectionConfig',
    'Measure',
    'Direction',
    'get_measure',
    'default_measure',
    'Learner',
    'TrainedModel',
    'SklearnLearner',
    'LightGBMLearner',
    'FeaturelessLearner',
    'FilterRegistry',
    'FilterResult',
    'SelectionPolicy',
    'select_features',
    'ResamplingSpec',
    'ResampleInstance',
    'ResamplingEvaluator',
    'AggregatedScore',
    'SearchControl',
    'SearchState',
    'TERMINATE',
    'ExhaustiveSearch',
    'RandomSearch',
    'SequentialSearch',
    'GeneticSearch',
    'SelectionEngine',
    'SelectionResult',
    'TraceEntry',
    'ParamSpec',
    'WrapperLearner',
    'WrapperModel',
    'FilterWrapperLearner',
    'SelectionWrapperLearner',
    'analyze_selection_result',
    'FeatSelError',
    'UnsupportedMeasureError',
    'InvalidParameterError',
    'EvaluationFailure',
    'BudgetExceededError',
    'FilterScoringError',
]
