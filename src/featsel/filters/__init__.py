"""
Filter-Based Feature Selection

Independent statistical scoring of features and subset policies turning a
ranking into a concrete feature subset.

Key Components:
- FilterRegistry: filter methods keyed by stable ids, checked against problem type
- FilterResult: one score vector per method
- SelectionPolicy / select_features: abs, perc or threshold selection
"""

from .base import FilterMethod, FilterResult
from .importance import LightGBMImportanceFilter
from .mutual_info import MutualInfoFilter
from .registry import FilterRegistry
from .selector import PolicyKind, SelectionPolicy, select_features
from .statistical import (
    AnovaFilter,
    ChiSquaredFilter,
    KruskalFilter,
    LinearCorrelationFilter,
    RankCorrelationFilter,
    UnivariateConcordanceFilter,
    VarianceFilter,
)

__all__ = [
    'FilterMethod',
    'FilterResult',
    'FilterRegistry',
    'SelectionPolicy',
    'PolicyKind',
    'select_features',
    'VarianceFilter',
    'AnovaFilter',
    'KruskalFilter',
    'ChiSquaredFilter',
    'LinearCorrelationFilter',
    'RankCorrelationFilter',
    'UnivariateConcordanceFilter',
    'MutualInfoFilter',
    'LightGBMImportanceFilter',
]
