"""
Selection Result Analysis

Post-hoc views of a wrapper selection run: the sequence of improvements of
the best subset found, with the features that entered and left at each
improvement.
"""

import logging
from typing import Optional

import pandas as pd

from .engine import SelectionResult

logger = logging.getLogger(__name__)


def analyze_selection_result(result: SelectionResult, minimize: Optional[bool] = None) -> pd.DataFrame:
    """
    Path of successive improvements over the evaluation trace.

    Args:
        result: Output of SelectionEngine.select
        minimize: Measure direction; taken from the result when None

    Returns:
        DataFrame with one row per improvement: index, step, score, gain,
        n_features, added, removed and the selected features
    """
    if minimize is None:
        minimize = result.minimize

    columns = ['index', 'step', 'score', 'gain', 'n_features', 'added', 'removed', 'features']
    rows = []
    best = None
    previous = ()
    for entry in result.trace:
        better = best is None or (entry.score < best if minimize else entry.score > best)
        if not better:
            continue
        gain = 0.0 if best is None else abs(entry.score - best)
        rows.append({
            'index': entry.index,
            'step': entry.step,
            'score': entry.score,
            'gain': gain,
            'n_features': len(entry.subset),
            'added': [f for f in entry.subset if f not in previous],
            'removed': [f for f in previous if f not in entry.subset],
            'features': list(entry.subset),
        })
        best = entry.score
        previous = entry.subset.features

    logger.debug(f"{len(rows)} improvements in {result.n_evaluations} evaluations")
    return pd.DataFrame(rows, columns=columns)
