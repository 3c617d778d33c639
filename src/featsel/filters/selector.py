"""
Subset Selection from Filter Scores

Turns a filter ranking into a concrete FeatureSubset under exactly one
policy: an absolute count, a percentage of features, or a score threshold.

Ordering rule: selected features are returned by descending score; equal
scores keep their original column order.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ..exceptions import InvalidParameterError
from ..task import FeatureSubset
from .base import FilterResult

logger = logging.getLogger(__name__)


class PolicyKind(Enum):
    ABSOLUTE = "abs"
    PERCENTAGE = "perc"
    THRESHOLD = "threshold"


@dataclass(frozen=True)
class SelectionPolicy:
    """How many of the ranked features to keep."""

    kind: PolicyKind
    value: float

    @classmethod
    def absolute(cls, k: int) -> 'SelectionPolicy':
        if isinstance(k, bool) or int(k) != k:
            raise InvalidParameterError(f"abs requires an integer count, got {k}", parameter='fw_abs')
        if k < 1:
            raise InvalidParameterError(f"abs must be >= 1, got {k}", parameter='fw_abs')
        return cls(PolicyKind.ABSOLUTE, int(k))

    @classmethod
    def percentage(cls, p: float) -> 'SelectionPolicy':
        if not 0.0 <= p <= 1.0:
            raise InvalidParameterError(f"perc must be in [0, 1], got {p}", parameter='fw_perc')
        return cls(PolicyKind.PERCENTAGE, float(p))

    @classmethod
    def threshold(cls, t: float) -> 'SelectionPolicy':
        if math.isnan(t):
            raise InvalidParameterError("threshold must not be NaN", parameter='fw_threshold')
        return cls(PolicyKind.THRESHOLD, float(t))

    @classmethod
    def from_params(
        cls,
        fw_abs: Optional[int] = None,
        fw_perc: Optional[float] = None,
        fw_threshold: Optional[float] = None
    ) -> 'SelectionPolicy':
        """Build a policy from keyword parameters; exactly one must be set."""
        given = {
            name: value for name, value in
            (('fw_abs', fw_abs), ('fw_perc', fw_perc), ('fw_threshold', fw_threshold))
            if value is not None
        }
        if len(given) != 1:
            raise InvalidParameterError(
                f"Exactly one of fw_abs, fw_perc, fw_threshold must be given, got {sorted(given) or 'none'}",
                given=sorted(given),
            )
        if fw_abs is not None:
            return cls.absolute(fw_abs)
        if fw_perc is not None:
            return cls.percentage(fw_perc)
        return cls.threshold(fw_threshold)

    def n_to_keep(self, n_features: int) -> Optional[int]:
        """Resolved count for abs/perc policies (None for threshold)."""
        if self.kind == PolicyKind.ABSOLUTE:
            if self.value > n_features:
                raise InvalidParameterError(
                    f"abs={int(self.value)} exceeds the {n_features} available features",
                    parameter='fw_abs',
                )
            return int(self.value)
        if self.kind == PolicyKind.PERCENTAGE:
            # Half-up rounding
            return int(math.floor(self.value * n_features + 0.5))
        return None

    def __repr__(self) -> str:
        return f"{self.kind.value}({self.value:g})"


def select_features(
    filter_result: FilterResult,
    policy: SelectionPolicy,
    method: Optional[str] = None,
    mandatory: Iterable[str] = ()
) -> FeatureSubset:
    """
    Select features from filter scores.

    Args:
        filter_result: Scores produced by FilterRegistry.score
        policy: Exactly one abs/perc/threshold policy
        method: Filter method to rank by (required if several were computed)
        mandatory: Features kept regardless of their score; the policy
            applies to the remaining features

    Returns:
        FeatureSubset in descending score order, mandatory features last.
        May be empty for threshold or small-percentage policies.
    """
    if not isinstance(policy, SelectionPolicy):
        raise InvalidParameterError(f"Expected a SelectionPolicy, got {type(policy).__name__}")

    mandatory = list(dict.fromkeys(mandatory))
    unknown = [f for f in mandatory if f not in filter_result.feature_names]
    if unknown:
        raise InvalidParameterError(f"Mandatory features not in filter result: {unknown}", unknown=unknown)

    ranking = filter_result.ranking(method)
    mandatory_set = set(mandatory)
    ranking = ranking[~ranking['feature'].isin(mandatory_set)]

    n_to_keep = policy.n_to_keep(len(ranking))
    if n_to_keep is not None:
        chosen = ranking['feature'].iloc[:n_to_keep].tolist()
    else:
        chosen = ranking.loc[ranking['score'] > policy.value, 'feature'].tolist()

    ordered_mandatory = [f for f in filter_result.feature_names if f in mandatory_set]
    subset = FeatureSubset(tuple(chosen) + tuple(ordered_mandatory))

    if len(subset) == 0:
        logger.warning(f"Policy {policy!r} selected no features")
    else:
        logger.info(f"Policy {policy!r} selected {len(subset)}/{len(filter_result.feature_names)} features")
    return subset
