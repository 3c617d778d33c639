"""
Feature Selection Exception Taxonomy

Structured exceptions for the selection engine. Every exception carries a
machine-readable error code and a context dict so callers (outer tuning or
reporting layers) can log them without parsing messages.

- UnsupportedMeasureError: measure or filter incompatible with the task type
- InvalidParameterError: malformed selection policy or search configuration
- EvaluationFailure: a resampling fold failed to train or predict (fatal)
- BudgetExceededError: search stopped by the evaluation/time safety valve
- FilterScoringError: a filter produced missing or non-finite scores
"""

from typing import Any, Dict, Optional


class FeatSelError(Exception):
    """Base exception for all feature selection errors."""

    error_code: str = "FEATSEL_ERROR"

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None, **kwargs: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})
        self.context.update(kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to structured dict for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
        }


class UnsupportedMeasureError(FeatSelError):
    """A measure or filter method does not support the task's problem type."""

    error_code = "UNSUPPORTED_MEASURE"


class InvalidParameterError(FeatSelError, ValueError):
    """Malformed selection policy, resampling description or search configuration."""

    error_code = "INVALID_PARAMETER"


class EvaluationFailure(FeatSelError):
    """
    Training or prediction failed on a resampling fold.

    Fatal for the enclosing evaluate call: no aggregation over the folds
    that did succeed.
    """

    error_code = "EVALUATION_FAILURE"

    def __init__(
        self,
        message: str,
        fold: Optional[int] = None,
        subset: Optional[tuple] = None,
        **kwargs: Any
    ):
        super().__init__(message, fold=fold, subset=subset, **kwargs)
        self.fold = fold
        self.subset = subset


class BudgetExceededError(FeatSelError):
    """
    Evaluation or wall-clock budget exhausted.

    Raised at fold boundaries by the evaluator; the engine turns it into an
    early-terminated SelectionResult instead of propagating it.
    """

    error_code = "BUDGET_EXCEEDED"


class FilterScoringError(FeatSelError):
    """A filter method returned missing, duplicated or non-finite scores."""

    error_code = "FILTER_SCORING_FAILED"
