"""
Feature Selection Wrapper Learners

Learners that select features as part of their own training step, so that
selection is repeated inside every outer resampling iteration or tuning
evaluation instead of leaking information from the full dataset.

Key Features:
- FilterWrapperLearner: filter scores + subset policy, then the inner learner
- SelectionWrapperLearner: wrapper search with the SelectionEngine, then the
  inner learner on the winning subset
- Static parameter schema for external tuners and `with_params` copies
- Prediction restricted to the stored subset
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

import numpy as np

from .config import SelectionConfig
from .engine import SelectionEngine, SelectionResult
from .exceptions import InvalidParameterError
from .filters import FilterRegistry, FilterResult, SelectionPolicy, select_features
from .learners import FeaturelessLearner, Learner, TrainedModel
from .measures import Measure, default_measure
from .params import ParamSpec, check_param_names
from .resampling import ResamplingSpec
from .search import SearchControl
from .task import FeatureSubset, Task

logger = logging.getLogger(__name__)


@dataclass
class WrapperModel(TrainedModel):
    """Trained inner model plus the subset (and selection output) it was trained on."""

    inner: Optional[TrainedModel] = None
    filter_result: Optional[FilterResult] = None
    selection_result: Optional[SelectionResult] = None
    featureless: bool = False


class WrapperLearner(Learner):
    """Common train/predict plumbing of the selection wrappers."""

    def __init__(self, learner: Learner, config: Optional[SelectionConfig] = None):
        self.learner = learner
        self.config = config or SelectionConfig()

    @abstractmethod
    def param_schema(self) -> List[ParamSpec]:
        """Selection parameters an external tuner may set."""

    @abstractmethod
    def with_params(self, **values: Any) -> 'WrapperLearner':
        """Copy of this learner with selection parameters replaced."""

    def get_selected_features(self, model: WrapperModel) -> FeatureSubset:
        return model.subset

    def _base_task(self, task: Task, subset: Optional[Iterable[str]]) -> Task:
        self.check_task(task)
        return task if subset is None else task.subset_features(subset)

    def _fit_inner(self, task: Task, selected: FeatureSubset, **results: Any) -> WrapperModel:
        if len(selected) == 0:
            inner = FeaturelessLearner().train(task)
            featureless = True
        else:
            inner = self.learner.train(task, selected)
            featureless = False

        return WrapperModel(
            learner_name=self.name,
            subset=selected,
            fitted=inner.fitted,
            metadata={'n_selected': len(selected), 'n_available': task.n_features},
            inner=inner,
            featureless=featureless,
            **results,
        )

    def predict(self, model: WrapperModel, task: Task) -> np.ndarray:
        restricted = task.subset_features(model.subset)
        if model.featureless:
            return FeaturelessLearner().predict(model.inner, restricted)
        return self.learner.predict(model.inner, restricted)


class FilterWrapperLearner(WrapperLearner):
    """
    Filter-fused learner.

    On train, scores the task's features with one filter method, keeps the
    features chosen by the policy (exactly one of fw_abs, fw_perc,
    fw_threshold) and trains the inner learner on them.

    Args:
        learner: Inner learner
        method: Filter method id in the registry
        fw_abs: Number of features to keep
        fw_perc: Fraction of features to keep
        fw_threshold: Keep features scoring above this value
        mandatory: Features always kept
        allow_empty: Train a featureless baseline when nothing is selected;
            otherwise an empty selection raises InvalidParameterError
        registry: Filter registry (built-in methods by default)
        config: Run configuration (seed of randomised filters)
    """

    def __init__(
        self,
        learner: Learner,
        method: str,
        fw_abs: Optional[int] = None,
        fw_perc: Optional[float] = None,
        fw_threshold: Optional[float] = None,
        mandatory: Sequence[str] = (),
        allow_empty: bool = True,
        registry: Optional[FilterRegistry] = None,
        config: Optional[SelectionConfig] = None
    ):
        super().__init__(learner, config)
        self.registry = registry or FilterRegistry.with_defaults()
        filter_method = self.registry.get(method)
        self.method = method
        self.policy = SelectionPolicy.from_params(fw_abs=fw_abs, fw_perc=fw_perc, fw_threshold=fw_threshold)
        self.fw_abs = fw_abs
        self.fw_perc = fw_perc
        self.fw_threshold = fw_threshold
        self.mandatory = tuple(mandatory)
        self.allow_empty = allow_empty
        self.name = f"{learner.name}.filtered"
        self.problem_types = frozenset(learner.problem_types & filter_method.problem_types)
        if not self.problem_types:
            raise InvalidParameterError(
                f"Filter method '{method}' shares no problem type with learner '{learner.name}'",
                method=method,
                learner=learner.name,
            )

    def param_schema(self) -> List[ParamSpec]:
        methods = tuple(
            method_id for method_id in self.registry.method_ids()
            if self.registry.get(method_id).problem_types & self.learner.problem_types
        )
        return [
            ParamSpec('fw_method', 'discrete', values=methods, default=self.method),
            ParamSpec('fw_abs', 'int', lower=1, default=self.fw_abs),
            ParamSpec('fw_perc', 'float', lower=0.0, upper=1.0, default=self.fw_perc),
            ParamSpec('fw_threshold', 'float', default=self.fw_threshold),
        ]

    def with_params(self, **values: Any) -> 'FilterWrapperLearner':
        """Copy with new method/policy; setting one policy parameter clears the others."""
        check_param_names(self.param_schema(), list(values), self.name)
        policy_values = {k: v for k, v in values.items() if k != 'fw_method'}
        if not policy_values:
            policy_values = {'fw_abs': self.fw_abs, 'fw_perc': self.fw_perc, 'fw_threshold': self.fw_threshold}
        return FilterWrapperLearner(
            learner=self.learner,
            method=values.get('fw_method', self.method),
            mandatory=self.mandatory,
            allow_empty=self.allow_empty,
            registry=self.registry,
            config=self.config,
            **policy_values,
        )

    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> WrapperModel:
        base = self._base_task(task, subset)
        filter_result = self.registry.score(base, self.method, self.config)
        selected = select_features(filter_result, self.policy, self.method, self.mandatory)

        if len(selected) == 0 and not self.allow_empty:
            raise InvalidParameterError(
                f"Policy {self.policy!r} selected no features and allow_empty is False",
                method=self.method,
            )
        logger.info(f"{self.name}: training on {len(selected)}/{base.n_features} features")
        return self._fit_inner(base, selected, filter_result=filter_result)


class SelectionWrapperLearner(WrapperLearner):
    """
    Selection-fused learner.

    On train, runs wrapper selection with the inner learner and trains it
    on the winning subset.

    Args:
        learner: Inner learner (also the learner resampled during search)
        search_control: Search strategy
        resampling_spec: Inner resampling (5-fold CV by default)
        measure: Performance measure (problem-type default when None)
        config: Seed, budgets and pool sizes of the inner search
    """

    def __init__(
        self,
        learner: Learner,
        search_control: SearchControl,
        resampling_spec: Optional[ResamplingSpec] = None,
        measure: Optional[Measure] = None,
        config: Optional[SelectionConfig] = None
    ):
        super().__init__(learner, config)
        self.search_control = search_control
        self.resampling_spec = resampling_spec or ResamplingSpec.cv(5)
        self.measure = measure
        self.name = f"{learner.name}.selected"
        self.problem_types = learner.problem_types

    def param_schema(self) -> List[ParamSpec]:
        return self.search_control.param_schema()

    def with_params(self, **values: Any) -> 'SelectionWrapperLearner':
        check_param_names(self.param_schema(), list(values), self.name)
        return SelectionWrapperLearner(
            learner=self.learner,
            search_control=self.search_control.with_params(**values),
            resampling_spec=self.resampling_spec,
            measure=self.measure,
            config=self.config,
        )

    def train(self, task: Task, subset: Optional[Iterable[str]] = None) -> WrapperModel:
        base = self._base_task(task, subset)
        measure = self.measure or default_measure(base.problem_type)
        result = SelectionEngine(self.config).select(
            base, self.learner, self.resampling_spec, measure, self.search_control
        )
        if len(result.subset) == 0:
            logger.warning(f"{self.name}: selection returned no features, training featureless baseline")
        return self._fit_inner(base, result.subset, selection_result=result)
