"""
Example: Filter and Wrapper Feature Selection

Demonstrates the featsel workflow on a synthetic classification problem:
filter scoring with a selection policy, sequential floating wrapper search,
and a selection-fused learner evaluated with outer cross-validation.
"""

import logging

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression

from featsel import (
    FilterRegistry,
    FilterWrapperLearner,
    ResamplingEvaluator,
    ResamplingSpec,
    SelectionConfig,
    SelectionEngine,
    SelectionPolicy,
    SelectionWrapperLearner,
    SequentialSearch,
    SklearnLearner,
    analyze_selection_result,
    get_measure,
    select_features,
)
from featsel.task import ProblemType, Task

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def create_demo_task(n_samples: int = 300, n_noise: int = 6) -> Task:
    """Two informative features, one redundant copy and pure noise."""
    np.random.seed(42)
    signal_1 = np.random.randn(n_samples)
    signal_2 = np.random.randn(n_samples)

    data = pd.DataFrame({
        'signal_1': signal_1,
        'signal_2': signal_2,
        'signal_1_copy': signal_1 + np.random.randn(n_samples) * 0.1,
    })
    for i in range(n_noise):
        data[f'noise_{i}'] = np.random.randn(n_samples)

    logits = 1.5 * signal_1 - 1.0 * signal_2
    data['label'] = np.where(logits + np.random.randn(n_samples) * 0.5 > 0, 'up', 'down')
    return Task(data=data, target='label', problem_type=ProblemType.CLASSIFICATION)


def main():
    logger.info("=" * 60)
    logger.info("FEATURE SELECTION DEMO")
    logger.info("=" * 60)

    task = create_demo_task()
    config = SelectionConfig(seed=42, max_evaluations=200)
    learner = SklearnLearner(LogisticRegression(max_iter=500), ProblemType.CLASSIFICATION)
    accuracy = get_measure('acc')

    # 1. Filter scoring
    registry = FilterRegistry.with_defaults()
    logger.info(f"Filters for classification:\n{registry.list_methods(ProblemType.CLASSIFICATION)}")
    scores = registry.score(task, ['anova_f', 'kruskal'], config)
    logger.info(f"Filter scores:\n{scores.to_frame().round(3)}")

    top = select_features(scores, SelectionPolicy.absolute(3), method='anova_f')
    logger.info(f"Top 3 by ANOVA F: {list(top)}")

    # 2. Wrapper search
    engine = SelectionEngine(config)
    result = engine.select(task, learner, ResamplingSpec.cv(5), accuracy, SequentialSearch('sffs', alpha=0.005))
    logger.info(f"Wrapper selection: {result.summary()}")
    logger.info(f"Improvement path:\n{analyze_selection_result(result)}")

    # 3. Fused learners under outer resampling
    evaluator = ResamplingEvaluator(config)
    fused = {
        'filtered': FilterWrapperLearner(learner, 'anova_f', fw_perc=0.3),
        'selected': SelectionWrapperLearner(learner, SequentialSearch('sfs', alpha=0.005), ResamplingSpec.cv(3),
                                            accuracy, config=config),
    }
    for name, wrapper in fused.items():
        outer = evaluator.evaluate(task, wrapper, ResamplingSpec.cv(3), accuracy)
        logger.info(f"{name}: outer accuracy {outer.aggregate:.3f} (+/- {outer.std:.3f})")

    baseline = evaluator.evaluate(task, learner, ResamplingSpec.cv(3), accuracy)
    logger.info(f"all features: outer accuracy {baseline.aggregate:.3f}")


if __name__ == "__main__":
    main()
