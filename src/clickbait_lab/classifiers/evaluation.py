"""Metrics, train/test splitting and cross-validation shared by all models."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Protocol

import numpy as np
from sklearn.metrics import accuracy_score, f1_score, precision_score, recall_score
from sklearn.model_selection import KFold, train_test_split

from ..types import (
    BinaryMetrics,
    ClassificationResult,
    DatasetInfo,
    Label,
    OverfitReport,
    SplitMetrics,
    TrainingMetrics,
    TrainingSample,
)
from .base import Classifier, InsufficientDataError, RandomState, resolve_rng

LOGGER = logging.getLogger(__name__)

OVERFIT_THRESHOLD = 0.15
DEFAULT_TEST_RATIO = 0.2


class _Predictor(Protocol):
    def predict(self, text: str) -> ClassificationResult: ...


def binary_metrics(actual: Sequence[Label], predicted: Sequence[Label]) -> BinaryMetrics:
    """Score predictions with clickbait as the positive class."""

    if len(actual) != len(predicted):
        raise ValueError("actual and predicted must have the same length")
    if not actual:
        return BinaryMetrics(accuracy=0.0, precision=0.0, recall=0.0, f1_score=0.0)
    y_true = [label.value for label in actual]
    y_pred = [label.value for label in predicted]
    positive = Label.CLICKBAIT.value
    return BinaryMetrics(
        accuracy=float(accuracy_score(y_true, y_pred)),
        precision=float(precision_score(y_true, y_pred, pos_label=positive, zero_division=0)),
        recall=float(recall_score(y_true, y_pred, pos_label=positive, zero_division=0)),
        f1_score=float(f1_score(y_true, y_pred, pos_label=positive, zero_division=0)),
    )


def evaluate_on_data(classifier: _Predictor, samples: Sequence[TrainingSample]) -> BinaryMetrics:
    """Predict every sample and score the predictions.

    A sample whose prediction comes out non-finite counts as misclassified.
    """

    predicted: list[Label] = []
    failures = 0
    for sample in samples:
        try:
            predicted.append(classifier.predict(sample.text).prediction)
        except FloatingPointError:
            failures += 1
            predicted.append(_opposite(sample.label))
    if failures:
        LOGGER.warning(
            "%s of %s evaluation sample(s) produced a non-finite output; scored as wrong",
            failures,
            len(samples),
        )
    return binary_metrics([sample.label for sample in samples], predicted)


def _opposite(label: Label) -> Label:
    return Label.NORMAL if label is Label.CLICKBAIT else Label.CLICKBAIT


def stratified_split(
    samples: Sequence[TrainingSample],
    *,
    test_ratio: float = DEFAULT_TEST_RATIO,
    random_state: RandomState = None,
) -> tuple[list[TrainingSample], list[TrainingSample]]:
    """Split samples preserving label ratios.

    The test partition holds at least one sample per class. When the data is
    too small for that, every sample goes to the training partition and the
    test partition is empty.
    """

    labels = [sample.label.value for sample in samples]
    class_count = len(set(labels))
    test_size = max(class_count, int(round(len(samples) * test_ratio)))
    smallest_class = min((labels.count(value) for value in set(labels)), default=0)
    if class_count < 2 or smallest_class < 2 or len(samples) - test_size < class_count:
        LOGGER.debug(
            "Dataset of %s sample(s) too small for a stratified split; using it all for training",
            len(samples),
        )
        return list(samples), []

    seed = int(resolve_rng(random_state).integers(0, 2**31 - 1))
    train, test = train_test_split(
        list(samples),
        test_size=test_size,
        stratify=labels,
        random_state=seed,
    )
    return list(train), list(test)


def overfit_report(
    train: BinaryMetrics,
    test: BinaryMetrics,
    threshold: float = OVERFIT_THRESHOLD,
) -> OverfitReport:
    accuracy_gap = train.accuracy - test.accuracy
    f1_gap = train.f1_score - test.f1_score
    return OverfitReport(
        accuracy_gap=accuracy_gap,
        f1_gap=f1_gap,
        is_overfitting=accuracy_gap > threshold or f1_gap > threshold,
    )


def dataset_info(
    train: Sequence[TrainingSample],
    test: Sequence[TrainingSample],
    test_ratio: float,
) -> DatasetInfo:
    distribution = {
        label: {
            "train": sum(1 for sample in train if sample.label is label),
            "test": sum(1 for sample in test if sample.label is label),
        }
        for label in Label
    }
    return DatasetInfo(
        total_samples=len(train) + len(test),
        train_size=len(train),
        test_size=len(test),
        test_ratio=test_ratio,
        class_distribution=distribution,
    )


def split_training_metrics(
    classifier: _Predictor,
    train: Sequence[TrainingSample],
    test: Sequence[TrainingSample],
    *,
    test_ratio: float,
    training_time: float,
) -> TrainingMetrics:
    """Evaluate both partitions; headline numbers come from the test partition."""

    train_metrics = evaluate_on_data(classifier, train)
    test_metrics = evaluate_on_data(classifier, test) if test else train_metrics
    return TrainingMetrics(
        accuracy=test_metrics.accuracy,
        precision=test_metrics.precision,
        recall=test_metrics.recall,
        f1_score=test_metrics.f1_score,
        training_time=training_time,
        split=SplitMetrics(
            train=train_metrics,
            test=test_metrics,
            dataset=dataset_info(train, test, test_ratio),
        ),
        overfit=overfit_report(train_metrics, test_metrics),
    )


def in_sample_metrics(
    classifier: _Predictor,
    samples: Sequence[TrainingSample],
    *,
    training_time: float,
) -> TrainingMetrics:
    scores = evaluate_on_data(classifier, samples)
    return TrainingMetrics(
        accuracy=scores.accuracy,
        precision=scores.precision,
        recall=scores.recall,
        f1_score=scores.f1_score,
        training_time=training_time,
    )


def cross_validate(
    factory: Callable[[], Classifier],
    samples: Sequence[TrainingSample],
    folds: int = 5,
) -> list[TrainingMetrics]:
    """Contiguous k-fold cross-validation on fresh classifier instances."""

    if folds < 2:
        raise ValueError("folds must be at least 2")
    if len(samples) < folds:
        raise InsufficientDataError(
            f"cross-validation with {folds} folds needs at least {folds} samples"
        )

    results: list[TrainingMetrics] = []
    indices = np.arange(len(samples))
    for fold, (train_idx, test_idx) in enumerate(KFold(n_splits=folds).split(indices), start=1):
        train = [samples[idx] for idx in train_idx]
        test = [samples[idx] for idx in test_idx]
        classifier = factory()
        started = time.monotonic()
        classifier.train(train)
        elapsed = time.monotonic() - started
        scores = evaluate_on_data(classifier, test)
        LOGGER.debug("Fold %s/%s accuracy %.3f", fold, folds, scores.accuracy)
        results.append(
            TrainingMetrics(
                accuracy=scores.accuracy,
                precision=scores.precision,
                recall=scores.recall,
                f1_score=scores.f1_score,
                training_time=elapsed,
            )
        )
    return results


__all__ = [
    "DEFAULT_TEST_RATIO",
    "OVERFIT_THRESHOLD",
    "binary_metrics",
    "cross_validate",
    "dataset_info",
    "evaluate_on_data",
    "in_sample_metrics",
    "overfit_report",
    "split_training_metrics",
    "stratified_split",
]
