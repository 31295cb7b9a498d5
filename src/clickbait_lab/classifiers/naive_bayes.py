"""Gaussian Naive Bayes over the shared headline feature vector."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from scipy.special import softmax

from ..extractor import TextFeatureExtractor
from ..types import (
    ClassificationResult,
    Label,
    ModelInfo,
    ModelType,
    TextFeatures,
    TrainingMetrics,
    TrainingSample,
    coerce_samples,
)
from .base import (
    ModelNotTrainedError,
    ProgressCallback,
    TrainingClock,
    keyword_reasoning,
    validate_samples,
)
from .evaluation import in_sample_metrics

LOGGER = logging.getLogger(__name__)

CLASSES: tuple[Label, Label] = (Label.NORMAL, Label.CLICKBAIT)
STD_FLOOR = 1.0
MIN_SAMPLES = 4
MIN_SAMPLES_PER_CLASS = 1


@dataclass(frozen=True)
class _NaiveBayesState:
    extractor: TextFeatureExtractor
    means: np.ndarray
    stds: np.ndarray
    log_priors: np.ndarray


class NaiveBayesClassifier:
    """Generative classifier with one Gaussian per class and feature."""

    model_type = ModelType.NAIVE_BAYES

    def __init__(self, *, std_floor: float = STD_FLOOR) -> None:
        self._std_floor = std_floor
        self._state: _NaiveBayesState | None = None

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            name="Naive Bayes",
            kind="traditional",
            description="Gaussian generative model assuming independent features per class.",
            advantages=(
                "Trains in a single pass",
                "Works with very small datasets",
                "Produces calibrated-looking probabilities",
            ),
            disadvantages=(
                "Assumes feature independence",
                "Gaussian assumption rarely holds for counts",
            ),
            complexity="low",
        )

    def train(
        self,
        samples: Sequence[TrainingSample],
        on_progress: ProgressCallback | None = None,
        *,
        timeout: float | None = None,
    ) -> TrainingMetrics:
        clock = TrainingClock(on_progress, timeout, label=self.model_type.value)
        try:
            data = coerce_samples(samples)
            validate_samples(
                data,
                min_total=MIN_SAMPLES,
                min_per_class=MIN_SAMPLES_PER_CLASS,
                model_name="Naive Bayes",
            )
            self._state = self._fit(data, clock)
            clock.checkpoint("evaluation", 90, "Evaluating on the training set")
            metrics = in_sample_metrics(self, data, training_time=clock.elapsed)
        except Exception:
            self._state = None
            raise
        clock.report("completed", 100, "Naive Bayes training completed")
        LOGGER.info(
            "Naive Bayes trained on %s sample(s) (accuracy=%.3f)", len(data), metrics.accuracy
        )
        return metrics

    def predict(self, text: str) -> ClassificationResult:
        state = self._state
        if state is None:
            raise ModelNotTrainedError("Naive Bayes model has not been trained")

        started = time.perf_counter()
        features, vector = state.extractor.vectorize(text)
        variances = state.stds**2
        log_likelihood = np.sum(
            -0.5 * np.log(2 * math.pi * variances) - (vector - state.means) ** 2 / (2 * variances),
            axis=1,
        )
        scores = log_likelihood + state.log_priors
        probabilities = softmax(scores - scores.max())
        winner = int(np.argmax(probabilities))
        prediction = CLASSES[winner]
        confidence = float(probabilities[winner])
        return ClassificationResult(
            prediction=prediction,
            confidence=confidence,
            features=features,
            reasoning=tuple(_reasoning(features, prediction, confidence)),
            processing_time=time.perf_counter() - started,
        )

    def is_model_trained(self) -> bool:
        return self._state is not None

    def reset(self) -> None:
        self._state = None

    def _fit(self, samples: list[TrainingSample], clock: TrainingClock) -> _NaiveBayesState:
        clock.checkpoint("feature_extraction", 10, "Fitting TF-IDF and extracting features")
        extractor = TextFeatureExtractor()
        extractor.train_tfidf(sample.text for sample in samples)

        means: list[np.ndarray] = []
        stds: list[np.ndarray] = []
        priors: list[float] = []
        for idx, label in enumerate(CLASSES):
            vectors = np.vstack(
                [extractor.vectorize(sample.text)[1] for sample in samples if sample.label is label]
            )
            means.append(vectors.mean(axis=0))
            if len(vectors) > 1:
                spread = vectors.std(axis=0, ddof=1)
            else:
                spread = np.zeros(vectors.shape[1])
            stds.append(np.maximum(spread, self._std_floor))
            priors.append(len(vectors) / len(samples))
            clock.checkpoint(
                "statistics",
                30 + 30 * (idx + 1),
                f"Estimated Gaussian parameters for '{label.value}'",
            )

        return _NaiveBayesState(
            extractor=extractor,
            means=np.vstack(means),
            stds=np.vstack(stds),
            log_priors=np.log(np.asarray(priors)),
        )


def _reasoning(features: TextFeatures, prediction: Label, confidence: float) -> list[str]:
    reasoning = keyword_reasoning(features)
    if features.caps_ratio > 0.1:
        reasoning.append(f"High share of capital letters ({features.caps_ratio * 100:.1f}%)")
    if features.punctuation_ratio > 0.15:
        reasoning.append("Dense punctuation, likely used for emphasis")
    if not reasoning:
        if prediction is Label.NORMAL:
            reasoning.append("Objective wording with no sensational markers")
        else:
            reasoning.append("Feature distribution resembles the clickbait examples")

    margin = abs(confidence - 0.5)
    if margin > 0.3:
        reasoning.append(f"Probability {confidence * 100:.1f}% is far from the decision boundary")
    elif margin > 0.1:
        reasoning.append(f"Probability {confidence * 100:.1f}% leans clearly to one class")
    else:
        reasoning.append(f"Probability {confidence * 100:.1f}% is close to the decision boundary")
    return reasoning


__all__ = ["NaiveBayesClassifier"]
