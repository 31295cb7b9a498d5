"""Logistic regression trained with batch gradient descent."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy.special import expit
from sklearn.preprocessing import StandardScaler

from ..extractor import TextFeatureExtractor
from ..extractor.keywords import SUPERLATIVE_WORDS
from ..extractor.text import (
    CJK_RE,
    DIGIT_RE,
    SPECIAL_CHARACTERS,
    count_characters,
    count_phrases,
    normalize_text,
    word_runs,
)
from ..types import (
    ClassificationResult,
    Explanation,
    FeatureImportance,
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
    RandomState,
    TrainingClock,
    label_array,
    resolve_rng,
    validate_samples,
)
from .evaluation import DEFAULT_TEST_RATIO, split_training_metrics, stratified_split

LOGGER = logging.getLogger(__name__)

FEATURE_NAMES: tuple[str, ...] = (
    "text_length",
    "word_count",
    "sentence_count",
    "avg_words_per_sentence",
    "exclamation_count",
    "question_count",
    "capital_ratio",
    "digit_ratio",
    "punctuation_ratio",
    "clickbait_words",
    "emotional_words",
    "superlative_count",
    "lexical_diversity",
    "chinese_char_ratio",
    "special_char_ratio",
)
DEFAULT_LEARNING_RATE = 0.1
DEFAULT_MAX_ITERATIONS = 1000
DEFAULT_TOLERANCE = 1e-6
YIELD_EVERY = 50
MIN_SAMPLES = 4
MIN_SAMPLES_PER_CLASS = 2
_EPSILON = 1e-15


@dataclass(frozen=True)
class _LogisticState:
    weights: np.ndarray
    bias: float
    scaler: StandardScaler
    iterations: int
    final_loss: float


class LogisticRegressionClassifier:
    """Linear model over standardised character and count features."""

    model_type = ModelType.LOGISTIC_REGRESSION

    def __init__(
        self,
        *,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tolerance: float = DEFAULT_TOLERANCE,
        test_ratio: float = DEFAULT_TEST_RATIO,
        random_state: RandomState = None,
    ) -> None:
        self.learning_rate = learning_rate
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.test_ratio = test_ratio
        self._random_state = random_state
        self._extractor = TextFeatureExtractor()
        self._state: _LogisticState | None = None

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            name="Logistic Regression",
            kind="statistical",
            description="Linear classifier producing a probability through the sigmoid.",
            advantages=(
                "Fast to train",
                "Weights are directly interpretable",
                "Small memory footprint",
                "Outputs probabilities",
            ),
            disadvantages=(
                "Only learns linear decision boundaries",
                "Relies on hand-crafted features",
                "Sensitive to outliers",
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
                model_name="Logistic regression",
            )
            rng = resolve_rng(self._random_state)
            train, test = stratified_split(data, test_ratio=self.test_ratio, random_state=rng)
            clock.checkpoint("feature_extraction", 20, "Extracting text features")
            matrix = np.vstack([self._vector(sample.text) for sample in train])
            labels = label_array(train).astype(np.float64)

            clock.checkpoint("normalization", 40, "Standardising features")
            scaler = StandardScaler().fit(matrix)
            standardized = scaler.transform(matrix)

            clock.checkpoint("initialization", 50, "Initialising weights")
            weights = rng.uniform(-0.005, 0.005, size=standardized.shape[1])
            self._state = self._descend(standardized, labels, weights, scaler, clock)

            clock.checkpoint("evaluation", 90, "Evaluating train and test partitions")
            metrics = split_training_metrics(
                self,
                train,
                test,
                test_ratio=self.test_ratio,
                training_time=clock.elapsed,
            )
        except Exception:
            self._state = None
            raise
        clock.report("completed", 100, "Logistic regression training completed")
        LOGGER.info(
            "Logistic regression trained on %s/%s split (test accuracy=%.3f, overfitting=%s)",
            len(train),
            len(test),
            metrics.accuracy,
            metrics.overfit.is_overfitting if metrics.overfit else False,
        )
        return metrics

    def predict(self, text: str) -> ClassificationResult:
        state = self._require_state()
        started = time.perf_counter()
        features = self._extractor.extract_features(text)
        standardized = state.scaler.transform(self._vector(text, features)[np.newaxis, :])[0]
        probability = float(expit(standardized @ state.weights + state.bias))
        prediction = Label.CLICKBAIT if probability > 0.5 else Label.NORMAL
        return ClassificationResult(
            prediction=prediction,
            confidence=abs(probability - 0.5) * 2,
            features=features,
            reasoning=tuple(_reasoning(text, features, probability)),
            processing_time=time.perf_counter() - started,
        )

    def predict_probability(self, text: str) -> float:
        """Probability that ``text`` is clickbait."""

        state = self._require_state()
        standardized = state.scaler.transform(self._vector(text)[np.newaxis, :])[0]
        return float(expit(standardized @ state.weights + state.bias))

    def is_model_trained(self) -> bool:
        return self._state is not None

    def reset(self) -> None:
        self._state = None

    def get_feature_importance(self) -> list[FeatureImportance]:
        state = self._state
        if state is None:
            return []
        ranked = [
            FeatureImportance(feature=name, importance=float(abs(state.weights[idx])))
            for idx, name in enumerate(FEATURE_NAMES)
        ]
        return sorted(ranked, key=lambda item: item.importance, reverse=True)

    def explain_prediction(self, text: str) -> Explanation:
        state = self._require_state()
        prediction = self.predict(text)
        standardized = state.scaler.transform(self._vector(text)[np.newaxis, :])[0]
        contributions = sorted(
            (
                FeatureImportance(feature=name, importance=float(state.weights[idx] * standardized[idx]))
                for idx, name in enumerate(FEATURE_NAMES)
            ),
            key=lambda item: abs(item.importance),
            reverse=True,
        )
        explanation = (
            "Logistic regression over standardised text statistics",
            f"Learning rate: {self.learning_rate}",
            f"Gradient descent ran {state.iterations}/{self.max_iterations} iterations",
            f"Final training loss: {state.final_loss:.6f}",
            f"Prediction took {prediction.processing_time * 1000:.2f} ms",
        )
        visual_data: dict[str, Any] = {
            "weights": dict(zip(FEATURE_NAMES, (float(value) for value in state.weights))),
            "bias": state.bias,
            "contributions": contributions,
            "feature_names": FEATURE_NAMES,
        }
        return Explanation(prediction=prediction, explanation=explanation, visual_data=visual_data)

    def _require_state(self) -> _LogisticState:
        state = self._state
        if state is None:
            raise ModelNotTrainedError("Logistic regression has not been trained")
        return state

    def _descend(
        self,
        matrix: np.ndarray,
        labels: np.ndarray,
        weights: np.ndarray,
        scaler: StandardScaler,
        clock: TrainingClock,
    ) -> _LogisticState:
        bias = 0.0
        previous_loss = float("inf")
        loss = previous_loss
        iteration = 0
        samples = len(labels)
        for iteration in range(1, self.max_iterations + 1):
            probabilities = expit(matrix @ weights + bias)
            loss = float(
                -np.mean(
                    labels * np.log(np.maximum(probabilities, _EPSILON))
                    + (1 - labels) * np.log(np.maximum(1 - probabilities, _EPSILON))
                )
            )
            error = probabilities - labels
            weights = weights - self.learning_rate * (matrix.T @ error) / samples
            bias -= self.learning_rate * float(error.sum()) / samples

            if abs(previous_loss - loss) < self.tolerance:
                LOGGER.debug("Logistic regression converged after %s iteration(s)", iteration)
                break
            previous_loss = loss
            if iteration % YIELD_EVERY == 0:
                clock.checkpoint(
                    "training",
                    60 + 30 * iteration / self.max_iterations,
                    f"Iteration {iteration}/{self.max_iterations}, loss {loss:.6f}",
                )
        return _LogisticState(
            weights=weights,
            bias=bias,
            scaler=scaler,
            iterations=iteration,
            final_loss=loss,
        )

    def _vector(self, text: str, features: TextFeatures | None = None) -> np.ndarray:
        clean = normalize_text(text)
        if features is None:
            features = self._extractor.extract_features(clean)
        length = len(clean)
        words = word_runs(clean)
        digits = len(DIGIT_RE.findall(clean))
        chinese = len(CJK_RE.findall(clean))
        special = count_characters(clean, SPECIAL_CHARACTERS)
        return np.asarray(
            [
                length,
                features.word_count,
                features.sentence_count,
                features.word_count / features.sentence_count if features.sentence_count else 0.0,
                features.exclamation_count,
                features.question_count,
                features.caps_ratio,
                digits / length if length else 0.0,
                features.punctuation_ratio,
                features.clickbait_words,
                features.emotional_words,
                count_phrases(clean, SUPERLATIVE_WORDS),
                len(set(words)) / len(words) if words else 0.0,
                chinese / length if length else 0.0,
                special / length if length else 0.0,
            ],
            dtype=np.float64,
        )


def _reasoning(text: str, features: TextFeatures, probability: float) -> list[str]:
    reasoning = [f"Logistic regression clickbait probability: {probability * 100:.1f}%"]
    if probability > 0.7:
        reasoning.append("The model considers clickbait very likely")
    elif probability > 0.5:
        reasoning.append("The model leans towards clickbait")
    elif probability < 0.3:
        reasoning.append("The model considers this a normal headline")
    else:
        reasoning.append("The model is uncertain")

    if features.exclamation_count > 1:
        reasoning.append(
            f"Multiple exclamation marks ({features.exclamation_count}) raise the clickbait score"
        )
    if features.clickbait_words > 0:
        reasoning.append(f"Contains {features.clickbait_words} clickbait keyword(s)")
    if features.caps_ratio > 0.3:
        reasoning.append(f"High share of capital letters ({features.caps_ratio * 100:.1f}%)")
    superlatives = count_phrases(normalize_text(text), SUPERLATIVE_WORDS)
    if superlatives > 0:
        reasoning.append(f"Contains {superlatives} superlative expression(s)")
    return reasoning


__all__ = ["FEATURE_NAMES", "LogisticRegressionClassifier"]
