"""Minimal 1-D convolutional text classifier with bounded-effort training.

The network embeds word indices, applies one convolution bank per kernel
width followed by ReLU and max-pooling over positions, and feeds the
concatenated pooled activations to a single sigmoid unit.

Training is deliberately partial: each step applies the exact gradient to
the dense layer and propagates the error through the max-pool argmax into a
small slice of filters of the first convolution bank only. Embeddings and the
remaining filters keep their random initialisation. This keeps runtime
bounded; it is not a reference CNN.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from scipy.special import expit

from ..extractor import TextFeatureExtractor
from ..extractor.text import normalize_text, tokenize
from ..types import (
    ClassificationResult,
    Explanation,
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
    combine_timeouts,
    label_array,
    resolve_rng,
    validate_samples,
)
from .evaluation import DEFAULT_TEST_RATIO, split_training_metrics, stratified_split

LOGGER = logging.getLogger(__name__)

PAD_TOKEN = "<PAD>"
UNK_TOKEN = "<UNK>"
PAD_INDEX = 0
UNK_INDEX = 1

DEFAULT_EMBEDDING_DIM = 50
DEFAULT_MAX_SEQUENCE_LENGTH = 100
DEFAULT_NUM_FILTERS = 64
DEFAULT_KERNEL_SIZES: tuple[int, ...] = (3, 4, 5)
DEFAULT_LEARNING_RATE = 0.05
DEFAULT_EPOCHS = 20
DEFAULT_VOCABULARY_SIZE = 1000
DEFAULT_TRAINABLE_FILTERS = 8
DEFAULT_TIMEOUT = 30.0
MIN_SAMPLES = 10
MIN_SAMPLES_PER_CLASS = 3
_EPSILON = 1e-15


@dataclass
class _ConvBank:
    kernel_size: int
    weights: np.ndarray
    biases: np.ndarray


@dataclass
class _Network:
    embedding: np.ndarray
    banks: list[_ConvBank]
    dense_weights: np.ndarray
    dense_bias: float


@dataclass(frozen=True)
class _CNNState:
    network: _Network
    vocabulary: dict[str, int]
    skipped_updates: int


@dataclass(frozen=True)
class _Forward:
    probability: float
    pooled: np.ndarray
    first_windows: np.ndarray
    first_activations: np.ndarray


class CNNTextClassifier:
    """Word-index convolutional network with a single sigmoid output."""

    model_type = ModelType.CNN

    def __init__(
        self,
        *,
        embedding_dim: int = DEFAULT_EMBEDDING_DIM,
        max_sequence_length: int = DEFAULT_MAX_SEQUENCE_LENGTH,
        num_filters: int = DEFAULT_NUM_FILTERS,
        kernel_sizes: Sequence[int] = DEFAULT_KERNEL_SIZES,
        learning_rate: float = DEFAULT_LEARNING_RATE,
        epochs: int = DEFAULT_EPOCHS,
        vocabulary_size: int = DEFAULT_VOCABULARY_SIZE,
        trainable_filters: int = DEFAULT_TRAINABLE_FILTERS,
        test_ratio: float = DEFAULT_TEST_RATIO,
        timeout: float | None = DEFAULT_TIMEOUT,
        random_state: RandomState = None,
    ) -> None:
        if not kernel_sizes:
            raise ValueError("kernel_sizes cannot be empty")
        if max_sequence_length < max(kernel_sizes):
            raise ValueError("max_sequence_length must be at least the largest kernel size")
        self.embedding_dim = embedding_dim
        self.max_sequence_length = max_sequence_length
        self.num_filters = num_filters
        self.kernel_sizes = tuple(kernel_sizes)
        self.learning_rate = learning_rate
        self.epochs = epochs
        self.vocabulary_size = vocabulary_size
        self.trainable_filters = min(trainable_filters, num_filters)
        self.test_ratio = test_ratio
        self.timeout = timeout
        self._random_state = random_state
        self._extractor = TextFeatureExtractor()
        self._state: _CNNState | None = None

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            name="CNN Text Classifier",
            kind="deep_learning",
            description="Convolutional network that detects n-gram patterns over word embeddings.",
            advantages=(
                "Learns local n-gram patterns automatically",
                "Suited to short texts",
                "Convolutions are easy to parallelise",
            ),
            disadvantages=(
                "Needs more training data",
                "Slowest model to train",
                "Hard to interpret",
                "Sensitive to sequence length",
            ),
            complexity="high",
        )

    def train(
        self,
        samples: Sequence[TrainingSample],
        on_progress: ProgressCallback | None = None,
        *,
        timeout: float | None = None,
    ) -> TrainingMetrics:
        clock = TrainingClock(
            on_progress,
            combine_timeouts(self.timeout, timeout),
            label=self.model_type.value,
        )
        try:
            data = coerce_samples(samples)
            validate_samples(
                data,
                min_total=MIN_SAMPLES,
                min_per_class=MIN_SAMPLES_PER_CLASS,
                model_name="CNN",
            )
            rng = resolve_rng(self._random_state)
            train, test = stratified_split(data, test_ratio=self.test_ratio, random_state=rng)

            clock.checkpoint("vocabulary", 10, "Building vocabulary")
            vocabulary = build_vocabulary([sample.text for sample in train], self.vocabulary_size)

            clock.checkpoint("vectorization", 20, "Converting texts to index sequences")
            sequences = np.vstack([self._sequence(sample.text, vocabulary) for sample in train])
            labels = label_array(train).astype(np.float64)

            clock.checkpoint("initialization", 30, "Initialising network weights")
            network = self._initialise(len(vocabulary), rng)
            skipped = self._fit(network, sequences, labels, rng, clock)
            self._state = _CNNState(
                network=network,
                vocabulary=vocabulary,
                skipped_updates=skipped,
            )

            clock.checkpoint("evaluation", 95, "Evaluating train and test partitions")
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
        clock.report("completed", 100, "CNN training completed")
        LOGGER.info(
            "CNN trained on %s/%s split with %s-token vocabulary (test accuracy=%.3f)",
            len(train),
            len(test),
            len(vocabulary),
            metrics.accuracy,
        )
        return metrics

    def predict(self, text: str) -> ClassificationResult:
        state = self._require_state()
        started = time.perf_counter()
        features = self._extractor.extract_features(text)
        sequence = self._sequence(text, state.vocabulary)
        with np.errstate(over="ignore", invalid="ignore"):
            probability = _forward(state.network, sequence).probability
        if not np.isfinite(probability):
            raise FloatingPointError("CNN produced a non-finite output")
        prediction = Label.CLICKBAIT if probability > 0.5 else Label.NORMAL
        return ClassificationResult(
            prediction=prediction,
            confidence=max(probability, 1.0 - probability),
            features=features,
            reasoning=tuple(self._reasoning(text, features, probability)),
            processing_time=time.perf_counter() - started,
        )

    def is_model_trained(self) -> bool:
        return self._state is not None

    def reset(self) -> None:
        self._state = None

    def explain_prediction(self, text: str) -> Explanation:
        state = self._require_state()
        prediction = self.predict(text)
        sequence = self._sequence(text, state.vocabulary)
        explanation = (
            f"{len(self.kernel_sizes)} convolution banks with kernel widths "
            f"{', '.join(str(size) for size in self.kernel_sizes)}",
            f"Embedding dimension: {self.embedding_dim}",
            f"Maximum sequence length: {self.max_sequence_length}",
            f"Filters per bank: {self.num_filters}",
            f"Prediction took {prediction.processing_time * 1000:.2f} ms",
        )
        visual_data: dict[str, Any] = {
            "conv_activations": conv_activations(state.network, sequence),
            "sequence_length": int(np.count_nonzero(sequence != PAD_INDEX)),
            "vocabulary_size": len(state.vocabulary),
            "skipped_updates": state.skipped_updates,
            "model_parameters": {
                "embedding_dim": self.embedding_dim,
                "kernel_sizes": self.kernel_sizes,
                "num_filters": self.num_filters,
                "trainable_filters": self.trainable_filters,
            },
        }
        return Explanation(prediction=prediction, explanation=explanation, visual_data=visual_data)

    def _require_state(self) -> _CNNState:
        state = self._state
        if state is None:
            raise ModelNotTrainedError("CNN has not been trained")
        return state

    def _sequence(self, text: str, vocabulary: dict[str, int]) -> np.ndarray:
        indices = [
            vocabulary.get(token, UNK_INDEX) for token in tokenize(normalize_text(text))
        ][: self.max_sequence_length]
        indices.extend([PAD_INDEX] * (self.max_sequence_length - len(indices)))
        return np.asarray(indices, dtype=np.int64)

    def _initialise(self, vocabulary_size: int, rng: np.random.Generator) -> _Network:
        embedding = rng.uniform(-0.5, 0.5, size=(vocabulary_size, self.embedding_dim))
        embedding[PAD_INDEX] = 0.0
        banks = [
            _ConvBank(
                kernel_size=size,
                weights=rng.uniform(-0.1, 0.1, size=(self.num_filters, size, self.embedding_dim)),
                biases=np.zeros(self.num_filters),
            )
            for size in self.kernel_sizes
        ]
        dense_weights = rng.uniform(-0.1, 0.1, size=self.num_filters * len(self.kernel_sizes))
        return _Network(
            embedding=embedding,
            banks=banks,
            dense_weights=dense_weights,
            dense_bias=0.0,
        )

    def _fit(
        self,
        network: _Network,
        sequences: np.ndarray,
        labels: np.ndarray,
        rng: np.random.Generator,
        clock: TrainingClock,
    ) -> int:
        skipped = 0
        trainable = self.trainable_filters
        first = network.banks[0]
        for epoch in range(self.epochs):
            total_loss = 0.0
            for idx in rng.permutation(len(sequences)):
                clock.check_deadline()
                target = labels[idx]
                with np.errstate(over="ignore", invalid="ignore"):
                    forward = _forward(network, sequences[idx])
                    probability = forward.probability
                    loss = -(
                        target * np.log(probability + _EPSILON)
                        + (1 - target) * np.log(1 - probability + _EPSILON)
                    )
                if not (np.isfinite(probability) and np.isfinite(loss)):
                    skipped += 1
                    continue
                total_loss += float(loss)
                error = probability - target

                # Max-pool routes each filter's gradient to its winning window only.
                active = forward.pooled[:trainable] > 0
                positions = forward.first_activations[:, :trainable].argmax(axis=0)
                windows = forward.first_windows[positions].transpose(0, 2, 1)
                upstream = error * network.dense_weights[:trainable] * active

                network.dense_weights -= self.learning_rate * error * forward.pooled
                network.dense_bias -= self.learning_rate * error
                first.weights[:trainable] -= self.learning_rate * upstream[:, None, None] * windows
                first.biases[:trainable] -= self.learning_rate * upstream

            clock.checkpoint(
                "training",
                40 + 50 * (epoch + 1) / self.epochs,
                f"Epoch {epoch + 1}/{self.epochs}, loss {total_loss / len(sequences):.4f}",
            )
        if skipped:
            LOGGER.warning("CNN skipped %s update(s) with non-finite outputs", skipped)
        return skipped

    def _reasoning(self, text: str, features: TextFeatures, probability: float) -> list[str]:
        reasoning = [f"CNN clickbait probability: {probability * 100:.1f}%"]
        if probability > 0.7:
            reasoning.append("Convolution filters detected strong clickbait patterns")
        elif probability > 0.5:
            reasoning.append("Convolution filters detected some clickbait patterns")
        elif probability < 0.3:
            reasoning.append("Convolution filters found no clear clickbait patterns")
        else:
            reasoning.append("Convolution filter response is inconclusive")
        if features.exclamation_count > 1:
            reasoning.append(f"Multiple exclamation marks ({features.exclamation_count})")
        if features.clickbait_words > 0:
            reasoning.append(f"Contains {features.clickbait_words} clickbait keyword(s)")
        if len(tokenize(normalize_text(text))) > self.max_sequence_length:
            reasoning.append("Text is long and was truncated")
        return reasoning


def build_vocabulary(texts: Sequence[str], size: int) -> dict[str, int]:
    """Map the ``size`` most frequent tokens to indices after PAD and UNK."""

    counts: Counter[str] = Counter()
    for text in texts:
        counts.update(tokenize(normalize_text(text)))
    ranked = sorted(counts.items(), key=lambda item: -item[1])[:size]
    vocabulary = {PAD_TOKEN: PAD_INDEX, UNK_TOKEN: UNK_INDEX}
    for offset, (token, _count) in enumerate(ranked):
        vocabulary[token] = offset + 2
    return vocabulary


def conv_activations(network: _Network, sequence: np.ndarray, filters: int = 5) -> list[list[float]]:
    """ReLU activations of the first ``filters`` filters of every bank."""

    embedded = network.embedding[sequence]
    activations: list[list[float]] = []
    for bank in network.banks:
        response = _convolve(embedded, bank)[:, :filters]
        activations.append([float(value) for value in response.ravel()])
    return activations


def _convolve(embedded: np.ndarray, bank: _ConvBank, windows: np.ndarray | None = None) -> np.ndarray:
    if windows is None:
        windows = sliding_window_view(embedded, bank.kernel_size, axis=0)
    return np.maximum(np.einsum("pdk,fkd->pf", windows, bank.weights) + bank.biases, 0.0)


def _forward(network: _Network, sequence: np.ndarray) -> _Forward:
    embedded = network.embedding[sequence]
    pooled: list[np.ndarray] = []
    first_windows = np.empty(0)
    first_activations = np.empty(0)
    for position, bank in enumerate(network.banks):
        windows = sliding_window_view(embedded, bank.kernel_size, axis=0)
        activations = _convolve(embedded, bank, windows)
        pooled.append(activations.max(axis=0))
        if position == 0:
            first_windows = windows
            first_activations = activations
    features = np.concatenate(pooled)
    probability = float(expit(features @ network.dense_weights + network.dense_bias))
    return _Forward(
        probability=probability,
        pooled=features,
        first_windows=first_windows,
        first_activations=first_activations,
    )


__all__ = ["CNNTextClassifier", "build_vocabulary", "conv_activations"]
