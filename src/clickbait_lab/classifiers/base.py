"""Classifier protocol, error taxonomy and shared training helpers."""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Callable, Sequence
from typing import Protocol, runtime_checkable

import numpy as np

from ..types import (
    ClassificationResult,
    Label,
    ModelInfo,
    ModelType,
    TextFeatures,
    TrainingMetrics,
    TrainingProgress,
    TrainingSample,
)

ProgressCallback = Callable[[TrainingProgress], None]
RandomState = int | np.random.Generator | None


class ClassifierError(Exception):
    """Base class for errors raised by the classification engine."""


class InsufficientDataError(ClassifierError, ValueError):
    """Raised when a training set has too few samples or classes."""


class ModelNotTrainedError(ClassifierError, RuntimeError):
    """Raised when predicting with a model that has not been trained."""


class AlreadyTrainingError(ClassifierError):
    """Raised when a training run is requested while one is in flight."""


class TrainingTimeoutError(ClassifierError, TimeoutError):
    """Raised when training exceeds its wall-clock budget."""


@runtime_checkable
class Classifier(Protocol):
    """Common interface shared by all models."""

    model_type: ModelType

    def get_model_info(self) -> ModelInfo:
        """Describe the model family."""

    def train(
        self,
        samples: Sequence[TrainingSample],
        on_progress: ProgressCallback | None = None,
        *,
        timeout: float | None = None,
    ) -> TrainingMetrics:
        """Fit the model from scratch and return its metrics."""

    def predict(self, text: str) -> ClassificationResult:
        """Classify a single text."""

    def is_model_trained(self) -> bool:
        """Return True once training has completed successfully."""

    def reset(self) -> None:
        """Discard every learned parameter."""


class TrainingClock:
    """Progress checkpoints, cooperative yield points and a wall-clock deadline."""

    def __init__(
        self,
        on_progress: ProgressCallback | None = None,
        timeout: float | None = None,
        *,
        label: str = "model",
    ) -> None:
        self._on_progress = on_progress
        self._timeout = timeout
        self._label = label
        self._started = time.monotonic()
        self._deadline = None if timeout is None else self._started + timeout

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started

    def report(self, stage: str, progress: float, message: str) -> None:
        if self._on_progress is None:
            return
        self._on_progress(
            TrainingProgress(
                stage=stage,
                progress=float(min(max(progress, 0.0), 100.0)),
                message=message,
                time_elapsed=self.elapsed,
            )
        )

    def check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise TrainingTimeoutError(
                f"{self._label} training exceeded {self._timeout:.1f}s budget"
            )

    def checkpoint(self, stage: str, progress: float, message: str) -> None:
        """Report progress, enforce the deadline and yield to other threads."""

        self.report(stage, progress, message)
        self.check_deadline()
        time.sleep(0)


def validate_samples(
    samples: Sequence[TrainingSample],
    *,
    min_total: int,
    min_per_class: int,
    model_name: str,
) -> Counter[Label]:
    """Ensure the training set is large enough and return per-label counts."""

    counts: Counter[Label] = Counter(sample.label for sample in samples)
    if len(samples) < min_total:
        raise InsufficientDataError(
            f"{model_name} needs at least {min_total} samples, got {len(samples)}"
        )
    for label in Label:
        if counts[label] < min_per_class:
            raise InsufficientDataError(
                f"{model_name} needs at least {min_per_class} '{label.value}' "
                f"sample(s), got {counts[label]}"
            )
    return counts


def resolve_rng(random_state: RandomState) -> np.random.Generator:
    """Return a generator; ``None`` yields a non-deterministic one."""

    if isinstance(random_state, np.random.Generator):
        return random_state
    return np.random.default_rng(random_state)


def combine_timeouts(*timeouts: float | None) -> float | None:
    candidates = [value for value in timeouts if value is not None]
    return min(candidates) if candidates else None


def label_array(samples: Sequence[TrainingSample]) -> np.ndarray:
    """Encode labels as 1 for clickbait and 0 for normal."""

    return np.array([1 if sample.label is Label.CLICKBAIT else 0 for sample in samples])


def keyword_reasoning(features: TextFeatures) -> list[str]:
    """Human-readable observations shared by every model's reasoning."""

    reasoning: list[str] = []
    if features.exclamation_count > 1:
        reasoning.append(
            f"Contains {features.exclamation_count} exclamation marks, a sign of heightened emotion"
        )
    if features.clickbait_words > 0:
        reasoning.append(f"Contains {features.clickbait_words} clickbait keyword(s)")
    if features.urgency_words > 0:
        reasoning.append(f"Contains {features.urgency_words} urgency keyword(s)")
    if features.emotional_words > 0:
        reasoning.append(f"Contains {features.emotional_words} emotional keyword(s)")
    return reasoning


__all__ = [
    "AlreadyTrainingError",
    "Classifier",
    "ClassifierError",
    "InsufficientDataError",
    "ModelNotTrainedError",
    "ProgressCallback",
    "RandomState",
    "TrainingClock",
    "TrainingTimeoutError",
    "combine_timeouts",
    "keyword_reasoning",
    "label_array",
    "resolve_rng",
    "validate_samples",
]
