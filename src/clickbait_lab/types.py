"""Core immutable data structures shared by the classification engine."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Label(str, Enum):
    """The two mutually exclusive headline labels."""

    NORMAL = "normal"
    CLICKBAIT = "clickbait"


class ModelType(str, Enum):
    """Supported models, declared in increasing training complexity."""

    NAIVE_BAYES = "naive_bayes"
    LOGISTIC_REGRESSION = "logistic_regression"
    RANDOM_FOREST = "random_forest"
    CNN = "cnn"


class ModelState(str, Enum):
    """Lifecycle state tracked per model by the orchestrator."""

    IDLE = "idle"
    TRAINING = "training"
    TRAINED = "trained"
    ERROR = "error"


@dataclass(frozen=True)
class TrainingSample:
    """A labelled text sample."""

    text: str
    label: Label

    @classmethod
    def of(cls, text: str, label: Label | str) -> TrainingSample:
        return cls(text=str(text), label=_coerce_label(label))


@dataclass(frozen=True)
class TextFeatures:
    """Scalar text statistics plus a fixed-width term-weight embedding."""

    length: int
    word_count: int
    sentence_count: int
    exclamation_count: int
    question_count: int
    caps_ratio: float
    clickbait_words: int
    urgency_words: int
    emotional_words: int
    average_word_length: float
    punctuation_ratio: float
    tfidf_vector: tuple[float, ...]


@dataclass(frozen=True)
class ClassificationResult:
    """Prediction returned by every classifier.

    ``confidence`` is always expressed in the closed interval [0, 1] and
    ``processing_time`` in seconds.
    """

    prediction: Label
    confidence: float
    features: TextFeatures
    reasoning: tuple[str, ...]
    processing_time: float = 0.0


@dataclass(frozen=True)
class BinaryMetrics:
    """Accuracy, precision, recall and F1 with clickbait as the positive class."""

    accuracy: float
    precision: float
    recall: float
    f1_score: float


@dataclass(frozen=True)
class DatasetInfo:
    """Sizes and class distribution of a train/test partition."""

    total_samples: int
    train_size: int
    test_size: int
    test_ratio: float
    class_distribution: Mapping[Label, Mapping[str, int]]


@dataclass(frozen=True)
class OverfitReport:
    """Train-versus-test gaps used as an overfitting heuristic."""

    accuracy_gap: float
    f1_gap: float
    is_overfitting: bool


@dataclass(frozen=True)
class SplitMetrics:
    """Per-partition metrics for models trained with a held-out set."""

    train: BinaryMetrics
    test: BinaryMetrics
    dataset: DatasetInfo


@dataclass(frozen=True)
class TrainingMetrics:
    """Outcome of a training run; ``training_time`` is in seconds."""

    accuracy: float
    precision: float
    recall: float
    f1_score: float
    training_time: float = 0.0
    split: SplitMetrics | None = None
    overfit: OverfitReport | None = None

    @classmethod
    def neutral(cls) -> TrainingMetrics:
        """Placeholder metrics substituted for a model that failed to train."""

        return cls(accuracy=0.5, precision=0.5, recall=0.5, f1_score=0.5, training_time=0.0)

    @classmethod
    def empty(cls) -> TrainingMetrics:
        return cls(accuracy=0.0, precision=0.0, recall=0.0, f1_score=0.0, training_time=0.0)


@dataclass(frozen=True)
class TrainingProgress:
    """Transient progress report emitted while a model trains."""

    stage: str
    progress: float
    message: str
    time_elapsed: float


@dataclass(frozen=True)
class ModelInfo:
    """Static description of a model family."""

    name: str
    kind: str
    description: str
    advantages: tuple[str, ...]
    disadvantages: tuple[str, ...]
    complexity: str


@dataclass(frozen=True)
class FeatureImportance:
    """Named importance score."""

    feature: str
    importance: float


@dataclass(frozen=True)
class Explanation:
    """Model-specific explanation of a single prediction."""

    prediction: ClassificationResult
    explanation: tuple[str, ...]
    visual_data: Mapping[str, Any] = field(default_factory=dict)


def coerce_samples(
    samples: Iterable[TrainingSample | tuple[str, str] | Mapping[str, Any]],
) -> list[TrainingSample]:
    """Normalise samples given as dataclasses, ``(text, label)`` pairs or mappings."""

    normalized: list[TrainingSample] = []
    for idx, sample in enumerate(samples):
        if isinstance(sample, TrainingSample):
            normalized.append(sample)
        elif isinstance(sample, Mapping):
            if "text" not in sample or "label" not in sample:
                raise ValueError(f"samples[{idx}] requires 'text' and 'label'.")
            normalized.append(TrainingSample.of(sample["text"], sample["label"]))
        elif isinstance(sample, tuple) and len(sample) == 2:
            normalized.append(TrainingSample.of(sample[0], sample[1]))
        else:
            raise ValueError(f"samples[{idx}] is not a recognised training sample.")
    return normalized


def _coerce_label(label: Label | str) -> Label:
    if isinstance(label, Label):
        return label
    normalized = str(label).strip().lower()
    for candidate in Label:
        if candidate.value == normalized:
            return candidate
    raise ValueError(f"Unknown label: {label!r}")


__all__ = [
    "BinaryMetrics",
    "ClassificationResult",
    "DatasetInfo",
    "Explanation",
    "FeatureImportance",
    "Label",
    "ModelInfo",
    "ModelState",
    "ModelType",
    "OverfitReport",
    "SplitMetrics",
    "TextFeatures",
    "TrainingMetrics",
    "TrainingProgress",
    "TrainingSample",
    "coerce_samples",
]
