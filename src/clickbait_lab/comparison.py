"""Orchestrates training, prediction and comparison across every model."""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

import numpy as np

from .classifiers import (
    AlreadyTrainingError,
    Classifier,
    ClassifierError,
    ClassifierRegistry,
    CNNTextClassifier,
    LogisticRegressionClassifier,
    NaiveBayesClassifier,
    RandomForestClassifier,
)
from .classifiers.evaluation import cross_validate
from .config import EngineConfig, TimeoutConfig, load_config
from .logging import configure_logging, set_stage, training_context
from .types import (
    ClassificationResult,
    FeatureImportance,
    Label,
    ModelInfo,
    ModelState,
    ModelType,
    TrainingMetrics,
    TrainingProgress,
    TrainingSample,
    coerce_samples,
)

LOGGER = logging.getLogger(__name__)

ClassifierFactory = Callable[[], Classifier]

DEFAULT_FACTORIES: Mapping[ModelType, ClassifierFactory] = {
    ModelType.NAIVE_BAYES: NaiveBayesClassifier,
    ModelType.LOGISTIC_REGRESSION: LogisticRegressionClassifier,
    ModelType.RANDOM_FOREST: RandomForestClassifier,
    ModelType.CNN: CNNTextClassifier,
}


@dataclass(frozen=True)
class ModelRanking:
    """The model holding the best value for a comparison criterion."""

    model: ModelType
    value: float


@dataclass(frozen=True)
class Consensus:
    """Majority vote; ``agreement`` is an integer percentage."""

    prediction: Label
    agreement: int
    confidence: float


@dataclass(frozen=True)
class ComparisonSummary:
    total_models: int
    trained_models: int
    best_accuracy: ModelRanking | None = None
    fastest_training: ModelRanking | None = None
    fastest_prediction: ModelRanking | None = None
    consensus: Consensus | None = None


@dataclass(frozen=True)
class ModelExplanation:
    model: ModelType
    prediction: ClassificationResult
    explanation: tuple[str, ...]
    visual_data: Mapping[str, Any] = field(default_factory=dict)
    feature_importance: tuple[FeatureImportance, ...] = ()


@dataclass(frozen=True)
class ModelComparisonResult:
    """Side-by-side view of one model; ``prediction`` is None when unavailable."""

    model: ModelType
    info: ModelInfo
    state: ModelState
    metrics: TrainingMetrics
    prediction: ClassificationResult | None
    is_training: bool
    progress: TrainingProgress | None


@dataclass(frozen=True)
class CrossValidationResult:
    model: ModelType
    folds: tuple[TrainingMetrics, ...]
    mean_accuracy: float
    std_accuracy: float
    mean_f1_score: float


class ModelComparison:
    """Owns one classifier per model type and manages their lifecycles."""

    def __init__(
        self,
        factories: Mapping[ModelType, ClassifierFactory] | None = None,
        *,
        timeouts: TimeoutConfig | None = None,
    ) -> None:
        self._factories = dict(DEFAULT_FACTORIES if factories is None else factories)
        self._timeouts = timeouts or TimeoutConfig()
        self._registry = ClassifierRegistry()
        self._all_busy = threading.Lock()
        for model_type in ModelType:
            factory = self._factories.get(model_type)
            if factory is None:
                continue
            classifier = factory()
            if ModelType(classifier.model_type) is not model_type:
                raise ValueError(
                    f"Factory for '{model_type.value}' built a "
                    f"'{ModelType(classifier.model_type).value}' classifier"
                )
            self._registry.register(classifier)

    @classmethod
    def from_config(cls, config: EngineConfig) -> ModelComparison:
        """Build every classifier with the hyper-parameters from ``config``."""

        seed = config.random_state
        factories: dict[ModelType, ClassifierFactory] = {
            ModelType.NAIVE_BAYES: NaiveBayesClassifier,
            ModelType.LOGISTIC_REGRESSION: partial(
                LogisticRegressionClassifier,
                learning_rate=config.logistic.learning_rate,
                max_iterations=config.logistic.max_iterations,
                tolerance=config.logistic.tolerance,
                test_ratio=config.logistic.test_ratio,
                random_state=seed,
            ),
            ModelType.RANDOM_FOREST: partial(
                RandomForestClassifier,
                n_trees=config.forest.n_trees,
                max_depth=config.forest.max_depth,
                min_samples_split=config.forest.min_samples_split,
                random_state=seed,
            ),
            ModelType.CNN: partial(
                CNNTextClassifier,
                embedding_dim=config.cnn.embedding_dim,
                max_sequence_length=config.cnn.max_sequence_length,
                num_filters=config.cnn.num_filters,
                kernel_sizes=config.cnn.kernel_sizes,
                learning_rate=config.cnn.learning_rate,
                epochs=config.cnn.epochs,
                vocabulary_size=config.cnn.vocabulary_size,
                trainable_filters=config.cnn.trainable_filters,
                test_ratio=config.cnn.test_ratio,
                timeout=config.cnn.timeout,
                random_state=seed,
            ),
        }
        return cls(factories, timeouts=config.timeouts)

    def get_classifier(self, model_type: ModelType | str) -> Classifier:
        return self._registry.get(model_type)

    def train_model(
        self,
        model_type: ModelType | str,
        samples: Iterable[TrainingSample | tuple[str, str] | Mapping[str, Any]],
        *,
        timeout: float | None = None,
    ) -> TrainingMetrics:
        """Train one model; on failure its state becomes ``error`` and the error propagates."""

        entry = self._registry.entry(model_type)
        name = entry.classifier.model_type.value

        def on_progress(progress: TrainingProgress) -> None:
            entry.progress = progress
            set_stage(progress.stage)

        with entry.training(), training_context(name):
            LOGGER.info("Training %s", name)
            try:
                metrics = entry.classifier.train(coerce_samples(samples), on_progress, timeout=timeout)
            except Exception as exc:
                entry.classifier.reset()
                entry.metrics = None
                entry.error = str(exc)
                entry.state = ModelState.ERROR
                raise
            entry.metrics = metrics
            entry.state = ModelState.TRAINED
        return metrics

    def train_all_models(
        self,
        samples: Iterable[TrainingSample | tuple[str, str] | Mapping[str, Any]],
    ) -> dict[ModelType, TrainingMetrics]:
        """Train every model in complexity order, substituting neutral metrics on failure."""

        if not self._all_busy.acquire(blocking=False):
            raise AlreadyTrainingError("A multi-model training run is already in progress")
        try:
            data = coerce_samples(samples)
            LOGGER.info("Training %s model(s) on %s sample(s)", len(self._registry), len(data))
            results: dict[ModelType, TrainingMetrics] = {}
            for model_type, _entry in self._registry.entries():
                timeout = self._timeouts.cnn if model_type is ModelType.CNN else self._timeouts.default
                try:
                    results[model_type] = self.train_model(model_type, data, timeout=timeout)
                except ClassifierError as exc:
                    LOGGER.warning(
                        "Training %s failed, using neutral metrics: %s", model_type.value, exc
                    )
                    results[model_type] = TrainingMetrics.neutral()
                except Exception:
                    LOGGER.exception(
                        "Unexpected error training %s, using neutral metrics", model_type.value
                    )
                    results[model_type] = TrainingMetrics.neutral()
            return results
        finally:
            self._all_busy.release()

    def predict_with_all_models(self, text: str) -> dict[ModelType, ClassificationResult]:
        predictions: dict[ModelType, ClassificationResult] = {}
        for model_type, entry in self._registry.trained():
            try:
                predictions[model_type] = entry.classifier.predict(text)
            except Exception:
                LOGGER.exception("Prediction with %s failed", model_type.value)
        return predictions

    def get_comparison_summary(self, text: str | None = None) -> ComparisonSummary:
        trained = self._registry.trained()
        measured = [(model_type, entry.metrics) for model_type, entry in trained if entry.metrics]

        best_accuracy = None
        fastest_training = None
        if measured:
            model, metrics = max(measured, key=lambda item: item[1].accuracy)
            best_accuracy = ModelRanking(model=model, value=metrics.accuracy)
            model, metrics = min(measured, key=lambda item: item[1].training_time)
            fastest_training = ModelRanking(model=model, value=metrics.training_time)

        fastest_prediction = None
        verdict = None
        if text is not None:
            predictions = self.predict_with_all_models(text)
            if predictions:
                model, result = min(predictions.items(), key=lambda item: item[1].processing_time)
                fastest_prediction = ModelRanking(model=model, value=result.processing_time)
            if len(predictions) >= 2:
                verdict = consensus(predictions.values())

        return ComparisonSummary(
            total_models=len(self._registry),
            trained_models=len(trained),
            best_accuracy=best_accuracy,
            fastest_training=fastest_training,
            fastest_prediction=fastest_prediction,
            consensus=verdict,
        )

    def get_model_explanations(self, text: str) -> dict[ModelType, ModelExplanation]:
        explanations: dict[ModelType, ModelExplanation] = {}
        for model_type, entry in self._registry.trained():
            try:
                explanations[model_type] = _explain(model_type, entry.classifier, text)
            except Exception:
                LOGGER.exception("Explaining the %s prediction failed", model_type.value)
        return explanations

    def get_comparison_results(self, text: str | None = None) -> list[ModelComparisonResult]:
        results: list[ModelComparisonResult] = []
        for model_type, entry in self._registry.entries():
            prediction = None
            if text is not None and entry.state is ModelState.TRAINED:
                try:
                    prediction = entry.classifier.predict(text)
                except Exception:
                    LOGGER.exception("Prediction with %s failed", model_type.value)
            results.append(
                ModelComparisonResult(
                    model=model_type,
                    info=entry.classifier.get_model_info(),
                    state=entry.state,
                    metrics=entry.metrics or TrainingMetrics.empty(),
                    prediction=prediction,
                    is_training=entry.is_training,
                    progress=entry.progress,
                )
            )
        return results

    def cross_validate_all_models(
        self,
        samples: Iterable[TrainingSample | tuple[str, str] | Mapping[str, Any]],
        folds: int = 5,
    ) -> dict[ModelType, CrossValidationResult]:
        """K-fold cross-validation on fresh instances of every trained model."""

        data = coerce_samples(samples)
        results: dict[ModelType, CrossValidationResult] = {}
        for model_type, _entry in self._registry.trained():
            try:
                fold_metrics = cross_validate(self._factories[model_type], data, folds)
            except Exception:
                LOGGER.exception("Cross-validation of %s failed", model_type.value)
                continue
            accuracies = np.array([metrics.accuracy for metrics in fold_metrics])
            results[model_type] = CrossValidationResult(
                model=model_type,
                folds=tuple(fold_metrics),
                mean_accuracy=float(accuracies.mean()),
                std_accuracy=float(accuracies.std()),
                mean_f1_score=float(np.mean([metrics.f1_score for metrics in fold_metrics])),
            )
        return results

    def reset_model(self, model_type: ModelType | str) -> None:
        entry = self._registry.entry(model_type)
        with entry.resetting():
            entry.classifier.reset()
            entry.state = ModelState.IDLE
            entry.metrics = None
            entry.progress = None
            entry.error = None

    def reset_all_models(self) -> None:
        for model_type, _entry in self._registry.entries():
            self.reset_model(model_type)

    def get_all_models_info(self) -> dict[ModelType, ModelInfo]:
        return {
            model_type: entry.classifier.get_model_info()
            for model_type, entry in self._registry.entries()
        }

    def get_training_status(self) -> dict[ModelType, bool]:
        return {model_type: entry.is_training for model_type, entry in self._registry.entries()}

    def get_training_progress(self) -> dict[ModelType, TrainingProgress | None]:
        return {model_type: entry.progress for model_type, entry in self._registry.entries()}

    def get_model_state(self, model_type: ModelType | str) -> ModelState:
        return self._registry.entry(model_type).state

    def is_any_model_training(self) -> bool:
        return self._all_busy.locked() or self._registry.any_training()

    def get_trained_models(self) -> list[ModelType]:
        return [model_type for model_type, _entry in self._registry.trained()]

    def get_metrics(self, model_type: ModelType | str) -> TrainingMetrics | None:
        return self._registry.entry(model_type).metrics


def consensus(results: Iterable[ClassificationResult]) -> Consensus:
    """Majority vote across predictions; ties resolve to normal."""

    voters = list(results)
    if not voters:
        raise ValueError("consensus needs at least one prediction")
    votes = Counter(result.prediction for result in voters)
    prediction = (
        Label.CLICKBAIT if votes[Label.CLICKBAIT] > votes[Label.NORMAL] else Label.NORMAL
    )
    return Consensus(
        prediction=prediction,
        agreement=round(votes[prediction] / len(voters) * 100),
        confidence=float(np.mean([result.confidence for result in voters])),
    )


def load_engine(config_path: Path | str | None = None) -> ModelComparison:
    """Load configuration, install the engine's log handlers and build the models."""

    config = load_config(config_path)
    configure_logging(config.logging, config.root_dir)
    LOGGER.info("Classification engine ready (root=%s)", config.root_dir)
    return ModelComparison.from_config(config)


def _explain(model_type: ModelType, classifier: Classifier, text: str) -> ModelExplanation:
    importance_source = getattr(classifier, "get_feature_importance", None)
    importance: Sequence[FeatureImportance] = (
        importance_source() if callable(importance_source) else ()
    )

    explain = getattr(classifier, "explain_prediction", None)
    if callable(explain):
        detail = explain(text)
        return ModelExplanation(
            model=model_type,
            prediction=detail.prediction,
            explanation=tuple(detail.explanation),
            visual_data=detail.visual_data,
            feature_importance=tuple(importance),
        )

    prediction = classifier.predict(text)
    info = classifier.get_model_info()
    explanation = (
        f"{info.name} predicts '{prediction.prediction.value}'",
        f"Confidence: {prediction.confidence * 100:.1f}%",
        *prediction.reasoning,
    )
    return ModelExplanation(
        model=model_type,
        prediction=prediction,
        explanation=explanation,
        visual_data={"model_type": model_type.value, "complexity": info.complexity},
        feature_importance=tuple(importance),
    )


__all__ = [
    "ComparisonSummary",
    "Consensus",
    "CrossValidationResult",
    "DEFAULT_FACTORIES",
    "ModelComparison",
    "ModelComparisonResult",
    "ModelExplanation",
    "ModelRanking",
    "consensus",
    "load_engine",
]
