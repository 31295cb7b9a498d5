from __future__ import annotations

from collections.abc import Sequence

import pytest

from clickbait_lab.classifiers import (
    InsufficientDataError,
    ModelNotTrainedError,
    RandomForestClassifier,
)
from clickbait_lab.comparison import ModelComparison, consensus
from clickbait_lab.config import CNNConfig, EngineConfig, ForestConfig, TimeoutConfig
from clickbait_lab.extractor import empty_features
from clickbait_lab.types import (
    ClassificationResult,
    Explanation,
    Label,
    ModelInfo,
    ModelState,
    ModelType,
    TrainingMetrics,
    TrainingProgress,
    TrainingSample,
)


class StubClassifier:
    def __init__(
        self,
        model_type: ModelType,
        prediction: Label = Label.CLICKBAIT,
        *,
        confidence: float = 0.9,
        accuracy: float = 0.8,
        training_time: float = 1.0,
        processing_time: float = 0.01,
        error: Exception | None = None,
        calls: list[tuple[ModelType, float | None]] | None = None,
    ) -> None:
        self.model_type = model_type
        self.prediction = prediction
        self.confidence = confidence
        self.accuracy = accuracy
        self.training_time = training_time
        self.processing_time = processing_time
        self.error = error
        self.calls = calls if calls is not None else []
        self.resets = 0
        self._trained = False

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            name=f"Stub {self.model_type.value}",
            kind="traditional",
            description="stub",
            advantages=(),
            disadvantages=(),
            complexity="low",
        )

    def train(
        self,
        samples: Sequence[TrainingSample],
        on_progress=None,
        *,
        timeout: float | None = None,
    ) -> TrainingMetrics:
        self.calls.append((self.model_type, timeout))
        if on_progress is not None:
            on_progress(TrainingProgress("training", 50.0, "half way", 0.0))
        if self.error is not None:
            raise self.error
        self._trained = True
        return TrainingMetrics(
            accuracy=self.accuracy,
            precision=self.accuracy,
            recall=self.accuracy,
            f1_score=self.accuracy,
            training_time=self.training_time,
        )

    def predict(self, text: str) -> ClassificationResult:
        if not self._trained:
            raise ModelNotTrainedError("stub is untrained")
        return ClassificationResult(
            prediction=self.prediction,
            confidence=self.confidence,
            features=empty_features(),
            reasoning=("stub reasoning",),
            processing_time=self.processing_time,
        )

    def is_model_trained(self) -> bool:
        return self._trained

    def reset(self) -> None:
        self.resets += 1
        self._trained = False


class ExplainingStub(StubClassifier):
    def explain_prediction(self, text: str) -> Explanation:
        return Explanation(
            prediction=self.predict(text),
            explanation=("custom explanation",),
            visual_data={"custom": True},
        )


def _comparison(**classifiers: StubClassifier) -> ModelComparison:
    factories = {ModelType(name): (lambda stub=stub: stub) for name, stub in classifiers.items()}
    return ModelComparison(factories, timeouts=TimeoutConfig(default=1.5, cnn=4.0))


SAMPLES = [("震惊！", "clickbait"), ("市政府发布报告", "normal")]


def test_consensus_reports_majority_and_agreement() -> None:
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES, Label.CLICKBAIT, confidence=0.9),
        logistic_regression=StubClassifier(
            ModelType.LOGISTIC_REGRESSION, Label.CLICKBAIT, confidence=0.6
        ),
        random_forest=StubClassifier(ModelType.RANDOM_FOREST, Label.NORMAL, confidence=0.6),
    )
    comparison.train_all_models(SAMPLES)

    summary = comparison.get_comparison_summary("震惊！")

    assert summary.total_models == 3
    assert summary.trained_models == 3
    assert summary.consensus is not None
    assert summary.consensus.prediction is Label.CLICKBAIT
    assert summary.consensus.agreement == 67
    assert summary.consensus.confidence == pytest.approx(0.7)


def test_consensus_ties_resolve_to_normal() -> None:
    results = [
        ClassificationResult(Label.CLICKBAIT, 0.8, empty_features(), ()),
        ClassificationResult(Label.NORMAL, 0.6, empty_features(), ()),
    ]

    verdict = consensus(results)

    assert verdict.prediction is Label.NORMAL
    assert verdict.agreement == 50


def test_consensus_requires_two_trained_models() -> None:
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES),
        cnn=StubClassifier(ModelType.CNN),
    )
    comparison.train_model(ModelType.CNN, SAMPLES)

    summary = comparison.get_comparison_summary("text")

    assert summary.trained_models == 1
    assert summary.consensus is None
    assert summary.fastest_prediction is not None
    assert summary.fastest_prediction.model is ModelType.CNN


def test_summary_ranks_accuracy_and_training_speed() -> None:
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES, accuracy=0.7, training_time=0.2),
        random_forest=StubClassifier(ModelType.RANDOM_FOREST, accuracy=0.9, training_time=2.0),
    )
    comparison.train_all_models(SAMPLES)

    summary = comparison.get_comparison_summary()

    assert summary.best_accuracy is not None
    assert summary.best_accuracy.model is ModelType.RANDOM_FOREST
    assert summary.fastest_training is not None
    assert summary.fastest_training.model is ModelType.NAIVE_BAYES
    assert summary.fastest_prediction is None
    assert summary.consensus is None


def test_train_all_models_runs_in_complexity_order_with_timeouts() -> None:
    calls: list[tuple[ModelType, float | None]] = []
    comparison = _comparison(
        cnn=StubClassifier(ModelType.CNN, calls=calls),
        random_forest=StubClassifier(ModelType.RANDOM_FOREST, calls=calls),
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES, calls=calls),
        logistic_regression=StubClassifier(ModelType.LOGISTIC_REGRESSION, calls=calls),
    )

    results = comparison.train_all_models(SAMPLES)

    assert calls == [
        (ModelType.NAIVE_BAYES, 1.5),
        (ModelType.LOGISTIC_REGRESSION, 1.5),
        (ModelType.RANDOM_FOREST, 1.5),
        (ModelType.CNN, 4.0),
    ]
    assert list(results) == list(ModelType)
    assert comparison.get_trained_models() == list(ModelType)
    assert comparison.is_any_model_training() is False


def test_failed_model_gets_neutral_metrics_without_affecting_others() -> None:
    failing = StubClassifier(ModelType.CNN, error=InsufficientDataError("too few"))
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES, accuracy=0.9),
        cnn=failing,
    )

    results = comparison.train_all_models(SAMPLES)

    assert results[ModelType.CNN] == TrainingMetrics.neutral()
    assert results[ModelType.NAIVE_BAYES].accuracy == 0.9
    assert comparison.get_model_state(ModelType.CNN) is ModelState.ERROR
    assert comparison.get_model_state(ModelType.NAIVE_BAYES) is ModelState.TRAINED
    assert comparison.get_metrics(ModelType.CNN) is None
    assert failing.resets == 1


def test_unexpected_errors_are_also_contained() -> None:
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES, error=FloatingPointError("nan")),
    )

    results = comparison.train_all_models(SAMPLES)

    assert results[ModelType.NAIVE_BAYES] == TrainingMetrics.neutral()


def test_train_model_reraises_and_marks_error() -> None:
    comparison = _comparison(
        random_forest=StubClassifier(ModelType.RANDOM_FOREST, error=InsufficientDataError("x")),
    )

    with pytest.raises(InsufficientDataError):
        comparison.train_model("random_forest", SAMPLES)

    assert comparison.get_model_state("random_forest") is ModelState.ERROR
    assert comparison.get_training_status() == {ModelType.RANDOM_FOREST: False}
    assert comparison.get_training_progress() == {ModelType.RANDOM_FOREST: None}


def test_unknown_model_type_raises_key_error() -> None:
    comparison = _comparison(naive_bayes=StubClassifier(ModelType.NAIVE_BAYES))
    with pytest.raises(KeyError):
        comparison.train_model("svm", SAMPLES)
    with pytest.raises(KeyError):
        comparison.train_model(ModelType.CNN, SAMPLES)


def test_predict_with_all_models_skips_untrained_and_failing_models() -> None:
    broken = StubClassifier(ModelType.RANDOM_FOREST)
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES),
        random_forest=broken,
        cnn=StubClassifier(ModelType.CNN),
    )
    comparison.train_model(ModelType.NAIVE_BAYES, SAMPLES)
    comparison.train_model(ModelType.RANDOM_FOREST, SAMPLES)
    broken._trained = False

    predictions = comparison.predict_with_all_models("text")

    assert list(predictions) == [ModelType.NAIVE_BAYES]


def test_explanations_fall_back_to_generic_text() -> None:
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES, confidence=0.75),
        random_forest=ExplainingStub(ModelType.RANDOM_FOREST),
    )
    comparison.train_all_models(SAMPLES)

    explanations = comparison.get_model_explanations("text")

    generic = explanations[ModelType.NAIVE_BAYES]
    assert generic.explanation[0] == "Stub naive_bayes predicts 'clickbait'"
    assert "Confidence: 75.0%" in generic.explanation
    assert "stub reasoning" in generic.explanation
    assert explanations[ModelType.RANDOM_FOREST].explanation == ("custom explanation",)
    assert explanations[ModelType.RANDOM_FOREST].visual_data == {"custom": True}


def test_comparison_results_cover_untrained_models() -> None:
    comparison = _comparison(
        naive_bayes=StubClassifier(ModelType.NAIVE_BAYES),
        cnn=StubClassifier(ModelType.CNN),
    )
    comparison.train_model(ModelType.NAIVE_BAYES, SAMPLES)

    results = {result.model: result for result in comparison.get_comparison_results("text")}

    assert results[ModelType.NAIVE_BAYES].prediction is not None
    assert results[ModelType.CNN].prediction is None
    assert results[ModelType.CNN].metrics == TrainingMetrics.empty()
    assert results[ModelType.CNN].state is ModelState.IDLE
    assert results[ModelType.CNN].info.name == "Stub cnn"


def test_reset_returns_models_to_idle() -> None:
    stub = StubClassifier(ModelType.NAIVE_BAYES)
    comparison = _comparison(naive_bayes=stub, cnn=StubClassifier(ModelType.CNN))
    comparison.train_all_models(SAMPLES)

    comparison.reset_model(ModelType.NAIVE_BAYES)

    assert comparison.get_model_state(ModelType.NAIVE_BAYES) is ModelState.IDLE
    assert comparison.get_metrics(ModelType.NAIVE_BAYES) is None
    assert comparison.get_trained_models() == [ModelType.CNN]
    assert stub.is_model_trained() is False

    comparison.reset_all_models()
    assert comparison.get_trained_models() == []


def test_cross_validation_reports_fold_statistics(balanced_samples: list[TrainingSample]) -> None:
    comparison = _comparison(naive_bayes=StubClassifier(ModelType.NAIVE_BAYES))
    comparison.train_all_models(balanced_samples)

    results = comparison.cross_validate_all_models(balanced_samples, folds=5)

    report = results[ModelType.NAIVE_BAYES]
    assert len(report.folds) == 5
    assert report.mean_accuracy == pytest.approx(0.5)
    assert report.std_accuracy == pytest.approx(0.0)


def test_factory_must_build_matching_model_type() -> None:
    with pytest.raises(ValueError):
        ModelComparison({ModelType.CNN: lambda: StubClassifier(ModelType.NAIVE_BAYES)})


def test_from_config_applies_hyper_parameters() -> None:
    config = EngineConfig(
        random_state=3,
        forest=ForestConfig(n_trees=7, max_depth=4),
        cnn=CNNConfig(epochs=2, timeout=5.0),
    )

    comparison = ModelComparison.from_config(config)

    forest = comparison.get_classifier(ModelType.RANDOM_FOREST)
    assert isinstance(forest, RandomForestClassifier)
    assert forest.n_trees == 7
    assert forest.max_depth == 4
    cnn = comparison.get_classifier(ModelType.CNN)
    assert cnn.epochs == 2
    assert cnn.timeout == 5.0
    assert set(comparison.get_all_models_info()) == set(ModelType)
