from dataclasses import FrozenInstanceError

import pytest

from clickbait_lab import types as lab_types
from clickbait_lab.types import Label, TrainingMetrics, TrainingSample, coerce_samples


def test_training_sample_coerces_string_labels() -> None:
    sample = TrainingSample.of("Shocking!", " Clickbait ")
    assert sample.label is Label.CLICKBAIT


def test_training_sample_rejects_unknown_labels() -> None:
    with pytest.raises(ValueError):
        TrainingSample.of("text", "spam")


def test_training_sample_is_immutable() -> None:
    sample = TrainingSample.of("text", Label.NORMAL)
    with pytest.raises(FrozenInstanceError):
        sample.text = "new"  # type: ignore[misc]


def test_coerce_samples_accepts_pairs_and_mappings() -> None:
    samples = coerce_samples(
        [
            ("标题一", "normal"),
            {"text": "震惊！", "label": "clickbait"},
            TrainingSample.of("plain", Label.NORMAL),
        ]
    )
    assert [sample.label for sample in samples] == [Label.NORMAL, Label.CLICKBAIT, Label.NORMAL]


@pytest.mark.parametrize("bad", [{"text": "missing label"}, ["text", "normal"], "text"])
def test_coerce_samples_rejects_malformed_entries(bad: object) -> None:
    with pytest.raises(ValueError):
        coerce_samples([bad])


def test_neutral_metrics_are_half() -> None:
    neutral = TrainingMetrics.neutral()
    assert (neutral.accuracy, neutral.precision, neutral.recall, neutral.f1_score) == (
        0.5,
        0.5,
        0.5,
        0.5,
    )
    assert neutral.training_time == 0.0
    assert neutral.split is None


def test_model_types_are_declared_in_training_order() -> None:
    assert [model.value for model in lab_types.ModelType] == [
        "naive_bayes",
        "logistic_regression",
        "random_forest",
        "cnn",
    ]
