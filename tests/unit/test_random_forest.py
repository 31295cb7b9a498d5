from __future__ import annotations

import numpy as np
import pytest

from clickbait_lab.classifiers import ModelNotTrainedError, RandomForestClassifier
from clickbait_lab.classifiers.random_forest import best_split, gini
from clickbait_lab.extractor import FEATURE_DIM
from clickbait_lab.types import Label, TrainingSample


def test_forest_votes_and_reports_vote_share(balanced_samples: list[TrainingSample]) -> None:
    forest = RandomForestClassifier(n_trees=9, random_state=7)
    metrics = forest.train(balanced_samples)

    result = forest.predict("震惊！这个秘密你绝对不敢相信！！")

    assert 0.0 <= metrics.accuracy <= 1.0
    assert result.prediction in (Label.CLICKBAIT, Label.NORMAL)
    assert 0.5 <= result.confidence <= 1.0
    assert result.reasoning[0].startswith("9 trees voted")
    assert len(forest.trees) == 9


def test_seeded_forests_are_identical(balanced_samples: list[TrainingSample]) -> None:
    first = RandomForestClassifier(n_trees=5, random_state=11)
    second = RandomForestClassifier(n_trees=5, random_state=11)
    first.train(balanced_samples)
    second.train(balanced_samples)

    assert first.trees == second.trees
    assert first.get_feature_importance() == second.get_feature_importance()
    assert first.tree_confidences("图书馆开放") == second.tree_confidences("图书馆开放")


def test_feature_importance_is_sorted_and_non_negative(
    balanced_samples: list[TrainingSample],
) -> None:
    forest = RandomForestClassifier(n_trees=5, random_state=3)
    assert forest.get_feature_importance() == []

    forest.train(balanced_samples)
    importances = [item.importance for item in forest.get_feature_importance()]

    assert len(importances) == FEATURE_DIM
    assert all(value >= 0.0 for value in importances)
    assert importances == sorted(importances, reverse=True)


def test_leaves_hold_a_label(balanced_samples: list[TrainingSample]) -> None:
    forest = RandomForestClassifier(n_trees=3, max_depth=2, random_state=5)
    forest.train(balanced_samples)

    for tree in forest.trees:
        for leaf in tree.leaves():
            assert leaf.prediction in (Label.CLICKBAIT, Label.NORMAL)
            assert 0.0 <= leaf.gini <= 0.5


def test_explain_prediction_reports_parameters(balanced_samples: list[TrainingSample]) -> None:
    forest = RandomForestClassifier(n_trees=4, random_state=1)
    forest.train(balanced_samples)

    explanation = forest.explain_prediction("市政府发布报告")

    assert explanation.visual_data["tree_count"] == 4
    assert explanation.visual_data["model_parameters"]["max_features"] == 5
    assert len(explanation.visual_data["feature_importances"]) == 10
    assert len(explanation.visual_data["tree_confidences"]) == 4


def test_untrained_forest_raises() -> None:
    with pytest.raises(ModelNotTrainedError):
        RandomForestClassifier().predict("text")


def test_reset_discards_trees(balanced_samples: list[TrainingSample]) -> None:
    forest = RandomForestClassifier(n_trees=3, random_state=2)
    forest.train(balanced_samples)

    forest.reset()

    assert forest.is_model_trained() is False
    assert forest.get_feature_importance() == []
    with pytest.raises(ModelNotTrainedError):
        forest.predict("市政府发布报告")
    with pytest.raises(ModelNotTrainedError):
        forest.explain_prediction("市政府发布报告")


def test_gini_impurity() -> None:
    assert gini(np.array([])) == 0.0
    assert gini(np.array([1, 1, 1])) == 0.0
    assert gini(np.array([0, 0, 1, 1])) == pytest.approx(0.5)


def test_best_split_uses_midpoint_threshold() -> None:
    matrix = np.array([[1.0, 5.0], [2.0, 5.0], [3.0, 5.0], [4.0, 5.0]])
    labels = np.array([0, 0, 1, 1])

    split = best_split(matrix, labels, [0, 1])

    assert split is not None
    assert split.feature == 0
    assert split.threshold == pytest.approx(2.5)
    assert split.weighted_gini == pytest.approx(0.0)


def test_best_split_ignores_constant_features() -> None:
    matrix = np.array([[5.0], [5.0], [5.0]])
    assert best_split(matrix, np.array([0, 1, 1]), [0]) is None
