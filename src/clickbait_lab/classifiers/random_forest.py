"""Bagged CART decision trees with random feature sub-sampling."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..extractor import FEATURE_NAMES, TextFeatureExtractor
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
    keyword_reasoning,
    label_array,
    resolve_rng,
    validate_samples,
)
from .evaluation import in_sample_metrics

LOGGER = logging.getLogger(__name__)

DEFAULT_TREES = 30
DEFAULT_MAX_DEPTH = 10
DEFAULT_MIN_SAMPLES_SPLIT = 2
MIN_SAMPLES = 4
MIN_SAMPLES_PER_CLASS = 1


@dataclass(frozen=True)
class TreeNode:
    """Internal split (``feature`` >= 0) or leaf (``prediction`` set)."""

    feature: int
    threshold: float
    samples: int
    gini: float
    prediction: Label | None = None
    left: TreeNode | None = None
    right: TreeNode | None = None

    @property
    def is_leaf(self) -> bool:
        return self.prediction is not None

    def leaf_for(self, vector: np.ndarray) -> TreeNode:
        node = self
        while not node.is_leaf:
            child = node.left if vector[node.feature] <= node.threshold else node.right
            if child is None:  # pragma: no cover - built trees always have both children
                break
            node = child
        return node

    def leaves(self) -> Iterator[TreeNode]:
        if self.is_leaf:
            yield self
            return
        for child in (self.left, self.right):
            if child is not None:
                yield from child.leaves()


@dataclass(frozen=True)
class _Split:
    feature: int
    threshold: float
    weighted_gini: float


@dataclass(frozen=True)
class _ForestState:
    extractor: TextFeatureExtractor
    trees: tuple[TreeNode, ...]
    importances: np.ndarray
    max_features: int


class RandomForestClassifier:
    """Majority vote over bootstrap-trained Gini decision trees."""

    model_type = ModelType.RANDOM_FOREST

    def __init__(
        self,
        *,
        n_trees: int = DEFAULT_TREES,
        max_depth: int = DEFAULT_MAX_DEPTH,
        min_samples_split: int = DEFAULT_MIN_SAMPLES_SPLIT,
        random_state: RandomState = None,
    ) -> None:
        if n_trees < 1:
            raise ValueError("n_trees must be positive")
        self.n_trees = n_trees
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self._random_state = random_state
        self._state: _ForestState | None = None

    @property
    def trees(self) -> tuple[TreeNode, ...]:
        state = self._state
        return () if state is None else state.trees

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            name="Random Forest",
            kind="traditional",
            description="Ensemble of decision trees that vote on the final label.",
            advantages=(
                "Robust to noisy features",
                "Reports feature importance",
                "Resists overfitting through bagging",
            ),
            disadvantages=(
                "Harder to interpret than a single tree",
                "Training cost grows with tree count",
                "Several hyper-parameters to tune",
            ),
            complexity="medium",
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
                model_name="Random forest",
            )
            self._state = self._fit(data, clock)
            clock.checkpoint("evaluation", 95, "Evaluating the forest")
            metrics = in_sample_metrics(self, data, training_time=clock.elapsed)
        except Exception:
            self._state = None
            raise
        clock.report("completed", 100, "Random forest training completed")
        LOGGER.info(
            "Random forest trained %s tree(s) on %s sample(s) (accuracy=%.3f)",
            self.n_trees,
            len(data),
            metrics.accuracy,
        )
        return metrics

    def predict(self, text: str) -> ClassificationResult:
        state = self._require_state()
        started = time.perf_counter()
        features, vector = state.extractor.vectorize(text)
        leaves = [tree.leaf_for(vector) for tree in state.trees]
        clickbait_votes = sum(1 for leaf in leaves if leaf.prediction is Label.CLICKBAIT)
        normal_votes = len(leaves) - clickbait_votes
        prediction = Label.CLICKBAIT if clickbait_votes > normal_votes else Label.NORMAL
        confidence = max(clickbait_votes, normal_votes) / len(leaves)
        reasoning = self._reasoning(features, clickbait_votes, normal_votes, prediction)
        return ClassificationResult(
            prediction=prediction,
            confidence=confidence,
            features=features,
            reasoning=tuple(reasoning),
            processing_time=time.perf_counter() - started,
        )

    def tree_confidences(self, text: str) -> list[float]:
        """Per-tree confidence, ``1 - gini`` of the leaf each tree reaches."""

        state = self._require_state()
        vector = state.extractor.vectorize(text)[1]
        return [1.0 - tree.leaf_for(vector).gini for tree in state.trees]

    def is_model_trained(self) -> bool:
        return self._state is not None

    def reset(self) -> None:
        self._state = None

    def get_feature_importance(self) -> list[FeatureImportance]:
        state = self._state
        if state is None:
            return []
        ranked = [
            FeatureImportance(feature=name, importance=float(state.importances[idx]))
            for idx, name in enumerate(FEATURE_NAMES)
        ]
        return sorted(ranked, key=lambda item: item.importance, reverse=True)

    def explain_prediction(self, text: str) -> Explanation:
        state = self._require_state()
        prediction = self.predict(text)
        confidences = self.tree_confidences(text)
        explanation = (
            f"Ensemble of {len(state.trees)} decision trees",
            f"Feature vector size: {len(FEATURE_NAMES)}",
            f"Mean per-tree confidence: {float(np.mean(confidences)):.2f}",
            f"Prediction took {prediction.processing_time * 1000:.2f} ms",
        )
        visual_data: dict[str, Any] = {
            "feature_importances": self.get_feature_importance()[:10],
            "tree_count": len(state.trees),
            "tree_confidences": confidences,
            "model_parameters": {
                "n_trees": self.n_trees,
                "max_depth": self.max_depth,
                "min_samples_split": self.min_samples_split,
                "max_features": state.max_features,
            },
        }
        return Explanation(prediction=prediction, explanation=explanation, visual_data=visual_data)

    def _require_state(self) -> _ForestState:
        state = self._state
        if state is None:
            raise ModelNotTrainedError("Random forest has not been trained")
        return state

    def _fit(self, samples: list[TrainingSample], clock: TrainingClock) -> _ForestState:
        rng = resolve_rng(self._random_state)
        clock.checkpoint("feature_extraction", 10, "Extracting text features")
        extractor = TextFeatureExtractor()
        extractor.train_tfidf(sample.text for sample in samples)
        matrix = np.vstack([extractor.vectorize(sample.text)[1] for sample in samples])
        labels = label_array(samples)

        builder = _TreeBuilder(
            max_depth=self.max_depth,
            min_samples_split=self.min_samples_split,
            max_features=max(1, math.floor(math.sqrt(matrix.shape[1]))),
            n_features=matrix.shape[1],
            rng=rng,
            clock=clock,
        )
        trees: list[TreeNode] = []
        for idx in range(self.n_trees):
            clock.checkpoint(
                "training_trees",
                10 + 80 * idx / self.n_trees,
                f"Training tree {idx + 1}/{self.n_trees}",
            )
            rows = rng.integers(0, len(samples), size=len(samples))
            trees.append(builder.build(matrix[rows], labels[rows]))

        return _ForestState(
            extractor=extractor,
            trees=tuple(trees),
            importances=builder.importances,
            max_features=builder.max_features,
        )

    def _reasoning(
        self,
        features: TextFeatures,
        clickbait_votes: int,
        normal_votes: int,
        prediction: Label,
    ) -> list[str]:
        reasoning = [
            f"{clickbait_votes + normal_votes} trees voted: "
            f"{clickbait_votes} clickbait, {normal_votes} normal"
        ]
        reasoning.extend(keyword_reasoning(features))
        top = [item.feature for item in self.get_feature_importance()[:3] if item.importance > 0]
        if top:
            reasoning.append(f"Most informative features: {', '.join(top)}")
        if prediction is Label.NORMAL and len(reasoning) == 1:
            reasoning.append("Most trees found the wording objective")
        return reasoning


class _TreeBuilder:
    """Grows CART trees and accumulates Gini importance across the forest."""

    def __init__(
        self,
        *,
        max_depth: int,
        min_samples_split: int,
        max_features: int,
        n_features: int,
        rng: np.random.Generator,
        clock: TrainingClock,
    ) -> None:
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.max_features = min(max_features, n_features)
        self.importances = np.zeros(n_features, dtype=np.float64)
        self._n_features = n_features
        self._rng = rng
        self._clock = clock

    def build(self, matrix: np.ndarray, labels: np.ndarray, depth: int = 0) -> TreeNode:
        self._clock.check_deadline()
        samples = len(labels)
        impurity = gini(labels)
        if (
            depth >= self.max_depth
            or samples < self.min_samples_split
            or np.all(labels == labels[0])
        ):
            return _leaf(labels, impurity)

        candidates = self._rng.choice(self._n_features, size=self.max_features, replace=False)
        split = best_split(matrix, labels, candidates)
        if split is None:
            return _leaf(labels, impurity)

        self.importances[split.feature] += max(impurity - split.weighted_gini, 0.0)
        mask = matrix[:, split.feature] <= split.threshold
        return TreeNode(
            feature=split.feature,
            threshold=split.threshold,
            samples=samples,
            gini=impurity,
            left=self.build(matrix[mask], labels[mask], depth + 1),
            right=self.build(matrix[~mask], labels[~mask], depth + 1),
        )


def gini(labels: np.ndarray) -> float:
    if len(labels) == 0:
        return 0.0
    positive = float(np.mean(labels))
    return 1.0 - positive**2 - (1.0 - positive) ** 2


def best_split(
    matrix: np.ndarray, labels: np.ndarray, candidates: Sequence[int]
) -> _Split | None:
    """Find the midpoint threshold minimising weighted child Gini."""

    total = len(labels)
    total_positive = float(labels.sum())
    best: _Split | None = None
    for feature in candidates:
        values = matrix[:, feature]
        order = np.argsort(values, kind="stable")
        sorted_values = values[order]
        cumulative = np.cumsum(labels[order])
        for idx in range(total - 1):
            threshold = float((sorted_values[idx] + sorted_values[idx + 1]) / 2)
            if not sorted_values[idx] <= threshold < sorted_values[idx + 1]:
                continue
            left = idx + 1
            right = total - left
            left_positive = float(cumulative[idx])
            right_positive = total_positive - left_positive
            weighted = (
                left * _gini_from_counts(left_positive, left)
                + right * _gini_from_counts(right_positive, right)
            ) / total
            if best is None or weighted < best.weighted_gini:
                best = _Split(feature=int(feature), threshold=threshold, weighted_gini=weighted)
    return best


def _gini_from_counts(positive: float, count: int) -> float:
    share = positive / count
    return 1.0 - share**2 - (1.0 - share) ** 2


def _leaf(labels: np.ndarray, impurity: float) -> TreeNode:
    positive = int(labels.sum())
    prediction = Label.CLICKBAIT if positive > len(labels) - positive else Label.NORMAL
    return TreeNode(
        feature=-1,
        threshold=0.0,
        samples=len(labels),
        gini=impurity,
        prediction=prediction,
    )


__all__ = ["RandomForestClassifier", "TreeNode", "best_split", "gini"]
