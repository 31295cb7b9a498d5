"""Feature extraction from short headline texts."""

from __future__ import annotations

from collections.abc import Iterable

import numpy as np

from ..types import TextFeatures
from .keywords import CLICKBAIT_WORDS, EMOTIONAL_WORDS, URGENCY_WORDS
from .text import (
    EXCLAMATION_MARKS,
    PUNCTUATION,
    QUESTION_MARKS,
    UPPER_RE,
    count_characters,
    count_phrases,
    normalize_text,
    split_sentences,
    tokenize,
)
from .tfidf import EMBEDDING_DIM, TermWeightIndex

SCALAR_FEATURE_NAMES: tuple[str, ...] = (
    "text_length",
    "word_count",
    "sentence_count",
    "exclamation_count",
    "question_count",
    "caps_ratio",
    "clickbait_words",
    "urgency_words",
    "emotional_words",
    "average_word_length",
    "punctuation_ratio",
)
FEATURE_NAMES: tuple[str, ...] = SCALAR_FEATURE_NAMES + tuple(
    f"tfidf_{idx + 1}" for idx in range(EMBEDDING_DIM)
)
FEATURE_DIM = len(FEATURE_NAMES)


class TextFeatureExtractor:
    """Turns raw text into ``TextFeatures`` and model-ready vectors."""

    def __init__(self, embedding_dim: int = EMBEDDING_DIM) -> None:
        self._index = TermWeightIndex(embedding_dim)

    @property
    def is_tfidf_trained(self) -> bool:
        return self._index.is_fitted

    @property
    def vocabulary_size(self) -> int:
        return self._index.vocabulary_size

    def train_tfidf(self, documents: Iterable[str]) -> None:
        """Fit the term-weight index used for the embedding component."""

        self._index = TermWeightIndex(self._index.dimension).fit(documents)

    def extract_features(self, text: object) -> TextFeatures:
        """Compute features for ``text``; empty or non-string input yields zeros."""

        clean = normalize_text(text)
        if not clean:
            return empty_features(self._index.dimension)

        tokens = tokenize(clean)
        length = len(clean)
        punctuation = count_characters(clean, PUNCTUATION)
        upper = len(UPPER_RE.findall(clean))
        average_word_length = (
            sum(len(token) for token in tokens) / len(tokens) if tokens else 0.0
        )

        return TextFeatures(
            length=length,
            word_count=len(tokens),
            sentence_count=len(split_sentences(clean)),
            exclamation_count=count_characters(clean, EXCLAMATION_MARKS),
            question_count=count_characters(clean, QUESTION_MARKS),
            caps_ratio=upper / length,
            clickbait_words=count_phrases(clean, CLICKBAIT_WORDS),
            urgency_words=count_phrases(clean, URGENCY_WORDS),
            emotional_words=count_phrases(clean, EMOTIONAL_WORDS),
            average_word_length=average_word_length,
            punctuation_ratio=punctuation / length,
            tfidf_vector=self._index.transform(clean),
        )

    def get_feature_vector(self, features: TextFeatures) -> np.ndarray:
        """Flatten features into the shared, normalised model input order."""

        scalars = [
            features.length / 100,
            features.word_count / 50,
            float(features.sentence_count),
            float(features.exclamation_count),
            float(features.question_count),
            features.caps_ratio,
            float(features.clickbait_words),
            float(features.urgency_words),
            float(features.emotional_words),
            features.average_word_length / 10,
            features.punctuation_ratio,
        ]
        embedding = list(features.tfidf_vector[: self._index.dimension])
        embedding.extend([0.0] * (self._index.dimension - len(embedding)))
        return np.asarray(scalars + embedding, dtype=np.float64)

    def vectorize(self, text: object) -> tuple[TextFeatures, np.ndarray]:
        features = self.extract_features(text)
        return features, self.get_feature_vector(features)


def empty_features(embedding_dim: int = EMBEDDING_DIM) -> TextFeatures:
    return TextFeatures(
        length=0,
        word_count=0,
        sentence_count=0,
        exclamation_count=0,
        question_count=0,
        caps_ratio=0.0,
        clickbait_words=0,
        urgency_words=0,
        emotional_words=0,
        average_word_length=0.0,
        punctuation_ratio=0.0,
        tfidf_vector=(0.0,) * embedding_dim,
    )


__all__ = [
    "FEATURE_DIM",
    "FEATURE_NAMES",
    "SCALAR_FEATURE_NAMES",
    "TextFeatureExtractor",
    "empty_features",
]
