"""Corpus-level TF-IDF index producing fixed-width term-weight embeddings."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import numpy as np
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS, TfidfVectorizer

from .keywords import CHINESE_STOP_WORDS
from .text import normalize_text, tokenize

LOGGER = logging.getLogger(__name__)

EMBEDDING_DIM = 20
STOP_WORDS: frozenset[str] = frozenset(ENGLISH_STOP_WORDS) | CHINESE_STOP_WORDS


def analyse(document: str) -> list[str]:
    """Tokenise a document and drop stop-words."""

    return [token for token in tokenize(normalize_text(document)) if token not in STOP_WORDS]


class TermWeightIndex:
    """Fitted TF-IDF statistics; transforming a text never mutates the index."""

    def __init__(self, dimension: int = EMBEDDING_DIM) -> None:
        self._dimension = dimension
        self._vectorizer: TfidfVectorizer | None = None
        self._terms: np.ndarray | None = None

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def is_fitted(self) -> bool:
        return self._vectorizer is not None

    @property
    def vocabulary_size(self) -> int:
        return 0 if self._terms is None else len(self._terms)

    def fit(self, documents: Iterable[str]) -> TermWeightIndex:
        """Build the term-weight index from a corpus."""

        corpus = [normalize_text(document) for document in documents]
        vectorizer = TfidfVectorizer(analyzer=analyse, norm="l2", smooth_idf=True)
        try:
            vectorizer.fit(corpus)
        except ValueError:
            # Raised for an empty vocabulary, e.g. corpora made only of stop-words.
            LOGGER.warning(
                "TF-IDF index could not be built from %s document(s); embeddings stay zero",
                len(corpus),
            )
            self._vectorizer = None
            self._terms = None
            return self
        self._vectorizer = vectorizer
        self._terms = vectorizer.get_feature_names_out()
        LOGGER.debug("TF-IDF index fitted with %s term(s)", len(self._terms))
        return self

    def transform(self, text: str) -> tuple[float, ...]:
        """Return the document's weights sorted descending, padded to ``dimension``."""

        vector = [0.0] * self._dimension
        if self._vectorizer is None or self._terms is None:
            return tuple(vector)
        row = self._vectorizer.transform([normalize_text(text)]).tocsr()
        if row.nnz == 0:
            return tuple(vector)
        terms = self._terms[row.indices]
        order = sorted(range(row.nnz), key=lambda idx: (-row.data[idx], terms[idx]))
        for position, idx in enumerate(order[: self._dimension]):
            vector[position] = float(row.data[idx])
        return tuple(vector)


__all__ = ["EMBEDDING_DIM", "STOP_WORDS", "TermWeightIndex", "analyse"]
