"""Headline feature extraction utilities."""

from .features import FEATURE_DIM, FEATURE_NAMES, TextFeatureExtractor, empty_features
from .tfidf import EMBEDDING_DIM, TermWeightIndex

__all__ = [
    "EMBEDDING_DIM",
    "FEATURE_DIM",
    "FEATURE_NAMES",
    "TermWeightIndex",
    "TextFeatureExtractor",
    "empty_features",
]
