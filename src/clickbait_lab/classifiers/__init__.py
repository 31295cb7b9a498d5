"""Classifier implementations and infrastructure."""

from .base import (
    AlreadyTrainingError,
    Classifier,
    ClassifierError,
    InsufficientDataError,
    ModelNotTrainedError,
    TrainingClock,
    TrainingTimeoutError,
)
from .cnn import CNNTextClassifier
from .logistic_regression import LogisticRegressionClassifier
from .naive_bayes import NaiveBayesClassifier
from .random_forest import RandomForestClassifier
from .registry import ClassifierRegistry, ModelEntry

__all__ = [
    "AlreadyTrainingError",
    "CNNTextClassifier",
    "Classifier",
    "ClassifierError",
    "ClassifierRegistry",
    "InsufficientDataError",
    "LogisticRegressionClassifier",
    "ModelEntry",
    "ModelNotTrainedError",
    "NaiveBayesClassifier",
    "RandomForestClassifier",
    "TrainingClock",
    "TrainingTimeoutError",
]
