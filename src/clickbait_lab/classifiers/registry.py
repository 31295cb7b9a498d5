"""Classifier registry tracking the lifecycle of each model."""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from ..types import ModelState, ModelType, TrainingMetrics, TrainingProgress
from .base import AlreadyTrainingError, Classifier


@dataclass
class ModelEntry:
    """Mutable lifecycle record for one registered classifier."""

    classifier: Classifier
    state: ModelState = ModelState.IDLE
    progress: TrainingProgress | None = None
    metrics: TrainingMetrics | None = None
    error: str | None = None
    _busy: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def is_training(self) -> bool:
        return self._busy.locked()

    @contextmanager
    def training(self) -> Iterator[ModelEntry]:
        """Hold the busy flag for the duration of a training run."""

        self._acquire("is already training or being reset")
        try:
            self.state = ModelState.TRAINING
            self.error = None
            yield self
        finally:
            self.progress = None
            self._busy.release()

    @contextmanager
    def resetting(self) -> Iterator[ModelEntry]:
        """Hold the busy flag while learned parameters and metrics are discarded."""

        self._acquire("cannot be reset while it is busy")
        try:
            yield self
        finally:
            self._busy.release()

    def _acquire(self, reason: str) -> None:
        if not self._busy.acquire(blocking=False):
            raise AlreadyTrainingError(
                f"Model '{self.classifier.model_type.value}' {reason}"
            )


class ClassifierRegistry:
    """Registry keyed by model type, preserving registration order."""

    def __init__(self) -> None:
        self._entries: OrderedDict[ModelType, ModelEntry] = OrderedDict()

    def register(self, classifier: Classifier) -> ModelEntry:
        model_type = ModelType(classifier.model_type)
        if model_type in self._entries:
            raise ValueError(f"Classifier '{model_type.value}' is already registered.")
        entry = ModelEntry(classifier=classifier)
        self._entries[model_type] = entry
        return entry

    def entry(self, model_type: ModelType | str) -> ModelEntry:
        try:
            return self._entries[ModelType(model_type)]
        except (KeyError, ValueError) as exc:
            raise KeyError(f"Classifier '{model_type}' is not registered.") from exc

    def get(self, model_type: ModelType | str) -> Classifier:
        return self.entry(model_type).classifier

    def entries(self) -> list[tuple[ModelType, ModelEntry]]:
        return list(self._entries.items())

    def trained(self) -> list[tuple[ModelType, ModelEntry]]:
        return [
            (model_type, entry)
            for model_type, entry in self._entries.items()
            if entry.state is ModelState.TRAINED
        ]

    def states(self) -> dict[ModelType, ModelState]:
        return {model_type: entry.state for model_type, entry in self._entries.items()}

    def any_training(self) -> bool:
        return any(entry.is_training for entry in self._entries.values())

    def __contains__(self, model_type: object) -> bool:
        try:
            return ModelType(model_type) in self._entries
        except ValueError:
            return False

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["ClassifierRegistry", "ModelEntry"]
