"""Logging for the classification engine.

Records emitted while a model trains carry the model type and the current
training stage (``record.model`` and ``record.stage``), so interleaved runs
from several threads stay readable in one log file. Outside a training run
both fields are ``-``.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import ConfigError, LoggingConfig

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(model)s/%(stage)s]: %(message)s"
MAIN_LOG_NAME = "clickbait-lab.log"
TRAINING_LOG_NAME = "training.log"
NO_CONTEXT = "-"
_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_training: ContextVar[tuple[str, str]] = ContextVar(
    "clickbait_lab_training", default=(NO_CONTEXT, NO_CONTEXT)
)


@contextmanager
def training_context(model: str) -> Iterator[None]:
    """Tag every record logged by this thread with ``model`` until the block exits."""

    token = _training.set((model, "initializing"))
    try:
        yield
    finally:
        _training.reset(token)


def set_stage(stage: str) -> None:
    """Update the stage reported for the model currently training on this thread."""

    model, _previous = _training.get()
    if model != NO_CONTEXT:
        _training.set((model, stage))


def current_training() -> tuple[str, str]:
    return _training.get()


class TrainingContextFilter(logging.Filter):
    """Attach ``model`` and ``stage`` attributes to every record."""

    def __init__(self, *, training_only: bool = False) -> None:
        super().__init__()
        self.training_only = training_only

    def filter(self, record: logging.LogRecord) -> bool:
        model, stage = _training.get()
        if not hasattr(record, "model"):
            record.model = model
        if not hasattr(record, "stage"):
            record.stage = stage
        return not self.training_only or record.model != NO_CONTEXT


class ConsoleFormatter(logging.Formatter):
    """One-letter level marker, coloured on a TTY, and the training model when set."""

    SYMBOLS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[36m"),
        logging.INFO: ("I", "\x1b[32m"),
        logging.WARNING: ("!", "\x1b[33m"),
        logging.ERROR: ("X", "\x1b[31m"),
        logging.CRITICAL: ("X", "\x1b[35m"),
    }

    RESET = "\x1b[0m"

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(name)s: %(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        symbol, color = self.SYMBOLS.get(record.levelno, ("?", "\x1b[37m"))
        message = super().format(record)
        model = getattr(record, "model", NO_CONTEXT)
        if model != NO_CONTEXT:
            message = f"[{model}/{getattr(record, 'stage', NO_CONTEXT)}] {message}"
        if self.use_color:
            return f"{color}{symbol}{self.RESET} {message}"
        return f"{symbol} {message}"


def configure_logging(logging_config: LoggingConfig, root_dir: Path) -> None:
    """Install engine handlers on the root logger.

    ``clickbait-lab.log`` receives everything at INFO and above. With
    ``debug_file`` enabled, ``training.log`` additionally receives every
    record emitted inside a training run, down to DEBUG.
    """

    level = level_from_string(logging_config.level)
    log_dir = (root_dir / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        _file_handler(log_dir / MAIN_LOG_NAME, level=logging.INFO),
        _console_handler(),
    ]
    if logging_config.debug_file:
        handlers.append(
            _file_handler(log_dir / TRAINING_LOG_NAME, level=logging.DEBUG, training_only=True)
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)


def level_from_string(level: str) -> int:
    try:
        return _LEVELS[level.strip().upper()]
    except KeyError as exc:
        raise ConfigError(f"Unknown log level: {level}") from exc


def _file_handler(path: Path, level: int, *, training_only: bool = False) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    handler.addFilter(TrainingContextFilter(training_only=training_only))
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.addFilter(TrainingContextFilter())
    stream = getattr(handler, "stream", None)
    handler.setFormatter(ConsoleFormatter(bool(getattr(stream, "isatty", lambda: False)())))
    return handler


__all__ = [
    "ConsoleFormatter",
    "TrainingContextFilter",
    "configure_logging",
    "current_training",
    "level_from_string",
    "set_stage",
    "training_context",
]
