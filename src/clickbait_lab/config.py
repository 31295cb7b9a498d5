"""Configuration loading and validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CLICKBAIT_LAB_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/clickbait-lab/config.yaml")
DEFAULT_ROOT_DIR = Path("~/.local/share/clickbait-lab")
DEFAULT_LOG_LEVEL = "info"


class ConfigError(ValueError):
    """Raised when configuration is invalid or missing."""


@dataclass(frozen=True)
class LoggingConfig:
    """Logging-related configuration."""

    level: str = DEFAULT_LOG_LEVEL
    debug_file: bool = False


@dataclass(frozen=True)
class ForestConfig:
    n_trees: int = 30
    max_depth: int = 10
    min_samples_split: int = 2


@dataclass(frozen=True)
class LogisticConfig:
    learning_rate: float = 0.1
    max_iterations: int = 1000
    tolerance: float = 1e-6
    test_ratio: float = 0.2


@dataclass(frozen=True)
class CNNConfig:
    embedding_dim: int = 50
    max_sequence_length: int = 100
    num_filters: int = 64
    kernel_sizes: tuple[int, ...] = (3, 4, 5)
    learning_rate: float = 0.05
    epochs: int = 20
    vocabulary_size: int = 1000
    trainable_filters: int = 8
    test_ratio: float = 0.2
    timeout: float = 30.0


@dataclass(frozen=True)
class TimeoutConfig:
    """Per-model training budgets, in seconds, used by ``train_all_models``."""

    default: float = 10.0
    cnn: float = 40.0


@dataclass(frozen=True)
class EngineConfig:
    """Fully parsed configuration."""

    root_dir: Path = DEFAULT_ROOT_DIR
    random_state: int | None = None
    forest: ForestConfig = field(default_factory=ForestConfig)
    logistic: LogisticConfig = field(default_factory=LogisticConfig)
    cnn: CNNConfig = field(default_factory=CNNConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: Path | str | None = None) -> EngineConfig:
    """Load and validate configuration from YAML.

    Without an explicit path the ``CLICKBAIT_LAB_CONFIG`` environment variable
    and then the per-user default location are consulted. Only an explicitly
    requested file has to exist; otherwise defaults are returned.
    """

    config_path, explicit = _resolve_config_path(path)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        LOGGER.debug("No config file at %s; using defaults", config_path)
        return EngineConfig(root_dir=DEFAULT_ROOT_DIR.expanduser())

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    if not isinstance(raw, dict):
        raise ConfigError("Configuration root must be a mapping.")

    return parse_config(raw)


def parse_config(raw: dict[str, Any]) -> EngineConfig:
    """Build an :class:`EngineConfig` from an already-decoded mapping."""

    root_dir = Path(raw.get("root_dir") or raw.get("rootdir") or DEFAULT_ROOT_DIR).expanduser()
    return EngineConfig(
        root_dir=root_dir,
        random_state=_parse_random_state(raw.get("random_state")),
        forest=_parse_forest(_section(raw, "forest")),
        logistic=_parse_logistic(_section(raw, "logistic_regression")),
        cnn=_parse_cnn(_section(raw, "cnn")),
        timeouts=_parse_timeouts(_section(raw, "timeouts")),
        logging=_parse_logging(raw.get("logging")),
    )


def _resolve_config_path(explicit: Path | str | None) -> tuple[Path, bool]:
    if explicit:
        return Path(explicit).expanduser(), True
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser(), True
    return DEFAULT_CONFIG_PATH.expanduser(), False


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"{name} must be a mapping.")
    return value


def _parse_random_state(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError("random_state must be a non-negative integer.")
    return value


def _parse_int(section: dict[str, Any], key: str, default: int, *, name: str, minimum: int = 1) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name}.{key} must be an integer.")
    if value < minimum:
        raise ConfigError(f"{name}.{key} must be at least {minimum}.")
    return value


def _parse_float(
    section: dict[str, Any],
    key: str,
    default: float,
    *,
    name: str,
    upper: float | None = None,
) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name}.{key} must be a number.")
    if value <= 0:
        raise ConfigError(f"{name}.{key} must be positive.")
    if upper is not None and value >= upper:
        raise ConfigError(f"{name}.{key} must be below {upper}.")
    return float(value)


def _parse_forest(section: dict[str, Any]) -> ForestConfig:
    defaults = ForestConfig()
    return ForestConfig(
        n_trees=_parse_int(section, "n_trees", defaults.n_trees, name="forest"),
        max_depth=_parse_int(section, "max_depth", defaults.max_depth, name="forest"),
        min_samples_split=_parse_int(
            section, "min_samples_split", defaults.min_samples_split, name="forest", minimum=2
        ),
    )


def _parse_logistic(section: dict[str, Any]) -> LogisticConfig:
    defaults = LogisticConfig()
    name = "logistic_regression"
    return LogisticConfig(
        learning_rate=_parse_float(section, "learning_rate", defaults.learning_rate, name=name),
        max_iterations=_parse_int(section, "max_iterations", defaults.max_iterations, name=name),
        tolerance=_parse_float(section, "tolerance", defaults.tolerance, name=name),
        test_ratio=_parse_float(section, "test_ratio", defaults.test_ratio, name=name, upper=1.0),
    )


def _parse_cnn(section: dict[str, Any]) -> CNNConfig:
    defaults = CNNConfig()
    kernel_sizes = section.get("kernel_sizes", defaults.kernel_sizes)
    if (
        not isinstance(kernel_sizes, (list, tuple))
        or not kernel_sizes
        or any(isinstance(size, bool) or not isinstance(size, int) or size < 1 for size in kernel_sizes)
    ):
        raise ConfigError("cnn.kernel_sizes must be a non-empty list of positive integers.")
    config = CNNConfig(
        embedding_dim=_parse_int(section, "embedding_dim", defaults.embedding_dim, name="cnn"),
        max_sequence_length=_parse_int(
            section, "max_sequence_length", defaults.max_sequence_length, name="cnn"
        ),
        num_filters=_parse_int(section, "num_filters", defaults.num_filters, name="cnn"),
        kernel_sizes=tuple(kernel_sizes),
        learning_rate=_parse_float(section, "learning_rate", defaults.learning_rate, name="cnn"),
        epochs=_parse_int(section, "epochs", defaults.epochs, name="cnn"),
        vocabulary_size=_parse_int(section, "vocabulary_size", defaults.vocabulary_size, name="cnn"),
        trainable_filters=_parse_int(
            section, "trainable_filters", defaults.trainable_filters, name="cnn"
        ),
        test_ratio=_parse_float(section, "test_ratio", defaults.test_ratio, name="cnn", upper=1.0),
        timeout=_parse_float(section, "timeout", defaults.timeout, name="cnn"),
    )
    if config.max_sequence_length < max(config.kernel_sizes):
        raise ConfigError("cnn.max_sequence_length must be at least the largest kernel size.")
    return config


def _parse_timeouts(section: dict[str, Any]) -> TimeoutConfig:
    defaults = TimeoutConfig()
    return TimeoutConfig(
        default=_parse_float(section, "default", defaults.default, name="timeouts"),
        cnn=_parse_float(section, "cnn", defaults.cnn, name="timeouts"),
    )


def _parse_logging(value: Any) -> LoggingConfig:
    if value is None:
        return LoggingConfig()
    if not isinstance(value, dict):
        raise ConfigError("logging must be a mapping.")
    level = str(value.get("level", DEFAULT_LOG_LEVEL)).lower()
    debug_file = bool(value.get("debug_file", False))
    return LoggingConfig(level=level, debug_file=debug_file)


__all__ = [
    "CNNConfig",
    "ConfigError",
    "EngineConfig",
    "ForestConfig",
    "LoggingConfig",
    "LogisticConfig",
    "TimeoutConfig",
    "load_config",
    "parse_config",
]
