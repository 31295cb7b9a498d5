from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from clickbait_lab.config import (
    CONFIG_ENV_VAR,
    ConfigError,
    EngineConfig,
    load_config,
    parse_config,
)


def _write_config(tmp_path: Path, content: str) -> Path:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(textwrap.dedent(content), encoding="utf-8")
    return config_path


def test_load_config_success(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path,
        f"""
        root_dir: {tmp_path}/state
        random_state: 42
        forest:
          n_trees: 12
          max_depth: 6
        logistic_regression:
          learning_rate: 0.05
          max_iterations: 500
        cnn:
          kernel_sizes: [2, 3]
          epochs: 5
          timeout: 12.5
        timeouts:
          default: 8
          cnn: 20
        logging:
          level: debug
          debug_file: true
        """,
    )

    config = load_config(config_path)

    assert config.root_dir == tmp_path / "state"
    assert config.random_state == 42
    assert config.forest.n_trees == 12
    assert config.forest.max_depth == 6
    assert config.forest.min_samples_split == 2
    assert config.logistic.learning_rate == pytest.approx(0.05)
    assert config.logistic.max_iterations == 500
    assert config.cnn.kernel_sizes == (2, 3)
    assert config.cnn.epochs == 5
    assert config.cnn.timeout == pytest.approx(12.5)
    assert config.timeouts.default == 8.0
    assert config.timeouts.cnn == 20.0
    assert config.logging.level == "debug"
    assert config.logging.debug_file is True


def test_load_config_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = _write_config(tmp_path, "random_state: 7\n")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(config_path))

    assert load_config().random_state == 7


def test_missing_default_file_yields_defaults(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))

    config = load_config()

    assert config.forest == EngineConfig().forest
    assert config.timeouts.cnn == 40.0


def test_missing_explicit_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "absent.yaml")


def test_root_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(_write_config(tmp_path, "- just\n- a list\n"))


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ({"forest": {"n_trees": 0}}, "forest.n_trees"),
        ({"forest": {"max_depth": "deep"}}, "forest.max_depth"),
        ({"logistic_regression": {"test_ratio": 1.5}}, "logistic_regression.test_ratio"),
        ({"cnn": {"kernel_sizes": []}}, "cnn.kernel_sizes"),
        ({"cnn": {"max_sequence_length": 2}}, "cnn.max_sequence_length"),
        ({"timeouts": {"cnn": -1}}, "timeouts.cnn"),
        ({"timeouts": "fast"}, "timeouts"),
        ({"random_state": True}, "random_state"),
        ({"logging": "loud"}, "logging"),
    ],
)
def test_invalid_values_name_the_field(raw: dict, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        parse_config(raw)
