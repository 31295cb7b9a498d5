from __future__ import annotations

from pathlib import Path

import pytest

from clickbait_lab.comparison import ModelComparison
from clickbait_lab.config import EngineConfig


@pytest.fixture
def seeded_comparison() -> ModelComparison:
    return ModelComparison.from_config(EngineConfig(random_state=42))


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Automatically mark tests in this package as integration."""

    package_root = Path(__file__).resolve().parent
    integration_mark = pytest.mark.integration
    for item in items:
        try:
            path = Path(item.fspath).resolve()
        except OSError:
            continue
        if package_root in path.parents:
            item.add_marker(integration_mark)
