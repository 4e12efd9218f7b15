"""Shared pytest configuration for all test levels."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import structlog
from hypothesis import HealthCheck, settings

from web_watchdog.core import Watchdog

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def memory_watchdog() -> Generator[Watchdog, None, None]:
    watchdog = Watchdog()
    assert watchdog.init_with_in_memory()
    yield watchdog
    watchdog.close()


@pytest.fixture
def file_watchdog(tmp_path: Path) -> Generator[Watchdog, None, None]:
    watchdog = Watchdog()
    assert watchdog.init_with_file(tmp_path / "watchdog.sqlite3")
    yield watchdog
    watchdog.close()


@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()


# Configure Hypothesis global settings
settings.register_profile(
    "dev",
    max_examples=50,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "ci",
    max_examples=100,
    deadline=5000,
)

if os.getenv("CI"):
    settings.load_profile("ci")
else:
    settings.load_profile("dev")


_LEVEL_MARKERS = {
    "unit": pytest.mark.unit,
    "integration": pytest.mark.integration,
}


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        rel = item.path.relative_to(Path(__file__).resolve().parent) if item.path else None
        if rel is None:
            continue
        for level, marker in _LEVEL_MARKERS.items():
            if rel.parts[0] == level:
                item.add_marker(marker)
                break
