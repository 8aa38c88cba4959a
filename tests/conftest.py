"""Shared fixtures."""

from collections.abc import Generator
from pathlib import Path

import pytest
from aioresponses import aioresponses as aioresponses_cls

from trigger_workflow_action.config import ActionConfig
from trigger_workflow_action.testing.clock import FakeClock
from trigger_workflow_action.testing.factories import ActionConfigFactory

API_BASE_URL = "http://github.test"


@pytest.fixture
def aioresponses() -> Generator[aioresponses_cls, None, None]:
    """Intercept aiohttp requests."""
    with aioresponses_cls() as mock:
        yield mock


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock that advances only when the code under test sleeps."""
    return FakeClock()


@pytest.fixture
def output_path(tmp_path: Path) -> Path:
    """Empty GITHUB_OUTPUT file."""
    path = tmp_path / "github_output"
    path.touch()
    return path


@pytest.fixture
def config(output_path: Path) -> ActionConfig:
    """Create test configuration writing outputs to a temp file."""
    return ActionConfigFactory.build(api_url=API_BASE_URL, output_path=output_path)
