"""Shared fixtures for the ruleverify test-suite."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator, List

import pytest
import yaml
from loguru import logger

from ruleverify.config.settings import Settings


class FakeClock:
    """Monotonic clock advanced only by the fake ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    default_yaml = {
        "environment": "testing",
        "paths": {"logs_dir": str(tmp_path / "logs")},
        "policies": {
            "policy_version": "test-version",
            "polling": {
                "initial_delay_seconds": 0.0,
                "interval_seconds": 1.0,
                "attempts": 3,
                "timeout_seconds": 60.0,
            },
        },
    }
    (config_dir / "default.yaml").write_text(yaml.safe_dump(default_yaml), encoding="utf-8")
    return Settings(config_dir=config_dir, environment="testing")


@pytest.fixture
def log_messages() -> Iterator[List[str]]:
    """Collect formatted loguru records emitted during the test."""

    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(str(message)), level="DEBUG", format="{level} {message}")
    try:
        yield messages
    finally:
        logger.remove(handler_id)
