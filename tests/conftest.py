"""Pytest configuration and fixtures for the test suite."""

import sys
from datetime import date
from pathlib import Path
from typing import Any, Callable

import pytest

# Ensure project root is in path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


FIXED_TODAY = date(2025, 3, 2)


@pytest.fixture
def fixed_today() -> Callable[[], date]:
    """Clock that always returns 2025-03-02."""
    return lambda: FIXED_TODAY


@pytest.fixture
def clean_raw() -> dict[str, Any]:
    """A raw timeline that needs no repair at all.

    Returns:
        Raw record with four slots, one gap, and consistent fields.
    """
    return {
        "timePoints": ["09:00", "09:30", "10:00", "10:30"],
        "emotionScores": [40, -20, None, 10],
        "averageScore": 10.0,
        "positiveHours": 9,
        "negativeHours": 3,
        "neutralHours": 12,
        "insights": ["calm morning", "short argument at 09:30"],
        "emotionChanges": [
            {"time": "09:30", "event": "argument", "score": -60},
        ],
        "date": "2025-03-01",
    }


@pytest.fixture
def messy_raw() -> dict[str, Any]:
    """A raw timeline with one problem in nearly every field.

    Returns:
        Raw record exercising most repair rules.
    """
    return {
        "timePoints": ["09:00", "09:30", "10:00", "10:30", "11:00"],
        "emotionScores": [55.4, "NaN", 150, None],
        "averageScore": 95,
        "positiveHours": "6",
        "negativeHours": None,
        "neutralHours": 30,
        "insights": ["", "   ", 7, "walked outside"],
        "emotionChanges": [
            {"time": "09:00", "event": "woke up", "score": 12.5},
            {"time": "09:30", "score": 5},
            "not an object",
        ],
        "deviceId": "device-1",
    }


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    """Empty local log store root."""
    root = tmp_path / "data_accounts"
    root.mkdir()
    return root


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (exercise the HTTP service)"
    )
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow"
    )
