from __future__ import annotations

from typing import Iterator

import pytest

from frontend.core import config as core_config


@pytest.fixture(autouse=True)
def reset_config_cache(monkeypatch) -> Iterator[None]:
    """Reset cached configuration and fix the API base URL for tests."""
    monkeypatch.setenv("DASHBOARD_API_BASE_URL", "http://testserver")
    monkeypatch.delenv("DASHBOARD_API_FALLBACKS", raising=False)
    monkeypatch.delenv("DASHBOARD_PUBLIC_API_URL", raising=False)
    monkeypatch.delenv("SESSION_COOKIE_NAME", raising=False)
    core_config.get_config.cache_clear()
    yield
    core_config.get_config.cache_clear()


@pytest.fixture
def sample_forecast_payload() -> list:
    return [
        {"date": "2024-03-03", "temperatureC": 12, "temperatureF": 53, "summary": "Mild"},
        {"date": "2024-03-02", "temperatureC": -5, "temperatureF": 24, "summary": "Bracing"},
    ]
