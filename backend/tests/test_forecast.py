"""Tests for the sample forecast endpoint."""

from __future__ import annotations

import random
from datetime import date, timedelta

from backend.forecast import SUMMARIES, WeatherForecast, build_forecast


def test_build_forecast_covers_next_five_days():
    start = date(2024, 3, 1)

    entries = build_forecast(start=start, rng=random.Random(7))

    assert [entry.day for entry in entries] == [start + timedelta(days=offset) for offset in range(1, 6)]
    assert all(-20 <= entry.temperature_c < 55 for entry in entries)
    assert all(entry.summary in SUMMARIES for entry in entries)


def test_fahrenheit_conversion():
    assert WeatherForecast(day=date(2024, 1, 1), temperature_c=0, summary="Cool").temperature_f == 32
    assert WeatherForecast(day=date(2024, 1, 1), temperature_c=100, summary="Hot").temperature_f == 211
    assert WeatherForecast(day=date(2024, 1, 1), temperature_c=-20, summary="Freezing").temperature_f == -3


def test_weatherforecast_endpoint_is_public(client):
    response = client.get("/weatherforecast")

    assert response.status_code == 200
    payload = response.json()
    assert len(payload) == 5
    assert set(payload[0]) == {"date", "temperatureC", "temperatureF", "summary"}
    for entry in payload:
        assert entry["temperatureF"] == 32 + int(entry["temperatureC"] / 0.5556)
