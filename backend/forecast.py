"""Sample forecast data served to the dashboard."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

from fastapi import APIRouter

SUMMARIES = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)
FORECAST_DAYS = 5

router = APIRouter(tags=["forecast"])


@dataclass(frozen=True)
class WeatherForecast:
    day: date
    temperature_c: int
    summary: str

    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)

    def to_payload(self) -> Dict[str, object]:
        return {
            "date": self.day.isoformat(),
            "temperatureC": self.temperature_c,
            "temperatureF": self.temperature_f,
            "summary": self.summary,
        }


def build_forecast(
    days: int = FORECAST_DAYS,
    *,
    start: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> List[WeatherForecast]:
    """Return ``days`` consecutive forecasts beginning the day after ``start``."""
    rng = rng or random.Random()
    start = start or date.today()
    return [
        WeatherForecast(
            day=start + timedelta(days=offset),
            temperature_c=rng.randrange(-20, 55),
            summary=rng.choice(SUMMARIES),
        )
        for offset in range(1, days + 1)
    ]


@router.get("/weatherforecast")
def weather_forecast() -> List[Dict[str, object]]:
    return [entry.to_payload() for entry in build_forecast()]
