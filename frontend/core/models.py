from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

FORECAST_COLUMNS = ["Date", "Temp. (C)", "Temp. (F)", "Summary"]


@dataclass(frozen=True)
class UserProfile:
    """Signed-in user as reported by ``/api/auth/user``."""

    name: str
    email: str
    picture_url: Optional[str] = None

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "UserProfile":
        """Build a profile, raising ``ValueError`` when name or e-mail is missing."""
        if not isinstance(payload, dict):
            raise ValueError("User payload must be a JSON object")
        name = str(payload.get("name") or "").strip()
        email = str(payload.get("email") or "").strip()
        if not name or not email:
            raise ValueError("User payload requires name and email")
        picture = payload.get("picture") or payload.get("pictureUrl")
        return cls(name=name, email=email, picture_url=str(picture) if picture else None)

    @property
    def initials(self) -> str:
        parts = [part for part in self.name.split() if part]
        return "".join(part[0].upper() for part in parts[:2]) or self.email[:1].upper()


def build_forecast_frame(payload: Optional[List[Dict[str, Any]]]) -> pd.DataFrame:
    """Convert the forecast payload into a display-ready DataFrame."""
    if not payload:
        return pd.DataFrame(columns=FORECAST_COLUMNS)

    frame = pd.DataFrame(payload)
    frame["date"] = pd.to_datetime(frame["date"]).dt.date
    frame = frame.rename(
        columns={
            "date": "Date",
            "temperatureC": "Temp. (C)",
            "temperatureF": "Temp. (F)",
            "summary": "Summary",
        }
    )
    return frame[FORECAST_COLUMNS].sort_values("Date").reset_index(drop=True)
