# src/weather_alerts/models.py
"""
Canonical data model produced by one fetch cycle.

Everything here is immutable and rebuilt from scratch on every cycle; nothing
is persisted. The rendering collaborator consumes `WeatherReport.to_dict()`.

Data model (JSON emitted by to_dict)
------------------------------------
{
  "current":  {"temperature": 11.2, "condition": "Overcast", ...} | null,
  "alerts":   [{"event": "Wind Warning", "severity": "Amber",
                "start": "2026-01-02T00:00:00+00:00", ...}],
  "forecast": [{"date": "2026-01-02", "hasWarning": true, ...}]
}
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class Severity(str, Enum):
    YELLOW = "Yellow"
    AMBER = "Amber"
    RED = "Red"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.YELLOW: 1, Severity.AMBER: 2, Severity.RED: 3}


class AlertSource:
    """Provenance tags carried on every Alert."""

    METOFFICE = "Met Office"
    METOFFICE_RSS = "Met Office RSS"
    METOFFICE_ANALYSIS = "Met Office Analysis"
    WEATHER_ANALYSIS = "Weather Analysis"


# --------------------------- timestamps ---------------------------


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO8601 timestamp into an aware datetime. Returns None if the
    input is None/empty/invalid.

    Supported examples:
      "2026-01-02T09:00:00Z"
      "2026-01-02T09:00Z"
      "2026-01-02T09:00:00+01:00"
      "2026-01-02"                 (midnight)
    Naive values are treated as UTC.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# --------------------------- core types ---------------------------


@dataclass(frozen=True)
class Alert:
    event: str
    severity: Severity
    start: datetime
    end: Optional[datetime] = None
    headline: Optional[str] = None
    description: str = ""
    source: str = AlertSource.WEATHER_ANALYSIS

    def __post_init__(self) -> None:
        if self.end is None:
            object.__setattr__(self, "end", self.start)

    @property
    def dedup_key(self) -> tuple:
        return (self.event, self.start)

    def to_dict(self) -> Dict[str, Any]:
        from .classify import classify_event_icon  # classify imports Severity from here

        return {
            "event": self.event,
            "icon": classify_event_icon(self.event),
            "headline": self.headline,
            "description": self.description,
            "severity": self.severity.value,
            "start": self.start.isoformat(),
            "end": self.end.isoformat() if self.end else self.start.isoformat(),
            "source": self.source,
        }


@dataclass(frozen=True)
class ForecastDay:
    date: date
    condition_code: Optional[int]
    condition: str
    temp_max: Optional[float]
    temp_min: Optional[float]
    precipitation_chance: float = 0
    has_warning: bool = False

    def with_warning(self, flag: bool) -> "ForecastDay":
        return replace(self, has_warning=flag)

    def to_dict(self) -> Dict[str, Any]:
        from .classify import condition_icon

        return {
            "date": self.date.isoformat(),
            "weatherCode": self.condition_code,
            "icon": condition_icon(self.condition_code),
            "condition": self.condition,
            "tempMax": self.temp_max,
            "tempMin": self.temp_min,
            "precipitation": self.precipitation_chance,
            "hasWarning": self.has_warning,
        }


@dataclass(frozen=True)
class CurrentConditions:
    """Display-only snapshot; no alert logic depends on it."""

    temperature: Optional[float]
    feels_like: Optional[float]
    humidity: Optional[float]
    condition_code: Optional[int]
    condition: str
    wind_speed: Optional[float]
    wind_direction: Optional[float]
    is_day: bool
    sunrise: Optional[str] = None
    sunset: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        from .classify import condition_icon

        return {
            "temperature": self.temperature,
            "feelsLike": self.feels_like,
            "humidity": self.humidity,
            "weatherCode": self.condition_code,
            "icon": condition_icon(self.condition_code),
            "condition": self.condition,
            "windSpeed": self.wind_speed,
            "windDirection": self.wind_direction,
            "isDay": self.is_day,
            "sunrise": self.sunrise,
            "sunset": self.sunset,
        }


@dataclass(frozen=True)
class WeatherReport:
    current: Optional[CurrentConditions]
    alerts: List[Alert] = field(default_factory=list)
    forecast: List[ForecastDay] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": self.current.to_dict() if self.current else None,
            "alerts": [a.to_dict() for a in self.alerts],
            "forecast": [d.to_dict() for d in self.forecast],
        }


def error_payload(message: str) -> Dict[str, str]:
    return {"message": message}
