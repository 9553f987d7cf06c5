# src/weather_alerts/forecast.py
"""
Forecast normalizer: generic daily payload -> list[ForecastDay].

Input contract (Open-Meteo shape)
---------------------------------
payload["daily"] carries parallel arrays indexed by day offset:
    time                           -> ["2026-01-02", ...]   (required)
    weather_code                   -> [3, 61, ...]
    temperature_2m_max / _min      -> [9.1, ...]
    precipitation_probability_max  -> [40, ...]             (optional, 0 if absent)
payload["current"] is optional and only feeds CurrentConditions.
payload["timezone"] (IANA name) or payload["utc_offset_seconds"] give the
location's zone; calendar dates in "daily" are local to it.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .classify import describe_condition
from .errors import MalformedPayload
from .models import CurrentConditions, ForecastDay

log = logging.getLogger("forecast")


def _at(values: Optional[Sequence[Any]], i: int, default: Any = None) -> Any:
    if not isinstance(values, (list, tuple)) or i >= len(values):
        return default
    v = values[i]
    return default if v is None else v


def _number(v: Any) -> Optional[float]:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return v
    return None


def _parse_day(value: Any) -> date:
    if not isinstance(value, str):
        raise MalformedPayload(f"daily.time entry is not a date string: {value!r}")
    try:
        return date.fromisoformat(value[:10])
    except ValueError as e:
        raise MalformedPayload(f"daily.time entry is not a date: {value!r}") from e


def normalize_forecast(payload: Any) -> List[ForecastDay]:
    """One ForecastDay per entry of daily.time, has_warning initialised False."""
    daily = payload.get("daily") if isinstance(payload, dict) else None
    if not isinstance(daily, dict):
        raise MalformedPayload("forecast payload has no 'daily' block")
    dates = daily.get("time")
    if not isinstance(dates, list):
        raise MalformedPayload("forecast payload has no 'daily.time' array")

    codes = daily.get("weather_code")
    tmax = daily.get("temperature_2m_max")
    tmin = daily.get("temperature_2m_min")
    precip = daily.get("precipitation_probability_max")

    out: List[ForecastDay] = []
    for i, raw_date in enumerate(dates):
        code = _at(codes, i)
        out.append(
            ForecastDay(
                date=_parse_day(raw_date),
                condition_code=code,
                condition=describe_condition(code),
                temp_max=_number(_at(tmax, i)),
                temp_min=_number(_at(tmin, i)),
                precipitation_chance=_number(_at(precip, i, 0)) or 0,
                has_warning=False,
            )
        )
    log.debug("Normalized %d forecast day(s)", len(out))
    return out


def parse_current(payload: Any) -> Optional[CurrentConditions]:
    if not isinstance(payload, dict):
        return None
    current = payload.get("current")
    if not isinstance(current, dict):
        return None
    daily: Dict[str, Any] = payload.get("daily") or {}
    code = current.get("weather_code")
    return CurrentConditions(
        temperature=_number(current.get("temperature_2m")),
        feels_like=_number(current.get("apparent_temperature")),
        humidity=_number(current.get("relative_humidity_2m")),
        condition_code=code,
        condition=describe_condition(code),
        wind_speed=_number(current.get("wind_speed_10m")),
        wind_direction=_number(current.get("wind_direction_10m")),
        is_day=current.get("is_day") == 1,
        sunrise=_at(daily.get("sunrise"), 0),
        sunset=_at(daily.get("sunset"), 0),
    )


def forecast_timezone(payload: Any) -> tzinfo:
    """Zone of the forecast location: named zone, else fixed offset, else UTC."""
    if not isinstance(payload, dict):
        return timezone.utc
    name = payload.get("timezone")
    if isinstance(name, str) and name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            log.debug("Unknown forecast timezone %r, falling back to offset", name)
    offset = _number(payload.get("utc_offset_seconds"))
    if offset is not None:
        return timezone(timedelta(seconds=int(offset)))
    return timezone.utc
