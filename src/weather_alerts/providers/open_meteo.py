# src/weather_alerts/providers/open_meteo.py
"""
Open-Meteo provider (global, keyless).

Two uses:
- current conditions + daily forecast for display (branch a of a cycle),
  together with the location's timezone the daily dates are local to;
- a short wind/weather-code forecast that rules.synthesize_from_forecast turns
  into alerts when no warnings feed applies (last step of the alert chain).

Wind speeds for the alert request are always km/h, whatever units the display
uses, because the alert thresholds are expressed in km/h.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import MalformedPayload
from ..forecast import forecast_timezone, normalize_forecast, parse_current
from ..models import Alert, CurrentConditions, ForecastDay
from ..rules import synthesize_from_forecast
from .common import fetch

log = logging.getLogger("providers.open_meteo")

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
ALERT_FORECAST_DAYS = 4

_CURRENT_FIELDS = (
    "temperature_2m,relative_humidity_2m,apparent_temperature,weather_code,"
    "wind_speed_10m,wind_direction_10m,is_day"
)
_DAILY_FIELDS = (
    "weather_code,temperature_2m_max,temperature_2m_min,precipitation_probability_max,"
    "precipitation_sum,wind_speed_10m_max,wind_gusts_10m_max,sunrise,sunset"
)
_ALERT_DAILY_FIELDS = (
    "weather_code,temperature_2m_max,temperature_2m_min,precipitation_probability_max,"
    "wind_speed_10m_max,wind_gusts_10m_max"
)


def forecast_params(lat: float, lon: float, units: str, days: int) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "latitude": lat,
        "longitude": lon,
        "current": _CURRENT_FIELDS,
        "daily": _DAILY_FIELDS,
        "timezone": "auto",
        "forecast_days": days,
    }
    if units == "imperial":
        params["temperature_unit"] = "fahrenheit"
        params["wind_speed_unit"] = "mph"
    return params


def alert_params(lat: float, lon: float) -> Dict[str, Any]:
    return {
        "latitude": lat,
        "longitude": lon,
        "current": "weather_code,wind_speed_10m,wind_gusts_10m",
        "daily": _ALERT_DAILY_FIELDS,
        "timezone": "auto",
        "forecast_days": ALERT_FORECAST_DAYS,
    }


async def fetch_current_and_forecast(
    client: httpx.AsyncClient,
    lat: float,
    lon: float,
    units: str = "metric",
    days: int = 3,
) -> Tuple[Optional[CurrentConditions], List[ForecastDay], tzinfo]:
    data = await fetch(client, FORECAST_URL, params=forecast_params(lat, lon, units, days))
    if not isinstance(data, dict):
        raise MalformedPayload("Open-Meteo did not return a JSON object")
    forecast = normalize_forecast(data)
    current = parse_current(data)
    tz = forecast_timezone(data)
    log.info("Open-Meteo: %d forecast day(s) in %s", len(forecast), tz)
    return current, forecast, tz


async def fetch_alerts(client: httpx.AsyncClient, lat: float, lon: float) -> List[Alert]:
    data = await fetch(client, FORECAST_URL, params=alert_params(lat, lon))
    if not isinstance(data, dict):
        raise MalformedPayload("Open-Meteo did not return a JSON object")
    alerts = synthesize_from_forecast(data)
    log.info("Open-Meteo: %d alert(s) derived from forecast", len(alerts))
    return alerts
