# src/weather_alerts/rules.py
"""
Threshold rules: derive alerts from raw forecast numerics.

Used when no explicit or region warnings feed is available. Two input shapes
are supported, each with its own thresholds (they are kept separate on
purpose; the wind bounds are expressed differently by the two upstreams):

Met Office daily timeSeries (probabilities in %, wind in m/s)
    thunder (sferics) / heavy snow / heavy rain  > 50%  -> Yellow, > 70% -> Amber
    wind speed > 20 m/s or gust > 25 m/s             -> Yellow
    wind speed > 25 m/s or gust > 30 m/s             -> Amber

Open-Meteo daily arrays (WMO codes, wind in km/h)
    code >= 95 thunderstorm (>= 96 hail -> Amber)
    code 75/86 heavy snow (Amber), 65/82 heavy rain (Yellow)
    wind > 70 km/h or gust > 90 km/h   -> Yellow
    wind > 90 km/h or gust > 120 km/h  -> Amber
    code 48 dense fog (Yellow)

Every synthesized alert spans the whole calendar day and yields at most one
alert per category per day. No dedup here; `merge.py` always runs afterwards.

Public API
----------
synthesize_from_probabilities(payload) -> list[Alert]
synthesize_from_forecast(payload)      -> list[Alert]
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from .models import Alert, AlertSource, Severity

log = logging.getLogger("rules")

# -----------------------------------------------------------------------------
# Thresholds
# -----------------------------------------------------------------------------

PROBABILITY_WARN = 50
PROBABILITY_AMBER = 70

# Met Office probability path, m/s
WIND_SPEED_WARN_MS = 20
WIND_GUST_WARN_MS = 25
WIND_SPEED_AMBER_MS = 25
WIND_GUST_AMBER_MS = 30

# Open-Meteo path, km/h
WIND_SPEED_WARN_KMH = 70
WIND_GUST_WARN_KMH = 90
WIND_SPEED_AMBER_KMH = 90
WIND_GUST_AMBER_KMH = 120

THUNDERSTORM_CODE = 95
HAIL_CODES = {96, 99}
HEAVY_SNOW_CODES = {75, 86}
HEAVY_RAIN_CODES = {65, 82}
DENSE_FOG_CODE = 48

# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _num(x: Any) -> float:
    return float(x) if _is_number(x) else 0.0


def _max_of(entry: Dict[str, Any], *keys: str) -> float:
    return max(_num(entry.get(k)) for k in keys)


def _fmt(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else f"{x:g}"


def _day_span(day: date, tz: tzinfo) -> tuple:
    start = datetime.combine(day, time(0, 0, 0), tzinfo=tz)
    end = datetime.combine(day, time(23, 59, 59), tzinfo=tz)
    return start, end


def _parse_day(value: Any) -> Optional[date]:
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _probability_severity(prob: float) -> Severity:
    return Severity.AMBER if prob > PROBABILITY_AMBER else Severity.YELLOW


def _day_alert(
    event: str,
    description: str,
    severity: Severity,
    day: date,
    tz: tzinfo,
    source: str,
) -> Alert:
    start, end = _day_span(day, tz)
    return Alert(
        event=event,
        description=description,
        severity=severity,
        start=start,
        end=end,
        source=source,
    )


# -----------------------------------------------------------------------------
# Met Office probability fields
# -----------------------------------------------------------------------------


def _time_series(payload: Any) -> Iterable[Dict[str, Any]]:
    if not isinstance(payload, dict):
        return []
    out: List[Dict[str, Any]] = []
    for feature in payload.get("features") or []:
        if not isinstance(feature, dict):
            continue
        props = feature.get("properties") or {}
        series = props.get("timeSeries") if isinstance(props, dict) else None
        if isinstance(series, list):
            out.extend(e for e in series if isinstance(e, dict))
    return out


def _alerts_for_probability_day(entry: Dict[str, Any], day: date) -> List[Alert]:
    src = AlertSource.METOFFICE_ANALYSIS
    tz = timezone.utc
    out: List[Alert] = []

    sferics = _max_of(entry, "dayProbabilityOfSferics", "nightProbabilityOfSferics")
    if sferics > PROBABILITY_WARN:
        out.append(
            _day_alert(
                "Thunderstorm Warning",
                f"Thunderstorms expected ({_fmt(sferics)}% probability) "
                "with possible lightning and heavy rain.",
                _probability_severity(sferics),
                day,
                tz,
                src,
            )
        )

    snow = _max_of(entry, "dayProbabilityOfHeavySnow", "nightProbabilityOfHeavySnow")
    if snow > PROBABILITY_WARN:
        out.append(
            _day_alert(
                "Snow Warning",
                f"Heavy snow expected ({_fmt(snow)}% probability). "
                "Travel disruption likely. Take care on roads and paths.",
                _probability_severity(snow),
                day,
                tz,
                src,
            )
        )

    rain = _max_of(entry, "dayProbabilityOfHeavyRain", "nightProbabilityOfHeavyRain")
    if rain > PROBABILITY_WARN:
        out.append(
            _day_alert(
                "Heavy Rain Warning",
                f"Heavy rainfall expected ({_fmt(rain)}% probability). "
                "Surface water flooding possible in places.",
                _probability_severity(rain),
                day,
                tz,
                src,
            )
        )

    wind = _max_of(entry, "midday10MWindSpeed", "midnight10MWindSpeed")
    gust = _max_of(entry, "midday10MWindGust", "midnight10MWindGust")
    if wind > WIND_SPEED_WARN_MS or gust > WIND_GUST_WARN_MS:
        severity = (
            Severity.AMBER
            if wind > WIND_SPEED_AMBER_MS or gust > WIND_GUST_AMBER_MS
            else Severity.YELLOW
        )
        out.append(
            _day_alert(
                "Wind Warning",
                f"Strong winds expected. Sustained: {round(wind * 3.6)} km/h, "
                f"Gusts: {round(gust * 3.6)} km/h. "
                "Secure loose objects and take care when driving.",
                severity,
                day,
                tz,
                src,
            )
        )
    return out


def synthesize_from_probabilities(payload: Any) -> List[Alert]:
    """Alerts from Met Office site-specific daily probability/wind fields."""
    out: List[Alert] = []
    for entry in _time_series(payload):
        day = _parse_day(entry.get("time"))
        if day is None:
            log.debug("Skipping timeSeries entry without a usable time: %r", entry.get("time"))
            continue
        out.extend(_alerts_for_probability_day(entry, day))
    log.debug("Synthesized %d alert(s) from probability fields", len(out))
    return out


# -----------------------------------------------------------------------------
# Open-Meteo weather codes + wind
# -----------------------------------------------------------------------------


def _payload_tz(payload: Dict[str, Any]) -> tzinfo:
    offset = payload.get("utc_offset_seconds")
    if _is_number(offset):
        return timezone(timedelta(seconds=int(offset)))
    return timezone.utc


def _alerts_for_forecast_day(
    code: Optional[int], wind: float, gust: float, day: date, tz: tzinfo
) -> List[Alert]:
    src = AlertSource.WEATHER_ANALYSIS
    out: List[Alert] = []

    if code is not None and code >= THUNDERSTORM_CODE:
        hail = code in HAIL_CODES
        desc = "Thunderstorms expected with possible lightning and heavy rain."
        if hail:
            desc += " Hail is also possible."
        out.append(
            _day_alert(
                "Thunderstorm Warning",
                desc,
                Severity.AMBER if hail else Severity.YELLOW,
                day,
                tz,
                src,
            )
        )

    if code in HEAVY_SNOW_CODES:
        out.append(
            _day_alert(
                "Snow Warning",
                f"Heavy snow expected (weather code {code}). "
                "Travel disruption likely. Take care on roads and paths.",
                Severity.AMBER,
                day,
                tz,
                src,
            )
        )

    if code in HEAVY_RAIN_CODES:
        out.append(
            _day_alert(
                "Heavy Rain Warning",
                f"Heavy rainfall expected (weather code {code}). "
                "Surface water flooding possible in places.",
                Severity.YELLOW,
                day,
                tz,
                src,
            )
        )

    if wind > WIND_SPEED_WARN_KMH or gust > WIND_GUST_WARN_KMH:
        severity = (
            Severity.AMBER
            if wind > WIND_SPEED_AMBER_KMH or gust > WIND_GUST_AMBER_KMH
            else Severity.YELLOW
        )
        out.append(
            _day_alert(
                "Wind Warning",
                f"Strong winds expected. Sustained: {round(wind)} km/h, "
                f"Gusts: {round(gust)} km/h. "
                "Secure loose objects and take care when driving.",
                severity,
                day,
                tz,
                src,
            )
        )

    if code == DENSE_FOG_CODE:
        out.append(
            _day_alert(
                "Fog Warning",
                "Dense fog expected with reduced visibility. Allow extra time for travel.",
                Severity.YELLOW,
                day,
                tz,
                src,
            )
        )
    return out


def synthesize_from_forecast(payload: Any) -> List[Alert]:
    """Alerts from Open-Meteo daily weather codes and wind maxima (km/h)."""
    if not isinstance(payload, dict):
        return []
    daily = payload.get("daily")
    if not isinstance(daily, dict):
        return []

    dates = daily.get("time") or []
    codes = daily.get("weather_code") or []
    winds = daily.get("wind_speed_10m_max") or []
    gusts = daily.get("wind_gusts_10m_max") or []
    tz = _payload_tz(payload)

    out: List[Alert] = []
    for i, raw_date in enumerate(dates):
        day = _parse_day(raw_date)
        if day is None:
            continue
        code = codes[i] if i < len(codes) and _is_number(codes[i]) else None
        wind = _num(winds[i]) if i < len(winds) else 0.0
        gust = _num(gusts[i]) if i < len(gusts) else 0.0
        out.extend(
            _alerts_for_forecast_day(
                int(code) if code is not None else None, wind, gust, day, tz
            )
        )
    log.debug("Synthesized %d alert(s) from forecast codes", len(out))
    return out
