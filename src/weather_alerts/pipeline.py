# src/weather_alerts/pipeline.py
"""
Pipeline: (forecast ∥ alert chain) → merge/rank → correlate → report

One fetch cycle runs two independent branches concurrently on the event loop:

  a) current conditions + daily forecast (Open-Meteo). Any failure here fails
     the whole cycle.
  b) the alert chain. Sources are tried strictly one after another, in
     fallback order, and the first one that answers wins, even with zero
     alerts ("no warnings" is a valid answer). Failures are logged and
     absorbed; if every source fails the cycle simply has no alerts.

Alert chain order (see Settings.enabled_alert_sources):
    metoffice_rss  regional warnings feed            (UK only)
    metoffice      DataHub explicit warnings, else   (UK only, needs API key)
                   alerts derived from probabilities
    open_meteo     alerts derived from weather codes and wind

Provider interfaces used here:

providers.open_meteo
    - fetch_current_and_forecast(client, lat, lon, units, days)
          -> (CurrentConditions | None, list[ForecastDay], tzinfo)
    - fetch_alerts(client, lat, lon) -> list[Alert]
providers.metoffice_rss
    - fetch_alerts(client, lat, lon) -> list[Alert]
providers.metoffice
    - fetch_alerts(client, lat, lon, api_key) -> list[Alert]

Logging:
    Respects settings.app.log_level and emits concise progress metrics.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from . import merge
from .errors import WeatherAlertsError
from .models import Alert, CurrentConditions, ForecastDay, WeatherReport, error_payload
from .providers import metoffice, metoffice_rss, open_meteo
from .providers.common import new_client
from .settings import Settings

# ------------------------ logging setup ------------------------


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ------------------------ alert chain ------------------------

AttemptFn = Callable[[httpx.AsyncClient, Settings], Awaitable[List[Alert]]]


@dataclass(frozen=True)
class Attempt:
    name: str
    run: AttemptFn


@dataclass
class AttemptResult:
    source: str
    ok: bool
    alerts: List[Alert] = field(default_factory=list)
    error: Optional[Exception] = None


async def _from_region_feed(client: httpx.AsyncClient, settings: Settings) -> List[Alert]:
    loc = settings.app.location
    return await metoffice_rss.fetch_alerts(client, loc.latitude, loc.longitude)


async def _from_metoffice(client: httpx.AsyncClient, settings: Settings) -> List[Alert]:
    loc = settings.app.location
    api_key = settings.credentials.metoffice_api_key or ""
    return await metoffice.fetch_alerts(client, loc.latitude, loc.longitude, api_key)


async def _from_open_meteo(client: httpx.AsyncClient, settings: Settings) -> List[Alert]:
    loc = settings.app.location
    return await open_meteo.fetch_alerts(client, loc.latitude, loc.longitude)


_ATTEMPTS: Dict[str, AttemptFn] = {
    "metoffice_rss": _from_region_feed,
    "metoffice": _from_metoffice,
    "open_meteo": _from_open_meteo,
}


def alert_attempts(settings: Settings) -> List[Attempt]:
    return [Attempt(name, _ATTEMPTS[name]) for name in settings.enabled_alert_sources]


async def _try(attempt: Attempt, client: httpx.AsyncClient, settings: Settings) -> AttemptResult:
    log = logging.getLogger("pipeline")
    try:
        alerts = await attempt.run(client, settings)
    except Exception as e:
        log.warning("Alert source '%s' failed: %s; trying next source", attempt.name, e)
        return AttemptResult(source=attempt.name, ok=False, error=e)
    return AttemptResult(source=attempt.name, ok=True, alerts=list(alerts))


async def fetch_alert_chain(client: httpx.AsyncClient, settings: Settings) -> List[Alert]:
    """Run alert sources in order; stop at the first one that answers."""
    log = logging.getLogger("pipeline")
    attempts = alert_attempts(settings)
    for attempt in attempts:
        result = await _try(attempt, client, settings)
        if result.ok:
            log.info("Alerts from '%s': %d", result.source, len(result.alerts))
            return result.alerts
    log.warning("No alert source answered (%d tried); reporting no alerts", len(attempts))
    return []


# ------------------------ forecast branch ------------------------


async def fetch_current_and_forecast(
    client: httpx.AsyncClient, settings: Settings
) -> Tuple[Optional[CurrentConditions], List[ForecastDay], tzinfo]:
    loc = settings.app.location
    return await open_meteo.fetch_current_and_forecast(
        client,
        loc.latitude,
        loc.longitude,
        units=settings.app.units,
        days=settings.app.forecast_days,
    )


# ------------------------ one cycle ------------------------


async def _cycle(client: httpx.AsyncClient, settings: Settings) -> WeatherReport:
    log = logging.getLogger("pipeline")

    (current, forecast, tz), alerts = await asyncio.gather(
        fetch_current_and_forecast(client, settings),
        fetch_alert_chain(client, settings),
    )

    ranked = merge.merge(alerts)
    if len(ranked) != len(alerts):
        log.debug("Dropped %d duplicate alert(s)", len(alerts) - len(ranked))
    forecast = merge.correlate(ranked, forecast, tz)

    log.info(
        "Cycle for %s: %d alert(s), %d forecast day(s), %d flagged",
        settings.app.location.label,
        len(ranked),
        len(forecast),
        sum(1 for d in forecast if d.has_warning),
    )
    return WeatherReport(current=current, alerts=ranked, forecast=forecast)


async def fetch_weather(
    settings: Settings, client: Optional[httpx.AsyncClient] = None
) -> WeatherReport:
    """
    Execute one fetch cycle. Raises WeatherAlertsError (or a subclass) when
    the forecast branch fails; alert-source failures never propagate.
    """
    if client is not None:
        return await _cycle(client, settings)
    async with new_client() as own_client:
        return await _cycle(own_client, settings)


# ------------------------ public entrypoint ------------------------


def run(settings: Settings) -> Dict[str, Any]:
    """
    Execute one cycle and return the payload for the rendering side:
    {"current", "alerts", "forecast"} on success, {"message"} on failure.

    Typical usage (in cli.py):
        settings = Settings.load()
        payload = pipeline.run(settings)
    """
    _setup_logging(settings.app.log_level)
    log = logging.getLogger("pipeline")

    try:
        report = asyncio.run(fetch_weather(settings))
    except WeatherAlertsError as e:
        log.error("Weather fetch failed: %s", e)
        return error_payload(str(e))

    return report.to_dict()
