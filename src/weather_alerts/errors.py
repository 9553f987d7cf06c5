# src/weather_alerts/errors.py
"""
Error taxonomy shared by providers, parsers and the pipeline.

Propagation rules
-----------------
- Alert sources raise these freely; `pipeline.py` converts them to
  "try the next source" and never lets them reach the caller.
- A failure in the current/forecast fetch propagates and becomes the
  `{"message": ...}` error payload.
"""

from __future__ import annotations


class WeatherAlertsError(Exception):
    """Base class for every error raised by weather-alerts."""


class NetworkError(WeatherAlertsError):
    """Connection-level failure or an HTTP error status."""


class RequestTimeout(WeatherAlertsError, TimeoutError):
    """No complete response arrived within the per-request bound."""


class MalformedPayload(WeatherAlertsError, ValueError):
    """A structurally required field is missing from a provider payload."""


class ParseFailure(WeatherAlertsError, ValueError):
    """A feed body could not be read as a feed at all."""
