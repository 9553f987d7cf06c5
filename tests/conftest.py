from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import pytest

from weather_alerts.models import Alert
from weather_alerts.settings import (
    AppConfig,
    Credentials,
    LocationConfig,
    Paths,
    ProvidersConfig,
    Settings,
)

LONDON = (51.5074, -0.1278)
NEW_YORK = (40.7128, -74.0060)

# --------------------------- temp repo layout ---------------------------


@pytest.fixture
def tmp_repo(tmp_path: Path) -> Path:
    (tmp_path / "config").mkdir(parents=True, exist_ok=True)
    return tmp_path


# --------------------------- Settings factory ---------------------------


@pytest.fixture
def settings_factory(
    tmp_repo: Path, monkeypatch: pytest.MonkeyPatch
) -> Callable[..., Settings]:
    """Build Settings rooted at tmp_repo without reading real YAML/.env."""
    monkeypatch.setenv("WEATHER_ALERTS_ROOT", str(tmp_repo))
    monkeypatch.delenv("METOFFICE_API_KEY", raising=False)

    def _build(
        latitude: float = LONDON[0],
        longitude: float = LONDON[1],
        api_key: Optional[str] = None,
        metoffice_rss: bool = True,
        metoffice: bool = True,
        open_meteo: bool = True,
        units: str = "metric",
        forecast_days: int = 3,
        log_level: str = "ERROR",
    ) -> Settings:
        paths = Paths(root=tmp_repo, config_dir=tmp_repo / "config")
        app = AppConfig(
            log_level=log_level,
            location=LocationConfig(latitude=latitude, longitude=longitude, label="Test"),
            units=units,
            forecast_days=forecast_days,
            providers=ProvidersConfig(
                metoffice_rss=metoffice_rss, metoffice=metoffice, open_meteo=open_meteo
            ),
        )
        return Settings(
            paths=paths, app=app, credentials=Credentials(metoffice_api_key=api_key)
        )

    return _build


# --------------------------- Network hardening ---------------------------


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch):
    """Disallow real HTTP from provider modules. Tests must stub `fetch` explicitly."""

    async def _nope(*args, **kwargs):
        raise RuntimeError(
            "Network access disabled in tests. Monkeypatch provider fetch calls."
        )

    for mod in ("metoffice", "metoffice_rss", "open_meteo"):
        monkeypatch.setattr(f"weather_alerts.providers.{mod}.fetch", _nope)


# --------------------------- Helpers to monkeypatch providers ---------------------------


@pytest.fixture
def patch_source(monkeypatch: pytest.MonkeyPatch):
    """
    Replace one provider's fetch_alerts. `result` is either a list of alerts
    or an exception instance to raise. Returns the list that records calls.
    """
    calls: List[str] = []

    def _set(provider: str, result):
        async def fake(*args, **kwargs) -> List[Alert]:
            calls.append(provider)
            if isinstance(result, Exception):
                raise result
            return list(result)

        monkeypatch.setattr(
            f"weather_alerts.providers.{provider}.fetch_alerts", fake, raising=True
        )

    _set.calls = calls  # type: ignore[attr-defined]
    return _set


@pytest.fixture
def patch_forecast(monkeypatch: pytest.MonkeyPatch):
    """Replace Open-Meteo current+forecast with a fixed result or exception."""

    def _set(result):
        async def fake(*args, **kwargs):
            if isinstance(result, Exception):
                raise result
            return result

        monkeypatch.setattr(
            "weather_alerts.providers.open_meteo.fetch_current_and_forecast",
            fake,
            raising=True,
        )

    return _set
