# src/weather_alerts/settings.py
"""
Central configuration loader for weather-alerts.

- Location, display units and forecast length from config/app.yaml
- Provider toggles for the alert fallback chain
- ${VAR} and ${VAR:-default} expansion inside YAML strings
- Optional .env at the repo root (never overrides the real environment)
- Config directory override via WEATHER_ALERTS_CONFIG_DIR
- The Met Office API key comes from the environment only (METOFFICE_API_KEY)

Everything that can be wrong in app.yaml surfaces as a RuntimeError with the
offending path and the pydantic message, so the CLI can print it verbatim.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .regions import is_uk

ENV_ROOT = "WEATHER_ALERTS_ROOT"
ENV_CONFIG_DIR = "WEATHER_ALERTS_CONFIG_DIR"
ENV_METOFFICE_KEY = "METOFFICE_API_KEY"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

# ---------- environment helpers ----------


def _parse_dotenv(text: str) -> Dict[str, str]:
    """KEY=VALUE per line; `export ` prefixes, comments and quotes tolerated."""
    pairs: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, val = line.partition("=")
        val = val.strip()
        if len(val) >= 2 and val[0] == val[-1] and val[0] in "'\"":
            val = val[1:-1]
        if key.strip():
            pairs[key.strip()] = val
    return pairs


def _load_dotenv(dotenv_path: Path) -> None:
    if not dotenv_path.is_file():
        return
    for key, val in _parse_dotenv(dotenv_path.read_text(encoding="utf-8")).items():
        os.environ.setdefault(key, val)


_ENV_REF = re.compile(r"\$\{([A-Z0-9_]+)(?::-([^}]*))?\}")


def _env_expand(value: Any) -> Any:
    """Expand ${VAR} / ${VAR:-default} in every string of a YAML tree."""
    if isinstance(value, str):
        return _ENV_REF.sub(_env_lookup, value)
    if isinstance(value, dict):
        return {k: _env_expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_env_expand(v) for v in value]
    return value


def _env_lookup(match: re.Match[str]) -> str:
    name, default = match.group(1), match.group(2)
    if name in os.environ:
        return os.environ[name]
    # unknown variables without a default stay visible in the value
    return default if default is not None else match.group(0)


def _read_yaml(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f"{path} must contain a mapping at the top level")
    return _env_expand(data)


# ---------- Pydantic models ----------


class LocationConfig(BaseModel):
    latitude: float = 51.5074
    longitude: float = -0.1278
    label: str = "London"

    @field_validator("latitude")
    @classmethod
    def _check_lat(cls, v: float) -> float:
        if not -90 <= v <= 90:
            raise ValueError("latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    @classmethod
    def _check_lon(cls, v: float) -> float:
        if not -180 <= v <= 180:
            raise ValueError("longitude must be between -180 and 180")
        return v


class ProvidersConfig(BaseModel):
    """Alert-source toggles, listed in fallback order."""

    metoffice_rss: bool = True
    metoffice: bool = True
    open_meteo: bool = True


class Credentials(BaseModel):
    metoffice_api_key: Optional[str] = Field(
        default=None, description="Met Office DataHub site-specific API key"
    )

    @field_validator("metoffice_api_key")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return (v or "").strip() or None


class AppConfig(BaseModel):
    log_level: str = "INFO"
    location: LocationConfig = Field(default_factory=LocationConfig)
    units: str = Field(default="metric", description="metric | imperial (display only)")
    forecast_days: int = Field(default=3, description="Days of forecast to display")
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("units")
    @classmethod
    def _check_units(cls, v: str) -> str:
        u = v.strip().lower()
        if u not in {"metric", "imperial"}:
            raise ValueError("units must be 'metric' or 'imperial'")
        return u

    @field_validator("forecast_days")
    @classmethod
    def _check_days(cls, v: int) -> int:
        # Open-Meteo serves at most 16 days.
        if not 1 <= v <= 16:
            raise ValueError("forecast_days must be in [1, 16]")
        return v


class Paths(BaseModel):
    root: Path
    config_dir: Path

    @field_validator("root", "config_dir", mode="before")
    @classmethod
    def _expanduser(cls, v: Union[str, Path]) -> Path:
        return Path(v).expanduser()

    @property
    def app_yaml(self) -> Path:
        return self.config_dir / "app.yaml"


def _resolve_paths(root: Optional[Path]) -> Paths:
    """Explicit root, else $WEATHER_ALERTS_ROOT, else the checkout this file lives in."""
    if root is None:
        env_root = os.environ.get(ENV_ROOT, "")
        # src/weather_alerts/settings.py -> repo root is parents[2]
        root = Path(env_root) if env_root else Path(__file__).resolve().parents[2]
    cfg_override = os.environ.get(ENV_CONFIG_DIR)
    config_dir = Path(cfg_override) if cfg_override else Path(root).expanduser() / "config"
    return Paths(root=root, config_dir=config_dir)


class Settings(BaseModel):
    """Everything one fetch cycle needs to know."""

    paths: Paths
    app: AppConfig
    credentials: Credentials = Field(default_factory=Credentials)

    @classmethod
    def load(
        cls,
        root: Optional[Path] = None,
        dotenv: Optional[Path] = None,
    ) -> "Settings":
        """
        Resolve paths, load .env, then validate app.yaml.

        Precedence for every value: process environment, then `.env`, then
        app.yaml, then the model defaults.
        """
        paths = _resolve_paths(root)
        _load_dotenv(dotenv or paths.root / ".env")

        if not paths.app_yaml.is_file():
            raise RuntimeError(
                f"Missing required config: {paths.app_yaml}. "
                "Copy config/app.yaml from the repository and set your location."
            )
        try:
            app_cfg = AppConfig(**_read_yaml(paths.app_yaml))
        except ValidationError as e:
            raise RuntimeError(f"Invalid app.yaml configuration ({paths.app_yaml}): {e}") from e

        credentials = Credentials(metoffice_api_key=os.environ.get(ENV_METOFFICE_KEY))
        return cls(paths=paths, app=app_cfg, credentials=credentials)

    # ----------------- alert chain selection -----------------

    @property
    def is_uk(self) -> bool:
        loc = self.app.location
        return is_uk(loc.latitude, loc.longitude)

    @property
    def has_metoffice_key(self) -> bool:
        return self.credentials.metoffice_api_key is not None

    @property
    def enabled_alert_sources(self) -> List[str]:
        """
        Alert sources in fallback order. Both Met Office sources are UK-only
        and DataHub additionally needs a key; Open-Meteo works anywhere.
        """
        toggles = self.app.providers
        candidates = [
            ("metoffice_rss", toggles.metoffice_rss and self.is_uk),
            ("metoffice", toggles.metoffice and self.is_uk and self.has_metoffice_key),
            ("open_meteo", toggles.open_meteo),
        ]
        return [name for name, usable in candidates if usable]
