"""Configuration management for Seismo-Mind."""

import re
from dataclasses import dataclass, field
from datetime import timedelta, timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


class ConfigError(Exception):
    """Exception raised for configuration errors."""
    pass


@dataclass
class AnalysisConfig:
    """Aggregation settings."""

    window_days: int = 7
    timezone: str = "local"  # "local", "UTC", "+08:00" or an IANA zone name


@dataclass
class PosterConfig:
    """Poster canvas and layout settings."""

    width: int = 1080
    height: int = 1920
    min_cell_size: float = 12.0
    max_cell_size: float = 36.0
    max_columns: int = 4
    base_alpha: float = 0.12
    seed: int = 0


@dataclass
class RasterConfig:
    """Settings for PNG export."""

    scale: float = 1.0


@dataclass
class Config:
    """Top-level configuration."""

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    poster: PosterConfig = field(default_factory=PosterConfig)
    raster: RasterConfig = field(default_factory=RasterConfig)


_OFFSET_RE = re.compile(r"^([+-])(\d{1,2}):?(\d{2})?$")


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Resolve a configured zone name; ``None``/"local" means the observer's local time.

    Raises:
        ConfigError: If the name is not a UTC offset or a known IANA zone.
    """
    if name is None:
        return None
    text = str(name).strip()
    if text == "" or text.lower() == "local":
        return None
    if text.upper() in ("UTC", "Z"):
        return timezone.utc
    m = _OFFSET_RE.match(text)
    if m:
        sign = -1 if m.group(1) == "-" else 1
        offset = timedelta(hours=int(m.group(2)), minutes=int(m.group(3) or 0))
        return timezone(sign * offset)
    try:
        return ZoneInfo(text)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone: {name}") from e


def _build(analysis_data: dict, poster_data: dict, raster_data: dict) -> Config:
    try:
        config = Config(
            analysis=AnalysisConfig(
                window_days=int(analysis_data.get("window_days", 7)),
                timezone=str(analysis_data.get("timezone", "local")),
            ),
            poster=PosterConfig(
                width=int(poster_data.get("width", 1080)),
                height=int(poster_data.get("height", 1920)),
                min_cell_size=float(poster_data.get("min_cell_size", 12.0)),
                max_cell_size=float(poster_data.get("max_cell_size", 36.0)),
                max_columns=int(poster_data.get("max_columns", 4)),
                base_alpha=float(poster_data.get("base_alpha", 0.12)),
                seed=int(poster_data.get("seed", 0)),
            ),
            raster=RasterConfig(
                scale=float(raster_data.get("scale", 1.0)),
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config value: {e}") from e
    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    """Check value ranges.

    Raises:
        ConfigError: On the first invalid value.
    """
    if config.analysis.window_days < 1:
        raise ConfigError("analysis.window_days must be >= 1")
    resolve_timezone(config.analysis.timezone)
    p = config.poster
    if p.width <= 0 or p.height <= 0:
        raise ConfigError("poster.width and poster.height must be positive")
    if not 0 < p.min_cell_size <= p.max_cell_size:
        raise ConfigError("poster.min_cell_size must be positive and <= max_cell_size")
    if p.max_columns < 1:
        raise ConfigError("poster.max_columns must be >= 1")
    if not 0.0 <= p.base_alpha <= 1.0:
        raise ConfigError("poster.base_alpha must be within [0, 1]")
    if config.raster.scale <= 0:
        raise ConfigError("raster.scale must be positive")


def default_config() -> Config:
    return Config()


def config_to_dict(config: Config) -> dict:
    """Convert Config to a plain dict (e.g. for JSON output)."""
    return {
        "analysis": {
            "window_days": config.analysis.window_days,
            "timezone": config.analysis.timezone,
        },
        "poster": {
            "width": config.poster.width,
            "height": config.poster.height,
            "min_cell_size": config.poster.min_cell_size,
            "max_cell_size": config.poster.max_cell_size,
            "max_columns": config.poster.max_columns,
            "base_alpha": config.poster.base_alpha,
            "seed": config.poster.seed,
        },
        "raster": {
            "scale": config.raster.scale,
        },
    }


def apply_overrides(config: Config, overrides: dict) -> Config:
    """Apply partial overrides to a Config. Overrides are merged shallowly per section.

    Args:
        config: Base configuration.
        overrides: Dict with optional keys analysis, poster, raster. Each value
            is a dict of field names to override (e.g. {"seed": 3}). ``None``
            values are ignored.

    Returns:
        A new Config with overrides applied.

    Raises:
        ConfigError: If an overridden value is invalid.
    """
    data = config_to_dict(config)
    for section in ("analysis", "poster", "raster"):
        if overrides.get(section):
            data[section].update({k: v for k, v in overrides[section].items() if v is not None})
    return _build(data["analysis"], data["poster"], data["raster"])


def load_config(path: str = "config.yml") -> Config:
    """Load configuration from a YAML file.

    Accepts both config.yml and config.yaml: if the given path does not exist,
    the other extension is tried in the same directory. Missing sections and
    keys fall back to defaults.

    Args:
        path: Path to the config file (e.g. config.yml or config.yaml).

    Returns:
        A Config object.

    Raises:
        FileNotFoundError: If neither the config file nor the alternate exists.
        ConfigError: If the file is not a mapping or holds invalid values.
    """
    config_path = Path(path)
    if not config_path.exists():
        # Try the other common extension in the same directory
        alt = config_path.with_suffix(".yaml" if config_path.suffix == ".yml" else ".yml")
        if alt.exists():
            config_path = alt
        else:
            raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    return _build(
        data.get("analysis") or {},
        data.get("poster") or {},
        data.get("raster") or {},
    )
