"""Configuration loading for ZimEstimate MCP."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from utils.errors import DEFAULT_FEED_TIMEOUT


class EstimatorConfig(BaseModel):
    """Wall and material estimation constants."""

    wall_height: float = Field(default=2.7, gt=0)
    door_area: float = Field(default=2.0, ge=0)
    window_area: float = Field(default=1.5, ge=0)
    cement_bags_per_sqm: float = Field(default=0.5, ge=0)
    sand_m3_per_sqm: float = Field(default=0.02, ge=0)
    default_wastage_percent: float = Field(default=10.0, ge=0)


class EditorConfig(BaseModel):
    """Floor plan editor settings. Distances are in meters."""

    grid_snap_size: float = Field(default=0.5, gt=0)
    pixels_per_meter: float = Field(default=40.0, gt=0)
    snap_to_grid: bool = True
    collision_margin: float = Field(default=0.1, ge=0)
    alignment_threshold: float = Field(default=0.25, ge=0)
    min_dimension: float = Field(default=0.5, gt=0)
    layout_columns: int = Field(default=4, ge=1)
    history_limit: int = Field(default=100, ge=1)
    draft_max_age_hours: float = Field(default=24.0, gt=0)


class PriceFeedConfig(BaseModel):
    """A JSON price feed to import observations from."""

    id: str
    name: str
    url: str
    currency: str = "USD"
    location: str | None = None


class PricingConfig(BaseModel):
    """Live price lookup settings."""

    zwg_rate: float = Field(default=30.0, gt=0)
    cache_ttl_seconds: float = Field(default=300.0, ge=0)
    lookback_days: int = Field(default=30, ge=1)
    history_weeks: int = Field(default=8, ge=2)
    trend_threshold_percent: float = Field(default=1.0, ge=0)
    feed_timeout: float = Field(default=DEFAULT_FEED_TIMEOUT, gt=0)
    feeds: list[PriceFeedConfig] = Field(default_factory=list)


class StorageConfig(BaseModel):
    """Database location."""

    db_path: str | None = None


class ProjectsConfig(BaseModel):
    """Project quota settings."""

    free_project_limit: int = Field(default=3, ge=0)


class AppConfig(BaseModel):
    """Main configuration model."""

    name: str = "ZimEstimate"
    owner_id: str = "local"
    tier: str = "free"
    estimator: EstimatorConfig = Field(default_factory=EstimatorConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    projects: ProjectsConfig = Field(default_factory=ProjectsConfig)


class SecretsConfig(BaseModel):
    """Secrets configuration model."""

    feeds: dict[str, dict[str, str]] = Field(default_factory=dict)


def find_config_dir() -> Path:
    """Find the config directory.

    Looks for config directory in the following order:
    1. ./config (relative to cwd)
    2. ../config (parent of cwd)
    3. ~/.config/zimestimate
    """
    cwd = Path.cwd()

    if (cwd / "config").is_dir():
        return cwd / "config"

    if (cwd.parent / "config").is_dir():
        return cwd.parent / "config"

    home_config = Path.home() / ".config" / "zimestimate"
    if home_config.is_dir():
        return home_config

    return cwd / "config"


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Load the main configuration."""
    if config_dir is None:
        config_dir = find_config_dir()

    config_path = config_dir / "config.yaml"
    data = load_yaml(config_path)
    return AppConfig.model_validate(data)


def load_secrets(config_dir: Path | None = None) -> SecretsConfig:
    """Load the secrets configuration."""
    if config_dir is None:
        config_dir = find_config_dir()

    secrets_path = config_dir / "secrets.yaml"
    data = load_yaml(secrets_path)
    return SecretsConfig.model_validate(data)


def get_feed_secret(secrets: SecretsConfig, feed_id: str, key: str) -> str | None:
    """Get a secret value for a specific price feed."""
    feed_secrets = secrets.feeds.get(feed_id, {})
    if isinstance(feed_secrets, dict):
        return feed_secrets.get(key)
    return None
