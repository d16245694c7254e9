"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

from .enums import StoreBackend
from .models import StepDefinition


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class StoreConfig(BaseModel):
    backend: StoreBackend = StoreBackend.MEMORY
    data_dir: str = "data/sessions"  # Used by the file backend
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "strategy_lab:"


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


def _default_steps() -> list[StepDefinition]:
    from strategy_lab.pipeline.steps import DEFAULT_STEPS

    return list(DEFAULT_STEPS)


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level application settings.

    Loaded from TOML config files, overridden by environment variables.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    steps: list[StepDefinition] = Field(default_factory=_default_steps)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "STRATEGY_LAB_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                data = tomli.load(f)

    if overrides:
        data.update(overrides)

    return Settings(**data)
