"""Settings loader for rank orders and propagation policy.

The settings file (anchorsched.yaml) is the only place these values come
from; the engines take them as explicit arguments.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from . import context

DEFAULT_SETTINGS_FILE = "anchorsched.yaml"
DEFAULT_NMR_RANKS = ["A1", "A2", "B1", "B2", "C1"]
DEFAULT_PA_RANKS = ["Critical", "High", "Medium", "Low"]


class RankConfig(BaseModel):
    """Rank orders, highest rank first."""

    nmr_ranks: list[str] = Field(default_factory=lambda: list(DEFAULT_NMR_RANKS))
    pa_ranks: list[str] = Field(default_factory=lambda: list(DEFAULT_PA_RANKS))


class PropagationPolicy(BaseModel):
    """Which protected instances propagation leaves alone, and how offsets count."""

    skip_complete: bool = True
    skip_locked: bool = True
    skip_overridden: bool = True
    use_business_days: bool = False


class Settings(BaseModel):
    """Top-level settings."""

    ranks: RankConfig = RankConfig()
    propagation: PropagationPolicy = PropagationPolicy()
    max_propagation_iterations: int = Field(default=10, ge=1)


def load_settings(settings_path: Path | str) -> Settings:
    """Load settings from a YAML file.

    Args:
        settings_path: Path to anchorsched.yaml

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or its contents are invalid
    """
    settings_path = Path(settings_path)

    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open(encoding="utf-8") as f:
        try:
            data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse settings YAML: {e}") from e

    if not data:
        raise ValueError("Empty settings file")
    if not isinstance(data, dict):
        raise ValueError("Settings file must contain a mapping at the root level")

    try:
        return Settings.model_validate(data)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid settings: {e}") from e


def discover_settings(settings_path: Path | None = None) -> Settings:
    """Find and load settings, falling back to defaults.

    Search order:
    1. Explicit settings_path argument
    2. Global context (set via CLI --config)
    3. Current directory / anchorsched.yaml
    """
    if settings_path is not None:
        return load_settings(settings_path)

    ctx_path = context.get_settings_path()
    if ctx_path is not None:
        return load_settings(ctx_path)

    cwd_path = Path(DEFAULT_SETTINGS_FILE)
    if cwd_path.exists():
        return load_settings(cwd_path)

    return Settings()
