"""Application configuration: pydantic models plus layered loading."""

from __future__ import annotations

from .defaults import DEFAULT_CONFIG, DEFAULT_USER_AGENT
from .load import load_config, merge_layers, to_sectioned
from .schema import AppConfig, EnvOverrides

__all__ = [
    "DEFAULT_CONFIG",
    "DEFAULT_USER_AGENT",
    "AppConfig",
    "EnvOverrides",
    "load_config",
    "merge_layers",
    "to_sectioned",
]
