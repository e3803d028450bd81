"""Layered configuration loading.

Layers, lowest to highest precedence::

    DEFAULT_CONFIG  <  YAML file  <  ANIMESEARCH_* env (incl. .env)  <  CLI

Every layer is first brought into the sectioned shape of ``config.yaml``
(``http.timeout_seconds`` rather than ``http_timeout_seconds``) and then
merged section by section, so a YAML file that only sets one key of a
section keeps the defaults of the others.
"""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_TOP_LEVEL_KEYS = ("app_name", "environment")
_SECTIONS = ("rules", "http", "search", "updater", "logging")

# Flat keys used by env vars and CLI flags; "<section>_<key>" except for
# the few whose flat name is shorter than the sectioned one.
_FLAT_ALIASES: dict[str, tuple[str, str]] = {
    "rule_dir": ("rules", "rule_dir"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
}


def _split_flat_key(key: str) -> tuple[str, str] | None:
    if key in _FLAT_ALIASES:
        return _FLAT_ALIASES[key]
    section, _, rest = key.partition("_")
    if section in _SECTIONS and rest:
        return section, rest
    return None


def to_sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one configuration layer into the sectioned shape.

    Unknown keys are dropped; flat keys (``search_deadline_seconds``) are
    moved into their section.  A sectioned value and a flat value for the
    same setting in one layer resolve in favour of the flat one.
    """
    sectioned: dict[str, Any] = {
        key: layer[key] for key in _TOP_LEVEL_KEYS if key in layer
    }
    for section in _SECTIONS:
        value = layer.get(section)
        if isinstance(value, Mapping):
            sectioned[section] = dict(value)

    for key, value in layer.items():
        target = _split_flat_key(key)
        if target is None:
            continue
        section, name = target
        sectioned.setdefault(section, {})[name] = value
    return sectioned


def merge_layers(layers: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge sectioned layers; later layers win per key inside a section."""
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, Mapping):
                current.update(value)
            else:
                merged[key] = dict(value) if isinstance(value, Mapping) else value
    return merged


def read_yaml_layer(path: Path) -> dict[str, Any]:
    """Read a YAML config file; an empty file is an empty layer."""
    if not path.exists():
        raise FileNotFoundError(path)
    document = yaml.safe_load(path.read_text(encoding="utf-8"))
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(
            f"{path}: config YAML must be a mapping, got {type(document).__name__}"
        )
    return document


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Build the validated :class:`AppConfig` from all layers.

    A ``.env`` file only fills variables that are not already set in the
    process environment.  Nothing is created on disk.

    Raises:
        FileNotFoundError: an explicitly given file does not exist.
        pydantic.ValidationError: the merged configuration is invalid.
    """
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    layers = [to_sectioned(deepcopy(DEFAULT_CONFIG))]
    if config_path is not None:
        layers.append(to_sectioned(read_yaml_layer(config_path)))
    layers.append(to_sectioned(EnvOverrides().to_update_dict()))
    layers.append(to_sectioned(cli_overrides or {}))

    return AppConfig.model_validate(merge_layers(layers))
