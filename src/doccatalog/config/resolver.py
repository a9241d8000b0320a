"""Merge configuration layers into a validated :class:`CatalogConfig`."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import CatalogConfig

ENV_PREFIX = "DOCCATALOG__"


def resolve_with_precedence(
    *,
    defaults: CatalogConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> CatalogConfig:
    """Layer overrides on top of the defaults: file, then environment, then CLI.

    Keys may be nested mappings or dotted paths (``"monitor.folders"``). Lists
    are replaced wholesale rather than merged.

    Raises:
        ConfigError: If an override is malformed or the result fails validation.
    """
    merged: dict[str, Any] = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, layer in layers:
        if layer is None:
            continue
        merged = _merge(merged, _expand_dotted(layer, label=label))

    try:
        return CatalogConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: CatalogConfig) -> Dict[str, str]:
    """Render the config as ``DOCCATALOG__SECTION__KEY`` environment assignments."""
    flat: Dict[str, str] = {}
    for section, values in config.model_dump(mode="python").items():
        for key, value in values.items():
            env_key = f"{ENV_PREFIX}{section.upper()}__{key.upper()}"
            if isinstance(value, (list, dict)):
                flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
            elif value is None:
                flat[env_key] = "null"
            else:
                flat[env_key] = str(value)
    return flat


def _expand_dotted(layer: Mapping[str, Any], *, label: str) -> dict[str, Any]:
    if not isinstance(layer, MappingABC):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, label=label)
        *parents, leaf = key.split(".")
        node = expanded
        for segment in parents:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                raise ConfigError(
                    f"{label.capitalize()} override for {key} conflicts with an existing value."
                )
            node = child
        existing = node.get(leaf)
        if isinstance(existing, dict) and isinstance(value, dict):
            node[leaf] = _merge(existing, value)
        else:
            node[leaf] = value
    return expanded


def _merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    result = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            result[key] = _merge(current, value)
        else:
            result[key] = deepcopy(value)
    return result


__all__ = ["ENV_PREFIX", "resolve_with_precedence", "flatten_for_env"]
