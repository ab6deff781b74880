"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping

import yaml
from pydantic import ValidationError

from .exceptions import ConfigError
from .models import StoyaConfig

ENV_PREFIX = "STOYA__"


def resolve_with_precedence(
    *,
    defaults: StoyaConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> StoyaConfig:
    """Merge configuration layers: defaults, then file, environment and CLI.

    Args:
        defaults: Baseline configuration.
        file_overrides: Values read from the YAML configuration file.
        env_overrides: Nested values parsed from ``STOYA__`` variables.
        cli_overrides: Values supplied on the command line; keys may be dotted.

    Returns:
        StoyaConfig: Validated configuration.

    Raises:
        ConfigError: If a layer is malformed or the merged result is invalid.
    """
    merged = defaults.model_dump(mode="python")
    layers = (("file", file_overrides), ("environment", env_overrides), ("cli", cli_overrides))
    for label, layer in layers:
        if layer is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(layer, label=label))

    try:
        return StoyaConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def flatten_for_env(config: StoyaConfig) -> Dict[str, str]:
    """Render the config as ``STOYA__SECTION__KEY`` environment variable mappings."""
    flat: Dict[str, str] = {}

    def _walk(segments: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk([*segments, str(key)], child)
            return
        name = ENV_PREFIX + "__".join(segment.upper() for segment in segments)
        if isinstance(value, list):
            flat[name] = yaml.safe_dump(value, default_flow_style=True).strip()
        elif value is None:
            flat[name] = "null"
        else:
            flat[name] = str(value)

    for section, payload in config.model_dump(mode="python").items():
        _walk([section], payload)
    return flat


def parse_env(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect nested overrides from ``STOYA__`` prefixed variables.

    Values are parsed as YAML literals so numbers and booleans keep their types.
    """
    overrides: dict[str, Any] = {}
    for key, raw in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value: Any = yaml.safe_load(raw)
        except yaml.YAMLError:
            value = raw
        assign_path(overrides, segments, value)
    return overrides


def assign_path(target: dict[str, Any], segments: list[str], value: Any) -> None:
    """Set ``value`` at the nested ``segments`` path, creating mappings on the way.

    Raises:
        ConfigError: If an intermediate segment already holds a scalar.
    """
    node = target
    for segment in segments[:-1]:
        child = node.setdefault(segment, {})
        if not isinstance(child, dict):
            raise ConfigError(f"Cannot assign {'.'.join(segments)}: {segment} is not a section.")
        node = child
    node[segments[-1]] = value


def _expand_dotted(layer: Mapping[str, Any], *, label: str) -> dict[str, Any]:
    if not isinstance(layer, MappingABC):
        raise ConfigError(f"{label.capitalize()} overrides must be a mapping.")

    expanded: dict[str, Any] = {}
    for key, value in layer.items():
        if not isinstance(key, str):
            raise ConfigError(f"{label.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, label=label)
        segments = key.split(".")
        existing = expanded
        for segment in segments[:-1]:
            existing = existing.setdefault(segment, {})
            if not isinstance(existing, dict):
                raise ConfigError(
                    f"{label.capitalize()} override for {key} conflicts with existing value."
                )
        leaf = segments[-1]
        if isinstance(value, dict) and isinstance(existing.get(leaf), dict):
            existing[leaf] = _deep_merge(existing[leaf], value)
        else:
            existing[leaf] = value
    return expanded


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, MappingABC) and isinstance(current, MappingABC):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = ["resolve_with_precedence", "flatten_for_env", "parse_env", "assign_path", "ENV_PREFIX"]
