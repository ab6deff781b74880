"""Configuration management for Stoya.

The YAML file lives at ``~/.stoya/config.yaml`` and holds the store OAuth
token, so it is written owner-readable only and the token is masked whenever
the configuration is rendered back to the user.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError
from .models import StoyaConfig
from .resolver import assign_path, flatten_for_env, parse_env, resolve_with_precedence

DEFAULT_CONFIG_PATH = Path("~/.stoya/config.yaml")
REDACTED = "***"
_HEADER_LINES = (
    "# Stoya configuration file",
    "# Manage via `stoya config edit` or `stoya config set KEY --value VALUE`.",
)
_STAMP_PREFIX = "# Last updated: "


class ConfigManager:
    """Owns the Stoya YAML file and resolves it against env and CLI overrides."""

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._config_path = (config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the resolved configuration path."""
        return self._config_path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> StoyaConfig:
        """Load the effective configuration.

        Args:
            cli_overrides: Highest-precedence values, usually from CLI flags.
            include_env: Whether ``STOYA__`` environment variables apply.
            env_overrides: Environment mapping to use instead of ``os.environ``.

        Returns:
            StoyaConfig: Validated configuration.

        Raises:
            ConfigError: If the file is unreadable or any layer fails validation.
        """
        self.ensure_exists()
        env_layer = None
        if include_env:
            env_layer = parse_env(env_overrides if env_overrides is not None else self._env)
        return resolve_with_precedence(
            defaults=StoyaConfig(),
            file_overrides=self._read_file(),
            env_overrides=env_layer or None,
            cli_overrides=cli_overrides,
        )

    def ensure_exists(self) -> Path:
        """Write a defaults file on first use and return its path."""
        if not self._config_path.exists():
            self._write_file(StoyaConfig().model_dump(mode="python"))
        return self._config_path

    def set_value(self, key: str, value: Any) -> StoyaConfig:
        """Store ``value`` under the dotted ``key`` after validating the result.

        Args:
            key: Dotted path such as ``polling.interval_seconds``.
            value: Already-parsed YAML value.

        Returns:
            StoyaConfig: Configuration as it resolves from the updated file.

        Raises:
            ConfigError: If the key is empty or the new value does not validate.
                The file is left untouched in that case.
        """
        segments = [segment.strip() for segment in key.split(".") if segment.strip()]
        if not segments:
            raise ConfigError("KEY must be a dotted path such as 'polling.interval_seconds'.")
        data = self._read_file()
        assign_path(data, segments, value)
        config = resolve_with_precedence(defaults=StoyaConfig(), file_overrides=data)
        self._write_file(data)
        return config

    def replace_text(self, text: str) -> StoyaConfig:
        """Validate edited YAML and, if it is valid, make it the new file body.

        Raises:
            ConfigError: If the text is not a YAML mapping of valid settings.
        """
        data = _parse_mapping(text)
        config = resolve_with_precedence(defaults=StoyaConfig(), file_overrides=data)
        self._write_file(data)
        return config

    def read_text(self) -> str:
        """Return the raw file contents, or an empty string before first write."""
        if not self._config_path.exists():
            return ""
        return self._config_path.read_text(encoding="utf-8")

    def body_lines(self) -> list[str]:
        """Return file lines without the generated timestamp line."""
        return [line for line in self.read_text().splitlines() if not line.startswith(_STAMP_PREFIX)]

    def _read_file(self) -> dict[str, Any]:
        if not self._config_path.exists():
            return {}
        return _parse_mapping(self._config_path.read_text(encoding="utf-8"))

    def _write_file(self, data: Mapping[str, Any]) -> None:
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        body = yaml.safe_dump(dict(data), sort_keys=False, allow_unicode=True)
        header = "\n".join((*_HEADER_LINES, f"{_STAMP_PREFIX}{stamp}"))
        self._config_path.write_text(f"{header}\n{body}", encoding="utf-8")
        self._config_path.chmod(0o600)


def redacted(config: StoyaConfig) -> dict[str, Any]:
    """Dump ``config`` for display with the store token masked."""
    data = config.model_dump(mode="python")
    if data["store"].get("token"):
        data["store"]["token"] = REDACTED
    return data


def _parse_mapping(text: str) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must contain a mapping at the top level.")
    return raw


__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG_PATH",
    "REDACTED",
    "StoyaConfig",
    "redacted",
    "resolve_with_precedence",
    "flatten_for_env",
    "parse_env",
    "ConfigError",
]
