"""Configuration loading for the SQLite browser."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Which SQLite file to browse and how to open it."""

    path: Path | None
    read_only: bool


@dataclass(frozen=True, slots=True)
class ServerSettings:
    """HTTP listener and request-handling configuration."""

    host: str
    port: int
    default_page_size: int
    max_page_size: int
    allow_raw_where: bool
    static_dir: Path
    cors_origins: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    database: DatabaseSettings
    server: ServerSettings

    def with_database_path(self, new_path: str | Path) -> AppConfig:
        """Return a copy with an updated database path."""
        resolved = paths.resolve_path(new_path)
        return replace(self, database=replace(self.database, path=resolved))

    def with_overrides(self, **server_overrides: Any) -> AppConfig:
        """Return a copy with selected server settings replaced.

        ``None`` values are ignored so CLI options that were not passed keep
        the configured value.
        """
        changes = {key: value for key, value in server_overrides.items() if value is not None}
        if not changes:
            return self
        if "static_dir" in changes:
            changes["static_dir"] = paths.resolve_path(changes["static_dir"])
        return replace(self, server=replace(self.server, **changes))

    def with_read_only(self, read_only: bool) -> AppConfig:
        return replace(self, database=replace(self.database, read_only=read_only))


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "database": {"path": None, "read_only": False},
        "server": {
            "host": "127.0.0.1",
            "port": 2826,
            "default_page_size": 100,
            "max_page_size": 1000,
            "allow_raw_where": False,
            "static_dir": str(paths.default_static_dir(env=env)),
            "cors_origins": ["*"],
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "database.path": (paths.DATABASE_PATH_ENV, str),
    "database.read_only": ("SQLITER_READ_ONLY", bool),
    "server.host": ("SQLITER_HOST", str),
    "server.port": ("SQLITER_PORT", int),
    "server.default_page_size": ("SQLITER_DEFAULT_PAGE_SIZE", int),
    "server.max_page_size": ("SQLITER_MAX_PAGE_SIZE", int),
    "server.allow_raw_where": ("SQLITER_ALLOW_RAW_WHERE", bool),
    "server.cors_origins": ("SQLITER_CORS_ORIGINS", list),
}


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(env or os.environ)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(config_path: str | Path | None, env: Mapping[str, str]) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
        if not isinstance(data, MutableMapping):
            raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
        return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is list:
        if not cleaned:
            return []
        return tuple(part.strip() for part in cleaned.split(",") if part.strip())
    return cleaned


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        db_cfg = data["database"]
        raw_db_path = db_cfg.get("path")
        database = DatabaseSettings(
            path=paths.resolve_path(raw_db_path) if raw_db_path else None,
            read_only=bool(db_cfg["read_only"]),
        )
        srv_cfg = data["server"]
        server = ServerSettings(
            host=str(srv_cfg["host"]),
            port=int(srv_cfg["port"]),
            default_page_size=int(srv_cfg["default_page_size"]),
            max_page_size=int(srv_cfg["max_page_size"]),
            allow_raw_where=bool(srv_cfg["allow_raw_where"]),
            static_dir=paths.resolve_path(srv_cfg["static_dir"]),
            cors_origins=tuple(str(origin) for origin in srv_cfg["cors_origins"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if not 0 < server.port < 65536:
        raise ConfigurationError(f"Server port must be between 1 and 65535, got {server.port}.")
    if server.default_page_size <= 0 or server.max_page_size < server.default_page_size:
        raise ConfigurationError(
            "Page sizes must be positive and max_page_size must be >= default_page_size."
        )

    return AppConfig(source_path=source_path, database=database, server=server)
