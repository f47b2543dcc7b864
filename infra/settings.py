"""Runtime configuration for the source API and the ledger builder.

Settings come from an optional YAML/JSON file overlaid with environment
variables, so credentials never have to be written to disk::

    source_api:
      base_url: https://web.roapp.io
      page_size: 50
      resources:
        goods_flow: /app/warehouse/get-goods-flow-items
    ledger:
      tolerance: 0.01
      warehouse_matcher: substring
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from ledger.builder import DEFAULT_TOLERANCE
from ledger.scope import WAREHOUSE_MATCHERS
from ledger.types import SOURCE_GOODS_FLOW, SOURCE_NAMES

SETTINGS_ENV_VAR = "STOCKLEDGER_CONFIG"

DEFAULT_RESOURCES: Mapping[str, str] = {
    SOURCE_GOODS_FLOW: "/app/warehouse/get-goods-flow-items",
}


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration."""


@dataclass(frozen=True)
class SourceApiConfig:
    """Connection settings for the inventory API and its login service."""

    base_url: str = "https://web.roapp.io"
    login_service_url: str | None = None
    username: str | None = None
    password: str | None = None
    timeout_seconds: float = 45.0
    page_size: int = 50
    max_pages: int = 200
    session_ttl_seconds: float = 1800.0
    resources: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_RESOURCES))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "SourceApiConfig":
        data = dict(payload or {})
        resources = data.get("resources") or {}
        if not isinstance(resources, Mapping):
            raise ConfigError("source_api.resources must map source names to paths")
        unknown = sorted(set(resources) - set(SOURCE_NAMES))
        if unknown:
            raise ConfigError(f"Unknown source_api.resources entries: {', '.join(unknown)}")
        merged = dict(DEFAULT_RESOURCES)
        merged.update({str(key): str(value) for key, value in resources.items() if value})
        config = cls(
            base_url=str(data.get("base_url") or cls.base_url),
            login_service_url=_optional_str(data.get("login_service_url")),
            username=_optional_str(data.get("username")),
            password=_optional_str(data.get("password")),
            timeout_seconds=_number(data, "timeout_seconds", cls.timeout_seconds, float),
            page_size=_number(data, "page_size", cls.page_size, int),
            max_pages=_number(data, "max_pages", cls.max_pages, int),
            session_ttl_seconds=_number(data, "session_ttl_seconds", cls.session_ttl_seconds, float),
            resources=merged,
        )
        config.validate()
        return config

    def validate(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigError("source_api.timeout_seconds must be positive")
        if self.page_size < 1:
            raise ConfigError("source_api.page_size must be at least 1")
        if self.max_pages < 1:
            raise ConfigError("source_api.max_pages must be at least 1")
        if self.session_ttl_seconds <= 0:
            raise ConfigError("source_api.session_ttl_seconds must be positive")


@dataclass(frozen=True)
class LedgerConfig:
    """Reconciliation knobs."""

    tolerance: float = DEFAULT_TOLERANCE
    warehouse_matcher: str = "substring"

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "LedgerConfig":
        data = dict(payload or {})
        config = cls(
            tolerance=_number(data, "tolerance", cls.tolerance, float),
            warehouse_matcher=str(data.get("warehouse_matcher") or cls.warehouse_matcher).lower(),
        )
        if config.tolerance < 0:
            raise ConfigError("ledger.tolerance must be non-negative")
        if config.warehouse_matcher not in WAREHOUSE_MATCHERS:
            choices = ", ".join(sorted(WAREHOUSE_MATCHERS))
            raise ConfigError(f"ledger.warehouse_matcher must be one of: {choices}")
        return config


@dataclass(frozen=True)
class Settings:
    source_api: SourceApiConfig = field(default_factory=SourceApiConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "Settings":
        data = dict(payload or {})
        return cls(
            source_api=SourceApiConfig.from_mapping(_block(data, "source_api")),
            ledger=LedgerConfig.from_mapping(_block(data, "ledger")),
        )


def load_settings(path: str | Path | None = None, *, environ: Mapping[str, str] | None = None) -> Settings:
    """Load settings from *path* (or ``$STOCKLEDGER_CONFIG``) plus the environment.

    Without a file the defaults apply.  Environment variables override file
    values: ``ROAPP_BASE_URL`` (or ``REMONLINE_BASE_URL``), ``LOGIN_SERVICE_URL``,
    ``REMONLINE_USERNAME`` and ``REMONLINE_PASSWORD``.
    """

    env = os.environ if environ is None else environ
    config_path = path or env.get(SETTINGS_ENV_VAR)
    payload: Dict[str, Any] = dict(_load_mapping(Path(config_path))) if config_path else {}
    settings = Settings.from_mapping(payload)
    return replace(settings, source_api=_apply_env(settings.source_api, env))


def _apply_env(config: SourceApiConfig, env: Mapping[str, str]) -> SourceApiConfig:
    overrides: Dict[str, Any] = {}
    base_url = env.get("ROAPP_BASE_URL") or env.get("REMONLINE_BASE_URL")
    if base_url:
        overrides["base_url"] = base_url
    for env_name, attr in (
        ("LOGIN_SERVICE_URL", "login_service_url"),
        ("REMONLINE_USERNAME", "username"),
        ("REMONLINE_PASSWORD", "password"),
    ):
        value = env.get(env_name)
        if value:
            overrides[attr] = value
    return replace(config, **overrides) if overrides else config


def _load_mapping(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found at {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yml", ".yaml"}:
            payload = yaml.safe_load(text)
        else:
            payload = json.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        raise ConfigError(f"Could not parse configuration {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ConfigError("Configuration must map keys to values.")
    return payload


def _block(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    block = data.get(key) or {}
    if not isinstance(block, Mapping):
        raise ConfigError(f"'{key}' must be a mapping")
    return block


def _number(data: Mapping[str, Any], key: str, default: Any, cast: type) -> Any:
    value = data.get(key)
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'{key}' must be numeric, got {value!r}") from exc


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


__all__ = [
    "ConfigError",
    "DEFAULT_RESOURCES",
    "LedgerConfig",
    "SETTINGS_ENV_VAR",
    "Settings",
    "SourceApiConfig",
    "load_settings",
]
