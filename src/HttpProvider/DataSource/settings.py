# === NAVMAP v1 ===
# {
#   "module": "HttpProvider.DataSource.settings",
#   "purpose": "Define configuration models, environment overrides, and YAML configuration loading",
#   "sections": [
#     {
#       "id": "httpclientconfiguration",
#       "name": "HttpClientConfiguration",
#       "anchor": "class-httpclientconfiguration",
#       "kind": "class"
#     },
#     {
#       "id": "loggingconfiguration",
#       "name": "LoggingConfiguration",
#       "anchor": "class-loggingconfiguration",
#       "kind": "class"
#     },
#     {
#       "id": "defaultsconfig",
#       "name": "DefaultsConfig",
#       "anchor": "class-defaultsconfig",
#       "kind": "class"
#     },
#     {
#       "id": "resolvedconfig",
#       "name": "ResolvedConfig",
#       "anchor": "class-resolvedconfig",
#       "kind": "class"
#     },
#     {
#       "id": "environmentoverrides",
#       "name": "EnvironmentOverrides",
#       "anchor": "class-environmentoverrides",
#       "kind": "class"
#     },
#     {
#       "id": "build-resolved-config",
#       "name": "build_resolved_config",
#       "anchor": "function-build-resolved-config",
#       "kind": "function"
#     },
#     {
#       "id": "load-config",
#       "name": "load_config",
#       "anchor": "function-load-config",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Configuration models for the HTTP data source.

Process-wide defaults (transport timeouts, retry backoff bounds, logging) live
here, separate from the per-invocation data-source attributes validated in
:mod:`HttpProvider.DataSource.datasource`.  Values come from the built-in
defaults, then a YAML file, then the ``HTTPDATA_*`` environment variables;
later sources win.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError
from .network.policy import (
    DEFAULT_USER_AGENT,
    FOLLOW_REDIRECTS,
    HTTP_CONNECT_TIMEOUT,
    HTTP_POOL_TIMEOUT,
    HTTP_READ_TIMEOUT,
    HTTP_WRITE_TIMEOUT,
    MAX_REDIRECTS,
    RETRY_MAX_DELAY_MS,
    RETRY_MIN_DELAY_MS,
)

__all__ = [
    "HttpClientConfiguration",
    "LoggingConfiguration",
    "DefaultsConfig",
    "ResolvedConfig",
    "EnvironmentOverrides",
    "get_default_config",
    "build_resolved_config",
    "load_raw_yaml",
    "load_config",
]

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class HttpClientConfiguration(BaseModel):
    """Transport and retry defaults applied to every data-source read.

    Timeouts are the platform budgets used when a data source sets no
    ``request_timeout``; when one is set, each phase is further clamped to the
    time left before the deadline.
    """

    model_config = ConfigDict(validate_assignment=True)

    connect_timeout_sec: float = Field(default=HTTP_CONNECT_TIMEOUT, gt=0.0, le=600.0)
    read_timeout_sec: float = Field(default=HTTP_READ_TIMEOUT, gt=0.0, le=3600.0)
    write_timeout_sec: float = Field(default=HTTP_WRITE_TIMEOUT, gt=0.0, le=600.0)
    pool_timeout_sec: float = Field(default=HTTP_POOL_TIMEOUT, gt=0.0, le=600.0)
    retry_min_delay_ms: int = Field(
        default=RETRY_MIN_DELAY_MS,
        ge=0,
        description="Backoff before the first retry; doubles on each subsequent retry.",
    )
    retry_max_delay_ms: int = Field(
        default=RETRY_MAX_DELAY_MS,
        ge=0,
        description="Upper bound for a single backoff sleep.",
    )
    follow_redirects: bool = Field(default=FOLLOW_REDIRECTS)
    max_redirects: int = Field(default=MAX_REDIRECTS, ge=0, le=50)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    verify_tls: bool = Field(
        default=True,
        description="Verify server certificates against the certifi CA bundle.",
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "HttpClientConfiguration":
        if self.retry_max_delay_ms < self.retry_min_delay_ms:
            raise ValueError("retry_max_delay_ms must be greater than or equal to retry_min_delay_ms")
        return self

    def timeout(self) -> httpx.Timeout:
        """Return the platform per-phase timeout budget."""

        return httpx.Timeout(
            connect=self.connect_timeout_sec,
            read=self.read_timeout_sec,
            write=self.write_timeout_sec,
            pool=self.pool_timeout_sec,
        )


class LoggingConfiguration(BaseModel):
    """Logging level and format for data-source reads."""

    level: str = Field(default="INFO")
    json_format: bool = Field(default=False, alias="json")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        upper = value.strip().upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"level must be one of {sorted(_LOG_LEVELS)}")
        return upper


class DefaultsConfig(BaseModel):
    http: HttpClientConfiguration = Field(default_factory=HttpClientConfiguration)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)
    max_concurrent_reads: int = Field(default=8, ge=1, le=64)

    model_config = ConfigDict(extra="forbid")


class ResolvedConfig(BaseModel):
    """Defaults plus the raw data-source definitions found in a configuration file."""

    defaults: DefaultsConfig
    data_sources: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    @classmethod
    def from_defaults(cls) -> "ResolvedConfig":
        return cls(defaults=DefaultsConfig(), data_sources={})


class EnvironmentOverrides(BaseSettings):
    connect_timeout_sec: Optional[float] = None
    read_timeout_sec: Optional[float] = None
    retry_min_delay_ms: Optional[int] = None
    retry_max_delay_ms: Optional[int] = None
    user_agent: Optional[str] = None
    log_level: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="HTTPDATA_", case_sensitive=False, extra="ignore")


def _format_validation_error(exc: PydanticValidationError) -> str:
    messages: List[str] = []
    for error in exc.errors():
        location = " -> ".join(str(part) for part in error["loc"]) or "<root>"
        messages.append(f"{location}: {error['msg']}")
    return "Configuration validation failed:\n  " + "\n  ".join(messages)


def _apply_env_overrides(defaults: DefaultsConfig) -> None:
    env = EnvironmentOverrides()
    logger = logging.getLogger("HttpProvider.DataSource")

    http_overrides = {
        key: value
        for key, value in env.model_dump(exclude_none=True).items()
        if key != "log_level"
    }
    if http_overrides:
        merged = defaults.http.model_dump()
        merged.update(http_overrides)
        try:
            defaults.http = HttpClientConfiguration.model_validate(merged)
        except PydanticValidationError as exc:
            raise ConfigError(_format_validation_error(exc)) from exc
        for key, value in http_overrides.items():
            logger.info("Config overridden: %s=%s", key, value, extra={"stage": "config"})
    if env.log_level is not None:
        try:
            defaults.logging = LoggingConfiguration(level=env.log_level, json=defaults.logging.json_format)
        except PydanticValidationError as exc:
            raise ConfigError(_format_validation_error(exc)) from exc
        logger.info("Config overridden: log_level=%s", env.log_level, extra={"stage": "config"})


def get_default_config() -> ResolvedConfig:
    """Return built-in defaults with environment overrides applied."""

    config = ResolvedConfig.from_defaults()
    _apply_env_overrides(config.defaults)
    return config


def build_resolved_config(raw_config: Mapping[str, object]) -> ResolvedConfig:
    """Materialise a :class:`ResolvedConfig` from a raw mapping loaded from disk."""

    defaults_section = raw_config.get("defaults") or {}
    if not isinstance(defaults_section, Mapping):
        raise ConfigError("'defaults' section must be a mapping")
    try:
        defaults = DefaultsConfig.model_validate(defaults_section)
    except PydanticValidationError as exc:
        raise ConfigError(_format_validation_error(exc)) from exc

    _apply_env_overrides(defaults)

    data_sources = raw_config.get("data_sources")
    if data_sources is None:
        raise ConfigError("'data_sources' section is required")
    if not isinstance(data_sources, Mapping):
        raise ConfigError("'data_sources' must be a mapping of name to attributes")

    resolved: Dict[str, Dict[str, Any]] = {}
    for name, entry in data_sources.items():
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Data source '{name}' must be a mapping")
        resolved[str(name)] = dict(entry)

    unknown = set(raw_config) - {"defaults", "data_sources"}
    if unknown:
        raise ConfigError(f"Unknown top-level keys: {', '.join(sorted(map(str, unknown)))}")

    return ResolvedConfig(defaults=defaults, data_sources=resolved)


def normalize_config_path(config_path: Path) -> Path:
    """Return a user-supplied configuration path with ``~`` and symlinks resolved."""

    expanded = Path(config_path).expanduser()
    try:
        return expanded.resolve(strict=False)
    except (OSError, RuntimeError):  # pragma: no cover - only triggered on rare filesystems
        return expanded


def load_raw_yaml(config_path: Path) -> Mapping[str, object]:
    """Read a YAML configuration file and return its top-level mapping."""

    normalized_path = normalize_config_path(config_path)

    if not normalized_path.exists():
        raise ConfigError(f"Configuration file not found: {normalized_path}")

    try:
        with normalized_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file '{normalized_path}' contains invalid YAML") from exc

    if not isinstance(data, Mapping):
        raise ConfigError("Configuration file must contain a mapping at the root")
    return data


def load_config(config_path: Path) -> ResolvedConfig:
    """Load, validate, and resolve a configuration file."""

    return build_resolved_config(load_raw_yaml(config_path))
