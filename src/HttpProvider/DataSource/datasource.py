"""Binding between engine configuration and the request executor.

Configuration arrives as a plain mapping of attribute values.  It is validated
once, here, into :class:`HttpDataSourceConfig`; the executor only ever sees
the resulting :class:`~HttpProvider.DataSource.network.executor.RequestSpec`.
Results travel back as an output state model plus :class:`Diagnostics`; a read
never raises for a classified failure, so one broken data source leaves the
others in the same evaluation untouched.

Two output shapes exist.  The current shape (schema version 1) accepts
``request_timeout`` and ``retry``; the legacy shape (version 0) lacks those
inputs but additionally exports ``response_body_base64_std`` and warns when the
body is not valid UTF-8.  :func:`upgrade_state_v0` migrates stored legacy state.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Mapping, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .diagnostics import Diagnostics, encoding_warning
from .errors import ConfigError, HttpDataSourceError
from .network.executor import RequestExecutor, RequestSpec, ResponseResult
from .network.policy import ALLOWED_SCHEMES
from .schema import CURRENT_SCHEMA_VERSION, LEGACY_SCHEMA_VERSION

__all__ = [
    "RetryConfiguration",
    "HttpDataSourceConfig",
    "HttpDataSourceConfigV0",
    "HttpDataSourceState",
    "HttpDataSourceStateV0",
    "ReadResult",
    "parse_config",
    "to_request_spec",
    "read_data_source",
    "read_data_source_v0",
    "upgrade_state_v0",
    "upgrade_state",
]


class RetryConfiguration(BaseModel):
    """Nested ``retry`` block; every field is optional."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    attempts: Optional[StrictInt] = Field(default=None, ge=0)
    min_delay_ms: Optional[StrictInt] = Field(default=None, ge=0)
    max_delay_ms: Optional[StrictInt] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "RetryConfiguration":
        if (
            self.min_delay_ms is not None
            and self.max_delay_ms is not None
            and self.max_delay_ms < self.min_delay_ms
        ):
            raise ValueError("max_delay_ms must be greater than or equal to min_delay_ms")
        return self


def _validate_url(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("url must be a non-empty string")
    try:
        scheme = urlsplit(value).scheme
    except ValueError:
        # Syntax problems surface as request creation errors.
        return value
    if scheme.lower() not in ALLOWED_SCHEMES:
        raise ValueError("url must be an absolute URL with scheme http or https")
    return value


class HttpDataSourceConfigV0(BaseModel):
    """Inputs accepted by the legacy shape."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str
    request_headers: Optional[Dict[str, str]] = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        return _validate_url(value)


class HttpDataSourceConfig(HttpDataSourceConfigV0):
    """Inputs accepted by the current shape."""

    request_timeout: Optional[StrictInt] = Field(default=None, ge=1)
    retry: Optional[RetryConfiguration] = None


class HttpDataSourceState(BaseModel):
    """Output state, schema version 1."""

    SCHEMA_VERSION: ClassVar[int] = CURRENT_SCHEMA_VERSION

    id: str
    url: str
    request_headers: Optional[Dict[str, str]] = None
    request_timeout: Optional[int] = None
    retry: Optional[RetryConfiguration] = None
    response_body: str
    response_headers: Dict[str, str] = Field(default_factory=dict)
    status_code: int


class HttpDataSourceStateV0(BaseModel):
    """Output state, schema version 0."""

    SCHEMA_VERSION: ClassVar[int] = LEGACY_SCHEMA_VERSION

    id: str
    url: str
    request_headers: Optional[Dict[str, str]] = None
    response_body: str
    response_body_base64_std: str
    response_headers: Dict[str, str] = Field(default_factory=dict)
    status_code: int


State = Union[HttpDataSourceState, HttpDataSourceStateV0]


@dataclass
class ReadResult:
    """Output of one data-source read: a state on success, diagnostics always."""

    state: Optional[State]
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    @property
    def ok(self) -> bool:
        return self.state is not None and not self.diagnostics.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.model_dump(mode="json") if self.state is not None else None,
            "diagnostics": self.diagnostics.to_list(),
        }


def _format_validation_error(exc: PydanticValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        messages.append(f"{location}: {error['msg']}")
    return "; ".join(messages)


def parse_config(raw: Mapping[str, Any], *, legacy: bool = False) -> HttpDataSourceConfig:
    """Validate raw attribute values into a configuration model.

    Raises:
        ConfigError: If an attribute is missing, unknown, or out of range.
    """

    if not isinstance(raw, Mapping):
        raise ConfigError("data source configuration must be a mapping")
    model = HttpDataSourceConfigV0 if legacy else HttpDataSourceConfig
    try:
        return model.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise ConfigError(_format_validation_error(exc)) from exc


def to_request_spec(config: HttpDataSourceConfigV0) -> RequestSpec:
    """Translate validated configuration into a :class:`RequestSpec`.

    Unset optional attributes stay ``None`` so the executor treats them as
    disabled rather than as zero.
    """

    timeout = getattr(config, "request_timeout", None)
    retry: Optional[RetryConfiguration] = getattr(config, "retry", None)
    return RequestSpec(
        url=config.url,
        headers=dict(config.request_headers or {}),
        timeout_millis=timeout,
        retry_attempts=retry.attempts if retry is not None else None,
        retry_min_delay_ms=retry.min_delay_ms if retry is not None else None,
        retry_max_delay_ms=retry.max_delay_ms if retry is not None else None,
    )


def _execute(
    raw: Mapping[str, Any],
    executor: Optional[RequestExecutor],
    legacy: bool,
    diagnostics: Diagnostics,
) -> Optional[tuple]:
    try:
        config = parse_config(raw, legacy=legacy)
        spec = to_request_spec(config)
        result = (executor or RequestExecutor()).execute(spec)
    except HttpDataSourceError as exc:
        diagnostics.add_exception(exc)
        return None
    diagnostics.extend(result.warnings)
    return config, result


def read_data_source(
    raw: Mapping[str, Any],
    *,
    executor: Optional[RequestExecutor] = None,
) -> ReadResult:
    """Read the data source using the current output shape."""

    diagnostics = Diagnostics()
    outcome = _execute(raw, executor, False, diagnostics)
    if outcome is None:
        return ReadResult(state=None, diagnostics=diagnostics)
    config, result = outcome
    return ReadResult(state=_build_state(config, result), diagnostics=diagnostics)


def _build_state(config: HttpDataSourceConfig, result: ResponseResult) -> HttpDataSourceState:
    return HttpDataSourceState(
        id=config.url,
        url=config.url,
        request_headers=config.request_headers,
        request_timeout=config.request_timeout,
        retry=config.retry,
        response_body=result.body,
        response_headers=result.headers,
        status_code=result.status_code,
    )


def read_data_source_v0(
    raw: Mapping[str, Any],
    *,
    executor: Optional[RequestExecutor] = None,
) -> ReadResult:
    """Read the data source using the legacy output shape."""

    diagnostics = Diagnostics()
    outcome = _execute(raw, executor, True, diagnostics)
    if outcome is None:
        return ReadResult(state=None, diagnostics=diagnostics)
    config, result = outcome
    if result.body_encoding_warning:
        diagnostics.append(encoding_warning())
    state = HttpDataSourceStateV0(
        id=config.url,
        url=config.url,
        request_headers=config.request_headers,
        response_body=result.body,
        response_body_base64_std=base64.standard_b64encode(result.content).decode("ascii"),
        response_headers=result.headers,
        status_code=result.status_code,
    )
    return ReadResult(state=state, diagnostics=diagnostics)


def upgrade_state_v0(prior: Mapping[str, Any]) -> HttpDataSourceState:
    """Migrate a stored legacy state to the current shape.

    ``response_body_base64_std`` is dropped; ``request_timeout`` and ``retry``
    start unset.  ``id``, ``response_body``, ``response_headers`` and
    ``status_code`` carry over unchanged.

    Raises:
        ConfigError: If ``prior`` is not a valid legacy state.
    """

    try:
        legacy = HttpDataSourceStateV0.model_validate(dict(prior))
    except PydanticValidationError as exc:
        raise ConfigError(
            f"Unable to upgrade legacy state: {_format_validation_error(exc)}"
        ) from exc
    return HttpDataSourceState(
        id=legacy.id,
        url=legacy.url,
        request_headers=legacy.request_headers,
        request_timeout=None,
        retry=None,
        response_body=legacy.response_body,
        response_headers=legacy.response_headers,
        status_code=legacy.status_code,
    )


def upgrade_state(prior: Mapping[str, Any], from_version: int) -> HttpDataSourceState:
    """Upgrade stored state written by schema ``from_version`` to the current shape."""

    if from_version == LEGACY_SCHEMA_VERSION:
        return upgrade_state_v0(prior)
    if from_version == CURRENT_SCHEMA_VERSION:
        try:
            return HttpDataSourceState.model_validate(dict(prior))
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid state: {_format_validation_error(exc)}") from exc
    raise ConfigError(f"Unsupported state schema version: {from_version}")
