"""Configuration models, YAML loading, and environment overrides."""

from __future__ import annotations

import textwrap

import pytest
from pydantic import ValidationError

from HttpProvider.DataSource.errors import ConfigError
from HttpProvider.DataSource.settings import (
    DefaultsConfig,
    HttpClientConfiguration,
    LoggingConfiguration,
    build_resolved_config,
    get_default_config,
    load_config,
    load_raw_yaml,
)

_ENV_VARIABLES = (
    "HTTPDATA_CONNECT_TIMEOUT_SEC",
    "HTTPDATA_READ_TIMEOUT_SEC",
    "HTTPDATA_RETRY_MIN_DELAY_MS",
    "HTTPDATA_RETRY_MAX_DELAY_MS",
    "HTTPDATA_USER_AGENT",
    "HTTPDATA_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    for name in _ENV_VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_http_defaults():
    config = HttpClientConfiguration()
    timeout = config.timeout()

    assert (timeout.connect, timeout.read, timeout.write, timeout.pool) == (10.0, 30.0, 30.0, 10.0)
    assert config.retry_min_delay_ms == 1000
    assert config.retry_max_delay_ms == 30000
    assert config.user_agent.startswith("httpdata/")
    assert config.verify_tls is True


def test_http_configuration_rejects_inverted_delay_bounds():
    with pytest.raises(ValidationError):
        HttpClientConfiguration(retry_min_delay_ms=500, retry_max_delay_ms=100)


def test_logging_level_is_normalised():
    assert LoggingConfiguration(level="debug").level == "DEBUG"
    with pytest.raises(ValidationError):
        LoggingConfiguration(level="loud")


def test_logging_json_alias():
    assert LoggingConfiguration.model_validate({"json": True}).json_format is True
    assert LoggingConfiguration(json_format=True).json_format is True


def test_build_resolved_config():
    resolved = build_resolved_config(
        {
            "defaults": {
                "http": {"read_timeout_sec": 5, "retry_min_delay_ms": 10, "retry_max_delay_ms": 20},
                "logging": {"level": "warning", "json": True},
                "max_concurrent_reads": 2,
            },
            "data_sources": {"version": {"url": "https://example.com/version"}},
        }
    )

    assert resolved.defaults.http.read_timeout_sec == 5
    assert resolved.defaults.logging.level == "WARNING"
    assert resolved.defaults.logging.json_format is True
    assert resolved.defaults.max_concurrent_reads == 2
    assert resolved.data_sources == {"version": {"url": "https://example.com/version"}}


@pytest.mark.parametrize(
    "raw, message",
    [
        ({}, "'data_sources' section is required"),
        ({"data_sources": ["a"]}, "must be a mapping"),
        ({"data_sources": {"a": "https://example.com"}}, "Data source 'a'"),
        ({"data_sources": {}, "extras": 1}, "Unknown top-level keys: extras"),
        ({"defaults": "fast", "data_sources": {}}, "'defaults' section"),
        (
            {"defaults": {"max_concurrent_reads": 0}, "data_sources": {}},
            "Configuration validation failed",
        ),
        ({"defaults": {"bogus": True}, "data_sources": {}}, "bogus"),
    ],
)
def test_build_resolved_config_errors(raw, message):
    with pytest.raises(ConfigError) as excinfo:
        build_resolved_config(raw)
    assert message in str(excinfo.value)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HTTPDATA_READ_TIMEOUT_SEC", "3.5")
    monkeypatch.setenv("HTTPDATA_USER_AGENT", "custom-agent/1.0")
    monkeypatch.setenv("HTTPDATA_LOG_LEVEL", "debug")

    config = get_default_config()

    assert config.defaults.http.read_timeout_sec == 3.5
    assert config.defaults.http.user_agent == "custom-agent/1.0"
    assert config.defaults.http.connect_timeout_sec == 10.0
    assert config.defaults.logging.level == "DEBUG"


def test_environment_overrides_are_validated(monkeypatch):
    monkeypatch.setenv("HTTPDATA_RETRY_MIN_DELAY_MS", "5000")
    monkeypatch.setenv("HTTPDATA_RETRY_MAX_DELAY_MS", "10")

    with pytest.raises(ConfigError):
        get_default_config()


def test_environment_overrides_beat_file_values(monkeypatch):
    monkeypatch.setenv("HTTPDATA_READ_TIMEOUT_SEC", "7")

    resolved = build_resolved_config(
        {"defaults": {"http": {"read_timeout_sec": 2}}, "data_sources": {}}
    )

    assert resolved.defaults.http.read_timeout_sec == 7


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text(
        textwrap.dedent(
            """
            defaults:
              http:
                connect_timeout_sec: 2
            data_sources:
              version:
                url: https://example.com/version
                request_timeout: 500
                retry:
                  attempts: 2
            """
        ),
        encoding="utf-8",
    )

    resolved = load_config(path)

    assert resolved.defaults.http.connect_timeout_sec == 2
    assert resolved.data_sources["version"]["retry"] == {"attempts": 2}
    assert isinstance(resolved.defaults, DefaultsConfig)


def test_load_raw_yaml_errors(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_raw_yaml(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("data_sources: [unterminated", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid YAML"):
        load_raw_yaml(broken)

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping at the root"):
        load_raw_yaml(scalar)
