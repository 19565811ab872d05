# === NAVMAP v1 ===
# {
#   "module": "HttpProvider.DataSource.cli",
#   "purpose": "Typer CLI for reading HTTP data sources outside a configuration engine.",
#   "sections": [
#     {
#       "id": "clicontext",
#       "name": "CliContext",
#       "anchor": "class-clicontext",
#       "kind": "class"
#     },
#     {
#       "id": "main",
#       "name": "main",
#       "anchor": "function-main",
#       "kind": "function"
#     },
#     {
#       "id": "fetch",
#       "name": "fetch",
#       "anchor": "function-fetch",
#       "kind": "function"
#     },
#     {
#       "id": "evaluate",
#       "name": "evaluate",
#       "anchor": "function-evaluate",
#       "kind": "function"
#     },
#     {
#       "id": "schema-cmd",
#       "name": "schema_cmd",
#       "anchor": "function-schema-cmd",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Command line entry point for the HTTP data source.

Results are printed to stdout as JSON; warnings, errors, and logs go to
stderr so the output can be piped straight into other tools.

Example:
    $ httpdata fetch https://example.com/version -H Accept=text/plain --timeout-ms 500
    $ httpdata evaluate sources.yaml
    $ httpdata schema --version 0
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console

from ._version import __version__
from .datasource import read_data_source, read_data_source_v0
from .diagnostics import Diagnostics
from .errors import ConfigError
from .evaluation import evaluate_data_sources
from .logging_config import setup_logging
from .network.executor import RequestExecutor
from .schema import CURRENT_SCHEMA_VERSION, get_schema
from .settings import LoggingConfiguration, ResolvedConfig, get_default_config, load_config

# Diagnostics and errors only; results go to stdout through typer.echo.
_console = Console(stderr=True)


class CliContext:
    """Per-invocation state shared by the subcommands."""

    def __init__(self, settings: ResolvedConfig, log_level: Optional[str] = None) -> None:
        self.settings = settings
        self.log_level = log_level
        self.console = _console

    def configure_logging(self, logging_config: LoggingConfiguration) -> None:
        if self.log_level is not None:
            logging_config = LoggingConfiguration(
                level=self.log_level, json=logging_config.json_format
            )
        setup_logging(logging_config)


app = typer.Typer(
    name="httpdata",
    help="Read HTTP data sources: GET a URL and report status, headers, and body.",
    no_args_is_help=True,
)

_context: Optional[CliContext] = None


def get_context() -> CliContext:
    if _context is None:
        raise RuntimeError("CLI context not initialized")
    return _context


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"httpdata {__version__}")
        raise typer.Exit(0)


def _fail(message: str) -> None:
    _console.print(f"[red]Error:[/red] {message}", highlight=False, soft_wrap=True)
    raise typer.Exit(1)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _report(diagnostics: Diagnostics, *, prefix: str = "") -> None:
    for label, style, entries in (
        ("Warning", "yellow", diagnostics.warnings),
        ("Error", "red", diagnostics.errors),
    ):
        for entry in entries:
            _console.print(
                f"[{style}]{prefix}{label}:[/{style}] {entry.summary}",
                highlight=False,
                soft_wrap=True,
            )
            if entry.detail:
                _console.print(f"  {entry.detail}", markup=False, highlight=False, soft_wrap=True)


def _parse_header_options(values: List[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition("=")
        if not sep:
            name, sep, value = raw.partition(":")
        name = name.strip()
        if not sep or not name:
            raise typer.BadParameter(f"expected Name=Value, got {raw!r}", param_hint="--header")
        headers[name] = value.strip()
    return headers


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR); overrides HTTPDATA_LOG_LEVEL",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """HTTP data source CLI.

    Global options go before the subcommand:

        httpdata --log-level DEBUG fetch https://example.com
    """
    global _context

    try:
        settings = get_default_config()
        ctx = CliContext(settings, log_level=log_level)
        ctx.configure_logging(settings.defaults.logging)
    except (ConfigError, ValueError) as exc:
        _fail(str(exc))
    _context = ctx


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL to GET (http or https)"),
    header: Optional[List[str]] = typer.Option(
        None,
        "--header",
        "-H",
        help="Request header as Name=Value; repeatable",
    ),
    timeout_ms: Optional[int] = typer.Option(
        None, "--timeout-ms", help="Request timeout in milliseconds"
    ),
    retry_attempts: Optional[int] = typer.Option(
        None, "--retry-attempts", help="Retries after a transport failure"
    ),
    legacy: bool = typer.Option(
        False, "--legacy", help="Emit the legacy output shape (schema version 0)"
    ),
) -> None:
    """Read a single data source and print its output state as JSON."""
    ctx = get_context()

    raw: Dict[str, Any] = {"url": url}
    headers = _parse_header_options(header or [])
    if headers:
        raw["request_headers"] = headers
    if timeout_ms is not None:
        raw["request_timeout"] = timeout_ms
    if retry_attempts is not None:
        raw["retry"] = {"attempts": retry_attempts}

    executor = RequestExecutor(ctx.settings.defaults.http)
    reader = read_data_source_v0 if legacy else read_data_source
    result = reader(raw, executor=executor)

    _report(result.diagnostics)
    if result.state is not None:
        _echo_json(result.state.model_dump(mode="json"))
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def evaluate(
    config: Path = typer.Argument(..., help="YAML file with 'defaults' and 'data_sources'"),
    legacy: bool = typer.Option(
        False, "--legacy", help="Emit the legacy output shape (schema version 0)"
    ),
) -> None:
    """Read every data source in a configuration file concurrently."""
    ctx = get_context()

    try:
        resolved = load_config(config)
    except ConfigError as exc:
        _fail(exc.detail)
    ctx.configure_logging(resolved.defaults.logging)

    results = evaluate_data_sources(
        resolved.data_sources,
        max_workers=resolved.defaults.max_concurrent_reads,
        config=resolved.defaults.http,
        legacy=legacy,
    )
    for name, result in results.items():
        _report(result.diagnostics, prefix=f"{name}: ")
    _echo_json({name: result.to_dict() for name, result in results.items()})

    if any(not result.ok for result in results.values()):
        raise typer.Exit(1)


@app.command("schema")
def schema_cmd(
    schema_version: int = typer.Option(
        CURRENT_SCHEMA_VERSION,
        "--version",
        min=0,
        max=CURRENT_SCHEMA_VERSION,
        help="Schema version to print (0 = legacy, 1 = current)",
    ),
) -> None:
    """Print the data source attribute contract as JSON."""
    _echo_json(get_schema(schema_version))


if __name__ == "__main__":  # pragma: no cover
    app()
