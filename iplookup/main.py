import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from iplookup.cache import ResponseCache
from iplookup.config import (
    CONFIG_ENV_VAR,
    TOKEN_ENV_VAR,
    Settings,
    load_settings,
    masked,
    resolve_config_path,
    set_value,
    unset_value,
)
from iplookup.errors import (
    AppError,
    ConfigError,
    DependencyError,
    InvalidIpError,
    IpNotFoundError,
    ReservedIpError,
    UnknownFieldError,
    UpstreamServiceError,
)
from iplookup.logger import logger, set_log_level
from iplookup.maps import open_map
from iplookup.models.request_models import IPLookupRequest, OutputFormat
from iplookup.renderers import extract_field, render
from iplookup.service import IpLookupService

EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_MISSING_DEPENDENCY = 3

app = typer.Typer(
    help="Look up geolocation and network information for IP addresses via ipinfo.io.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Inspect and edit the configuration file.")
cache_app = typer.Typer(help="Manage locally cached responses.")
app.add_typer(config_app, name="config")
app.add_typer(cache_app, name="cache")


def _fail(message: str, code: int = EXIT_FAILURE) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code=code)


def _config_path(ctx: typer.Context) -> Path:
    return ctx.obj["config_path"]


def _settings(ctx: typer.Context) -> Settings:
    try:
        return load_settings(_config_path(ctx))
    except ConfigError as exc:
        raise _fail(str(exc), EXIT_USAGE) from exc


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        envvar=CONFIG_ENV_VAR,
        help="Path to the JSON config file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debugging information to stderr."),
) -> None:
    if verbose:
        set_log_level("DEBUG")
    ctx.obj = {"config_path": resolve_config_path(config_path)}


@app.command()
def lookup(
    ctx: typer.Context,
    ip: Optional[str] = typer.Argument(None, help="IPv4 or IPv6 address. Omit to look up your own address."),
    output_format: Optional[OutputFormat] = typer.Option(
        None,
        "--format",
        "-f",
        case_sensitive=False,
        help="Output format. Defaults to the configured one.",
    ),
    field: Optional[str] = typer.Option(
        None,
        "--field",
        help="Print a single field, e.g. 'city' or 'privacy.vpn'.",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help=f"API token. Overrides the config file and {TOKEN_ENV_VAR}.",
        show_default=False,
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Neither read nor write the local cache."),
    refresh: bool = typer.Option(False, "--refresh", help="Ignore cached entries, fetch and re-cache."),
    show_map: bool = typer.Option(False, "--map", help="Open the location in a web browser."),
) -> None:
    """Look up an IP address (or your own) and print the result."""
    try:
        request = IPLookupRequest(ip=ip, refresh=refresh, use_cache=not no_cache)
    except ValidationError as exc:
        logger.info(f"Rejected lookup input ip={ip!r} errors={exc.errors()}")
        raise _fail(f"'{ip}' is not a valid IPv4 or IPv6 address.", EXIT_USAGE) from exc

    settings = _settings(ctx)
    if token:
        settings = settings.model_copy(update={"token": token})
    service = IpLookupService.from_settings(settings)

    try:
        result = asyncio.run(service.lookup(request))
    except (InvalidIpError, ReservedIpError) as exc:
        logger.error(f"Lookup rejected by provider ip={request.ip} error={exc}")
        raise _fail(str(exc), EXIT_USAGE) from exc
    except (IpNotFoundError, UpstreamServiceError) as exc:
        logger.error(f"Lookup failed ip={request.ip} error={exc}")
        raise _fail(str(exc)) from exc

    try:
        if field:
            output = extract_field(result.data, field)
        else:
            output = render(result.data, output_format or settings.output_format)
    except UnknownFieldError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(output)

    if show_map:
        try:
            open_map(result.data)
        except DependencyError as exc:
            raise _fail(str(exc), EXIT_MISSING_DEPENDENCY) from exc
        except AppError as exc:
            raise _fail(str(exc)) from exc


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the effective configuration (token masked)."""
    typer.echo(json.dumps(masked(_settings(ctx)), indent=2))


@config_app.command("path")
def config_path_command(ctx: typer.Context) -> None:
    """Print the location of the config file."""
    typer.echo(str(_config_path(ctx)))


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help=f"One of: {', '.join(Settings.model_fields)}."),
    value: str = typer.Argument(..., help="New value. Put values starting with '-' after '--'."),
) -> None:
    """Store a configuration value.

    Negative numbers look like options, so pass them after '--':
    `iplookup config set -- cache_ttl_seconds -5`.
    """
    try:
        set_value(key, value, _config_path(ctx))
    except ConfigError as exc:
        raise _fail(str(exc), EXIT_USAGE) from exc
    typer.echo(f"Set {key} in {_config_path(ctx)}")


@config_app.command("unset")
def config_unset(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Key to reset to its default."),
) -> None:
    """Remove a configuration value so its default applies."""
    try:
        unset_value(key, _config_path(ctx))
    except ConfigError as exc:
        raise _fail(str(exc), EXIT_USAGE) from exc
    typer.echo(f"Unset {key} in {_config_path(ctx)}")


@cache_app.command("path")
def cache_path(ctx: typer.Context) -> None:
    """Print the cache directory."""
    typer.echo(str(_settings(ctx).cache_dir))


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Delete every cached response."""
    settings = _settings(ctx)
    removed = ResponseCache(settings.cache_dir, settings.cache_ttl_seconds).clear()
    typer.echo(f"Removed {removed} cached response(s) from {settings.cache_dir}")


if __name__ == "__main__":
    app()
