"""Hookverify CLI - Command line interface."""

from __future__ import annotations

import logging
import sys

import click
import structlog
from rich.console import Console
from rich.table import Table

from hookverify.core.config import (
    ProviderConfig,
    build_provider,
    get_settings,
    load_provider_configs,
)
from hookverify.webhooks.detect import MARKER_HEADERS, detect_provider
from hookverify.webhooks.errors import ConfigurationError
from hookverify.webhooks.verifier import VerificationContext

console = Console()

# provider -> (signature encoding, timestamp checked)
PROVIDER_DETAILS: dict[str, tuple[str, str]] = {
    "stripe": ("hex, HMAC-SHA256", "yes"),
    "github": ("hex, HMAC-SHA256", "no"),
    "slack": ("hex, HMAC-SHA256", "yes"),
    "shopify": ("base64, HMAC-SHA256", "no"),
    "twilio": ("base64, HMAC-SHA1", "no"),
    "line": ("base64, HMAC-SHA256", "no"),
    "discord": ("hex, Ed25519", "optional"),
    "standard-webhooks": ("base64, HMAC-SHA256", "yes"),
}


def configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
    )


def parse_header_options(values: tuple[str, ...]) -> list[tuple[str, str]]:
    """Parse repeated ``-H "Name: value"`` options."""
    headers: list[tuple[str, str]] = []
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected 'Name: value', got {raw!r}", param_hint="-H")
        headers.append((name.strip(), value.strip()))
    return headers


@click.group()
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: HOOKVERIFY_LOG_LEVEL, else warning)",
)
def main(log_level: str | None):
    """Hookverify - Verify webhook signatures from the command line.

    Examples:

        hookverify providers

        hookverify detect -H "Stripe-Signature: t=1,v1=ab"

        hookverify verify --provider github --secret s3cret \\
            -H "X-Hub-Signature-256: sha256=..." body.json
    """
    configure_logging(log_level or get_settings().log_level)


@main.command()
def providers():
    """List the built-in webhook providers."""
    table = Table()
    table.add_column("Provider", style="cyan")
    table.add_column("Marker Header")
    table.add_column("Signature")
    table.add_column("Timestamp", justify="center")

    for name, header in MARKER_HEADERS:
        encoding, timestamp = PROVIDER_DETAILS[name]
        table.add_row(name, header, encoding, timestamp)

    console.print(table)


@main.command()
@click.option("--header", "-H", "header_values", multiple=True, help="Request header 'Name: value'")
def detect(header_values: tuple[str, ...]):
    """Detect the webhook provider from request headers."""
    name = detect_provider(dict(parse_header_options(header_values)))
    if name is None:
        console.print("[yellow]No known webhook provider detected[/yellow]")
        sys.exit(1)
    console.print(name)


@main.command()
@click.argument("body_file", type=click.File("rb"))
@click.option("--provider", "-p", "provider_name", help="Provider name (detected from headers if omitted)")
@click.option("--secret", "-s", envvar="HOOKVERIFY_SECRET", help="Signing secret or Discord public key")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="YAML or TOML file with a providers list",
)
@click.option("--url", help="Signed request URL (Twilio)")
@click.option("--tolerance", "-t", type=int, default=None, help="Timestamp tolerance in seconds")
@click.option("--header", "-H", "header_values", multiple=True, help="Request header 'Name: value'")
def verify(
    body_file,
    provider_name: str | None,
    secret: str | None,
    config_file: str | None,
    url: str | None,
    tolerance: int | None,
    header_values: tuple[str, ...],
):
    """Verify a captured webhook delivery.

    BODY_FILE holds the raw request body ('-' reads stdin). Exits 0 when
    the signature is valid, 1 when it is not and 2 on configuration errors.
    """
    headers = parse_header_options(header_values)

    name = provider_name or detect_provider(dict(headers))
    if name is None:
        console.print("[red]No provider given and none detected from headers[/red]")
        sys.exit(2)

    try:
        if config_file:
            configs = {c.name.lower(): c for c in load_provider_configs(config_file)}
            config = configs.get(name.lower())
            if config is None:
                raise ConfigurationError(f"{name}: not listed in {config_file}")
            if tolerance is not None:
                config = config.model_copy(update={"tolerance": tolerance})
        else:
            if not secret:
                raise ConfigurationError(f"{name}: --secret or HOOKVERIFY_SECRET is required")
            config = ProviderConfig(name=name, secret=secret, tolerance=tolerance)
        provider = build_provider(config)
    except (ConfigurationError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(2)

    ctx = VerificationContext(raw_body=body_file.read(), headers=headers, url=url)
    result = provider.verify(ctx)

    if result.valid:
        console.print(f"[green]Valid[/green] {provider.name} signature")
        return

    console.print(f"[red]Invalid[/red] {provider.name} signature: {result.reason.value}")
    sys.exit(1)


@main.command()
def version():
    """Show version information."""
    from hookverify import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


if __name__ == "__main__":
    main()
