"""
wabridge CLI main module.

Runs the webhook server and manages its configuration file.
"""

from pathlib import Path

import typer
import uvicorn
from rich.panel import Panel

from wabridge.core.app import create_app
from wabridge.core.config.settings import (
    Settings,
    ensure_config_file,
    load_settings,
    resolve_config_path,
)
from wabridge.core.exceptions import ConfigurationError
from wabridge.core.logging.logger import (
    get_console,
    install_exception_hooks,
    setup_logging,
)

app = typer.Typer(help="WhatsApp Business webhook receiver")


def mask_secret(value: str, visible: int = 4) -> str:
    """Show only the last ``visible`` characters of a secret."""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]


def _print_banner(settings: Settings, host: str, port: int) -> None:
    display_host = "localhost" if host in ("0.0.0.0", "::") else host
    base_url = f"http://{display_host}:{port}"
    verify_token = (
        "[yellow]not configured[/yellow]"
        if settings.is_placeholder("verify_token")
        else mask_secret(settings.verify_token)
    )

    console = get_console()
    console.print(
        Panel.fit(
            "[bold]WhatsApp Business Webhook Server[/bold]", border_style="green"
        )
    )
    console.print(f"✓ Running on: {base_url}")
    console.print(f"✓ Webhook endpoint: {base_url}/api/webhooks/whatsapp")
    console.print()
    console.print("Configuration:")
    console.print(f"  - Config file: {settings.config_path}")
    console.print(f"  - Verify Token: {verify_token}")
    console.print(f"  - Logs: {Path(settings.log_dir).resolve()}")
    console.print()
    console.print("📝 Waiting for webhook events...")
    console.rule()


@app.command()
def run(
    config: str | None = typer.Option(
        None, "--config", "-c", help="Path to the config file (default: config.txt)"
    ),
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int | None = typer.Option(
        None, "--port", "-p", help="Port to bind to (default: PORT from config)"
    ),
):
    """
    Run the webhook server.

    Examples:
        wabridge run
        wabridge run --config /etc/wabridge/config.txt --port 8080
    """
    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e

    setup_logging(level=settings.log_level, log_dir=settings.log_dir)
    install_exception_hooks()

    port = port or settings.port
    _print_banner(settings, host, port)

    try:
        # log_config=None keeps uvicorn on our logging handlers
        uvicorn.run(create_app(settings), host=host, port=port, log_config=None)
    except KeyboardInterrupt:
        typer.echo("👋 Server stopped")


@app.command("init-config")
def init_config(
    config: str | None = typer.Option(
        None, "--config", "-c", help="Where to write the config file"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config file"
    ),
):
    """
    Write a config file with placeholder values.

    Examples:
        wabridge init-config
        wabridge init-config --config ./deploy/config.txt --force
    """
    path = resolve_config_path(config)
    if ensure_config_file(path, force=force):
        typer.echo(f"✅ Wrote {path}")
        typer.echo("Paste your tokens after the = signs, then run: wabridge run")
    else:
        typer.echo(f"⚠️ {path} already exists (use --force to overwrite)")


if __name__ == "__main__":
    app()
