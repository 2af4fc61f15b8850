"""Command-line interface for the location stock service."""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.table import Table

from .app import create_app, create_storage
from .config import AppConfig
from .errors import LocationStockError
from .service import LocationStockService
from .signature import compute_proxy_signature

app = typer.Typer(
    name="shopify-location-stock",
    help="Shopify App Proxy location stock CLI"
)
console = Console()


def load_config(config_path: Optional[str]) -> AppConfig:
    """Load configuration from a JSON file, or from the environment when no path is given."""
    if not config_path:
        return AppConfig.from_env()

    config_file = Path(config_path)
    if not config_file.exists():
        console.print(f"[red]Error: Config file not found: {config_path}[/red]")
        raise typer.Exit(1)

    with open(config_file) as f:
        config_data = json.load(f)

    return AppConfig(**config_data)


def parse_pairs(pairs: List[str]) -> dict:
    """Turn ``key=value`` arguments into a mapping."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        params[key] = value
    return params


@app.command()
def init(
    output: str = typer.Option("config.json", help="Output configuration file path")
):
    """Initialize a new configuration file with example values."""
    example_config = AppConfig.model_config["json_schema_extra"]["example"]

    output_path = Path(output)
    with open(output_path, 'w') as f:
        json.dump(example_config, f, indent=2)

    console.print(f"[green]✓[/green] Configuration file created: {output}")
    console.print("\n[yellow]⚠ Please edit the file and add your Shopify credentials![/yellow]")


@app.command()
def validate(
    config: Optional[str] = typer.Option(None, help="Configuration file path (environment if omitted)"),
):
    """Validate configuration."""
    try:
        cfg = load_config(config)
        console.print("[green]✓[/green] Configuration is valid!")
        console.print(f"\n[bold]Shop:[/bold] {cfg.shopify.shop_domain or '-'}")
        console.print(f"[bold]API version:[/bold] {cfg.shopify.api_version}")
        console.print(f"[bold]Token strategy:[/bold] {cfg.token.strategy.value}")
        console.print(f"[bold]UK location:[/bold] {cfg.locations.uk_location_id or '-'}")
        console.print(f"[bold]US location:[/bold] {cfg.locations.us_location_id or '-'}")
        if not cfg.shopify.api_secret:
            console.print("[yellow]⚠ SHOPIFY_API_SECRET is not set; every proxy request will be rejected[/yellow]")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]✗ Configuration error:[/red] {str(e)}")
        raise typer.Exit(1)


@app.command()
def sign(
    pairs: List[str] = typer.Argument(..., help="Query parameters as key=value"),
    secret: str = typer.Option(..., envvar="SHOPIFY_API_SECRET", help="App secret"),
):
    """Print the App Proxy signature for a set of query parameters."""
    params = parse_pairs(pairs)
    signature = compute_proxy_signature(params, secret)
    console.print(signature)


@app.command()
def stock(
    variant: str = typer.Argument(..., help="Numeric product variant id"),
    country: str = typer.Option("UK", help="Country code (UK, GB or US)"),
    shop: Optional[str] = typer.Option(None, help="Shop domain (for the offline_session strategy)"),
    config: Optional[str] = typer.Option(None, help="Configuration file path (environment if omitted)"),
):
    """Look up the stock of a variant the way the App Proxy would."""

    async def _stock():
        cfg = load_config(config)
        params = {"variant": variant, "country": country}
        if shop:
            params["shop"] = shop
        params["signature"] = compute_proxy_signature(params, cfg.require_secret())

        storage = create_storage(cfg)
        try:
            async with LocationStockService(cfg, storage=storage) as service:
                result = await service.lookup(params)
        finally:
            storage.close()

        table = Table(title="Location Stock")
        table.add_column("Variant", style="cyan")
        table.add_column("Country", style="green")
        table.add_column("Location", style="magenta")
        table.add_column("Qty", justify="right", style="yellow")
        table.add_column("Available")
        table.add_row(
            str(result.variant_id),
            result.country,
            str(result.location_id),
            str(result.qty),
            "yes" if result.available else "no",
        )
        console.print(table)

    try:
        asyncio.run(_stock())
    except LocationStockError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        if e.details:
            console.print(e.details)
        raise typer.Exit(1)


@app.command()
def serve(
    config: Optional[str] = typer.Option(None, help="Configuration file path (environment if omitted)"),
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    metrics: bool = typer.Option(False, help="Export metrics to the console"),
):
    """Start the App Proxy and webhook server."""
    from .telemetry import init_metrics
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_metrics(export_to_console=metrics)

    cfg = load_config(config)
    web_app = create_app(cfg)

    console.print(f"[green]Starting server on {host}:{port}[/green]")
    console.print(f"[blue]App Proxy endpoint: http://{host}:{port}/apps/location-stock[/blue]")
    console.print(f"[blue]Webhook endpoint: http://{host}:{port}/webhooks/app/uninstalled[/blue]")

    uvicorn.run(web_app, host=host, port=port)


if __name__ == "__main__":
    app()
