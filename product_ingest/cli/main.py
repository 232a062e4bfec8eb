"""Product Ingest CLI using Typer."""

import os
from pathlib import Path

import typer
from dotenv import load_dotenv

from product_ingest import __version__
from product_ingest.cli.ingest import import_app, scrape_app, sources_app
from product_ingest.core.logging import configure_logging

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

app = typer.Typer(
    name="product-ingest",
    help="Product Ingest - Scrape wedding product listings and stage them for review",
    add_completion=False,
)
app.add_typer(scrape_app, name="scrape")
app.add_typer(import_app, name="import")
app.add_typer(sources_app, name="sources")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Product Ingest command line."""
    configure_logging(verbose)


def _check_ai_config() -> None:
    """Check and display AI configuration status."""
    anthropic_key = os.environ.get("ANTHROPIC_API_KEY", "")
    openai_key = os.environ.get("OPENAI_API_KEY", "")
    provider = os.environ.get("AI_PROVIDER", "anthropic").lower()

    if provider == "openai" and openai_key:
        typer.echo("  AI Provider: OpenAI (configured)")
    elif provider != "openai" and anthropic_key:
        typer.echo("  AI Provider: Anthropic (configured)")
    else:
        typer.echo("  AI Provider: Not configured (products get fallback categories)")
        typer.echo("  Tip: Set ANTHROPIC_API_KEY or OPENAI_API_KEY in .env file")


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from product_ingest.db.engine import init_db as db_init

    typer.echo("Initializing database...")
    db_init()
    typer.echo("Database initialized successfully!")


@app.command()
def version() -> None:
    """Show the Product Ingest version."""
    typer.echo(f"Product Ingest v{__version__}")


@app.command()
def check_config() -> None:
    """Check the current configuration status."""
    from product_ingest.db.engine import get_database_url
    from product_ingest.ingestion.registry import get_default_registry

    typer.echo("Product Ingest Configuration")
    typer.echo("=" * 40)

    env_found = False
    for env_path in _env_paths:
        if env_path.exists():
            typer.echo(f"  .env file: {env_path}")
            env_found = True
            break
    if not env_found:
        typer.echo("  .env file: Not found")

    _check_ai_config()

    typer.echo(f"  Database: {get_database_url()}")

    registry = get_default_registry()
    typer.echo(f"  Sources config: {registry.config_path or 'Not found'}")
    for source in registry.list_sources():
        state = "enabled" if source.enabled else "disabled"
        if source.adapter == "manual":
            key = "no key needed"
        elif source.credentials().api_key:
            key = "API key set"
        else:
            key = f"{source.api_key_var} missing"
        typer.echo(f"    {source.name}: {state}, {key}")


if __name__ == "__main__":
    app()
