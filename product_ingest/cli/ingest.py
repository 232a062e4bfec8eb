"""
Ingestion CLI Commands
======================

CLI commands for scraping sources and importing products for review.
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from product_ingest.ingestion.adapters import (
    create_adapter_for_source,
    get_adapter_info,
    list_adapters,
)
from product_ingest.ingestion.adapters.base import ScrapeResult
from product_ingest.ingestion.adapters.manual import ManualFileAdapter
from product_ingest.ingestion.batch import ERROR_DISPLAY_LIMIT, ImportReport
from product_ingest.ingestion.errors import (
    AdapterConfigError,
    BatchCreationError,
    UnsupportedFileError,
)
from product_ingest.ingestion.registry import SourceConfig, get_default_registry

console = Console()
scrape_app = typer.Typer(help="Scrape products from configured sources")
import_app = typer.Typer(help="Import scraped products into the review queue")
sources_app = typer.Typer(help="Source management commands")


class ScrapeFailed(Exception):
    """A source could not be scraped from the CLI."""


def _get_source_or_exit(name: str) -> SourceConfig:
    registry = get_default_registry()
    source_config = registry.get_source(name)

    if source_config is None:
        rprint(f"[red]Error:[/red] Source '{name}' not found")
        rprint("\nAvailable sources:")
        for s in registry.list_sources():
            status = "[green]enabled[/green]" if s.enabled else "[yellow]disabled[/yellow]"
            rprint(f"  • {s.name} ({status})")
        raise typer.Exit(1)

    return source_config


def _scrape_source(source_config: SourceConfig, query: Optional[str]) -> ScrapeResult:
    registry = get_default_registry()
    try:
        adapter = create_adapter_for_source(source_config, registry.global_config)
    except AdapterConfigError as e:
        raise ScrapeFailed(f"{e}. Set {source_config.api_key_var} in .env") from e

    if adapter is None:
        raise ScrapeFailed(f"Adapter '{source_config.adapter}' not found")

    with console.status(f"[bold blue]Scraping {source_config.name}...[/bold blue]"):
        return asyncio.run(adapter.scrape(query or source_config.default_query))


def _write_candidates(result: ScrapeResult, source_name: str, out: Optional[Path]) -> Path:
    if out is None:
        data_dir = Path(get_default_registry().global_config.data_dir)
        timestamp = int(datetime.now().timestamp() * 1000)
        out = data_dir / f"{source_name}-{timestamp}.json"

    out.parent.mkdir(parents=True, exist_ok=True)
    payload = [c.model_dump(mode="json", by_alias=True) for c in result.candidates]
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out


def _print_errors(title: str, errors: list[str]) -> None:
    if not errors:
        return
    rprint(f"\n[bold red]{title} ({len(errors)}):[/bold red]")
    for error in errors[:ERROR_DISPLAY_LIMIT]:
        rprint(f"  • {error}")
    if len(errors) > ERROR_DISPLAY_LIMIT:
        rprint(f"  ... and {len(errors) - ERROR_DISPLAY_LIMIT} more")


def _display_report(report: ImportReport) -> None:
    """Display an import report."""
    status = report.status.value
    status_color = {
        "completed": "green",
        "processing": "blue",
        "failed": "red",
    }.get(status, "white")

    rprint("\n[bold]Import Summary:[/bold]")
    rprint(f"  Status: [{status_color}]{status}[/{status_color}]")
    rprint(f"  Batch: {report.batch_id}")
    rprint(f"  Source: {report.source}")

    rprint("\n[bold]Statistics:[/bold]")
    rprint(f"  Total: {report.total}")
    rprint(f"  Imported: [green]{report.imported}[/green]")
    rprint(f"  Duplicates: [yellow]{report.duplicates}[/yellow]")
    rprint(f"  Failed: [red]{report.failed}[/red]")

    if report.parse_errors:
        rprint(f"  Skipped rows: [red]{len(report.parse_errors)}[/red]")
    _print_errors("Errors", report.errors)


def _display_job_result(result: dict) -> None:
    """Display a scrape-and-import job result."""
    status = result.get("status", "unknown")
    status_color = {
        "completed": "green",
        "running": "blue",
        "pending": "yellow",
        "failed": "red",
    }.get(status, "white")

    rprint("\n[bold]Results:[/bold]")
    rprint(f"  Status: [{status_color}]{status}[/{status_color}]")
    rprint(f"  Source: {result.get('source_name', 'N/A')}")
    if result.get("query"):
        rprint(f"  Query: {result['query']}")
    if result.get("duration_seconds"):
        rprint(f"  Duration: {result['duration_seconds']:.1f}s")
    rprint(f"  Candidates scraped: {result.get('candidates_scraped', 0)}")

    report = result.get("report")
    if report:
        rprint("\n[bold]Statistics:[/bold]")
        rprint(f"  Batch: {report.get('batch_id')}")
        rprint(f"  Imported: {report.get('imported', 0)}")
        rprint(f"  Duplicates: {report.get('duplicates', 0)}")
        rprint(f"  Failed: {report.get('failed', 0)}")
        _print_errors("Import errors", report.get("errors", []))

    _print_errors("Scrape errors", result.get("scrape_errors", []))
    _print_errors("Errors", result.get("errors", []))


# Scrape subcommands


@scrape_app.command("run")
def scrape_source(
    source: str = typer.Argument(..., help="Source name (amazon, etsy, manual...)"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Search query or file path"),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="Output JSON file"),
) -> None:
    """
    Scrape a source and save the candidates to a JSON file.

    Examples:
        product-ingest scrape run amazon --query "wedding centerpieces"
        product-ingest scrape run manual --query data/products.csv
    """
    source_config = _get_source_or_exit(source)

    if not source_config.enabled:
        rprint(f"[yellow]Warning:[/yellow] Source '{source}' is disabled")
        if not typer.confirm("Run anyway?"):
            raise typer.Exit(0)

    rprint(f"\n[bold]Scraping source:[/bold] {source}")
    rprint(f"  Adapter: {source_config.adapter}")
    rprint(f"  Query: {query or source_config.default_query or '(adapter default)'}")

    try:
        result = _scrape_source(source_config, query)
    except ScrapeFailed as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    rprint(f"\n[bold]Scraped {result.stats.successful}/{result.stats.total} products[/bold]")
    _print_errors("Errors", result.errors)

    if not result.candidates:
        rprint("\n[yellow]No products to save[/yellow]")
        raise typer.Exit(1)

    path = _write_candidates(result, source_config.name, out)
    rprint(f"\n[green]Saved to {path}[/green]")
    rprint("\nNext step:")
    rprint(f"  product-ingest import run {path}")


@scrape_app.command("all")
def scrape_all(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Search query for every source"),
) -> None:
    """
    Scrape every enabled network source.

    Examples:
        product-ingest scrape all
    """
    registry = get_default_registry()
    sources = [s for s in registry.list_enabled_sources() if s.adapter != "manual"]

    if not sources:
        rprint("[yellow]No enabled sources to scrape[/yellow]")
        return

    table = Table(title="Scrape Summary")
    table.add_column("Source", style="bold")
    table.add_column("Status")
    table.add_column("Products")
    table.add_column("Output")

    failures = 0
    for source_config in sources:
        try:
            result = _scrape_source(source_config, query)
        except ScrapeFailed as e:
            failures += 1
            table.add_row(source_config.name, "[red]failed[/red]", "0", str(e))
            continue

        if not result.candidates:
            failures += 1
            reason = result.errors[0] if result.errors else "No products found"
            table.add_row(source_config.name, "[yellow]empty[/yellow]", "0", reason)
            continue

        path = _write_candidates(result, source_config.name, None)
        table.add_row(
            source_config.name, "[green]ok[/green]", str(len(result.candidates)), str(path)
        )

    console.print(table)
    if failures == len(sources):
        raise typer.Exit(1)


@scrape_app.command("template")
def scrape_template(
    out: Path = typer.Option(
        Path("data/import-template.csv"), "--out", "-o", help="Template file to write"
    ),
) -> None:
    """
    Write a CSV template for manual product imports.

    Examples:
        product-ingest scrape template --out my-products.csv
    """
    path = ManualFileAdapter.generate_template(out)
    rprint(f"[green]Template written to {path}[/green]")
    rprint("\nFill it in, then run:")
    rprint(f"  product-ingest import run {path}")


# Import subcommands


@import_app.command("run")
def import_file(
    file: Path = typer.Argument(..., help="JSON or CSV file to import"),
    source: Optional[str] = typer.Option(
        None, "--source", "-s", help="Listing source (inferred from the file name by default)"
    ),
) -> None:
    """
    Import a scraped JSON file or a manual CSV into the review queue.

    Examples:
        product-ingest import run data/amazon-1700000000000.json
        product-ingest import run data/products.csv
    """
    from product_ingest.db.engine import get_session, init_db
    from product_ingest.ingestion.categorizer import build_categorizer_from_env
    from product_ingest.ingestion.pipeline import ImportPipeline

    categorizer = build_categorizer_from_env()
    if categorizer.client is None:
        rprint("[yellow]AI provider not configured; products get fallback categories[/yellow]")

    init_db()
    try:
        with get_session() as session:
            pipeline = ImportPipeline(session, categorizer)
            with console.status("[bold blue]Importing...[/bold blue]"):
                report = pipeline.import_from_file(file, source)
    except (FileNotFoundError, UnsupportedFileError, BatchCreationError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        rprint(f"[red]Error:[/red] Invalid JSON in {file}: {e}")
        raise typer.Exit(1)
    except ValueError as e:
        # Wrong JSON shape or a file that is not UTF-8
        rprint(f"[red]Error:[/red] Could not read {file}: {e}")
        raise typer.Exit(1)

    _display_report(report)


@import_app.command("batches")
def list_batches(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of batches to show"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Only this source"),
) -> None:
    """
    List recent import batches.

    Examples:
        product-ingest import batches --limit 5
    """
    from product_ingest.db.engine import get_session, init_db
    from product_ingest.db.repositories import ImportBatchRepository

    init_db()
    with get_session() as session:
        batches = ImportBatchRepository(session).list_recent(limit=limit, source=source)

    if not batches:
        rprint("[yellow]No import batches yet[/yellow]")
        return

    table = Table(title="Import Batches")
    table.add_column("Batch", style="bold")
    table.add_column("Source")
    table.add_column("Status")
    table.add_column("Total")
    table.add_column("Imported")
    table.add_column("Duplicates")
    table.add_column("Failed")
    table.add_column("Created")

    for batch in batches:
        color = {"completed": "green", "failed": "red"}.get(batch.status.value, "blue")
        table.add_row(
            str(batch.id)[:8],
            batch.source,
            f"[{color}]{batch.status.value}[/{color}]",
            str(batch.total_items),
            str(batch.imported_items),
            str(batch.duplicate_items),
            str(batch.failed_items),
            batch.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@import_app.command("enqueue")
def enqueue_source(
    source: str = typer.Argument(..., help="Source name to scrape and import"),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Search query"),
    sync: bool = typer.Option(False, "--sync", help="Run in this process instead of the queue"),
) -> None:
    """
    Scrape a source and import the results as a background job.

    Examples:
        product-ingest import enqueue etsy --query "boho wedding decor"
        product-ingest import enqueue amazon --sync
    """
    from product_ingest.ingestion.jobs import JobStatus, enqueue_import, run_source

    _get_source_or_exit(source)

    if sync:
        from product_ingest.db.engine import get_session, init_db
        from product_ingest.ingestion.categorizer import build_categorizer_from_env

        rprint("\n[dim]Running synchronously...[/dim]\n")
        init_db()
        with get_session() as session:
            with console.status("[bold blue]Scraping and importing...[/bold blue]"):
                result = asyncio.run(
                    run_source(source, query, session, build_categorizer_from_env())
                )

        _display_job_result(result.to_dict())
        if result.status == JobStatus.FAILED:
            raise typer.Exit(1)
        return

    rprint("\n[dim]Enqueueing job for async processing...[/dim]")
    try:
        job_id = asyncio.run(enqueue_import(source, query))
    except Exception as e:
        rprint(f"\n[red]Error:[/red] Failed to enqueue job: {e}")
        rprint("\nMake sure Redis is running (REDIS_HOST / REDIS_PORT)")
        raise typer.Exit(1)

    rprint("\n[green]Job enqueued successfully![/green]")
    rprint(f"Job ID: [bold]{job_id}[/bold]")
    rprint("\nCheck status with:")
    rprint(f"  product-ingest import status {job_id}")


@import_app.command("status")
def job_status(
    job_id: str = typer.Argument(..., help="Job ID to check"),
) -> None:
    """
    Check the status of a queued scrape-and-import job.

    Examples:
        product-ingest import status 4f2c9a
    """
    from product_ingest.ingestion.jobs import get_job_status

    try:
        result = asyncio.run(get_job_status(job_id))
    except Exception as e:
        rprint(f"[red]Error:[/red] Failed to get job status: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)

    if result is None:
        rprint(f"[yellow]Job '{job_id}' not found[/yellow]")
        raise typer.Exit(1)

    rprint(f"\n[bold]Job: {job_id}[/bold]")
    rprint(f"  Status: {result.get('status', 'unknown')}")
    if result.get("result"):
        _display_job_result(result["result"])


@import_app.command("worker")
def start_worker(
    burst: bool = typer.Option(False, "--burst", help="Run in burst mode (exit when queue empty)"),
) -> None:
    """
    Start the import worker.

    The worker processes queued scrape-and-import jobs from Redis, one
    at a time.

    Examples:
        product-ingest import worker
        product-ingest import worker --burst
    """
    from arq import run_worker

    from product_ingest.ingestion.jobs import WorkerSettings

    rprint("[bold]Starting import worker...[/bold]")
    rprint("Press Ctrl+C to stop\n")

    try:
        run_worker(WorkerSettings, burst=burst)
    except Exception as e:
        rprint(f"[red]Error:[/red] Worker failed: {e}")
        rprint("\nMake sure Redis is running")
        raise typer.Exit(1)


# Sources subcommands


@sources_app.command("list")
def list_sources(
    all_sources: bool = typer.Option(False, "--all", "-a", help="Show all sources including disabled"),
) -> None:
    """
    List configured sources.

    Examples:
        product-ingest sources list
        product-ingest sources list --all
    """
    registry = get_default_registry()
    sources = registry.list_sources() if all_sources else registry.list_enabled_sources()

    if not sources:
        rprint("[yellow]No sources configured[/yellow]")
        rprint("\nAdd sources to config/sources.yaml")
        return

    table = Table(title="Product Sources")
    table.add_column("Name", style="bold")
    table.add_column("Adapter")
    table.add_column("Status")
    table.add_column("Rate Limit")
    table.add_column("Max Results")
    table.add_column("API Key")

    for source in sources:
        status = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"
        rate = f"{source.rate_limit.requests_per_minute}/min"
        if source.adapter == "manual":
            key = "[dim]n/a[/dim]"
        elif source.credentials().api_key:
            key = "[green]set[/green]"
        else:
            key = "[red]missing[/red]"
        table.add_row(source.name, source.adapter, status, rate, str(source.max_results), key)

    console.print(table)


@sources_app.command("show")
def show_source(
    name: str = typer.Argument(..., help="Source name"),
) -> None:
    """
    Show detailed information about a source.

    Examples:
        product-ingest sources show etsy
    """
    source = _get_source_or_exit(name)
    status = "[green]enabled[/green]" if source.enabled else "[yellow]disabled[/yellow]"
    credentials = source.credentials()

    rprint(f"\n[bold]Source: {source.name}[/bold]")
    rprint(f"  Status: {status}")
    rprint(f"  Adapter: {source.adapter}")
    if source.description:
        rprint(f"  Description: {source.description}")
    if source.default_query:
        rprint(f"  Default query: {source.default_query}")
    rprint(f"  Max results: {source.max_results}")

    rprint("\n[bold]Rate Limiting:[/bold]")
    rprint(f"  Requests/minute: {source.rate_limit.requests_per_minute}")

    rprint("\n[bold]Credentials:[/bold]")
    rprint(f"  API key: {'set' if credentials.api_key else 'missing'}")
    rprint(f"  Affiliate ID: {credentials.affiliate_id or 'missing'}")

    adapter_info = get_adapter_info(source.adapter)
    if adapter_info:
        rprint("\n[bold]Adapter Info:[/bold]")
        rprint(f"  Name: {adapter_info['name']}")
        rprint(f"  Version: {adapter_info['version']}")
        rprint(f"  Class: {adapter_info['class']}")


@sources_app.command("adapters")
def list_source_adapters() -> None:
    """
    List available adapters.

    Examples:
        product-ingest sources adapters
    """
    table = Table(title="Available Adapters")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Class")

    for adapter_name in list_adapters():
        info = get_adapter_info(adapter_name)
        if info:
            table.add_row(info["name"], info["version"], info["class"])

    console.print(table)
