"""CLI entry point for agentbuilders."""

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from agentbuilders.catalog import Catalog
from agentbuilders.config import Settings
from agentbuilders.daemon import RefreshScheduler
from agentbuilders.errors import AgentBuildersError
from agentbuilders.jobs import MetricsRefresher
from agentbuilders.models.schemas import Framework, MetricSource, RefreshReport
from agentbuilders.monitoring import MetricsCollector
from agentbuilders.storage import JsonFileStore

app = typer.Typer(help="AI agent-builder framework catalog and metrics refresher.")

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    data_dir: Path | None = typer.Option(None, "--data-dir", "-d", help="Data directory (overrides AGENTBUILDERS_DATA_DIR)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    settings = Settings.from_env()
    if data_dir is not None:
        settings = dataclasses.replace(settings, data_dir=data_dir)
    ctx.obj = settings


def _refresher(settings: Settings) -> MetricsRefresher:
    return MetricsRefresher(
        JsonFileStore(settings.store_path),
        settings,
        metrics=MetricsCollector(settings.metrics_path),
    )


def _print_report(report: RefreshReport) -> None:
    table = Table(title=f"{report.job.value} refresh")
    table.add_column("Framework", style="cyan")
    table.add_column("Status")
    table.add_column("Value / Error", max_width=60)

    for outcome in report.outcomes:
        if outcome.success:
            if outcome.value is None:
                value = "-"
            elif float(outcome.value).is_integer():
                value = f"{int(outcome.value):,}"
            else:
                value = f"{outcome.value:,.2f}"
            table.add_row(outcome.framework_name, "[green]ok[/green]", value)
        else:
            table.add_row(outcome.framework_name, "[red]error[/red]", f"[dim]{outcome.error}[/dim]")

    console.print(table)
    console.print(
        f"[green]{report.succeeded}[/green] succeeded, [red]{report.failed}[/red] failed"
    )


@app.command()
def refresh(
    ctx: typer.Context,
    job: MetricSource = typer.Argument(..., help="Job to run"),
) -> None:
    """Run one refresh job (github, pypi, npm, similarweb or trending)."""
    report = asyncio.run(_refresh(ctx.obj, job))
    _print_report(report)


async def _refresh(settings: Settings, job: MetricSource) -> RefreshReport:
    async with _refresher(settings) as refresher:
        return await refresher.refresh(job)


@app.command()
def refresh_all(ctx: typer.Context) -> None:
    """Run every metric refresh, then recompute trending scores."""
    reports = asyncio.run(_refresh_all(ctx.obj))
    for report in reports:
        _print_report(report)
        console.print()


async def _refresh_all(settings: Settings) -> list[RefreshReport]:
    async with _refresher(settings) as refresher:
        return await refresher.run_all()


@app.command()
def daemon(
    ctx: typer.Context,
    poll_interval: float = typer.Option(60.0, "--poll-interval", help="Seconds between schedule checks"),
) -> None:
    """Run refresh jobs on their schedule until interrupted.

    github runs every 12 hours; pypi, npm and similarweb every 24 hours;
    trending daily at 01:00 UTC, after the metric jobs due before it.
    """
    scheduler = RefreshScheduler(_refresher(ctx.obj), poll_interval=poll_interval)
    asyncio.run(scheduler.run())


def _frameworks_table(title: str, frameworks: list[Framework]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Trending", justify="right", style="green")
    table.add_column("Stars", justify="right")
    table.add_column("PyPI/mo", justify="right")
    table.add_column("npm/mo", justify="right")
    table.add_column("Last commit")

    def count(value: int | None) -> str:
        return f"{value:,}" if value is not None else "-"

    for fw in frameworks:
        last_commit = (
            datetime.fromtimestamp(fw.last_commit_timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
            if fw.last_commit_timestamp else "-"
        )
        table.add_row(
            fw.id,
            fw.name,
            f"{fw.trending_score:.1f}" if fw.trending_score is not None else "-",
            count(fw.current_stars),
            count(fw.current_pypi_downloads),
            count(fw.current_npm_downloads),
            last_commit,
        )
    return table


@app.command()
def frameworks(
    ctx: typer.Context,
    category: str | None = typer.Option(None, "--category", "-c", help="Category name"),
    tag: list[str] | None = typer.Option(None, "--tag", "-t", help="Match any of these tags"),
    search: str | None = typer.Option(None, "--search", "-s", help="Search name and description"),
    sort: str = typer.Option("trending_score", "--sort", help="trending_score, current_stars, last_commit_timestamp or name"),
    ascending: bool = typer.Option(False, "--asc", help="Sort ascending"),
    limit: int = typer.Option(20, "--limit", "-n", help="Page size"),
    offset: int = typer.Option(0, "--offset", help="Rows to skip"),
) -> None:
    """List cataloged frameworks."""
    catalog = Catalog(JsonFileStore(ctx.obj.store_path))
    try:
        category_id = catalog.categories.get_category_by_name(category).id if category else None
        page = catalog.frameworks.list_frameworks(
            category_id=category_id,
            tags=tag or None,
            search=search,
            sort_by=sort,
            sort_direction="asc" if ascending else "desc",
            limit=limit,
            offset=offset,
        )
    except AgentBuildersError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(_frameworks_table(f"Frameworks {offset + 1}-{offset + len(page.frameworks)} of {page.total}", page.frameworks))
    if page.has_more:
        console.print(f"[dim]More results: --offset {offset + limit}[/dim]")


@app.command()
def trending(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-n", help="Number of frameworks"),
) -> None:
    """Show the top trending frameworks."""
    catalog = Catalog(JsonFileStore(ctx.obj.store_path))
    console.print(_frameworks_table("Trending", catalog.frameworks.get_trending_frameworks(limit)))


@app.command()
def show(
    ctx: typer.Context,
    framework_id: str = typer.Argument(..., help="Framework id"),
) -> None:
    """Show a framework with its category, latest snapshot and resources."""
    catalog = Catalog(JsonFileStore(ctx.obj.store_path))
    try:
        detail = catalog.frameworks.get_framework(framework_id)
    except AgentBuildersError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    fw = detail.framework
    console.print()
    console.print(f"[bold cyan]{fw.name}[/bold cyan]" + (f" [dim]({detail.category.name})[/dim]" if detail.category else ""))
    if fw.description:
        console.print(f"[dim]{fw.description}[/dim]")
    console.print()

    info_table = Table(show_header=False, box=None)
    info_table.add_column("Field", style="bold")
    info_table.add_column("Value")
    info_table.add_row("Website", fw.website_url or "-")
    info_table.add_row("Repository", fw.repo_path or "-")
    info_table.add_row("Tags", ", ".join(fw.tags) or "-")
    info_table.add_row("Trending score", f"{fw.trending_score:.1f}" if fw.trending_score is not None else "-")
    info_table.add_row("Stars", f"{fw.current_stars:,}" if fw.current_stars is not None else "-")
    info_table.add_row("PyPI downloads", f"{fw.current_pypi_downloads:,}" if fw.current_pypi_downloads is not None else "-")
    info_table.add_row("npm downloads", f"{fw.current_npm_downloads:,}" if fw.current_npm_downloads is not None else "-")
    info_table.add_row("Web rank", f"{fw.current_similarweb_rank:,}" if fw.current_similarweb_rank is not None else "-")
    console.print(info_table)

    if detail.latest_snapshot:
        taken = datetime.fromtimestamp(detail.latest_snapshot.timestamp, tz=timezone.utc)
        console.print(f"\n[dim]Latest snapshot: {taken:%Y-%m-%d %H:%M} UTC[/dim]")

    if detail.resources:
        console.print()
        console.print("[bold]Resources:[/bold]")
        for resource in detail.resources:
            console.print(f"  [cyan]{resource.type}[/cyan] {resource.title} [dim]{resource.url}[/dim]")


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the last run of every refresh job and recent errors."""
    metrics = MetricsCollector(ctx.obj.metrics_path).get_metrics()

    table = Table(title="Refresh jobs")
    table.add_column("Job", style="cyan")
    table.add_column("State")
    table.add_column("Runs", justify="right")
    table.add_column("Last finished")
    table.add_column("Duration", justify="right")
    table.add_column("OK", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")

    for job in MetricSource:
        stats = metrics.jobs.get(job.value)
        if stats is None:
            table.add_row(job.value, "[dim]never run[/dim]", "0", "-", "-", "-", "-")
            continue
        state = f"[yellow]running[/yellow] {stats.current_framework}" if stats.is_running else "idle"
        table.add_row(
            job.value,
            state,
            str(stats.total_runs),
            stats.last_finished.strftime("%Y-%m-%d %H:%M UTC") if stats.last_finished else "-",
            f"{stats.last_duration_seconds:.1f}s" if stats.last_duration_seconds is not None else "-",
            str(stats.last_succeeded),
            str(stats.last_failed),
        )
    console.print(table)

    if metrics.github_rate_limit_remaining is not None:
        console.print(
            f"\nGitHub rate limit: {metrics.github_rate_limit_remaining}/{metrics.github_rate_limit_total}"
        )

    if metrics.recent_errors:
        console.print()
        console.print("[bold red]Recent errors:[/bold red]")
        for error in list(metrics.recent_errors)[-10:]:
            console.print(
                f"  [red]x[/red] {error.timestamp:%Y-%m-%d %H:%M} {error.job}/{error.framework}: "
                f"{error.error_type}: {error.message}"
            )


@app.command()
def version() -> None:
    """Show version information."""
    from agentbuilders import __version__

    console.print(f"agentbuilders v{__version__}")


if __name__ == "__main__":
    app()
