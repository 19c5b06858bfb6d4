"""bomcheck CLI.

Commands:
- init: Initialize database schema
- check: Run a compliance check from a request JSON file
- analyze-bom: Extract structured BOM items from a text file
- reports: List persisted compliance reports for a project
- web serve: Run the FastAPI service
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import replace
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from bomcheck.analysis.bom_text import BOMAnalyzer
from bomcheck.compliance.engine import ComplianceEngine, parse_check_request
from bomcheck.compliance.filters import (
    filter_issues,
    format_processing_time,
    group_issues_by_item,
)
from bomcheck.config import get_config
from bomcheck.core.logging import configure_logging
from bomcheck.db.connection import close_db, get_engine, get_session
from bomcheck.db.models import Base
from bomcheck.db.quote_cache import SqlQuoteCache, list_reports, save_report
from bomcheck.exceptions import BOMCheckError, InputError
from bomcheck.models import ComplianceCheckResult, Severity

app = typer.Typer(
    name="bomcheck",
    help="bomcheck - BOM compliance checks against vendor quotes",
    no_args_is_help=True,
)

web_cli = typer.Typer(help="Web API")
app.add_typer(web_cli, name="web")

console = Console()

_SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


@app.callback()
def _setup(
    log_level: str = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    configure_logging(log_level or get_config().log_level)


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        engine = get_engine()
        async with engine.begin() as conn:
            if drop:
                console.print("[yellow]Dropping existing tables...[/yellow]")
                await conn.run_sync(Base.metadata.drop_all)
            console.print("[green]Creating tables...[/green]")
            await conn.run_sync(Base.metadata.create_all)
        await close_db()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def check(
    request_file: Path = typer.Argument(..., exists=True, readable=True, help="Request JSON"),
    no_parse: bool = typer.Option(False, "--no-parse", help="Use cached quote data only"),
    fuzzy: bool = typer.Option(False, "--fuzzy", help="Use the offline fuzzy reconciler"),
    use_db: bool = typer.Option(False, "--db", help="Use the database quote cache"),
    persist: bool = typer.Option(False, "--persist", help="Save the report (implies --db)"),
    severity: list[str] = typer.Option([], "--severity", "-s", help="Only show these severities"),
    search: str = typer.Option(None, "--search", help="Only show issues mentioning this text"),
    as_json: bool = typer.Option(False, "--json", help="Print the full JSON result"),
):
    """Run a compliance check from a request JSON file."""
    try:
        payload = json.loads(request_file.read_text(encoding="utf-8"))
        request = parse_check_request(payload)
    except (ValueError, InputError) as e:
        details = getattr(e, "details", None)
        console.print(f"[bold red]✗ Invalid request:[/bold red] {e}")
        if details:
            console.print(details)
        raise typer.Exit(code=2) from e

    if no_parse:
        request = request.model_copy(update={"parse_documents": False})

    config = get_config()
    if fuzzy:
        config = replace(config, compliance=replace(config.compliance, reconciler="fuzzy"))

    async def _check() -> ComplianceCheckResult:
        cache = SqlQuoteCache() if (use_db or persist) else None
        engine = ComplianceEngine.from_config(config, cache=cache)
        try:
            result = await engine.run(request)
            if persist:
                async with get_session() as session:
                    await save_report(session, result.report)
            return result
        finally:
            if use_db or persist:
                await close_db()

    try:
        result = asyncio.run(_check())
    except BOMCheckError as e:
        console.print(f"[bold red]✗ Compliance check failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if as_json:
        console.print_json(data=result.to_wire())
        return

    _print_report(result, severity, search)


@app.command(name="analyze-bom")
def analyze_bom_cmd(
    text_file: Path = typer.Argument(..., exists=True, readable=True, help="BOM text file"),
    category: list[str] = typer.Option([], "--category", "-c", help="Existing category"),
    make: list[str] = typer.Option([], "--make", "-m", help="Existing make"),
    as_json: bool = typer.Option(False, "--json", help="Print the full JSON result"),
):
    """Extract structured BOM items from a text file."""
    text = text_file.read_text(encoding="utf-8")
    analyzer = BOMAnalyzer(get_config().llm)

    try:
        result = asyncio.run(analyzer.analyze(text, category, make))
    except InputError as e:
        console.print(f"[bold red]✗[/bold red] {e}")
        raise typer.Exit(code=2) from e

    if as_json:
        console.print_json(data=result.to_wire())
        return

    table = Table(title=f"Extracted items ({result.method})")
    table.add_column("Name", style="cyan")
    table.add_column("Make")
    table.add_column("SKU")
    table.add_column("Qty", justify="right")
    table.add_column("Category", style="green")
    table.add_column("Conf.", justify="right")
    for item in result.items:
        table.add_row(
            item.name,
            item.make or "-",
            item.sku or "-",
            str(item.quantity),
            item.category,
            f"{item.confidence:.2f}",
        )
    console.print(table)
    console.print(
        f"{result.total_items} items, confidence {result.confidence:.2f}, "
        f"{format_processing_time(result.processing_time_ms)}"
    )


@app.command()
def reports(
    project_id: str = typer.Argument(..., help="Project ID"),
    limit: int = typer.Option(10, "--limit", help="Number of reports"),
):
    """List persisted compliance reports for a project."""

    async def _reports():
        try:
            async with get_session() as session:
                return await list_reports(session, project_id, limit=limit)
        finally:
            await close_db()

    found = asyncio.run(_reports())
    if not found:
        console.print("[yellow]No reports found for project[/yellow]")
        return

    table = Table(title=f"Compliance reports: {project_id}")
    table.add_column("Report", style="cyan")
    table.add_column("Created")
    table.add_column("Items", justify="right")
    table.add_column("Issues", justify="right")
    table.add_column("Score", justify="right", style="green")
    for report in found:
        table.add_row(
            report.id,
            report.created_at.strftime("%Y-%m-%d %H:%M"),
            str(report.total_items_checked),
            str(report.total_issues),
            str(report.compliance_score),
        )
    console.print(table)


@web_cli.command("serve")
def web_serve(
    host: str = typer.Option("0.0.0.0", help="Host to bind"),
    port: int = typer.Option(8001, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Run the FastAPI service."""
    import uvicorn

    typer.echo(f"Starting bomcheck API on http://{host}:{port}")
    uvicorn.run("bomcheck.web.app:app", host=host, port=port, reload=reload, workers=1)


def _print_report(
    result: ComplianceCheckResult,
    severities: list[str] | None = None,
    search: str | None = None,
) -> None:
    report = result.report
    by_severity = report.issues_by_severity

    console.print(f"\n[bold]Compliance report:[/bold] {report.project_id} ({report.id})")
    console.print(
        f"  Items checked: {report.total_items_checked}  "
        f"Items with issues: {report.items_with_issues}  "
        f"Score: [bold]{report.compliance_score}[/bold]"
    )
    console.print(
        f"  Errors: [red]{by_severity.get('error', 0)}[/red]  "
        f"Warnings: [yellow]{by_severity.get('warning', 0)}[/yellow]  "
        f"Info: [cyan]{by_severity.get('info', 0)}[/cyan]"
    )
    console.print(
        f"  Quotes analyzed: {report.quotes_analyzed}  "
        f"Documents parsed: {report.documents_parsed}  "
        f"Lines matched: {report.quotes_matched}  "
        f"Took: {format_processing_time(report.processing_time_ms)}"
    )

    if not report.issues:
        console.print("\n[bold green]✓[/bold green] No issues found")
        return

    table = Table(title="Issues")
    table.add_column("ID", style="dim")
    table.add_column("Item", style="cyan")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Message")
    shown = filter_issues(report.issues, severities=severities, search_query=search)
    for issues in group_issues_by_item(shown).values():
        for issue in issues:
            table.add_row(
                issue.id,
                issue.bom_item_name,
                f"[{_SEVERITY_STYLES[issue.severity]}]{issue.severity.value}[/]",
                issue.issue_type.value,
                issue.message,
            )
    console.print(table)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
