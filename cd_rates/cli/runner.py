# cd_rates/cli/runner.py

"""Headless scrape runner and read-only report commands."""

import json
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from cd_rates.config.settings import Settings
from cd_rates.errors import CdRatesError, RunFatalError
from cd_rates.models.rate_record import RateRecord
from cd_rates.scrapers.history_fetcher import HistoryFetcher
from cd_rates.scrapers.page_fetcher import PageFetcher, load_selectors
from cd_rates.scrapers.row_extractor import RowExtractor
from cd_rates.services.rate_pipeline import RatePipeline, resolve_targets
from cd_rates.storage.exporter import Exporter
from cd_rates.storage.history_log import HistoryLogStore

logger = logging.getLogger("cd_rates.cli")

# Stderr console for status messages
_err = Console(stderr=True)


def _print_rates(records: list[RateRecord], title: str) -> None:
    """Render a Rich table of rate records to stdout, best APY first."""
    sorted_records = sorted(
        records,
        key=lambda r: r.apy if r.apy is not None else float("-inf"),
        reverse=True,
    )
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Bank", style="magenta")
    table.add_column("Account", max_width=50)
    table.add_column("APY", justify="right", style="green")
    table.add_column("Min. Deposit", justify="right")
    table.add_column("Updated", style="dim")

    for idx, r in enumerate(sorted_records, 1):
        table.add_row(
            str(idx),
            r.bank_name,
            r.account_name,
            f"{r.apy:.2f}%" if r.apy is not None else "N/A",
            r.min_deposit,
            r.last_updated or "—",
        )

    Console().print(table)


async def run_scrape(
    target_csv: str | None = None,
    output_dir: str | None = None,
    on_corrupt: str | None = None,
) -> int:
    """Run one scrape-merge-export cycle; return an exit code (0=ok, 1=fail)."""
    try:
        targets = resolve_targets(target_csv)
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    data_dir = Path(output_dir) if output_dir else Settings.DATA_DIR
    try:
        store = HistoryLogStore(
            data_dir / Settings.HISTORY_LOG_FILE,
            on_corrupt=on_corrupt or Settings.CORRUPT_LOG_POLICY,
        )
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    settings = Settings()
    selectors = load_selectors(settings, settings.SELECTOR_PROFILE)
    fetcher = PageFetcher(settings, selectors)
    history_fetcher = HistoryFetcher(settings)
    pipeline = RatePipeline(
        targets=targets,
        fetcher=fetcher,
        extractor=RowExtractor(selectors),
        history_fetcher=history_fetcher,
        store=store,
        exporter=Exporter(store, data_dir),
    )

    _err.print(
        f"[bold]Scraping CD rates:[/bold] "
        f"{', '.join(t.name for t in targets)}"
    )
    try:
        result = await pipeline.run()
    except RunFatalError as exc:
        logger.error("Run aborted: %s", exc, exc_info=True)
        _err.print(f"[red]✗ Run aborted: {exc}[/red]")
        return 1
    finally:
        fetcher.close()
        await history_fetcher.close()

    for name in result.skipped_targets:
        _err.print(f"[yellow]Skipped {name}: no rate data[/yellow]")
    _err.print(
        f"[green]✓ {len(result.records)} rates from "
        f"{len(targets) - len(result.skipped_targets)}/{len(targets)} banks, "
        f"{len(result.history_rows)} history points, "
        f"{result.entries_total} snapshots in log[/green]"
    )
    for path in result.written:
        _err.print(f"[dim]Saved → {path}[/dim]")
    return 0


def run_show_latest(
    output_dir: str | None = None,
    output_format: str = "table",
) -> int:
    """Print the latest snapshot from the history log without scraping."""
    data_dir = Path(output_dir) if output_dir else Settings.DATA_DIR
    store = HistoryLogStore(data_dir / Settings.HISTORY_LOG_FILE)
    try:
        entries = store.load()
    except CdRatesError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    if not entries:
        _err.print("[yellow]No snapshots recorded yet.[/yellow]")
        return 1

    latest = entries[-1]
    if output_format == "json":
        Console().print_json(
            json.dumps([r.to_dict() for r in latest.data])
        )
        return 0
    _print_rates(
        list(latest.data),
        f"CD Rates as of {latest.date:%Y-%m-%d %H:%M} UTC",
    )
    return 0


async def run_health_check(target_csv: str | None = None) -> int:
    """Run connectivity health check on all targets."""
    from cd_rates.services.health_checker import HealthChecker

    try:
        targets = resolve_targets(target_csv)
    except ValueError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    _err.print("[bold]Running target health check...[/bold]")
    checker = HealthChecker(targets)
    results = await checker.check_all()

    table = Table(
        title="Target Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Bank", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status in ("slow", "no_table"):
            status = f"[yellow]⚠️  {r.status.upper()}[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(r.target, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0
