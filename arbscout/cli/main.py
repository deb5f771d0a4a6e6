"""
Arbscout CLI entry point.

Usage:
    # One discovery + one evaluation cycle
    python -m arbscout.cli.main --once

    # Run with scheduler until Ctrl+C
    python -m arbscout.cli.main --run

    # Restrict the universe
    python -m arbscout.cli.main --once --symbols BTC,ETH,SOL

    # Show configuration
    python -m arbscout.cli.main --status
"""

import asyncio
import signal
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from arbscout.arb.engine import ArbEngine
from arbscout.core.cache import ExpiringCache
from arbscout.core.config import Settings, get_settings, load_yaml_config
from arbscout.core.errors import ConfigurationError
from arbscout.core.logging import get_logger, setup_logging
from arbscout.core.quota import QuotaManager
from arbscout.core.timeutil import format_duration, format_epoch
from arbscout.domain.models import ArbitrageOpportunity, OpportunityKind
from arbscout.providers.base import NoTransferRestrictions, StaticUniverseProvider
from arbscout.providers.ccxt_venue import create_ccxt_venues
from arbscout.providers.coingecko import CoinGeckoProvider
from arbscout.providers.exchange_status import ExchangeStatusService
from arbscout.providers.market import VenueMarketData
from arbscout.services.notifier import NotificationService
from arbscout.services.scheduler import SchedulerService
from arbscout.services.telegram import create_telegram_service

console = Console()
logger = get_logger("cli")

DEFAULT_VENUES = ["binance", "bybit", "okx", "kucoin", "gateio"]


async def build_engine(
    settings: Settings,
    config: dict,
    symbols: Optional[list[str]] = None,
) -> ArbEngine:
    """Wire the engine and its collaborators from settings and config.yaml."""
    cache = ExpiringCache()
    quota = QuotaManager(config)

    http_config = config.get("http") or {}
    fees_config = config.get("fees") or {}
    venues = create_ccxt_venues(
        config.get("venues") or DEFAULT_VENUES,
        timeout_ms=int(http_config.get("timeout_ms", 30000)),
        default_fee_rate=float(fees_config.get("default_trading_fee", 0.001)),
    )
    if not venues:
        raise ConfigurationError("No usable venues configured")

    market = VenueMarketData(venues, cache, quota=quota, config=config)

    status_config = config.get("exchange_status") or {}
    if status_config.get("enabled", True):
        eligibility = ExchangeStatusService(cache, config=config)
    else:
        eligibility = NoTransferRestrictions()

    if symbols:
        universe = StaticUniverseProvider(symbols)
    else:
        universe = CoinGeckoProvider(cache, settings=settings, quota=quota, config=config)

    sink = NotificationService(create_telegram_service(settings), tz_name=settings.timezone)

    try:
        return ArbEngine(
            market,
            universe,
            eligibility,
            sink,
            settings=settings,
            config=config,
            cache=cache,
        )
    except ConfigurationError:
        await asyncio.gather(
            market.close(), universe.close(), eligibility.close(),
            return_exceptions=True,
        )
        raise


def display_opportunities(opportunities: list[ArbitrageOpportunity], tz_name: str = "UTC") -> None:
    """Display opportunities in terminal."""
    if not opportunities:
        console.print("[yellow]No opportunities above threshold[/yellow]")
        return

    table = Table(title="Opportunities")
    table.add_column("Symbol", style="cyan")
    table.add_column("Kind")
    table.add_column("Route")
    table.add_column("Gross %", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("Net", justify="right", style="green")
    table.add_column("Net %", justify="right", style="green")
    table.add_column("Time", style="dim")

    for opp in opportunities:
        if opp.kind == OpportunityKind.CYCLIC:
            route = f"{opp.legs[0].venue}: {' → '.join(opp.path or [])}"
        else:
            route = f"{opp.buy_venue} → {opp.sell_venue}"
        table.add_row(
            opp.symbol,
            opp.kind.value,
            route,
            f"{opp.gross_difference_pct:.2f}",
            f"{opp.fees.total:.2f}",
            f"{opp.net_profit_amount:.2f}",
            f"{opp.net_profit_pct:.2f}",
            format_epoch(opp.observed_at, "time", tz_name),
        )

    console.print(table)


@click.command()
@click.option("--once", is_flag=True, help="Run one discovery and one evaluation cycle")
@click.option("--run", "run_forever", is_flag=True, help="Run with scheduler until interrupted")
@click.option("--status", is_flag=True, help="Show configuration")
@click.option("--symbols", default=None, help="Comma-separated symbols instead of the CoinGecko universe")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def main(once: bool, run_forever: bool, status: bool, symbols: Optional[str], verbose: bool) -> None:
    """Arbscout - Two-tier crypto arbitrage scanner"""

    symbol_list = [s.strip().upper() for s in symbols.split(",") if s.strip()] if symbols else None

    try:
        setup_logging(log_level="DEBUG" if verbose else None)
        settings = get_settings()
        config = load_yaml_config()

        if status:
            show_status(settings, config)
            return

        if once:
            console.print("[bold]Running Arbscout scan...[/bold]\n")
            asyncio.run(run_once(settings, config, symbol_list))
            return

        if run_forever:
            asyncio.run(run_scheduled(settings, config, symbol_list))
            return
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e.message}")
        sys.exit(1)

    # Default: show help
    ctx = click.get_current_context()
    click.echo(ctx.get_help())


def show_status(settings: Settings, config: dict) -> None:
    """Show configuration."""
    console.print("\n[bold]Arbscout Status[/bold]\n")

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Timezone", settings.timezone)
    table.add_row("Log Level", settings.log_level)
    table.add_row("Arbitrage threshold", f"{settings.arbitrage_threshold}%")
    table.add_row("Volume spike threshold", f"{settings.volume_spike_threshold}x")
    table.add_row("Min volume", f"${settings.min_absolute_volume:,.0f}")
    table.add_row("Active set", f"{settings.active_set_size} symbols, TTL {format_duration(settings.active_set_ttl)}")
    table.add_row("Discovery interval", format_duration(settings.scan_interval))
    table.add_row("Trade amount", f"{settings.trade_amount:,.2f} {settings.funding_currency}")
    table.add_row("Venues", ", ".join(config.get("venues") or DEFAULT_VENUES))
    table.add_row("Cyclic venues", ", ".join((config.get("cyclic") or {}).get("venues", [])))

    console.print(table)
    console.print()

    table = Table(title="Notifications")
    table.add_column("Channel", style="cyan")
    table.add_column("Status")
    telegram = "[green]✓ Configured[/green]" if settings.telegram_configured else "[red]✗ Missing[/red]"
    table.add_row("Log", "[green]✓ Always[/green]")
    table.add_row("Telegram", telegram)
    console.print(table)


async def run_once(settings: Settings, config: dict, symbols: Optional[list[str]]) -> None:
    engine = await build_engine(settings, config, symbols)
    try:
        await engine.refresh_transfer_status()
        admitted = await engine.run_discovery_cycle() or []
        console.print(f"Admitted {len(admitted)} symbols: {', '.join(admitted) or '-'}\n")
        opportunities = await engine.run_evaluation_cycle() or []
        display_opportunities(opportunities, settings.timezone)
    finally:
        await engine.stop()


async def run_scheduled(settings: Settings, config: dict, symbols: Optional[list[str]]) -> None:
    """Run with scheduler until SIGINT/SIGTERM."""
    console.print("[bold]Starting Arbscout scheduler...[/bold]")
    console.print("Press Ctrl+C to stop\n")

    engine = await build_engine(settings, config, symbols)
    scheduler = SchedulerService(settings)
    engine.schedule(scheduler)
    scheduler.start()

    table = Table(title="Scheduled Jobs")
    table.add_column("Job", style="cyan")
    table.add_column("Next Run")
    for job in scheduler.get_jobs():
        table.add_row(job["name"], job["next_run"] or "N/A")
    console.print(table)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no signal handlers; Ctrl+C raises instead
            pass

    try:
        await stop_event.wait()
    finally:
        console.print("\n[yellow]Shutting down...[/yellow]")
        scheduler.stop()
        await engine.stop()


if __name__ == "__main__":
    main()
