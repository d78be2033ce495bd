"""Command-line interface for the LP tracker."""

import asyncio
import logging
import os
import re
import sys

# Fix Windows encoding issues
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    try:
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")
    except Exception:
        pass

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .chains import CHAINS
from .config import Config
from .models import PortfolioMetrics, Position
from .portfolio import breakdown_by_chain, breakdown_by_protocol
from .session import Connected, PortfolioLoader, PortfolioSession


console = Console(force_terminal=True)

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

SORT_KEYS = {
    "pnl": lambda p: p.pnl,
    "value": lambda p: p.current_value,
    "apy": lambda p: p.apy,
}


def print_banner():
    """Print the application banner."""
    banner = (
        "\n[bold cyan]"
        "+-----------------------------------------------------------+\n"
        "|           LP TRACKER                                      |\n"
        "|     DEX liquidity positions, PnL and impermanent loss     |\n"
        "+-----------------------------------------------------------+"
        "[/bold cyan]\n"
    )
    console.print(banner)


def format_currency(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: float) -> str:
    return f"{value:+.2f}%"


def _colored(value: float, text: str) -> str:
    if value > 0:
        return f"[green]{text}[/green]"
    if value < 0:
        return f"[red]{text}[/red]"
    return text


def display_metrics(metrics: PortfolioMetrics):
    """Display portfolio totals in a panel."""
    best = metrics.best_performer
    worst = metrics.worst_performer
    lines = [
        f"Total Value: [bold]{format_currency(metrics.total_value)}[/bold]",
        f"Invested: {format_currency(metrics.total_initial_investment)}",
        "PnL: " + _colored(
            metrics.total_pnl,
            f"{format_currency(metrics.total_pnl)} ({format_percent(metrics.total_pnl_percent)})",
        ),
        f"Fees Earned: {format_currency(metrics.total_fees_earned)}",
        f"Impermanent Loss: {format_currency(metrics.total_impermanent_loss)}",
        f"Active / Closed: {metrics.active_positions} / {metrics.closed_positions}",
    ]
    if best:
        lines.append(f"Best: {best.token_pair.display_name} ({format_percent(best.pnl_percent)})")
    if worst:
        lines.append(f"Worst: {worst.token_pair.display_name} ({format_percent(worst.pnl_percent)})")

    console.print(Panel("\n".join(lines), title="Portfolio", border_style="cyan"))


def display_positions(positions: list[Position], sort: str = "pnl"):
    """Display positions in a formatted table."""
    if not positions:
        console.print(Panel(
            "No LP positions found for this wallet.",
            title="No Positions",
            border_style="yellow",
        ))
        return

    key = SORT_KEYS.get(sort, SORT_KEYS["pnl"])
    table = Table(title=f"Found {len(positions)} LP Position(s)")

    table.add_column("Pair", style="cyan")
    table.add_column("Protocol")
    table.add_column("Chain")
    table.add_column("Status")
    table.add_column("Value", justify="right")
    table.add_column("PnL", justify="right")
    table.add_column("PnL %", justify="right")
    table.add_column("Fees", justify="right")
    table.add_column("IL %", justify="right")
    table.add_column("APY", justify="right")

    for position in sorted(positions, key=key, reverse=True):
        table.add_row(
            position.token_pair.display_name,
            f"{position.protocol.logo} {position.protocol.name}",
            f"{position.chain_icon} {position.chain}",
            position.status.value,
            format_currency(position.current_value),
            _colored(position.pnl, format_currency(position.pnl)),
            _colored(position.pnl_percent, format_percent(position.pnl_percent)),
            format_currency(position.fees_earned),
            format_percent(position.impermanent_loss.percent),
            format_percent(position.apy),
        )

    console.print(table)


def display_breakdown(title: str, groups: dict[str, dict[str, float]]):
    if not groups:
        return
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Positions", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("PnL", justify="right")
    for name, group in sorted(groups.items(), key=lambda kv: kv[1]["value"], reverse=True):
        table.add_row(
            name,
            str(int(group["count"])),
            format_currency(group["value"]),
            _colored(group["pnl"], format_currency(group["pnl"])),
        )
    console.print(table)


async def run_portfolio(address: str, config: Config, chain_keys: list[str] | None = None) -> PortfolioSession:
    """Load a portfolio the same way a wallet connection would."""
    loader = PortfolioLoader.from_config(config)
    session = PortfolioSession(loader, chain_keys)
    try:
        await session.dispatch(Connected(address=address))
    finally:
        loader.close()
    return session


def _parse_args(argv: list[str]) -> tuple[str | None, list[str] | None, str]:
    address = None
    chains = None
    sort = "pnl"
    args = iter(argv)
    for arg in args:
        if arg == "--chains":
            chains = [c.strip().lower() for c in next(args, "").split(",") if c.strip()]
        elif arg == "--sort":
            sort = next(args, "pnl")
        elif address is None:
            address = arg
    return address, chains, sort


def print_help():
    console.print(f"""
[bold]Usage:[/bold]
  lp-tracker ADDRESS                     Scan all configured chains
  lp-tracker ADDRESS --chains a,b        Scan only the given chains
  lp-tracker ADDRESS --sort value        Sort by pnl (default), value or apy
  lp-tracker --help                      Show this help

[bold]Chains:[/bold] {", ".join(CHAINS)}

[bold]How it works:[/bold]
  1. Token transfers and transactions are pulled from each chain's explorer
  2. LP tokens and LP protocol calls are recognised by name and method id
  3. Positions are valued at current prices (estimates, not exact accounting)

[bold]Setup:[/bold]
  1. Copy .env.example to .env
  2. Add explorer API keys (ETHERSCAN_API_KEY, POLYGONSCAN_API_KEY, ...)
""")


def main():
    """Main entry point."""
    print_banner()

    argv = sys.argv[1:]
    if not argv or argv[0] in ("--help", "-h"):
        print_help()
        return

    address, chains, sort = _parse_args(argv)
    if not address or not ADDRESS_RE.match(address):
        console.print(f"[red]Invalid wallet address: {address}[/red]")
        sys.exit(1)

    try:
        config = Config.load()
    except ValueError:
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    unknown = [c for c in chains or [] if c not in CHAINS]
    if unknown:
        console.print(f"[red]Unsupported chain(s): {', '.join(unknown)}[/red]")
        sys.exit(1)

    console.print(f"\n[bold]Loading LP positions for {address}...[/bold]")
    session = asyncio.run(run_portfolio(address, config, chains))

    if session.snapshot is None:
        console.print("[red]Could not load portfolio.[/red]")
        sys.exit(1)

    snapshot = session.snapshot
    display_metrics(snapshot.metrics)
    display_positions(snapshot.positions, sort)
    display_breakdown("By Protocol", breakdown_by_protocol(snapshot.positions))
    display_breakdown("By Chain", breakdown_by_chain(snapshot.positions))


if __name__ == "__main__":
    main()
