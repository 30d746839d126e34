"""Command-line interface for the hedge.wtf risk service."""
from __future__ import annotations

import argparse
import asyncio
import math
import sys

from .config import AppConfig, load_config
from .logging_setup import configure_logging
from .models import LeaderboardPage, ObligationSummary, PoolStats
from .risk.rates import bps_to_percent
from .services import RiskEngine


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="hedge-risk",
        description="hedge.wtf lending risk solver and leaderboard",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind host (overrides config)")
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Bind port (overrides config)"
    )

    lb_parser = sub.add_parser("leaderboard", help="Print the ranked leaderboard")
    lb_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    lb_parser.add_argument(
        "--page-size",
        type=int,
        default=None,
        help="Entries per page (default: from config)",
    )
    lb_parser.add_argument(
        "--force-refresh",
        action="store_true",
        help="Bypass the cache and rescan",
    )

    ob_parser = sub.add_parser("obligations", help="Print valued obligations")
    ob_parser.add_argument(
        "owner",
        nargs="?",
        default=None,
        help="Only obligations of this owner",
    )

    sub.add_parser("pools", help="Print pool totals, utilization and APYs")

    return parser


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _short(address: str) -> str:
    if len(address) > 16:
        return f"{address[:6]}...{address[-4:]}"
    return address


def format_leaderboard(page: LeaderboardPage) -> str:
    lines = [
        f"Leaderboard page {page.page}/{max(page.total_pages, 1)} "
        f"({page.total_entries} obligations, cached={page.cached})",
        f"{'#':>4}  {'Account':<14}{'Owner':<14}{'Net USD':>16}{'Deposits':>16}{'Borrows':>16}",
    ]
    start = (page.page - 1) * page.page_size
    for i, e in enumerate(page.leaderboard, start=start + 1):
        lines.append(
            f"{i:>4}  {_short(e.account_id):<14}{_short(e.owner_id):<14}"
            f"{e.portfolio_value_usd:>16,.2f}{e.total_deposits_usd:>16,.2f}"
            f"{e.total_borrows_usd:>16,.2f}"
        )
    return "\n".join(lines)


def format_pools(stats: list[PoolStats]) -> str:
    lines = [
        f"{'Asset':<10}{'Deposits':>18}{'Borrows':>18}{'Util %':>10}"
        f"{'Borrow APY':>12}{'Supply APY':>12}",
    ]
    for s in stats:
        lines.append(
            f"{s.symbol:<10}{s.total_deposits:>18,.4f}{s.total_borrows:>18,.4f}"
            f"{s.utilization_rate:>10.2f}{bps_to_percent(s.borrow_apy_bps):>11.2f}%"
            f"{bps_to_percent(s.deposit_apy_bps):>11.2f}%"
        )
    return "\n".join(lines)


def format_obligation(summary: ObligationSummary) -> str:
    health = "-" if math.isnan(summary.health_score) else f"{summary.health_score:.3f}"
    lines = [
        f"{summary.address}  owner={_short(summary.owner)}  "
        f"net=${summary.valuation.net_usd:,.2f}  health={health}"
    ]
    for label, positions in (("deposit", summary.deposits), ("borrow", summary.borrows)):
        for p in positions:
            lines.append(
                f"    {label:<8}{p.asset.symbol:<10}{p.amount:>18,.6f}"
                f"  ${p.amount * p.asset.price:,.2f}"
            )
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _serve(config: AppConfig, args: argparse.Namespace) -> None:
    import uvicorn

    from .api import create_app

    uvicorn.run(
        create_app(config),
        host=args.host or config.server.host,
        port=args.port or config.server.port,
        log_config=None,
    )


async def _run(config: AppConfig, args: argparse.Namespace) -> None:
    """Execute the selected async command."""
    engine = RiskEngine(config)
    await engine.start()

    if args.command == "leaderboard":
        page = await engine.leaderboard.get_leaderboard(
            page=args.page,
            page_size=args.page_size,
            force_refresh=args.force_refresh,
        )
        print(format_leaderboard(page))
    elif args.command == "obligations":
        summaries = await engine.leaderboard.list_obligations(args.owner)
        print(f"{len(summaries)} obligations")
        for summary in summaries:
            print(format_obligation(summary))
    elif args.command == "pools":
        print(format_pools(await engine.pool_stats()))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "serve":
        _serve(config, args)
    else:
        asyncio.run(_run(config, args))
