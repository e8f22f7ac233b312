import asyncio
import json
import logging
import os
from typing import Any

from rich.console import Console

from configs.settings import Settings, get_settings, setup_logging
from walletscope.ingest.enrich import TransactionService, UpstreamUnavailableError
from walletscope.ingest.models import BatchResult
from walletscope.ingest.solana_rpc import RpcClient, RpcError, validate_address
from walletscope.portfolio.holdings import fetch_user_portfolio
from walletscope.realtime.watch_wallet import listen_wallet_transactions
from walletscope.registry.token_registry import TokenRegistry
from walletscope.report.formatter import TransactionFormatter

console = Console()
log = logging.getLogger(__name__)


def save_json(path: str, obj: Any) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2)


def save_snapshot(snapshot_dir: str, batch: BatchResult) -> str:
    stamp = batch.fetched_at.strftime("%Y%m%d_%H%M%S")
    out_path = os.path.join(snapshot_dir, f"wallet_{batch.account}_tx_{stamp}.json")
    save_json(out_path, batch.to_dict())
    return out_path


async def inspect_wallet(s: Settings, formatter: TransactionFormatter, registry: TokenRegistry) -> None:
    async with RpcClient(rpc_url=s.rpc_url) as client:
        service = TransactionService(client, max_concurrency=s.fetch_concurrency, timeout_s=s.fetch_timeout_s)

        batch = None
        try:
            batch = await service.fetch_account_transactions(s.wallet_address, limit=s.transactions_limit)
        except UpstreamUnavailableError as e:
            log.error("Error fetching transactions for account %s: %s", e.account, e)
        except asyncio.TimeoutError:
            log.error("Fetching transactions for %s timed out after %.0fs", s.wallet_address, s.fetch_timeout_s)

        if batch is not None and batch.transactions:
            formatter.analyze_transactions(batch)
            if s.snapshot_dir:
                console.print(f"[green]Saved[/green] {save_snapshot(s.snapshot_dir, batch)}")
        elif batch is not None:
            log.info("No recent transactions found for account: %s", s.wallet_address)

        try:
            holdings = await fetch_user_portfolio(client, s.wallet_address, registry)
            formatter.format_user_portfolio(s.wallet_address, holdings)
        except RpcError as e:
            log.error("Error printing user tokens: %s", e)


async def run(s: Settings) -> None:
    formatter = TransactionFormatter(console=console)
    registry = TokenRegistry()

    log.info("Solana Transaction Monitor Starting...")
    await inspect_wallet(s, formatter, registry)

    await listen_wallet_transactions(s.ws_url, s.wallet_address, interval_s=s.poll_interval_s)


def main() -> None:
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        s = get_settings()
        validate_address(s.wallet_address)
    except ValueError as e:
        console.print(f"[red]Fatal:[/red] {e}")
        raise SystemExit(1)

    try:
        asyncio.run(run(s))
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


if __name__ == "__main__":
    main()
