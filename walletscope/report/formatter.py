from datetime import datetime
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from walletscope.ingest.models import (
    BatchResult,
    CompiledInstruction,
    DecodedMessage,
    TransactionMeta,
    TransactionRecord,
    lamports_to_sol,
)
from walletscope.portfolio.holdings import TokenHolding

MAX_LOGS = 5
MAX_LOG_LEN = 80
MAX_ACCOUNTS = 5
MAX_INSTRUCTIONS = 3


def short_signature(signature: str) -> str:
    if len(signature) > 16:
        return signature[:8] + "..." + signature[-8:]
    return signature


def format_sol_change(lamports: int) -> str:
    return f"{lamports_to_sol(lamports):+.6f}"


class TransactionFormatter:
    """Pretty printing of enriched transactions and token holdings."""

    def __init__(self, console: Optional[Console] = None, show_full_data: bool = False):
        self.console = console or Console()
        self.show_full_data = show_full_data

    def _limit(self, default: int, total: int) -> int:
        return total if self.show_full_data else default

    def format_transaction_summary(self, batch: BatchResult) -> None:
        c = self.console
        c.print()
        c.print("[bold white on blue] SOLANA TRANSACTION EXPLORER [/bold white on blue]")
        c.print(f"Account: [cyan]{batch.account}[/cyan]")
        c.print(f"Total Transactions: [green]{len(batch.transactions)}[/green]")
        c.print(f"Last Fetched: [yellow]{batch.fetched_at.isoformat(timespec='seconds')}[/yellow]")
        c.print()

        t = Table(title="Transaction Summary", box=box.ROUNDED, show_lines=True, header_style="bold bright_white")
        for col in ("#", "Signature (Short)", "Status", "Slot", "Time", "Fee (SOL)", "Balance Change"):
            t.add_column(col)

        for i, tx in enumerate(batch.transactions, start=1):
            status = "[green]✅ SUCCESS[/green]"
            if tx.meta is not None and not tx.meta.succeeded:
                status = "[red]❌ FAILED[/red]"

            time_str = "N/A"
            if tx.block_time is not None:
                time_str = datetime.fromtimestamp(tx.block_time).strftime("%m-%d %H:%M")

            fee_sol = "0"
            balance_change = "0"
            if tx.meta is not None:
                fee_sol = f"{lamports_to_sol(tx.meta.fee):.6f}"
                change = tx.meta.balance_change(0)
                if change:
                    balance_change = format_sol_change(change)

            t.add_row(str(i), short_signature(tx.signature), status, str(tx.slot), time_str, fee_sol, balance_change)

        c.print(t)

    def format_transaction_details(self, tx: TransactionRecord, index: int) -> None:
        c = self.console
        c.print()
        c.print(f"[bold white on green] TRANSACTION #{index + 1} DETAILS [/bold white on green]")

        basic = Table(title="Basic Information", show_header=False, box=box.HEAVY)
        basic.add_column("Field", style="bold")
        basic.add_column("Value")
        basic.add_row("Signature", tx.signature)
        basic.add_row("Slot", str(tx.slot))
        if tx.block_time is not None:
            basic.add_row("Block Time", datetime.fromtimestamp(tx.block_time).astimezone().isoformat())
        c.print(basic)

        if tx.meta is not None:
            self._format_transaction_meta(tx.meta)
        if tx.message is not None:
            self._format_transaction_message(tx.message)

    def _format_transaction_meta(self, meta: TransactionMeta) -> None:
        c = self.console
        c.print()
        c.print("[yellow]💰 TRANSACTION META[/yellow]")

        t = Table(title="Meta Information", show_header=False, box=box.SQUARE)
        t.add_column("Field")
        t.add_column("Value")
        t.add_row("Fee (lamports)", str(meta.fee))
        t.add_row("Fee (SOL)", f"{lamports_to_sol(meta.fee):.9f}")
        if meta.succeeded:
            t.add_row("Status", "SUCCESS ✅")
        else:
            t.add_row("Status", f"FAILED ❌ - {escape(str(meta.err))}")
        if meta.compute_units_consumed is not None:
            t.add_row("Compute Units", str(meta.compute_units_consumed))
        c.print(t)

        self._format_balance_changes(meta)
        self._format_token_balances(meta)
        if meta.log_messages:
            self._format_program_logs(meta.log_messages)

    def _format_balance_changes(self, meta: TransactionMeta) -> None:
        if not meta.pre_balances or not meta.post_balances:
            return

        t = Table(title="Account Balance Changes", box=box.SQUARE)
        for col in ("Account", "Pre (SOL)", "Post (SOL)", "Change (SOL)"):
            t.add_column(col)

        for i, pre in enumerate(meta.pre_balances):
            change = meta.balance_change(i)
            if not change:
                continue
            color = "green" if change > 0 else "red"
            t.add_row(
                f"Account[{i}]",
                f"{lamports_to_sol(pre):.6f}",
                f"{lamports_to_sol(meta.post_balances[i]):.6f}",
                f"[{color}]{format_sol_change(change)}[/{color}]",
            )

        if t.row_count > 0:
            self.console.print()
            self.console.print("[cyan]📊 SOL BALANCE CHANGES[/cyan]")
            self.console.print(t)

    def _format_token_balances(self, meta: TransactionMeta) -> None:
        if not meta.post_token_balances:
            return

        self.console.print()
        self.console.print("[magenta]🪙 TOKEN BALANCES[/magenta]")

        t = Table(title="Token Information", box=box.SQUARE)
        for col in ("Mint", "Amount", "Decimals"):
            t.add_column(col)
        for tb in meta.post_token_balances:
            if tb.ui_token_amount is None:
                continue
            t.add_row(tb.mint[:8] + "...", tb.ui_token_amount.ui_amount_string, str(tb.ui_token_amount.decimals))
        self.console.print(t)

    def _format_program_logs(self, logs: Sequence[str]) -> None:
        self.console.print()
        self.console.print("[yellow]📝 PROGRAM LOGS[/yellow]")

        t = Table(title="Program Execution Logs", box=box.SQUARE, show_lines=True)
        t.add_column("#")
        t.add_column("Message")

        max_logs = self._limit(MAX_LOGS, len(logs))
        for i, msg in enumerate(logs[:max_logs], start=1):
            if len(msg) > MAX_LOG_LEN and not self.show_full_data:
                msg = msg[: MAX_LOG_LEN - 3] + "..."
            t.add_row(str(i), escape(msg))

        if len(logs) > max_logs:
            t.add_row("...", f"and {len(logs) - max_logs} more logs")
        self.console.print(t)

    def _format_transaction_message(self, msg: DecodedMessage) -> None:
        c = self.console
        c.print()
        c.print("[blue]📄 TRANSACTION MESSAGE[/blue]")

        t = Table(title="Message Information", show_header=False, box=box.SQUARE)
        t.add_column("Field")
        t.add_column("Value")
        t.add_row("Recent Blockhash", msg.recent_blockhash)
        t.add_row("Required Signatures", str(msg.header.num_required_signatures))
        t.add_row("Readonly Signed", str(msg.header.num_readonly_signed_accounts))
        t.add_row("Readonly Unsigned", str(msg.header.num_readonly_unsigned_accounts))
        t.add_row("Total Accounts", str(len(msg.account_keys)))
        t.add_row("Total Instructions", str(len(msg.instructions)))
        c.print(t)

        if msg.account_keys:
            self._format_account_keys(msg.account_keys)
        if msg.instructions:
            self._format_instructions(msg.instructions, msg.account_keys)

    def _format_account_keys(self, account_keys: Sequence[str]) -> None:
        self.console.print()
        self.console.print("[green]🔑 ACCOUNT KEYS[/green]")

        t = Table(title="Transaction Account Keys", box=box.SQUARE)
        t.add_column("Index")
        t.add_column("Public Key")

        max_accounts = self._limit(MAX_ACCOUNTS, len(account_keys))
        for i, key in enumerate(account_keys[:max_accounts]):
            t.add_row(str(i), key)
        if len(account_keys) > max_accounts:
            t.add_row("...", f"and {len(account_keys) - max_accounts} more accounts")
        self.console.print(t)

    def _format_instructions(self, instructions: Sequence[CompiledInstruction], account_keys: Sequence[str]) -> None:
        self.console.print()
        self.console.print("[red]⚙️ INSTRUCTIONS[/red]")

        t = Table(title="Transaction Instructions", box=box.SQUARE)
        for col in ("#", "Program", "Accounts", "Data Size"):
            t.add_column(col)

        max_instr = self._limit(MAX_INSTRUCTIONS, len(instructions))
        for i, ix in enumerate(instructions[:max_instr], start=1):
            program = "Unknown"
            if ix.program_id_index < len(account_keys):
                program = account_keys[ix.program_id_index][:8] + "..."

            accounts = str(list(ix.accounts))
            if len(accounts) > 20:
                accounts = accounts[:17] + "..."

            t.add_row(str(i), program, escape(accounts), f"{len(ix.data)} bytes")

        if len(instructions) > max_instr:
            t.add_row("...", f"and {len(instructions) - max_instr} more instructions", "", "")
        self.console.print(t)

    def format_user_portfolio(self, owner: str, holdings: List[TokenHolding]) -> None:
        c = self.console
        c.print()
        c.print("[bold white on magenta] TOKEN PORTFOLIO [/bold white on magenta]")
        c.print(f"Owner: [cyan]{owner}[/cyan]")

        if not holdings:
            c.print("[yellow]No non-zero token balances.[/yellow]")
            return

        t = Table(title="Token Holdings", box=box.ROUNDED, header_style="bold bright_white")
        for col in ("#", "Symbol", "Name", "Mint", "Amount", "Decimals"):
            t.add_column(col)
        for i, h in enumerate(holdings, start=1):
            t.add_row(str(i), escape(h.symbol or "-"), escape(h.name or "-"), h.mint, h.ui_amount, str(h.decimals))
        c.print(t)

    def analyze_transactions(self, batch: BatchResult) -> None:
        self.format_transaction_summary(batch)

        c = self.console
        c.print()
        c.print("💡 To see detailed information for a specific transaction, call:")
        c.print("   formatter.format_transaction_details(tx, index)")
        c.print()

        for index, tx in enumerate(batch.transactions):
            c.print()
            c.print(f"📋 Showing detailed view of the transaction {index + 1} as example:")
            self.format_transaction_details(tx, index)
