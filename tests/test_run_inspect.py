import io
import json

import pytest
from rich.console import Console

from configs.settings import Settings
from tests.fakes import FakeRpcClient, sig_ref
from walletscope import run_inspect
from walletscope.ingest.solana_rpc import RpcError
from walletscope.registry.token_registry import TokenRegistry
from walletscope.report.formatter import TransactionFormatter

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def make_settings(tmp_path, **overrides):
    values = dict(
        rpc_url="https://rpc.example",
        wallet_address=WALLET,
        ws_url="wss://rpc.example",
        snapshot_dir=str(tmp_path),
    )
    values.update(overrides)
    return Settings(**values)


def patch_client(monkeypatch, fake):
    monkeypatch.setattr(run_inspect, "RpcClient", lambda **kwargs: fake)


def make_formatter():
    buf = io.StringIO()
    return TransactionFormatter(console=Console(file=buf, width=250, color_system=None)), buf


@pytest.mark.asyncio
async def test_inspect_renders_partial_batch_and_saves_snapshot(monkeypatch, tmp_path):
    fake = FakeRpcClient(signatures=[sig_ref(0), sig_ref(1), sig_ref(2)], failing={"sig1"})
    patch_client(monkeypatch, fake)
    formatter, buf = make_formatter()

    await run_inspect.inspect_wallet(make_settings(tmp_path), formatter, TokenRegistry.from_mapping({}))

    out = buf.getvalue()
    assert "Total Transactions: 2" in out
    assert "TOKEN PORTFOLIO" in out

    (snapshot,) = tmp_path.glob("wallet_*_tx_*.json")
    data = json.loads(snapshot.read_text(encoding="utf-8"))
    assert [t["signature"] for t in data["transactions"]] == ["sig0", "sig2"]


@pytest.mark.asyncio
async def test_inspect_upstream_failure_skips_report(monkeypatch, tmp_path, caplog):
    fake = FakeRpcClient(list_error=RpcError("getSignaturesForAddress", "down"))
    patch_client(monkeypatch, fake)
    formatter, buf = make_formatter()

    await run_inspect.inspect_wallet(make_settings(tmp_path), formatter, TokenRegistry.from_mapping({}))

    assert "SOLANA TRANSACTION EXPLORER" not in buf.getvalue()
    assert WALLET in caplog.text
    assert list(tmp_path.iterdir()) == []


def test_main_exits_on_missing_config(monkeypatch):
    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.delenv("WALLET_ADDRESS", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        run_inspect.main()

    assert exc_info.value.code == 1


def test_main_exits_on_bad_wallet(monkeypatch):
    monkeypatch.setenv("RPC_URL", "https://rpc.example")
    monkeypatch.setenv("WALLET_ADDRESS", "not-a-wallet")

    with pytest.raises(SystemExit):
        run_inspect.main()


def test_main_unknown_log_level_still_reaches_config_check(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    monkeypatch.delenv("RPC_URL", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        run_inspect.main()

    assert exc_info.value.code == 1
