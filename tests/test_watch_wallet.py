import asyncio

import pytest

from tests.fakes import sig_ref
from walletscope.ingest.solana_rpc import RpcError
from walletscope.realtime.watch_wallet import diff_new_signatures, listen_wallet_transactions


def test_diff_reports_unseen_oldest_first():
    seen = {"sig2"}
    newest_first = [sig_ref(0), sig_ref(1), sig_ref(2)]

    new = diff_new_signatures(seen, newest_first)

    assert [r.signature for r in new] == ["sig1", "sig0"]
    assert seen == {"sig0", "sig1", "sig2"}
    assert diff_new_signatures(seen, newest_first) == []


class ScriptedClient:
    """Returns one scripted listing (or raises) per call."""

    def __init__(self, listings):
        self.listings = list(listings)
        self.calls = 0

    async def get_signatures_for_address(self, address, limit=None):
        item = self.listings[min(self.calls, len(self.listings) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self):
        pass


@pytest.mark.asyncio
async def test_listener_reports_only_new_signatures():
    client = ScriptedClient(
        [
            [sig_ref(2), sig_ref(3)],
            [sig_ref(1), sig_ref(2), sig_ref(3)],
            RpcError("getSignaturesForAddress", "timeout"),
            [sig_ref(0), sig_ref(1), sig_ref(2)],
        ]
    )
    observed = []

    await listen_wallet_transactions(
        "wss://rpc.example",
        "wallet",
        interval_s=0,
        client=client,
        max_polls=3,
        on_new=observed.append,
    )

    assert [r.signature for r in observed] == ["sig1", "sig0"]
    assert client.calls == 4


@pytest.mark.asyncio
async def test_listener_survives_seed_failure():
    client = ScriptedClient([RpcError("getSignaturesForAddress", "down"), [sig_ref(0)]])
    observed = []

    await listen_wallet_transactions("ws://x", "wallet", interval_s=0, client=client, max_polls=1, on_new=observed.append)

    assert [r.signature for r in observed] == ["sig0"]


@pytest.mark.asyncio
async def test_listener_stops_on_cancel():
    client = ScriptedClient([[sig_ref(0)]])
    task = asyncio.create_task(listen_wallet_transactions("ws://x", "wallet", interval_s=10, client=client))
    await asyncio.sleep(0.01)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
