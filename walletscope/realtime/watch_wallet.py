# walletscope/realtime/watch_wallet.py

import asyncio
import logging
from typing import Callable, List, Optional, Sequence, Set

from configs.settings import DEFAULT_POLL_INTERVAL_S, derive_http_url
from walletscope.ingest.models import SignatureRef
from walletscope.ingest.solana_rpc import RpcClient

log = logging.getLogger(__name__)


def diff_new_signatures(seen: Set[str], signatures: Sequence[SignatureRef]) -> List[SignatureRef]:
    """
    Return refs not in `seen`, oldest first, and mark them seen.
    `signatures` is newest-first, as getSignaturesForAddress returns it.
    """
    new: List[SignatureRef] = []
    for ref in reversed(signatures):
        if ref.signature in seen:
            continue
        seen.add(ref.signature)
        new.append(ref)
    return new


async def listen_wallet_transactions(
    ws_url: str,
    wallet: str,
    *,
    interval_s: float = DEFAULT_POLL_INTERVAL_S,
    client: Optional[RpcClient] = None,
    max_polls: Optional[int] = None,
    on_new: Optional[Callable[[SignatureRef], None]] = None,
) -> None:
    """
    Poll getSignaturesForAddress and report signatures that appear after start.
    The HTTP endpoint is derived from `ws_url`. Runs until cancelled, or for
    `max_polls` polls when given.
    """
    owned = client is None
    if client is None:
        client = RpcClient(rpc_url=derive_http_url(ws_url))

    try:
        log.info("🔌 Listening (poll) for transactions mentioning %s ...", wallet)

        seen: Set[str] = set()
        try:
            seen.update(s.signature for s in await client.get_signatures_for_address(wallet))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("Could not seed known signatures: %s", e)

        polls = 0
        while max_polls is None or polls < max_polls:
            await asyncio.sleep(interval_s)
            polls += 1

            try:
                sigs = await client.get_signatures_for_address(wallet)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("poll error: %s", e)
                continue

            for ref in diff_new_signatures(seen, sigs):
                log.info("🆕 Tx observed: %s (slot %d)", ref.signature, ref.slot)
                if on_new is not None:
                    on_new(ref)
    finally:
        if owned:
            await client.aclose()
