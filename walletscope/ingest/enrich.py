import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from walletscope.ingest.decode import MessageDecodeError, decode_message
from walletscope.ingest.models import (
    BatchResult,
    SignatureRef,
    TransactionMeta,
    TransactionRecord,
)
from walletscope.ingest.solana_rpc import RpcClient

log = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


class UpstreamUnavailableError(RuntimeError):
    def __init__(self, account: str, cause: Exception):
        super().__init__(f"failed to get signatures for account {account}: {cause}")
        self.account = account


def process_count(total: int, limit: int) -> int:
    if 0 < limit < total:
        return limit
    return total


def build_record(ref: SignatureRef, result: Dict[str, Any]) -> TransactionRecord:
    """
    Turn a getTransaction result into a TransactionRecord.
    A payload that fails to decode keeps the meta and leaves `message` unset.
    """
    meta_raw = result.get("meta")
    meta = TransactionMeta.from_rpc(meta_raw) if isinstance(meta_raw, dict) else None

    message = None
    payload = result.get("transaction")
    if payload is not None:
        try:
            message = decode_message(payload)
        except MessageDecodeError as e:
            log.warning("Failed to parse transaction %s: %s (will continue)", ref.signature, e)

    block_time = ref.block_time if ref.block_time is not None else result.get("blockTime")
    return TransactionRecord(
        signature=ref.signature,
        slot=ref.slot,
        block_time=block_time,
        meta=meta,
        message=message,
    )


async def enrich_signatures(
    client: RpcClient,
    signatures: Sequence[SignatureRef],
    limit: int = 0,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> List[TransactionRecord]:
    """
    Fetch the full transaction for each of the leading `limit` signatures
    (all of them when limit <= 0), at most `max_concurrency` at a time.

    Output keeps input order. A signature whose fetch fails is logged and
    dropped, so the result may be shorter than the input.
    """
    count = process_count(len(signatures), limit)
    if count == 0:
        return []

    # one slot per index, each task writes only its own
    slots: List[Optional[TransactionRecord]] = [None] * count
    sem = asyncio.Semaphore(max(1, max_concurrency))

    async def fetch_one(index: int, ref: SignatureRef) -> None:
        async with sem:
            try:
                result = await client.get_transaction(ref.signature)
                if result is None:
                    log.error("Failed to get transaction %s: not found", ref.signature)
                    return
                slots[index] = build_record(ref, result)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.error("Failed to get transaction %s: %s", ref.signature, e)

    await asyncio.gather(*(fetch_one(i, signatures[i]) for i in range(count)))

    return [record for record in slots if record is not None]


async def _fetch_account_transactions(
    client: RpcClient,
    account: str,
    limit: int,
    max_concurrency: int,
) -> BatchResult:
    try:
        signatures = await client.get_signatures_for_address(account, limit=limit if limit > 0 else None)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise UpstreamUnavailableError(account, e) from e

    log.info("Count: %d", process_count(len(signatures), limit))
    records = await enrich_signatures(client, signatures, limit=limit, max_concurrency=max_concurrency)

    return BatchResult(
        account=account,
        transactions=tuple(records),
        fetched_at=datetime.now(timezone.utc),
    )


async def fetch_account_transactions(
    client: RpcClient,
    account: str,
    limit: int = 0,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    timeout_s: Optional[float] = None,
) -> BatchResult:
    """
    List recent signatures for `account` and enrich them into a BatchResult.

    Only a failed signature listing raises (UpstreamUnavailableError).
    With `timeout_s` set, the whole batch is cancelled once it expires and
    asyncio.TimeoutError is raised.
    """
    coro = _fetch_account_transactions(client, account, limit, max_concurrency)
    if timeout_s is None:
        return await coro
    return await asyncio.wait_for(coro, timeout_s)


class TransactionService:
    def __init__(
        self,
        client: RpcClient,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        timeout_s: Optional[float] = None,
    ):
        self.client = client
        self.max_concurrency = max_concurrency
        self.timeout_s = timeout_s

    async def fetch_account_transactions(self, account: str, limit: int = 0) -> BatchResult:
        return await fetch_account_transactions(
            self.client,
            account,
            limit=limit,
            max_concurrency=self.max_concurrency,
            timeout_s=self.timeout_s,
        )
