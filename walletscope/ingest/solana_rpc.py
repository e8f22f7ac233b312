import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from solders.pubkey import Pubkey

from walletscope.ingest.models import SignatureRef

log = logging.getLogger(__name__)

# SPL Token program (Tokenkeg...)
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


class RpcError(RuntimeError):
    def __init__(self, method: str, message: str, code: Optional[int] = None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


def validate_address(address: str) -> str:
    """Raise ValueError unless `address` is a base58 32-byte public key."""
    try:
        Pubkey.from_string(address)
    except Exception as e:
        raise ValueError(f"Invalid account address {address!r}: {e}") from e
    return address


@dataclass
class RpcClient:
    rpc_url: str
    timeout_s: float = 30.0
    max_retries: int = 3
    retry_delay_s: float = 1.2
    http_client: Optional[httpx.AsyncClient] = None
    _owns_client: bool = field(default=False, init=False, repr=False)
    _ids: Any = field(default_factory=lambda: itertools.count(1), init=False, repr=False)

    def __post_init__(self) -> None:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=self.timeout_s)
            self._owns_client = True

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self.http_client is not None:
            await self.http_client.aclose()

    async def _post(self, method: str, params: List[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        last_err: Optional[Exception] = None
        last_code: Optional[int] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                r = await self.http_client.post(self.rpc_url, json=payload)
                r.raise_for_status()
                data = r.json()
                if "error" in data:
                    err = data["error"] or {}
                    last_code = err.get("code")
                    raise RuntimeError(f"RPC error {last_code}: {err.get('message')}")
                return data.get("result")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_err = e
                log.warning("%s attempt %d/%d failed: %s", method, attempt, self.max_retries, e)
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay_s * attempt)

        raise RpcError(method, f"failed after {self.max_retries} attempts: {last_err}", code=last_code)

    async def get_signatures_for_address(self, address: str, limit: Optional[int] = None) -> List[SignatureRef]:
        params: List[Any] = [address]
        if limit is not None and limit > 0:
            params.append({"limit": limit})
        result = await self._post("getSignaturesForAddress", params) or []
        return [SignatureRef.from_rpc(s) for s in result if "signature" in s]

    async def get_transaction(
        self,
        signature: str,
        encoding: str = "base64",
        commitment: str = "confirmed",
        max_supported_transaction_version: int = 0,
    ) -> Optional[Dict[str, Any]]:
        return await self._post(
            "getTransaction",
            [
                signature,
                {
                    "encoding": encoding,
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": max_supported_transaction_version,
                },
            ],
        )

    async def get_token_accounts_by_owner(self, owner: str, program_id: str = TOKEN_PROGRAM_ID) -> List[Dict[str, Any]]:
        result = await self._post(
            "getTokenAccountsByOwner",
            [
                owner,
                {"programId": program_id},
                {"encoding": "jsonParsed", "commitment": "confirmed"},
            ],
        )
        return (result or {}).get("value", [])
