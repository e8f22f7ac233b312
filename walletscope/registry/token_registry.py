import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import httpx

log = logging.getLogger(__name__)

# Token list endpoints, highest precedence first
JUPITER_ALL_URL = "https://token.jup.ag/all"
JUPITER_STRICT_URL = "https://token.jup.ag/strict"
SOLANA_LABS_URL = "https://cdn.jsdelivr.net/gh/solana-labs/token-list@main/src/tokens/solana.tokenlist.json"

DEFAULT_SOURCES: Tuple[str, ...] = (JUPITER_ALL_URL, JUPITER_STRICT_URL, SOLANA_LABS_URL)


class RegistryUnavailableError(RuntimeError):
    pass


@dataclass(frozen=True)
class TokenInfo:
    address: str
    symbol: str
    name: str


def parse_token_list(data: Any) -> Dict[str, TokenInfo]:
    """
    Accepts either a bare list of tokens (Jupiter) or {"tokens": [...]}
    (solana-labs token list).
    """
    items = data.get("tokens", []) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError(f"unexpected token list shape: {type(data).__name__}")

    out: Dict[str, TokenInfo] = {}
    for it in items:
        if not isinstance(it, dict):
            continue
        address = it.get("address")
        if not address:
            continue
        out[address] = TokenInfo(address=address, symbol=it.get("symbol") or "", name=it.get("name") or "")
    return out


class TokenRegistry:
    """
    Mint -> TokenInfo lookup merged from public token lists.

    Loaded at most once per instance; construct one and pass it where needed.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        sources: Sequence[str] = DEFAULT_SOURCES,
        timeout: float = 15.0,
    ):
        self.http_client = http_client
        self.sources = tuple(sources)
        self.timeout = timeout
        self._lock = asyncio.Lock()
        self._loaded = False
        self._data: Dict[str, TokenInfo] = {}
        self._error: Optional[RegistryUnavailableError] = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, TokenInfo]) -> "TokenRegistry":
        reg = cls(sources=())
        reg._data = dict(mapping)
        reg._loaded = True
        return reg

    async def _fetch_source(self, client: httpx.AsyncClient, url: str) -> Dict[str, TokenInfo]:
        resp = await client.get(url)
        resp.raise_for_status()
        return parse_token_list(resp.json())

    async def _merge_sources(self, client: httpx.AsyncClient) -> Dict[str, TokenInfo]:
        merged: Dict[str, TokenInfo] = {}
        for url in self.sources:
            try:
                found = await self._fetch_source(client, url)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("Token list %s unavailable: %s", url, e)
                continue
            for mint, info in found.items():
                merged.setdefault(mint, info)
        return merged

    async def load(self) -> Dict[str, TokenInfo]:
        async with self._lock:
            if not self._loaded:
                if self.http_client is not None:
                    merged = await self._merge_sources(self.http_client)
                else:
                    async with httpx.AsyncClient(timeout=self.timeout) as client:
                        merged = await self._merge_sources(client)

                self._loaded = True
                if merged:
                    self._data = merged
                    log.info("Token registry loaded: %d mints", len(merged))
                else:
                    self._error = RegistryUnavailableError("no token registry sources available")

        if self._error is not None:
            raise self._error
        return self._data

    def lookup(self, mint: str) -> Optional[TokenInfo]:
        return self._data.get(mint)
