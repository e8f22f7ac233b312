import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from walletscope.ingest.solana_rpc import RpcClient
from walletscope.registry.token_registry import RegistryUnavailableError, TokenInfo, TokenRegistry

log = logging.getLogger(__name__)

WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"


@dataclass(frozen=True)
class TokenHolding:
    mint: str
    ui_amount: str
    decimals: int
    name: str = ""
    symbol: str = ""

    @property
    def amount(self) -> float:
        try:
            return float(self.ui_amount)
        except ValueError:
            return 0.0


def _is_zero(ui_amount: str) -> bool:
    if not ui_amount:
        return True
    try:
        return float(ui_amount) == 0.0
    except ValueError:
        return False


def parse_holdings(value: List[Dict[str, Any]], registry: Mapping[str, TokenInfo]) -> List[TokenHolding]:
    """
    Build holdings from a getTokenAccountsByOwner(jsonParsed) `value` list.
    Zero balances are dropped; the rest are sorted by amount, largest first.
    """
    holdings: List[TokenHolding] = []
    for item in value:
        info = (((item.get("account") or {}).get("data") or {}).get("parsed") or {}).get("info") or {}
        mint = info.get("mint")
        token_amount = info.get("tokenAmount") or {}
        ui_amount = str(token_amount.get("uiAmountString") or "")
        if not mint or _is_zero(ui_amount):
            continue

        name, symbol = "", ""
        known = registry.get(mint)
        if known is not None:
            name, symbol = known.name, known.symbol
        elif mint == WRAPPED_SOL_MINT:
            name, symbol = "Wrapped SOL", "wSOL"

        holdings.append(
            TokenHolding(
                mint=mint,
                ui_amount=ui_amount,
                decimals=int(token_amount.get("decimals") or 0),
                name=name,
                symbol=symbol,
            )
        )

    holdings.sort(key=lambda h: h.amount, reverse=True)
    return holdings


async def fetch_user_portfolio(client: RpcClient, owner: str, registry: TokenRegistry) -> List[TokenHolding]:
    value = await client.get_token_accounts_by_owner(owner)

    # name/symbol enrichment is best-effort
    try:
        known = await registry.load()
    except RegistryUnavailableError as e:
        log.warning("Token registry unavailable, continuing without names: %s", e)
        known = {}

    return parse_holdings(value, known)
