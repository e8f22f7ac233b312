import pytest

from walletscope.portfolio.holdings import WRAPPED_SOL_MINT, fetch_user_portfolio, parse_holdings
from walletscope.registry.token_registry import RegistryUnavailableError, TokenInfo, TokenRegistry

USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
DUST = "DustMint11111111111111111111111111111111111"


def account(mint, ui_amount_string, decimals=6):
    return {
        "pubkey": f"ata-{mint[:4]}",
        "account": {
            "data": {
                "parsed": {
                    "info": {
                        "mint": mint,
                        "tokenAmount": {"uiAmountString": ui_amount_string, "decimals": decimals},
                    }
                }
            }
        },
    }


VALUE = [
    account(USDC, "12.5"),
    account(DUST, "0.000"),
    account(BONK, "150000", decimals=5),
    account(WRAPPED_SOL_MINT, "0.25", decimals=9),
    account("EmptyMint", ""),
]


def test_parse_holdings_filters_enriches_and_sorts():
    registry = {USDC: TokenInfo(USDC, "USDC", "USD Coin")}

    holdings = parse_holdings(VALUE, registry)

    assert [h.mint for h in holdings] == [BONK, USDC, WRAPPED_SOL_MINT]
    assert holdings[1].symbol == "USDC"
    assert holdings[2].name == "Wrapped SOL"
    assert holdings[2].symbol == "wSOL"
    assert holdings[0].symbol == ""
    assert holdings[0].decimals == 5


class FakePortfolioClient:
    async def get_token_accounts_by_owner(self, owner):
        return VALUE


class BrokenRegistry(TokenRegistry):
    async def load(self):
        raise RegistryUnavailableError("offline")


@pytest.mark.asyncio
async def test_fetch_user_portfolio_uses_registry():
    registry = TokenRegistry.from_mapping({BONK: TokenInfo(BONK, "Bonk", "Bonk")})

    holdings = await fetch_user_portfolio(FakePortfolioClient(), "owner", registry)

    assert holdings[0].symbol == "Bonk"


@pytest.mark.asyncio
async def test_fetch_user_portfolio_survives_registry_failure():
    holdings = await fetch_user_portfolio(FakePortfolioClient(), "owner", BrokenRegistry(sources=()))

    assert len(holdings) == 3
    assert all(h.name in ("", "Wrapped SOL") for h in holdings)
