import os
from unittest.mock import MagicMock

import pytest
from dotenv import load_dotenv

from app.keeper.config_loader import KeeperConfig, PoolConfig, TakeSettings, load_keeper_config
from app.keeper.models import WAD, LiquidationCandidate
from app.keeper.venues import LiquiditySource

TEST_CHAIN_ID = 8453
ENV_EXAMPLE_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env.example")

TEST_POOL_ADDRESS = "0x0b17159f2486f669a1f930926638008e2ccb4287"
TEST_BORROWER = "0x00000000000000000000000000000000000000b0"
COLLATERAL_TOKEN = "0x4200000000000000000000000000000000000006"
QUOTE_TOKEN = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"


@pytest.fixture()
def config() -> KeeperConfig:
    load_dotenv(dotenv_path=ENV_EXAMPLE_PATH)
    return load_keeper_config(TEST_CHAIN_ID)


@pytest.fixture()
def pool():
    """Ledger view of a WETH (18 decimals) / USDC (6 decimals) pool."""
    pool = MagicMock()
    pool.address = TEST_POOL_ADDRESS
    pool.name = "WETH / USDC"
    pool.collateral_address = COLLATERAL_TOKEN
    pool.quote_token_address = QUOTE_TOKEN
    pool.collateral_decimals = 18
    pool.quote_decimals = 6
    return pool


@pytest.fixture()
def pool_config() -> PoolConfig:
    return PoolConfig(
        name="WETH / USDC",
        address=TEST_POOL_ADDRESS,
        take=TakeSettings(
            min_collateral=0.5,
            market_price_factor=0.98,
            hpb_price_factor=0.98,
            liquidity_source=LiquiditySource.UNISWAPV3,
        ),
    )


def make_candidate(
    collateral: float = 1, price: float = 1950, hpb: float = 2000, borrower: str = TEST_BORROWER, **kwargs
) -> LiquidationCandidate:
    return LiquidationCandidate(
        pool_address=TEST_POOL_ADDRESS,
        borrower=borrower,
        collateral=int(collateral * WAD),
        auction_price=int(price * WAD),
        hpb=hpb,
        hpb_index=3000,
        **kwargs,
    )


@pytest.fixture()
def candidate_factory():
    return make_candidate
