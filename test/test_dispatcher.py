"""
Tests for the execution dispatcher.
"""

from unittest.mock import MagicMock, patch

import pytest
from eth_abi import decode, encode

from app.keeper.dispatcher import ExecutionDispatcher
from app.keeper.exceptions import LedgerSubmissionError
from app.keeper.models import WAD
from app.keeper.nonce import NonceSequencer
from app.keeper.swap_details import (
    ONEINCH_SWAP_DESCRIPTION_TYPE,
    ONEINCH_SWAP_SELECTOR,
    SWAP_DETAILS_TYPES,
)
from app.keeper.venues import LiquiditySource, OneInchVenueConfig, UniswapV3VenueConfig

KEEPER_EOA = "0x00000000000000000000000000000000000000e0"
TAKER = "0x00000000000000000000000000000000000000e1"
UNIVERSAL_ROUTER = "0x00000000000000000000000000000000000000c1"
ONEINCH_ROUTER = "0x00000000000000000000000000000000000000c9"


@pytest.fixture()
def keeper_config():
    config = MagicMock()
    config.KEEPER_EOA = KEEPER_EOA
    config.SWAP_DEADLINE_SECONDS = 1800
    config.MIN_OUTPUT_SAFETY_MARGIN = 0.01
    config.taker_address_for.return_value = TAKER
    venues = {
        LiquiditySource.UNISWAPV3: UniswapV3VenueConfig(
            universal_router_address=UNIVERSAL_ROUTER,
            permit2_address="0x00000000000000000000000000000000000000c2",
            pool_factory_address="0x00000000000000000000000000000000000000c3",
            quoter_v2_address="0x00000000000000000000000000000000000000c4",
            weth_address="0x4200000000000000000000000000000000000006",
            default_fee_tier=500,
        ),
        LiquiditySource.ONEINCH: OneInchVenueConfig(
            api_base_url="https://api.1inch.dev/swap/v6.0",
            api_key="key",
            router_address=ONEINCH_ROUTER,
            chain_id=8453,
            request_delay=0,
        ),
    }
    config.venue.side_effect = venues.get
    return config


@pytest.fixture()
def notifications():
    with patch("app.keeper.dispatcher.post_take_notification") as take, patch(
        "app.keeper.dispatcher.post_arb_take_notification"
    ) as arb_take, patch("app.keeper.dispatcher.post_error_notification") as error:
        yield {"take": take, "arb_take": arb_take, "error": error}


def test_dry_run_makes_no_ledger_calls(keeper_config, pool, pool_config, candidate_factory):
    sequencer = MagicMock()
    dispatcher = ExecutionDispatcher(keeper_config, sequencer, dry_run=True)
    candidate = candidate_factory(arb_bucket_index=3000)

    take = dispatcher.dispatch_take(pool, pool_config, candidate)
    arb_take = dispatcher.dispatch_arb_take(pool, pool_config, candidate)

    assert take.success and take.dry_run
    assert arb_take.success and arb_take.dry_run
    sequencer.run_sequenced.assert_not_called()
    keeper_config.w3.eth.send_raw_transaction.assert_not_called()
    pool.instance.functions.bucketTake.assert_not_called()


def test_min_output_covers_liquidation_cost_with_margin(keeper_config, pool, candidate_factory):
    dispatcher = ExecutionDispatcher(keeper_config, MagicMock(), dry_run=False)
    candidate = candidate_factory(collateral=2, price=1500)

    # 2 * 1500 = 3000 USDC plus 1%
    assert dispatcher.min_output_for(pool, candidate) == 3030 * 10**6


def test_uniswap_v3_details_carry_slippage_bps(keeper_config, pool, candidate_factory):
    dispatcher = ExecutionDispatcher(keeper_config, MagicMock(), dry_run=False)

    router, details = dispatcher.build_swap_details(pool, LiquiditySource.UNISWAPV3, candidate_factory(), TAKER)

    assert router == UNIVERSAL_ROUTER
    (universal_router, permit2, target, fee, slippage_bps, deadline), = decode(
        [SWAP_DETAILS_TYPES[LiquiditySource.UNISWAPV3]], details
    )
    assert universal_router.lower() == UNIVERSAL_ROUTER
    assert target.lower() == pool.quote_token_address
    assert fee == 500
    assert slippage_bps == 50
    assert deadline > 1800


@patch("app.keeper.dispatcher.send_contract_call")
@patch("app.keeper.dispatcher.create_contract_instance")
def test_take_submits_through_sequencer(mock_create, mock_send, keeper_config, pool, pool_config, candidate_factory, notifications):
    mock_send.return_value = ("0xabc", MagicMock(status=1))
    taker = mock_create.return_value
    sequencer = NonceSequencer(MagicMock())
    sequencer.w3.eth.get_transaction_count.return_value = 10
    dispatcher = ExecutionDispatcher(keeper_config, sequencer, dry_run=False)
    candidate = candidate_factory(collateral=1, price=1950)

    result = dispatcher.dispatch_take(pool, pool_config, candidate)

    assert result.success
    assert result.tx_hash == "0xabc"
    args = taker.functions.takeWithAtomicSwap.call_args[0]
    assert args[:5] == (pool.address, candidate.borrower, 1950 * WAD, WAD, int(LiquiditySource.UNISWAPV3))
    assert args[5] == UNIVERSAL_ROUTER
    assert mock_send.call_args[0][1] == 10
    notifications["take"].assert_called_once()


@patch("app.keeper.dispatcher.send_contract_call")
def test_arb_take_uses_bucket_index(mock_send, keeper_config, pool, pool_config, candidate_factory, notifications):
    mock_send.return_value = ("0xdef", MagicMock(status=1))
    sequencer = NonceSequencer(MagicMock())
    sequencer.w3.eth.get_transaction_count.return_value = 3
    dispatcher = ExecutionDispatcher(keeper_config, sequencer, dry_run=False)
    candidate = candidate_factory(arb_bucket_index=3120)

    result = dispatcher.dispatch_arb_take(pool, pool_config, candidate)

    assert result.success
    pool.instance.functions.bucketTake.assert_called_once_with(candidate.borrower, False, 3120)
    notifications["arb_take"].assert_called_once()


@patch("app.keeper.dispatcher.send_contract_call")
def test_failed_submission_resets_nonce_and_is_contained(
    mock_send, keeper_config, pool, pool_config, candidate_factory, notifications
):
    mock_send.side_effect = LedgerSubmissionError("reverted")
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 10
    sequencer = NonceSequencer(w3)
    dispatcher = ExecutionDispatcher(keeper_config, sequencer, dry_run=False)

    result = dispatcher.dispatch_arb_take(pool, pool_config, candidate_factory(arb_bucket_index=1))

    assert not result.success
    assert "reverted" in result.error
    assert w3.eth.get_transaction_count.call_count == 2
    assert sequencer.get_next(KEEPER_EOA) == 10
    notifications["error"].assert_called_once()


def test_arb_take_without_bucket_fails(keeper_config, pool, pool_config, candidate_factory, notifications):
    sequencer = MagicMock()
    dispatcher = ExecutionDispatcher(keeper_config, sequencer, dry_run=False)

    result = dispatcher.dispatch_arb_take(pool, pool_config, candidate_factory())

    assert not result.success
    sequencer.run_sequenced.assert_not_called()


def oneinch_calldata(min_return: int) -> str:
    description = (
        "0x4200000000000000000000000000000000000006",
        "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",
        "0x00000000000000000000000000000000000000d0",
        TAKER,
        10**18,
        min_return,
        0,
    )
    body = encode(["address", ONEINCH_SWAP_DESCRIPTION_TYPE, "bytes"], [ONEINCH_ROUTER, description, b"\x01"])
    return "0x" + (ONEINCH_SWAP_SELECTOR + body).hex()


@patch("app.keeper.quote_providers.oneinch.make_api_request")
def test_oneinch_route_below_cost_is_rejected(
    mock_request, keeper_config, pool, pool_config, candidate_factory, notifications
):
    # cost: 1 * 1950 USDC + 1% = 1969.5 USDC
    mock_request.return_value = {"tx": {"to": ONEINCH_ROUTER, "data": oneinch_calldata(1960 * 10**6)}}
    sequencer = MagicMock()
    pool_config.take.liquidity_source = LiquiditySource.ONEINCH
    dispatcher = ExecutionDispatcher(keeper_config, sequencer, dry_run=False)

    with patch("app.keeper.dispatcher.create_contract_instance"):
        result = dispatcher.dispatch_take(pool, pool_config, candidate_factory(collateral=1, price=1950))

    assert not result.success
    assert "minReturnAmount" in result.error
    sequencer.run_sequenced.assert_not_called()


@patch("app.keeper.quote_providers.oneinch.make_api_request")
def test_oneinch_details_carry_router_call(mock_request, keeper_config, pool, candidate_factory):
    mock_request.return_value = {"tx": {"to": ONEINCH_ROUTER, "data": oneinch_calldata(1980 * 10**6)}}
    dispatcher = ExecutionDispatcher(keeper_config, MagicMock(), dry_run=False)

    router, details = dispatcher.build_swap_details(
        pool, LiquiditySource.ONEINCH, candidate_factory(collateral=1, price=1950), TAKER
    )

    assert router == ONEINCH_ROUTER
    (executor, description, data), = decode([SWAP_DETAILS_TYPES[LiquiditySource.ONEINCH]], details)
    assert executor.lower() == ONEINCH_ROUTER
    assert description[5] == 1980 * 10**6
    assert data == b"\x01"
