"""
Swap payloads passed as ``swapDetails`` bytes to the keeper taker contracts.

Every venue has one fixed ABI layout. The taker contract for that venue decodes
the bytes with exactly this tuple type, so field order and types must not change.
"""

from typing import Any, Dict, Tuple

from eth_abi import decode, encode
from web3 import Web3

from .exceptions import QuoteError
from .venues import LiquiditySource

UNISWAP_V3_DETAILS_TYPE = "(address,address,address,uint24,uint256,uint256)"
SUSHISWAP_DETAILS_TYPE = "(address,address,uint24,uint256,uint256)"
UNISWAP_V4_DETAILS_TYPE = "(address,(address,address,uint24,int24,address),address,uint256,uint256)"
CURVE_DETAILS_TYPE = "(address,address,uint8,uint256,uint256)"
ONEINCH_SWAP_DESCRIPTION_TYPE = "(address,address,address,address,uint256,uint256,uint256)"
ONEINCH_DETAILS_TYPE = f"(address,{ONEINCH_SWAP_DESCRIPTION_TYPE},bytes)"

SWAP_DETAILS_TYPES: Dict[LiquiditySource, str] = {
    LiquiditySource.ONEINCH: ONEINCH_DETAILS_TYPE,
    LiquiditySource.UNISWAPV3: UNISWAP_V3_DETAILS_TYPE,
    LiquiditySource.SUSHISWAP: SUSHISWAP_DETAILS_TYPE,
    LiquiditySource.UNISWAPV4: UNISWAP_V4_DETAILS_TYPE,
    LiquiditySource.CURVE: CURVE_DETAILS_TYPE,
}

ONEINCH_SWAP_SIGNATURE = f"swap(address,{ONEINCH_SWAP_DESCRIPTION_TYPE},bytes)"
ONEINCH_SWAP_SELECTOR = bytes(Web3.keccak(text=ONEINCH_SWAP_SIGNATURE)[:4])

# minReturnAmount position inside the 1inch SwapDescription
ONEINCH_MIN_RETURN_INDEX = 5


def _address(value: str) -> str:
    return Web3.to_checksum_address(value)


def encode_uniswap_v3_details(
    universal_router: str, permit2: str, target_token: str, fee_tier: int, slippage_bps: int, deadline: int
) -> bytes:
    return encode(
        [UNISWAP_V3_DETAILS_TYPE],
        [(_address(universal_router), _address(permit2), _address(target_token), fee_tier, slippage_bps, deadline)],
    )


def encode_sushiswap_details(
    swap_router: str, target_token: str, fee_tier: int, amount_out_minimum: int, deadline: int
) -> bytes:
    return encode(
        [SUSHISWAP_DETAILS_TYPE],
        [(_address(swap_router), _address(target_token), fee_tier, amount_out_minimum, deadline)],
    )


def encode_uniswap_v4_details(
    router: str,
    pool_key: Tuple[str, str, int, int, str],
    target_token: str,
    amount_out_minimum: int,
    deadline: int,
) -> bytes:
    """
    Args:
        pool_key: (token0, token1, fee, tickSpacing, hooks)
    """
    token0, token1, fee, tick_spacing, hooks = pool_key
    return encode(
        [UNISWAP_V4_DETAILS_TYPE],
        [
            (
                _address(router),
                (_address(token0), _address(token1), fee, tick_spacing, _address(hooks)),
                _address(target_token),
                amount_out_minimum,
                deadline,
            )
        ],
    )


def encode_curve_details(pool: str, target_token: str, pool_type: int, amount_out_minimum: int, deadline: int) -> bytes:
    return encode(
        [CURVE_DETAILS_TYPE],
        [(_address(pool), _address(target_token), int(pool_type), amount_out_minimum, deadline)],
    )


def decode_oneinch_swap_calldata(calldata: Any) -> Tuple[str, Tuple[Any, ...], bytes]:
    """
    Split 1inch router ``swap`` calldata into (executor, swap description, executor calls).

    Raises:
        QuoteError: If the calldata is not a call to ``swap``.
    """
    raw = Web3.to_bytes(hexstr=calldata) if isinstance(calldata, str) else bytes(calldata)
    if raw[:4] != ONEINCH_SWAP_SELECTOR:
        raise QuoteError(f"1inch calldata is not a swap call (selector 0x{raw[:4].hex()})")

    executor, desc, data = decode(["address", ONEINCH_SWAP_DESCRIPTION_TYPE, "bytes"], raw[4:])
    return _address(executor), tuple(desc), data


def encode_oneinch_details(executor: str, swap_description: Tuple[Any, ...], data: bytes) -> bytes:
    src_token, dst_token, src_receiver, dst_receiver, amount, min_return_amount, flags = swap_description
    return encode(
        [ONEINCH_DETAILS_TYPE],
        [
            (
                _address(executor),
                (
                    _address(src_token),
                    _address(dst_token),
                    _address(src_receiver),
                    _address(dst_receiver),
                    amount,
                    min_return_amount,
                    flags,
                ),
                data,
            )
        ],
    )
