"""
SushiSwap V3 quotes. SushiSwap V3 is a Uniswap V3 fork with the same QuoterV2 interface.
"""

from app.keeper.quote_providers.uniswap_v3 import UniswapV3QuoteProvider
from app.keeper.venues import LiquiditySource


class SushiSwapQuoteProvider(UniswapV3QuoteProvider):
    source = LiquiditySource.SUSHISWAP
