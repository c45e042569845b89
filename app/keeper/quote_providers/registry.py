"""
Liquidity source registry: maps each venue kind to its quote provider class.
"""

from typing import Optional, Type

from web3 import Web3

from app.keeper.exceptions import ConfigurationError
from app.keeper.quote_providers.base_provider import BaseQuoteProvider
from app.keeper.quote_providers.curve import CurveQuoteProvider
from app.keeper.quote_providers.oneinch import OneInchQuoteProvider
from app.keeper.quote_providers.sushiswap import SushiSwapQuoteProvider
from app.keeper.quote_providers.uniswap_v3 import UniswapV3QuoteProvider
from app.keeper.quote_providers.uniswap_v4 import UniswapV4QuoteProvider
from app.keeper.venues import LiquiditySource, VenueConfig

PROVIDER_REGISTRY = {
    LiquiditySource.ONEINCH: {
        "provider_class": OneInchQuoteProvider,
    },
    LiquiditySource.UNISWAPV3: {
        "provider_class": UniswapV3QuoteProvider,
    },
    LiquiditySource.SUSHISWAP: {
        "provider_class": SushiSwapQuoteProvider,
    },
    LiquiditySource.UNISWAPV4: {
        "provider_class": UniswapV4QuoteProvider,
    },
    LiquiditySource.CURVE: {
        "provider_class": CurveQuoteProvider,
    },
}


def get_provider_class(source: LiquiditySource) -> Type[BaseQuoteProvider]:
    """Return the quote provider class for a liquidity source."""
    entry = PROVIDER_REGISTRY.get(source)
    if not entry:
        raise ConfigurationError(f"No quote provider for liquidity source {source!r}")
    return entry["provider_class"]


def build_quote_provider(
    source: LiquiditySource, venue_config: Optional[VenueConfig], w3: Optional[Web3] = None
) -> BaseQuoteProvider:
    """
    Instantiate the provider for ``source``.

    Raises:
        ConfigurationError: For an unknown source or a missing venue configuration.
    """
    provider_class = get_provider_class(source)
    return provider_class(venue_config, w3)
