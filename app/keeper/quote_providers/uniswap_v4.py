"""
Uniswap V4 quotes through the V4 Quoter, for configured pool keys only.
"""

import os
from typing import Optional

from app.keeper.contracts import create_contract_instance
from app.keeper.exceptions import ConfigurationError
from app.keeper.logging_config import setup_logger
from app.keeper.quote_providers.base_provider import ABI_DIR, BaseQuoteProvider
from app.keeper.venues import LiquiditySource

logger = setup_logger()

V4_QUOTER_ABI_PATH = os.path.join(ABI_DIR, "V4Quoter.json")


class UniswapV4QuoteProvider(BaseQuoteProvider):
    source = LiquiditySource.UNISWAPV4

    def _quote(self, amount_in: int, token_in: str, token_out: str, fee_tier: Optional[int]) -> int:
        w3 = self._require_w3()
        pool_key = self.venue_config.find_pool_key(token_in, token_out)
        if pool_key is None:
            raise ConfigurationError(f"No Uniswap V4 pool key configured for {token_in}/{token_out}")

        key = pool_key.as_tuple()
        zero_for_one = token_in.lower() == key[0].lower()
        quoter = create_contract_instance(self.venue_config.quoter_address, V4_QUOTER_ABI_PATH, w3)

        amount_out, _ = quoter.functions.quoteExactInputSingle((key, zero_for_one, amount_in, b"")).call()

        logger.debug("%s: %s -> %s (zeroForOne=%s)", self.source.name, amount_in, amount_out, zero_for_one)
        return amount_out
