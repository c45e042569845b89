"""
Uniswap V3 quotes through the QuoterV2 contract.
"""

import os
from typing import Optional

from app.keeper.contracts import create_contract_instance
from app.keeper.logging_config import setup_logger
from app.keeper.quote_providers.base_provider import ABI_DIR, BaseQuoteProvider
from app.keeper.venues import LiquiditySource

logger = setup_logger()

QUOTER_V2_ABI_PATH = os.path.join(ABI_DIR, "QuoterV2.json")


class UniswapV3QuoteProvider(BaseQuoteProvider):
    """
    QuoterV2 is not a view contract: it runs the swap, reverts, and decodes the
    result from the revert data. Calling it through eth_call returns the decoded
    tuple (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate).
    """

    source = LiquiditySource.UNISWAPV3

    def _quote(self, amount_in: int, token_in: str, token_out: str, fee_tier: Optional[int]) -> int:
        w3 = self._require_w3()
        fee = int(fee_tier if fee_tier is not None else self.venue_config.default_fee_tier)
        quoter = create_contract_instance(self.venue_config.quoter_v2_address, QUOTER_V2_ABI_PATH, w3)

        amount_out, _, _, _ = quoter.functions.quoteExactInputSingle(
            (token_in, token_out, amount_in, fee, 0)
        ).call()

        logger.debug(
            "%s: %s %s -> %s %s (fee %s)", self.source.name, amount_in, token_in, amount_out, token_out, fee
        )
        return amount_out
