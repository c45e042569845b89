"""
Curve quotes via get_dy on a configured stable-swap or crypto-swap pool.
"""

import os
from typing import Optional

from app.keeper.contracts import create_contract_instance
from app.keeper.exceptions import ConfigurationError
from app.keeper.logging_config import setup_logger
from app.keeper.quote_providers.base_provider import ABI_DIR, BaseQuoteProvider
from app.keeper.venues import CurvePoolType, LiquiditySource

logger = setup_logger()

CURVE_ABI_PATHS = {
    CurvePoolType.STABLE: os.path.join(ABI_DIR, "CurveStableSwap.json"),
    CurvePoolType.CRYPTO: os.path.join(ABI_DIR, "CurveCryptoSwap.json"),
}

MAX_COINS = 8


class CurveQuoteProvider(BaseQuoteProvider):
    source = LiquiditySource.CURVE

    def _coin_index(self, pool_contract, token: str) -> int:
        for i in range(MAX_COINS):
            try:
                coin = pool_contract.functions.coins(i).call()
            except Exception as ex:
                # coins(i) reverts past the last coin
                logger.debug("Curve: coins(%s) reverted on %s: %s", i, pool_contract.address, ex)
                break
            if coin.lower() == token.lower():
                return i
        raise ConfigurationError(f"Token {token} not found in Curve pool {pool_contract.address}")

    def _quote(self, amount_in: int, token_in: str, token_out: str, fee_tier: Optional[int]) -> int:
        w3 = self._require_w3()
        pool = self.venue_config.find_pool(token_in, token_out)
        if pool is None:
            raise ConfigurationError(f"No Curve pool configured for {token_in}/{token_out}")

        pool_contract = create_contract_instance(pool.address, CURVE_ABI_PATHS[pool.pool_type], w3)
        i = self._coin_index(pool_contract, token_in)
        j = self._coin_index(pool_contract, token_out)

        amount_out = pool_contract.functions.get_dy(i, j, amount_in).call()
        logger.debug("Curve: %s pool %s get_dy(%s, %s, %s) = %s", pool.pool_type.name, pool.address, i, j, amount_in, amount_out)
        return amount_out
