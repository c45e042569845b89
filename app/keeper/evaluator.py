"""
Profitability evaluator: decides whether a candidate is takeable and/or arb-takeable.
"""

from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Dict, Optional

from web3 import Web3

from .config_loader import PoolConfig, TakeSettings
from .exceptions import ConfigurationError
from .logging_config import setup_logger
from .models import WAD, LiquidationCandidate, Quote
from .pool import AjnaPool
from .quote_providers.base_provider import BaseQuoteProvider
from .quote_providers.registry import build_quote_provider
from .subgraph import SubgraphClient
from .venues import LiquiditySource, VenueConfig

logger = setup_logger()


class ProfitabilityEvaluator:
    """
    Sets ``is_externally_takeable`` and ``is_arb_takeable`` on candidates.

    The two checks are independent. Any error inside a check leaves its flag False.
    Quotes run on ``executor`` and are waited on for at most ``quote_timeout`` seconds.
    """

    def __init__(
        self,
        subgraph: SubgraphClient,
        venues: Dict[LiquiditySource, VenueConfig],
        w3: Optional[Web3] = None,
        quote_timeout: float = 30,
        executor: Optional[Executor] = None,
    ):
        self.subgraph = subgraph
        self.venues = venues
        self.w3 = w3
        self.quote_timeout = quote_timeout
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="quote")
        self._providers: Dict[LiquiditySource, BaseQuoteProvider] = {}

    def provider_for(self, source: LiquiditySource) -> BaseQuoteProvider:
        """
        Return the cached quote provider for ``source``.

        Raises:
            ConfigurationError: If the source has no provider or no venue configuration.
        """
        if source not in self._providers:
            self._providers[source] = build_quote_provider(source, self.venues.get(source), self.w3)
        return self._providers[source]

    def evaluate(self, pool: AjnaPool, pool_config: PoolConfig, candidate: LiquidationCandidate) -> LiquidationCandidate:
        take = pool_config.take
        if take is None:
            return candidate

        try:
            candidate.is_externally_takeable = self.check_external_take(pool, take, candidate)
        except Exception as ex:
            logger.error(
                "Evaluator: external take check failed for %s in %s: %s",
                candidate.borrower, pool_config.name, ex, exc_info=True,
            )
            candidate.is_externally_takeable = False

        try:
            candidate.is_arb_takeable = self.check_arb_take(pool, take, candidate)
        except Exception as ex:
            logger.error(
                "Evaluator: arb take check failed for %s in %s: %s",
                candidate.borrower, pool_config.name, ex, exc_info=True,
            )
            candidate.is_arb_takeable = False
            candidate.arb_bucket_index = None

        logger.info(
            "Evaluator: %s in %s: price=%s collateral=%s takeable=%s arbTakeable=%s",
            candidate.borrower, pool_config.name, candidate.auction_price_decimal, candidate.collateral_decimal,
            candidate.is_externally_takeable, candidate.is_arb_takeable,
        )
        return candidate

    def _bounded_quote(self, provider: BaseQuoteProvider, amount_in: int, token_in: str, token_out: str) -> Quote:
        future = self.executor.submit(provider.get_quote, amount_in, token_in, token_out)
        try:
            return future.result(timeout=self.quote_timeout)
        except FuturesTimeoutError:
            future.cancel()
            logger.warning("Evaluator: %s quote timed out after %ss", provider.source.name, self.quote_timeout)
            return Quote.failure(f"{provider.source.name} quote timed out")

    def check_external_take(self, pool: AjnaPool, take: TakeSettings, candidate: LiquidationCandidate) -> bool:
        """
        Takeable iff ``auction_price <= market_price * market_price_factor``, where the
        market price comes from a venue quote for the candidate's whole collateral.
        """
        if candidate.collateral <= 0 or not take.external_take_configured:
            return False

        try:
            provider = self.provider_for(take.liquidity_source)
        except ConfigurationError as ex:
            logger.warning("Evaluator: %s", ex)
            return False
        if not provider.is_available():
            logger.debug("Evaluator: %s venue unavailable, skipping external take", take.liquidity_source.name)
            return False

        collateral_decimals = pool.collateral_decimals
        quote_decimals = pool.quote_decimals
        amount_in = candidate.collateral * 10**collateral_decimals // WAD
        if amount_in <= 0:
            return False

        quote = self._bounded_quote(provider, amount_in, pool.collateral_address, pool.quote_token_address)
        if not quote.success:
            logger.debug("Evaluator: no quote for %s: %s", candidate.borrower, quote.error)
            return False

        collateral_amount = amount_in / 10**collateral_decimals
        quote_amount = quote.amount / 10**quote_decimals
        market_price = quote_amount / collateral_amount
        takeable_price = market_price * take.market_price_factor

        logger.debug(
            "Evaluator: %s market price %s, takeable price %s, auction price %s",
            take.liquidity_source.name, market_price, takeable_price, candidate.auction_price_decimal,
        )
        return candidate.auction_price_decimal <= takeable_price

    def check_arb_take(self, pool: AjnaPool, take: TakeSettings, candidate: LiquidationCandidate) -> bool:
        """
        Arb-takeable iff a bucket with deposit above ``min_collateral / hpb`` exists and
        ``auction_price < bucket_price * hpb_price_factor``. Records the bucket index.
        """
        candidate.arb_bucket_index = None
        if not take.arb_take_configured:
            return False

        if candidate.collateral < take.min_collateral * WAD:
            logger.debug(
                "Evaluator: collateral %s below min collateral %s", candidate.collateral_decimal, take.min_collateral
            )
            return False
        if candidate.hpb <= 0:
            return False

        min_deposit = take.min_collateral / candidate.hpb
        bucket_index = self.subgraph.get_highest_meaningful_bucket(pool.address, min_deposit)
        if bucket_index is None:
            return False

        bucket_price = pool.bucket_price(bucket_index)
        ceiling = bucket_price * take.hpb_price_factor
        candidate.arb_bucket_index = bucket_index
        return candidate.auction_price_decimal < ceiling

    def shutdown(self) -> None:
        self.executor.shutdown(wait=False)
