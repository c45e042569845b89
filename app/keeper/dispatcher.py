"""
Execution dispatcher: turns takeable candidates into keeper transactions.
"""

import time
from typing import Tuple

from .config_loader import KeeperConfig, PoolConfig
from .contracts import create_contract_instance
from .exceptions import ConfigurationError, QuoteError, ValidationError
from .logging_config import setup_logger
from .models import WAD, DispatchResult, LiquidationCandidate
from .nonce import NonceSequencer
from .notifications import post_arb_take_notification, post_error_notification, post_take_notification
from .pool import AjnaPool
from .quote_providers.registry import build_quote_provider
from .swap_details import (
    ONEINCH_MIN_RETURN_INDEX,
    decode_oneinch_swap_calldata,
    encode_curve_details,
    encode_oneinch_details,
    encode_sushiswap_details,
    encode_uniswap_v3_details,
    encode_uniswap_v4_details,
)
from .transactions import send_contract_call
from .venues import LiquiditySource, VenueConfig

logger = setup_logger()

# Factory takers check the real minimum output on chain
NOMINAL_MIN_OUTPUT = 1


class ExecutionDispatcher:
    """
    Submits takes and arb takes through the nonce sequencer.

    Each dispatch returns a DispatchResult and never raises, so one failed candidate
    does not stop the rest of the pass.
    """

    def __init__(self, config: KeeperConfig, sequencer: NonceSequencer, dry_run: bool = True, notify: bool = True):
        self.config = config
        self.sequencer = sequencer
        self.dry_run = dry_run
        self.notify = notify

    def _venue(self, source: LiquiditySource) -> VenueConfig:
        venue = self.config.venue(source)
        if venue is None:
            raise ConfigurationError(f"No venue configuration for {source.name}")
        if not venue.is_complete():
            raise ConfigurationError(f"{source.name} venue missing {', '.join(venue.missing_fields())}")
        return venue

    def _deadline(self) -> int:
        return int(time.time()) + int(self.config.SWAP_DEADLINE_SECONDS)

    def min_output_for(self, pool: AjnaPool, candidate: LiquidationCandidate) -> int:
        """
        Least acceptable swap output, in quote token units: the quote tokens owed for the
        collateral at the auction price, plus MIN_OUTPUT_SAFETY_MARGIN.
        """
        cost_wad = candidate.collateral * candidate.auction_price // WAD
        cost = cost_wad * 10**pool.quote_decimals // WAD
        return cost + int(cost * float(self.config.MIN_OUTPUT_SAFETY_MARGIN))

    def build_swap_details(
        self, pool: AjnaPool, source: LiquiditySource, candidate: LiquidationCandidate, taker_address: str
    ) -> Tuple[str, bytes]:
        """
        Return (router address, encoded swap details) for a take through ``source``.

        Raises:
            ConfigurationError: If the venue or a pool key / curve pool for the pair is missing.
            QuoteError: If the 1inch route cannot cover the liquidation cost.
        """
        venue = self._venue(source)

        if source == LiquiditySource.ONEINCH:
            provider = build_quote_provider(source, venue, self.config.w3)
            amount = candidate.collateral * 10**pool.collateral_decimals // WAD
            tx = provider.get_swap_transaction(pool.collateral_address, pool.quote_token_address, amount, taker_address)
            executor, description, data = decode_oneinch_swap_calldata(tx["data"])

            min_output = self.min_output_for(pool, candidate)
            if description[ONEINCH_MIN_RETURN_INDEX] < min_output:
                raise QuoteError(
                    f"1inch minReturnAmount {description[ONEINCH_MIN_RETURN_INDEX]} below required {min_output}"
                )
            return venue.router_address, encode_oneinch_details(executor, description, data)

        deadline = self._deadline()
        target_token = pool.quote_token_address

        if source == LiquiditySource.UNISWAPV3:
            details = encode_uniswap_v3_details(
                venue.universal_router_address,
                venue.permit2_address,
                target_token,
                int(venue.default_fee_tier),
                int(venue.default_slippage * 100),
                deadline,
            )
            return venue.universal_router_address, details

        if source == LiquiditySource.SUSHISWAP:
            details = encode_sushiswap_details(
                venue.swap_router_address, target_token, int(venue.default_fee_tier), NOMINAL_MIN_OUTPUT, deadline
            )
            return venue.swap_router_address, details

        if source == LiquiditySource.UNISWAPV4:
            pool_key = venue.find_pool_key(pool.collateral_address, target_token)
            if pool_key is None:
                raise ConfigurationError(f"No Uniswap V4 pool key for {pool.collateral_address}/{target_token}")
            details = encode_uniswap_v4_details(
                venue.router_address, pool_key.as_tuple(), target_token, NOMINAL_MIN_OUTPUT, deadline
            )
            return venue.router_address, details

        if source == LiquiditySource.CURVE:
            curve_pool = venue.find_pool(pool.collateral_address, target_token)
            if curve_pool is None:
                raise ConfigurationError(f"No Curve pool for {pool.collateral_address}/{target_token}")
            details = encode_curve_details(
                curve_pool.address, target_token, curve_pool.pool_type, NOMINAL_MIN_OUTPUT, deadline
            )
            return curve_pool.address, details

        raise ConfigurationError(f"Unsupported liquidity source {source!r}")

    def dispatch_take(self, pool: AjnaPool, pool_config: PoolConfig, candidate: LiquidationCandidate) -> DispatchResult:
        """Take the candidate's collateral and swap it through the pool's configured venue in one transaction."""
        source = pool_config.take.liquidity_source
        if self.dry_run:
            logger.info(
                "DryRun - would Take - pool: %s, borrower: %s, price: %s, collateral: %s, source: %s",
                pool_config.name, candidate.borrower, candidate.auction_price_decimal,
                candidate.collateral_decimal, source.name,
            )
            return DispatchResult(success=True, action="take", borrower=candidate.borrower, dry_run=True)

        try:
            taker_address = self.config.taker_address_for(source)
            abi_key = "KEEPER_TAKER_ABI_PATH" if source == LiquiditySource.ONEINCH else "KEEPER_TAKER_FACTORY_ABI_PATH"
            taker = create_contract_instance(taker_address, self.config.abi_path(abi_key), self.config.w3)

            router, swap_details = self.build_swap_details(pool, source, candidate, taker_address)
            take_call = taker.functions.takeWithAtomicSwap(
                pool.address,
                candidate.borrower,
                candidate.auction_price,
                candidate.collateral,
                int(source),
                router,
                swap_details,
            )

            logger.info("Dispatcher: sending Take tx - pool: %s, borrower: %s", pool_config.name, candidate.borrower)
            tx_hash, _ = self.sequencer.run_sequenced(
                self.config.KEEPER_EOA, lambda nonce: send_contract_call(take_call, nonce, self.config)
            )
        except Exception as ex:
            return self._failed("take", pool_config, candidate, ex)

        logger.info("Take successful - pool: %s, borrower: %s, tx: %s", pool_config.name, candidate.borrower, tx_hash)
        if self.notify:
            post_take_notification(pool_config.name, candidate, source, tx_hash, self.config)
        return DispatchResult(success=True, action="take", borrower=candidate.borrower, tx_hash=tx_hash)

    def dispatch_arb_take(
        self, pool: AjnaPool, pool_config: PoolConfig, candidate: LiquidationCandidate
    ) -> DispatchResult:
        """Bucket take against the pool's own deposit at the resolved bucket index."""
        if self.dry_run:
            logger.info(
                "DryRun - would ArbTake - pool: %s, borrower: %s, bucket: %s",
                pool_config.name, candidate.borrower, candidate.arb_bucket_index,
            )
            return DispatchResult(success=True, action="arb_take", borrower=candidate.borrower, dry_run=True)

        try:
            if candidate.arb_bucket_index is None:
                raise ValidationError("arb take candidate has no bucket index")

            bucket_take_call = pool.instance.functions.bucketTake(candidate.borrower, False, candidate.arb_bucket_index)
            logger.info(
                "Dispatcher: sending ArbTake tx - pool: %s, borrower: %s, bucket: %s",
                pool_config.name, candidate.borrower, candidate.arb_bucket_index,
            )
            tx_hash, _ = self.sequencer.run_sequenced(
                self.config.KEEPER_EOA, lambda nonce: send_contract_call(bucket_take_call, nonce, self.config)
            )
        except Exception as ex:
            return self._failed("arb_take", pool_config, candidate, ex)

        logger.info("ArbTake successful - pool: %s, borrower: %s, tx: %s", pool_config.name, candidate.borrower, tx_hash)
        if self.notify:
            post_arb_take_notification(pool_config.name, candidate, tx_hash, self.config)
        return DispatchResult(success=True, action="arb_take", borrower=candidate.borrower, tx_hash=tx_hash)

    def _failed(
        self, action: str, pool_config: PoolConfig, candidate: LiquidationCandidate, ex: Exception
    ) -> DispatchResult:
        message = f"Failed to {action} - pool: {pool_config.name}, borrower: {candidate.borrower}: {ex}"
        logger.error(message, exc_info=True)
        if self.notify:
            post_error_notification(message, self.config)
        return DispatchResult(success=False, action=action, borrower=candidate.borrower, error=str(ex))
