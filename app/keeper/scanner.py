"""
Liquidation scanner: turns index auctions into candidates with live ledger state.
"""

from typing import Iterator

from .config_loader import PoolConfig
from .exceptions import ValidationError
from .logging_config import setup_logger
from .models import AuctionRecord, LiquidationCandidate, LiquidationsSnapshot
from .pool import AjnaPool
from .subgraph import SubgraphClient

logger = setup_logger()


class LiquidationScanner:
    def __init__(self, subgraph: SubgraphClient):
        self.subgraph = subgraph

    def scan(self, pool: AjnaPool, pool_config: PoolConfig) -> Iterator[LiquidationCandidate]:
        """
        Yield one candidate per unsettled auction in ``pool``.

        The index is queried when iteration starts. Each auction is then read back from
        the ledger just before it is yielded, and the ledger values replace the index
        values. Auctions whose live collateral is not positive are skipped.

        Args:
            pool: Ledger view of the pool.
            pool_config: Pool settings; ``take.min_collateral`` filters the index query.

        Yields:
            LiquidationCandidate: Candidates with both takeable flags unset.
        """
        min_collateral = 0
        if pool_config.take and pool_config.take.min_collateral:
            min_collateral = pool_config.take.min_collateral

        snapshot = self.subgraph.get_liquidations(pool.address, min_collateral)
        if snapshot is None:
            logger.warning("Scanner: could not read liquidations for pool %s", pool_config.name)
            return

        logger.debug("Scanner: %s auctions in pool %s", len(snapshot.auctions), pool_config.name)
        for auction in snapshot.auctions:
            try:
                yield self._build_candidate(pool, auction, snapshot)
            except ValidationError as ex:
                logger.warning("Scanner: skipping borrower %s in %s: %s", auction.borrower, pool_config.name, ex)
            except Exception as ex:
                logger.error(
                    "Scanner: failed to read auction status for %s in %s: %s",
                    auction.borrower, pool_config.name, ex, exc_info=True,
                )

    def _build_candidate(
        self, pool: AjnaPool, auction: AuctionRecord, snapshot: LiquidationsSnapshot
    ) -> LiquidationCandidate:
        status = pool.auction_status(auction.borrower)
        if status["collateral"] <= 0:
            raise ValidationError(f"non-positive live collateral {status['collateral']}")
        if status["price"] <= 0:
            raise ValidationError(f"non-positive auction price {status['price']}")

        return LiquidationCandidate(
            pool_address=pool.address,
            borrower=auction.borrower,
            collateral=status["collateral"],
            auction_price=status["price"],
            kick_time=status["kick_time"] or auction.kick_time,
            hpb=snapshot.hpb,
            hpb_index=snapshot.hpb_index,
        )
