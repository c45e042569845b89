"""
Client for the Ajna subgraph (auction and loan index).
"""

from typing import Any, Dict, List, Optional

from .decorators import make_graphql_request
from .logging_config import setup_logger
from .models import AuctionRecord, LiquidationsSnapshot

logger = setup_logger()


class SubgraphClient:
    """Queries the index by pool address. Addresses are lowercased for entity ids."""

    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.timeout = timeout

    def _query(self, query: str) -> Optional[Dict[str, Any]]:
        return make_graphql_request(self.url, query, timeout=self.timeout)

    def get_liquidations(self, pool_address: str, min_collateral: float) -> Optional[LiquidationsSnapshot]:
        """
        Unsettled auctions with more than ``min_collateral`` remaining, plus the pool HPB.

        Returns:
            Optional[LiquidationsSnapshot]: None when the index is unreachable or has no such pool.
        """
        query = f"""
        query {{
          pool (id: "{pool_address.lower()}") {{
            hpb
            hpbIndex
            liquidationAuctions (where: {{collateralRemaining_gt: "{min_collateral}"}}) {{
              borrower
              collateralRemaining
              kickTime
              referencePrice
            }}
          }}
        }}
        """
        data = self._query(query)
        if not data or not data.get("pool"):
            logger.warning("SubgraphClient: no liquidation data for pool %s", pool_address)
            return None

        pool = data["pool"]
        auctions = [
            AuctionRecord(
                borrower=auction["borrower"],
                collateral_remaining=float(auction["collateralRemaining"]),
                kick_time=int(auction["kickTime"]),
                reference_price=float(auction["referencePrice"]),
            )
            for auction in pool.get("liquidationAuctions", [])
        ]
        return LiquidationsSnapshot(hpb=float(pool["hpb"]), hpb_index=int(pool["hpbIndex"]), auctions=auctions)

    def get_loans(self, pool_address: str) -> Optional[Dict[str, Any]]:
        """Pool LUP and every loan with its liquidation flag and threshold price."""
        query = f"""
        query {{
          pool (id: "{pool_address.lower()}") {{
            lup
          }}
          loans (where: {{poolAddress: "{pool_address.lower()}"}}) {{
            borrower
            inLiquidation
            thresholdPrice
          }}
        }}
        """
        data = self._query(query)
        if not data or not data.get("pool"):
            return None
        return {
            "lup": float(data["pool"]["lup"]),
            "loans": [
                {
                    "borrower": loan["borrower"],
                    "in_liquidation": bool(loan["inLiquidation"]),
                    "threshold_price": float(loan["thresholdPrice"]),
                }
                for loan in data.get("loans", [])
            ],
        }

    def get_highest_meaningful_bucket(self, pool_address: str, min_deposit: float) -> Optional[int]:
        """
        Index of the highest priced bucket holding more than ``min_deposit``.

        Returns:
            Optional[int]: The bucket index, or None if no bucket qualifies or the index is unreachable.
        """
        query = f"""
        query {{
          buckets (
            where: {{poolAddress: "{pool_address.lower()}", deposit_gt: "{min_deposit}"}}
            first: 1
            orderBy: bucketPrice
            orderDirection: desc
          ) {{
            bucketIndex
          }}
        }}
        """
        data = self._query(query)
        buckets: List[Dict[str, Any]] = (data or {}).get("buckets") or []
        if not buckets:
            return None
        return int(buckets[0]["bucketIndex"])
