"""
Data classes for structured returns in the auction keeper.
"""

from dataclasses import dataclass
from typing import Optional

WAD = 10**18


@dataclass(frozen=True)
class Quote:
    """Estimated output of a hypothetical exchange at a venue."""

    success: bool
    amount: Optional[int] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if self.success and (self.amount is None or self.amount <= 0):
            raise ValueError(f"Successful quote requires a positive amount, got {self.amount}")

    @classmethod
    def ok(cls, amount: int) -> "Quote":
        if amount is None or int(amount) <= 0:
            return cls(success=False, error=f"Venue returned non-positive amount: {amount}")
        return cls(success=True, amount=int(amount))

    @classmethod
    def failure(cls, error: str) -> "Quote":
        return cls(success=False, error=error)


@dataclass
class AuctionRecord:
    """An unsettled auction as reported by the index."""

    borrower: str
    collateral_remaining: float
    kick_time: int
    reference_price: float


@dataclass
class LiquidationsSnapshot:
    """Index view of a pool: highest price bucket and its unsettled auctions."""

    hpb: float
    hpb_index: int
    auctions: list


@dataclass
class LiquidationCandidate:
    """A live auction considered for a take during one scan pass."""

    pool_address: str
    borrower: str
    collateral: int
    auction_price: int
    kick_time: int = 0
    hpb: float = 0.0
    hpb_index: int = 0
    is_externally_takeable: bool = False
    is_arb_takeable: bool = False
    arb_bucket_index: Optional[int] = None

    @property
    def collateral_decimal(self) -> float:
        return self.collateral / WAD

    @property
    def auction_price_decimal(self) -> float:
        return self.auction_price / WAD


@dataclass
class DispatchResult:
    """Outcome of submitting (or simulating) one keeper action."""

    success: bool
    action: str
    borrower: str
    tx_hash: Optional[str] = None
    dry_run: bool = False
    error: Optional[str] = None


@dataclass
class PassSummary:
    """Counters for one take pass over a pool, reported by the status route."""

    pool_name: str
    started_at: float
    finished_at: Optional[float] = None
    candidates: int = 0
    takes: int = 0
    arb_takes: int = 0
    failures: int = 0
    cancelled: bool = False
