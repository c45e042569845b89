"""
Base class for venue quote providers.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

from web3 import Web3

from app.keeper.exceptions import ConfigurationError
from app.keeper.logging_config import setup_logger
from app.keeper.models import Quote
from app.keeper.venues import LiquiditySource, VenueConfig

logger = setup_logger()

ABI_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "abis")


class BaseQuoteProvider(ABC):
    """
    Quotes hypothetical exchanges at one liquidity venue.

    ``get_quote`` never raises: venue errors come back as a failed Quote, and an
    unavailable venue is never queried.
    """

    source: LiquiditySource = LiquiditySource.NONE

    def __init__(self, venue_config: VenueConfig, w3: Optional[Web3] = None):
        if venue_config is None:
            raise ConfigurationError(f"{self.source.name}: venue configuration is missing")
        self.venue_config = venue_config
        self.w3 = w3

    def is_available(self) -> bool:
        missing = self.venue_config.missing_fields()
        if missing:
            logger.debug("%s: unavailable, missing %s", self.source.name, ", ".join(missing))
            return False
        return True

    def get_quote(self, amount_in: int, token_in: str, token_out: str, fee_tier: Optional[int] = None) -> Quote:
        """
        Estimate how much ``token_out`` ``amount_in`` of ``token_in`` buys at this venue.

        Args:
            amount_in: Input amount in ``token_in`` native units.
            token_in: Input token address.
            token_out: Output token address.
            fee_tier: Optional fee tier override for venues that have one.

        Returns:
            Quote: successful with a positive amount, or failed with an error message.
        """
        if not self.is_available():
            return Quote.failure(f"{self.source.name} venue is not configured")
        try:
            if amount_in <= 0:
                return Quote.failure(f"Input amount must be positive, got {amount_in}")
            amount_out = self._quote(
                int(amount_in), Web3.to_checksum_address(token_in), Web3.to_checksum_address(token_out), fee_tier
            )
            quote = Quote.ok(amount_out)
        except Exception as ex:
            logger.error("%s: quote failed for %s -> %s: %s", self.source.name, token_in, token_out, ex, exc_info=True)
            return Quote.failure(f"{self.source.name} quote failed: {ex}")

        if not quote.success:
            logger.warning("%s: %s", self.source.name, quote.error)
        return quote

    @abstractmethod
    def _quote(self, amount_in: int, token_in: str, token_out: str, fee_tier: Optional[int]) -> int:
        """Query the venue and return the raw output amount. May raise."""

    def _require_w3(self) -> Web3:
        if self.w3 is None:
            raise ConfigurationError(f"{self.source.name}: a Web3 instance is required")
        return self.w3
