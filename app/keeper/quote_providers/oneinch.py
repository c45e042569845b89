"""
Module for interacting with the 1inch swap API
"""

import time
from typing import Any, Dict, Optional

from web3 import Web3

from app.keeper.decorators import make_api_request
from app.keeper.exceptions import QuoteError
from app.keeper.logging_config import setup_logger
from app.keeper.quote_providers.base_provider import BaseQuoteProvider
from app.keeper.venues import LiquiditySource

logger = setup_logger()


class OneInchQuoteProvider(BaseQuoteProvider):
    """
    Quotes and swap transactions from the 1inch aggregator API.
    The API is rate limited, so every request waits ``request_delay`` seconds first.
    """

    source = LiquiditySource.ONEINCH

    @property
    def headers(self) -> Dict[str, str]:
        return {"Accept": "application/json", "Authorization": f"Bearer {self.venue_config.api_key}"}

    def _url(self, endpoint: str) -> str:
        return f"{self.venue_config.api_base_url.rstrip('/')}/{self.venue_config.chain_id}/{endpoint}"

    def _request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        time.sleep(self.venue_config.request_delay)
        response = make_api_request(self._url(endpoint), headers=self.headers, params=params)
        if not response:
            raise QuoteError(f"1inch {endpoint} request failed")
        return response

    def _quote(self, amount_in: int, token_in: str, token_out: str, fee_tier: Optional[int]) -> int:
        params = {"src": token_in, "dst": token_out, "amount": str(amount_in)}
        response = self._request("quote", params)

        dst_amount = response.get("dstAmount")
        if dst_amount is None:
            raise QuoteError(f"1inch quote response has no dstAmount: {response}")
        return int(dst_amount)

    def get_swap_transaction(
        self, src_token: str, dst_token: str, amount: int, sender: str, slippage: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Get a swap transaction from 1inch API

        Args:
            src_token (str): Source token address
            dst_token (str): Destination token address
            amount (int): Amount of source token to swap (in wei)
            sender (str): Address that executes the swap and receives the output
            slippage (Optional[float]): Maximum acceptable slippage in percentage

        Returns:
            Dict[str, Any]: The ``tx`` member of the API response

        Raises:
            QuoteError: If the venue is unavailable or the API gives no transaction.
        """
        if not self.is_available():
            raise QuoteError("1inch venue is not configured")

        sender = Web3.to_checksum_address(sender)
        params = {
            "src": Web3.to_checksum_address(src_token),
            "dst": Web3.to_checksum_address(dst_token),
            "amount": str(amount),
            "from": sender,
            "receiver": sender,
            "slippage": str(slippage if slippage is not None else self.venue_config.slippage),
            "disableEstimate": "true",
        }
        logger.info(
            "==1inch Swap Transaction Info==src: %s, dst: %s, amount: %s, slippage: %s, from: %s",
            params["src"], params["dst"], params["amount"], params["slippage"], sender,
        )

        response = self._request("swap", params)
        tx = response.get("tx")
        if not tx or not tx.get("data"):
            raise QuoteError("No transaction data in 1inch swap response")

        if Web3.to_checksum_address(tx["to"]) != Web3.to_checksum_address(self.venue_config.router_address):
            raise QuoteError(f"1inch swap targets unexpected router {tx['to']}")
        return tx
