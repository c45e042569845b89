"""
Ledger view of one Ajna pool.
"""

from functools import cached_property
from typing import Any, Dict

from web3 import Web3

from .config_loader import KeeperConfig
from .contracts import create_contract_instance
from .models import WAD


class AjnaPool:
    """
    Read access to an Ajna ERC20 pool and its PoolInfoUtils. Token addresses and
    decimals are fixed for a pool, so they are read once.
    """

    def __init__(self, address: str, name: str, config: KeeperConfig):
        self.address = Web3.to_checksum_address(address)
        self.name = name
        self.config = config
        self.w3 = config.w3

        self.instance = create_contract_instance(self.address, config.abi_path("AJNA_POOL_ABI_PATH"), self.w3)
        self.pool_info_utils = create_contract_instance(
            config.contract_address("POOL_INFO_UTILS"), config.abi_path("POOL_INFO_UTILS_ABI_PATH"), self.w3
        )

    @cached_property
    def collateral_address(self) -> str:
        return Web3.to_checksum_address(self.instance.functions.collateralAddress().call())

    @cached_property
    def quote_token_address(self) -> str:
        return Web3.to_checksum_address(self.instance.functions.quoteTokenAddress().call())

    def _decimals(self, token: str) -> int:
        erc20 = create_contract_instance(token, self.config.abi_path("ERC20_ABI_PATH"), self.w3)
        return erc20.functions.decimals().call()

    @cached_property
    def collateral_decimals(self) -> int:
        return self._decimals(self.collateral_address)

    @cached_property
    def quote_decimals(self) -> int:
        return self._decimals(self.quote_token_address)

    def auction_status(self, borrower: str) -> Dict[str, Any]:
        """
        Live auction state for ``borrower``. Amounts are WAD.

        Returns:
            Dict[str, Any]: kick_time, collateral, debt_to_cover, price, neutral_price, reference_price
        """
        (
            kick_time,
            collateral,
            debt_to_cover,
            _is_collateralized,
            price,
            neutral_price,
            reference_price,
            _debt_to_collateral,
            _bond_factor,
        ) = self.pool_info_utils.functions.auctionStatus(self.address, Web3.to_checksum_address(borrower)).call()
        return {
            "kick_time": kick_time,
            "collateral": collateral,
            "debt_to_cover": debt_to_cover,
            "price": price,
            "neutral_price": neutral_price,
            "reference_price": reference_price,
        }

    def bucket_price(self, index: int) -> float:
        """Price of bucket ``index`` as a decimal."""
        return self.pool_info_utils.functions.indexToPrice(index).call() / WAD
