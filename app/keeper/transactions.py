"""
Build, sign and submit keeper transactions.
"""

from typing import Any, Dict, Tuple

from web3.exceptions import TimeExhausted

from .config_loader import KeeperConfig
from .exceptions import LedgerSubmissionError, TransactionBuildError
from .logging_config import setup_logger

logger = setup_logger()


def build_transaction(contract_function: Any, nonce: int, config: KeeperConfig) -> Dict[str, Any]:
    """
    Build a transaction for ``contract_function`` with a doubled gas estimate.

    Raises:
        TransactionBuildError: If building or gas estimation fails, e.g. because the call reverts.
    """
    try:
        gas_price = int(config.w3.eth.gas_price * float(config.GAS_PRICE_MULTIPLIER))
        tx = contract_function.build_transaction({
            "chainId": config.CHAIN_ID,
            "gasPrice": gas_price,
            "from": config.KEEPER_EOA,
            "nonce": nonce,
        })
        estimated_gas = config.w3.eth.estimate_gas(tx) * 2
        tx["gas"] = int(estimated_gas)
    except Exception as ex:
        raise TransactionBuildError(f"Could not build transaction with nonce {nonce}: {ex}") from ex

    logger.debug("Transactions: built tx with nonce %s, gas %s, gasPrice %s", nonce, tx["gas"], tx["gasPrice"])
    return tx


def submit_transaction(tx: Dict[str, Any], config: KeeperConfig) -> Tuple[str, Any]:
    """
    Sign ``tx`` with the keeper key, send it and wait for the receipt.

    Returns:
        Tuple[str, Any]: Transaction hash and receipt.

    Raises:
        LedgerSubmissionError: If the node rejects the transaction, the receipt does not
            arrive within TX_CONFIRMATION_TIMEOUT, or the transaction reverts.
    """
    try:
        signed_tx = config.w3.eth.account.sign_transaction(tx, config.KEEPER_PRIVATE_KEY)
        tx_hash = config.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
    except Exception as ex:
        raise LedgerSubmissionError(f"Transaction with nonce {tx.get('nonce')} was rejected: {ex}") from ex

    logger.info("Transactions: sent %s with nonce %s", tx_hash.hex(), tx.get("nonce"))
    try:
        tx_receipt = config.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=float(config.TX_CONFIRMATION_TIMEOUT)
        )
    except TimeExhausted as ex:
        raise LedgerSubmissionError(f"Transaction {tx_hash.hex()} not confirmed in time") from ex

    if tx_receipt.status != 1:
        raise LedgerSubmissionError(f"Transaction {tx_hash.hex()} reverted")

    logger.info("Transactions: %s confirmed in block %s", tx_hash.hex(), tx_receipt.blockNumber)
    return tx_hash.hex(), tx_receipt


def send_contract_call(contract_function: Any, nonce: int, config: KeeperConfig) -> Tuple[str, Any]:
    """Build and submit ``contract_function`` with ``nonce``. Used as a sequencer operation."""
    tx = build_transaction(contract_function, nonce, config)
    return submit_transaction(tx, config)
