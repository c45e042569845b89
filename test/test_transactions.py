"""
Tests for transaction building and submission.
"""

from unittest.mock import MagicMock

import pytest
from web3.exceptions import TimeExhausted

from app.keeper.exceptions import LedgerSubmissionError, TransactionBuildError
from app.keeper.transactions import build_transaction, send_contract_call, submit_transaction


@pytest.fixture()
def tx_config():
    config = MagicMock()
    config.CHAIN_ID = 8453
    config.KEEPER_EOA = "0x00000000000000000000000000000000000000e0"
    config.KEEPER_PRIVATE_KEY = "0x01"
    config.GAS_PRICE_MULTIPLIER = 1.5
    config.TX_CONFIRMATION_TIMEOUT = 120
    config.w3.eth.gas_price = 100
    config.w3.eth.estimate_gas.return_value = 50_000
    config.w3.eth.send_raw_transaction.return_value = bytes.fromhex("ab" * 32)
    config.w3.eth.wait_for_transaction_receipt.return_value = MagicMock(status=1, blockNumber=7)
    return config


def contract_function():
    function = MagicMock()
    function.build_transaction.side_effect = lambda params: dict(params)
    return function


def test_build_transaction(tx_config):
    tx = build_transaction(contract_function(), 12, tx_config)

    assert tx["nonce"] == 12
    assert tx["gasPrice"] == 150
    assert tx["gas"] == 100_000
    assert tx["chainId"] == 8453


def test_build_failure_is_wrapped(tx_config):
    tx_config.w3.eth.estimate_gas.side_effect = ValueError("execution reverted")

    with pytest.raises(TransactionBuildError):
        build_transaction(contract_function(), 1, tx_config)


def test_send_contract_call_returns_hash_and_receipt(tx_config):
    tx_hash, receipt = send_contract_call(contract_function(), 3, tx_config)

    assert tx_hash.endswith("ab" * 32)
    assert receipt.blockNumber == 7


def test_reverted_transaction_raises(tx_config):
    tx_config.w3.eth.wait_for_transaction_receipt.return_value = MagicMock(status=0)

    with pytest.raises(LedgerSubmissionError):
        submit_transaction({"nonce": 1}, tx_config)


def test_confirmation_timeout_raises(tx_config):
    tx_config.w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("timeout")

    with pytest.raises(LedgerSubmissionError):
        submit_transaction({"nonce": 1}, tx_config)


def test_rejected_transaction_raises(tx_config):
    tx_config.w3.eth.send_raw_transaction.side_effect = ValueError("nonce too low")

    with pytest.raises(LedgerSubmissionError):
        submit_transaction({"nonce": 1}, tx_config)
