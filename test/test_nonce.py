"""
Tests for the nonce sequencer.
"""

import threading
from unittest.mock import MagicMock

import pytest

from app.keeper.exceptions import LedgerSubmissionError
from app.keeper.nonce import NonceSequencer

ACCOUNT = "0x00000000000000000000000000000000000000A1"
OTHER_ACCOUNT = "0x00000000000000000000000000000000000000A2"


def make_sequencer(pending: int = 10) -> NonceSequencer:
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = pending
    return NonceSequencer(w3)


def test_sequential_nonces_increment_from_pending_count():
    sequencer = make_sequencer(10)

    assert [sequencer.get_next(ACCOUNT) for _ in range(3)] == [10, 11, 12]
    sequencer.w3.eth.get_transaction_count.assert_called_once_with(ACCOUNT, "pending")


def test_failed_operation_resets_to_ledger_count():
    sequencer = make_sequencer(10)
    assert sequencer.get_next(ACCOUNT) == 10
    assert sequencer.get_next(ACCOUNT) == 11

    def failing(nonce):
        raise LedgerSubmissionError(f"reverted with nonce {nonce}")

    with pytest.raises(LedgerSubmissionError):
        sequencer.run_sequenced(ACCOUNT, failing)

    assert sequencer.get_next(ACCOUNT) == 10


def test_failed_reset_keeps_original_error_and_refetches_later():
    sequencer = make_sequencer(10)
    assert sequencer.get_next(ACCOUNT) == 10
    assert sequencer.get_next(ACCOUNT) == 11

    def failing(nonce):
        raise LedgerSubmissionError(f"reverted with nonce {nonce}")

    sequencer.w3.eth.get_transaction_count.side_effect = ConnectionError("rpc down")
    with pytest.raises(LedgerSubmissionError, match="reverted with nonce 12"):
        sequencer.run_sequenced(ACCOUNT, failing)

    sequencer.w3.eth.get_transaction_count.side_effect = None
    assert sequencer.get_next(ACCOUNT) == 10


def test_failed_reset_does_not_leave_stale_cache():
    sequencer = make_sequencer(5)
    sequencer.get_next(ACCOUNT)

    sequencer.w3.eth.get_transaction_count.side_effect = ConnectionError("rpc down")
    with pytest.raises(ConnectionError):
        sequencer.reset(ACCOUNT)

    sequencer.w3.eth.get_transaction_count.side_effect = None
    sequencer.w3.eth.get_transaction_count.return_value = 8
    assert sequencer.get_next(ACCOUNT) == 8


def test_run_sequenced_passes_nonce_and_returns_result():
    sequencer = make_sequencer(4)

    assert sequencer.run_sequenced(ACCOUNT, lambda nonce: f"tx-{nonce}") == "tx-4"
    assert sequencer.run_sequenced(ACCOUNT, lambda nonce: f"tx-{nonce}") == "tx-5"


def test_run_sequenced_reraises_original_exception_without_retry():
    sequencer = make_sequencer(0)
    operation = MagicMock(side_effect=ValueError("boom"))

    with pytest.raises(ValueError, match="boom"):
        sequencer.run_sequenced(ACCOUNT, operation)

    operation.assert_called_once_with(0)


def test_reset_discards_cache():
    sequencer = make_sequencer(7)
    sequencer.get_next(ACCOUNT)
    sequencer.get_next(ACCOUNT)

    sequencer.w3.eth.get_transaction_count.return_value = 9
    assert sequencer.reset(ACCOUNT) == 9
    assert sequencer.get_next(ACCOUNT) == 9


def test_accounts_are_independent():
    sequencer = make_sequencer(3)

    assert sequencer.get_next(ACCOUNT) == 3
    assert sequencer.get_next(ACCOUNT) == 4
    assert sequencer.get_next(OTHER_ACCOUNT) == 3


def test_clear_forgets_accounts():
    sequencer = make_sequencer(1)
    sequencer.get_next(ACCOUNT)

    sequencer.clear()

    assert sequencer.get_next(ACCOUNT) == 1
    assert sequencer.w3.eth.get_transaction_count.call_count == 2


def test_clear_keeps_account_locks():
    sequencer = make_sequencer(1)
    lock = sequencer._lock_for(ACCOUNT)

    sequencer.clear()

    assert sequencer._lock_for(ACCOUNT) is lock


def test_concurrent_issuance_never_repeats_a_nonce():
    sequencer = make_sequencer(100)
    issued = []
    issued_lock = threading.Lock()

    def worker():
        for _ in range(25):
            nonce = sequencer.get_next(ACCOUNT)
            with issued_lock:
                issued.append(nonce)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(issued) == list(range(100, 300))
