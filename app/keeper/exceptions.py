"""
Custom exceptions for the auction keeper.
"""


class KeeperError(Exception):
    """Base exception for all keeper errors."""


class ConfigurationError(KeeperError):
    """Raised when a required venue, account or contract parameter is missing."""


class QuoteError(KeeperError):
    """Raised when a venue query fails or returns a non-positive amount."""


class LedgerSubmissionError(KeeperError):
    """Raised when a transaction is reverted, rejected or times out."""


class TransactionBuildError(LedgerSubmissionError):
    """Raised when building or estimating a keeper transaction fails."""


class ValidationError(KeeperError):
    """Raised for malformed candidate data, e.g. non-positive collateral."""
