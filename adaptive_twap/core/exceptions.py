"""
Exception hierarchy.

Fatal (abort the run before or during execution):
- ConfigurationError, CredentialError

Slice-local (recorded as a failed slice, run continues):
- MarketDataError, PriceValidationError, InsufficientLiquidityError
"""

from typing import List, Optional


class TWAPError(Exception):
    """Base class for engine errors."""


class ConfigurationError(TWAPError):
    """Invalid run parameters."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class CredentialError(TWAPError):
    """Missing or unusable trading credential."""


class MarketDataError(TWAPError):
    """Price/book/candle fetch failed or returned a malformed payload."""


class PriceValidationError(TWAPError):
    """Formatted price or size fails venue precision rules."""


class InsufficientLiquidityError(TWAPError):
    """Book cannot absorb any size within the slippage tolerance."""


class ExecutionInProgressError(TWAPError):
    """execute() called while a run is already active."""
