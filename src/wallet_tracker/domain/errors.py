"""
Domain exceptions.

Every error the application raises on purpose derives from WalletTrackerError,
so callers (CLI, scheduled jobs) can catch the whole family in one place.
"""
from decimal import Decimal


class WalletTrackerError(Exception):
    """Base exception for wallet tracker errors"""
    pass


class ValidationError(WalletTrackerError):
    """Raised when input is malformed or out of range. Never raised after I/O started."""
    pass


class SameWalletTransferError(ValidationError):
    """Raised when a transfer names the same wallet as source and destination."""

    def __init__(self, wallet_id: str):
        super().__init__(f"Cannot transfer to the same wallet ({wallet_id})")
        self.wallet_id = wallet_id


class InactiveWalletError(WalletTrackerError):
    """Raised when money would move through a soft-deleted wallet."""

    def __init__(self, wallet_id: str, role: str = "wallet"):
        super().__init__(f"The {role} {wallet_id} is inactive")
        self.wallet_id = wallet_id
        self.role = role


class InsufficientBalanceError(WalletTrackerError):
    """Raised when an operation would drive a wallet balance below zero."""

    def __init__(self, wallet_id: str, balance: Decimal, required: Decimal):
        super().__init__(
            f"Insufficient balance in wallet {wallet_id}: "
            f"available {balance}, required {required}"
        )
        self.wallet_id = wallet_id
        self.balance = balance
        self.required = required
