"""
Error Taxonomy Module

Every failure an account, ledger or transfer can report is one of four
closed kinds. Operations raise the typed exceptions below; batch and
dispatch entry points return an OperationResult carrying the same kind.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING

from .money import format_amount

if TYPE_CHECKING:
    from .transactions import Transaction


class ErrorKind(Enum):
    """Closed set of domain error kinds"""
    INVALID_AMOUNT = "invalid_amount"          # Non-positive amount or self-transfer
    ACCOUNT_NOT_FOUND = "account_not_found"    # Unknown account number
    INSUFFICIENT_FUNDS = "insufficient_funds"  # Withdrawal would breach the floor
    STORAGE_EXHAUSTED = "storage_exhausted"    # Fixed-capacity registry is full


class BankingError(Exception):
    """Base class for all domain errors"""

    kind: ErrorKind = ErrorKind.INVALID_AMOUNT

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidAmountError(BankingError, ValueError):
    """Amount is zero/negative, or the operation targets the same account"""
    kind = ErrorKind.INVALID_AMOUNT


class AccountNotFoundError(BankingError, LookupError):
    """No account is registered under the given number"""
    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_number: str,
                 reason: str = "Account not found. Please check the account number."):
        super().__init__(reason)
        self.account_number = account_number


class InsufficientFundsError(BankingError, ValueError):
    """Withdrawal would take the balance below the account's floor"""
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, balance: Decimal, reason: Optional[str] = None):
        if reason is None:
            reason = (
                "Transaction Failed: Insufficient funds. "
                f"Current balance: {format_amount(balance)}"
            )
        super().__init__(reason)
        self.balance = balance


class StorageExhaustedError(BankingError):
    """A registry created with a fixed capacity has no free slot left"""
    kind = ErrorKind.STORAGE_EXHAUSTED

    def __init__(self, capacity: int, what: str = "records"):
        super().__init__(f"Storage full: cannot hold more than {capacity} {what}.")
        self.capacity = capacity


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of a single account operation.

    Either success with the resulting balance (and ledger entry, when one
    was recorded), or failure carrying the BankingError that stopped it.
    The balance is the account balance after the attempt either way.
    """
    success: bool
    balance: Decimal
    error: Optional[BankingError] = None
    transaction: Optional['Transaction'] = None

    @classmethod
    def ok(cls, balance: Decimal, transaction: Optional['Transaction'] = None) -> 'OperationResult':
        return cls(success=True, balance=balance, transaction=transaction)

    @classmethod
    def failed(cls, error: BankingError, balance: Decimal) -> 'OperationResult':
        return cls(success=False, balance=balance, error=error)

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error else None

    @property
    def message(self) -> Optional[str]:
        return self.error.reason if self.error else None

    def __bool__(self) -> bool:
        return self.success

    def raise_for_error(self) -> 'OperationResult':
        """Re-raise a failure as its typed exception, return self on success"""
        if self.error is not None:
            raise self.error
        return self
