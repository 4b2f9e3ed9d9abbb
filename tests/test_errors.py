"""
Test suite for errors module

Tests the error taxonomy and the OperationResult result type.
"""

import pytest
from decimal import Decimal

from bankapp.errors import (
    ErrorKind, BankingError, InvalidAmountError, AccountNotFoundError,
    InsufficientFundsError, StorageExhaustedError, OperationResult
)


class TestErrorTaxonomy:
    """Test error kinds and messages"""

    def test_insufficient_funds_message(self):
        """Test the message states the current balance"""
        error = InsufficientFundsError(Decimal('1234.56'))

        assert error.kind == ErrorKind.INSUFFICIENT_FUNDS
        assert error.balance == Decimal('1234.56')
        assert error.reason == (
            "Transaction Failed: Insufficient funds. Current balance: $1,234.56"
        )
        assert isinstance(error, ValueError)
        assert isinstance(error, BankingError)

    def test_account_not_found(self):
        error = AccountNotFoundError("ACC999")

        assert error.kind == ErrorKind.ACCOUNT_NOT_FOUND
        assert error.account_number == "ACC999"
        assert str(error) == "Account not found. Please check the account number."
        assert isinstance(error, LookupError)

    def test_invalid_amount(self):
        error = InvalidAmountError("Deposit amount must be greater than zero.")

        assert error.kind == ErrorKind.INVALID_AMOUNT
        assert isinstance(error, ValueError)

    def test_storage_exhausted(self):
        error = StorageExhaustedError(200, "transactions")

        assert error.kind == ErrorKind.STORAGE_EXHAUSTED
        assert error.capacity == 200
        assert str(error) == "Storage full: cannot hold more than 200 transactions."


class TestOperationResult:
    """Test success/failure result values"""

    def test_ok_result(self):
        result = OperationResult.ok(Decimal('150.00'))

        assert result
        assert result.success
        assert result.balance == Decimal('150.00')
        assert result.error is None
        assert result.error_kind is None
        assert result.message is None
        assert result.raise_for_error() is result

    def test_failed_result(self):
        """Test a failed result carries the error and re-raises it"""
        error = InsufficientFundsError(Decimal('100.00'))
        result = OperationResult.failed(error, Decimal('100.00'))

        assert not result
        assert result.error_kind == ErrorKind.INSUFFICIENT_FUNDS
        assert result.message == error.reason
        assert result.balance == Decimal('100.00')

        with pytest.raises(InsufficientFundsError, match="Insufficient funds"):
            result.raise_for_error()
