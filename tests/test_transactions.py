"""
Test suite for transactions module

Tests transaction records, the append-only ledger and its queries.
"""

import pytest
from decimal import Decimal
from datetime import datetime

from bankapp.errors import StorageExhaustedError
from bankapp.transactions import (
    Transaction, TransactionManager, TransactionType, format_timestamp, parse_timestamp
)


class TestTransactionType:
    """Test TransactionType helpers"""

    def test_direction(self):
        assert TransactionType.DEPOSIT.is_credit
        assert TransactionType.TRANSFER_IN.is_credit
        assert TransactionType.WITHDRAWAL.is_debit
        assert TransactionType.TRANSFER_OUT.is_debit

    def test_from_label(self):
        assert TransactionType.from_label("deposit") == TransactionType.DEPOSIT
        assert TransactionType.from_label("TRANSFER   in") == TransactionType.TRANSFER_IN
        with pytest.raises(ValueError, match="Unknown transaction type"):
            TransactionType.from_label("Interest")


class TestTimestamps:
    """Test minute-precision timestamp format"""

    def test_format_and_parse(self):
        moment = datetime(2025, 3, 5, 14, 15)

        assert format_timestamp(moment) == "05-03-2025 02:15 PM"
        assert parse_timestamp("05-03-2025 02:15 PM") == moment
        assert parse_timestamp(" 01-01-2024 12:00 AM ") == datetime(2024, 1, 1, 0, 0)


class TestTransaction:
    """Test Transaction record"""

    def test_signed_amount_and_previous_balance(self):
        withdrawal = Transaction.restore(
            "TXN002", "ACC001", TransactionType.WITHDRAWAL, "200", "800",
            datetime(2025, 3, 5, 14, 15)
        )

        assert withdrawal.amount == Decimal('200.00')
        assert withdrawal.signed_amount == Decimal('-200.00')
        assert withdrawal.previous_balance == Decimal('1000.00')
        assert withdrawal.timestamp == "05-03-2025 02:15 PM"
        assert withdrawal.transfer_id is None


class TestTransactionManager:
    """Test TransactionManager ledger"""

    def setup_method(self):
        self.ledger = TransactionManager()

    def _add(self, transaction_id, account_number, transaction_type, amount, balance_after, minute):
        self.ledger.add_transaction(Transaction.restore(
            transaction_id, account_number, transaction_type, amount, balance_after,
            datetime(2025, 3, 5, 10, minute)
        ))

    def test_record(self):
        first = self.ledger.record("ACC001", TransactionType.DEPOSIT, "1000", "1000")
        second = self.ledger.record("ACC001", TransactionType.WITHDRAWAL, "200", "800")

        assert first.transaction_id == "TXN001"
        assert second.transaction_id == "TXN002"
        assert second.balance_after == Decimal('800.00')
        assert first.created_at <= second.created_at
        assert self.ledger.get_all_transactions() == [first, second]

    def test_add_transaction_advances_sequence(self):
        self._add("TXN007", "ACC001", TransactionType.DEPOSIT, "100", "100", 0)

        recorded = self.ledger.record("ACC001", TransactionType.DEPOSIT, "50", "150")
        assert recorded.transaction_id == "TXN008"

    def test_queries_by_account(self):
        self._add("TXN001", "ACC001", TransactionType.DEPOSIT, "1000", "1000", 0)
        self._add("TXN002", "ACC002", TransactionType.DEPOSIT, "500", "500", 1)
        self._add("TXN003", "ACC001", TransactionType.WITHDRAWAL, "300", "700", 2)
        self._add("TXN004", "ACC001", TransactionType.TRANSFER_IN, "50", "750", 3)

        by_account = self.ledger.get_transactions_by_account("ACC001")
        assert [t.transaction_id for t in by_account] == ["TXN001", "TXN003", "TXN004"]

        by_date = self.ledger.get_transactions_by_account_sorted_by_date("ACC001")
        assert [t.transaction_id for t in by_date] == ["TXN004", "TXN003", "TXN001"]

        by_amount = self.ledger.get_transactions_by_account_sorted_by_amount("ACC001")
        assert [t.transaction_id for t in by_amount] == ["TXN001", "TXN003", "TXN004"]

        assert self.ledger.get_total_amount_by_account("ACC001") == Decimal('750.00')
        assert self.ledger.get_transaction_count_by_account("ACC001") == 3
        assert self.ledger.get_transaction_count_by_account("ACC999") == 0
        assert self.ledger.get_transaction_count() == 4

    def test_same_minute_sorts_newest_insert_first(self):
        """Test ties on timestamp keep reverse insertion order"""
        self._add("TXN001", "ACC001", TransactionType.DEPOSIT, "100", "100", 5)
        self._add("TXN002", "ACC001", TransactionType.DEPOSIT, "100", "200", 5)
        self._add("TXN003", "ACC001", TransactionType.DEPOSIT, "100", "300", 5)

        by_date = self.ledger.get_transactions_by_account_sorted_by_date("ACC001")
        assert [t.transaction_id for t in by_date] == ["TXN003", "TXN002", "TXN001"]

    def test_transfer_correlation(self):
        self.ledger.record("ACC001", TransactionType.TRANSFER_OUT, "10", "90", transfer_id="T-1")
        self.ledger.record("ACC002", TransactionType.TRANSFER_IN, "10", "110", transfer_id="T-1")
        self.ledger.record("ACC001", TransactionType.DEPOSIT, "10", "100")

        legs = self.ledger.get_transactions_by_transfer("T-1")
        assert [t.transaction_type for t in legs] == [
            TransactionType.TRANSFER_OUT, TransactionType.TRANSFER_IN
        ]

    def test_capacity(self):
        ledger = TransactionManager(capacity=2)
        ledger.record("ACC001", TransactionType.DEPOSIT, "10", "10")

        ledger.ensure_capacity(1)
        with pytest.raises(StorageExhaustedError):
            ledger.ensure_capacity(2)

        ledger.record("ACC001", TransactionType.DEPOSIT, "10", "20")
        with pytest.raises(StorageExhaustedError, match="2 transactions"):
            ledger.record("ACC001", TransactionType.DEPOSIT, "10", "30")
        assert ledger.get_transaction_count() == 2

    def test_reserved_slots_are_held_for_their_holder(self):
        ledger = TransactionManager(capacity=2)

        with ledger.reserve(2) as reservation:
            with pytest.raises(StorageExhaustedError):
                ledger.record("ACC002", TransactionType.DEPOSIT, "10", "10")
            ledger.record("ACC001", TransactionType.TRANSFER_OUT, "10", "90", reservation=reservation)
            ledger.record("ACC003", TransactionType.TRANSFER_IN, "10", "110", reservation=reservation)

        assert ledger.get_transaction_count() == 2
        assert [t.account_number for t in ledger.get_all_transactions()] == ["ACC001", "ACC003"]

    def test_unused_reservation_is_released(self):
        ledger = TransactionManager(capacity=1)

        with pytest.raises(RuntimeError):
            with ledger.reserve():
                raise RuntimeError("balance update failed")

        ledger.ensure_capacity(1)
        ledger.record("ACC001", TransactionType.DEPOSIT, "10", "10")
        with pytest.raises(StorageExhaustedError):
            with ledger.reserve():
                pass
