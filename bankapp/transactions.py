"""
Transaction Ledger Module

Immutable transaction records and the append-only ledger that stores them.
Identifiers and timestamps are allocated under the ledger lock together
with the append, so id order, timestamp order and insertion order agree.
"""

from decimal import Decimal
from datetime import datetime
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional
from enum import Enum
import threading

from .config import get_config
from .errors import StorageExhaustedError
from .money import AmountLike, to_amount
from .sequence import IdSequence


# dd-MM-yyyy hh:mm a, e.g. "05-03-2025 02:15 PM"
TIMESTAMP_FORMAT = "%d-%m-%Y %I:%M %p"


class TransactionType(Enum):
    """Kinds of balance-affecting events"""
    DEPOSIT = "Deposit"
    WITHDRAWAL = "Withdrawal"
    TRANSFER_IN = "Transfer In"
    TRANSFER_OUT = "Transfer Out"

    @property
    def is_credit(self) -> bool:
        """Money coming into the account"""
        return self in (TransactionType.DEPOSIT, TransactionType.TRANSFER_IN)

    @property
    def is_debit(self) -> bool:
        return not self.is_credit

    @classmethod
    def from_label(cls, label: str) -> 'TransactionType':
        """Case-insensitive lookup by display label ("deposit", "TRANSFER IN")"""
        normalized = " ".join((label or "").split()).lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown transaction type: {label!r}")


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    return datetime.strptime(text.strip(), TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class Transaction:
    """
    One ledger entry. `amount` is always positive; the direction comes
    from the transaction type.
    """
    transaction_id: str
    account_number: str
    transaction_type: TransactionType
    amount: Decimal
    balance_after: Decimal
    created_at: datetime
    transfer_id: Optional[str] = None

    @classmethod
    def restore(
        cls,
        transaction_id: str,
        account_number: str,
        transaction_type: TransactionType,
        amount: AmountLike,
        balance_after: AmountLike,
        created_at: datetime,
        transfer_id: Optional[str] = None
    ) -> 'Transaction':
        """Rebuild a transaction from stored fields"""
        return cls(
            transaction_id=transaction_id,
            account_number=account_number,
            transaction_type=transaction_type,
            amount=to_amount(amount),
            balance_after=to_amount(balance_after),
            created_at=created_at,
            transfer_id=transfer_id
        )

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.created_at)

    @property
    def signed_amount(self) -> Decimal:
        """Positive for credits, negative for debits"""
        return self.amount if self.transaction_type.is_credit else -self.amount

    @property
    def previous_balance(self) -> Decimal:
        return self.balance_after - self.signed_amount


class LedgerReservation:
    """Ledger slots held for entries that are about to be recorded"""

    def __init__(self, count: int):
        self.remaining = count


class TransactionManager:
    """
    Append-only, thread-safe transaction ledger

    An optional capacity limits the number of entries. Callers that change
    a balance before recording it hold a reservation, so the entry cannot
    be refused once the balance has moved.
    """

    def __init__(self, sequence: Optional[IdSequence] = None, capacity: Optional[int] = None):
        if sequence is None:
            cfg = get_config()
            sequence = IdSequence(cfg.transaction_id_prefix, cfg.id_width)
        self.sequence = sequence
        self.capacity = capacity
        self._transactions: List[Transaction] = []
        self._reserved = 0
        self._lock = threading.Lock()

    def record(
        self,
        account_number: str,
        transaction_type: TransactionType,
        amount: AmountLike,
        balance_after: AmountLike,
        transfer_id: Optional[str] = None,
        reservation: Optional[LedgerReservation] = None
    ) -> Transaction:
        """
        Create and append a new ledger entry

        Args:
            account_number: Account the entry belongs to
            transaction_type: Kind of event
            amount: Positive amount moved
            balance_after: Account balance right after the event
            transfer_id: Correlates the two halves of a transfer
            reservation: Slot taken with reserve(); skips the capacity check

        Returns:
            The appended Transaction

        Raises:
            StorageExhaustedError: If the ledger is full and no reserved
                slot is left
        """
        with self._lock:
            if reservation is not None and reservation.remaining > 0:
                reservation.remaining -= 1
                self._reserved -= 1
            else:
                self._check_capacity()
            transaction = Transaction(
                transaction_id=self.sequence.next_id(),
                account_number=account_number,
                transaction_type=transaction_type,
                amount=to_amount(amount),
                balance_after=to_amount(balance_after),
                created_at=datetime.now(),
                transfer_id=transfer_id
            )
            self._transactions.append(transaction)
            return transaction

    def add_transaction(self, transaction: Transaction) -> None:
        """Append an existing transaction (no validation, no dedup)"""
        with self._lock:
            self._check_capacity()
            self._transactions.append(transaction)
            self.sequence.observe(transaction.transaction_id)

    def ensure_capacity(self, count: int = 1) -> None:
        """Raise StorageExhaustedError unless `count` more entries fit"""
        with self._lock:
            self._check_capacity(count)

    @contextmanager
    def reserve(self, count: int = 1) -> Iterator[LedgerReservation]:
        """
        Hold `count` slots for the duration of the block.

        Slots not consumed by record(reservation=...) are released on exit.

        Raises:
            StorageExhaustedError: If `count` more entries do not fit
        """
        with self._lock:
            self._check_capacity(count)
            self._reserved += count
        reservation = LedgerReservation(count)
        try:
            yield reservation
        finally:
            with self._lock:
                self._reserved -= reservation.remaining
                reservation.remaining = 0

    def _check_capacity(self, count: int = 1) -> None:
        used = len(self._transactions) + self._reserved
        if self.capacity is not None and used + count > self.capacity:
            raise StorageExhaustedError(self.capacity, "transactions")

    def get_all_transactions(self) -> List[Transaction]:
        with self._lock:
            return list(self._transactions)

    def get_transaction_count(self) -> int:
        with self._lock:
            return len(self._transactions)

    def get_transactions_by_account(self, account_number: str) -> List[Transaction]:
        """Transactions for one account, in insertion order"""
        with self._lock:
            return [t for t in self._transactions if t.account_number == account_number]

    def get_transactions_by_account_sorted_by_date(self, account_number: str) -> List[Transaction]:
        """Newest first; ties keep reverse insertion order"""
        return sorted(
            reversed(self.get_transactions_by_account(account_number)),
            key=lambda t: t.created_at,
            reverse=True
        )

    def get_transactions_by_account_sorted_by_amount(self, account_number: str) -> List[Transaction]:
        """Largest amount first"""
        return sorted(
            self.get_transactions_by_account(account_number),
            key=lambda t: t.amount,
            reverse=True
        )

    def get_transactions_by_transfer(self, transfer_id: str) -> List[Transaction]:
        with self._lock:
            return [t for t in self._transactions if t.transfer_id == transfer_id]

    def get_total_amount_by_account(self, account_number: str) -> Decimal:
        """Net of signed amounts (credits minus debits) for one account"""
        return sum(
            (t.signed_amount for t in self.get_transactions_by_account(account_number)),
            Decimal('0.00')
        )

    def get_transaction_count_by_account(self, account_number: str) -> int:
        return len(self.get_transactions_by_account(account_number))
