"""
Account Management Module

Account policy engine and account registry. Each account variant defines
a withdrawal floor: savings accounts may not drop below their minimum
balance, checking accounts may not go further negative than their
overdraft limit. Every account owns the lock that serializes its
read-mutate-record sequences.
"""

from abc import ABC, abstractmethod
from contextlib import ExitStack, contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Union, TYPE_CHECKING
from enum import Enum
import threading

from .config import get_config
from .customers import Customer
from .errors import (
    BankingError, InvalidAmountError, InsufficientFundsError,
    AccountNotFoundError, StorageExhaustedError, OperationResult
)
from .logging_config import get_logger, log_action
from .money import (
    AmountLike, format_amount, has_sub_cent_digits, to_amount, to_decimal, to_rate
)
from .sequence import IdSequence
from .transactions import TransactionType

if TYPE_CHECKING:
    from .transactions import TransactionManager


class AccountType(Enum):
    """Account products"""
    SAVINGS = "Savings"    # Minimum balance floor, interest rate (display only)
    CHECKING = "Checking"  # Overdraft floor, monthly fee (display only)

    @classmethod
    def from_label(cls, label: str) -> 'AccountType':
        for member in cls:
            if member.value.lower() == (label or "").strip().lower():
                return member
        raise ValueError(f"Unknown account type: {label!r}")


class AccountStatus(Enum):
    """Account status; no transitions are implemented, accounts stay active"""
    ACTIVE = "ACTIVE"

    @property
    def display(self) -> str:
        return self.value.capitalize()


def coerce_amount(amount: AmountLike, operation: str = "Amount") -> Decimal:
    """Validate a transaction amount: convertible, strictly positive, whole cents"""
    try:
        value = to_decimal(amount)
        exact = not has_sub_cent_digits(value)
    except ValueError:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if value <= 0:
        raise InvalidAmountError(f"{operation} amount must be greater than zero.")
    if not exact:
        raise InvalidAmountError("Amount cannot have more than 2 decimal places.")
    return to_amount(value)


class Account(ABC):
    """
    Bank account with a variant-specific withdrawal floor.

    The balance is only changed through deposit/withdraw, both of which run
    under the account's re-entrant lock. `apply` extends the locked region
    to cover recording the ledger entry, so the recorded balance snapshot
    always matches the mutation that produced it.
    """

    account_type: AccountType

    def __init__(
        self,
        account_number: str,
        customer: Customer,
        balance: AmountLike,
        status: AccountStatus = AccountStatus.ACTIVE
    ):
        self.account_number = account_number
        self.customer = customer
        self.status = status
        self._balance = to_amount(balance)
        self._lock = threading.RLock()
        self.logger = get_logger("bankapp.accounts")

    @property
    def balance(self) -> Decimal:
        with self._lock:
            return self._balance

    @property
    @abstractmethod
    def floor(self) -> Decimal:
        """Lowest balance a withdrawal may leave behind"""

    @property
    def available_to_withdraw(self) -> Decimal:
        with self._lock:
            return self._balance - self.floor

    @contextmanager
    def locked(self) -> Iterator['Account']:
        """Hold this account's lock across several operations"""
        with self._lock:
            yield self

    def can_withdraw(self, amount: AmountLike) -> bool:
        """Check whether a withdrawal would succeed, without side effects"""
        try:
            value = coerce_amount(amount)
        except InvalidAmountError:
            return False
        with self._lock:
            return self._balance - value >= self.floor

    def deposit(self, amount: AmountLike) -> Decimal:
        """
        Add funds to the account

        Returns:
            New balance

        Raises:
            InvalidAmountError: If amount <= 0
        """
        value = coerce_amount(amount, "Deposit")
        with self._lock:
            self._balance += value
            return self._balance

    def withdraw(self, amount: AmountLike) -> Decimal:
        """
        Remove funds from the account, respecting the floor

        Returns:
            New balance

        Raises:
            InvalidAmountError: If amount <= 0
            InsufficientFundsError: If the balance would drop below the floor
        """
        value = coerce_amount(amount, "Withdrawal")
        with self._lock:
            if self._balance - value < self.floor:
                raise InsufficientFundsError(self._balance)
            self._balance -= value
            return self._balance

    def apply(
        self,
        transaction_type: Union[TransactionType, str],
        amount: AmountLike,
        ledger: Optional['TransactionManager'] = None,
        transfer_id: Optional[str] = None
    ) -> OperationResult:
        """
        Apply one operation atomically and report the outcome.

        Credits (Deposit, Transfer In) deposit, debits (Withdrawal,
        Transfer Out) withdraw. When a ledger is given, a slot is reserved
        before the balance changes and the entry is recorded before the lock
        is released. Never raises for domain failures; they come back as a
        failed OperationResult.
        """
        with self._lock, ExitStack() as stack:
            reservation = None
            try:
                if ledger is not None:
                    reservation = stack.enter_context(ledger.reserve())
                if not isinstance(transaction_type, TransactionType):
                    try:
                        transaction_type = TransactionType.from_label(transaction_type)
                    except ValueError:
                        raise InvalidAmountError(f"Unsupported transaction type: {transaction_type!r}")

                if transaction_type.is_credit:
                    new_balance = self.deposit(amount)
                else:
                    new_balance = self.withdraw(amount)
            except BankingError as e:
                return OperationResult.failed(e, self._balance)

            transaction = None
            if ledger is not None:
                transaction = ledger.record(
                    self.account_number, transaction_type,
                    coerce_amount(amount), new_balance,
                    transfer_id=transfer_id, reservation=reservation
                )
            return OperationResult.ok(new_balance, transaction)

    def process_transaction(
        self,
        amount: AmountLike,
        transaction_type: Union[TransactionType, str]
    ) -> OperationResult:
        """Dispatch a deposit or withdrawal by type without recording it"""
        result = self.apply(transaction_type, amount)
        if not result:
            self.logger.warning(f"{self.account_number}: {result.message}")
        return result

    def describe(self) -> Dict[str, Any]:
        """Display fields for listings"""
        return {
            "account_number": self.account_number,
            "customer_name": self.customer.name,
            "customer_type": self.customer.customer_type.value,
            "account_type": self.account_type.value,
            "balance": self.balance,
            "status": self.status.display,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(account_number={self.account_number!r}, "
            f"balance={self.balance})"
        )


class SavingsAccount(Account):
    """
    Savings account: withdrawals may not take the balance below the
    minimum balance. The interest rate is informational only.
    """

    account_type = AccountType.SAVINGS

    def __init__(
        self,
        account_number: str,
        customer: Customer,
        balance: AmountLike,
        interest_rate: Optional[AmountLike] = None,
        minimum_balance: Optional[AmountLike] = None,
        status: AccountStatus = AccountStatus.ACTIVE
    ):
        super().__init__(account_number, customer, balance, status)
        cfg = get_config()
        self.interest_rate = to_rate(
            interest_rate if interest_rate is not None else cfg.savings_interest_rate
        )
        self.minimum_balance = to_amount(
            minimum_balance if minimum_balance is not None else cfg.savings_minimum_balance
        )

    @property
    def floor(self) -> Decimal:
        return self.minimum_balance

    def describe(self) -> Dict[str, Any]:
        result = super().describe()
        result["interest_rate"] = self.interest_rate
        result["minimum_balance"] = self.minimum_balance
        return result


class CheckingAccount(Account):
    """
    Checking account: the balance may go negative down to the overdraft
    limit. The monthly fee is informational and waived for premium
    customers; it is never charged automatically.
    """

    account_type = AccountType.CHECKING

    def __init__(
        self,
        account_number: str,
        customer: Customer,
        balance: AmountLike,
        overdraft_limit: Optional[AmountLike] = None,
        monthly_fee: Optional[AmountLike] = None,
        status: AccountStatus = AccountStatus.ACTIVE
    ):
        super().__init__(account_number, customer, balance, status)
        cfg = get_config()
        self.overdraft_limit = to_amount(
            overdraft_limit if overdraft_limit is not None else cfg.checking_overdraft_limit
        )
        if self.overdraft_limit < 0:
            raise ValueError("Overdraft limit must not be negative")
        self.monthly_fee = to_amount(
            monthly_fee if monthly_fee is not None else cfg.checking_monthly_fee
        )

    @property
    def floor(self) -> Decimal:
        return -self.overdraft_limit

    @property
    def effective_monthly_fee(self) -> Decimal:
        if self.customer.has_waived_fees:
            return Decimal('0.00')
        return self.monthly_fee

    def describe(self) -> Dict[str, Any]:
        result = super().describe()
        result["overdraft_limit"] = self.overdraft_limit
        result["monthly_fee"] = self.effective_monthly_fee
        return result


ACCOUNT_CLASSES = {
    AccountType.SAVINGS: SavingsAccount,
    AccountType.CHECKING: CheckingAccount,
}


def restore_account(
    account_type: AccountType,
    account_number: str,
    customer: Customer,
    balance: AmountLike,
    **variant_options
) -> Account:
    """
    Rebuild an account from stored fields.

    Unlike AccountManager.create_account this assigns no number and skips
    opening-deposit rules: stored balances may legitimately sit below them.
    """
    account_class = ACCOUNT_CLASSES[account_type]
    return account_class(account_number, customer, balance, **variant_options)


def validate_opening_deposit(
    account_type: AccountType,
    initial_deposit: AmountLike,
    minimum_balance: Optional[AmountLike] = None
) -> Decimal:
    """
    Check the opening deposit of a new account

    Raises:
        InvalidAmountError: If the deposit is not positive, or a savings
            deposit is below the minimum balance
    """
    deposit = coerce_amount(initial_deposit, "Initial deposit")
    if account_type == AccountType.SAVINGS:
        if minimum_balance is None:
            minimum_balance = get_config().savings_minimum_balance
        minimum = to_amount(minimum_balance)
        if deposit < minimum:
            raise InvalidAmountError(
                f"Initial deposit must be at least {format_amount(minimum)} "
                "for a savings account."
            )
    return deposit


class AccountManager:
    """
    Registry of accounts keyed by account number (O(1) lookup)
    """

    def __init__(self, sequence: Optional[IdSequence] = None, capacity: Optional[int] = None):
        if sequence is None:
            cfg = get_config()
            sequence = IdSequence(cfg.account_number_prefix, cfg.id_width)
        self.sequence = sequence
        self.capacity = capacity
        self._accounts: Dict[str, Account] = {}
        self._lock = threading.RLock()
        self.logger = get_logger("bankapp.accounts")

    def create_account(
        self,
        account_type: AccountType,
        customer: Customer,
        initial_deposit: AmountLike,
        **variant_options
    ) -> Account:
        """
        Open a new account with the next account number

        Args:
            account_type: Savings or checking
            customer: Owning customer
            initial_deposit: Opening balance (positive; savings accounts
                need at least their minimum balance)
            **variant_options: interest_rate/minimum_balance (savings) or
                overdraft_limit/monthly_fee (checking)

        Returns:
            The registered account

        Raises:
            InvalidAmountError: If the opening deposit is not acceptable
            StorageExhaustedError: If the registry is at capacity
        """
        deposit = validate_opening_deposit(
            account_type, initial_deposit, variant_options.get("minimum_balance")
        )

        with self._lock:
            self._check_capacity()
            account = restore_account(
                account_type, self.sequence.next_id(), customer, deposit, **variant_options
            )
            self._accounts[account.account_number] = account

        log_action(
            self.logger, "info", f"Account created: {account.account_number}",
            action="create_account", resource=f"account:{account.account_number}",
            extra={
                "account_type": account_type.value,
                "customer_id": customer.customer_id,
                "initial_deposit": str(deposit)
            }
        )
        return account

    def add_account(self, account: Account) -> Account:
        """Register an existing (e.g. loaded) account"""
        with self._lock:
            if account.account_number not in self._accounts:
                self._check_capacity()
            self._accounts[account.account_number] = account
            self.sequence.observe(account.account_number)
        return account

    def _check_capacity(self) -> None:
        if self.capacity is not None and len(self._accounts) >= self.capacity:
            raise StorageExhaustedError(self.capacity, "accounts")

    def find_account(self, account_number: str) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_number)

    def get_account(self, account_number: str) -> Account:
        """Get account by number, raising AccountNotFoundError if missing"""
        account = self.find_account(account_number)
        if account is None:
            raise AccountNotFoundError(account_number)
        return account

    def get_all_accounts(self) -> Dict[str, Account]:
        with self._lock:
            return dict(self._accounts)

    def get_customer_accounts(self, customer_id: str) -> List[Account]:
        with self._lock:
            return [
                account for account in self._accounts.values()
                if account.customer.customer_id == customer_id
            ]

    def get_account_count(self) -> int:
        with self._lock:
            return len(self._accounts)

    def get_total_balance(self) -> Decimal:
        """Sum of all account balances"""
        with self._lock:
            accounts = list(self._accounts.values())
        return sum((account.balance for account in accounts), Decimal('0.00'))
