"""
Flat-File Storage Module

Persists accounts and transactions as pipe-delimited text, one record per
line. All monetary values are written as Decimal strings.

accounts.txt:
    AccountType|AccountNumber|CustomerType|Name|Age|Contact|Address|Balance|VariantData
    VariantData = interestRate,minimumBalance (Savings) or overdraftLimit (Checking)

transactions.txt:
    TransactionID|AccountNumber|Type|Amount|BalanceAfter|DateTime
    DateTime = dd-MM-yyyy hh:mm a
"""

from pathlib import Path
from typing import Iterable, List, Optional, Union
import threading

from .accounts import (
    Account, AccountManager, AccountType, SavingsAccount, CheckingAccount, restore_account
)
from .config import get_config
from .customers import CustomerManager, CustomerType
from .logging_config import get_logger
from .money import to_amount, to_rate
from .transactions import (
    Transaction, TransactionManager, TransactionType, format_timestamp, parse_timestamp
)


DELIMITER = "|"


class StorageFormatError(ValueError):
    """A stored line cannot be parsed, or a value cannot be written safely"""


def _check_field(value: str, name: str) -> str:
    if DELIMITER in value or "\n" in value or "\r" in value:
        raise StorageFormatError(f"{name} must not contain '|' or line breaks: {value!r}")
    return value


class FlatFileStorage:
    """
    Reads and writes the accounts and transactions files
    """

    def __init__(
        self,
        data_dir: Optional[Union[str, Path]] = None,
        accounts_file: Optional[str] = None,
        transactions_file: Optional[str] = None
    ):
        cfg = get_config()
        self.data_dir = Path(data_dir if data_dir is not None else cfg.data_dir)
        self.accounts_path = self.data_dir / (accounts_file or cfg.accounts_file)
        self.transactions_path = self.data_dir / (transactions_file or cfg.transactions_file)
        self._lock = threading.RLock()
        self.logger = get_logger("bankapp.storage")

    # Serialization

    def serialize_account(self, account: Account) -> str:
        customer = account.customer
        if isinstance(account, SavingsAccount):
            variant = f"{account.interest_rate},{account.minimum_balance}"
        elif isinstance(account, CheckingAccount):
            variant = str(account.overdraft_limit)
        else:
            raise StorageFormatError(f"Unsupported account class: {type(account).__name__}")

        fields = [
            account.account_type.value,
            account.account_number,
            customer.customer_type.value,
            _check_field(customer.name, "Name"),
            str(customer.age),
            _check_field(customer.contact, "Contact"),
            _check_field(customer.address, "Address"),
            str(account.balance),
            variant,
        ]
        return DELIMITER.join(fields)

    def parse_account(self, line: str,
                      customer_manager: Optional[CustomerManager] = None) -> Account:
        """
        Rebuild an account from one stored line.

        A customer already known to `customer_manager` under the same name
        and contact is reused, so accounts of one customer share it.

        Raises:
            StorageFormatError: If the line is malformed
        """
        parts = line.rstrip("\r\n").split(DELIMITER)
        if len(parts) not in (8, 9):
            raise StorageFormatError(f"Expected 8 or 9 fields, got {len(parts)}: {line!r}")

        try:
            account_type = AccountType.from_label(parts[0])
            account_number = parts[1].strip()
            customer_type = CustomerType.from_label(parts[2])
            name, contact, address = parts[3], parts[5], parts[6]
            age = int(parts[4])
            balance = to_amount(parts[7])
            variant = parts[8].split(",") if len(parts) == 9 and parts[8].strip() else []

            options = {}
            if account_type == AccountType.SAVINGS and variant:
                if len(variant) != 2:
                    raise ValueError("Savings data must be interestRate,minimumBalance")
                options["interest_rate"] = to_rate(variant[0])
                options["minimum_balance"] = to_amount(variant[1])
            elif account_type == AccountType.CHECKING and variant:
                options["overdraft_limit"] = to_amount(variant[0])

            if not account_number:
                raise ValueError("Account number is empty")
            if options.get("overdraft_limit", 0) < 0:
                raise ValueError("Overdraft limit must not be negative")

            if customer_manager is None:
                customer_manager = CustomerManager()
            customer = customer_manager.find_customer(name, contact)
            if customer is None:
                customer = customer_manager.create_customer(customer_type, name, age, contact, address)
            return restore_account(account_type, account_number, customer, balance, **options)
        except ValueError as e:
            raise StorageFormatError(f"Malformed account line {line!r}: {e}") from e

    def serialize_transaction(self, transaction: Transaction) -> str:
        return DELIMITER.join([
            transaction.transaction_id,
            transaction.account_number,
            transaction.transaction_type.value,
            str(transaction.amount),
            str(transaction.balance_after),
            format_timestamp(transaction.created_at),
        ])

    def parse_transaction(self, line: str) -> Transaction:
        """
        Rebuild a transaction from one stored line

        Raises:
            StorageFormatError: If the line is malformed
        """
        parts = line.rstrip("\r\n").split(DELIMITER)
        if len(parts) != 6:
            raise StorageFormatError(f"Expected 6 fields, got {len(parts)}: {line!r}")

        try:
            return Transaction.restore(
                transaction_id=parts[0].strip(),
                account_number=parts[1].strip(),
                transaction_type=TransactionType.from_label(parts[2]),
                amount=to_amount(parts[3]),
                balance_after=to_amount(parts[4]),
                created_at=parse_timestamp(parts[5])
            )
        except ValueError as e:
            raise StorageFormatError(f"Malformed transaction line {line!r}: {e}") from e

    # File I/O

    def _write_lines(self, path: Path, lines: Iterable[str]) -> int:
        lines = list(lines)
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            content = "\n".join(lines) + ("\n" if lines else "")
            tmp_path = path.with_name(path.name + ".tmp")
            tmp_path.write_text(content, encoding="utf-8")
            tmp_path.replace(path)
        return len(lines)

    def _read_lines(self, path: Path) -> List[str]:
        with self._lock:
            if not path.exists():
                return []
            return [line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]

    def save_accounts(self, account_manager: AccountManager) -> int:
        """Write every account; returns the number written"""
        accounts = sorted(
            account_manager.get_all_accounts().values(), key=lambda a: a.account_number
        )
        count = self._write_lines(self.accounts_path, (self.serialize_account(a) for a in accounts))
        self.logger.info(f"Saved {count} accounts to {self.accounts_path}")
        return count

    def save_transactions(self, transaction_manager: TransactionManager) -> int:
        """Write every transaction in ledger order; returns the number written"""
        transactions = transaction_manager.get_all_transactions()
        count = self._write_lines(
            self.transactions_path, (self.serialize_transaction(t) for t in transactions)
        )
        self.logger.info(f"Saved {count} transactions to {self.transactions_path}")
        return count

    def save_all(self, account_manager: AccountManager,
                 transaction_manager: TransactionManager) -> None:
        self.save_accounts(account_manager)
        self.save_transactions(transaction_manager)

    def load_accounts(self, account_manager: AccountManager,
                      customer_manager: Optional[CustomerManager] = None) -> int:
        """
        Load accounts into the registry, skipping malformed lines.

        Returns:
            Number of accounts loaded (0 if the file does not exist)
        """
        if customer_manager is None:
            customer_manager = CustomerManager()
        loaded = 0
        for line in self._read_lines(self.accounts_path):
            try:
                account = self.parse_account(line, customer_manager)
            except StorageFormatError as e:
                self.logger.warning(f"Skipping account record: {e}")
                continue
            account_manager.add_account(account)
            loaded += 1
        self.logger.info(f"Loaded {loaded} accounts from {self.accounts_path}")
        return loaded

    def load_transactions(self, transaction_manager: TransactionManager) -> int:
        """
        Load transactions into the ledger, skipping malformed lines.

        Returns:
            Number of transactions loaded (0 if the file does not exist)
        """
        loaded = 0
        for line in self._read_lines(self.transactions_path):
            try:
                transaction = self.parse_transaction(line)
            except StorageFormatError as e:
                self.logger.warning(f"Skipping transaction record: {e}")
                continue
            transaction_manager.add_transaction(transaction)
            loaded += 1
        self.logger.info(f"Loaded {loaded} transactions from {self.transactions_path}")
        return loaded

    def load_all(self, account_manager: AccountManager, transaction_manager: TransactionManager,
                 customer_manager: Optional[CustomerManager] = None) -> None:
        if customer_manager is None:
            customer_manager = CustomerManager()
        self.load_accounts(account_manager, customer_manager)
        self.load_transactions(transaction_manager)
