"""
Banking System Module

Wires the customer, account and transaction registries together with the
transfer service, the concurrent simulator and flat-file storage. The
console and tests talk to this facade.
"""

from decimal import Decimal
from typing import List, Optional, Sequence, Tuple, Union

from .accounts import (
    Account, AccountManager, AccountType, validate_opening_deposit
)
from .concurrency import (
    ConcurrentTransactionSimulator, SimulationReport, TransactionOperation,
    create_default_operations
)
from .config import BankAppConfig, get_config
from .customers import CustomerManager, CustomerType
from .errors import BankingError
from .logging_config import get_logger, log_action
from .money import AmountLike
from .sequence import IdSequence
from .statements import AccountStatement, generate_statement
from .storage import FlatFileStorage
from .transactions import Transaction, TransactionManager, TransactionType
from .transfers import TransferResult, TransferService


# (account type, customer type, name, age, contact, address, opening deposit)
DEMO_ACCOUNTS = [
    ("Savings", "Regular", "John Doe", 30, "+1-555-0101", "NY", "1000"),
    ("Savings", "Regular", "John Doe", 30, "+1-555-0101", "NY", "2000"),
    ("Savings", "Premium", "Jane Smith", 45, "+1-555-0202", "CA", "5000"),
    ("Checking", "Regular", "John Doe", 30, "+1-555-0101", "NY", "1500"),
    ("Checking", "Premium", "Jane Smith", 45, "+1-555-0202", "CA", "12000"),
]


class BankingSystem:
    """Banking system with all components initialized"""

    def __init__(self, config: Optional[BankAppConfig] = None, data_dir: Optional[str] = None):
        self.config = config or get_config()

        self.customer_manager = CustomerManager(
            IdSequence(self.config.customer_id_prefix, self.config.id_width)
        )
        self.account_manager = AccountManager(
            IdSequence(self.config.account_number_prefix, self.config.id_width)
        )
        self.transaction_manager = TransactionManager(
            IdSequence(self.config.transaction_id_prefix, self.config.id_width)
        )
        self.transfer_service = TransferService(self.account_manager, self.transaction_manager)
        self.simulator = ConcurrentTransactionSimulator(
            self.account_manager, self.transaction_manager,
            timeout=self.config.simulation_timeout_seconds
        )
        self.storage = FlatFileStorage(
            data_dir if data_dir is not None else self.config.data_dir,
            self.config.accounts_file,
            self.config.transactions_file
        )
        self.logger = get_logger("bankapp.bank")

    def create_account(
        self,
        account_type: Union[AccountType, str],
        customer_type: Union[CustomerType, str],
        name: str,
        age: int,
        contact: str,
        address: str,
        initial_deposit: AmountLike
    ) -> Account:
        """
        Open an account for a customer and record the opening deposit

        A customer with the same name and contact is reused, otherwise a
        new one is created.

        Returns:
            The new account

        Raises:
            InvalidAmountError: If the opening deposit is not acceptable
            CustomerConflictError: If the matching customer was registered
                with a different type, age or address
            StorageExhaustedError: If the account registry or ledger is full
        """
        if not isinstance(account_type, AccountType):
            account_type = AccountType.from_label(account_type)
        if not isinstance(customer_type, CustomerType):
            customer_type = CustomerType.from_label(customer_type)

        # Reject a bad deposit before a customer record is created for it
        validate_opening_deposit(account_type, initial_deposit)

        with self.transaction_manager.reserve() as reservation:
            customer = self.customer_manager.get_or_create_customer(
                customer_type, name, age, contact, address
            )
            account = self.account_manager.create_account(account_type, customer, initial_deposit)
            with account.locked():
                self.transaction_manager.record(
                    account.account_number, TransactionType.DEPOSIT,
                    account.balance, account.balance, reservation=reservation
                )
        return account

    def get_account(self, account_number: str) -> Account:
        return self.account_manager.get_account(account_number)

    def list_accounts(self) -> List[Account]:
        """All accounts ordered by account number"""
        return sorted(
            self.account_manager.get_all_accounts().values(), key=lambda a: a.account_number
        )

    def deposit(self, account_number: str, amount: AmountLike) -> Transaction:
        return self._apply(account_number, TransactionType.DEPOSIT, amount)

    def withdraw(self, account_number: str, amount: AmountLike) -> Transaction:
        return self._apply(account_number, TransactionType.WITHDRAWAL, amount)

    def _apply(self, account_number: str, transaction_type: TransactionType,
               amount: AmountLike) -> Transaction:
        """
        Run one deposit or withdrawal and record it in the ledger

        Raises:
            AccountNotFoundError: If the account does not exist
            InvalidAmountError: If amount <= 0
            InsufficientFundsError: If a withdrawal would breach the floor
        """
        account = self.account_manager.get_account(account_number)
        action = transaction_type.value.lower()
        result = account.apply(transaction_type, amount, ledger=self.transaction_manager)

        if not result:
            log_action(
                self.logger, "warning", f"{transaction_type.value} rejected: {result.message}",
                action=action, resource=f"account:{account_number}",
                extra={"amount": str(amount), "error_kind": result.error_kind.value}
            )
            result.raise_for_error()

        transaction = result.transaction
        log_action(
            self.logger, "info", f"{transaction_type.value} completed on {account_number}",
            action=action, resource=f"account:{account_number}",
            extra={
                "transaction_id": transaction.transaction_id,
                "amount": str(transaction.amount),
                "balance": str(transaction.balance_after)
            }
        )
        return transaction

    def transfer(self, from_account_number: str, to_account_number: str,
                 amount: AmountLike) -> TransferResult:
        return self.transfer_service.transfer(from_account_number, to_account_number, amount)

    def get_transactions(self, account_number: str) -> List[Transaction]:
        """Ledger entries of an existing account, in insertion order"""
        self.account_manager.get_account(account_number)
        return self.transaction_manager.get_transactions_by_account(account_number)

    def get_statement(self, account_number: str) -> AccountStatement:
        account = self.account_manager.get_account(account_number)
        return generate_statement(account_number, self.transaction_manager, account)

    def get_total_balance(self) -> Decimal:
        return self.account_manager.get_total_balance()

    def simulate_concurrent_transactions(
        self,
        account_number: str,
        operations: Optional[Sequence[TransactionOperation]] = None
    ) -> SimulationReport:
        """Run the concurrent simulation; defaults to two deposits and one withdrawal"""
        if operations is None:
            operations = create_default_operations()
        return self.simulator.simulate(account_number, operations)

    def save(self) -> None:
        self.storage.save_all(self.account_manager, self.transaction_manager)

    def load(self) -> Tuple[int, int]:
        """
        Load stored accounts and transactions into this system.

        Meant for a freshly constructed system: transactions are appended
        without deduplication.

        Returns:
            (accounts loaded, transactions loaded)
        """
        accounts = self.storage.load_accounts(self.account_manager, self.customer_manager)
        transactions = self.storage.load_transactions(self.transaction_manager)
        return accounts, transactions

    def seed_demo_data(self) -> List[Account]:
        """Create the five demo accounts for two customers"""
        accounts = []
        for account_type, customer_type, name, age, contact, address, deposit in DEMO_ACCOUNTS:
            try:
                accounts.append(self.create_account(
                    account_type, customer_type, name, age, contact, address, deposit
                ))
            except BankingError as e:
                self.logger.error(f"Could not create demo account for {name}: {e}")
                raise
        self.logger.info(f"Seeded {len(accounts)} demo accounts")
        return accounts
