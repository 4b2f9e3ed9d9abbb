"""
Test suite for bank module

End-to-end tests through the BankingSystem facade: account opening,
deposits, withdrawals, transfers, statements, simulation and persistence.
"""

import pytest
from decimal import Decimal

from bankapp.accounts import AccountType, CheckingAccount
from bankapp.bank import BankingSystem
from bankapp.config import BankAppConfig
from bankapp.customers import CustomerConflictError, CustomerType
from bankapp.errors import (
    AccountNotFoundError, InsufficientFundsError, InvalidAmountError, StorageExhaustedError
)
from bankapp.transactions import TransactionType


class TestBankingSystem:
    """Test BankingSystem operations"""

    def setup_method(self):
        self.bank = BankingSystem(data_dir="unused")

    def test_create_account_records_opening_deposit(self):
        account = self.bank.create_account(
            "Savings", "Regular", "John Doe", 30, "+1-555-0101", "NY", "1000"
        )

        assert account.account_number == "ACC001"
        assert account.balance == Decimal('1000.00')
        transactions = self.bank.get_transactions("ACC001")
        assert len(transactions) == 1
        assert transactions[0].transaction_type == TransactionType.DEPOSIT
        assert transactions[0].amount == Decimal('1000.00')
        assert transactions[0].balance_after == Decimal('1000.00')

    def test_rejected_opening_deposit_creates_nothing(self):
        with pytest.raises(InvalidAmountError, match="at least"):
            self.bank.create_account(
                AccountType.SAVINGS, CustomerType.REGULAR,
                "John Doe", 30, "+1-555-0101", "NY", "100"
            )

        assert self.bank.customer_manager.get_customer_count() == 0
        assert self.bank.account_manager.get_account_count() == 0
        assert self.bank.transaction_manager.get_transaction_count() == 0

    def test_existing_customer_with_other_type_is_rejected(self):
        self.bank.create_account("Savings", "Regular", "John Doe", 30, "+1-555-0101", "NY", "1000")

        with pytest.raises(CustomerConflictError, match="CUST001 with a different customer type"):
            self.bank.create_account(
                "Checking", "Premium", "John Doe", 30, "+1-555-0101", "NY", "500"
            )

        assert self.bank.customer_manager.get_customer_count() == 1
        assert self.bank.account_manager.get_account_count() == 1
        assert self.bank.transaction_manager.get_transaction_count() == 1

    def test_full_ledger_opens_no_account(self):
        self.bank.transaction_manager.capacity = 0

        with pytest.raises(StorageExhaustedError):
            self.bank.create_account(
                "Savings", "Regular", "John Doe", 30, "+1-555-0101", "NY", "1000"
            )

        assert self.bank.customer_manager.get_customer_count() == 0
        assert self.bank.account_manager.get_account_count() == 0

    def test_seed_demo_data(self):
        accounts = self.bank.seed_demo_data()

        assert [a.account_number for a in accounts] == [
            "ACC001", "ACC002", "ACC003", "ACC004", "ACC005"
        ]
        assert isinstance(accounts[3], CheckingAccount)
        assert self.bank.customer_manager.get_customer_count() == 2
        assert accounts[0].customer is accounts[1].customer
        assert accounts[2].customer.customer_type == CustomerType.PREMIUM
        assert self.bank.get_total_balance() == Decimal('21500.00')
        assert self.bank.transaction_manager.get_transaction_count() == 5

    def test_deposit_and_withdraw(self):
        self.bank.seed_demo_data()

        deposit = self.bank.deposit("ACC004", "500")
        withdrawal = self.bank.withdraw("ACC004", "2900")

        assert deposit.balance_after == Decimal('2000.00')
        assert withdrawal.balance_after == Decimal('-900.00')
        assert withdrawal.transaction_type == TransactionType.WITHDRAWAL
        assert self.bank.get_account("ACC004").balance == Decimal('-900.00')

    def test_failed_withdrawal(self):
        self.bank.seed_demo_data()

        with pytest.raises(InsufficientFundsError, match=r"Current balance: \$1,000\.00"):
            self.bank.withdraw("ACC001", "600")
        with pytest.raises(InvalidAmountError):
            self.bank.deposit("ACC001", "0")
        with pytest.raises(AccountNotFoundError):
            self.bank.deposit("ACC999", "10")

        assert self.bank.get_account("ACC001").balance == Decimal('1000.00')
        assert len(self.bank.get_transactions("ACC001")) == 1

    def test_transfer_and_statement(self):
        self.bank.seed_demo_data()

        result = self.bank.transfer("ACC005", "ACC003", "2000")
        statement = self.bank.get_statement("ACC005")

        assert result.outgoing.balance_after == Decimal('10000.00')
        assert result.incoming.balance_after == Decimal('7000.00')
        assert statement.transaction_count == 2
        assert statement.total_credits == Decimal('12000.00')
        assert statement.total_debits == Decimal('2000.00')
        assert self.bank.get_total_balance() == Decimal('21500.00')

    def test_unknown_account_history(self):
        with pytest.raises(AccountNotFoundError):
            self.bank.get_transactions("ACC999")
        with pytest.raises(AccountNotFoundError):
            self.bank.get_statement("ACC999")

    def test_simulation(self):
        self.bank.seed_demo_data()

        report = self.bank.simulate_concurrent_transactions("ACC001")

        assert report.final_balance == Decimal('1600.00')
        assert report.verification_status == "PASSED"
        assert len(self.bank.get_transactions("ACC001")) == 4


class TestBankingSystemPersistence:
    """Test save and load through the facade"""

    def test_save_and_load(self, tmp_path):
        bank = BankingSystem(data_dir=str(tmp_path))
        bank.seed_demo_data()
        bank.transfer("ACC002", "ACC004", "250")
        bank.save()

        restored = BankingSystem(data_dir=str(tmp_path))
        assert restored.load() == (5, 7)

        assert restored.get_account("ACC002").balance == Decimal('1750.00')
        assert restored.get_account("ACC004").balance == Decimal('1750.00')
        assert restored.customer_manager.get_customer_count() == 2
        assert restored.get_total_balance() == bank.get_total_balance()

        account = restored.create_account(
            "Checking", "Regular", "Ann Lee", 52, "+1-555-0303", "TX", "100"
        )
        assert account.account_number == "ACC006"
        assert restored.get_transactions("ACC006")[0].transaction_id == "TXN008"

    def test_config_controls_file_names(self, tmp_path):
        config = BankAppConfig(
            data_dir=str(tmp_path), accounts_file="a.dat", transactions_file="t.dat"
        )
        bank = BankingSystem(config)
        bank.seed_demo_data()
        bank.save()

        assert (tmp_path / "a.dat").exists()
        assert (tmp_path / "t.dat").exists()
