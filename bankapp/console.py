"""
Console Module

Text menu for the banking system. The menu is a finite state machine:
each screen handler does its work and returns the next Screen, and run()
loops until EXIT. Input and output are injected so the console can be
driven from tests.
"""

from enum import Enum
from typing import Callable, Dict, Optional, Sequence, Union
import re

from .bank import BankingSystem
from .concurrency import create_default_operations, create_overdraft_scenario
from .customers import (
    CustomerConflictError, CustomerType, is_valid_address, is_valid_contact, is_valid_name
)
from .accounts import AccountType, CheckingAccount, SavingsAccount
from .errors import BankingError
from .logging_config import get_logger
from .money import format_amount, format_signed_amount, parse_amount
from .statements import render_statement


class Screen(Enum):
    MAIN = "main"
    MANAGE_ACCOUNTS = "manage_accounts"
    CREATE_ACCOUNT = "create_account"
    VIEW_ACCOUNTS = "view_accounts"
    TRANSACTIONS = "transactions"
    HISTORY = "history"
    PERSISTENCE = "persistence"
    SIMULATION = "simulation"
    EXIT = "exit"


BANNER = "=" * 50


class ConsoleApp:
    """
    Menu-driven front end over a BankingSystem
    """

    def __init__(
        self,
        bank: BankingSystem,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print
    ):
        self.bank = bank
        self.input_func = input_func
        self.output = output
        self.logger = get_logger("bankapp.console")
        self.handlers: Dict[Screen, Callable[[], Screen]] = {
            Screen.MAIN: self.main_menu,
            Screen.MANAGE_ACCOUNTS: self.manage_accounts,
            Screen.CREATE_ACCOUNT: self.create_account,
            Screen.VIEW_ACCOUNTS: self.view_accounts,
            Screen.TRANSACTIONS: self.transactions,
            Screen.HISTORY: self.history,
            Screen.PERSISTENCE: self.persistence,
            Screen.SIMULATION: self.simulation,
        }

    def run(self, start: Screen = Screen.MAIN) -> None:
        """Drive screens until EXIT (or until input runs out)"""
        screen = start
        try:
            while screen != Screen.EXIT:
                screen = self.handlers[screen]()
        except (EOFError, KeyboardInterrupt):
            self.output("")
        self.output("Thank you for using the Banking System. Goodbye!")

    # Input helpers

    def _ask(self, prompt: str) -> str:
        return self.input_func(prompt).strip()

    def _ask_choice(self, title: str, options: Sequence[str]) -> int:
        """Show a numbered menu and return the chosen index (1-based)"""
        self.output("")
        self.output(BANNER)
        self.output(title)
        self.output(BANNER)
        for number, label in enumerate(options, start=1):
            self.output(f"{number}. {label}")
        while True:
            answer = self._ask(f"Enter your choice (1-{len(options)}): ")
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return int(answer)
            self.output("Invalid choice. Please try again.")

    def _ask_matching(self, prompt: str, validator: Callable[[str], bool], hint: str) -> str:
        while True:
            answer = self._ask(prompt)
            if validator(answer):
                return answer
            self.output(hint)

    def _ask_int(self, prompt: str, minimum: int = 1, maximum: Optional[int] = None) -> int:
        while True:
            answer = self._ask(prompt)
            if re.match(r"^\d+$", answer):
                value = int(answer)
                if value >= minimum and (maximum is None or value <= maximum):
                    return value
            self.output("Please enter a valid whole number.")

    def _ask_amount(self, prompt: str):
        while True:
            answer = self._ask(prompt)
            try:
                return parse_amount(answer)
            except ValueError:
                self.output("Please enter a valid amount, e.g. 2694, 2,694 or $2,694.")

    def _ask_account_number(self, prompt: str = "Enter account number: ") -> str:
        return self._ask(prompt).upper()

    def _error(self, error: Union[BankingError, CustomerConflictError]) -> None:
        self.output(f"Error: {error.reason}")

    # Screens

    def main_menu(self) -> Screen:
        choice = self._ask_choice("BANKING SYSTEM - MAIN MENU", [
            "Manage Accounts",
            "Perform Transactions",
            "View Transaction History",
            "Save / Load Data",
            "Concurrent Transaction Simulation",
            "Exit",
        ])
        return [
            Screen.MANAGE_ACCOUNTS, Screen.TRANSACTIONS, Screen.HISTORY,
            Screen.PERSISTENCE, Screen.SIMULATION, Screen.EXIT
        ][choice - 1]

    def manage_accounts(self) -> Screen:
        choice = self._ask_choice("MANAGE ACCOUNTS", [
            "Create Account",
            "View All Accounts",
            "Back to Main Menu",
        ])
        return [Screen.CREATE_ACCOUNT, Screen.VIEW_ACCOUNTS, Screen.MAIN][choice - 1]

    def create_account(self) -> Screen:
        customer_choice = self._ask_choice("CUSTOMER TYPE", ["Regular", "Premium"])
        customer_type = [CustomerType.REGULAR, CustomerType.PREMIUM][customer_choice - 1]

        name = self._ask_matching(
            "Enter customer name: ", is_valid_name,
            "Name must contain letters only (spaces, hyphens and apostrophes allowed)."
        )
        age = self._ask_int("Enter customer age: ", minimum=1, maximum=150)
        contact = self._ask_matching(
            "Enter contact number (+1-XXX-XXXX): ", is_valid_contact,
            "Contact number must look like +1-555-1234."
        )
        address = self._ask_matching(
            "Enter address: ", is_valid_address,
            "Address may contain letters, digits, spaces and , . - # /"
        )

        account_choice = self._ask_choice("ACCOUNT TYPE", ["Savings", "Checking"])
        account_type = [AccountType.SAVINGS, AccountType.CHECKING][account_choice - 1]
        deposit = self._ask_amount("Enter initial deposit: ")

        try:
            account = self.bank.create_account(
                account_type, customer_type, name, age, contact, address, deposit
            )
        except (BankingError, CustomerConflictError) as e:
            self._error(e)
            return Screen.MANAGE_ACCOUNTS

        self.output("")
        self.output("Account created successfully!")
        self.output(f"Account Number: {account.account_number}")
        self.output(f"Customer: {account.customer.describe()}")
        self.output(f"Balance: {format_amount(account.balance)}")
        return Screen.MANAGE_ACCOUNTS

    def view_accounts(self) -> Screen:
        accounts = self.bank.list_accounts()
        self.output("")
        if not accounts:
            self.output("No accounts found.")
            return Screen.MANAGE_ACCOUNTS

        self.output(
            f"{'ACCOUNT':<8} | {'TYPE':<9} | {'CUSTOMER':<20} | {'TIER':<8} | "
            f"{'BALANCE':>14} | DETAILS"
        )
        self.output("-" * 90)
        for account in accounts:
            self.output(
                f"{account.account_number:<8} | {account.account_type.value:<9} | "
                f"{account.customer.name:<20} | {account.customer.customer_type.value:<8} | "
                f"{format_amount(account.balance):>14} | {self._variant_details(account)}"
            )
        self.output("-" * 90)
        self.output(f"Total accounts: {len(accounts)}")
        self.output(f"Total balance: {format_amount(self.bank.get_total_balance())}")
        return Screen.MANAGE_ACCOUNTS

    @staticmethod
    def _variant_details(account) -> str:
        if isinstance(account, SavingsAccount):
            return (
                f"Interest {account.interest_rate}%, "
                f"min balance {format_amount(account.minimum_balance)}"
            )
        if isinstance(account, CheckingAccount):
            return (
                f"Overdraft {format_amount(account.overdraft_limit)}, "
                f"fee {format_amount(account.effective_monthly_fee)}"
            )
        return ""

    def transactions(self) -> Screen:
        choice = self._ask_choice("PERFORM TRANSACTIONS", [
            "Deposit",
            "Withdraw",
            "Transfer",
            "Back to Main Menu",
        ])
        if choice == 4:
            return Screen.MAIN

        try:
            if choice == 1:
                number = self._ask_account_number()
                amount = self._ask_amount("Enter amount to deposit: ")
                transaction = self.bank.deposit(number, amount)
                self.output(
                    f"Deposit successful. Transaction {transaction.transaction_id}. "
                    f"New balance: {format_amount(transaction.balance_after)}"
                )
            elif choice == 2:
                number = self._ask_account_number()
                amount = self._ask_amount("Enter amount to withdraw: ")
                transaction = self.bank.withdraw(number, amount)
                self.output(
                    f"Withdrawal successful. Transaction {transaction.transaction_id}. "
                    f"New balance: {format_amount(transaction.balance_after)}"
                )
            else:
                source = self._ask_account_number("Enter source account number: ")
                destination = self._ask_account_number("Enter destination account number: ")
                amount = self._ask_amount("Enter amount to transfer: ")
                result = self.bank.transfer(source, destination, amount)
                self.output(
                    f"Transfer of {format_amount(result.amount)} from {result.from_account} "
                    f"to {result.to_account} successful."
                )
                self.output(
                    f"{result.from_account} balance: {format_amount(result.outgoing.balance_after)} | "
                    f"{result.to_account} balance: {format_amount(result.incoming.balance_after)}"
                )
        except BankingError as e:
            self._error(e)
        return Screen.TRANSACTIONS

    def history(self) -> Screen:
        number = self._ask_account_number()
        try:
            statement = self.bank.get_statement(number)
        except BankingError as e:
            self._error(e)
            return Screen.MAIN
        self.output("")
        self.output(render_statement(statement))
        return Screen.MAIN

    def persistence(self) -> Screen:
        choice = self._ask_choice("SAVE / LOAD DATA", [
            "Save Data",
            "Load Data",
            "Back to Main Menu",
        ])
        if choice == 3:
            return Screen.MAIN

        try:
            if choice == 1:
                self.bank.save()
                self.output(f"Data saved to {self.bank.storage.data_dir}")
            else:
                accounts, transactions = self.bank.load()
                self.output(f"Loaded {accounts} accounts and {transactions} transactions.")
        except (OSError, ValueError) as e:
            self.logger.error(f"Persistence operation failed: {e}")
            self.output(f"Error: {e}")
        return Screen.PERSISTENCE

    def simulation(self) -> Screen:
        number = self._ask_account_number()
        choice = self._ask_choice("SIMULATION SCENARIO", [
            "Deposits $500 and $300, withdrawal $200",
            "Deposits $200 and $100, withdrawal $10,000",
        ])
        operations = create_default_operations() if choice == 1 else create_overdraft_scenario()

        try:
            report = self.bank.simulate_concurrent_transactions(number, operations)
        except BankingError as e:
            self._error(e)
            return Screen.MAIN

        self.output("")
        self.output(BANNER)
        self.output(f"CONCURRENT SIMULATION - {report.account_number}")
        self.output(BANNER)
        for outcome in report.outcomes:
            operation = outcome.operation
            label = operation.transaction_type.value
            signed = operation.amount if operation.transaction_type.is_credit else -operation.amount
            line = (
                f"Worker {operation.worker_number}: {label} "
                f"{format_signed_amount(signed)} -> {outcome.status.value}"
            )
            if outcome.message:
                line += f" ({outcome.message})"
            self.output(line)
        self.output("")
        for line in report.summary_lines():
            self.output(line)
        return Screen.MAIN

