"""
Account Statement Module

Aggregates an account's ledger entries into a statement: newest-first
history, total credits, total debits and net change, plus a plain-text
rendering for the console.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from .accounts import Account
from .money import format_amount, format_signed_amount
from .transactions import Transaction, TransactionManager


RULE = "-" * 72


@dataclass
class AccountStatement:
    """Transaction history and totals for one account"""
    account_number: str
    transactions: List[Transaction] = field(default_factory=list)
    account: Optional[Account] = None

    @property
    def total_credits(self) -> Decimal:
        """Deposits and incoming transfers"""
        return sum(
            (t.amount for t in self.transactions if t.transaction_type.is_credit),
            Decimal('0.00')
        )

    @property
    def total_debits(self) -> Decimal:
        """Withdrawals and outgoing transfers"""
        return sum(
            (t.amount for t in self.transactions if t.transaction_type.is_debit),
            Decimal('0.00')
        )

    @property
    def net_change(self) -> Decimal:
        return self.total_credits - self.total_debits

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


def generate_statement(
    account_number: str,
    transaction_manager: TransactionManager,
    account: Optional[Account] = None
) -> AccountStatement:
    """Build a statement with transactions sorted newest first"""
    return AccountStatement(
        account_number=account_number,
        transactions=transaction_manager.get_transactions_by_account_sorted_by_date(account_number),
        account=account
    )


def render_statement(statement: AccountStatement) -> str:
    """Render a statement as the console's history table"""
    lines = []
    account = statement.account
    if account is not None:
        lines.append(f"Account: {account.account_number} - {account.customer.name}")
        lines.append(f"Account Type: {account.account_type.value}")
        lines.append(f"Current Balance: {format_amount(account.balance)}")
    else:
        lines.append(f"Account: {statement.account_number}")

    if not statement.transactions:
        lines.extend(["", "-" * 42, "No transactions recorded for this account.", "-" * 42])
        return "\n".join(lines)

    lines.extend([
        "",
        "TRANSACTION HISTORY",
        RULE,
        f"{'TXN ID':<8} | {'DATE/TIME':<20} | {'TYPE':<12} | {'AMOUNT':<12} | BALANCE",
        RULE,
    ])
    for t in statement.transactions:
        lines.append(
            f"{t.transaction_id:<8} | {t.timestamp:<20} | {t.transaction_type.value.upper():<12} | "
            f"{format_signed_amount(t.signed_amount):<12} | {format_amount(t.balance_after)}"
        )
    lines.extend([
        RULE,
        "",
        f"Total Transactions: {statement.transaction_count}",
        f"Total Deposits: {format_amount(statement.total_credits)}",
        f"Total Withdrawals: {format_amount(statement.total_debits)}",
        f"Net Change: {format_signed_amount(statement.net_change)}",
    ])
    return "\n".join(lines)
