"""
Transfer Module

Moves money between two accounts as one logical operation: a withdrawal
from the source, a deposit into the destination and two correlated ledger
entries (Transfer Out, Transfer In).
"""

from contextlib import ExitStack
from dataclasses import dataclass
from decimal import Decimal
import uuid

from .accounts import AccountManager, coerce_amount
from .errors import BankingError, InvalidAmountError
from .logging_config import get_logger, log_action
from .money import AmountLike
from .transactions import Transaction, TransactionManager, TransactionType


@dataclass(frozen=True)
class TransferResult:
    """Both ledger entries written by one transfer"""
    transfer_id: str
    amount: Decimal
    outgoing: Transaction
    incoming: Transaction

    @property
    def from_account(self) -> str:
        return self.outgoing.account_number

    @property
    def to_account(self) -> str:
        return self.incoming.account_number


class TransferService:
    """
    Orchestrates transfers between registered accounts
    """

    def __init__(self, account_manager: AccountManager, transaction_manager: TransactionManager):
        self.account_manager = account_manager
        self.transaction_manager = transaction_manager
        self.logger = get_logger("bankapp.transfers")

    def transfer(self, from_account_number: str, to_account_number: str,
                 amount: AmountLike) -> TransferResult:
        """
        Transfer money from one account to another.

        Checks run in a fixed order and the first failure is raised:
        amount, source account, destination account, same account, then
        the source's withdrawal floor. Nothing is mutated or recorded when
        any check fails.

        Args:
            from_account_number: Account to debit
            to_account_number: Account to credit
            amount: Positive amount to move

        Returns:
            TransferResult with both ledger entries

        Raises:
            InvalidAmountError: Non-positive amount or same account
            AccountNotFoundError: Either account is unknown
            InsufficientFundsError: Source would drop below its floor
        """
        value = coerce_amount(amount, "Transfer")

        from_account = self.account_manager.get_account(from_account_number)
        to_account = self.account_manager.get_account(to_account_number)

        if from_account_number == to_account_number:
            raise InvalidAmountError("Cannot transfer to the same account.")

        transfer_id = str(uuid.uuid4())

        # Lock both accounts in account-number order to avoid deadlocks
        # between opposite-direction transfers
        ordered = sorted((from_account, to_account), key=lambda a: a.account_number)
        with ExitStack() as stack:
            for account in ordered:
                stack.enter_context(account.locked())

            try:
                # Both ledger legs are reserved before either balance moves
                reservation = stack.enter_context(self.transaction_manager.reserve(2))
                from_balance = from_account.withdraw(value)
            except BankingError as e:
                log_action(
                    self.logger, "warning", f"Transfer rejected: {e.reason}",
                    action="transfer", resource=f"account:{from_account_number}",
                    extra={"to_account": to_account_number, "amount": str(value)}
                )
                raise

            try:
                to_balance = to_account.deposit(value)
            except BankingError:
                # Compensate the withdrawal before propagating
                from_account.deposit(value)
                raise

            outgoing = self.transaction_manager.record(
                from_account_number, TransactionType.TRANSFER_OUT, value,
                from_balance, transfer_id=transfer_id, reservation=reservation
            )
            incoming = self.transaction_manager.record(
                to_account_number, TransactionType.TRANSFER_IN, value,
                to_balance, transfer_id=transfer_id, reservation=reservation
            )

        log_action(
            self.logger, "info", f"Transfer completed: {from_account_number} -> {to_account_number}",
            action="transfer", resource=f"account:{from_account_number}",
            extra={
                "transfer_id": transfer_id,
                "to_account": to_account_number,
                "amount": str(value),
                "from_balance": str(from_balance),
                "to_balance": str(to_balance)
            }
        )

        return TransferResult(
            transfer_id=transfer_id,
            amount=value,
            outgoing=outgoing,
            incoming=incoming
        )
