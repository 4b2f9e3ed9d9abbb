"""
Concurrent Transaction Simulation Module

Runs a batch of deposits and withdrawals against one account on worker
threads. Deposits run first as one phase; withdrawals start only after the
deposit phase has been waited on, so withdrawals that rely on pending
deposits see them. Inside a phase each operation is a single
Account.apply call, which holds the account lock across the balance
change and the ledger append.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import threading

from .accounts import Account, AccountManager
from .config import get_config
from .logging_config import get_logger, log_action
from .money import AmountLike, format_amount, to_amount
from .transactions import Transaction, TransactionManager, TransactionType


SIMULATED_TYPES = (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


@dataclass(frozen=True)
class TransactionOperation:
    """One deposit or withdrawal to run on a worker"""
    transaction_type: TransactionType
    amount: Decimal
    worker_number: int = 0

    def __post_init__(self):
        if not isinstance(self.transaction_type, TransactionType):
            object.__setattr__(
                self, 'transaction_type', TransactionType.from_label(self.transaction_type)
            )
        if self.transaction_type not in SIMULATED_TYPES:
            raise ValueError(
                f"Only deposits and withdrawals can be simulated, got {self.transaction_type.value}"
            )
        object.__setattr__(self, 'amount', to_amount(self.amount))

    @classmethod
    def deposit(cls, amount: AmountLike, worker_number: int = 0) -> 'TransactionOperation':
        return cls(TransactionType.DEPOSIT, amount, worker_number)

    @classmethod
    def withdrawal(cls, amount: AmountLike, worker_number: int = 0) -> 'TransactionOperation':
        return cls(TransactionType.WITHDRAWAL, amount, worker_number)


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    UNFINISHED = "unfinished"  # Still running when the phase wait budget ran out


@dataclass
class OperationOutcome:
    """What happened to one operation"""
    operation: TransactionOperation
    status: OutcomeStatus
    balance: Optional[Decimal] = None
    message: Optional[str] = None
    transaction: Optional[Transaction] = None
    thread_name: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED


@dataclass
class SimulationReport:
    """
    Result of a simulation run plus a balance verification:
    expected = initial + succeeded deposits - succeeded withdrawals.
    """
    account_number: str
    initial_balance: Decimal
    balance_after_deposits: Decimal
    final_balance: Decimal
    outcomes: List[OperationOutcome] = field(default_factory=list)

    def _with_status(self, status: OutcomeStatus) -> List[OperationOutcome]:
        return [o for o in self.outcomes if o.status == status]

    @property
    def succeeded(self) -> List[OperationOutcome]:
        return self._with_status(OutcomeStatus.SUCCEEDED)

    @property
    def failed(self) -> List[OperationOutcome]:
        return self._with_status(OutcomeStatus.FAILED)

    @property
    def unfinished(self) -> List[OperationOutcome]:
        return self._with_status(OutcomeStatus.UNFINISHED)

    @property
    def expected_balance(self) -> Decimal:
        expected = self.initial_balance
        for outcome in self.succeeded:
            if outcome.operation.transaction_type == TransactionType.DEPOSIT:
                expected += outcome.operation.amount
            else:
                expected -= outcome.operation.amount
        return expected

    @property
    def verification_passed(self) -> bool:
        """Final balance matches the expected one and every operation finished"""
        return not self.unfinished and self.final_balance == self.expected_balance

    @property
    def verification_status(self) -> str:
        return "PASSED" if self.verification_passed else "FAILED"

    def summary_lines(self) -> List[str]:
        return [
            f"Initial Balance: {format_amount(self.initial_balance)}",
            f"Balance After Deposits: {format_amount(self.balance_after_deposits)}",
            f"Final Balance: {format_amount(self.final_balance)}",
            f"Expected Balance: {format_amount(self.expected_balance)}",
            f"Succeeded: {len(self.succeeded)} | Failed: {len(self.failed)} | "
            f"Unfinished: {len(self.unfinished)}",
            f"Balance Verification: {self.verification_status}",
        ]


class ConcurrentTransactionSimulator:
    """
    Executes a deposit phase then a withdrawal phase against one account
    using a thread pool sized to each phase
    """

    def __init__(
        self,
        account_manager: AccountManager,
        transaction_manager: TransactionManager,
        timeout: Optional[float] = None
    ):
        self.account_manager = account_manager
        self.transaction_manager = transaction_manager
        if timeout is None:
            timeout = get_config().simulation_timeout_seconds
        self.timeout = timeout
        self.logger = get_logger("bankapp.concurrency")

    def simulate(
        self,
        account_number: str,
        operations: Sequence[TransactionOperation]
    ) -> SimulationReport:
        """
        Run the operations and verify the final balance

        Args:
            account_number: Target account
            operations: Deposits and withdrawals, in any order

        Returns:
            SimulationReport; failed operations are reported, never raised

        Raises:
            AccountNotFoundError: If the account does not exist
        """
        account = self.account_manager.get_account(account_number)
        initial_balance = account.balance

        indexed = list(enumerate(operations))
        deposits = [(i, op) for i, op in indexed if op.transaction_type == TransactionType.DEPOSIT]
        withdrawals = [(i, op) for i, op in indexed if op.transaction_type == TransactionType.WITHDRAWAL]

        outcomes: Dict[int, OperationOutcome] = {}

        self._run_phase("deposit", account, deposits, outcomes)
        balance_after_deposits = account.balance
        self._run_phase("withdrawal", account, withdrawals, outcomes)

        report = SimulationReport(
            account_number=account_number,
            initial_balance=initial_balance,
            balance_after_deposits=balance_after_deposits,
            final_balance=account.balance,
            outcomes=[outcomes[i] for i in sorted(outcomes)]
        )

        log_action(
            self.logger, "info" if report.verification_passed else "error",
            f"Simulation finished for {account_number}: verification {report.verification_status}",
            action="simulate", resource=f"account:{account_number}",
            extra={
                "initial_balance": str(report.initial_balance),
                "final_balance": str(report.final_balance),
                "expected_balance": str(report.expected_balance),
                "succeeded": len(report.succeeded),
                "failed": len(report.failed),
                "unfinished": len(report.unfinished)
            }
        )
        return report

    def _run_phase(
        self,
        phase: str,
        account: Account,
        operations: List[Tuple[int, TransactionOperation]],
        outcomes: Dict[int, OperationOutcome]
    ) -> None:
        """Run one phase and wait for it (bounded by the timeout)"""
        if not operations:
            return

        executor = ThreadPoolExecutor(
            max_workers=len(operations), thread_name_prefix=f"{phase}-worker"
        )
        futures: Dict[Future, Tuple[int, TransactionOperation]] = {}
        try:
            for index, operation in operations:
                future = executor.submit(self._execute, account, operation)
                futures[future] = (index, operation)

            done, not_done = wait(futures, timeout=self.timeout)

            for future in done:
                index, operation = futures[future]
                error = future.exception()
                if error is not None:
                    self.logger.error(f"Unexpected error in {phase} operation: {error}")
                    outcomes[index] = OperationOutcome(
                        operation=operation, status=OutcomeStatus.FAILED, message=str(error)
                    )
                else:
                    outcomes[index] = future.result()

            for future in not_done:
                index, operation = futures[future]
                future.cancel()
                self.logger.warning(
                    f"{phase.capitalize()} of {format_amount(operation.amount)} on "
                    f"{account.account_number} did not finish within {self.timeout}s"
                )
                outcomes[index] = OperationOutcome(
                    operation=operation, status=OutcomeStatus.UNFINISHED,
                    message=f"Did not finish within {self.timeout} seconds"
                )
        finally:
            # Stragglers keep running in the background; the batch moves on
            executor.shutdown(wait=False, cancel_futures=True)

    def _execute(self, account: Account, operation: TransactionOperation) -> OperationOutcome:
        thread_name = threading.current_thread().name
        if operation.transaction_type == TransactionType.DEPOSIT:
            self.logger.info(
                f"{thread_name}: Depositing {format_amount(operation.amount)} to {account.account_number}"
            )
        else:
            self.logger.info(
                f"{thread_name}: Withdrawing {format_amount(operation.amount)} from {account.account_number}"
            )

        result = account.apply(
            operation.transaction_type, operation.amount, ledger=self.transaction_manager
        )

        if not result:
            log_action(
                self.logger, "warning", f"Error in {thread_name}: {result.message}",
                action=operation.transaction_type.value.lower(),
                resource=f"account:{account.account_number}",
                extra={"amount": str(operation.amount), "error_kind": result.error_kind.value}
            )
            return OperationOutcome(
                operation=operation, status=OutcomeStatus.FAILED, balance=result.balance,
                message=result.message, thread_name=thread_name
            )

        return OperationOutcome(
            operation=operation, status=OutcomeStatus.SUCCEEDED, balance=result.balance,
            transaction=result.transaction, thread_name=thread_name
        )


def create_default_operations() -> List[TransactionOperation]:
    """Two deposits funding one withdrawal"""
    return [
        TransactionOperation.deposit("500", 1),
        TransactionOperation.deposit("300", 2),
        TransactionOperation.withdrawal("200", 3),
    ]


def create_overdraft_scenario() -> List[TransactionOperation]:
    """Deposits followed by a withdrawal far beyond any overdraft limit"""
    return [
        TransactionOperation.deposit("200", 1),
        TransactionOperation.deposit("100", 2),
        TransactionOperation.withdrawal("10000", 3),
    ]
