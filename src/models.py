from collections import Counter
from dataclasses import dataclass, field
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow, localcontext
from enum import Enum
from typing import ClassVar, Dict, List, Optional

AMOUNT_QUANTUM = Decimal("0.0001")
ZERO = Decimal("0.0000")
MAX_AMOUNT = Decimal("1e28")

# Balances are sums of amounts no larger than MAX_AMOUNT, so 64 digits keep every
# result exact. Inexact is trapped: a result that would need rounding raises instead.
LEDGER_CONTEXT = Context(prec=64, traps=[InvalidOperation, DivisionByZero, Overflow, Inexact])


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


class DisputeStatus(Enum):
    POSTED = "posted"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


class RejectionReason(Enum):
    UNKNOWN_TYPE = "unknown_type"
    ACCOUNT_LOCKED = "account_locked"
    NON_POSITIVE_AMOUNT = "non_positive_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_HELD = "insufficient_held"
    TRANSACTION_NOT_FOUND = "transaction_not_found"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    NOT_DISPUTABLE = "not_disputable"
    INVALID_DISPUTE_STATE = "invalid_dispute_state"


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of a single transition: applied, or rejected with a reason."""

    reason: Optional[RejectionReason] = None

    APPLIED: ClassVar["ProcessingResult"]

    @property
    def applied(self) -> bool:
        return self.reason is None

    @classmethod
    def rejected(cls, reason: RejectionReason) -> "ProcessingResult":
        return cls(reason=reason)


ProcessingResult.APPLIED = ProcessingResult()


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Decimal = ZERO

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class HistoryEntry:
    """An applied transaction and the dispute status of the funds it moved."""

    transaction: Transaction
    status: DisputeStatus = DisputeStatus.POSTED


@dataclass(frozen=True)
class Balances:
    client: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = ZERO
    held: Decimal = ZERO
    locked: bool = False
    history: List[HistoryEntry] = field(default_factory=list, repr=False)

    # First deposit/withdrawal entry per transaction id, kept in step with history.
    _index: Dict[int, HistoryEntry] = field(default_factory=dict, repr=False, compare=False)

    @property
    def total(self) -> Decimal:
        with localcontext(LEDGER_CONTEXT):
            return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        self.held -= amount

    def record(self, transaction: Transaction) -> HistoryEntry:
        """Append an applied transaction to the history."""
        entry = HistoryEntry(transaction)
        self.history.append(entry)
        if transaction.transaction_type in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL):
            self._index.setdefault(transaction.transaction_id, entry)
        return entry

    def find_transaction(self, transaction_id: int) -> Optional[HistoryEntry]:
        """Look up the deposit or withdrawal this account applied under transaction_id."""
        return self._index.get(transaction_id)

    def balances(self) -> Balances:
        return Balances(
            client=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class ProcessingStats:
    """Counters for applied and rejected transactions."""

    def __init__(self):
        self.processed = 0
        self.rejected = 0
        self.rejections: Counter = Counter()

    def record_success(self):
        self.processed += 1

    def record_rejection(self, reason: RejectionReason):
        self.rejected += 1
        self.rejections[reason] += 1

    def __repr__(self) -> str:
        return f"ProcessingStats(processed={self.processed}, rejected={self.rejected})"
