import logging
from decimal import localcontext
from typing import Optional, Tuple

from account_store import AccountStore
from models import (
    ClientAccount,
    DisputeStatus,
    HistoryEntry,
    LEDGER_CONTEXT,
    ProcessingResult,
    RejectionReason,
    Transaction,
    TransactionType,
)
from settings import DisputePolicy

logger = logging.getLogger(__name__)

DISPUTABLE_STATUSES = (DisputeStatus.POSTED, DisputeStatus.RESOLVED)


class TransactionProcessor:
    """
    Applies one transaction at a time to the accounts in an AccountStore.
    A rejected transaction leaves the account and its history untouched.
    """

    def __init__(self, store: AccountStore, policy: DisputePolicy = DisputePolicy.PERMISSIVE):
        self._store = store
        self._policy = policy

    @property
    def strict(self) -> bool:
        return self._policy is DisputePolicy.STRICT

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            ProcessingResult.APPLIED if the balances changed and the transaction
            was recorded, otherwise a rejection carrying the failed precondition.
        """
        account = self._store.get_or_create_account(transaction.client_id)

        if account.locked:
            logger.warning(f"{transaction!r}: account {account.client_id} is locked")
            return ProcessingResult.rejected(RejectionReason.ACCOUNT_LOCKED)

        with localcontext(LEDGER_CONTEXT):
            match transaction.transaction_type:
                case TransactionType.DEPOSIT:
                    return self._handle_deposit(account, transaction)
                case TransactionType.WITHDRAWAL:
                    return self._handle_withdrawal(account, transaction)
                case TransactionType.DISPUTE:
                    return self._handle_dispute(account, transaction)
                case TransactionType.RESOLVE:
                    return self._handle_resolve(account, transaction)
                case TransactionType.CHARGEBACK:
                    return self._handle_chargeback(account, transaction)
                case _:
                    return ProcessingResult.rejected(RejectionReason.UNKNOWN_TYPE)

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        rejection = self._check_new_funds(account, transaction)
        if rejection is not None:
            return rejection

        account.credit(transaction.amount)
        account.record(transaction)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        rejection = self._check_new_funds(account, transaction)
        if rejection is not None:
            return rejection

        if transaction.amount > account.available:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: {transaction.amount} exceeds available {account.available}")
            return ProcessingResult.rejected(RejectionReason.INSUFFICIENT_FUNDS)

        account.debit(transaction.amount)
        account.record(transaction)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original, rejection = self._find_referenced(account, transaction)
        if rejection is not None:
            return rejection

        if self.strict:
            # TODO: withdrawal disputes need a recall flow, the funds have already left the account
            if original.transaction.transaction_type is not TransactionType.DEPOSIT:
                logger.warning(f"Dispute for tx {transaction.transaction_id}: only deposits can be disputed")
                return ProcessingResult.rejected(RejectionReason.NOT_DISPUTABLE)
            if original.status not in DISPUTABLE_STATUSES:
                logger.warning(f"Dispute for tx {transaction.transaction_id}: transaction is {original.status.value}")
                return ProcessingResult.rejected(RejectionReason.INVALID_DISPUTE_STATE)

        amount = original.transaction.amount
        if amount > account.available:
            logger.warning(f"Dispute for tx {transaction.transaction_id}: {amount} exceeds available {account.available}")
            return ProcessingResult.rejected(RejectionReason.INSUFFICIENT_FUNDS)

        account.hold(amount)
        account.record(transaction)
        original.status = DisputeStatus.DISPUTED
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original, rejection = self._find_disputed(account, transaction)
        if rejection is not None:
            return rejection

        account.release_hold(original.transaction.amount)
        account.record(transaction)
        original.status = DisputeStatus.RESOLVED
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        original, rejection = self._find_disputed(account, transaction)
        if rejection is not None:
            return rejection

        account.remove_held(original.transaction.amount)
        account.locked = True
        account.record(transaction)
        original.status = DisputeStatus.CHARGED_BACK
        return ProcessingResult.APPLIED

    def _check_new_funds(self, account: ClientAccount, transaction: Transaction) -> Optional[ProcessingResult]:
        """Preconditions shared by deposits and withdrawals."""
        kind = transaction.transaction_type.value.capitalize()
        if transaction.amount <= 0:
            logger.warning(f"{kind} tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.rejected(RejectionReason.NON_POSITIVE_AMOUNT)

        if self.strict and account.find_transaction(transaction.transaction_id) is not None:
            logger.warning(f"{kind} tx {transaction.transaction_id}: already applied to client {account.client_id}")
            return ProcessingResult.rejected(RejectionReason.DUPLICATE_TRANSACTION)
        return None

    def _find_referenced(
        self, account: ClientAccount, transaction: Transaction
    ) -> Tuple[Optional[HistoryEntry], Optional[ProcessingResult]]:
        """Resolve the deposit or withdrawal a dispute-family transaction points at."""
        kind = transaction.transaction_type.value.capitalize()
        original = account.find_transaction(transaction.transaction_id)

        if original is None:
            logger.info(f"{kind} for tx {transaction.transaction_id}: no such transaction for client {account.client_id}")
            return None, ProcessingResult.rejected(RejectionReason.TRANSACTION_NOT_FOUND)

        if original.transaction.amount <= 0:
            logger.warning(f"{kind} for tx {transaction.transaction_id}: referenced amount {original.transaction.amount} is not positive")
            return None, ProcessingResult.rejected(RejectionReason.NON_POSITIVE_AMOUNT)

        return original, None

    def _find_disputed(
        self, account: ClientAccount, transaction: Transaction
    ) -> Tuple[Optional[HistoryEntry], Optional[ProcessingResult]]:
        """Lookup and held-funds checks shared by resolve and chargeback."""
        original, rejection = self._find_referenced(account, transaction)
        if rejection is not None:
            return None, rejection

        kind = transaction.transaction_type.value.capitalize()
        if self.strict and original.status is not DisputeStatus.DISPUTED:
            logger.warning(f"{kind} for tx {transaction.transaction_id}: transaction is not under dispute ({original.status.value})")
            return None, ProcessingResult.rejected(RejectionReason.INVALID_DISPUTE_STATE)

        amount = original.transaction.amount
        if amount > account.held:
            logger.warning(f"{kind} for tx {transaction.transaction_id}: {amount} exceeds held {account.held}")
            return None, ProcessingResult.rejected(RejectionReason.INSUFFICIENT_HELD)

        return original, None
