import logging
from typing import Dict, Iterable, Optional

from account_store import AccountStore
from models import Balances, ProcessingResult, ProcessingStats, RejectionReason, Transaction
from normalizer import parse_row, read_rows
from processor import TransactionProcessor
from settings import LedgerSettings

logger = logging.getLogger(__name__)


class LedgerEngine:
    """
    Replays a transaction stream, strictly in arrival order, into per-client balances.
    Later disputes depend on the exact history left by earlier transactions,
    so transactions are never reordered.
    """

    def __init__(self, store: Optional[AccountStore] = None, settings: Optional[LedgerSettings] = None):
        self._settings = settings or LedgerSettings()
        self._store = store if store is not None else AccountStore()
        self._processor = TransactionProcessor(self._store, self._settings.dispute_policy)
        self._stats = ProcessingStats()

    @property
    def store(self) -> AccountStore:
        return self._store

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """Apply one transaction. Rejections are counted, never raised."""
        result = self._processor.process_transaction(transaction)
        if result.applied:
            self._stats.record_success()
        else:
            self._stats.record_rejection(result.reason)
            logger.debug(f"Rejected {transaction!r}: {result.reason.value}")
        return result

    def snapshot(self) -> Dict[int, Balances]:
        """Current balances of every account, keyed by client id."""
        return {client_id: account.balances() for client_id, account in self._store.get_all_accounts().items()}

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, Balances]:
        """Apply transactions in order and return the final balances."""
        for transaction in transactions:
            self.apply(transaction)
        return self.snapshot()

    def process_file(self, filepath: str) -> Dict[int, Balances]:
        """
        Process CSV file and return final account states.
        Raises a LedgerError subclass if the file cannot be read or a row is malformed.
        """
        logger.info(f"Replaying transactions from {filepath}")

        for line, row in read_rows(filepath):
            transaction = parse_row(row, line)
            if transaction is None:
                self._stats.record_rejection(RejectionReason.UNKNOWN_TYPE)
                continue
            self.apply(transaction)

        logger.info(f"Replay complete: {self._stats.processed} applied, {self._stats.rejected} rejected")
        for reason, count in self._stats.rejections.items():
            logger.info(f"  {reason.value}: {count}")

        return self.snapshot()
