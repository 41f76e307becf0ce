import logging
from typing import Dict, Iterable, Optional

from models import AccountSnapshot, ProcessingResult, ProcessingStats, Transaction
from settings import Settings, get_settings
from state_manager import StateManager
from transaction_processor import TransactionProcessor
from transaction_reader import read_transactions

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Replays an ordered stream of transactions against client accounts.

    Records are applied one at a time, in input order. A record that cannot be
    applied is skipped and, when diagnostics are enabled, reported on the
    logging channel with its reason. Skips never stop the run.
    """

    def __init__(self, settings: Optional[Settings] = None, diagnostics: Optional[bool] = None):
        self._settings = settings or get_settings()
        self._diagnostics = self._settings.diagnostics if diagnostics is None else diagnostics
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """Process CSV file and return final account states."""
        with open(filepath, "r", newline="") as f:
            transactions = read_transactions(
                f, scale=self._settings.amount_scale, on_reject=self._report_rejected_row
            )
            return self.process_transactions(transactions)

    def process_transactions(self, transactions: Iterable[Transaction]) -> Dict[int, AccountSnapshot]:
        """Apply every transaction in order and return snapshots keyed by client id."""
        for transaction in transactions:
            self.process_transaction(transaction)

        logger.info(
            f"Processed: {self._stats.processed}, "
            f"Skipped: {self._stats.skipped}, "
            f"Rejected rows: {self._stats.rejected_rows}"
        )
        return self._state.get_all_accounts()

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        result = self._processor.process_transaction(transaction)

        if result == ProcessingResult.SUCCESS:
            self._stats.record_success()
        else:
            self._stats.record_skip(result)
            if self._diagnostics:
                logger.warning(f"Skipped {transaction}: {result.value}")
        return result

    def get_accounts(self) -> Dict[int, AccountSnapshot]:
        return self._state.get_all_accounts()

    def _report_rejected_row(self, line_num: int, row: Dict, error: Exception) -> None:
        self._stats.record_rejected_row()
        if self._diagnostics:
            logger.warning(f"Failed to parse row at line {line_num} {row}: {error}")
