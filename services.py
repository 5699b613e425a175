from decimal import Decimal
from typing import Iterable, Iterator, Optional
import structlog

from errors import (
    AccountLockedError,
    AccountNotFoundError,
    AmountNotSpecifiedError,
    DuplicateTransactionError,
    InsufficientFundsError,
    ProcessingError,
    TransactionAlreadyDisputedError,
    TransactionNotDisputedError,
    TransactionNotFoundError,
)
from models import (
    Account,
    AccountSnapshot,
    RejectedRecord,
    ReplaySummary,
    StoredTransaction,
    TransactionRecord,
    TransactionType,
)
from repositories import (
    AccountRepository,
    AlreadyExistsError,
    InMemoryAccountRepository,
    InMemoryLockRepository,
    InMemoryTransactionRepository,
    LockRepository,
    TransactionRepository,
)

# Configure structured logging
logger = structlog.get_logger()


class TransactionEngine:
    """Applies transaction records, one at a time and in order, to the ledgers it owns.

    Every handler checks all of its preconditions before touching a store, so a
    rejected record leaves accounts, transactions and locks exactly as they were.
    """

    def __init__(
        self,
        account_repo: Optional[AccountRepository] = None,
        transaction_repo: Optional[TransactionRepository] = None,
        lock_repo: Optional[LockRepository] = None,
    ):
        self.account_repo = account_repo or InMemoryAccountRepository()
        self.transaction_repo = transaction_repo or InMemoryTransactionRepository()
        self.lock_repo = lock_repo or InMemoryLockRepository()

    def process(self, record: TransactionRecord) -> None:
        """Apply a single record. Raises a ProcessingError subclass on rejection."""

        logger.debug(
            "Processing transaction",
            type=record.type.value,
            client_id=record.client,
            tx_id=record.tx,
            amount=str(record.amount) if record.amount is not None else None
        )

        if self.lock_repo.is_locked(record.client):
            raise AccountLockedError(record.client)

        if record.type == TransactionType.deposit:
            self._process_deposit(record)
        elif record.type == TransactionType.withdrawal:
            self._process_withdrawal(record)
        elif record.type == TransactionType.dispute:
            self._process_dispute(record)
        elif record.type == TransactionType.resolve:
            self._process_resolve(record)
        elif record.type == TransactionType.chargeback:
            self._process_chargeback(record)
        else:
            raise ValueError(f"Unsupported transaction type: {record.type}")

    def replay(self, records: Iterable[TransactionRecord]) -> ReplaySummary:
        """Process records in order, reporting rejections without stopping."""
        summary = ReplaySummary()

        for index, record in enumerate(records):
            summary.processed += 1
            try:
                self.process(record)
            except ProcessingError as e:
                logger.warning(
                    "Transaction rejected",
                    error_code=e.code,
                    detail=str(e),
                    type=record.type.value,
                    client_id=record.client,
                    tx_id=record.tx
                )
                summary.rejected += 1
                summary.errors.append(RejectedRecord(
                    index=index,
                    type=record.type,
                    client=record.client,
                    tx=record.tx,
                    code=e.code,
                    detail=str(e)
                ))

        logger.info(
            "Replay completed",
            processed=summary.processed,
            rejected=summary.rejected,
            accounts=self.account_repo.count(),
            locked_accounts=self.lock_repo.count()
        )
        return summary

    def is_locked(self, client_id: int) -> bool:
        return self.lock_repo.is_locked(client_id)

    def snapshots(self, sort: bool = True, places: int = 4) -> Iterator[AccountSnapshot]:
        """Yield the rendered state of every account."""
        accounts = self.account_repo.all_accounts()
        if sort:
            accounts = iter(sorted(accounts, key=lambda item: item[0]))

        for client_id, account in accounts:
            yield AccountSnapshot.from_account(
                client_id, account, self.lock_repo.is_locked(client_id), places
            )

    def _require_amount(self, record: TransactionRecord) -> Decimal:
        if record.amount is None:
            raise AmountNotSpecifiedError(record.tx)
        return record.amount

    def _require_unused(self, tx_id: int) -> None:
        if self.transaction_repo.lookup(tx_id) is not None:
            raise DuplicateTransactionError(tx_id)

    def _require_account(self, client_id: int) -> Account:
        account = self.account_repo.lookup(client_id)
        if account is None:
            raise AccountNotFoundError(client_id)
        return account

    def _require_disputed(self, tx_id: int) -> StoredTransaction:
        # a missing transaction is reported the same way as an undisputed one
        tx = self.transaction_repo.lookup(tx_id)
        if tx is None or not tx.disputed:
            raise TransactionNotDisputedError(tx_id)
        return tx

    def _insert_transaction(self, tx_id: int, amount: Decimal) -> None:
        try:
            self.transaction_repo.insert(tx_id, amount)
        except AlreadyExistsError as e:
            raise DuplicateTransactionError(tx_id) from e

    def _process_deposit(self, record: TransactionRecord) -> None:
        amount = self._require_amount(record)
        self._require_unused(record.tx)

        account = self.account_repo.lookup(record.client) or Account()
        account.available += amount

        self._insert_transaction(record.tx, amount)
        self.account_repo.upsert(record.client, account)

    def _process_withdrawal(self, record: TransactionRecord) -> None:
        amount = self._require_amount(record)
        self._require_unused(record.tx)
        account = self._require_account(record.client)

        if account.available < amount:
            raise InsufficientFundsError(record.client)

        account.available -= amount

        self._insert_transaction(record.tx, amount)
        self.account_repo.upsert(record.client, account)

    def _process_dispute(self, record: TransactionRecord) -> None:
        tx = self.transaction_repo.lookup(record.tx)
        if tx is None:
            raise TransactionNotFoundError(record.tx)
        if tx.disputed:
            raise TransactionAlreadyDisputedError(record.tx)
        account = self._require_account(record.client)

        account.held += tx.amount
        account.available -= tx.amount

        self.transaction_repo.mark_disputed(record.tx)
        self.account_repo.upsert(record.client, account)

    def _process_resolve(self, record: TransactionRecord) -> None:
        tx = self._require_disputed(record.tx)
        account = self._require_account(record.client)

        account.held -= tx.amount
        account.available += tx.amount

        self.transaction_repo.mark_resolved(record.tx)
        self.account_repo.upsert(record.client, account)

    def _process_chargeback(self, record: TransactionRecord) -> None:
        tx = self._require_disputed(record.tx)
        account = self._require_account(record.client)

        account.held -= tx.amount

        self.account_repo.upsert(record.client, account)
        self.lock_repo.lock(record.client)


# Factory function for a fresh, exclusively owned engine
def get_transaction_engine() -> TransactionEngine:
    return TransactionEngine()
