from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional, Set, Tuple
from decimal import Decimal
import structlog

from models import Account, StoredTransaction

logger = structlog.get_logger()


class AlreadyExistsError(ValueError):
    """Raised when a key is inserted twice into a ledger."""


class TransactionRepository(ABC):
    @abstractmethod
    def insert(self, tx_id: int, amount: Decimal) -> None:
        """Record a deposit or withdrawal amount. Raises AlreadyExistsError for a known tx_id."""
        pass

    @abstractmethod
    def lookup(self, tx_id: int) -> Optional[StoredTransaction]:
        """Get stored transaction. Returns None if it was never recorded."""
        pass

    @abstractmethod
    def mark_disputed(self, tx_id: int) -> None:
        """Flag transaction as under dispute."""
        pass

    @abstractmethod
    def mark_resolved(self, tx_id: int) -> None:
        """Clear the dispute flag if it is set."""
        pass


class AccountRepository(ABC):
    @abstractmethod
    def lookup(self, client_id: int) -> Optional[Account]:
        """Get account balances. Returns None if account doesn't exist."""
        pass

    @abstractmethod
    def upsert(self, client_id: int, account: Account) -> None:
        """Create or replace account balances."""
        pass

    @abstractmethod
    def all_accounts(self) -> Iterator[Tuple[int, Account]]:
        """Iterate over every known account, in no particular order."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of accounts."""
        pass


class LockRepository(ABC):
    @abstractmethod
    def lock(self, client_id: int) -> None:
        """Freeze account permanently."""
        pass

    @abstractmethod
    def is_locked(self, client_id: int) -> bool:
        """Check if account is frozen."""
        pass

    @abstractmethod
    def count(self) -> int:
        """Get total number of frozen accounts."""
        pass


class InMemoryTransactionRepository(TransactionRepository):
    def __init__(self):
        self.amounts: Dict[int, Decimal] = {}
        self.disputed: Set[int] = set()

    def insert(self, tx_id: int, amount: Decimal) -> None:
        if tx_id in self.amounts:
            raise AlreadyExistsError(f"Transaction {tx_id} already exists")
        self.amounts[tx_id] = amount
        logger.info("Transaction inserted", tx_id=tx_id, amount=str(amount))

    def lookup(self, tx_id: int) -> Optional[StoredTransaction]:
        if tx_id not in self.amounts:
            return None
        return StoredTransaction(amount=self.amounts[tx_id], disputed=tx_id in self.disputed)

    def mark_disputed(self, tx_id: int) -> None:
        self.disputed.add(tx_id)
        logger.info("Transaction disputed", tx_id=tx_id)

    def mark_resolved(self, tx_id: int) -> None:
        if tx_id in self.disputed:
            self.disputed.remove(tx_id)
            logger.info("Transaction resolved", tx_id=tx_id)


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        self.accounts: Dict[int, Account] = {}

    def lookup(self, client_id: int) -> Optional[Account]:
        account = self.accounts.get(client_id)
        # callers mutate the copy and hand it back through upsert
        return account.model_copy() if account is not None else None

    def upsert(self, client_id: int, account: Account) -> None:
        self.accounts[client_id] = account.model_copy()
        logger.info(
            "Account saved",
            client_id=client_id,
            available=str(account.available),
            held=str(account.held)
        )

    def all_accounts(self) -> Iterator[Tuple[int, Account]]:
        for client_id, account in self.accounts.items():
            yield client_id, account.model_copy()

    def count(self) -> int:
        return len(self.accounts)


class InMemoryLockRepository(LockRepository):
    def __init__(self):
        self.locked: Set[int] = set()

    def lock(self, client_id: int) -> None:
        self.locked.add(client_id)
        logger.info("Account locked", client_id=client_id)

    def is_locked(self, client_id: int) -> bool:
        return client_id in self.locked

    def count(self) -> int:
        return len(self.locked)
