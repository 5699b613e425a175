import pytest
from decimal import Decimal

from models import Account
from repositories import (
    AlreadyExistsError,
    InMemoryAccountRepository,
    InMemoryLockRepository,
    InMemoryTransactionRepository,
)


class TestTransactionRepository:
    """Test the transaction ledger."""

    def test_insert_and_lookup(self):
        repo = InMemoryTransactionRepository()
        repo.insert(1, Decimal("2.5"))

        tx = repo.lookup(1)
        assert tx.amount == Decimal("2.5")
        assert tx.disputed is False
        assert repo.lookup(2) is None

    def test_insert_existing_id(self):
        repo = InMemoryTransactionRepository()
        repo.insert(1, Decimal("2.5"))

        with pytest.raises(AlreadyExistsError):
            repo.insert(1, Decimal("9"))

        assert repo.lookup(1).amount == Decimal("2.5")

    def test_dispute_flag_lifecycle(self):
        repo = InMemoryTransactionRepository()
        repo.insert(1, Decimal("1"))

        repo.mark_disputed(1)
        assert repo.lookup(1).disputed is True

        repo.mark_resolved(1)
        assert repo.lookup(1).disputed is False

    def test_resolve_without_dispute_is_noop(self):
        repo = InMemoryTransactionRepository()
        repo.insert(1, Decimal("1"))

        repo.mark_resolved(1)
        repo.mark_resolved(2)

        assert repo.lookup(1).disputed is False
        assert repo.lookup(2) is None

    def test_flags_are_per_key(self):
        repo = InMemoryTransactionRepository()
        repo.insert(1, Decimal("1"))
        repo.insert(2, Decimal("1"))

        repo.mark_disputed(2)

        assert repo.lookup(1).disputed is False
        assert repo.lookup(2).disputed is True


class TestAccountRepository:
    """Test the account ledger."""

    def test_lookup_missing(self):
        assert InMemoryAccountRepository().lookup(1) is None

    def test_upsert_and_lookup(self):
        repo = InMemoryAccountRepository()
        repo.upsert(1, Account(available=Decimal("3"), held=Decimal("1")))

        account = repo.lookup(1)
        assert account.available == Decimal("3")
        assert account.held == Decimal("1")
        assert account.total == Decimal("4")
        assert repo.count() == 1

    def test_lookup_returns_copy(self):
        repo = InMemoryAccountRepository()
        repo.upsert(1, Account(available=Decimal("3")))

        account = repo.lookup(1)
        account.available += Decimal("100")

        assert repo.lookup(1).available == Decimal("3")

    def test_all_accounts(self):
        repo = InMemoryAccountRepository()
        repo.upsert(2, Account(available=Decimal("2")))
        repo.upsert(1, Account(available=Decimal("1")))
        repo.upsert(2, Account(available=Decimal("5")))

        accounts = dict(repo.all_accounts())
        assert set(accounts) == {1, 2}
        assert accounts[2].available == Decimal("5")
        assert repo.count() == 2


class TestLockRepository:
    """Test the lock registry."""

    def test_unlocked_by_default(self):
        assert InMemoryLockRepository().is_locked(1) is False

    def test_lock_is_idempotent(self):
        repo = InMemoryLockRepository()
        repo.lock(1)
        repo.lock(1)

        assert repo.is_locked(1) is True
        assert repo.is_locked(2) is False
        assert repo.count() == 1
