"""Module with tests for the SqliteRepository class."""

import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterator
from unittest.mock import patch

import pytest

from budget_ledger.core.types import Frequency
from budget_ledger.domain.backup_snapshot import BackupSnapshot
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings
from budget_ledger.exceptions import PersistenceError, SnapshotNotFoundError
from budget_ledger.infrastructure.persistence.sqlite_repository import (
    CURRENT_SCHEMA_VERSION,
    SqliteRepository,
)


@pytest.fixture(name="temp_db_path")
def temp_db_path_fixture(tmp_path: Path) -> Path:
    """Fixture that provides a temporary database path."""
    return tmp_path / "ledger.db"


@pytest.fixture(name="repository")
def repository_fixture(temp_db_path: Path) -> Iterator[SqliteRepository]:
    """Fixture that provides an initialized repository."""
    repo = SqliteRepository(temp_db_path)
    repo.initialize()
    yield repo
    repo.close()


@pytest.fixture(name="groceries")
def groceries_fixture() -> Category:
    """Fixture with a weekly grocery category."""
    return Category("c1", "Groceries", Decimal("100.00"), Frequency.WEEKLY)


@pytest.fixture(name="rent")
def rent_fixture() -> Category:
    """Fixture with a monthly rent category."""
    return Category("c2", "Rent", Decimal("1200.00"), Frequency.MONTHLY)


def make_expense(expense_id: str, category_id: str, amount: str) -> Expense:
    """Build an expense for the tests."""
    return Expense(expense_id, category_id, Decimal(amount), "", date(2024, 3, 1))


class TestSchema:
    """Tests for schema creation and migrations."""

    def test_initialize_sets_schema_version(self, temp_db_path: Path) -> None:
        """The schema version is recorded after initialization."""
        with SqliteRepository(temp_db_path):
            pass
        conn = sqlite3.connect(temp_db_path)
        try:
            version = conn.execute("SELECT version FROM schema_version").fetchone()[0]
        finally:
            conn.close()
        assert version == CURRENT_SCHEMA_VERSION

    def test_initialize_is_idempotent(self, repository: SqliteRepository) -> None:
        """Initializing twice keeps the data."""
        repository.insert_category(
            Category("c1", "Food", Decimal("1.00"), Frequency.DAILY)
        )
        repository.initialize()
        assert len(repository.get_all_categories()) == 1

    def test_data_survives_reopening(
        self, temp_db_path: Path, groceries: Category
    ) -> None:
        """Data written by one repository is read by the next one."""
        with SqliteRepository(temp_db_path) as repo:
            repo.insert_category(groceries)
        with SqliteRepository(temp_db_path) as repo:
            assert repo.get_all_categories() == (groceries,)

    def test_unreadable_database_raises_persistence_error(
        self, tmp_path: Path
    ) -> None:
        """A file that is not a database raises PersistenceError."""
        db_path = tmp_path / "broken.db"
        db_path.write_text("this is not a database" * 100)
        repo = SqliteRepository(db_path)
        with pytest.raises(PersistenceError):
            repo.get_all_categories()
        repo.close()


class TestCategories:
    """Tests for category persistence."""

    def test_insert_keeps_order_and_precision(
        self, repository: SqliteRepository, groceries: Category, rent: Category
    ) -> None:
        """Categories come back in insertion order with exact amounts."""
        repository.insert_category(rent)
        repository.insert_category(groceries)
        assert repository.get_all_categories() == (rent, groceries)

    def test_duplicate_id_raises(
        self, repository: SqliteRepository, groceries: Category
    ) -> None:
        """Ids are unique."""
        repository.insert_category(groceries)
        with pytest.raises(PersistenceError):
            repository.insert_category(groceries)

    def test_delete_cascades_to_expenses(
        self, repository: SqliteRepository, groceries: Category, rent: Category
    ) -> None:
        """Deleting a category deletes its expenses."""
        repository.insert_category(groceries)
        repository.insert_category(rent)
        repository.insert_expense(make_expense("e1", "c1", "10"))
        repository.insert_expense(make_expense("e2", "c2", "1200"))
        repository.insert_expense(make_expense("e3", "c1", "5"))

        repository.delete_category("c1")

        assert repository.get_all_categories() == (rent,)
        assert [exp.id for exp in repository.get_all_expenses()] == ["e2"]


class TestExpenses:
    """Tests for expense persistence."""

    def test_round_trip(
        self, repository: SqliteRepository, groceries: Category
    ) -> None:
        """Expenses keep every field."""
        repository.insert_category(groceries)
        expense = Expense("e1", "c1", Decimal("12.34"), "Bread", date(2024, 2, 29))
        repository.insert_expense(expense)
        assert repository.get_all_expenses() == (expense,)

    def test_delete(self, repository: SqliteRepository, groceries: Category) -> None:
        """Deleting an expense removes only that expense."""
        repository.insert_category(groceries)
        repository.insert_expense(make_expense("e1", "c1", "1"))
        repository.insert_expense(make_expense("e2", "c1", "2"))
        repository.delete_expense("e1")
        assert [exp.id for exp in repository.get_all_expenses()] == ["e2"]


class TestSettings:
    """Tests for settings persistence."""

    def test_no_settings_initially(self, repository: SqliteRepository) -> None:
        """A new database has no settings record."""
        assert repository.get_settings() is None

    def test_save_replaces_record(self, repository: SqliteRepository) -> None:
        """Saving settings replaces the single record."""
        repository.save_settings(Settings(currency="EUR", user_name="Sam"))
        settings = Settings(
            currency="GBP",
            user_name="",
            auto_backup=True,
            last_backup=datetime(2024, 3, 1, 12, 30),
        )
        repository.save_settings(settings)
        assert repository.get_settings() == settings


class TestReplaceLedger:
    """Tests for replace_ledger."""

    def test_replaces_everything(
        self, repository: SqliteRepository, groceries: Category, rent: Category
    ) -> None:
        """The whole ledger is replaced."""
        repository.insert_category(groceries)
        repository.insert_expense(make_expense("e1", "c1", "10"))

        state = LedgerState(
            categories=(rent,),
            expenses=(make_expense("e9", "c2", "50"),),
            settings=Settings(currency="EUR"),
        )
        repository.replace_ledger(state)

        assert repository.get_all_categories() == state.categories
        assert repository.get_all_expenses() == state.expenses
        assert repository.get_settings() == state.settings

    def test_failure_rolls_back(
        self, repository: SqliteRepository, groceries: Category, rent: Category
    ) -> None:
        """A failing replacement leaves the previous ledger intact."""
        repository.insert_category(groceries)
        state = LedgerState(categories=(rent, rent))

        with pytest.raises(PersistenceError):
            repository.replace_ledger(state)

        assert repository.get_all_categories() == (groceries,)


class TestBackups:
    """Tests for backup snapshot persistence."""

    def make_snapshot(self, snapshot_id: str, day: int) -> BackupSnapshot:
        """Build a snapshot for the tests."""
        return BackupSnapshot(
            id=snapshot_id,
            timestamp=datetime(2024, 3, day, 8, 0),
            version=1,
            payload='{"version": 1}',
        )

    def test_backups_sorted_oldest_first(self, repository: SqliteRepository) -> None:
        """Snapshots are listed by timestamp."""
        repository.insert_backup(self.make_snapshot("b2", 2))
        repository.insert_backup(self.make_snapshot("b1", 1))
        assert [b.id for b in repository.get_all_backups()] == ["b1", "b2"]

    def test_get_backup_by_id(self, repository: SqliteRepository) -> None:
        """A snapshot is read back unchanged."""
        snapshot = self.make_snapshot("b1", 1)
        repository.insert_backup(snapshot)
        assert repository.get_backup_by_id("b1") == snapshot

    def test_unknown_backup_raises(self, repository: SqliteRepository) -> None:
        """An unknown snapshot id raises SnapshotNotFoundError."""
        with pytest.raises(SnapshotNotFoundError):
            repository.get_backup_by_id("missing")

    def test_delete_backup(self, repository: SqliteRepository) -> None:
        """Deleted snapshots are no longer listed."""
        repository.insert_backup(self.make_snapshot("b1", 1))
        repository.delete_backup("b1")
        assert repository.get_all_backups() == ()


class TestConnectionErrors:
    """Tests for connection failures."""

    def test_connect_failure_raises_persistence_error(self, temp_db_path: Path) -> None:
        """A failing connection is reported as PersistenceError."""
        repo = SqliteRepository(temp_db_path)
        with patch(
            "budget_ledger.infrastructure.persistence.sqlite_repository.sqlite3.connect",
            side_effect=sqlite3.OperationalError("unable to open database file"),
        ):
            with pytest.raises(PersistenceError):
                repo.initialize()
