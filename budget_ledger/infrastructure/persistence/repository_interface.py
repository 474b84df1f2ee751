"""Abstract interfaces for repository operations.

This module defines separate interfaces for each persisted collection
following the Interface Segregation Principle (ISP), plus a facade interface
that combines them all.
"""

from abc import ABC, abstractmethod
from typing import Self

from budget_ledger.core.types import CategoryId, ExpenseId, SnapshotId
from budget_ledger.domain.backup_snapshot import BackupSnapshot
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings


class CategoryRepositoryInterface(ABC):
    """Interface for Category persistence operations."""

    @abstractmethod
    def get_all_categories(self) -> tuple[Category, ...]:
        """Get all categories.

        Returns:
            All categories in insertion order.
        """

    @abstractmethod
    def insert_category(self, category: Category) -> None:
        """Insert a new category.

        Args:
            category: The category to insert.
        """

    @abstractmethod
    def delete_category(self, category_id: CategoryId) -> None:
        """Delete a category and every expense recorded against it.

        Args:
            category_id: ID of the category to delete.
        """


class ExpenseRepositoryInterface(ABC):
    """Interface for Expense persistence operations."""

    @abstractmethod
    def get_all_expenses(self) -> tuple[Expense, ...]:
        """Get all expenses.

        Returns:
            All expenses in insertion order.
        """

    @abstractmethod
    def insert_expense(self, expense: Expense) -> None:
        """Insert a new expense.

        Args:
            expense: The expense to insert.
        """

    @abstractmethod
    def delete_expense(self, expense_id: ExpenseId) -> None:
        """Delete an expense by its ID.

        Args:
            expense_id: ID of the expense to delete.
        """


class SettingsRepositoryInterface(ABC):
    """Interface for Settings persistence operations."""

    @abstractmethod
    def get_settings(self) -> Settings | None:
        """Get the settings record.

        Returns:
            The stored settings, or None if they were never saved.
        """

    @abstractmethod
    def save_settings(self, settings: Settings) -> None:
        """Replace the settings record.

        Args:
            settings: The complete settings to store.
        """


class BackupRepositoryInterface(ABC):
    """Interface for BackupSnapshot persistence operations."""

    @abstractmethod
    def get_all_backups(self) -> tuple[BackupSnapshot, ...]:
        """Get all backup snapshots.

        Returns:
            All snapshots, oldest first.
        """

    @abstractmethod
    def get_backup_by_id(self, snapshot_id: SnapshotId) -> BackupSnapshot:
        """Get a backup snapshot by its ID.

        Raises:
            SnapshotNotFoundError: If no snapshot with the given ID exists.
        """

    @abstractmethod
    def insert_backup(self, snapshot: BackupSnapshot) -> None:
        """Append a backup snapshot.

        Args:
            snapshot: The snapshot to store.
        """

    @abstractmethod
    def delete_backup(self, snapshot_id: SnapshotId) -> None:
        """Delete a backup snapshot by its ID.

        Args:
            snapshot_id: ID of the snapshot to delete.
        """


class RepositoryInterface(
    CategoryRepositoryInterface,
    ExpenseRepositoryInterface,
    SettingsRepositoryInterface,
    BackupRepositoryInterface,
    ABC,
):
    """Facade interface combining all repository operations.

    This interface aggregates all collection-specific interfaces and adds
    lifecycle methods for repository initialization and cleanup.
    """

    @abstractmethod
    def replace_ledger(self, state: LedgerState) -> None:
        """Replace categories, expenses and settings in a single transaction.

        Args:
            state: The ledger state to store.
        """

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the repository.

        This method should be called before any other operations.
        It sets up the underlying storage (e.g., database schema).
        """

    @abstractmethod
    def close(self) -> None:
        """Close the repository and release resources."""

    @abstractmethod
    def __enter__(self) -> Self:
        """Enter the context manager.

        Initializes the repository and returns it.
        """

    @abstractmethod
    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit the context manager.

        Closes the repository.
        """
