"""SQLite repository for ledger data persistence."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterator, Self

from budget_ledger.core.types import CategoryId, ExpenseId, Frequency, SnapshotId
from budget_ledger.domain.backup_snapshot import BackupSnapshot
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings
from budget_ledger.exceptions import PersistenceError, SnapshotNotFoundError
from budget_ledger.infrastructure.persistence.repository_interface import (
    RepositoryInterface,
)

logger = logging.getLogger(__name__)

# Current schema version
CURRENT_SCHEMA_VERSION = 1

# Key of the single settings record
SETTINGS_KEY = "user_settings"

# Base schema (version 0 -> 1)
SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS categories (
    position INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    target TEXT NOT NULL,
    frequency TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS expenses (
    position INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    category_id TEXT NOT NULL,
    amount TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    date TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    currency TEXT NOT NULL,
    user_name TEXT NOT NULL DEFAULT '',
    auto_backup BOOLEAN NOT NULL DEFAULT FALSE,
    last_backup TIMESTAMP
);

CREATE TABLE IF NOT EXISTS backups (
    position INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    timestamp TIMESTAMP NOT NULL,
    version INTEGER NOT NULL,
    payload TEXT NOT NULL,
    encrypted BOOLEAN NOT NULL DEFAULT FALSE
);

CREATE INDEX IF NOT EXISTS idx_expenses_category ON expenses(category_id);
CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date);
CREATE INDEX IF NOT EXISTS idx_backups_timestamp ON backups(timestamp);
"""


class SqliteRepository(RepositoryInterface):
    """Repository for persisting ledger data in SQLite.

    The connection is shared between threads; every public method runs in its
    own transaction while holding the repository lock.
    """

    # Migration functions: version -> (from_version, migration_sql_or_callable)
    # Add new migrations here when schema evolves
    _migrations: dict[int, tuple[int, str | Callable[[sqlite3.Connection], None]]] = {
        1: (0, SCHEMA_V1),
    }

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create a database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(self._db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
        return self._connection

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Run the enclosed statements in one transaction under the lock."""
        with self._lock:
            try:
                conn = self._get_connection()
            except sqlite3.Error as e:
                raise PersistenceError(f"Cannot open database {self._db_path}: {e}") from e
            try:
                yield conn
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise PersistenceError(f"Database operation failed: {e}") from e

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        """Get the current schema version from the database."""
        try:
            cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()
            return row["version"] if row else 0
        except sqlite3.OperationalError:
            # Table doesn't exist yet
            return 0

    def _set_schema_version(self, conn: sqlite3.Connection, version: int) -> None:
        """Set the schema version in the database."""
        conn.execute("DELETE FROM schema_version")
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (version,))

    def initialize(self) -> None:
        """Initialize the database and run migrations if needed."""
        with self._transaction() as conn:
            if (current_version := self._get_schema_version(conn)) >= CURRENT_SCHEMA_VERSION:
                return

            # Apply migrations in order
            for target_version in range(current_version + 1, CURRENT_SCHEMA_VERSION + 1):
                if target_version not in self._migrations:
                    raise ValueError(f"Missing migration for version {target_version}")

                from_version, migration = self._migrations[target_version]
                if from_version != target_version - 1:
                    raise ValueError(
                        f"Invalid migration chain: {from_version} -> {target_version}"
                    )

                logger.info("Applying migration to schema version %d", target_version)

                if isinstance(migration, str):
                    conn.executescript(migration)
                else:
                    migration(conn)

                self._set_schema_version(conn, target_version)

        logger.info("Database schema is at version %d", CURRENT_SCHEMA_VERSION)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._connection is not None:
                self._connection.close()
                self._connection = None

    def __enter__(self) -> Self:
        """Enter the context manager."""
        self.initialize()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit the context manager."""
        self.close()

    # Category methods

    def get_all_categories(self) -> tuple[Category, ...]:
        """Get all categories."""
        with self._transaction() as conn:
            cursor = conn.execute(
                "SELECT id, name, target, frequency FROM categories ORDER BY position"
            )
            return tuple(self._row_to_category(row) for row in cursor.fetchall())

    def insert_category(self, category: Category) -> None:
        """Insert a new category."""
        with self._transaction() as conn:
            self._insert_categories(conn, (category,))

    def delete_category(self, category_id: CategoryId) -> None:
        """Delete a category and its expenses."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM expenses WHERE category_id = ?", (category_id,))
            conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))

    def _insert_categories(
        self, conn: sqlite3.Connection, categories: tuple[Category, ...]
    ) -> None:
        """Insert categories keeping their order."""
        conn.executemany(
            "INSERT INTO categories (id, name, target, frequency) VALUES (?, ?, ?, ?)",
            [
                (cat.id, cat.name, str(cat.target), cat.frequency.value)
                for cat in categories
            ],
        )

    def _row_to_category(self, row: sqlite3.Row) -> Category:
        """Convert a database row to a Category object."""
        return Category(
            id=row["id"],
            name=row["name"],
            target=Decimal(row["target"]),
            frequency=Frequency(row["frequency"]),
        )

    # Expense methods

    def get_all_expenses(self) -> tuple[Expense, ...]:
        """Get all expenses."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """SELECT id, category_id, amount, description, date
                   FROM expenses ORDER BY position"""
            )
            return tuple(self._row_to_expense(row) for row in cursor.fetchall())

    def insert_expense(self, expense: Expense) -> None:
        """Insert a new expense."""
        with self._transaction() as conn:
            self._insert_expenses(conn, (expense,))

    def delete_expense(self, expense_id: ExpenseId) -> None:
        """Delete an expense."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))

    def _insert_expenses(
        self, conn: sqlite3.Connection, expenses: tuple[Expense, ...]
    ) -> None:
        """Insert expenses keeping their order."""
        conn.executemany(
            """INSERT INTO expenses (id, category_id, amount, description, date)
               VALUES (?, ?, ?, ?, ?)""",
            [
                (
                    exp.id,
                    exp.category_id,
                    str(exp.amount),
                    exp.description,
                    exp.expense_date.isoformat(),
                )
                for exp in expenses
            ],
        )

    def _row_to_expense(self, row: sqlite3.Row) -> Expense:
        """Convert a database row to an Expense object."""
        return Expense(
            id=row["id"],
            category_id=row["category_id"],
            amount=Decimal(row["amount"]),
            description=row["description"],
            expense_date=date.fromisoformat(row["date"]),
        )

    # Settings methods

    def get_settings(self) -> Settings | None:
        """Get the settings record."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """SELECT currency, user_name, auto_backup, last_backup
                   FROM settings WHERE key = ?""",
                (SETTINGS_KEY,),
            )
            if (row := cursor.fetchone()) is None:
                return None
            return Settings(
                currency=row["currency"],
                user_name=row["user_name"],
                auto_backup=bool(row["auto_backup"]),
                last_backup=(
                    datetime.fromisoformat(row["last_backup"])
                    if row["last_backup"]
                    else None
                ),
            )

    def save_settings(self, settings: Settings) -> None:
        """Replace the settings record."""
        with self._transaction() as conn:
            self._save_settings(conn, settings)

    def _save_settings(self, conn: sqlite3.Connection, settings: Settings) -> None:
        conn.execute(
            """INSERT INTO settings (key, currency, user_name, auto_backup, last_backup)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   currency = excluded.currency,
                   user_name = excluded.user_name,
                   auto_backup = excluded.auto_backup,
                   last_backup = excluded.last_backup""",
            (
                SETTINGS_KEY,
                settings.currency,
                settings.user_name,
                settings.auto_backup,
                settings.last_backup.isoformat() if settings.last_backup else None,
            ),
        )

    # Ledger methods

    def replace_ledger(self, state: LedgerState) -> None:
        """Replace categories, expenses and settings in one transaction."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM expenses")
            conn.execute("DELETE FROM categories")
            self._insert_categories(conn, state.categories)
            self._insert_expenses(conn, state.expenses)
            self._save_settings(conn, state.settings)
        logger.info(
            "Replaced ledger with %d categories and %d expenses",
            len(state.categories),
            len(state.expenses),
        )

    # Backup methods

    def get_all_backups(self) -> tuple[BackupSnapshot, ...]:
        """Get all backup snapshots, oldest first."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """SELECT id, timestamp, version, payload, encrypted
                   FROM backups ORDER BY timestamp, position"""
            )
            return tuple(self._row_to_backup(row) for row in cursor.fetchall())

    def get_backup_by_id(self, snapshot_id: SnapshotId) -> BackupSnapshot:
        """Get a backup snapshot by id."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """SELECT id, timestamp, version, payload, encrypted
                   FROM backups WHERE id = ?""",
                (snapshot_id,),
            )
            if (row := cursor.fetchone()) is None:
                raise SnapshotNotFoundError(snapshot_id)
            return self._row_to_backup(row)

    def insert_backup(self, snapshot: BackupSnapshot) -> None:
        """Append a backup snapshot."""
        with self._transaction() as conn:
            conn.execute(
                """INSERT INTO backups (id, timestamp, version, payload, encrypted)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    snapshot.id,
                    snapshot.timestamp.isoformat(),
                    snapshot.version,
                    snapshot.payload,
                    snapshot.encrypted,
                ),
            )

    def delete_backup(self, snapshot_id: SnapshotId) -> None:
        """Delete a backup snapshot."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM backups WHERE id = ?", (snapshot_id,))

    def _row_to_backup(self, row: sqlite3.Row) -> BackupSnapshot:
        """Convert a database row to a BackupSnapshot object."""
        return BackupSnapshot(
            id=row["id"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            version=row["version"],
            payload=row["payload"],
            encrypted=bool(row["encrypted"]),
        )
