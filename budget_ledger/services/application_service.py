"""Central application service orchestrating the ledger services.

This module contains the ApplicationService class that serves as the single
entry point for user interfaces: ledger mutations, backups and the read-only
queries on the ledger.
"""

import logging
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, NamedTuple

from budget_ledger.core.amount import AmountLike
from budget_ledger.core.types import (
    CategoryId,
    ExpenseId,
    Frequency,
    Granularity,
    SnapshotId,
    StatusLevel,
)
from budget_ledger.domain.backup_snapshot import BackupSnapshot
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings
from budget_ledger.exceptions import BackupError, PersistenceError
from budget_ledger.infrastructure.backup.backup_files import BackupFileStore
from budget_ledger.infrastructure.config import Config
from budget_ledger.infrastructure.persistence.sqlite_repository import (
    SqliteRepository,
)
from budget_ledger.infrastructure.persistence.write_queue import WriteQueue
from budget_ledger.services.aggregation.ledger_analyzer import (
    LedgerAnalyzer,
    YearMonthGroups,
)
from budget_ledger.services.aggregation.ledger_report import (
    CategoryBreakdown,
    PeriodSummary,
    SeriesEntry,
)
from budget_ledger.services.aggregation.report_renderer import (
    LedgerReportRendererExcel,
    build_ledger_report,
)
from budget_ledger.services.backup_service import BackupService
from budget_ledger.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "budget-backup"
ENCRYPTED_BACKUP_PREFIX = "budget-backup-encrypted"


class StatusMessage(NamedTuple):
    """A non-fatal message for the user."""

    level: StatusLevel
    text: str
    timestamp: datetime


class ApplicationService:  # pylint: disable=too-many-public-methods
    """Central orchestrator for the budget ledger application.

    This service coordinates:
    - LedgerStore: categories, expenses and settings
    - BackupService: snapshots and backup export/import
    - BackupFileStore: export artifacts on disk

    Durable write and automatic backup failures never abort a mutation; they
    are logged and surfaced through :attr:`status`, while :attr:`last_saved`
    tells how fresh the durable copy is.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: LedgerStore,
        backup_service: BackupService,
        writer: WriteQueue,
        file_store: BackupFileStore,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the application service.

        Args:
            store: The ledger store.
            backup_service: Service for snapshots and backup files.
            writer: Queue applying durable writes.
            file_store: Store of the exported backup files.
            clock: Source of the current time.
        """
        self._store = store
        self._backup_service = backup_service
        self._writer = writer
        self._file_store = file_store
        self._clock = clock
        self._status: StatusMessage | None = None

        writer.set_error_callback(self._on_persistence_error)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        """Return the current ledger state."""
        return self._store.state

    @property
    def status(self) -> StatusMessage | None:
        """Return the last status message, if any."""
        return self._status

    @property
    def last_saved(self) -> datetime | None:
        """Time of the last successful durable write."""
        return self._writer.last_saved

    def _set_status(self, level: StatusLevel, text: str) -> None:
        self._status = StatusMessage(level, text, self._clock())

    def _on_persistence_error(self, error: PersistenceError) -> None:
        self._set_status(StatusLevel.ERROR, f"Changes could not be saved: {error}")

    def _run_auto_backup(self) -> None:
        """Run the automatic backup if due, turning failures into a status."""
        try:
            if self._backup_service.run_auto_backup() is not None:
                self._set_status(StatusLevel.INFO, "Automatic backup completed")
        except (BackupError, PersistenceError) as e:
            logger.error("Automatic backup failed: %s", e)
            self._set_status(StatusLevel.WARNING, f"Automatic backup failed: {e}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> LedgerState:
        """Load the ledger from durable storage.

        A storage failure leaves an empty ledger and an error status.
        """
        try:
            self._store.load()
        except PersistenceError as e:
            logger.error("Failed to load the ledger: %s", e)
            self._set_status(StatusLevel.ERROR, f"Ledger could not be loaded: {e}")
            return self._store.state
        self._run_auto_backup()
        return self._store.state

    def close(self) -> None:
        """Flush pending writes and release the storage."""
        self._writer.close()
        self._writer.repository.close()

    def subscribe(self, listener: Callable[[LedgerState], None]) -> Callable[[], None]:
        """Register a listener called after every ledger change."""
        return self._store.subscribe(listener)

    # -------------------------------------------------------------------------
    # Ledger mutations
    # -------------------------------------------------------------------------

    def add_category(
        self, name: str, target: AmountLike, frequency: Frequency | str
    ) -> Category:
        """Create a category.

        Raises:
            ValidationError: If a field is missing or invalid.
        """
        category = self._store.add_category(name, target, frequency)
        self._run_auto_backup()
        return category

    def delete_category(self, category_id: CategoryId) -> tuple[Expense, ...]:
        """Delete a category and its expenses.

        Raises:
            CategoryNotFoundError: If the category does not exist.
        """
        removed = self._store.delete_category(category_id)
        self._run_auto_backup()
        return removed

    def add_expense(
        self,
        category_id: CategoryId,
        amount: AmountLike,
        description: str | None = None,
        expense_date: date | None = None,
    ) -> Expense:
        """Record an expense.

        Raises:
            ValidationError: If the category does not exist or the amount is
                not positive.
        """
        expense = self._store.add_expense(
            category_id, amount, description, expense_date
        )
        self._run_auto_backup()
        return expense

    def delete_expense(self, expense_id: ExpenseId) -> None:
        """Delete an expense.

        Raises:
            ExpenseNotFoundError: If the expense does not exist.
        """
        self._store.delete_expense(expense_id)
        self._run_auto_backup()

    def save_settings(self, settings: Settings) -> None:
        """Replace the settings.

        Raises:
            ValidationError: If the currency code is empty.
        """
        self._store.save_settings(settings)
        self._run_auto_backup()

    # -------------------------------------------------------------------------
    # Backups
    # -------------------------------------------------------------------------

    def perform_backup(self) -> BackupSnapshot:
        """Append a snapshot of the ledger to the backup history."""
        snapshot = self._backup_service.perform_backup()
        self._set_status(StatusLevel.INFO, "Backup completed")
        return snapshot

    def list_snapshots(self) -> tuple[BackupSnapshot, ...]:
        """Return the stored snapshots, newest first."""
        return self._backup_service.list_snapshots()

    def restore_snapshot(self, snapshot_id: SnapshotId) -> LedgerState:
        """Replace the ledger with a stored snapshot.

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist.
            BackupFormatError: If the snapshot cannot be read.
        """
        state = self._backup_service.restore_snapshot(snapshot_id)
        self._set_status(StatusLevel.INFO, "Backup snapshot restored")
        self._run_auto_backup()
        return state

    def export_backup(self) -> Path:
        """Write a plaintext backup file to the export directory.

        Returns:
            Path to the backup file.

        Raises:
            BackupError: If the file cannot be written.
        """
        return self._write_export(self._backup_service.export_backup(), BACKUP_PREFIX)

    def export_encrypted_backup(self, password: str) -> Path:
        """Write a password-protected backup file to the export directory.

        Returns:
            Path to the backup file.

        Raises:
            ValidationError: If the password is empty.
            BackupError: If the file cannot be written.
        """
        content = self._backup_service.export_encrypted_backup(password)
        return self._write_export(content, ENCRYPTED_BACKUP_PREFIX)

    def _write_export(self, content: str, prefix: str) -> Path:
        try:
            path = self._file_store.write(content, prefix)
        except BackupError as e:
            logger.error("Backup export failed: %s", e)
            self._set_status(StatusLevel.ERROR, f"Backup export failed: {e}")
            raise
        self._file_store.rotate(prefix)
        self._set_status(StatusLevel.INFO, f"Backup exported to {path}")
        return path

    def import_backup(self, path: Path) -> LedgerState:
        """Replace the ledger with the content of a plaintext backup file.

        Raises:
            UnsupportedVersionError: If the backup version is not supported.
            BackupFormatError: If the backup is malformed or encrypted.
            BackupError: If the file cannot be read.
        """
        state = self._backup_service.import_backup(self._read_backup(path))
        self._set_status(StatusLevel.INFO, f"Backup imported from {path}")
        self._run_auto_backup()
        return state

    def import_encrypted_backup(self, path: Path, password: str) -> LedgerState:
        """Replace the ledger with the content of a password-protected backup file.

        Raises:
            UnsupportedVersionError: If the backup version is not supported.
            BackupFormatError: If the backup is not encrypted.
            DecryptionError: If the password is wrong or the file corrupted.
            BackupError: If the file cannot be read.
        """
        state = self._backup_service.import_encrypted_backup(
            self._read_backup(path), password
        )
        self._set_status(StatusLevel.INFO, f"Encrypted backup imported from {path}")
        self._run_auto_backup()
        return state

    @staticmethod
    def _read_backup(path: Path) -> bytes:
        try:
            return path.read_bytes()
        except OSError as e:
            raise BackupError(f"Cannot read backup file {path}: {e}") from e

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _analyzer(self) -> LedgerAnalyzer:
        return LedgerAnalyzer(self._store.state, self._clock().date())

    def current_month_totals(self) -> PeriodSummary:
        """Monthly budget against spend of the current calendar month."""
        return self._analyzer().current_month_summary()

    def current_week_totals(self) -> PeriodSummary:
        """Weekly budget against spend of the rolling week ending today."""
        return self._analyzer().current_week_summary()

    def historical_series(
        self, granularity: Granularity | str, count: int
    ) -> tuple[SeriesEntry, ...]:
        """Budget against spend over the last periods, most recent first.

        Raises:
            ValidationError: If the granularity or count is invalid.
        """
        return self._analyzer().historical_series(granularity, count)

    def grouped_history(self) -> YearMonthGroups:
        """All expenses grouped by year and month."""
        return self._analyzer().grouped_history()

    def category_breakdown(self) -> tuple[CategoryBreakdown, ...]:
        """Weekly and monthly budget against spend per category."""
        return self._analyzer().category_breakdown()

    def recent_expenses(self, limit: int = 10) -> tuple[Expense, ...]:
        """The last recorded expenses, newest first."""
        return self._analyzer().recent_expenses(limit)

    def export_report(
        self,
        path: Path,
        granularity: Granularity | str = Granularity.MONTH,
        count: int = 12,
    ) -> Path:
        """Render the ledger report to an Excel workbook.

        Raises:
            ValidationError: If the granularity or count is invalid.
        """
        report = build_ledger_report(
            self._store.state, self._analyzer(), granularity, count
        )
        with LedgerReportRendererExcel(path) as renderer:
            renderer(report)
        logger.info("Ledger report written to %s", path)
        return path


def create_application_service(
    config: Config, clock: Callable[[], datetime] = datetime.now
) -> ApplicationService:
    """Wire the application services from a configuration."""
    repository = SqliteRepository(config.database_path)
    writer = WriteQueue(
        repository,
        background=config.persistence.background_writes,
        max_retries=config.persistence.max_retries,
        initial_backoff=config.persistence.initial_backoff,
        clock=clock,
    )
    store = LedgerStore(
        writer,
        default_settings=Settings(
            currency=config.settings.currency, user_name=config.settings.user_name
        ),
        clock=clock,
    )
    backup_service = BackupService(
        store,
        writer,
        max_snapshots=config.backup.max_snapshots,
        auto_backup_interval=timedelta(days=config.backup.auto_backup_interval_days),
        clock=clock,
    )
    file_store = BackupFileStore(
        config.export_directory, max_files=config.backup.max_exports, clock=clock
    )
    return ApplicationService(store, backup_service, writer, file_store, clock)
