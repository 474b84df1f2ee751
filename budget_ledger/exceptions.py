"""Custom exception hierarchy for budget ledger."""


class BudgetLedgerError(Exception):
    """Base exception for all budget ledger errors."""


class ValidationError(BudgetLedgerError):
    """A field is missing or invalid on create."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(BudgetLedgerError):
    """No record with the given ID exists."""


class CategoryNotFoundError(NotFoundError):
    """No category with the given ID exists."""

    def __init__(self, category_id: str) -> None:
        super().__init__(f"Category not found: {category_id!r}")
        self.category_id = category_id


class ExpenseNotFoundError(NotFoundError):
    """No expense with the given ID exists."""

    def __init__(self, expense_id: str) -> None:
        super().__init__(f"Expense not found: {expense_id!r}")
        self.expense_id = expense_id


class SnapshotNotFoundError(NotFoundError):
    """No backup snapshot with the given ID exists."""

    def __init__(self, snapshot_id: str) -> None:
        super().__init__(f"Backup snapshot not found: {snapshot_id!r}")
        self.snapshot_id = snapshot_id


class PersistenceError(BudgetLedgerError):
    """A durable-storage read or write failed."""


class BackupError(BudgetLedgerError):
    """A backup operation failed."""


class BackupFormatError(BackupError):
    """A backup file does not have the expected shape."""


class UnsupportedVersionError(BackupFormatError):
    """A backup file was written with an unsupported format version."""

    def __init__(self, version: object) -> None:
        super().__init__(f"Unsupported backup version: {version!r}")
        self.version = version


class DecryptionError(BackupError):
    """An encrypted backup could not be decrypted.

    Raised both for a wrong password and for a corrupted file.
    """
