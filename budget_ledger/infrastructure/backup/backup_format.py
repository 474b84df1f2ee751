"""Versioned JSON format of ledger backups.

A plaintext backup document looks like::

    {"version": 1, "timestamp": "<ISO 8601>",
     "data": {"categories": [...], "actualExpenses": [...], "settings": {...}}}

Every entity is checked against an explicit schema when a document is read,
and the document version goes through :func:`migrate_document` before any
field is trusted.
"""

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

from budget_ledger.core.types import DEFAULT_CURRENCY
from budget_ledger.domain.category import Category
from budget_ledger.domain.expense import Expense
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.domain.settings import Settings
from budget_ledger.exceptions import (
    BackupFormatError,
    UnsupportedVersionError,
    ValidationError,
)

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = 1

# Upgraders from an older document version to the next one.
# Add an entry here when the backup format evolves.
_MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {}


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into a naive local datetime.

    Raises:
        ValueError: If the value is not an ISO 8601 timestamp.
    """
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def ledger_to_data(state: LedgerState) -> dict[str, Any]:
    """Serialize a ledger state to the ``data`` object of a backup."""
    settings = state.settings
    return {
        "categories": [
            {
                "id": cat.id,
                "name": cat.name,
                "target": str(cat.target),
                "frequency": cat.frequency.value,
            }
            for cat in state.categories
        ],
        "actualExpenses": [
            {
                "id": exp.id,
                "categoryId": exp.category_id,
                "amount": str(exp.amount),
                "description": exp.description,
                "date": exp.expense_date.isoformat(),
            }
            for exp in state.expenses
        ],
        "settings": {
            "currency": settings.currency,
            "userName": settings.user_name,
            "autoBackup": settings.auto_backup,
            "lastBackup": (
                settings.last_backup.isoformat() if settings.last_backup else None
            ),
        },
    }


def build_backup_document(state: LedgerState, timestamp: datetime) -> dict[str, Any]:
    """Build a plaintext backup document."""
    return {
        "version": BACKUP_FORMAT_VERSION,
        "timestamp": timestamp.isoformat(),
        "data": ledger_to_data(state),
    }


def dumps_document(document: dict[str, Any]) -> str:
    """Serialize a backup document to JSON text."""
    return json.dumps(document, indent=2, ensure_ascii=False)


def loads_json(text: str | bytes) -> Any:
    """Parse JSON text, reading fractional numbers as decimals.

    Raises:
        BackupFormatError: If the text is not valid JSON.
    """
    try:
        return json.loads(text, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BackupFormatError(f"Backup is not valid JSON: {e}") from e


def load_document(text: str | bytes) -> dict[str, Any]:
    """Parse a backup file and check its format version.

    Raises:
        BackupFormatError: If the file is not a JSON object.
        UnsupportedVersionError: If the version cannot be read.
    """
    if not isinstance(document := loads_json(text), dict):
        raise BackupFormatError("Backup must be a JSON object")
    return migrate_document(document)


def migrate_document(document: dict[str, Any]) -> dict[str, Any]:
    """Bring a backup document to the current format version.

    Raises:
        UnsupportedVersionError: If the version is unknown or newer than
            the current one.
    """
    version = document.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise UnsupportedVersionError(version)
    if version > BACKUP_FORMAT_VERSION or (
        version < BACKUP_FORMAT_VERSION and version not in _MIGRATIONS
    ):
        raise UnsupportedVersionError(version)

    while version < BACKUP_FORMAT_VERSION:
        logger.info("Upgrading backup document from version %d", version)
        document = _MIGRATIONS[version](document)
        version += 1
    return document


def document_timestamp(document: dict[str, Any]) -> datetime | None:
    """Return the timestamp of a backup document, if readable."""
    if not isinstance(value := document.get("timestamp"), str):
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        logger.warning("Ignoring unreadable backup timestamp %r", value)
        return None


def data_to_ledger(data: Any) -> LedgerState:
    """Deserialize the ``data`` object of a backup.

    Raises:
        BackupFormatError: If an entity does not match its schema or an
            expense references an unknown category.
    """
    if not isinstance(data, dict):
        raise BackupFormatError("Backup data must be an object")

    categories = tuple(
        _parse_category(item) for item in _get_list(data, "categories")
    )
    expenses = tuple(
        _parse_expense(item) for item in _get_list(data, "actualExpenses")
    )
    settings = _parse_settings(data.get("settings"))
    state = LedgerState(categories, expenses, settings)

    if len({cat.id for cat in categories}) != len(categories):
        raise BackupFormatError("Backup contains duplicate category ids")
    if len({exp.id for exp in expenses}) != len(expenses):
        raise BackupFormatError("Backup contains duplicate expense ids")
    if orphans := state.orphan_expenses():
        raise BackupFormatError(
            f"Backup contains {len(orphans)} expense(s) with an unknown category, "
            f"first: {orphans[0].id!r}"
        )
    return state


def parse_backup_document(document: dict[str, Any]) -> LedgerState:
    """Read the ledger state out of a plaintext backup document.

    Raises:
        BackupFormatError: If the document is encrypted or malformed.
    """
    if document.get("encrypted") is True:
        raise BackupFormatError("Backup is encrypted; a password is required")
    return data_to_ledger(document.get("data"))


def _get_list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise BackupFormatError(f"Backup field '{key}' must be a list")
    return value


def _get_id(item: dict[str, Any], key: str) -> str:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, (str, int)) or value == "":
        raise BackupFormatError(f"Backup record has an invalid '{key}': {value!r}")
    return str(value)


def _parse_category(item: Any) -> Category:
    if not isinstance(item, dict):
        raise BackupFormatError("Backup category must be an object")
    try:
        return Category.create(
            category_id=_get_id(item, "id"),
            name=item.get("name"),
            target=item.get("target"),
            frequency=item.get("frequency"),
        )
    except ValidationError as e:
        raise BackupFormatError(f"Invalid category in backup: {e}") from e


def _parse_expense(item: Any) -> Expense:
    if not isinstance(item, dict):
        raise BackupFormatError("Backup expense must be an object")
    raw_date = item.get("date")
    try:
        expense_date = date.fromisoformat(str(raw_date)[:10])
    except ValueError as e:
        raise BackupFormatError(f"Invalid expense date in backup: {raw_date!r}") from e
    description = item.get("description")
    if description is not None and not isinstance(description, str):
        raise BackupFormatError("Expense description must be a string")
    try:
        return Expense.create(
            expense_id=_get_id(item, "id"),
            category_id=_get_id(item, "categoryId"),
            amount=item.get("amount"),
            description=description,
            expense_date=expense_date,
        )
    except ValidationError as e:
        raise BackupFormatError(f"Invalid expense in backup: {e}") from e


def _parse_settings(item: Any) -> Settings:
    if item is None:
        return Settings()
    if not isinstance(item, dict):
        raise BackupFormatError("Backup settings must be an object")

    currency = item.get("currency") or DEFAULT_CURRENCY
    user_name = item.get("userName") or ""
    auto_backup = item.get("autoBackup", False)
    if not isinstance(currency, str) or not isinstance(user_name, str):
        raise BackupFormatError("Backup settings currency and userName must be strings")
    if not isinstance(auto_backup, bool):
        raise BackupFormatError("Backup settings autoBackup must be a boolean")

    last_backup = None
    if (raw_last_backup := item.get("lastBackup")) is not None:
        try:
            last_backup = parse_timestamp(str(raw_last_backup))
        except ValueError as e:
            raise BackupFormatError(
                f"Invalid lastBackup in backup settings: {raw_last_backup!r}"
            ) from e
    return Settings(
        currency=currency,
        user_name=user_name,
        auto_backup=auto_backup,
        last_backup=last_backup,
    )
