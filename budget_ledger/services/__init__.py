"""Services layer for budget ledger.

This module provides the business logic services used by any user interface
(command line, TUI, GUI). Services encapsulate operations on the ledger and
provide a clean API for presentation layers.
"""

from budget_ledger.services.application_service import (
    ApplicationService,
    StatusMessage,
    create_application_service,
)
from budget_ledger.services.backup_service import BackupService
from budget_ledger.services.ledger_store import LedgerStore

__all__ = [
    "ApplicationService",
    "BackupService",
    "LedgerStore",
    "StatusMessage",
    "create_application_service",
]
