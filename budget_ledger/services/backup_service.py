"""Service for ledger snapshots and backup export/import."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable

from budget_ledger.core.types import SnapshotId
from budget_ledger.domain.backup_snapshot import BackupSnapshot
from budget_ledger.domain.ledger_state import LedgerState
from budget_ledger.exceptions import BackupFormatError, DecryptionError, ValidationError
from budget_ledger.infrastructure.backup.backup_format import (
    BACKUP_FORMAT_VERSION,
    build_backup_document,
    data_to_ledger,
    dumps_document,
    ledger_to_data,
    load_document,
    loads_json,
    parse_backup_document,
)
from budget_ledger.infrastructure.backup.encryption import (
    KDF_ITERATIONS,
    SealedPayload,
    open_sealed,
    seal,
    xor_deobfuscate,
)
from budget_ledger.infrastructure.persistence.repository_interface import (
    RepositoryInterface,
)
from budget_ledger.infrastructure.persistence.write_queue import WriteQueue
from budget_ledger.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


def _associated_data(version: Any, timestamp: Any) -> bytes:
    """Header fields bound to an encrypted payload."""
    return f"budget-ledger|{version}|{timestamp}".encode("utf-8")


class BackupService:
    """Create snapshots of the ledger and move it in and out of backup files.

    Snapshots are appended to the backup history and never modified; only
    the oldest ones are pruned once ``max_snapshots`` is exceeded.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        store: LedgerStore,
        writer: WriteQueue,
        *,
        max_snapshots: int = 10,
        auto_backup_interval: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = datetime.now,
        kdf_iterations: int = KDF_ITERATIONS,
    ) -> None:
        """Initialize the backup service.

        Args:
            store: The ledger store to snapshot and restore.
            writer: Queue applying durable writes.
            max_snapshots: Maximum number of snapshots to keep.
            auto_backup_interval: Age of the last backup triggering a new one.
            clock: Source of the current time.
            kdf_iterations: Key derivation rounds of encrypted exports.
        """
        self._store = store
        self._writer = writer
        self._max_snapshots = max_snapshots
        self._auto_backup_interval = auto_backup_interval
        self._clock = clock
        self._kdf_iterations = kdf_iterations

    @property
    def max_snapshots(self) -> int:
        """Return the maximum number of snapshots to keep."""
        return self._max_snapshots

    # Snapshots

    def perform_backup(self) -> BackupSnapshot:
        """Append a snapshot of the current ledger to the backup history.

        Also records the backup time in the settings.

        Returns:
            The new snapshot.
        """
        now = self._clock()
        state = self._store.state._replace(
            settings=self._store.state.settings._replace(last_backup=now)
        )
        snapshot = BackupSnapshot(
            id=uuid.uuid4().hex,
            timestamp=now,
            version=BACKUP_FORMAT_VERSION,
            payload=dumps_document(build_backup_document(state, now)),
            encrypted=False,
        )
        self._writer.submit(
            f"insert backup {snapshot.id}", lambda repo: repo.insert_backup(snapshot)
        )
        self._writer.submit("prune backups", self._prune_snapshots)
        self._store.save_settings(state.settings)
        logger.info(
            "Backup snapshot %s created (%d categories, %d expenses)",
            snapshot.id,
            len(state.categories),
            len(state.expenses),
        )
        return snapshot

    def _prune_snapshots(self, repository: RepositoryInterface) -> None:
        """Delete the oldest snapshots exceeding max_snapshots."""
        snapshots = repository.get_all_backups()
        if len(snapshots) <= self._max_snapshots:
            return
        for snapshot in snapshots[: len(snapshots) - self._max_snapshots]:
            repository.delete_backup(snapshot.id)
            logger.info("Deleted old backup snapshot %s", snapshot.id)

    def auto_backup_due(self, now: datetime | None = None) -> bool:
        """Whether the automatic backup policy asks for a new snapshot."""
        settings = self._store.state.settings
        if not settings.auto_backup:
            return False
        if settings.last_backup is None:
            return True
        now = now or self._clock()
        return now - settings.last_backup > self._auto_backup_interval

    def run_auto_backup(self) -> BackupSnapshot | None:
        """Perform a backup if the automatic backup policy asks for one.

        Returns:
            The new snapshot, or None if no backup was due.
        """
        if not self.auto_backup_due():
            return None
        logger.info("Automatic backup is due")
        return self.perform_backup()

    def list_snapshots(self) -> tuple[BackupSnapshot, ...]:
        """Return the stored snapshots, newest first."""
        self._writer.flush()
        return tuple(reversed(self._writer.repository.get_all_backups()))

    def restore_snapshot(self, snapshot_id: SnapshotId) -> LedgerState:
        """Replace the ledger with the content of a stored snapshot.

        Raises:
            SnapshotNotFoundError: If the snapshot does not exist.
            BackupFormatError: If the snapshot cannot be read.
        """
        self._writer.flush()
        snapshot = self._writer.repository.get_backup_by_id(snapshot_id)
        state = parse_backup_document(load_document(snapshot.payload))
        self._store.replace_state(state)
        logger.info("Restored backup snapshot %s", snapshot_id)
        return state

    # Export / import

    def export_backup(self) -> str:
        """Serialize the ledger to a plaintext backup document."""
        document = build_backup_document(self._store.state, self._clock())
        return dumps_document(document)

    def export_encrypted_backup(self, password: str) -> str:
        """Serialize the ledger to a password-protected backup document.

        Raises:
            ValidationError: If the password is empty.
        """
        timestamp = self._clock().isoformat()
        sealed = seal(
            dumps_document(ledger_to_data(self._store.state)),
            password,
            associated_data=_associated_data(BACKUP_FORMAT_VERSION, timestamp),
            iterations=self._kdf_iterations,
        )
        return dumps_document(
            {
                "version": BACKUP_FORMAT_VERSION,
                "timestamp": timestamp,
                "encrypted": True,
                **sealed.to_fields(),
            }
        )

    def import_backup(self, text: str | bytes) -> LedgerState:
        """Replace the ledger with the content of a plaintext backup.

        The ledger is left unchanged when the backup cannot be read.

        Raises:
            UnsupportedVersionError: If the backup version is not supported.
            BackupFormatError: If the backup is malformed or encrypted.
        """
        state = parse_backup_document(load_document(text))
        self._store.replace_state(state)
        logger.info("Imported backup")
        return state

    def import_encrypted_backup(self, text: str | bytes, password: str) -> LedgerState:
        """Replace the ledger with the content of a password-protected backup.

        Both the current format and the legacy XOR format are accepted.

        Raises:
            UnsupportedVersionError: If the backup version is not supported.
            BackupFormatError: If the backup is not marked as encrypted.
            DecryptionError: If the password is wrong or the file corrupted.
        """
        if not password:
            raise ValidationError("A password is required", field="password")
        document = load_document(text)
        if document.get("encrypted") is not True:
            raise BackupFormatError("Backup is not encrypted")

        if "cipher" in document:
            plaintext = open_sealed(
                SealedPayload.from_fields(document),
                password,
                associated_data=_associated_data(
                    document.get("version"), document.get("timestamp")
                ),
            )
        else:
            logger.warning("Importing a backup in the legacy XOR format")
            plaintext = xor_deobfuscate(document.get("data"), password)

        try:
            state = data_to_ledger(loads_json(plaintext))
        except BackupFormatError as e:
            raise DecryptionError("Wrong password or corrupted backup") from e
        self._store.replace_state(state)
        logger.info("Imported encrypted backup")
        return state


