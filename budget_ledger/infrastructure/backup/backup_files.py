"""Export artifact files for ledger backups."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from budget_ledger.exceptions import BackupError

logger = logging.getLogger(__name__)


class BackupFileStore:
    """Write backup exports to a directory and rotate old ones."""

    TIMESTAMP_FORMAT = "%Y-%m-%d_%H%M%S"

    def __init__(
        self,
        directory: Path,
        max_files: int = 5,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the file store.

        Args:
            directory: Directory receiving the export files.
            max_files: Maximum number of files to keep per prefix.
            clock: Source of the timestamps used in file names.
        """
        self._directory = directory
        self._max_files = max_files
        self._clock = clock

    @property
    def directory(self) -> Path:
        """Return the export directory path."""
        return self._directory

    @property
    def max_files(self) -> int:
        """Return the maximum number of files to keep per prefix."""
        return self._max_files

    def write(self, content: str, prefix: str) -> Path:
        """Write an export file named after the prefix and the current time.

        Returns:
            Path to the created file.

        Raises:
            BackupError: If the file cannot be written.
        """
        try:
            self._directory.mkdir(parents=True, exist_ok=True)

            timestamp = self._clock().strftime(self.TIMESTAMP_FORMAT)
            path = self._directory / f"{prefix}_{timestamp}.json"
            counter = 1
            while path.exists():
                path = self._directory / f"{prefix}_{timestamp}-{counter}.json"
                counter += 1

            path.write_text(content, encoding="utf-8")
            logger.info("Backup exported: %s", path)
            return path

        except OSError as e:
            raise BackupError(f"Failed to write backup export: {e}") from e

    def rotate(self, prefix: str) -> list[Path]:
        """Delete old files of a prefix exceeding max_files.

        Returns:
            List of deleted file paths.
        """
        deleted: list[Path] = []

        try:
            files = self.get_existing(prefix)
        except OSError as e:
            logger.error("Failed to list backup exports: %s", e)
            return deleted

        if len(files) <= self._max_files:
            return deleted

        # Delete oldest files (list is sorted oldest first)
        for path in files[: -self._max_files]:
            try:
                path.unlink()
                deleted.append(path)
                logger.info("Deleted old backup export: %s", path)
            except OSError as e:
                logger.error("Failed to delete backup export %s: %s", path, e)

        return deleted

    def get_existing(self, prefix: str) -> list[Path]:
        """Get the export files of a prefix, sorted oldest first."""
        if not self._directory.exists():
            return []
        files = list(self._directory.glob(f"{prefix}_*.json"))
        return sorted(files, key=lambda p: (p.stat().st_mtime, p.name))
