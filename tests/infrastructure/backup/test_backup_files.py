"""Tests for the BackupFileStore class."""

import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from budget_ledger.exceptions import BackupError
from budget_ledger.infrastructure.backup.backup_files import BackupFileStore

NOW = datetime(2025, 1, 17, 10, 0, 0)


@pytest.fixture(name="export_dir")
def export_dir_fixture(tmp_path: Path) -> Path:
    """Create a temporary export directory path."""
    return tmp_path / "exports"


@pytest.fixture(name="file_store")
def file_store_fixture(export_dir: Path) -> BackupFileStore:
    """Create a BackupFileStore with test configuration."""
    return BackupFileStore(export_dir, max_files=3, clock=lambda: NOW)


class TestWrite:
    """Tests for writing export files."""

    def test_creates_file(self, file_store: BackupFileStore, export_dir: Path) -> None:
        """The file is named after the prefix and the time."""
        path = file_store.write('{"version": 1}', "budget-backup")

        assert path == export_dir / "budget-backup_2025-01-17_100000.json"
        assert path.read_text(encoding="utf-8") == '{"version": 1}'

    def test_same_second_gets_suffix(self, file_store: BackupFileStore) -> None:
        """Two exports in the same second do not overwrite each other."""
        first = file_store.write("1", "budget-backup")
        second = file_store.write("2", "budget-backup")

        assert first != second
        assert second.name == "budget-backup_2025-01-17_100000-1.json"
        assert first.read_text(encoding="utf-8") == "1"

    def test_write_failure_raises_backup_error(
        self, file_store: BackupFileStore
    ) -> None:
        """A failing write raises BackupError."""
        with patch.object(Path, "write_text", side_effect=OSError("disk full")):
            with pytest.raises(BackupError):
                file_store.write("content", "budget-backup")


class TestRotate:
    """Tests for rotating export files."""

    def _create(self, export_dir: Path, names: list[str]) -> list[Path]:
        export_dir.mkdir(parents=True, exist_ok=True)
        paths = []
        base_time = 1_700_000_000
        for index, name in enumerate(names):
            path = export_dir / name
            path.write_text(name)
            os.utime(path, (base_time + index, base_time + index))
            paths.append(path)
        return paths

    def test_no_deletion_under_limit(
        self, file_store: BackupFileStore, export_dir: Path
    ) -> None:
        """Nothing is deleted when under max_files."""
        self._create(export_dir, ["budget-backup_1.json", "budget-backup_2.json"])
        assert file_store.rotate("budget-backup") == []

    def test_deletes_oldest(self, file_store: BackupFileStore, export_dir: Path) -> None:
        """The oldest files beyond max_files are deleted."""
        paths = self._create(
            export_dir, [f"budget-backup_{index}.json" for index in range(5)]
        )

        deleted = file_store.rotate("budget-backup")

        assert deleted == paths[:2]
        assert file_store.get_existing("budget-backup") == paths[2:]

    def test_prefixes_are_independent(
        self, file_store: BackupFileStore, export_dir: Path
    ) -> None:
        """Rotation only counts files of the same prefix."""
        self._create(
            export_dir,
            [f"budget-backup_{index}.json" for index in range(3)]
            + [f"other_{index}.json" for index in range(3)],
        )
        assert file_store.rotate("budget-backup") == []

    def test_missing_directory(self, file_store: BackupFileStore) -> None:
        """A missing directory has no files."""
        assert file_store.get_existing("budget-backup") == []
        assert file_store.rotate("budget-backup") == []
