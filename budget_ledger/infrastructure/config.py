"""Module for the Config class."""
import logging
import logging.config
from pathlib import Path
from typing import Any, NamedTuple

import yaml

from budget_ledger.core.types import DEFAULT_CURRENCY

logger = logging.getLogger(__name__)

APP_NAME = "budget-ledger"


class SettingsConfig(NamedTuple):
    """Settings used when the ledger has none stored yet."""

    currency: str = DEFAULT_CURRENCY
    user_name: str = ""


class BackupConfig(NamedTuple):
    """Backup snapshot and export configuration."""

    max_snapshots: int = 10
    auto_backup_interval_days: int = 7
    export_directory: Path | None = None
    max_exports: int = 5


class PersistenceConfig(NamedTuple):
    """Durable write configuration."""

    background_writes: bool = True
    max_retries: int = 3
    initial_backoff: float = 0.2


class Config:  # pylint: disable=too-few-public-methods
    """A class to store the configuration."""

    def __init__(self) -> None:
        self.database_path = Path("ledger.db")
        self.settings = SettingsConfig()
        self.backup = BackupConfig()
        self.persistence = PersistenceConfig()
        self.logging_config: dict[str, Any] | None = None

    @property
    def export_directory(self) -> Path:
        """Directory receiving backup exports (defaults to the database's)."""
        return self.backup.export_directory or self.database_path.parent

    def __parse_yaml(self, yaml_path: Path) -> None:
        """Parse a YAML configuration file."""
        with open(yaml_path, encoding="utf-8") as file:
            config = yaml.safe_load(file) or {}

        if "database_path" in config:
            self.database_path = Path(config["database_path"])

        if settings := config.get("settings"):
            self.settings = SettingsConfig(
                currency=settings.get("currency", DEFAULT_CURRENCY),
                user_name=settings.get("user_name", ""),
            )

        if backup := config.get("backup"):
            directory = backup.get("export_directory")
            self.backup = BackupConfig(
                max_snapshots=backup.get("max_snapshots", BackupConfig().max_snapshots),
                auto_backup_interval_days=backup.get(
                    "auto_backup_interval_days",
                    BackupConfig().auto_backup_interval_days,
                ),
                export_directory=Path(directory) if directory else None,
                max_exports=backup.get("max_exports", BackupConfig().max_exports),
            )

        if persistence := config.get("persistence"):
            self.persistence = PersistenceConfig(
                background_writes=persistence.get(
                    "background_writes", PersistenceConfig().background_writes
                ),
                max_retries=persistence.get(
                    "max_retries", PersistenceConfig().max_retries
                ),
                initial_backoff=persistence.get(
                    "initial_backoff", PersistenceConfig().initial_backoff
                ),
            )

        self.logging_config = config.get("logging")

    def parse(self, config_path: Path) -> None:
        """Parse a configuration file."""
        if config_path.suffix in (".yaml", ".yml"):
            self.__parse_yaml(config_path)
        else:
            raise ValueError(f"Unsupported file format: '{config_path.suffix}'")

    def setup_logging(self) -> None:
        """Configure logging from the ``logging`` section or a default log file."""
        if self.logging_config is not None:
            try:
                logging.config.dictConfig(self.logging_config)
                return
            except (ValueError, TypeError, AttributeError, ImportError) as e:
                logging.basicConfig(level=logging.INFO)
                logger.warning("Invalid logging configuration, using defaults: %s", e)
                return

        log_dir = Path.home() / ".local" / "share" / APP_NAME
        log_dir.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(
            filename=log_dir / f"{APP_NAME}.log",
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
