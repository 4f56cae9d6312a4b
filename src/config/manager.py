"""Configuration manager for persistent settings."""

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from common.exceptions import ConfigurationError, StoreWriteError
from .envfile import atomic_write_text
from .schema import Settings
from .store import KioskStore

DEFAULT_CONFIG_PATH = "~/kiosk/config.json"
CONFIG_ENV_VAR = "KIOSK_CONFIG"
MAX_BACKUPS = 10


def resolve_config_path(config_path: Optional[str] = None) -> Path:
    """Explicit path, then ``$KIOSK_CONFIG``, then the default."""
    return Path(config_path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()


class ConfigManager:
    """Manages configuration persistence and validation."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager."""
        self.config_path = resolve_config_path(config_path)
        self.config_dir = self.config_path.parent
        self.backup_dir = self.config_dir / "backups"
        self.logger = logging.getLogger(__name__)

    async def load_config(self) -> Settings:
        """Load configuration from file, creating it from defaults if missing.

        Raises:
            ConfigurationError: if the file is invalid and no backup restores it.
        """
        if not self.config_path.exists():
            self.logger.info("Configuration file not found, creating from defaults")
            await self._create_default_config()

        try:
            config_data = self._read_json(self.config_path)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in configuration file: {e}")
            if not await self._restore_from_backup():
                raise ConfigurationError(f"Invalid JSON in {self.config_path}: {e}") from e
            config_data = self._read_json(self.config_path)

        config = self._validate(config_data)
        self.logger.debug(f"Configuration loaded from {self.config_path}")
        return config

    async def save_config(self, config: Settings) -> None:
        """Save configuration to file.

        Raises:
            StoreWriteError: if the file cannot be written.
        """
        # Create backup before saving
        await self._create_backup()

        config_data = config.model_dump(mode="json")
        try:
            atomic_write_text(self.config_path, json.dumps(config_data, indent=2) + "\n")
        except OSError as e:
            raise StoreWriteError(f"Failed to save configuration: {e}", self.config_path) from e

        self.logger.info(f"Configuration saved to {self.config_path}")

    def create_store(self, config: Settings) -> KioskStore:
        """Build the record store described by ``config``."""
        return KioskStore(
            config.paths.env_dir,
            default_output=config.display.default_output,
            default_orientation=config.display.default_orientation,
            legacy_rotation_file=config.paths.legacy_rotation_file,
        )

    def _read_json(self, path: Path) -> Dict[str, Any]:
        with open(path, 'r') as f:
            return json.load(f)

    def _validate(self, config_data: Dict[str, Any]) -> Settings:
        try:
            return Settings(**config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {self.config_path}: {e}") from e
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration in {self.config_path}: {e}") from e

    async def _create_default_config(self) -> None:
        """Create default configuration file."""
        self.logger.info("Creating default configuration")
        await self.save_config(Settings())

    async def _create_backup(self) -> None:
        """Create backup of current configuration."""
        if not self.config_path.exists():
            return

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            backup_path = self.backup_dir / f"config_{timestamp}.json"
            shutil.copy2(self.config_path, backup_path)
            await self._cleanup_old_backups()
        except OSError as e:
            self.logger.warning(f"Failed to create backup: {e}")

    def _backups(self) -> List[Path]:
        if not self.backup_dir.is_dir():
            return []
        return sorted(self.backup_dir.glob("config_*.json"), key=lambda x: x.name, reverse=True)

    async def _cleanup_old_backups(self) -> None:
        """Keep only the most recent backups."""
        for backup in self._backups()[MAX_BACKUPS:]:
            try:
                backup.unlink()
            except OSError as e:
                self.logger.debug(f"Failed to remove old backup {backup}: {e}")

    async def _restore_from_backup(self) -> bool:
        """Restore configuration from the most recent readable backup."""
        for backup in self._backups():
            try:
                self._read_json(backup)
            except (OSError, json.JSONDecodeError):
                continue
            self.logger.info(f"Restoring from backup: {backup.name}")
            shutil.copy2(backup, self.config_path)
            return True

        self.logger.warning("No usable configuration backup found")
        return False
