"""Replaces the collector configuration with a downloaded document."""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from ..application.domain import ConfigurationInstaller
from ..application.exceptions import ConfigError
from .backups import timestamped_backup


class FileConfigurationInstaller(ConfigurationInstaller):
    """Backs up the current configuration file and copies a new one over it."""

    def __init__(
        self,
        config_file: Path,
        backup_pattern: str,
        file_mode: int = 0o644,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config_file = Path(config_file)
        self.backup_pattern = backup_pattern
        self.file_mode = file_mode
        self.clock = clock

    def _backup(self) -> Optional[Path]:
        if not self.config_file.is_file():
            return None
        try:
            backup = timestamped_backup(
                self.config_file, self.backup_pattern, self.clock
            )
        except OSError as e:
            self.logger.warning(f"Failed to back up existing config: {e}")
            return None
        self.logger.info(f"Config backed up to {backup}")
        return backup

    def apply(self, source: Path) -> Optional[Path]:
        """
        Install a configuration document at the canonical path.

        An existing file is copied to a timestamped sibling first. A failed
        backup or chmod is only a warning; the overwrite still happens.

        Args:
            source: The downloaded configuration document.

        Returns:
            The backup path, or None when there was nothing to back up.

        Raises:
            ConfigError: If the directory or the file cannot be written.
        """

        config_dir = self.config_file.parent
        try:
            config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Failed to create config directory {config_dir}: {e}") from e

        backup = self._backup()

        self.logger.info(f"Installing config: {source} -> {self.config_file}")
        try:
            shutil.copyfile(source, self.config_file)
        except OSError as e:
            raise ConfigError(f"Failed to install config file: {e}") from e

        try:
            self.config_file.chmod(self.file_mode)
        except OSError as e:
            self.logger.warning(f"Failed to set config file permissions: {e}")

        return backup
