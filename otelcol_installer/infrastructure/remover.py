"""Best-effort removal of a previous collector installation."""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from ..application.domain import (
    ExistingInstallationRemover,
    InstalledState,
    InstallPaths,
    InstallTarget,
    PackageStrategy,
    RemovalReport,
    ServiceManager,
)
from ..application.exceptions import CommandError
from .backups import timestamped_backup
from .package_managers import PackageManager


class HostRemover(ExistingInstallationRemover):
    """
    Brings the host to a clean slate before an install.

    Package-manager removal and manual filesystem cleanup are both attempted,
    since a previous installation may have come from either a package or an
    archive. Every step is independent and failures only become warnings.
    """

    def __init__(
        self,
        paths: InstallPaths,
        service_manager: ServiceManager,
        package_managers: Dict[PackageStrategy, PackageManager],
        backup_pattern: str,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initializes the remover."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.paths = paths
        self.service_manager = service_manager
        self.package_managers = package_managers
        self.backup_pattern = backup_pattern
        self.clock = clock

    def _warn(self, report: RemovalReport, message: str):
        self.logger.warning(message)
        report.warnings.append(message)

    def _package_manager(self, target: InstallTarget) -> Optional[PackageManager]:
        manager = self.package_managers.get(target.package_strategy)
        if manager is None or not manager.available():
            return None
        return manager

    def inspect(self, target: InstallTarget) -> InstalledState:
        """Reports what a previous installation left on the host."""
        manager = self._package_manager(target)
        return InstalledState(
            service_status=self.service_manager.status(self.paths.service_unit),
            binary_present=self.paths.binary_path.is_file(),
            config_present=self.paths.config_file.is_file(),
            package_registered=(
                manager is not None
                and manager.is_registered(self.paths.package_name)
            ),
        )

    def _release_service(self, report: RemovalReport):
        """Resets, stops and disables a registered unit."""
        unit = self.paths.service_unit
        if not self.service_manager.available():
            return
        if not self.service_manager.is_registered(unit):
            return

        report.service_found = True
        self.logger.info(f"Found existing {unit}")

        actions = [
            (self.service_manager.is_failed, self.service_manager.reset_failed, "reset"),
            (self.service_manager.is_active, self.service_manager.stop, "stop"),
            (self.service_manager.is_enabled, self.service_manager.disable, "disable"),
        ]
        for predicate, action, verb in actions:
            if not predicate(unit):
                continue
            self.logger.info(f"Running {verb} on {unit}")
            try:
                action(unit)
            except CommandError as e:
                self._warn(report, f"Failed to {verb} {unit}: {e}")

    def _remove_package(self, target: InstallTarget, report: RemovalReport):
        manager = self._package_manager(target)
        package = self.paths.package_name
        if manager is None or not manager.is_registered(package):
            return

        self.logger.info(f"Removing existing {manager.executable} package {package}")
        try:
            manager.remove(package)
        except CommandError as e:
            self._warn(report, f"Failed to remove package {package}, trying manual cleanup: {e}")
            return
        report.package_removed = True

    def _remove_binary(self, report: RemovalReport):
        binary = self.paths.binary_path
        if not binary.is_file():
            return
        self.logger.info(f"Removing existing binary {binary}")
        try:
            binary.unlink()
            report.binary_removed = True
        except OSError as e:
            self._warn(report, f"Failed to remove existing binary {binary}: {e}")

    def _remove_config(self, report: RemovalReport):
        config = self.paths.config_file
        if not config.is_file():
            return

        try:
            report.config_backup = timestamped_backup(
                config, self.backup_pattern, self.clock
            )
            self.logger.info(f"Config backed up to {report.config_backup}")
        except OSError as e:
            self._warn(report, f"Failed to back up existing config {config}: {e}")

        try:
            config.unlink()
            report.config_removed = True
        except OSError as e:
            self._warn(report, f"Failed to remove existing config {config}: {e}")

    def _remove_config_dir(self, report: RemovalReport):
        config_dir = self.paths.config_dir
        if not config_dir.is_dir():
            return
        try:
            if any(config_dir.iterdir()):
                self.logger.info(f"Config directory not empty, keeping {config_dir}")
                return
            config_dir.rmdir()
            report.config_dir_removed = True
        except OSError as e:
            self._warn(report, f"Failed to remove config directory {config_dir}: {e}")

    def _remove_unit_files(self, report: RemovalReport):
        for unit_file in self.paths.unit_files:
            if not unit_file.is_file():
                continue
            self.logger.info(f"Removing systemd service file {unit_file}")
            try:
                unit_file.unlink()
                report.unit_files_removed.append(unit_file)
            except OSError as e:
                self._warn(report, f"Failed to remove service file {unit_file}: {e}")

    def _reload_init_system(self, report: RemovalReport):
        if not (report.service_found or report.package_removed):
            return
        if not self.service_manager.available():
            return

        unit = self.paths.service_unit
        try:
            self.service_manager.daemon_reload()
            report.daemon_reloaded = True
        except CommandError as e:
            self._warn(report, f"Failed to reload systemd daemon: {e}")

        if self.service_manager.is_failed(unit):
            try:
                self.service_manager.reset_failed(unit)
            except CommandError as e:
                self._warn(report, f"Failed to reset failed state of {unit}: {e}")

    def remove_existing(self, target: InstallTarget) -> RemovalReport:
        """
        Removes any previous installation, step by step.

        This method never raises: every failure is logged and recorded as a
        warning on the report so that the install can proceed.

        Args:
            target: The resolved target, which selects the package manager.

        Returns:
            A report of what was found and removed.
        """

        report = RemovalReport()

        self._release_service(report)
        self._remove_package(target, report)
        self._remove_binary(report)
        self._remove_config(report)
        self._remove_unit_files(report)
        self._remove_config_dir(report)
        self._reload_init_system(report)

        if report.found_existing:
            self.logger.info("Existing installation cleaned up")
        else:
            self.logger.info("No existing installation found")

        return report
