"""Adapters for the native package managers, dpkg and rpm."""

import logging
from pathlib import Path
from typing import Dict, List

from ..application.domain import PackageStrategy
from .command import CmdResult, CommandRunner, is_command_present


class PackageManager:
    """Base adapter; subclasses provide the command lines."""

    executable: str = ""

    def __init__(self, runner: CommandRunner):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.runner = runner

    def available(self) -> bool:
        return is_command_present(self.executable)

    def install_argv(self, artifact_path: Path) -> List[str]:
        raise NotImplementedError

    def install(self, artifact_path: Path) -> CmdResult:
        """Installs a package file; the caller decides what a failure means."""
        return self.runner.run(self.install_argv(artifact_path), check=False)

    def is_registered(self, package: str) -> bool:
        raise NotImplementedError

    def remove(self, package: str):
        raise NotImplementedError


class DpkgPackageManager(PackageManager):
    executable = "dpkg"

    def install_argv(self, artifact_path: Path) -> List[str]:
        return ["dpkg", "-i", str(artifact_path)]

    def is_registered(self, package: str) -> bool:
        # Packages left in the config-files state still count, purge removes them.
        result = self.runner.run(
            ["dpkg-query", "-W", "-f=${Status}", package], check=False
        )
        status = result.stdout.strip()
        return result.ok and bool(status) and "not-installed" not in status

    def remove(self, package: str):
        """Purges the package together with its configuration files."""
        self.runner.run(["dpkg", "--purge", package])


class RpmPackageManager(PackageManager):
    executable = "rpm"

    def install_argv(self, artifact_path: Path) -> List[str]:
        return ["rpm", "-i", str(artifact_path)]

    def is_registered(self, package: str) -> bool:
        return self.runner.run(["rpm", "-q", package], check=False).ok

    def remove(self, package: str):
        self.runner.run(["rpm", "-e", package])


def default_package_managers(runner: CommandRunner) -> Dict[PackageStrategy, PackageManager]:
    """Maps each native strategy to its package manager."""
    return {
        PackageStrategy.NATIVE_DEB: DpkgPackageManager(runner),
        PackageStrategy.NATIVE_RPM: RpmPackageManager(runner),
    }
