"""
Infrastructure adapter that applies a downloaded artifact to the host.
"""

import logging
import shutil
import stat
import tarfile
from pathlib import Path
from typing import Dict

from ..application.domain import (
    InstallTarget,
    Installer,
    PackageStrategy,
)
from ..application.exceptions import BinaryNotFound, InstallError
from .package_managers import PackageManager


class ArtifactInstaller(Installer):
    """
    Installs a release artifact by the target's package strategy.

    Native packages are handed to dpkg or rpm, which place the binary, the
    default configuration and the service unit. Archives are extracted and
    only the binary is placed; no unit and no configuration are created.
    """

    def __init__(
        self,
        package_managers: Dict[PackageStrategy, PackageManager],
        binary_name: str,
        binary_path: Path,
        work_dir: Path,
    ):
        """Initializes the installer."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.package_managers = package_managers
        self.binary_name = binary_name
        self.binary_path = Path(binary_path)
        self.work_dir = Path(work_dir)

    def _install_package(self, strategy: PackageStrategy, artifact_path: Path):
        manager = self.package_managers[strategy]
        self.logger.info(
            f"Running: {' '.join(manager.install_argv(artifact_path))}"
        )
        result = manager.install(artifact_path)
        if not result.ok:
            raise InstallError(
                f"Package installation failed ({manager.executable} exit "
                f"{result.returncode}): {result.stderr.strip()}",
                exit_code=result.returncode,
            )

    def _extract(self, artifact_path: Path):
        """Unpacks the tarball into the working directory."""
        self.logger.info(f"Running: tar -xzf {artifact_path}")
        try:
            with tarfile.open(artifact_path, "r:gz") as archive:
                archive.extractall(self.work_dir, filter="data")
        except (tarfile.TarError, OSError) as e:
            raise InstallError(f"Failed to extract {artifact_path.name}: {e}") from e

    def _place_binary(self, extracted: Path):
        """Marks the binary executable and moves it to its canonical path."""
        self.logger.info(f"Moving binary: {extracted} -> {self.binary_path}")
        try:
            mode = extracted.stat().st_mode
            extracted.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            self.binary_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(extracted), str(self.binary_path))
        except OSError as e:
            raise InstallError(
                f"Failed to move binary to {self.binary_path}: {e}"
            ) from e

    def _install_archive(self, artifact_path: Path):
        self._extract(artifact_path)

        extracted = self.work_dir / self.binary_name
        if not extracted.is_file():
            available = sorted(p.name for p in self.work_dir.iterdir())
            raise BinaryNotFound(
                f"No {self.binary_name} binary found in extracted files "
                f"(available: {', '.join(available) or 'none'})"
            )

        self._place_binary(extracted)

    def install(self, target: InstallTarget, artifact_path: Path):
        """
        Apply the artifact according to the target's strategy.

        Args:
            target: The resolved install target.
            artifact_path: The downloaded package or archive.

        Raises:
            InstallError: If the package manager exits non-zero or the
                archive cannot be unpacked and placed.
            BinaryNotFound: If the archive lacks the collector binary.
        """

        strategy = target.package_strategy
        if strategy.is_native:
            self._install_package(strategy, artifact_path)
        else:
            self._install_archive(artifact_path)

        self.logger.info(
            f"Installed {target.artifact_filename} ({strategy.value})"
        )
