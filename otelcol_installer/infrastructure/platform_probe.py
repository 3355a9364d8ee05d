"""os-release based implementation of the PlatformProbe port."""

import logging
import os
import platform
import re
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from ..application.domain import (
    Architecture,
    InstallTarget,
    PackageStrategy,
    PlatformProbe,
    artifact_filename,
)
from ..application.exceptions import ConfigurationError, UnsupportedPlatform

UNKNOWN_LINUX = "Unknown Linux"

# Matched in order against the NAME field of os-release.
DISTRIBUTION_TABLE: List[Tuple[re.Pattern, PackageStrategy]] = [
    (re.compile(r"^(Ubuntu|Debian|Linux Mint)"), PackageStrategy.NATIVE_DEB),
    (
        re.compile(r"^(Amazon Linux|Red Hat|CentOS|Rocky|Oracle Linux)"),
        PackageStrategy.NATIVE_RPM,
    ),
    (re.compile(r"^(SLES|openSUSE)"), PackageStrategy.NATIVE_RPM),
    (
        re.compile(r"^(Fedora|Arch Linux|Alpine|Gentoo|NixOS|Void)"),
        PackageStrategy.ARCHIVE,
    ),
]

ARCHITECTURE_ALIASES = {
    "x86_64": Architecture.AMD64,
    "amd64": Architecture.AMD64,
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,
}


def parse_os_name(text: str) -> Optional[str]:
    """Extracts the NAME field from os-release content."""
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == "NAME":
            return value.strip().strip('"').strip("'")
    return None


class OsReleaseProbe(PlatformProbe):
    """Detects the host from os-release metadata and the machine type."""

    def __init__(
        self,
        binary_name: str,
        release_base_url: str,
        os_release_files: Sequence[str],
        strict: bool = False,
        system: Callable[[], str] = platform.system,
        machine: Callable[[], str] = platform.machine,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        """
        Initializes the probe; the callables are seams for other hosts.

        Raises:
            ConfigurationError: If the binary name is empty or the release
                                URL has no {version} placeholder.
        """

        if not binary_name:
            raise ConfigurationError(
                "installer.binary_name is empty. Please check your config files."
            )
        if "{version}" not in release_base_url:
            raise ConfigurationError(
                f"installer.release_base_url has no {{version}} placeholder: "
                f"{release_base_url}"
            )

        self.logger = logging.getLogger(self.__class__.__name__)
        self.binary_name = binary_name
        self.release_base_url = release_base_url
        self.os_release_files = [Path(p) for p in os_release_files]
        self.strict = strict
        self._system = system
        self._machine = machine
        self._geteuid = geteuid

    def read_os_name(self) -> str:
        for path in self.os_release_files:
            try:
                name = parse_os_name(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                self.logger.debug(f"Skipping unreadable {path}: {e}")
                continue
            if name:
                return name
        return UNKNOWN_LINUX

    def strategy_for(self, os_name: str) -> PackageStrategy:
        """
        Maps a distribution name to a package strategy.

        Unlisted distributions get the archive strategy unless strict
        detection is enabled, in which case they are rejected.

        Raises:
            UnsupportedPlatform: In strict mode, for an unlisted name.
        """
        for pattern, strategy in DISTRIBUTION_TABLE:
            if pattern.match(os_name):
                return strategy

        if self.strict:
            raise UnsupportedPlatform(f"Unrecognized Linux distribution: {os_name}")

        self.logger.warning(
            f"Unrecognized distribution '{os_name}', using the tar.gz archive."
        )
        return PackageStrategy.ARCHIVE

    def architecture(self) -> Architecture:
        machine = self._machine()
        try:
            return ARCHITECTURE_ALIASES[machine.lower()]
        except KeyError:
            raise UnsupportedPlatform(
                f"Unsupported architecture: {machine}"
            ) from None

    def resolve(self, version: str) -> InstallTarget:
        """
        Resolves the artifact to install on this host.

        Args:
            version: The collector release, e.g. '0.126.0'.

        Returns:
            A fully populated InstallTarget.

        Raises:
            UnsupportedPlatform: For non-Linux hosts and unknown architectures.
        """

        system = self._system()
        if system != "Linux":
            raise UnsupportedPlatform(f"Unsupported operating system: {system}")

        os_name = self.read_os_name()
        strategy = self.strategy_for(os_name)
        arch = self.architecture()

        filename = artifact_filename(self.binary_name, version, arch, strategy)
        base_url = self.release_base_url.format(version=version).rstrip("/")
        target = InstallTarget(
            os_family=os_name,
            package_strategy=strategy,
            architecture=arch,
            artifact_version=version,
            artifact_filename=filename,
            artifact_url=f"{base_url}/{filename}",
        )

        self.logger.info(
            f"Linux system detected: {os_name} "
            f"(architecture: {arch.value}, package: {strategy.value})"
        )
        return target

    def has_root_privileges(self) -> bool:
        return self._geteuid() == 0
