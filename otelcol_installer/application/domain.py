"""
This module defines the core domain models for the installer.

These classes represent the pure, technology-agnostic entities and data
structures that the installation state machine operates on, together with
the ports that infrastructure adapters implement.
"""

import dataclasses
import enum
import re
from pathlib import Path

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")


# --- Enumerations ---

class PackageStrategy(str, enum.Enum):
    """The install mechanism selected for a host."""

    NATIVE_DEB = "deb"
    NATIVE_RPM = "rpm"
    ARCHIVE = "tar"

    @property
    def extension(self) -> str:
        return "tar.gz" if self is PackageStrategy.ARCHIVE else self.value

    @property
    def is_native(self) -> bool:
        return self is not PackageStrategy.ARCHIVE


class Architecture(str, enum.Enum):
    AMD64 = "amd64"
    ARM64 = "arm64"


class Mode(str, enum.Enum):
    INTERACTIVE = "interactive"
    BASIC = "basic"


class ServiceStatus(str, enum.Enum):
    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


class Step(str, enum.Enum):
    """The ordered steps of an installation run."""

    CHECK_PRIVILEGES = "Checking system privileges"
    RESOLVE_PLATFORM = "Scanning system environment"
    REMOVE_EXISTING = "Checking for existing installation"
    DOWNLOAD_ARTIFACT = "Downloading OTEL Collector"
    DOWNLOAD_CONFIG = "Downloading configuration file"
    INSTALL = "Installing OTEL Collector"
    APPLY_CONFIG = "Installing custom configuration"
    CHECK_SERVICE = "Checking service status"


class StepStatus(str, enum.Enum):
    RUNNING = "running"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# --- Domain Models ---

def artifact_filename(
    binary_name: str,
    version: str,
    architecture: Architecture,
    strategy: PackageStrategy,
) -> str:
    """Build the release file name, e.g. otelcol-contrib_0.126.0_linux_amd64.deb."""
    return (
        f"{binary_name}_{version}_linux_{architecture.value}"
        f".{strategy.extension}"
    )


@dataclasses.dataclass(frozen=True)
class InstallTarget:
    """The fully resolved artifact to install on this host."""

    os_family: str
    package_strategy: PackageStrategy
    architecture: Architecture
    artifact_version: str
    artifact_filename: str
    artifact_url: str


@dataclasses.dataclass(frozen=True)
class InstallPaths:
    """The canonical locations this tool always uses."""

    binary_path: Path
    config_dir: Path
    config_file: Path
    unit_files: Tuple[Path, ...]
    service_name: str
    package_name: str

    @property
    def service_unit(self) -> str:
        return f"{self.service_name}.service"

    @classmethod
    def from_settings(cls, settings: Any) -> "InstallPaths":
        """Builds the paths from the `paths` and `installer` settings sections."""
        return cls(
            binary_path=Path(settings.paths.binary_path),
            config_dir=Path(settings.paths.config_dir),
            config_file=Path(settings.paths.config_file),
            unit_files=tuple(Path(p) for p in settings.paths.unit_files),
            service_name=settings.installer.service_name,
            package_name=settings.installer.package_name,
        )


@dataclasses.dataclass(frozen=True)
class RunOptions:
    """Options supplied once at start."""

    mode: Mode
    requested_version: str
    replace_config: bool
    config_url: str

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> "RunOptions":
        """Builds options from parsed command line arguments."""
        return cls(
            mode=Mode(values["mode"]),
            requested_version=values["version"],
            replace_config=bool(values["replace_config"]),
            config_url=values["config_url"],
        )

    @property
    def has_semantic_version(self) -> bool:
        return bool(SEMVER_PATTERN.match(self.requested_version))


@dataclasses.dataclass(frozen=True)
class InstalledState:
    """A snapshot of what a previous installation left on the host."""

    service_status: ServiceStatus
    binary_present: bool
    config_present: bool
    package_registered: bool

    @property
    def is_clean(self) -> bool:
        return (
            self.service_status is ServiceStatus.ABSENT
            and not self.binary_present
            and not self.config_present
            and not self.package_registered
        )


@dataclasses.dataclass
class RemovalReport:
    """What the remover found and cleaned up. Failures are only warnings."""

    service_found: bool = False
    package_removed: bool = False
    binary_removed: bool = False
    config_removed: bool = False
    config_backup: Optional[Path] = None
    unit_files_removed: List[Path] = dataclasses.field(default_factory=list)
    config_dir_removed: bool = False
    daemon_reloaded: bool = False
    warnings: List[str] = dataclasses.field(default_factory=list)

    @property
    def found_existing(self) -> bool:
        return (
            self.service_found
            or self.package_removed
            or self.binary_removed
            or self.config_removed
        )


@dataclasses.dataclass(frozen=True)
class ConfigurationDocument:
    """A downloaded collector configuration, checked only loosely."""

    path: Path
    size_bytes: int
    sections_found: Tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return self.size_bytes == 0

    @property
    def looks_valid(self) -> bool:
        return not self.is_empty and bool(self.sections_found)


@dataclasses.dataclass(frozen=True)
class StepEvent:
    """A structured progress notification emitted by the orchestrator."""

    step: Step
    status: StepStatus
    index: int
    total: int
    message: str
    detail: Dict[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass
class InstallReport:
    """The outcome of a successful run."""

    target: InstallTarget
    artifact_path: Path
    removal: RemovalReport
    paths: InstallPaths
    config_document: Optional[ConfigurationDocument] = None
    config_backup: Optional[Path] = None
    service_status: ServiceStatus = ServiceStatus.ABSENT


# --- Ports (Interfaces) ---

class PlatformProbe(ABC):
    """A port for detecting what this host needs."""

    @abstractmethod
    def resolve(self, version: str) -> InstallTarget:
        """
        Resolves the artifact to install.
        Raises UnsupportedPlatform for unknown OS or architecture.
        """
        pass

    @abstractmethod
    def has_root_privileges(self) -> bool:
        """Whether the process may mutate system paths."""
        pass


class ServiceManager(ABC):
    """
    A port for the init system.
    The queries never raise; the commands raise CommandError on failure.
    """

    @abstractmethod
    def available(self) -> bool:
        pass

    @abstractmethod
    def is_registered(self, unit: str) -> bool:
        pass

    @abstractmethod
    def is_active(self, unit: str) -> bool:
        pass

    @abstractmethod
    def is_enabled(self, unit: str) -> bool:
        pass

    @abstractmethod
    def is_failed(self, unit: str) -> bool:
        pass

    @abstractmethod
    def reset_failed(self, unit: str):
        pass

    @abstractmethod
    def stop(self, unit: str):
        pass

    @abstractmethod
    def disable(self, unit: str):
        pass

    @abstractmethod
    def daemon_reload(self):
        pass

    @abstractmethod
    def status(self, unit: str) -> ServiceStatus:
        """Reports whether a unit is absent, stopped or running."""
        pass


class ExistingInstallationRemover(ABC):
    """A port for bringing the host back to a clean slate."""

    @abstractmethod
    def inspect(self, target: InstallTarget) -> InstalledState:
        """Reports what a previous installation left behind."""
        pass

    @abstractmethod
    def remove_existing(self, target: InstallTarget) -> RemovalReport:
        """Removes a previous installation. Never raises."""
        pass


class ArtifactFetcher(ABC):
    """A port for any file downloader."""

    @abstractmethod
    def fetch(self, url: str, destination: Path) -> Path:
        """Downloads a file. Raises FetchError unless the status is 200."""
        pass

    @abstractmethod
    def fetch_config(self, url: str, destination: Path) -> ConfigurationDocument:
        """Downloads and loosely checks a collector configuration."""
        pass


class Installer(ABC):
    """A port for applying a downloaded artifact."""

    @abstractmethod
    def install(self, target: InstallTarget, artifact_path: Path):
        """Installs the artifact. Raises InstallError on failure."""
        pass


class ConfigurationInstaller(ABC):
    """A port for replacing the collector configuration."""

    @abstractmethod
    def apply(self, source: Path) -> Optional[Path]:
        """
        Installs the document at the canonical path.
        Returns the backup path, if one was taken. Raises ConfigError.
        """
        pass


class ProgressReporter(ABC):
    """A port for rendering what the orchestrator does."""

    @abstractmethod
    def started(self, options: RunOptions, total_steps: int):
        pass

    @abstractmethod
    def step(self, event: StepEvent):
        pass

    @abstractmethod
    def completed(self, report: InstallReport):
        pass

    @abstractmethod
    def failed(self, event: StepEvent):
        pass
