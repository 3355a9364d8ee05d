"""
The core application service, containing the installation state machine.

This module defines the orchestrator (InstallerService) that sequences the
platform probe, removal, download, install and configuration steps. It only
emits structured step events; rendering them is left to a ProgressReporter.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from .domain import *
from .exceptions import InstallerError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InstallerService:
    """Orchestrates one installation run from probe to service check."""

    def __init__(
        self,
        probe: PlatformProbe,
        remover: ExistingInstallationRemover,
        fetcher: ArtifactFetcher,
        installer: Installer,
        config_installer: ConfigurationInstaller,
        service_manager: ServiceManager,
        reporter: ProgressReporter,
        options: RunOptions,
        paths: InstallPaths,
        work_dir: Path,
        config_download_name: str,
    ):
        """Initializes the service with its ports and the run options."""
        self.probe = probe
        self.remover = remover
        self.fetcher = fetcher
        self.installer = installer
        self.config_installer = config_installer
        self.service_manager = service_manager
        self.reporter = reporter
        self.options = options
        self.paths = paths
        self.work_dir = Path(work_dir)
        self.config_download_path = self.work_dir / config_download_name

        self.steps = self._plan()
        self.context: Dict[str, Any] = {}

    def _plan(self) -> List[Step]:
        """Lists the steps of this run; config steps only when replacing."""
        steps = [
            Step.CHECK_PRIVILEGES,
            Step.RESOLVE_PLATFORM,
            Step.REMOVE_EXISTING,
            Step.DOWNLOAD_ARTIFACT,
        ]
        if self.options.replace_config:
            steps.append(Step.DOWNLOAD_CONFIG)
        steps.append(Step.INSTALL)
        if self.options.replace_config:
            steps.append(Step.APPLY_CONFIG)
        steps.append(Step.CHECK_SERVICE)
        return steps

    def _event(
        self, step: Step, status: StepStatus, message: str, **detail
    ) -> StepEvent:
        return StepEvent(
            step=step,
            status=status,
            index=self.steps.index(step) + 1,
            total=len(self.steps),
            message=message,
            detail=detail,
        )

    def _warn(self, step: Step, message: str):
        logger.warning(message)
        self.reporter.step(self._event(step, StepStatus.WARNING, message))

    def _run_step(
        self,
        step: Step,
        action: Callable[[], T],
        done: Callable[[T], str],
    ) -> T:
        """Runs one step, reporting it and annotating any failure."""
        self.reporter.step(self._event(step, StepStatus.RUNNING, step.value))
        try:
            result = action()
        except InstallerError as e:
            e.annotate(step.value, self.context)
            self.reporter.failed(
                self._event(step, StepStatus.ERROR, str(e), **e.context)
            )
            raise
        self.reporter.step(self._event(step, StepStatus.SUCCESS, done(result)))
        return result

    # --- Steps ---

    def _check_privileges(self) -> bool:
        is_root = self.probe.has_root_privileges()
        if not is_root:
            self._warn(
                Step.CHECK_PRIVILEGES,
                "Running without sudo. Some features may be limited.",
            )
        return is_root

    def _resolve(self) -> InstallTarget:
        target = self.probe.resolve(self.options.requested_version)
        self.context.update(
            download_file=target.artifact_filename,
            download_url=target.artifact_url,
            architecture=target.architecture.value,
            package_manager=target.package_strategy.value,
        )
        return target

    def _remove(self, target: InstallTarget) -> RemovalReport:
        state = self.remover.inspect(target)
        if not state.is_clean:
            logger.info(
                f"Existing installation: service {state.service_status.value}, "
                f"binary {state.binary_present}, config {state.config_present}, "
                f"package {state.package_registered}"
            )
        report = self.remover.remove_existing(target)
        for warning in report.warnings:
            self.reporter.step(
                self._event(Step.REMOVE_EXISTING, StepStatus.WARNING, warning)
            )
        return report

    def _download_config(self) -> ConfigurationDocument:
        self.context["config_url"] = self.options.config_url
        document = self.fetcher.fetch_config(
            self.options.config_url, self.config_download_path
        )
        if not document.looks_valid:
            self.reporter.step(
                self._event(
                    Step.DOWNLOAD_CONFIG,
                    StepStatus.WARNING,
                    "Downloaded file may not be a valid OTEL config",
                    size_bytes=document.size_bytes,
                )
            )
        return document

    def _cleanup(self):
        """Removes the downloaded config; the artifact is kept for reference."""
        try:
            self.config_download_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to clean up {self.config_download_path}: {e}")

    def run(self) -> InstallReport:
        """
        Executes the installation steps in order.

        The target is resolved before anything is removed or downloaded, so
        an unsupported host fails without touching the system. Any
        InstallerError aborts the run after being annotated with the failing
        step and the known context (download URL, architecture, package
        manager).

        Returns:
            The report of the completed installation.

        Raises:
            InstallerError: From the first step that fails.
        """

        options = self.options
        logger.info(
            f"Starting installer. Version: {options.requested_version}, "
            f"Mode: {options.mode.value}, Replace config: {options.replace_config}"
        )
        self.reporter.started(options, len(self.steps))

        if not options.has_semantic_version:
            self._warn(
                Step.CHECK_PRIVILEGES,
                f"Version '{options.requested_version}' does not follow semantic "
                f"versioning format (e.g., 0.126.0). Proceeding anyway.",
            )

        try:
            self._run_step(
                Step.CHECK_PRIVILEGES,
                self._check_privileges,
                lambda is_root: "System privileges verified"
                if is_root else "Running without sudo",
            )
            target = self._run_step(
                Step.RESOLVE_PLATFORM,
                self._resolve,
                lambda t: f"Linux system detected: {t.os_family} "
                f"({t.architecture.value}, {t.package_strategy.value})",
            )
            removal = self._run_step(
                Step.REMOVE_EXISTING,
                lambda: self._remove(target),
                lambda r: "Existing installation cleanup completed"
                if r.found_existing else "No existing installation found",
            )
            artifact_path = self._run_step(
                Step.DOWNLOAD_ARTIFACT,
                lambda: self.fetcher.fetch(
                    target.artifact_url, self.work_dir / target.artifact_filename
                ),
                lambda p: f"Downloaded: {p.name}",
            )

            document: Optional[ConfigurationDocument] = None
            if options.replace_config:
                document = self._run_step(
                    Step.DOWNLOAD_CONFIG,
                    self._download_config,
                    lambda d: f"Configuration file downloaded ({d.size_bytes} bytes)",
                )

            self._run_step(
                Step.INSTALL,
                lambda: self.installer.install(target, artifact_path),
                lambda _: "OTEL Collector installed successfully",
            )

            backup: Optional[Path] = None
            if document is not None:
                backup = self._run_step(
                    Step.APPLY_CONFIG,
                    lambda: self.config_installer.apply(document.path),
                    lambda _: "Configuration installed successfully",
                )

            service_status = self._run_step(
                Step.CHECK_SERVICE,
                lambda: self.service_manager.status(self.paths.service_unit),
                lambda s: f"Service {self.paths.service_unit}: {s.value}",
            )
        finally:
            self._cleanup()

        report = InstallReport(
            target=target,
            artifact_path=artifact_path,
            removal=removal,
            paths=self.paths,
            config_document=document,
            config_backup=backup,
            service_status=service_status,
        )
        self.reporter.completed(report)
        logger.info("Installation completed.")
        return report
