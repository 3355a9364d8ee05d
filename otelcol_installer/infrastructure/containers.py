"""
Dependency Injection container for the collector installer.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as the orchestrator and the
infrastructure adapters, based on the settings and the parsed CLI arguments.
"""

from pathlib import Path

from dependency_injector import containers, providers
import httpx

from ..application.domain import *
from ..application.service import InstallerService
from ..settings import settings

from .command import CommandRunner
from .config_installer import FileConfigurationInstaller
from .downloader import HttpDownloader
from .installer import ArtifactInstaller
from .package_managers import default_package_managers
from .platform_probe import OsReleaseProbe
from .remover import HostRemover
from .reporters import BasicReporter, InteractiveReporter
from .systemd import SystemdServiceManager


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    cli_args = providers.Configuration()

    config = providers.Object(settings)

    http_client = providers.Singleton(
        httpx.Client,
        headers={"User-Agent": "otelcol-installer"},
    )

    command_runner = providers.Singleton(CommandRunner)

    paths = providers.Singleton(InstallPaths.from_settings, config)

    work_dir = providers.Singleton(Path, config().paths.work_dir)

    run_options = providers.Singleton(RunOptions.from_mapping, cli_args)

    reporter = providers.Selector(
        cli_args.mode,
        interactive=providers.Singleton(InteractiveReporter),
        basic=providers.Singleton(BasicReporter),
    )

    show_progress = providers.Selector(
        cli_args.mode,
        interactive=providers.Object(True),
        basic=providers.Object(False),
    )

    package_managers = providers.Singleton(
        default_package_managers,
        runner=command_runner,
    )

    service_manager = providers.Singleton(
        SystemdServiceManager,
        runner=command_runner,
    )

    probe: providers.Factory[PlatformProbe] = providers.Factory(
        OsReleaseProbe,
        binary_name=config().installer.binary_name,
        release_base_url=config().installer.release_base_url,
        os_release_files=config().paths.os_release_files,
        strict=config().installer.strict_platform_detection,
    )

    remover: providers.Factory[ExistingInstallationRemover] = providers.Factory(
        HostRemover,
        paths=paths,
        service_manager=service_manager,
        package_managers=package_managers,
        backup_pattern=config().backups.removal_pattern,
    )

    fetcher: providers.Factory[ArtifactFetcher] = providers.Factory(
        HttpDownloader,
        client=http_client,
        timeout=config().installer.timeout,
        chunk_size=config().installer.downloader.chunk_size,
        show_progress=show_progress,
    )

    installer: providers.Factory[Installer] = providers.Factory(
        ArtifactInstaller,
        package_managers=package_managers,
        binary_name=config().installer.binary_name,
        binary_path=paths.provided.binary_path,
        work_dir=work_dir,
    )

    config_installer: providers.Factory[ConfigurationInstaller] = providers.Factory(
        FileConfigurationInstaller,
        config_file=paths.provided.config_file,
        backup_pattern=config().backups.config_pattern,
    )

    installer_service = providers.Factory(
        InstallerService,
        probe=probe,
        remover=remover,
        fetcher=fetcher,
        installer=installer,
        config_installer=config_installer,
        service_manager=service_manager,
        reporter=reporter,
        options=run_options,
        paths=paths,
        work_dir=work_dir,
        config_download_name=config().paths.config_download_name,
    )
