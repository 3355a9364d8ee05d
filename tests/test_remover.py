"""Tests for best-effort removal of a previous installation."""

import pytest

from otelcol_installer.application.domain import (
    Architecture,
    InstallTarget,
    PackageStrategy,
    ServiceManager,
    ServiceStatus,
)
from otelcol_installer.application.exceptions import CommandError
from otelcol_installer.infrastructure.package_managers import default_package_managers
from otelcol_installer.infrastructure.remover import HostRemover
from otelcol_installer.infrastructure.systemd import SystemdServiceManager

UNIT = "otelcol-contrib.service"
LISTED = f"{UNIT} loaded active running OpenTelemetry Collector Contrib\n"


def make_target(strategy):
    return InstallTarget(
        os_family="Test Linux",
        package_strategy=strategy,
        architecture=Architecture.AMD64,
        artifact_version="0.126.0",
        artifact_filename=f"otelcol-contrib_0.126.0_linux_amd64.{strategy.extension}",
        artifact_url="https://example.test/artifact",
    )


@pytest.fixture
def remover(runner, host_paths, clock):
    return HostRemover(
        paths=host_paths,
        service_manager=SystemdServiceManager(runner),
        package_managers=default_package_managers(runner),
        backup_pattern="{name}.backup.{stamp}",
        clock=clock,
    )


def test_clean_host_reports_nothing(remover, runner, present_commands):
    report = remover.remove_existing(make_target(PackageStrategy.ARCHIVE))

    assert not report.found_existing
    assert report.warnings == []
    assert not report.daemon_reloaded
    assert runner.calls == []


def test_running_service_is_stopped_and_disabled(remover, runner, present_commands):
    present_commands.add("systemctl")
    runner.responses.update({
        ("systemctl", "list-units"): (0, LISTED),
        ("systemctl", "is-failed"): (1, ""),
        ("systemctl", "is-active"): (0, ""),
        ("systemctl", "is-enabled"): (0, ""),
    })

    report = remover.remove_existing(make_target(PackageStrategy.ARCHIVE))

    assert report.service_found
    assert runner.called("systemctl", "stop", UNIT)
    assert runner.called("systemctl", "disable", UNIT)
    assert not runner.called("systemctl", "reset-failed")
    assert runner.called("systemctl", "daemon-reload")
    assert report.daemon_reloaded


def test_failed_service_state_is_reset(remover, runner, present_commands):
    present_commands.add("systemctl")
    runner.responses.update({
        ("systemctl", "list-units"): (0, LISTED),
        ("systemctl", "is-failed"): (0, ""),
        ("systemctl", "is-active"): (3, ""),
        ("systemctl", "is-enabled"): (1, ""),
    })

    remover.remove_existing(make_target(PackageStrategy.ARCHIVE))

    assert runner.called("systemctl", "reset-failed", UNIT)
    assert not runner.called("systemctl", "stop")
    assert not runner.called("systemctl", "disable")


def test_deb_package_is_purged(remover, runner, present_commands):
    present_commands.add("dpkg")
    runner.responses[("dpkg-query",)] = (0, "install ok installed")

    report = remover.remove_existing(make_target(PackageStrategy.NATIVE_DEB))

    assert report.package_removed
    assert runner.called("dpkg", "--purge", "otelcol-contrib")


def test_rpm_package_is_erased(remover, runner, present_commands):
    present_commands.add("rpm")

    report = remover.remove_existing(make_target(PackageStrategy.NATIVE_RPM))

    assert report.package_removed
    assert runner.called("rpm", "-e", "otelcol-contrib")


def test_unregistered_package_is_left_alone(remover, runner, present_commands):
    present_commands.add("dpkg")
    runner.responses[("dpkg-query",)] = (1, "")

    report = remover.remove_existing(make_target(PackageStrategy.NATIVE_DEB))

    assert not report.package_removed
    assert not runner.called("dpkg", "--purge")


def test_failures_become_warnings_and_cleanup_continues(remover, runner, host_paths, present_commands):
    present_commands.update({"systemctl", "dpkg"})
    runner.responses.update({
        ("systemctl", "list-units"): (0, LISTED),
        ("systemctl", "is-failed"): (1, ""),
        ("systemctl", "is-active"): (0, ""),
        ("systemctl", "is-enabled"): (0, ""),
        ("systemctl", "stop"): (1, ""),
        ("systemctl", "daemon-reload"): (1, ""),
        ("dpkg-query",): (0, "install ok installed"),
        ("dpkg", "--purge"): (1, ""),
    })
    host_paths.binary_path.write_bytes(b"bin")

    report = remover.remove_existing(make_target(PackageStrategy.NATIVE_DEB))

    assert len(report.warnings) == 3
    assert not report.package_removed
    assert report.binary_removed
    assert not host_paths.binary_path.exists()
    assert runner.called("systemctl", "disable", UNIT)


def test_leftover_files_are_removed_with_config_backup(remover, host_paths, present_commands):
    host_paths.binary_path.write_bytes(b"bin")
    host_paths.config_dir.mkdir()
    host_paths.config_file.write_text("old config\n")
    for unit_file in host_paths.unit_files:
        unit_file.write_text("[Unit]\n")

    report = remover.remove_existing(make_target(PackageStrategy.ARCHIVE))

    assert report.binary_removed and report.config_removed
    assert not host_paths.binary_path.exists()
    assert not host_paths.config_file.exists()
    assert report.config_backup.name == "config.yaml.backup.20250601_123045"
    assert report.config_backup.read_text() == "old config\n"
    assert report.unit_files_removed == list(host_paths.unit_files)
    assert not any(unit.exists() for unit in host_paths.unit_files)
    # The backup keeps the directory in place.
    assert host_paths.config_dir.is_dir()
    assert not report.config_dir_removed


def test_empty_config_dir_is_removed(remover, host_paths, present_commands):
    host_paths.config_dir.mkdir()

    report = remover.remove_existing(make_target(PackageStrategy.ARCHIVE))

    assert report.config_dir_removed
    assert not host_paths.config_dir.exists()


def test_no_reload_without_service_or_package_changes(remover, runner, host_paths, present_commands):
    present_commands.add("systemctl")
    host_paths.binary_path.write_bytes(b"bin")

    report = remover.remove_existing(make_target(PackageStrategy.ARCHIVE))

    assert report.binary_removed
    assert not runner.called("systemctl", "daemon-reload")


def test_inspect_reports_installed_state(remover, runner, host_paths, present_commands):
    present_commands.update({"systemctl", "dpkg"})
    runner.responses.update({
        ("systemctl", "list-units"): (0, LISTED),
        ("systemctl", "is-active"): (3, ""),
        ("dpkg-query",): (0, "install ok installed"),
    })
    host_paths.binary_path.write_bytes(b"bin")

    state = remover.inspect(make_target(PackageStrategy.NATIVE_DEB))

    assert state.service_status is ServiceStatus.STOPPED
    assert state.binary_present
    assert not state.config_present
    assert state.package_registered
    assert not state.is_clean


def test_inspect_without_systemd_is_absent(remover, present_commands):
    state = remover.inspect(make_target(PackageStrategy.ARCHIVE))

    assert state.service_status is ServiceStatus.ABSENT
    assert state.is_clean


class InMemoryServiceManager(ServiceManager):
    """Keeps unit state in a dict and records every command."""

    def __init__(self, active=True, enabled=True, failing=()):
        self.state = {"active": active, "enabled": enabled, "failed": False}
        self.failing = set(failing)
        self.commands = []

    def _command(self, name):
        self.commands.append(name)
        if name in self.failing:
            raise CommandError(f"{name} refused", returncode=1)

    def available(self):
        return True

    def is_registered(self, unit):
        return True

    def is_active(self, unit):
        return self.state["active"]

    def is_enabled(self, unit):
        return self.state["enabled"]

    def is_failed(self, unit):
        return self.state["failed"]

    def reset_failed(self, unit):
        self._command("reset-failed")
        self.state["failed"] = False

    def stop(self, unit):
        self._command("stop")
        self.state["active"] = False

    def disable(self, unit):
        self._command("disable")
        self.state["enabled"] = False

    def daemon_reload(self):
        self._command("daemon-reload")

    def status(self, unit):
        return ServiceStatus.RUNNING if self.state["active"] else ServiceStatus.STOPPED


def test_remover_drives_any_service_manager(host_paths, clock):
    service_manager = InMemoryServiceManager(failing={"stop"})
    remover = HostRemover(
        paths=host_paths,
        service_manager=service_manager,
        package_managers={},
        backup_pattern="{name}.backup.{stamp}",
        clock=clock,
    )

    assert remover.inspect(make_target(PackageStrategy.NATIVE_DEB)).service_status is ServiceStatus.RUNNING
    report = remover.remove_existing(make_target(PackageStrategy.NATIVE_DEB))

    assert report.service_found
    assert service_manager.commands == ["stop", "disable", "daemon-reload"]
    assert report.warnings == [f"Failed to stop {UNIT}: stop refused"]
    assert report.daemon_reloaded
    assert service_manager.state["enabled"] is False
