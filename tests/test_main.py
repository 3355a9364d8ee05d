"""Tests for the command line surface and the container wiring."""

import pytest

from otelcol_installer.__main__ import build_parser, run_application
from otelcol_installer.application.domain import Mode
from otelcol_installer.application.exceptions import ConfigurationError, UnsupportedPlatform
from otelcol_installer.application.service import InstallerService
from otelcol_installer.infrastructure.containers import Container
from otelcol_installer.infrastructure.reporters import BasicReporter, InteractiveReporter


def test_defaults_come_from_settings():
    args = build_parser().parse_args([])

    assert args.mode == "interactive"
    assert args.version == "0.126.0"
    assert args.replace_config is False
    assert args.config_url.endswith("/config.yaml")


def test_flags_are_parsed():
    args = build_parser().parse_args(
        ["--mode", "basic", "--version", "0.125.0", "--replace-config"]
    )

    assert args.mode == "basic"
    assert args.version == "0.125.0"
    assert args.replace_config is True
    assert build_parser().parse_args(["--no-replace-config"]).replace_config is False


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["--help"])

    assert exc_info.value.code == 0
    assert "--replace-config" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [["--bogus"], ["--mode", "fancy"]])
def test_usage_errors_exit_one(capsys, argv):
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(argv)

    assert exc_info.value.code == 1
    assert "usage:" in capsys.readouterr().err


@pytest.mark.parametrize("mode, reporter_type", [
    ("interactive", InteractiveReporter),
    ("basic", BasicReporter),
])
def test_container_wires_service(mode, reporter_type):
    container = Container()
    container.cli_args.from_dict(
        vars(build_parser().parse_args(["--mode", mode, "--version", "1.2.3"]))
    )

    service = container.installer_service()

    assert isinstance(service, InstallerService)
    assert isinstance(service.reporter, reporter_type)
    assert service.options.mode is Mode(mode)
    assert service.options.requested_version == "1.2.3"
    assert str(service.paths.binary_path) == "/usr/local/bin/otelcol-contrib"
    container.http_client().close()


def test_run_application_returns_one_on_installer_error(monkeypatch, capsys):
    def fail(self):
        raise UnsupportedPlatform("Unsupported operating system: Plan9").annotate(
            "Scanning system environment", {}
        )

    monkeypatch.setattr(InstallerService, "run", fail)
    args = build_parser().parse_args(["--mode", "basic"])

    assert run_application(args) == 1


def test_run_application_reports_settings_errors(monkeypatch, capsys):
    def misconfigured(self, **kwargs):
        raise ConfigurationError("installer.binary_name is empty.")

    monkeypatch.setattr(InstallerService, "__init__", misconfigured)
    args = build_parser().parse_args(["--mode", "basic"])

    assert run_application(args) == 1
    assert capsys.readouterr().out == "failed\n"
