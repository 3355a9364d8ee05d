"""Shared fixtures: fake command runner, host paths under tmp_path, archives."""

import io
import tarfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import httpx
import pytest

from otelcol_installer.application.domain import InstallPaths
from otelcol_installer.application.exceptions import CommandError
from otelcol_installer.infrastructure import package_managers as package_managers_module
from otelcol_installer.infrastructure import systemd as systemd_module
from otelcol_installer.infrastructure.command import CmdResult


class FakeRunner:
    """Records commands and answers them from a table of argv prefixes."""

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], Tuple[int, str]]] = None):
        self.calls: List[List[str]] = []
        self.responses = dict(responses or {})

    def _lookup(self, argv: List[str]) -> Tuple[int, str]:
        for key in sorted(self.responses, key=len, reverse=True):
            if tuple(argv[: len(key)]) == key:
                return self.responses[key]
        return 0, ""

    def run(self, argv: Sequence[str], *, check: bool = True) -> CmdResult:
        argv = list(argv)
        self.calls.append(argv)
        returncode, stdout = self._lookup(argv)
        result = CmdResult(argv, returncode, stdout, "boom" if returncode else "")
        if check and returncode != 0:
            raise CommandError(f"Command failed ({returncode})", returncode=returncode)
        return result

    def called(self, *prefix: str) -> bool:
        return any(tuple(call[: len(prefix)]) == prefix for call in self.calls)


class FixedClock:
    """Always returns the same instant, to force backup name collisions."""

    def __init__(self, instant: datetime = datetime(2025, 6, 1, 12, 30, 45)):
        self.instant = instant

    def __call__(self) -> datetime:
        return self.instant


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def host_paths(tmp_path) -> InstallPaths:
    root = tmp_path / "host"
    for sub in ("usr/local/bin", "usr/lib/systemd/system", "etc/systemd/system"):
        (root / sub).mkdir(parents=True)
    return InstallPaths(
        binary_path=root / "usr/local/bin/otelcol-contrib",
        config_dir=root / "etc/otelcol-contrib",
        config_file=root / "etc/otelcol-contrib/config.yaml",
        unit_files=(
            root / "usr/lib/systemd/system/otelcol-contrib.service",
            root / "etc/systemd/system/otelcol-contrib.service",
        ),
        service_name="otelcol-contrib",
        package_name="otelcol-contrib",
    )


@pytest.fixture
def work_dir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def present_commands(monkeypatch):
    """Controls which executables the adapters believe are installed."""
    present = set()

    def is_present(name: str) -> bool:
        return name in present

    monkeypatch.setattr(systemd_module, "is_command_present", is_present)
    monkeypatch.setattr(package_managers_module, "is_command_present", is_present)
    return present


def build_tarball(members: Dict[str, bytes]) -> bytes:
    """Builds an in-memory tar.gz with the given file members."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def mock_client(routes: Dict[str, Tuple[int, bytes]]) -> httpx.Client:
    """
    An httpx client answering from a URL -> (status, body) table.

    Redirect statuses use the body as the Location; unknown URLs get a 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404)
        status, body = route
        if 300 <= status < 400:
            return httpx.Response(status, headers={"Location": body.decode()})
        return httpx.Response(status, content=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def tarball():
    return build_tarball


@pytest.fixture
def client_for():
    clients = []

    def factory(routes):
        client = mock_client(routes)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()
