"""systemd implementation of the ServiceManager port."""

import logging

from ..application.domain import ServiceManager, ServiceStatus
from .command import CommandRunner, is_command_present

_SYSTEMCTL = "systemctl"


class SystemdServiceManager(ServiceManager):
    """Queries and drives units through systemctl."""

    def __init__(self, runner: CommandRunner):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.runner = runner

    def available(self) -> bool:
        return is_command_present(_SYSTEMCTL)

    def _query(self, verb: str, unit: str) -> bool:
        """Runs a quiet systemctl predicate such as is-active."""
        result = self.runner.run([_SYSTEMCTL, verb, "--quiet", unit], check=False)
        return result.ok

    def is_registered(self, unit: str) -> bool:
        result = self.runner.run(
            [_SYSTEMCTL, "list-units", "--full", "--all", "--plain", "--no-legend"],
            check=False,
        )
        return any(
            line.split(maxsplit=1)[0] == unit
            for line in result.stdout.splitlines()
            if line.strip()
        )

    def is_active(self, unit: str) -> bool:
        return self._query("is-active", unit)

    def is_enabled(self, unit: str) -> bool:
        return self._query("is-enabled", unit)

    def is_failed(self, unit: str) -> bool:
        return self._query("is-failed", unit)

    def reset_failed(self, unit: str):
        self.runner.run([_SYSTEMCTL, "reset-failed", unit])

    def stop(self, unit: str):
        self.runner.run([_SYSTEMCTL, "stop", unit])

    def disable(self, unit: str):
        self.runner.run([_SYSTEMCTL, "disable", unit])

    def daemon_reload(self):
        self.runner.run([_SYSTEMCTL, "daemon-reload"])

    def status(self, unit: str) -> ServiceStatus:
        if not self.available() or not self.is_registered(unit):
            return ServiceStatus.ABSENT
        if self.is_active(unit):
            return ServiceStatus.RUNNING
        return ServiceStatus.STOPPED
