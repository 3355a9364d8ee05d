"""Runs external commands with consistent logging."""

import dataclasses
import logging
import shlex
import shutil
import subprocess
from typing import List, Sequence

from ..application.exceptions import CommandError

logger = logging.getLogger(__name__)

# Exit status reported when the executable itself cannot be found.
_NOT_FOUND_RETURNCODE = 127


@dataclasses.dataclass(frozen=True)
class CmdResult:
    argv: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def is_command_present(name: str) -> bool:
    return shutil.which(name) is not None


class CommandRunner:
    """Executes commands and captures their output."""

    def run(self, argv: Sequence[str], *, check: bool = True) -> CmdResult:
        """
        Run a command, always logging it.

        Args:
            argv: The command and its arguments.
            check: Raise when the command exits non-zero.

        Returns:
            The captured result. A missing executable yields exit status 127.

        Raises:
            CommandError: If check is set and the command fails.
        """

        argv_list = list(argv)
        logger.debug(f"CMD {format_argv(argv_list)}")

        try:
            p = subprocess.run(
                argv_list,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
            result = CmdResult(argv_list, p.returncode, p.stdout, p.stderr)
        except FileNotFoundError as e:
            result = CmdResult(argv_list, _NOT_FOUND_RETURNCODE, "", str(e))

        if result.stdout:
            logger.debug(f"STDOUT {result.stdout.strip()}")
        if result.stderr:
            logger.debug(f"STDERR {result.stderr.strip()}")

        if check and not result.ok:
            raise CommandError(
                f"Command failed ({result.returncode}): "
                f"{format_argv(argv_list)}: {result.stderr.strip()}",
                returncode=result.returncode,
            )

        return result
