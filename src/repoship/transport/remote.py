"""Remote command execution over ssh."""

import shlex
import subprocess
from typing import Sequence

from ..common.config import DEFAULT_SSH_OPTIONS
from ..common.errors import RemoteCommandError
from ..common.logger import get_logger
from .execution import CommandResult, CommandRunner, decode_output

logger = get_logger("remote")


class RemoteRunner(CommandRunner):
    """Runs argument lists on a remote host through ssh.

    The argument list is quoted with shlex.join before it is handed to ssh,
    so the remote login shell sees exactly the arguments given here.
    """

    def __init__(
        self,
        host: str,
        ssh_command: Sequence[str] = ("ssh",),
        ssh_options: Sequence[str] = DEFAULT_SSH_OPTIONS,
    ):
        """Initialize remote runner.

        Args:
            host: Remote host, optionally as user@host
            ssh_command: ssh executable and fixed leading arguments
            ssh_options: Extra options placed before the host
        """
        if not host:
            raise ValueError("A remote host is required")
        self.host = host
        self.ssh_command = list(ssh_command)
        self.ssh_options = list(ssh_options)

    @property
    def location(self) -> str:
        return self.host

    def build_command(self, args: Sequence[str]) -> list:
        """Build the local ssh invocation for a remote argument list."""
        remote = shlex.join(str(arg) for arg in args)
        return self.ssh_command + self.ssh_options + [self.host, remote]

    def run(self, args: Sequence[str], check: bool = True) -> CommandResult:
        remote_args = [str(arg) for arg in args]
        cmd = self.build_command(remote_args)
        logger.debug(f"Running on {self.host}: {cmd[-1]}")

        try:
            completed = subprocess.run(cmd, capture_output=True)
        except FileNotFoundError as e:
            result = CommandResult(args=remote_args, returncode=127, stderr=str(e))
        else:
            result = CommandResult(
                args=remote_args,
                returncode=completed.returncode,
                stdout=decode_output(completed.stdout),
                stderr=decode_output(completed.stderr),
            )

        if check and not result.ok:
            raise RemoteCommandError(
                self.host, remote_args, result.returncode, result.stdout, result.stderr
            )
        return result
