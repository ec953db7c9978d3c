"""Detached signatures with GnuPG."""

from pathlib import Path
from typing import Optional, Union

from ..common.logger import get_logger
from .execution import CommandResult, CommandRunner, LocalRunner

logger = get_logger("gpg")


class GpgSigner:
    """Produces armored detached signatures with a configured key."""

    def __init__(
        self,
        key: str,
        gpg_binary: str = "gpg",
        runner: Optional[CommandRunner] = None,
    ):
        """Initialize signer.

        Args:
            key: Key id or user id passed to --local-user
            gpg_binary: gpg executable
            runner: Runner used to invoke gpg (local by default)
        """
        if not key:
            raise ValueError("A signing key is required")
        self.key = key
        self.gpg_binary = gpg_binary
        self.runner = runner or LocalRunner()

    def sign_file(self, path: Union[str, Path]) -> CommandResult:
        """Write <path>.asc next to path.

        Raises:
            CommandError: If gpg fails
        """
        logger.info(f"Signing {path} with key {self.key}")
        return self.runner.run([
            self.gpg_binary,
            "--yes",
            "--armor",
            "--detach-sign",
            "--local-user", self.key,
            str(path),
        ])
