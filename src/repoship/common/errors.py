"""Exception types raised by the publication pipeline."""

from typing import List, Optional, Sequence


class RepoShipError(Exception):
    """Base class for all repoship errors."""


class MissingTreeError(RepoShipError):
    """The repository tree root does not exist."""

    def __init__(self, tree_root: str, host: Optional[str] = None):
        self.tree_root = tree_root
        self.host = host
        where = f" on {host}" if host else ""
        super().__init__(f"Repository tree not found{where}: {tree_root}")


class MalformedTagError(RepoShipError):
    """A platform tag or artifact path could not be decomposed."""


class UnknownPlatformError(RepoShipError):
    """No mapping exists for a platform, version or codename."""


class CommandError(RepoShipError):
    """A command exited with a non-zero status.

    The captured output is embedded in the message so failures can be
    diagnosed from the pipeline log alone.
    """

    def __init__(
        self,
        args: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(self._format_message())

    def _location(self) -> str:
        return "locally"

    def _format_message(self) -> str:
        message = (
            f"Command failed {self._location()} with exit status {self.returncode}: "
            f"{' '.join(self.command)}"
        )
        if self.stdout.strip():
            message += f"\nstdout:\n{self.stdout.strip()}"
        if self.stderr.strip():
            message += f"\nstderr:\n{self.stderr.strip()}"
        return message


class RemoteCommandError(CommandError):
    """A command run on a remote host exited with a non-zero status."""

    def __init__(
        self,
        host: str,
        args: Sequence[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ):
        self.host = host
        super().__init__(args, returncode, stdout, stderr)

    def _location(self) -> str:
        return f"on {self.host}"


class TransferError(RepoShipError):
    """File tree synchronization failed."""

    def __init__(self, source: str, destination: str, returncode: int, output: str = ""):
        self.source = source
        self.destination = destination
        self.returncode = returncode
        self.output = output
        message = (
            f"Transfer of {source} to {destination} failed "
            f"with exit status {returncode}"
        )
        if output.strip():
            message += f":\n{output.strip()}"
        super().__init__(message)


class LockTimeoutError(RepoShipError):
    """The repository lock was not released within the configured wait."""


class RepositoryCreationError(RepoShipError):
    """Indexing was aborted part way through a creation run.

    Attributes:
        completed: Targets (codenames or package directories) indexed
            before the failure
        failed: The target whose indexing command failed
    """

    def __init__(self, failed: str, completed: List[str], cause: Exception):
        self.failed = failed
        self.completed = list(completed)
        done = ", ".join(self.completed) if self.completed else "none"
        super().__init__(
            f"Indexing failed for {failed} (completed: {done}): {cause}"
        )


class EmptyResultWarning(UserWarning):
    """A listing or discovery step found nothing to work on."""
