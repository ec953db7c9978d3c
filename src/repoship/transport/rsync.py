"""File tree synchronization with rsync.

None of the option sets preserve ownership or permissions: destination
hosts may map users and groups differently. Directory modification times
are omitted so that jobs watching the published trees are not re-triggered
by a sync that changed nothing.
"""

import posixpath
from typing import List, Optional, Sequence

from ..common.errors import CommandError, TransferError
from ..common.logger import get_logger
from .execution import CommandResult, CommandRunner, LocalRunner

logger = get_logger("rsync")

# Incremental, additive push: hard links kept, symlinks resolved to content,
# newer remote files left alone, nothing deleted remotely.
SHIP_OPTIONS = (
    "--recursive",
    "--hard-links",
    "--copy-links",
    "--update",
    "--verbose",
    "--omit-dir-times",
    "--no-perms",
    "--no-owner",
    "--no-group",
)

DEB_DEPLOY_OPTIONS = (
    "--itemize-changes",
    "--hard-links",
    "--copy-links",
    "--omit-dir-times",
    "--progress",
    "--archive",
    "--update",
    "--verbose",
    "--super",
    "--delay-updates",
    "--no-perms",
    "--no-owner",
    "--no-group",
    "--exclude=dists/*-*",
    "--exclude=pool/*-*",
)

RPM_DEPLOY_OPTIONS = (
    "--recursive",
    "--links",
    "--hard-links",
    "--update",
    "--human-readable",
    "--itemize-changes",
    "--progress",
    "--verbose",
    "--super",
    "--delay-updates",
    "--omit-dir-times",
    "--no-perms",
    "--no-owner",
    "--no-group",
)


def remote_path(host: Optional[str], path: str) -> str:
    """Format an rsync location, prefixing the host when there is one."""
    return f"{host}:{path}" if host else path


def deployment_command(
    origin_path: str,
    destination_path: str,
    destination_host: Optional[str] = None,
    options: Sequence[str] = RPM_DEPLOY_OPTIONS,
    dry_run: bool = False,
    rsync_binary: str = "rsync",
) -> List[str]:
    """Build an rsync argument list that copies a tree next to its destination.

    The origin directory is synced into the parent of destination_path, so
    the tree keeps its own name on the receiving side.

    Args:
        origin_path: Tree to copy (no trailing slash)
        destination_path: Final location of the tree
        destination_host: Receiving host; copies locally when None
        options: rsync option set
        dry_run: Add --dry-run
        rsync_binary: rsync executable

    Returns:
        Argument list suitable for a CommandRunner
    """
    args = [rsync_binary, *options]
    if dry_run:
        args.append("--dry-run")
    args.append(origin_path.rstrip("/") or "/")
    parent = posixpath.dirname(destination_path.rstrip("/")) or "/"
    args.append(remote_path(destination_host, parent))
    return args


class RsyncTransport:
    """Runs rsync from the local host."""

    def __init__(self, runner: Optional[CommandRunner] = None, rsync_binary: str = "rsync"):
        """Initialize the transport.

        Args:
            runner: Runner that executes rsync (local by default)
            rsync_binary: rsync executable
        """
        self.runner = runner or LocalRunner()
        self.rsync_binary = rsync_binary

    def sync_tree(
        self,
        source: str,
        destination: str,
        options: Sequence[str] = SHIP_OPTIONS,
    ) -> CommandResult:
        """Synchronize source to destination.

        Args:
            source: Local path or host:path
            destination: Local path or host:path
            options: rsync option set

        Returns:
            CommandResult of the rsync run

        Raises:
            TransferError: If rsync exits non-zero
        """
        args = [self.rsync_binary, *options, source, destination]
        logger.info(f"Syncing {source} -> {destination}")
        try:
            return self.runner.run(args)
        except CommandError as e:
            raise TransferError(
                source, destination, e.returncode, e.stderr or e.stdout
            ) from e

    def rsync_to(
        self,
        source: str,
        host: str,
        destination: str,
        options: Sequence[str] = SHIP_OPTIONS,
    ) -> CommandResult:
        """Push a local tree to a path on a remote host."""
        return self.sync_tree(source, remote_path(host, destination), options)
