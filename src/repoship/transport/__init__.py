"""Capabilities the pipeline consumes: command execution, sync, listing, signing."""

from .execution import CommandResult, CommandRunner, LocalRunner, retry_on_fail
from .gpg import GpgSigner
from .listing import filter_listing, list_reachable_paths
from .remote import RemoteRunner
from .rsync import RsyncTransport

__all__ = [
    "CommandResult",
    "CommandRunner",
    "GpgSigner",
    "LocalRunner",
    "RemoteRunner",
    "RsyncTransport",
    "filter_listing",
    "list_reachable_paths",
    "retry_on_fail",
]
