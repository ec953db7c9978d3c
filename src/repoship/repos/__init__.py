"""Repository formats for apt and yum publication.

Each format creates repository trees under the remote lock, generates client
configs for published trees, signs metadata and deploys finished trees.
"""

from .base import (
    ArtifactPath,
    CreationResult,
    CreationStatus,
    RepositoryFormat,
    SignResult,
    directories_that_contain_packages,
    populate_repo_directory,
)
from .deb import DebRepository
from .lock import RemoteLock, with_lock
from .registry import (
    FormatRegistry,
    get_registry,
    get_repository_format,
    register_format,
)
from .rpm import RpmRepository

__all__ = [
    "ArtifactPath",
    "CreationResult",
    "CreationStatus",
    "DebRepository",
    "FormatRegistry",
    "RemoteLock",
    "RepositoryFormat",
    "RpmRepository",
    "SignResult",
    "directories_that_contain_packages",
    "get_registry",
    "get_repository_format",
    "populate_repo_directory",
    "register_format",
    "with_lock",
]
