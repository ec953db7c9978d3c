"""Base classes for repository formats.

Defines the interface every repository format implements (creation, config
generation, signing, deployment) along with the data structures they share.
"""

import posixpath
import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import httpx

from ..common.config import PublishConfig
from ..common.errors import (
    EmptyResultWarning,
    MalformedTagError,
    MissingTreeError,
    RepoShipError,
)
from ..common.logger import get_logger
from ..platforms import PlatformTag, tag_from_artifact_path
from ..ship import Shipper
from ..transport.execution import CommandRunner, LocalRunner
from ..transport.listing import download_file, filter_listing, list_reachable_paths

logger = get_logger("repo_base")


class CreationStatus(Enum):
    """Status of a repository creation run."""

    SUCCESS = auto()
    NO_CHANGES = auto()  # Nothing to index


@dataclass(frozen=True)
class ArtifactPath:
    """A directory holding finished packages for exactly one target."""

    path: str
    tag: PlatformTag

    @classmethod
    def from_path(cls, path: str) -> "ArtifactPath":
        """Build an ArtifactPath, deriving the tag from the path itself.

        Raises:
            MalformedTagError: If the path does not identify a target
        """
        return cls(path=path, tag=tag_from_artifact_path(path))


@dataclass
class CreationResult:
    """Result of a repository creation run."""

    status: CreationStatus
    repo_directory: str
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status in (CreationStatus.SUCCESS, CreationStatus.NO_CHANGES)


@dataclass
class SignResult:
    """Aggregate result of a signing pass."""

    signed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # target -> error
    skipped: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        """Check if every discovered target was signed."""
        return not self.failed


def directories_that_contain_packages(
    runner: CommandRunner,
    directory: str,
    extension: str,
) -> List[str]:
    """List directories below directory that hold packages of one format.

    Args:
        runner: Runner for the host that owns the directory
        directory: Directory to search
        extension: Package file extension without the dot ("deb", "rpm")

    Returns:
        Sorted directories relative to directory (e.g. "./el/7/x86_64")

    Raises:
        MissingTreeError: If directory does not exist
        CommandError: If the search fails
    """
    if not runner.succeeds(["test", "-d", directory]):
        raise MissingTreeError(directory, runner.location)

    result = runner.run([
        "find", directory, "-type", "f", "-name", f"*.{extension}",
    ])
    prefix = directory.rstrip("/") + "/"
    found = set()
    for line in result.lines:
        relative = line[len(prefix):] if line.startswith(prefix) else line
        parent = posixpath.dirname(relative)
        found.add(f"./{parent}" if parent else ".")
    return sorted(found)


def populate_repo_directory(runner: CommandRunner, artifact_parent_directory: str) -> None:
    """Copy new artifacts into the repos directory that gets indexed.

    Files already present under repos/ are never overwritten, so indexes
    built from them stay valid.

    Raises:
        MissingTreeError: If the artifacts directory does not exist
        CommandError: If the copy fails
    """
    artifacts = posixpath.join(artifact_parent_directory, "artifacts")
    repos = posixpath.join(artifact_parent_directory, "repos")
    if not runner.succeeds(["test", "-d", artifacts]):
        raise MissingTreeError(artifacts, runner.location)

    runner.run([
        "rsync",
        "--archive",
        "--verbose",
        "--one-file-system",
        "--ignore-existing",
        artifacts + "/",
        repos + "/",
    ])
    logger.info(f"Populated {repos} from {artifacts} on {runner.location}")


def resolve_artifact_paths(paths: Iterable[str]) -> List[ArtifactPath]:
    """Tag each path, skipping (and logging) paths with no recognisable target."""
    resolved = []
    for path in paths:
        try:
            resolved.append(ArtifactPath.from_path(path))
        except MalformedTagError as e:
            logger.warning(f"Skipping {path}: {e}")
    return resolved


class RepositoryFormat(ABC):
    """Abstract base class for a repository format (apt, yum).

    Each format must implement:
    - Creating or refreshing repository trees from artifact directories
    - Generating client repository configuration files
    - Signing repository metadata
    - Deploying finished trees between hosts
    """

    def __init__(
        self,
        config: PublishConfig,
        shipper: Optional[Shipper] = None,
        http_client: Optional[httpx.Client] = None,
        local_runner: Optional[CommandRunner] = None,
    ):
        """Initialize repository format.

        Args:
            config: Publication settings
            shipper: Shipper used for configs and deployments
            http_client: Client used to list and fetch published content
            local_runner: Runner for commands on this host
        """
        self.config = config
        self.shipper = shipper or Shipper(config.ship)
        self.http_client = http_client
        self.local_runner = local_runner or LocalRunner()

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Return the format identifier ('deb' or 'rpm')."""
        pass

    @property
    @abstractmethod
    def package_extension(self) -> str:
        """Return the package file extension without the dot."""
        pass

    @abstractmethod
    def create_repos(
        self,
        runner: CommandRunner,
        repo_directory: str,
        artifact_paths: Sequence[ArtifactPath],
    ) -> CreationResult:
        """Create or refresh repository indexes under the repository lock.

        Args:
            runner: Runner for the host that owns repo_directory
            repo_directory: Root of the repository tree
            artifact_paths: Package directories relative to repo_directory

        Returns:
            CreationResult listing indexed and skipped targets

        Raises:
            MissingTreeError: If repo_directory does not exist
            RepositoryCreationError: If an indexing command fails
        """
        pass

    @abstractmethod
    def generate_repo_configs(
        self,
        source: str = "repos",
        target: str = "repo_configs",
        signed: bool = False,
    ) -> List[Path]:
        """Write client repository configuration files for published trees.

        Returns:
            Paths of the files written; empty when nothing is published
        """
        pass

    @abstractmethod
    def config_filename(self, name: str) -> str:
        """Return the client config filename for a codename or platform tag."""
        pass

    @abstractmethod
    def sign_repos(self, directory: str) -> SignResult:
        """Sign the repository metadata found under directory."""
        pass

    @abstractmethod
    def deploy_repos(
        self,
        path: str,
        origin_server: str,
        destination_server: str,
        destination_staging_path: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        """Copy a finished repository tree from one host to another."""
        pass

    def config_directory(self, target: str = "repo_configs") -> Path:
        """Local directory generated configs for this format are written to."""
        return Path(self.config.output_dir) / target / self.format_name

    def remote_config_directory(self, target: str = "repo_configs") -> str:
        """Directory on the distribution server configs are shipped to."""
        return posixpath.join(self.config.artifact_directory, target, self.format_name)

    def config_banner(self) -> str:
        return f"{self.config.project} at {self.config.ref}"

    def list_published(self, base_url: str, depth: int) -> List[str]:
        """List reachable URLs below base_url, with index entries filtered out."""
        return filter_listing(
            list_reachable_paths(base_url, depth, self.http_client), base_url
        )

    def ship_repo_configs(self, target: str = "repo_configs") -> bool:
        """Ship generated configs to the distribution server.

        Returns:
            False (after a warning) when no configs have been generated

        Raises:
            TransferError: If every ship attempt fails
        """
        local = self.config_directory(target)
        if not local.is_dir() or not any(local.iterdir()):
            message = (
                f"No repo configs have been generated in {local}! "
                f"Generate {self.format_name} repo configs first."
            )
            logger.warning(message)
            warnings.warn(message, EmptyResultWarning, stacklevel=2)
            return False

        self.shipper.ship(
            str(local),
            self.config.distribution_server,
            self.remote_config_directory(target),
        )
        return True

    def retrieve_repo_configs(self, target: str = "repo_configs") -> List[Path]:
        """Download previously shipped configs from the builds server.

        Returns:
            Local paths of the downloaded files

        Raises:
            RepoShipError: If the configs cannot be fetched
        """
        config_url = f"{self.config.base_url}/{target}/{self.format_name}/"
        destination = self.config_directory(target)
        try:
            urls = list_reachable_paths(config_url, 1, self.http_client)
            retrieved = []
            for url in urls:
                name = url.rsplit("/", 1)[-1]
                # Directories end in "/" and leave an empty name
                if not name or "?" in name or name.startswith("index"):
                    continue
                retrieved.append(download_file(url, destination / name, self.http_client))
        except httpx.HTTPError as e:
            raise RepoShipError(
                f"Couldn't retrieve {self.format_name} repo configs from {config_url}: {e}"
            ) from e

        logger.info(f"Retrieved {len(retrieved)} {self.format_name} repo configs to {destination}")
        return retrieved

    def write_config(self, directory: Path, filename: str, lines: Sequence[str]) -> Path:
        """Write a config file, replacing any previous version."""
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / filename
        path.write_text("\n".join(lines) + "\n")
        return path

    def create_remote_repos(self, directory: str = "repos", signed: bool = False) -> CreationResult:
        """Index new artifacts on the distribution server and publish configs.

        Finds package directories under artifacts/, copies new artifacts into
        repos/ and indexes each package directory under the repository lock.
        Client configs are generated and shipped after the lock is released.

        Args:
            directory: Name of the repository tree below the artifact directory
            signed: Whether generated configs should require signatures

        Returns:
            CreationResult of the indexing step
        """
        runner = self.shipper.runner_for(self.config.distribution_server)
        artifact_directory = self.config.artifact_directory
        repo_directory = posixpath.join(artifact_directory, directory)

        # Discovery reads artifacts/, never the indexer output under repos/
        package_dirs = directories_that_contain_packages(
            runner, posixpath.join(artifact_directory, "artifacts"), self.package_extension
        )
        populate_repo_directory(runner, artifact_directory)
        result = self.create_repos(runner, repo_directory, resolve_artifact_paths(package_dirs))

        self.generate_repo_configs(source=directory, signed=signed)
        self.ship_repo_configs()
        return result
