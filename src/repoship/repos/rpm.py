"""Yum repositories built with createrepo."""

import posixpath
import warnings
from pathlib import Path
from typing import List, Optional, Sequence

from ..common.errors import (
    CommandError,
    EmptyResultWarning,
    MalformedTagError,
    RepoShipError,
    RepositoryCreationError,
    UnknownPlatformError,
)
from ..common.logger import get_logger
from ..platforms import is_excluded_from_indexing, tag_from_artifact_path
from ..transport.execution import CommandRunner
from ..transport.gpg import GpgSigner
from ..transport.listing import IGNORED_ENTRY_PATTERN, list_reachable_paths
from ..transport.rsync import RPM_DEPLOY_OPTIONS
from .base import (
    ArtifactPath,
    CreationResult,
    CreationStatus,
    RepositoryFormat,
    SignResult,
    directories_that_contain_packages,
    resolve_artifact_paths,
)
from .lock import with_lock

logger = get_logger("rpm_repo")

CREATEREPO_OPTIONS = (
    "--checksum=sha",
    "--checkts",
    "--update",
    "--delta-workers=0",
    "--database",
)

# Published yum trees sit five levels below the repos root at most
# (platform/version/collection/arch/repodata)
LISTING_DEPTH = 5


class RpmRepository(RepositoryFormat):
    """Repository format for RPM packages.

    Every artifact directory is its own yum repository with a repodata/
    directory next to the packages.
    """

    @property
    def format_name(self) -> str:
        return "rpm"

    @property
    def package_extension(self) -> str:
        return "rpm"

    def createrepo_command(self, directory: str) -> List[str]:
        return [self.config.indexer.createrepo, *CREATEREPO_OPTIONS, directory]

    def create_repos(
        self,
        runner: CommandRunner,
        repo_directory: str,
        artifact_paths: Sequence[ArtifactPath],
    ) -> CreationResult:
        def index_directories() -> CreationResult:
            completed: List[str] = []
            skipped: List[str] = []
            for artifact in artifact_paths:
                if is_excluded_from_indexing(artifact.path):
                    logger.info(f"Skipping {artifact.path}: platform is not indexed")
                    skipped.append(artifact.path)
                    continue

                directory = posixpath.normpath(posixpath.join(repo_directory, artifact.path))
                if not runner.succeeds(["test", "-d", directory]):
                    logger.warning(f"Skipping {directory}: no such directory")
                    skipped.append(artifact.path)
                    continue

                try:
                    runner.run(self.createrepo_command(directory))
                except CommandError as e:
                    logger.error(f"createrepo failed in {directory}, aborting remaining paths")
                    raise RepositoryCreationError(artifact.path, completed, e) from e
                completed.append(artifact.path)

            status = CreationStatus.SUCCESS if completed else CreationStatus.NO_CHANGES
            return CreationResult(
                status=status,
                repo_directory=repo_directory,
                completed=completed,
                skipped=skipped,
            )

        result = with_lock(runner, repo_directory, index_directories, self.config.lock)
        logger.info(
            f"Yum repo creation finished in {repo_directory}: "
            f"{len(result.completed)} directories indexed"
        )
        return result

    def create_local_repos(self, directory: str = "repos") -> CreationResult:
        """Index every rpm directory below a local tree."""
        package_dirs = directories_that_contain_packages(
            self.local_runner, directory, self.package_extension
        )
        return self.create_repos(
            self.local_runner, directory, resolve_artifact_paths(package_dirs)
        )

    def config_filename(self, name: str) -> str:
        return f"pl-{self.config.project}-{self.config.ref}-{name}.repo"

    def repo_config_lines(self, baseurl: str, signed: bool = False) -> List[str]:
        """Render a yum .repo stanza for one published repository."""
        project, ref = self.config.project, self.config.ref
        lines = [
            f"[pl-{project}-{ref}]",
            f"name=PL Repo for {project} at commit {ref}",
            f"baseurl={baseurl}",
            "enabled=1",
        ]
        if signed:
            lines.extend(["gpgcheck=1", f"gpgkey={self.config.gpg_key_url}"])
        else:
            lines.append("gpgcheck=0")
        return lines

    def published_yum_repos(self, repo_base: str) -> List[str]:
        """Find published yum repositories below repo_base.

        A repository is a directory with a repodata/ child that also holds
        .rpm files directly.
        """
        urls = list_reachable_paths(repo_base, LISTING_DEPTH, self.http_client)
        listed = [
            url for url in urls
            if url.startswith(("http://", "https://"))
            and not IGNORED_ENTRY_PATTERN.search(url[len(repo_base):])
        ]

        repos = []
        for url in listed:
            if not url.endswith("/repodata/"):
                continue
            parent = url[: -len("repodata/")]
            has_packages = any(
                candidate.startswith(parent)
                and candidate.endswith(".rpm")
                and "/" not in candidate[len(parent):]
                for candidate in listed
            )
            if has_packages:
                repos.append(parent)
        return repos

    def generate_repo_configs(
        self,
        source: str = "repos",
        target: str = "repo_configs",
        signed: bool = False,
    ) -> List[Path]:
        """Generate yum .repo files for the published repositories.

        Raises:
            RepoShipError: If signed configs are requested without a key URL
        """
        if signed and not self.config.gpg_key_url:
            raise RepoShipError(
                "Signed repo configs need signing.key_url or signing.gpg_key"
            )

        repo_base = f"{self.config.base_url}/{source}/"
        yum_repos = self.published_yum_repos(repo_base)

        if not yum_repos:
            message = f"No rpm repos were found to generate configs from for {self.config_banner()}."
            logger.warning(message)
            warnings.warn(message, EmptyResultWarning, stacklevel=2)
            return []

        directory = self.config_directory(target)
        written = []
        for url in yum_repos:
            if url in (repo_base, f"{repo_base}srpm/"):
                continue

            try:
                tag = tag_from_artifact_path(url)
            except (MalformedTagError, UnknownPlatformError) as e:
                logger.warning(f"Skipping {url}: {e}")
                continue

            written.append(
                self.write_config(
                    directory,
                    self.config_filename(tag.tag),
                    self.repo_config_lines(url, signed),
                )
            )

        logger.info(f"Wrote yum repo configs for {self.config_banner()} to {directory}")
        return written

    def sign_repos(self, directory: str = "repos") -> SignResult:
        """Detach-sign every repomd.xml below directory.

        Raises:
            RepoShipError: If no signing key is configured
        """
        key = self.config.signing.gpg_key
        if not key:
            raise RepoShipError("No signing key configured (signing.gpg_key)")

        root = Path(directory)
        metadata = sorted(root.rglob("repomd.xml")) if root.is_dir() else []
        result = SignResult()

        if not metadata:
            warning = f"No repomd.xml files found to sign in {root}"
            logger.warning(warning)
            warnings.warn(warning, EmptyResultWarning, stacklevel=2)
            return result

        signer = GpgSigner(key, self.config.signing.gpg_binary, self.local_runner)
        for repomd in metadata:
            try:
                signer.sign_file(str(repomd))
            except CommandError as e:
                logger.error(f"Signing {repomd} failed: {e}")
                result.failed[str(repomd)] = str(e)
                continue
            result.signed.append(str(repomd))

        logger.info(f"Signed {len(result.signed)} yum repos, {len(result.failed)} failed")
        return result

    def deploy_repos(
        self,
        path: str,
        origin_server: str,
        destination_server: str,
        destination_staging_path: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        self.shipper.deploy(
            path,
            destination_staging_path,
            origin_server,
            destination_server,
            dry_run=dry_run,
            options=RPM_DEPLOY_OPTIONS,
        )
