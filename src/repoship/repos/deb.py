"""Apt repositories built with reprepro.

Each codename gets its own reprepro tree under <repos>/apt/<codename>, with
a conf/distributions descriptor that is written once and then left alone.
"""

import posixpath
import warnings
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from ..common.errors import (
    CommandError,
    EmptyResultWarning,
    MalformedTagError,
    RepoShipError,
    RepositoryCreationError,
    UnknownPlatformError,
)
from ..common.logger import get_logger
from ..platforms import (
    architectures_for_codename,
    codename_for_platform_version,
    codenames,
    is_excluded_from_indexing,
    tag_from_artifact_path,
)
from ..transport.execution import CommandRunner
from ..transport.rsync import DEB_DEPLOY_OPTIONS
from .base import (
    ArtifactPath,
    CreationResult,
    CreationStatus,
    RepositoryFormat,
    SignResult,
)
from .lock import with_lock

logger = get_logger("deb_repo")

# Writes $2 into $1 unless $1 already exists (noclobber)
WRITE_ONCE_SCRIPT = 'set -C; printf "%s" "$2" > "$1"'


class DebRepository(RepositoryFormat):
    """Repository format for Debian packages.

    Wraps reprepro for:
    - Creating one apt tree per codename and including new packages
    - Exporting signed indexes (SignWith in the descriptor)
    - Generating sources.list entries for published trees
    """

    @property
    def format_name(self) -> str:
        return "deb"

    @property
    def package_extension(self) -> str:
        return "deb"

    def distributions_descriptor(
        self,
        codename: str,
        description: Optional[str] = None,
        sign_with: Optional[str] = None,
    ) -> str:
        """Render the conf/distributions descriptor for a codename.

        Args:
            codename: Distribution codename (e.g. "focal")
            description: Description line (configured default when None)
            sign_with: Signing key reference for reprepro

        Returns:
            Descriptor text
        """
        origin = self.config.repo_origin
        lines = [
            f"Origin: {origin}",
            f"Label: {origin}",
            f"Codename: {codename}",
            f"Architectures: {' '.join(architectures_for_codename(codename))}",
            f"Components: {self.config.component}",
            f"Description: {description or self.config.description}",
        ]
        if sign_with:
            lines.append(f"SignWith: {sign_with}")
        return "\n".join(lines) + "\n"

    def group_by_codename(
        self, artifact_paths: Sequence[ArtifactPath]
    ) -> Tuple[Dict[str, List[ArtifactPath]], List[str]]:
        """Group artifact directories by the codename they belong to.

        Returns:
            (codename -> artifact paths in input order, skipped paths)
        """
        groups: Dict[str, List[ArtifactPath]] = OrderedDict()
        skipped = []
        for artifact in artifact_paths:
            if is_excluded_from_indexing(artifact.path):
                logger.info(f"Skipping {artifact.path}: platform is not indexed")
                skipped.append(artifact.path)
                continue
            try:
                codename = codename_for_platform_version(
                    artifact.tag.platform, artifact.tag.version
                )
            except UnknownPlatformError as e:
                logger.warning(f"Skipping {artifact.path}: {e}")
                skipped.append(artifact.path)
                continue
            groups.setdefault(codename, []).append(artifact)
        return groups, skipped

    def create_repos(
        self,
        runner: CommandRunner,
        repo_directory: str,
        artifact_paths: Sequence[ArtifactPath],
    ) -> CreationResult:
        groups, skipped = self.group_by_codename(artifact_paths)
        apt_root = posixpath.join(repo_directory, "apt")

        def index_codenames() -> CreationResult:
            completed: List[str] = []
            try:
                runner.run(["mkdir", "-p", apt_root])
            except CommandError as e:
                logger.error(f"Could not create {apt_root}, nothing indexed")
                raise RepositoryCreationError(apt_root, completed, e) from e
            for codename, artifacts in groups.items():
                try:
                    indexed = self._index_codename(runner, repo_directory, codename, artifacts)
                except CommandError as e:
                    logger.error(f"Indexing {codename} failed, aborting remaining codenames")
                    raise RepositoryCreationError(codename, completed, e) from e
                if indexed:
                    completed.append(codename)
                else:
                    skipped.append(codename)

            status = CreationStatus.SUCCESS if completed else CreationStatus.NO_CHANGES
            return CreationResult(
                status=status,
                repo_directory=repo_directory,
                completed=completed,
                skipped=skipped,
            )

        if not groups:
            logger.warning(f"No debian packages to index in {repo_directory}")

        result = with_lock(runner, repo_directory, index_codenames, self.config.lock)
        logger.info(
            f"Apt repo creation finished in {repo_directory}: "
            f"{len(result.completed)} codenames indexed"
        )
        return result

    def _index_codename(
        self,
        runner: CommandRunner,
        repo_directory: str,
        codename: str,
        artifacts: Sequence[ArtifactPath],
    ) -> bool:
        tree = posixpath.join(repo_directory, "apt", codename)
        conf = posixpath.join(tree, "conf")
        descriptor = posixpath.join(conf, "distributions")

        runner.run(["mkdir", "-p", conf])
        if not runner.succeeds(["test", "-e", descriptor]):
            runner.run([
                "sh", "-c", WRITE_ONCE_SCRIPT, "sh",
                descriptor, self.distributions_descriptor(codename),
            ])
            logger.info(f"Wrote {descriptor}")

        packages: List[str] = []
        for artifact in artifacts:
            package_dir = posixpath.normpath(posixpath.join(repo_directory, artifact.path))
            found = runner.run([
                "find", package_dir, "-maxdepth", "1", "-type", "f", "-name", "*.deb",
            ])
            packages.extend(sorted(found.lines))

        if not packages:
            logger.warning(f"No .deb files found for {codename}")
            return False

        runner.run([
            self.config.indexer.reprepro,
            "--basedir", tree,
            "includedeb", codename,
            *packages,
        ])
        logger.info(f"Included {len(packages)} packages into {codename}")
        return True

    def config_filename(self, codename: str) -> str:
        return f"pl-{self.config.project}-{self.config.ref}-{codename}.list"

    def generate_repo_configs(
        self,
        source: str = "repos",
        target: str = "repo_configs",
        signed: bool = False,
    ) -> List[Path]:
        """Generate apt sources.list files for the published codename trees.

        One file per codename, named pl-<project>-<ref>-<codename>.list, to be
        dropped into /etc/apt/sources.list.d on clients. Apt trust comes from
        the client keyring, so signed does not change the output.
        """
        repo_base = f"{self.config.base_url}/{source}/apt/"
        repo_urls = self.list_published(repo_base, 1)

        if not [url for url in repo_urls if f"{url}/" != repo_base]:
            message = f"No debian repos available for {self.config_banner()}."
            logger.warning(message)
            warnings.warn(message, EmptyResultWarning, stacklevel=2)
            return []

        directory = self.config_directory(target)
        written = []
        for url in repo_urls:
            # The listing reports the base itself
            if f"{url}/" == repo_base:
                continue

            try:
                tag = tag_from_artifact_path(url)
                codename = codename_for_platform_version(tag.platform, tag.version)
            except (MalformedTagError, UnknownPlatformError) as e:
                logger.warning(f"Skipping {url}: {e}")
                continue

            lines = [
                f"# Packages for {self.config.project} built from ref {self.config.ref}",
                f"deb {url} {codename} {self.config.component}",
            ]
            written.append(self.write_config(directory, self.config_filename(codename), lines))

        logger.info(f"Wrote apt repo configs for {self.config_banner()} to {directory}")
        return written

    def sign_repos(self, directory: str = "repos", message: str = "Signed apt repository") -> SignResult:
        """Sign every supported codename tree under <directory>/apt.

        The descriptor is rewritten with a SignWith line and reprepro
        re-exports the indexes, signing the Release files as it goes. A
        failure on one codename does not stop the others.

        Raises:
            RepoShipError: If no signing key is configured
        """
        key = self.config.signing.gpg_key
        if not key:
            raise RepoShipError("No signing key configured (signing.gpg_key)")

        apt_dir = Path(directory) / "apt"
        dists = sorted(p for p in apt_dir.iterdir() if p.is_dir()) if apt_dir.is_dir() else []
        result = SignResult()

        if not dists:
            warning = (
                f"No repos found to sign in {apt_dir}. Maybe you didn't build any "
                f"debs, or the repo creation failed?"
            )
            logger.warning(warning)
            warnings.warn(warning, EmptyResultWarning, stacklevel=2)
            return result

        supported = set(codenames())
        for dist in dists:
            codename = dist.name
            if codename not in supported:
                result.skipped.append(codename)
                continue

            conf = dist / "conf"
            conf.mkdir(exist_ok=True)
            (conf / "distributions").write_text(
                self.distributions_descriptor(
                    codename, description=f"{message} for {codename}", sign_with=key
                )
            )
            try:
                self.local_runner.run([
                    self.config.indexer.reprepro,
                    "-vvv",
                    "--confdir", str(conf),
                    "--dbdir", str(dist / "db"),
                    "--basedir", str(dist),
                    "export",
                ])
            except CommandError as e:
                logger.error(f"Signing {codename} failed: {e}")
                result.failed[codename] = str(e)
                continue
            result.signed.append(codename)

        logger.info(f"Signed {len(result.signed)} apt repos, {len(result.failed)} failed")
        return result

    def deploy_repos(
        self,
        path: str,
        origin_server: str,
        destination_server: str,
        destination_staging_path: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        """Deploy an apt tree through a staging location on the destination.

        Raises:
            ValueError: If no staging path is given
        """
        if not destination_staging_path:
            raise ValueError("Apt deployments require a destination staging path")
        self.shipper.deploy(
            path,
            destination_staging_path,
            origin_server,
            destination_server,
            dry_run=dry_run,
            options=DEB_DEPLOY_OPTIONS,
        )
