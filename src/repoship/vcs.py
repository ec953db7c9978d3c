"""Git queries about the project being published.

Used to default the project name and reference of a publication run when
they are not configured explicitly.
"""

from typing import Optional, Sequence

from .common.errors import RepoShipError
from .common.logger import get_logger
from .transport.execution import CommandRunner, LocalRunner

logger = get_logger("vcs")

DEFAULT_DESCRIBE_OPTIONS = ("--tags", "--dirty")


class GitRepository:
    """Read-only view of the git checkout at project_root."""

    def __init__(
        self,
        project_root: Optional[str] = None,
        git_binary: str = "git",
        runner: Optional[CommandRunner] = None,
    ):
        """Initialize repository view.

        Args:
            project_root: Checkout directory (current directory when None)
            git_binary: git executable
            runner: Runner used for git commands
        """
        self.project_root = project_root
        self.git_binary = git_binary
        self.runner = runner or LocalRunner(cwd=project_root)

    def _git(self, *args: str, check: bool = False):
        return self.runner.run([self.git_binary, *args], check=check)

    def describe(self, extra_opts: Sequence[str] = DEFAULT_DESCRIBE_OPTIONS) -> Optional[str]:
        """Return `git describe` output, or None when there is no tag to describe."""
        result = self._git("describe", *extra_opts)
        if not result.ok:
            return None
        return result.stdout.strip()

    def sha(self, length: int = 40) -> str:
        """Return the sha of HEAD, abbreviated to length characters (40 at most)."""
        return self._git("rev-parse", f"--short={length}", "HEAD").stdout.strip()

    def ref_type(self) -> str:
        """Return the object type HEAD describes as ('tag', 'commit', ...)."""
        described = self.describe(())
        if not described:
            return ""
        return self._git("cat-file", "-t", described).stdout.strip()

    def is_tagged(self) -> bool:
        return self.ref_type() == "tag"

    def sha_or_tag(self, length: int = 40) -> str:
        """Return the tag at HEAD when HEAD is tagged, otherwise its sha."""
        if self.is_tagged():
            return self.describe() or self.sha(length)
        return self.sha(length)

    def is_repo(self) -> bool:
        return self._git("rev-parse", "--git-dir").ok

    def fail_unless_repo(self) -> None:
        """Raise RepoShipError unless project_root is a git checkout."""
        if not self.is_repo():
            root = self.project_root or "."
            raise RepoShipError(f"Project root ({root}) is not a valid git repository")

    def project_name(self) -> str:
        """Return the basename of the origin remote, without .git."""
        url = self._git("config", "--get", "remote.origin.url").stdout.strip()
        name = url.rstrip("/").split("/")[-1]
        if name.endswith(".git"):
            name = name[: -len(".git")]
        return name

    def branch_name(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def is_source_dirty(self) -> bool:
        return "dirty" in (self.describe() or "")

    def fail_on_dirty_source(self) -> None:
        """Raise RepoShipError when the checkout has uncommitted changes."""
        if self.is_source_dirty():
            raise RepoShipError(
                "The source tree is dirty, e.g. there are uncommitted changes. "
                "Please commit/discard changes and try again."
            )
