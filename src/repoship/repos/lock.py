"""Advisory lock around repository creation.

A zero-byte sentinel file in the root of a repository tree marks a creation
run in progress. Every writer honours the convention: wait for the sentinel
to disappear, create it, do the work, remove it. Nothing below the
convention (file locks, databases) protects the tree.
"""

import posixpath
import time
from typing import Callable, Optional, TypeVar

from ..common.config import LockConfig
from ..common.errors import CommandError, LockTimeoutError, MissingTreeError
from ..common.logger import get_logger
from ..transport.execution import CommandRunner, retry_on_fail

logger = get_logger("lock")

T = TypeVar("T")

# Creates the sentinel only if it does not already exist (noclobber), so
# the existence check and the creation are a single step. The path is passed
# as a positional parameter and never interpolated into the script.
CREATE_SENTINEL_SCRIPT = 'set -C; : > "$1"'


class RemoteLock:
    """Scoped acquisition of the sentinel lock of one repository tree.

    Usable as a context manager; the sentinel is removed on exit whether
    the block completed or raised.
    """

    def __init__(
        self,
        runner: CommandRunner,
        tree_root: str,
        config: Optional[LockConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize lock.

        Args:
            runner: Runner for the host that owns the tree
            tree_root: Root directory of the repository tree
            config: Lock settings (sentinel name, poll interval, max wait)
            sleep: Sleep function used between polls
        """
        self.runner = runner
        self.tree_root = tree_root
        self.config = config or LockConfig()
        self._sleep = sleep
        self._held = False

    @property
    def sentinel(self) -> str:
        """Path of the sentinel file."""
        return posixpath.join(self.tree_root, self.config.lock_name)

    @property
    def held(self) -> bool:
        return self._held

    def _ensure_tree(self) -> None:
        if not self.runner.succeeds(["test", "-d", self.tree_root]):
            raise MissingTreeError(self.tree_root, self.runner.location)

    def _try_create(self) -> bool:
        create = ["sh", "-c", CREATE_SENTINEL_SCRIPT, "sh", self.sentinel]
        if self.runner.succeeds(create):
            return True
        if self.runner.succeeds(["test", "-e", self.sentinel]):
            return False
        # Not blocked by another run: repeat with check so the cause surfaces
        try:
            self.runner.run(create)
        except CommandError:
            # Another run took the lock between the two attempts
            if self.runner.succeeds(["test", "-e", self.sentinel]):
                return False
            raise
        return True

    def acquire(self) -> None:
        """Wait for the tree to be unlocked, then lock it.

        With the default configuration this waits indefinitely.

        Raises:
            MissingTreeError: If the tree root does not exist (nothing is created)
            LockTimeoutError: If a max_wait is configured and elapses
        """
        if self._held:
            raise RuntimeError(f"Lock on {self.tree_root} is already held")

        self._ensure_tree()

        logger.info(
            f"Checking for running repo creation in {self.tree_root} "
            f"on {self.runner.location}. Will wait if detected."
        )
        waited = 0.0
        while not self._try_create():
            max_wait = self.config.max_wait
            if max_wait is not None and waited >= max_wait:
                raise LockTimeoutError(
                    f"Timed out after {waited:.0f}s waiting for {self.sentinel}"
                )
            if waited == 0:
                logger.info(f"{self.sentinel} is held by another run, waiting")
            self._sleep(self.config.poll_interval)
            waited += self.config.poll_interval

        self._held = True
        logger.info(f"Set lock {self.sentinel}")

    def release(self) -> None:
        """Remove the sentinel. Does nothing if this lock is not held.

        Removal is retried up to release_attempts times.

        Raises:
            CommandError: If every removal attempt fails
        """
        if not self._held:
            return
        self._held = False
        retry_on_fail(
            lambda: self.runner.run(["rm", "-f", self.sentinel]),
            times=self.config.release_attempts,
            delay=self.config.release_retry_delay,
            exceptions=(CommandError,),
            description=f"Removing lock {self.sentinel}",
            sleep=self._sleep,
        )
        logger.info(f"Released lock {self.sentinel}")

    def __enter__(self) -> "RemoteLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.release()
            return
        # The error from the block takes precedence over a failed release
        try:
            self.release()
        except CommandError as e:
            logger.error(
                f"Could not remove {self.sentinel} on {self.runner.location}, "
                f"remove it by hand: {e}"
            )


def with_lock(
    runner: CommandRunner,
    tree_root: str,
    critical_section: Callable[[], T],
    config: Optional[LockConfig] = None,
) -> T:
    """Run critical_section while holding the lock on tree_root.

    Args:
        runner: Runner for the host that owns the tree
        tree_root: Root directory of the repository tree
        critical_section: Zero-argument callable to run under the lock
        config: Lock settings

    Returns:
        Whatever critical_section returns

    Raises:
        MissingTreeError: If the tree root does not exist
        Exception: Anything critical_section raises, after the lock is released
        CommandError: If the sentinel cannot be removed after a clean run
    """
    with RemoteLock(runner, tree_root, config):
        return critical_section()
