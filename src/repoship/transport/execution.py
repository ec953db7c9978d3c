"""Command execution primitives.

Commands are always typed argument lists. They are never assembled into
shell strings by callers; the runner decides how to serialize them for the
place they execute.
"""

import subprocess
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Type, TypeVar

from ..common.errors import CommandError
from ..common.logger import get_logger

logger = get_logger("execution")

T = TypeVar("T")


def decode_output(data: Optional[bytes]) -> str:
    if not data:
        return ""
    if isinstance(data, str):
        return data
    return data.decode(errors="replace")


@dataclass
class CommandResult:
    """Captured result of a finished command."""

    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        """Check if the command exited successfully."""
        return self.returncode == 0

    @property
    def lines(self) -> List[str]:
        """Non-empty stdout lines."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


class CommandRunner(ABC):
    """Executes argument lists somewhere: locally or on a remote host."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Human readable name of where commands run."""
        pass

    @abstractmethod
    def run(self, args: Sequence[str], check: bool = True) -> CommandResult:
        """Run a command to completion.

        There is no timeout: a stuck command blocks the caller.

        Args:
            args: Command and arguments
            check: Raise when the command exits non-zero

        Returns:
            CommandResult with captured output

        Raises:
            CommandError: If check is set and the command fails
        """
        pass

    def succeeds(self, args: Sequence[str]) -> bool:
        """Run a command and report whether it exited zero."""
        return self.run(args, check=False).ok


class LocalRunner(CommandRunner):
    """Runs commands on this host with subprocess, without a shell."""

    def __init__(self, cwd: Optional[str] = None):
        """Initialize local runner.

        Args:
            cwd: Optional working directory for all commands
        """
        self.cwd = cwd

    @property
    def location(self) -> str:
        return "localhost"

    def run(self, args: Sequence[str], check: bool = True) -> CommandResult:
        cmd = [str(arg) for arg in args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            completed = subprocess.run(cmd, capture_output=True, cwd=self.cwd)
        except FileNotFoundError as e:
            # Mirror the shell's status for a missing executable
            result = CommandResult(args=cmd, returncode=127, stderr=str(e))
        else:
            result = CommandResult(
                args=cmd,
                returncode=completed.returncode,
                stdout=decode_output(completed.stdout),
                stderr=decode_output(completed.stderr),
            )

        if check and not result.ok:
            raise CommandError(cmd, result.returncode, result.stdout, result.stderr)
        return result


def retry_on_fail(
    func: Callable[[], T],
    times: int = 3,
    delay: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call func until it succeeds, up to a fixed number of attempts.

    Args:
        func: Zero-argument callable to invoke
        times: Maximum number of attempts
        delay: Seconds to sleep between attempts
        exceptions: Exception types that trigger another attempt
        description: Name of the operation for log messages
        sleep: Sleep function used between attempts

    Returns:
        Whatever func returns on its first successful call

    Raises:
        ValueError: If times is less than 1
        Exception: The error raised by the last attempt
    """
    if times < 1:
        raise ValueError(f"times must be at least 1, got {times}")

    for attempt in range(1, times):
        try:
            return func()
        except exceptions as e:
            logger.warning(f"{description} failed (attempt {attempt}/{times}): {e}")
        if delay > 0:
            sleep(delay)

    # Final attempt: its error propagates unchanged
    try:
        return func()
    except exceptions as e:
        logger.warning(f"{description} failed (attempt {times}/{times}): {e}")
        logger.error(f"{description} failed after {times} attempts")
        raise
