"""Shipping finished trees to the hosts that serve them.

Two flows are supported:
- ship(): push a local staging tree to a remote directory, retried a fixed
  number of times.
- deploy(): the two-stage cross-host flow, origin -> staging location on the
  destination host -> final location on the destination host.
"""

import shlex
import time
from typing import Callable, Optional, Sequence

from .common.config import ShipConfig
from .common.errors import TransferError
from .common.logger import get_logger
from .transport.execution import CommandResult, CommandRunner, LocalRunner, retry_on_fail
from .transport.remote import RemoteRunner
from .transport.rsync import RPM_DEPLOY_OPTIONS, RsyncTransport, deployment_command

logger = get_logger("ship")


class Shipper:
    """Moves repository trees and config files between hosts."""

    def __init__(
        self,
        config: Optional[ShipConfig] = None,
        transport: Optional[RsyncTransport] = None,
        runner_factory: Optional[Callable[[Optional[str]], CommandRunner]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize shipper.

        Args:
            config: Retry, rsync and ssh settings
            transport: rsync transport for local pushes
            runner_factory: Returns the runner for a host (None = local)
            sleep: Sleep function used between retries
        """
        self.config = config or ShipConfig()
        self.transport = transport or RsyncTransport(rsync_binary=self.config.rsync_binary)
        self._runner_factory = runner_factory
        self._sleep = sleep

    def runner_for(self, host: Optional[str]) -> CommandRunner:
        """Return a runner that executes commands on host."""
        if self._runner_factory is not None:
            return self._runner_factory(host)
        if not host:
            return LocalRunner()
        return RemoteRunner(host, self.config.ssh_command, self.config.ssh_options)

    def ship(self, local_dir: str, remote_host: str, remote_dir: str) -> CommandResult:
        """Push the contents of local_dir into remote_dir on remote_host.

        The push is additive: nothing on the remote side is deleted, and
        files that are newer remotely are kept. Safe to re-run.

        Args:
            local_dir: Local directory to push
            remote_host: Receiving host
            remote_dir: Directory on the receiving host (created if missing)

        Returns:
            CommandResult of the successful rsync attempt

        Raises:
            TransferError: If every attempt fails
            RemoteCommandError: If remote_dir cannot be created
        """
        self.runner_for(remote_host).run(["mkdir", "-p", remote_dir])
        source = local_dir.rstrip("/") + "/"

        result = retry_on_fail(
            lambda: self.transport.rsync_to(source, remote_host, remote_dir),
            times=self.config.retries,
            delay=self.config.retry_delay,
            exceptions=(TransferError,),
            description=f"Ship of {local_dir} to {remote_host}:{remote_dir}",
            sleep=self._sleep,
        )
        logger.info(f"Shipped {local_dir} to {remote_host}:{remote_dir}")
        return result

    def deploy(
        self,
        origin_path: str,
        destination_staging_path: Optional[str],
        origin_server: str,
        destination_server: str,
        dry_run: bool = False,
        options: Sequence[str] = RPM_DEPLOY_OPTIONS,
    ) -> None:
        """Copy a tree from origin_server to the same path on destination_server.

        Stage 1 runs on origin_server and pushes origin_path into the staging
        location on destination_server. Stage 2 runs on destination_server and
        copies the staged tree into origin_path's final location. Under
        dry_run both rsyncs get --dry-run and stage 2 is only logged.

        When destination_staging_path is None there is no staging step: stage
        1 pushes straight to the final location and stage 2 does not exist.

        Raises:
            RemoteCommandError: If a stage fails
        """
        rsync = self.config.rsync_binary

        if destination_staging_path is None:
            command = deployment_command(
                origin_path, origin_path, destination_server, options, dry_run, rsync
            )
            self.runner_for(origin_server).run(command)
            logger.info(f"Deployed {origin_path} from {origin_server} to {destination_server}")
            return

        stage_one = deployment_command(
            origin_path, destination_staging_path, destination_server, options, dry_run, rsync
        )
        stage_two = deployment_command(
            destination_staging_path, origin_path, None, options, dry_run, rsync
        )

        self.runner_for(origin_server).run(stage_one)
        logger.info(
            f"Staged {origin_path} from {origin_server} to "
            f"{destination_server}:{destination_staging_path}"
        )

        if dry_run:
            logger.info(
                f"[DRYRUN] not executing {shlex.join(stage_two)} on {destination_server}"
            )
            return

        self.runner_for(destination_server).run(stage_two)
        logger.info(f"Deployed {origin_path} on {destination_server}")
