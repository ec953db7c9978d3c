"""Tests for repository format base classes."""

from unittest.mock import MagicMock

import httpx
import pytest

from repoship.common.config import ShipConfig
from repoship.common.errors import EmptyResultWarning, MissingTreeError, RepoShipError
from repoship.platforms import PlatformTag
from repoship.repos.base import (
    ArtifactPath,
    CreationResult,
    CreationStatus,
    SignResult,
    directories_that_contain_packages,
    populate_repo_directory,
    resolve_artifact_paths,
)
from repoship.repos.deb import DebRepository
from repoship.ship import Shipper
from repoship.transport.execution import LocalRunner
from tests.factories import RecordingRunner, autoindex, make_artifact_tree

ARTIFACT_DIR = "/opt/jenkins-builds/puppet-agent/7.1.0"


class TestResults:
    """Tests for result data classes."""

    def test_creation_result(self):
        """Test both statuses count as success."""
        for status in CreationStatus:
            assert CreationResult(status=status, repo_directory="/r").is_success

    def test_sign_result(self):
        """Test a sign result fails when any target failed."""
        assert SignResult(signed=["focal"]).is_success
        assert not SignResult(signed=["focal"], failed={"jammy": "exit 1"}).is_success

    def test_artifact_path_from_path(self):
        """Test the tag is derived from the path."""
        artifact = ArtifactPath.from_path("./el/8/puppet7/x86_64")

        assert artifact.tag == PlatformTag("el", "8", "x86_64")


class TestPackageDiscovery:
    """Tests for finding package directories."""

    def test_directories_that_contain_packages(self, tmp_path):
        """Test package directories are reported relative and de-duplicated."""
        root = make_artifact_tree(tmp_path / "artifacts", [
            "deb/focal/puppet7/a_1.0_amd64.deb",
            "deb/focal/puppet7/b_1.0_amd64.deb",
            "deb/jammy/puppet7/a_1.0_amd64.deb",
            "el/8/puppet7/x86_64/a-1.0.el8.x86_64.rpm",
        ])

        found = directories_that_contain_packages(LocalRunner(), str(root), "deb")

        assert found == ["./deb/focal/puppet7", "./deb/jammy/puppet7"]

    def test_missing_directory(self, tmp_path):
        """Test a missing directory raises MissingTreeError."""
        with pytest.raises(MissingTreeError):
            directories_that_contain_packages(LocalRunner(), str(tmp_path / "absent"), "rpm")

    def test_resolve_skips_unrecognised(self):
        """Test paths without a target are skipped."""
        resolved = resolve_artifact_paths(["./deb/focal/puppet7", "./docs"])

        assert [artifact.path for artifact in resolved] == ["./deb/focal/puppet7"]

    def test_populate_repo_directory(self):
        """Test artifacts are copied without overwriting existing files."""
        runner = RecordingRunner()

        populate_repo_directory(runner, ARTIFACT_DIR)

        rsync = runner.commands("rsync")[0]
        assert "--ignore-existing" in rsync
        assert rsync[-2:] == [f"{ARTIFACT_DIR}/artifacts/", f"{ARTIFACT_DIR}/repos/"]

    def test_populate_missing_artifacts(self):
        """Test a missing artifacts directory is reported."""
        runner = RecordingRunner(handler=lambda cmd: (1, "") if cmd[0] == "test" else (0, ""))

        with pytest.raises(MissingTreeError):
            populate_repo_directory(runner, ARTIFACT_DIR)

        assert runner.commands("rsync") == []


class TestShipRepoConfigs:
    """Tests for shipping generated configs."""

    def test_nothing_generated(self, publish_config):
        """Test shipping without configs warns and ships nothing."""
        shipper = MagicMock(spec=Shipper)
        repo = DebRepository(publish_config, shipper=shipper)

        with pytest.warns(EmptyResultWarning):
            assert repo.ship_repo_configs() is False

        shipper.ship.assert_not_called()

    def test_ships_to_distribution_server(self, publish_config):
        """Test configs are shipped below the artifact directory."""
        shipper = MagicMock(spec=Shipper)
        repo = DebRepository(publish_config, shipper=shipper)
        local = repo.config_directory()
        local.mkdir(parents=True)
        (local / "pl-puppet-agent-7.1.0-focal.list").write_text("deb ...\n")

        assert repo.ship_repo_configs() is True

        shipper.ship.assert_called_once_with(
            str(local), "dist.example.com", f"{ARTIFACT_DIR}/repo_configs/deb"
        )


class TestRetrieveRepoConfigs:
    """Tests for downloading shipped configs."""

    CONFIG_URL = "http://builds.example.com/puppet-agent/7.1.0/repo_configs/deb/"

    def test_downloads_files(self, publish_config):
        """Test listed config files are downloaded, index entries skipped."""
        name = "pl-puppet-agent-7.1.0-focal.list"
        pages = {
            self.CONFIG_URL: autoindex(name),
            self.CONFIG_URL + name: "deb http://... focal puppet7\n",
        }

        def handler(request):
            url = str(request.url)
            if url in pages:
                return httpx.Response(200, text=pages[url])
            return httpx.Response(404)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        repo = DebRepository(publish_config, http_client=client)

        retrieved = repo.retrieve_repo_configs()

        assert [path.name for path in retrieved] == [name]
        assert retrieved[0].read_text() == "deb http://... focal puppet7\n"

    def test_http_failure(self, publish_config):
        """Test server errors are reported as RepoShipError."""
        client = httpx.Client(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )
        repo = DebRepository(publish_config, http_client=client)

        with pytest.raises(RepoShipError):
            repo.retrieve_repo_configs()


class TestCreateRemoteRepos:
    """Tests for the end-to-end creation flow (simulated host)."""

    @staticmethod
    def remote_handler(cmd):
        if cmd[0] == "find" and "-maxdepth" in cmd:
            return (0, f"{cmd[1]}/puppet-agent_7.1.0-1focal_amd64.deb\n")
        if cmd[0] == "find":
            return (0, f"{cmd[1]}/deb/focal/puppet7/puppet-agent_7.1.0-1focal_amd64.deb\n")
        return (0, "")

    def test_flow_order(self, publish_config):
        """Test discover, populate, index, release, then configs are shipped."""
        runner = RecordingRunner(handler=self.remote_handler)
        transport = MagicMock()
        shipper = Shipper(
            ShipConfig(retry_delay=0),
            transport=transport,
            runner_factory=lambda host: runner,
        )
        base = "http://builds.example.com/puppet-agent/7.1.0/repos/apt/"
        client = httpx.Client(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, text=autoindex("focal/"))
            if str(request.url) == base else httpx.Response(404)
        ))
        repo = DebRepository(publish_config, shipper=shipper, http_client=client)

        result = repo.create_remote_repos()

        assert result.completed == ["focal"]
        programs = [call[0] for call in runner.calls]
        assert programs.index("find") < programs.index("rsync")
        assert runner.commands("find")[0][1] == f"{ARTIFACT_DIR}/artifacts"
        assert programs.index("reprepro") < programs.index("rm")
        # The lock is gone before configs are shipped
        assert runner.calls[-1] == ["mkdir", "-p", f"{ARTIFACT_DIR}/repo_configs/deb"]
        transport.rsync_to.assert_called_once()
        assert (repo.config_directory() / "pl-puppet-agent-7.1.0-focal.list").exists()
