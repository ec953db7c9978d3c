"""Tests for remote command execution over ssh."""

from unittest.mock import MagicMock, patch

import pytest

from repoship.common.errors import RemoteCommandError
from repoship.transport.remote import RemoteRunner


class TestRemoteRunner:
    """Tests for RemoteRunner."""

    def test_build_command_quotes_arguments(self):
        """Test arguments survive the remote shell unchanged."""
        runner = RemoteRunner("dist.example.com")

        cmd = runner.build_command(["find", "/opt/repos", "-name", "*.deb"])

        assert cmd == [
            "ssh", "-o", "BatchMode=yes", "dist.example.com",
            "find /opt/repos -name '*.deb'",
        ]

    def test_build_command_hostile_path(self):
        """Test shell metacharacters in a path are quoted."""
        runner = RemoteRunner("dist.example.com", ssh_options=())

        cmd = runner.build_command(["rm", "-f", "/opt/repos/x; rm -rf /"])

        assert cmd[-1] == "rm -f '/opt/repos/x; rm -rf /'"

    def test_custom_ssh_command(self):
        """Test ssh executable and options come from configuration."""
        runner = RemoteRunner("builder@dist", ssh_command=("ssh", "-p", "2222"), ssh_options=())

        assert runner.build_command(["true"]) == ["ssh", "-p", "2222", "builder@dist", "true"]

    def test_requires_host(self):
        """Test an empty host is rejected."""
        with pytest.raises(ValueError):
            RemoteRunner("")

    @patch("subprocess.run")
    def test_run_failure(self, mock_run):
        """Test a failed remote command raises RemoteCommandError."""
        mock_run.return_value = MagicMock(returncode=1, stdout=b"", stderr=b"No such file")
        runner = RemoteRunner("dist.example.com")

        with pytest.raises(RemoteCommandError) as exc_info:
            runner.run(["test", "-d", "/opt/repos"])

        assert exc_info.value.host == "dist.example.com"
        assert exc_info.value.command == ["test", "-d", "/opt/repos"]

    @patch("subprocess.run")
    def test_run_success(self, mock_run):
        """Test output of a remote command is decoded."""
        mock_run.return_value = MagicMock(returncode=0, stdout=b"./deb/focal\n", stderr=b"")

        result = RemoteRunner("dist.example.com").run(["ls"])

        assert result.lines == ["./deb/focal"]
        assert result.args == ["ls"]
