"""Pytest configuration and shared fixtures."""

import pytest

from repoship.common.config import parse_config
from tests.factories import RecordingRunner


@pytest.fixture
def sample_config():
    """Sample configuration dictionary."""
    return {
        "project": "puppet-agent",
        "ref": "7.1.0",
        "builds_server": "builds.example.com",
        "distribution_server": "dist.example.com",
        "repo_base_path": "/opt/jenkins-builds",
        "apt_repo_name": "puppet7",
        "signing": {
            "gpg_key": "4528B6CD9E61EF26",
        },
        "ship": {
            "retry_delay": 0,
        },
        "lock": {
            "poll_interval": 0.01,
        },
        "logging": {
            "level": "INFO",
        },
    }


@pytest.fixture
def publish_config(sample_config, tmp_path):
    """Parsed configuration writing generated configs below tmp_path."""
    sample_config["output_dir"] = str(tmp_path / "pkg")
    return parse_config(sample_config)


@pytest.fixture
def recording_runner():
    """Runner where every command succeeds."""
    return RecordingRunner()
