"""Configuration management for repoship.

Handles loading of YAML configuration files and parsing them into
immutable dataclasses that are passed explicitly to each component.
"""

import os
import posixpath
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


REQUIRED_KEYS = ("project", "ref", "builds_server", "distribution_server")

DEFAULT_SSH_OPTIONS = ("-o", "BatchMode=yes")


@dataclass(frozen=True)
class LockConfig:
    """Configuration for the repository lock sentinel."""

    lock_name: str = ".lock"
    poll_interval: float = 1.0
    # None waits forever: a creation run holding the lock is expected to
    # release it eventually.
    max_wait: Optional[float] = None
    release_attempts: int = 3
    release_retry_delay: float = 1.0


@dataclass(frozen=True)
class SigningConfig:
    """Configuration for signing repository metadata."""

    gpg_key: Optional[str] = None
    key_url: Optional[str] = None
    gpg_binary: str = "gpg"


@dataclass(frozen=True)
class ShipConfig:
    """Configuration for shipping trees and running remote commands."""

    retries: int = 3
    retry_delay: float = 1.0
    rsync_binary: str = "rsync"
    ssh_command: Tuple[str, ...] = ("ssh",)
    ssh_options: Tuple[str, ...] = DEFAULT_SSH_OPTIONS


@dataclass(frozen=True)
class IndexerConfig:
    """Executables of the repository indexing tools."""

    reprepro: str = "reprepro"
    createrepo: str = "createrepo"


@dataclass(frozen=True)
class PublishConfig:
    """Top-level configuration for a publication run."""

    project: str
    ref: str
    builds_server: str
    distribution_server: str
    repo_base_path: str = "/opt/jenkins-builds"
    apt_repo_name: Optional[str] = None
    repo_name: str = ""
    origin: Optional[str] = None
    description: str = "Apt repository for acceptance testing"
    output_dir: str = "pkg"
    log_dir: Optional[str] = None
    log_level: str = "INFO"
    lock: LockConfig = field(default_factory=LockConfig)
    signing: SigningConfig = field(default_factory=SigningConfig)
    ship: ShipConfig = field(default_factory=ShipConfig)
    indexer: IndexerConfig = field(default_factory=IndexerConfig)

    @property
    def base_url(self) -> str:
        """URL of this project and reference on the builds server."""
        return f"http://{self.builds_server}/{self.project}/{self.ref}"

    @property
    def artifact_directory(self) -> str:
        """Directory holding artifacts and repos on the distribution server."""
        return posixpath.join(self.repo_base_path, self.project, self.ref)

    @property
    def component(self) -> str:
        """Repository component name used in apt trees and source lists."""
        if self.apt_repo_name:
            return self.apt_repo_name
        return self.repo_name or "main"

    @property
    def repo_origin(self) -> str:
        return self.origin or self.project

    @property
    def gpg_key_url(self) -> Optional[str]:
        """Public key URL advertised in signed yum configs."""
        if self.signing.key_url:
            return self.signing.key_url
        if self.signing.gpg_key:
            return f"http://{self.builds_server}/{self.signing.gpg_key}"
        return None

    def with_overrides(self, **changes: Any) -> "PublishConfig":
        """Return a copy of this configuration with fields replaced."""
        return replace(self, **changes)


def _tuple(value: Any, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    if isinstance(value, str):
        return tuple(value.split())
    return tuple(str(item) for item in value)


def parse_lock_config(lock_dict: Dict[str, Any]) -> LockConfig:
    """Parse lock configuration dictionary.

    Args:
        lock_dict: Lock configuration dictionary

    Returns:
        LockConfig instance
    """
    max_wait = lock_dict.get("max_wait")
    return LockConfig(
        lock_name=lock_dict.get("lock_name", ".lock"),
        poll_interval=float(lock_dict.get("poll_interval", 1.0)),
        max_wait=float(max_wait) if max_wait is not None else None,
        release_attempts=int(lock_dict.get("release_attempts", 3)),
        release_retry_delay=float(lock_dict.get("release_retry_delay", 1.0)),
    )


def parse_signing_config(signing_dict: Dict[str, Any]) -> SigningConfig:
    """Parse signing configuration dictionary.

    Args:
        signing_dict: Signing configuration dictionary

    Returns:
        SigningConfig instance
    """
    return SigningConfig(
        gpg_key=signing_dict.get("gpg_key"),
        key_url=signing_dict.get("key_url"),
        gpg_binary=signing_dict.get("gpg_binary", "gpg"),
    )


def parse_ship_config(ship_dict: Dict[str, Any]) -> ShipConfig:
    """Parse ship configuration dictionary.

    Args:
        ship_dict: Ship configuration dictionary

    Returns:
        ShipConfig instance
    """
    return ShipConfig(
        retries=int(ship_dict.get("retries", 3)),
        retry_delay=float(ship_dict.get("retry_delay", 1.0)),
        rsync_binary=ship_dict.get("rsync_binary", "rsync"),
        ssh_command=_tuple(ship_dict.get("ssh_command"), ("ssh",)),
        ssh_options=_tuple(ship_dict.get("ssh_options"), DEFAULT_SSH_OPTIONS),
    )


def parse_indexer_config(indexer_dict: Dict[str, Any]) -> IndexerConfig:
    """Parse indexer configuration dictionary.

    Args:
        indexer_dict: Indexer configuration dictionary

    Returns:
        IndexerConfig instance
    """
    return IndexerConfig(
        reprepro=indexer_dict.get("reprepro", "reprepro"),
        createrepo=indexer_dict.get("createrepo", "createrepo"),
    )


def parse_config(config_dict: Dict[str, Any]) -> PublishConfig:
    """Parse the full configuration dictionary.

    Args:
        config_dict: Full configuration dictionary

    Returns:
        PublishConfig instance

    Raises:
        ValueError: If a required key is missing or empty
    """
    missing = [key for key in REQUIRED_KEYS if not config_dict.get(key)]
    if missing:
        raise ValueError(f"Missing required configuration keys: {', '.join(missing)}")

    logging_dict = config_dict.get("logging", {})

    return PublishConfig(
        project=str(config_dict["project"]),
        ref=str(config_dict["ref"]),
        builds_server=config_dict["builds_server"],
        distribution_server=config_dict["distribution_server"],
        repo_base_path=config_dict.get("repo_base_path", "/opt/jenkins-builds"),
        apt_repo_name=config_dict.get("apt_repo_name"),
        repo_name=config_dict.get("repo_name", ""),
        origin=config_dict.get("origin"),
        description=config_dict.get(
            "description", "Apt repository for acceptance testing"
        ),
        output_dir=config_dict.get("output_dir", "pkg"),
        log_dir=logging_dict.get("log_dir"),
        log_level=logging_dict.get("level", "INFO"),
        lock=parse_lock_config(config_dict.get("lock", {})),
        signing=parse_signing_config(config_dict.get("signing", {})),
        ship=parse_ship_config(config_dict.get("ship", {})),
        indexer=parse_indexer_config(config_dict.get("indexer", {})),
    )


def load_config(config_path: str = "/etc/repoship/config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
    """
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_file.open("r") as f:
        config = yaml.safe_load(f)

    if config is None:
        config = {}

    if not isinstance(config, dict):
        raise TypeError(
            f"Configuration root must be a mapping, got {type(config).__name__}"
        )

    return _expand_env_vars(config)


def _expand_env_vars(obj: Any) -> Any:
    """Recursively expand environment variables in configuration.

    Args:
        obj: Configuration object (dict, list, str, etc.)

    Returns:
        Configuration with expanded environment variables
    """
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        return os.path.expandvars(obj)
    else:
        return obj


def load_typed_config(
    config_path: str = "/etc/repoship/config.yaml",
    overrides: Optional[Dict[str, Any]] = None,
) -> PublishConfig:
    """Load and parse configuration into typed dataclass.

    Args:
        config_path: Path to configuration file
        overrides: Top-level keys that take precedence over the file

    Returns:
        PublishConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If a required key is missing
    """
    config_dict = load_config(config_path)
    if overrides:
        config_dict.update({k: v for k, v in overrides.items() if v is not None})
    return parse_config(config_dict)
