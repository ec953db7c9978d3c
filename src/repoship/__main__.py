"""CLI interface for repository publication.

Usage:
    python -m repoship create-repos --format deb --config publish.yaml
    python -m repoship deploy --format rpm --path /opt/repos/el --origin-server a --destination-server b
"""

import argparse
import sys
from typing import Any, Dict, List, Optional

import httpx
import yaml

from .common.config import PublishConfig, load_config, parse_config
from .common.errors import RepoShipError
from .common.logger import get_logger, setup_logger
from .repos.base import RepositoryFormat
from .repos.registry import get_repository_format
from .vcs import GitRepository

logger = get_logger("cli")

DEFAULT_CONFIG_PATH = "/etc/repoship/config.yaml"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repoship",
        description="Build, sign and publish apt and yum repositories",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--format", choices=("deb", "rpm"), required=True, dest="repo_format")
    common.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="YAML configuration file")

    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser(
        "create-repos", parents=[common],
        help="Index new artifacts on the distribution server and ship configs",
    )
    create.add_argument("--directory", default="repos")
    create.add_argument("--signed", action="store_true")

    configs = commands.add_parser(
        "repo-configs", parents=[common], help="Generate client repo configs"
    )
    configs.add_argument("--source", default="repos")
    configs.add_argument("--target", default="repo_configs")
    configs.add_argument("--signed", action="store_true")

    retrieve = commands.add_parser(
        "retrieve-configs", parents=[common], help="Download shipped repo configs"
    )
    retrieve.add_argument("--target", default="repo_configs")

    ship = commands.add_parser(
        "ship-configs", parents=[common], help="Ship generated repo configs"
    )
    ship.add_argument("--target", default="repo_configs")

    sign = commands.add_parser(
        "sign-repos", parents=[common], help="Sign repository metadata in a local tree"
    )
    sign.add_argument("--directory", default="repos")

    deploy = commands.add_parser(
        "deploy", parents=[common], help="Copy a finished tree between hosts"
    )
    deploy.add_argument("--path", required=True)
    deploy.add_argument("--origin-server", required=True)
    deploy.add_argument("--destination-server", required=True)
    deploy.add_argument("--staging-path", default=None)
    deploy.add_argument("--dry-run", action="store_true")

    return parser


def resolve_config(config_dict: Dict[str, Any], git: Optional[GitRepository] = None) -> PublishConfig:
    """Parse configuration, taking project and ref from git when they are unset."""
    config_dict = dict(config_dict)
    if not config_dict.get("project") or not config_dict.get("ref"):
        git = git or GitRepository()
        if git.is_repo():
            if not config_dict.get("project"):
                config_dict["project"] = git.project_name()
            if not config_dict.get("ref"):
                config_dict["ref"] = git.sha_or_tag()
    return parse_config(config_dict)


def run_command(args: argparse.Namespace, repo: RepositoryFormat) -> None:
    if args.command == "create-repos":
        repo.create_remote_repos(args.directory, signed=args.signed)
    elif args.command == "repo-configs":
        repo.generate_repo_configs(args.source, args.target, signed=args.signed)
    elif args.command == "retrieve-configs":
        repo.retrieve_repo_configs(args.target)
    elif args.command == "ship-configs":
        repo.ship_repo_configs(args.target)
    elif args.command == "sign-repos":
        result = repo.sign_repos(args.directory)
        if not result.is_success:
            raise RepoShipError(f"Signing failed for: {', '.join(sorted(result.failed))}")
    elif args.command == "deploy":
        repo.deploy_repos(
            args.path,
            args.origin_server,
            args.destination_server,
            destination_staging_path=args.staging_path,
            dry_run=args.dry_run,
        )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the repoship CLI."""
    args = build_parser().parse_args(argv)

    try:
        config = resolve_config(load_config(args.config))
    except (FileNotFoundError, TypeError, ValueError, yaml.YAMLError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    setup_logger(log_dir=config.log_dir, level=config.log_level)

    try:
        repo = get_repository_format(args.repo_format, config)
        run_command(args, repo)
    except (RepoShipError, ValueError, httpx.HTTPError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
