#!/usr/bin/env python3
"""
Purge untagged manifest revisions and run the garbage collector in Docker Registry >= 2.4.0.

Works on the whole registry or on the specified repositories. With -x the
specified repositories or tagged images are removed completely. The registry
container is stopped during the purge, making it temporarily unavailable to
clients.

Usage examples:
  # Clean the whole registry
  python clean_registry.py registry

  # See what would be removed, without touching anything
  python clean_registry.py --dry-run registry

  # Drop the history of one tag and the revisions only it referenced
  python clean_registry.py registry library/nginx:1.25

  # Remove a tag, or a whole repository
  python clean_registry.py -x registry library/nginx:1.25
  python clean_registry.py -x registry library/nginx
"""

import argparse
import logging
import sys

from registry_prune.config_manager import ConfigManager
from registry_prune.docker_client import DockerClient
from registry_prune.error_utils import (
    ConfigValidationError,
    ControlPlaneError,
    InvalidReferenceError,
    PreconditionError,
    UsageError,
)
from registry_prune.logging_utils import get_logger, log_exception, setup_logging
from registry_prune.run import RegistryCleanupRun

EXIT_FATAL = 1
MAX_EXIT_STATUS = 255

logger = get_logger(__name__)


def parse_arguments(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="clean-registry",
        description="Purge unreachable manifest revisions from a registry:2 container's storage "
                    "and run its garbage collector",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Clean every repository of the container named "registry"
  clean-registry registry

  # Dry run on two repositories
  clean-registry --dry-run registry library/nginx myteam/app

  # Remove the v2 tag of app completely
  clean-registry -x registry app:v2

The exit status is the number of targets that failed (capped at 255).
If the process is killed while the container is stopped, restart it with
'docker start CONTAINER'.
        """,
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report what would be removed; the container is not stopped",
    )
    parser.add_argument(
        "-x",
        dest="remove",
        action="store_true",
        help="Completely remove the specified repositories or tagged images",
    )
    parser.add_argument(
        "--config",
        help="Path to config.yaml (default: CONFIG_FILE env var or ./config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "container",
        metavar="CONTAINER",
        help="Name of the running registry container",
    )
    parser.add_argument(
        "targets",
        metavar="REPOSITORY[:TAG]",
        nargs="*",
        help="Repositories or tagged images to clean (default: all repositories)",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = ConfigManager(config_file=args.config)
        run = RegistryCleanupRun(
            DockerClient(config.get_docker_binary()),
            config,
            args.container,
            targets=args.targets,
            dry_run=args.dry_run,
            remove=args.remove,
        )
        errors = run.execute()
    except (InvalidReferenceError, UsageError, ConfigValidationError) as e:
        logger.error(f"❌ {e}")
        return EXIT_FATAL
    except (PreconditionError, ControlPlaneError) as e:
        logger.error(str(e))
        return EXIT_FATAL
    except Exception as e:
        log_exception(logger, "Unexpected error while cleaning the registry", e)
        return EXIT_FATAL

    if errors:
        logger.error(f"Finished with {errors} errors")
    else:
        logger.info("✓ Registry cleanup completed")
    return min(errors, MAX_EXIT_STATUS)


if __name__ == "__main__":
    sys.exit(main())
