#!/usr/bin/env python3
"""
Utilities for maintaining the Docker registry, such as running garbage collection.

The garbage collector runs in a throwaway registry container against the
host storage root while the live registry container is stopped.
"""

from pathlib import Path
from typing import List

from registry_prune.config_manager import ConfigManager
from registry_prune.docker_client import ControlPlane
from registry_prune.error_utils import ControlPlaneError
from registry_prune.logging_utils import get_logger


logger = get_logger(__name__)


def build_garbage_collect_args(config: ConfigManager, dry_run: bool = False) -> List[str]:
    """Arguments passed to the registry binary for garbage-collect."""
    args = ["garbage-collect", config.get_registry_config_path()]
    if config.get_gc_delete_untagged():
        args.append("--delete-untagged")
    if dry_run:
        args.append("--dry-run")
    return args


def run_registry_garbage_collection(
    control_plane: ControlPlane,
    storage_root: Path,
    config: ConfigManager,
    dry_run: bool = False,
) -> bool:
    """
    Run Docker registry garbage collection against a host storage root.

    This executes, in a new container of the registry image:
        registry garbage-collect [--delete-untagged] [--dry-run] /etc/docker/registry/config.yml

    with deletion enabled and the storage root mounted at the configured data
    mount. Blobs no longer referenced by any remaining manifest are removed.

    Args:
        control_plane: ControlPlane used to run the collector container
        storage_root: Host directory holding the registry's docker/ tree
        config: Configuration providing image, paths and GC options
        dry_run: Ask the collector to only report what it would delete

    Returns:
        True if the garbage collection command completed successfully, False otherwise.
    """
    image = config.get_registry_image()
    data_mount = config.get_registry_data_mount()
    args = build_garbage_collect_args(config, dry_run=dry_run)

    logger.info(
        "Running Docker registry garbage collection on %s using %s...",
        storage_root,
        image,
    )

    try:
        output = control_plane.run(
            image,
            args,
            env={
                "REGISTRY_STORAGE_DELETE_ENABLED": "true",
                "REGISTRY_STORAGE_FILESYSTEM_ROOTDIRECTORY": data_mount,
            },
            volumes={str(storage_root): data_mount},
        )
    except ControlPlaneError as e:
        logger.error(e.message)
        return False

    if output:
        logger.info("Registry garbage-collect output:\n%s", output)

    logger.info("Docker registry garbage collection completed.")
    return True
