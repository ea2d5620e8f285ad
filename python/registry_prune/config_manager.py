#!/usr/bin/env python3
"""
Configuration Manager for Registry Prune

This module handles loading and managing configuration from config.yaml
and environment variables.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import yaml

from registry_prune.error_utils import ConfigValidationError, create_config_error

DEFAULT_CONFIG_FILE = "config.yaml"


def _default_config() -> Dict[str, Any]:
    return {
        "docker": {"binary": "docker"},
        "registry": {
            "image": "registry:2",
            "min_version": "2.4.0",
            "config_path": "/etc/docker/registry/config.yml",
            "data_mount": "/var/lib/registry",
        },
        "gc": {"delete_untagged": False},
        "security": {"require_root": True},
    }


def parse_version(version: str) -> tuple:
    """Parse "v2.8.1" / "2.4.0" into a comparable tuple of ints.

    Raises:
        ValueError: if version does not start with a dotted number
    """
    match = re.match(r"^v?(\d+(?:\.\d+)*)", version.strip())
    if not match:
        raise ValueError(f"Unrecognised version string: {version!r}")
    return tuple(int(part) for part in match.group(1).split("."))


class ConfigManager:
    """Manages configuration for registry pruning"""

    def __init__(self, config_file: Optional[str] = None, validate: bool = True):
        """Initialize ConfigManager

        Args:
            config_file: Path to configuration YAML file (defaults to CONFIG_FILE env var or ./config.yaml)
            validate: If True, validate configuration on initialization
        """
        if config_file is None:
            config_file = os.environ.get("CONFIG_FILE", DEFAULT_CONFIG_FILE)
        self.config_file = config_file
        self.config = self._load_config()

        if validate:
            self.validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file with defaults"""
        default_config = _default_config()

        if not os.path.exists(self.config_file):
            logging.debug(f"Config file {self.config_file} not found, using defaults")
            return default_config

        try:
            with open(self.config_file, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigValidationError(f"Error loading config file {self.config_file}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigValidationError(f"Config file {self.config_file} must contain a mapping")
        return self._merge_config(default_config, user_config)

    def _merge_config(self, default: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge user config with defaults"""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    # Docker configuration
    def get_docker_binary(self) -> str:
        """Get docker CLI path from DOCKER env var or config"""
        return os.environ.get("DOCKER") or self.config["docker"]["binary"]

    # Registry configuration
    def get_registry_image(self) -> str:
        """Image the registry container must be running"""
        return os.environ.get("REGISTRY_IMAGE") or self.config["registry"]["image"]

    def get_min_registry_version(self) -> str:
        return str(self.config["registry"]["min_version"])

    def get_registry_config_path(self) -> str:
        """Path of the registry's config.yml inside the container"""
        return self.config["registry"]["config_path"]

    def get_registry_data_mount(self) -> str:
        """Where the storage root is mounted in the garbage collector container"""
        return self.config["registry"]["data_mount"]

    # Garbage collection configuration
    def get_gc_delete_untagged(self) -> bool:
        return bool(self.config.get("gc", {}).get("delete_untagged", False))

    # Security configuration
    def requires_root(self) -> bool:
        return bool(self.config.get("security", {}).get("require_root", True))

    def validate_config(self) -> None:
        """Validate configuration values

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        binary = self.get_docker_binary()
        if not isinstance(binary, str) or not binary.strip():
            raise create_config_error("docker.binary", binary, "must be a non-empty path")

        image = self.get_registry_image()
        if not isinstance(image, str) or not image.strip():
            raise create_config_error("registry.image", image, "must be a non-empty image reference")

        min_version = self.get_min_registry_version()
        try:
            parse_version(min_version)
        except ValueError as e:
            raise create_config_error("registry.min_version", min_version, str(e)) from e

        for key, value in (
            ("registry.config_path", self.get_registry_config_path()),
            ("registry.data_mount", self.get_registry_data_mount()),
        ):
            if not isinstance(value, str) or not value.startswith("/"):
                raise create_config_error(key, value, "must be an absolute path inside the container")

