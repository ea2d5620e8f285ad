"""
Precondition checks run before the registry container is stopped.

This module verifies:
- the process has the privilege to delete registry files
- the docker CLI is usable
- the container runs the expected registry image at a supported version
- the registry uses filesystem storage bind-mounted from the host

Any failure raises PreconditionError; nothing has been modified at that point.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from registry_prune.config_manager import ConfigManager, parse_version
from registry_prune.docker_client import ContainerInfo, ControlPlane
from registry_prune.error_utils import (
    ControlPlaneError,
    ErrorCategory,
    create_precondition_error,
)
from registry_prune.link_graph import repositories_root_for
from registry_prune.logging_utils import get_logger

ROOTDIRECTORY_ENV = "REGISTRY_STORAGE_FILESYSTEM_ROOTDIRECTORY"


@dataclass
class CheckResult:
    """Result of a precondition check"""

    name: str
    status: bool  # True if satisfied
    message: str
    details: Optional[Dict] = None


@dataclass
class RegistryStorage:
    """Where the registry keeps its data on the host"""

    container: str
    image: str
    storage_root: Path

    @property
    def repositories_root(self) -> Path:
        return repositories_root_for(self.storage_root)


def storage_root_from_config(config_text: str) -> Optional[str]:
    """Extract storage.filesystem.rootdirectory from a registry config.yml."""
    try:
        data = yaml.safe_load(config_text) or {}
    except yaml.YAMLError:
        return None
    storage = data.get("storage") if isinstance(data, dict) else None
    filesystem = storage.get("filesystem") if isinstance(storage, dict) else None
    if not isinstance(filesystem, dict):
        return None
    root = filesystem.get("rootdirectory")
    return str(root) if root else None


def registry_version_from_output(output: str) -> Optional[str]:
    """Pick the version token out of `registry --version` output.

    e.g. "registry github.com/docker/distribution v2.8.3" -> "v2.8.3"
    """
    found = None
    for token in output.split():
        try:
            parse_version(token)
        except ValueError:
            continue
        if "." in token:
            found = token
    return found


class PreconditionChecker:
    """Verifies the registry container can be pruned safely"""

    def __init__(self, control_plane: ControlPlane, config: ConfigManager):
        self.control_plane = control_plane
        self.config = config
        self.logger = get_logger(self.__class__.__name__)

    def check_privileges(self) -> CheckResult:
        if not self.config.requires_root():
            return CheckResult("privileges", True, "Root check disabled by configuration")
        euid = os.geteuid()
        if euid != 0:
            return CheckResult(
                "privileges", False, "You must run this script as root", {"euid": euid}
            )
        return CheckResult("privileges", True, "Running as root")

    def check_docker(self) -> CheckResult:
        try:
            version = self.control_plane.version()
        except ControlPlaneError as e:
            return CheckResult("docker", False, e.message, {"error": str(e)})
        if not version:
            return CheckResult("docker", False, "Docker client did not report a version")
        return CheckResult("docker", True, f"Docker client {version}", {"version": version})

    def check_image(self, info: ContainerInfo) -> CheckResult:
        expected = self.config.get_registry_image()
        if info.image != expected:
            return CheckResult(
                "registry_image",
                False,
                f"The container {info.name} is not running the {expected} image",
                {"image": info.image, "expected": expected},
            )
        return CheckResult("registry_image", True, f"Container {info.name} runs {expected}")

    def check_registry_version(self, image: str) -> CheckResult:
        minimum = self.config.get_min_registry_version()
        try:
            output = self.control_plane.run(image, ["--version"])
        except ControlPlaneError as e:
            return CheckResult("registry_version", False, e.message, {"error": str(e)})

        version = registry_version_from_output(output)
        if version is None:
            return CheckResult(
                "registry_version", False, "Could not determine the registry version",
                {"output": output.strip()},
            )
        if parse_version(version) < parse_version(minimum):
            return CheckResult(
                "registry_version", False, f"You're not running Docker Registry {minimum}+",
                {"version": version, "minimum": minimum},
            )
        return CheckResult("registry_version", True, f"Docker Registry {version}", {"version": version})

    def find_storage_root(self, info: ContainerInfo) -> CheckResult:
        """Resolve the host directory holding the registry's filesystem storage."""
        container_dir = info.env.get(ROOTDIRECTORY_ENV)
        source = "environment"
        if not container_dir:
            config_path = self.config.get_registry_config_path()
            try:
                container_dir = storage_root_from_config(self.control_plane.read_file(info.name, config_path))
            except ControlPlaneError as e:
                return CheckResult("storage_root", False, e.message, {"error": str(e)})
            source = config_path

        if not container_dir:
            return CheckResult("storage_root", False, "Unsupported storage driver")

        host_dir = info.host_path_for(container_dir)
        if not host_dir:
            return CheckResult(
                "storage_root", False,
                f"Storage directory {container_dir} is not mounted from the host",
                {"container_dir": container_dir, "source": source},
            )

        repositories = repositories_root_for(Path(host_dir))
        if not repositories.is_dir():
            return CheckResult(
                "storage_root", False, f"No repositories directory at {repositories}",
                {"host_dir": host_dir},
            )
        return CheckResult(
            "storage_root", True, f"Registry storage at {host_dir}",
            {"host_dir": host_dir, "container_dir": container_dir, "source": source},
        )

    def run_all_checks(self, container: str) -> List[CheckResult]:
        """Run checks in order, stopping at the first failure."""
        results = []
        for check in (self.check_privileges, self.check_docker):
            results.append(check())
            if not results[-1].status:
                return results

        try:
            info = self.control_plane.inspect(container)
        except ControlPlaneError as e:
            results.append(CheckResult("container", False, e.message, {"error": str(e)}))
            return results

        for check in (self.check_image, lambda i: self.check_registry_version(i.image), self.find_storage_root):
            results.append(check(info))
            if not results[-1].status:
                break
        return results

    def resolve_storage(self, container: str) -> RegistryStorage:
        """Run every check and return the resolved storage location.

        Raises:
            PreconditionError: on the first failed check
        """
        results = self.run_all_checks(container)
        for result in results:
            self.logger.debug(f"{'✓' if result.status else '✗'} {result.name}: {result.message}")

        last = results[-1]
        if not last.status:
            raise create_precondition_error(
                last.name,
                last.message,
                suggestions=_SUGGESTIONS.get(last.name),
                category=ErrorCategory.PERMISSION if last.name == "privileges" else ErrorCategory.COMPATIBILITY,
                details=last.details,
            )

        self.logger.info(f"✓ All preconditions satisfied for container {container}")
        return RegistryStorage(
            container=container,
            image=self.config.get_registry_image(),
            storage_root=Path(last.details["host_dir"]),
        )


_SUGGESTIONS = {
    "privileges": ["Re-run with sudo or as root"],
    "docker": ["Install Docker >= 1.8.0 or point DOCKER at the docker binary"],
    "container": ["Check the container name with 'docker ps -a'"],
    "registry_image": ["Pass the name of a container running the registry image",
                       "Set registry.image in config.yaml if you use a mirrored image"],
    "registry_version": ["Upgrade the registry container to registry:2.4.0 or later"],
    "storage_root": ["Use the filesystem storage driver with a bind-mounted root directory"],
}
