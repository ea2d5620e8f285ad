"""
Docker control plane used to pause, inspect and resume the registry container.

ControlPlane is the interface the run orchestrator depends on; DockerClient
implements it on top of the docker CLI. Calls block until the CLI returns and
no timeout is applied: a hung garbage collector keeps the registry stopped.
"""

import io
import json
import subprocess
import tarfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from registry_prune.error_utils import create_control_plane_error
from registry_prune.logging_utils import get_logger


@dataclass(frozen=True)
class Mount:
    source: str
    destination: str


@dataclass
class ContainerInfo:
    """The parts of `docker inspect` the cleaner relies on"""

    name: str
    image: str
    env: Dict[str, str] = field(default_factory=dict)
    mounts: List[Mount] = field(default_factory=list)

    def host_path_for(self, container_path: str) -> Optional[str]:
        """Host directory bind-mounted at container_path, if any."""
        wanted = container_path.rstrip("/") or "/"
        for mount in self.mounts:
            if (mount.destination.rstrip("/") or "/") == wanted:
                return mount.source
        return None


def parse_env(entries: Optional[List[str]]) -> Dict[str, str]:
    """Turn docker's ["KEY=value", ...] list into a dict."""
    env = {}
    for entry in entries or []:
        key, _, value = entry.partition("=")
        env[key] = value
    return env


class ControlPlane(ABC):
    """Operations on the registry container"""

    @abstractmethod
    def version(self) -> str:
        """Docker client version; empty when docker is unusable."""

    @abstractmethod
    def inspect(self, container: str) -> ContainerInfo:
        ...

    @abstractmethod
    def stop(self, container: str) -> None:
        ...

    @abstractmethod
    def start(self, container: str) -> None:
        ...

    @abstractmethod
    def run(self, image: str, args: List[str], env: Optional[Dict[str, str]] = None,
            volumes: Optional[Dict[str, str]] = None) -> str:
        """Run a throwaway container and return its output."""

    @abstractmethod
    def read_file(self, container: str, path: str) -> str:
        """Return the text content of a file inside the container."""


class DockerClient(ControlPlane):
    """ControlPlane backed by the docker CLI"""

    def __init__(self, docker_binary: str = "docker"):
        self.docker_binary = docker_binary
        self.logger = get_logger(self.__class__.__name__)

    def _build_command(self, args: List[str]) -> List[str]:
        return [self.docker_binary] + args

    def run_docker_command(self, args: List[str], operation: str, binary_output: bool = False):
        """Run a docker CLI command and return its stdout.

        Args:
            args: Arguments after the docker binary
            operation: Human readable description used in errors
            binary_output: Return raw bytes instead of text

        Raises:
            ControlPlaneError: if the command cannot be run or exits non-zero
        """
        cmd = self._build_command(args)
        self.logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, check=True, text=not binary_output)
            return result.stdout
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else e.stderr
            self.logger.error(f"Docker command failed: {' '.join(cmd)}")
            self.logger.error(f"Error: {stderr}")
            raise create_control_plane_error(operation, e, stderr) from e
        except OSError as e:
            raise create_control_plane_error(operation, e) from e

    def version(self) -> str:
        return self.run_docker_command(
            ["version", "-f", "{{ .Client.Version }}"], "Query docker client version"
        ).strip()

    def inspect(self, container: str) -> ContainerInfo:
        output = self.run_docker_command(
            ["inspect", "--type", "container", container], f"Inspect container {container}"
        )
        try:
            data = json.loads(output)[0]
        except (json.JSONDecodeError, IndexError) as e:
            raise create_control_plane_error(f"Parse inspect output for {container}", e) from e

        config = data.get("Config") or {}
        return ContainerInfo(
            name=container,
            image=config.get("Image", ""),
            env=parse_env(config.get("Env")),
            mounts=[
                Mount(source=m.get("Source", ""), destination=m.get("Destination", ""))
                for m in data.get("Mounts") or []
            ],
        )

    def stop(self, container: str) -> None:
        self.run_docker_command(["stop", container], f"Stop container {container}")

    def start(self, container: str) -> None:
        self.run_docker_command(["start", container], f"Start container {container}")

    def run(self, image: str, args: List[str], env: Optional[Dict[str, str]] = None,
            volumes: Optional[Dict[str, str]] = None) -> str:
        cmd = ["run", "--rm"]
        for key, value in (env or {}).items():
            cmd += ["-e", f"{key}={value}"]
        for host_path, container_path in (volumes or {}).items():
            cmd += ["-v", f"{host_path}:{container_path}"]
        cmd += [image] + list(args)
        return self.run_docker_command(cmd, f"Run {image} {' '.join(args)}")

    def read_file(self, container: str, path: str) -> str:
        # docker cp to stdout emits a tar archive holding the single file
        archive = self.run_docker_command(
            ["cp", f"{container}:{path}", "-"], f"Copy {path} from {container}", binary_output=True
        )
        try:
            with tarfile.open(fileobj=io.BytesIO(archive)) as tar:
                member = next((m for m in tar.getmembers() if m.isfile()), None)
                if member is None:
                    raise tarfile.TarError(f"{path} is not a regular file")
                return tar.extractfile(member).read().decode()
        except tarfile.TarError as e:
            raise create_control_plane_error(f"Read {path} from {container}", e) from e
