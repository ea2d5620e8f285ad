"""Tests for the clean_registry command-line entry point"""

from unittest.mock import MagicMock, patch

import pytest

import clean_registry
from registry_prune.error_utils import PreconditionError


class TestParseArguments:
    """Tests for the argparse surface"""

    def test_flags_and_positionals(self):
        args = clean_registry.parse_arguments(["--dry-run", "-x", "registry", "app", "web:v1"])

        assert args.dry_run is True
        assert args.remove is True
        assert args.container == "registry"
        assert args.targets == ["app", "web:v1"]

    def test_container_is_required(self):
        with pytest.raises(SystemExit):
            clean_registry.parse_arguments([])


class TestMain:
    """Tests for exit codes"""

    @pytest.fixture
    def run_cls(self):
        with patch("clean_registry.RegistryCleanupRun") as run_cls:
            yield run_cls

    def test_exit_status_is_error_count(self, run_cls):
        run_cls.return_value.execute.return_value = 3

        assert clean_registry.main(["--config", "/nonexistent.yaml", "registry"]) == 3

    def test_exit_status_is_capped(self, run_cls):
        run_cls.return_value.execute.return_value = 300

        assert clean_registry.main(["--config", "/nonexistent.yaml", "registry"]) == 255

    def test_invalid_reference_exits_nonzero_without_docker(self):
        """A/B:bad tag is rejected before the container is touched"""
        with patch("clean_registry.DockerClient") as docker_cls:
            plane = MagicMock()
            docker_cls.return_value = plane

            status = clean_registry.main(["--config", "/nonexistent.yaml", "registry", "A/B:bad tag"])

        assert status == 1
        plane.stop.assert_not_called()
        plane.inspect.assert_not_called()

    def test_precondition_failure_exits_one(self, run_cls):
        run_cls.return_value.execute.side_effect = PreconditionError("You must run this script as root")

        assert clean_registry.main(["--config", "/nonexistent.yaml", "registry"]) == 1

    def test_unexpected_error_exits_one(self, run_cls):
        run_cls.return_value.execute.side_effect = RuntimeError("boom")

        assert clean_registry.main(["--config", "/nonexistent.yaml", "registry"]) == 1
