"""Unit tests for registry_prune/pruner.py"""

import shutil
from unittest.mock import patch

import pytest

from registry_prune.error_utils import DeletionError
from registry_prune.pruner import Pruner


@pytest.fixture
def tree(tmp_path):
    (tmp_path / "one" / "nested").mkdir(parents=True)
    (tmp_path / "one" / "nested" / "link").write_text("sha256:abc")
    (tmp_path / "two").mkdir()
    (tmp_path / "file").write_text("x")
    return tmp_path


class TestPruner:
    """Tests for deletion and dry-run reporting"""

    def test_removes_directories_and_files(self, tree):
        result = Pruner().prune([tree / "one", tree / "file"])

        assert not (tree / "one").exists()
        assert not (tree / "file").exists()
        assert (tree / "two").exists()
        assert result.removed == [tree / "one", tree / "file"]
        assert result.count == 2

    def test_dry_run_touches_nothing(self, tree, caplog):
        with caplog.at_level("INFO"):
            result = Pruner(dry_run=True).prune([tree / "one", tree / "two"])

        assert (tree / "one" / "nested" / "link").exists()
        assert (tree / "two").exists()
        assert result.removed == []
        assert result.count == 2
        assert f"DRY RUN: would remove '{tree / 'one'}'" in caplog.text
        assert f"DRY RUN: would remove '{tree / 'two'}'" in caplog.text

    def test_absent_path_is_success(self, tree):
        """Removing an already-absent path is idempotent"""
        result = Pruner().prune([tree / "missing"])

        assert result.removed == [tree / "missing"]
        assert result.failed == []

    def test_logs_each_removal(self, tree, caplog):
        with caplog.at_level("INFO"):
            Pruner().prune([tree / "two"])

        assert f"removed '{tree / 'two'}'" in caplog.text

    def test_failure_is_reported_after_all_paths(self, tree):
        """A failing path does not prevent the others from being removed"""
        real_rmtree = shutil.rmtree

        def flaky_rmtree(path, *args, **kwargs):
            if path.name == "one":
                raise PermissionError("denied")
            return real_rmtree(path, *args, **kwargs)

        with patch("registry_prune.pruner.shutil.rmtree", side_effect=flaky_rmtree):
            with pytest.raises(DeletionError) as exc_info:
                Pruner().prune([tree / "one", tree / "two"])

        result = exc_info.value.result
        assert not (tree / "two").exists()
        assert (tree / "one").exists()
        assert result.removed == [tree / "two"]
        assert result.failed[0][0] == tree / "one"
        assert "denied" in result.failed[0][1]

    def test_empty_input(self):
        result = Pruner().prune([])

        assert result.count == 0
