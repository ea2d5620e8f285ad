"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and provides builders for on-disk registry trees.
"""
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pytest

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)


class RegistryTreeBuilder:
    """Writes repositories in the registry's v2 filesystem layout"""

    def __init__(self, storage_root: Path):
        self.storage_root = storage_root
        self.repositories_root = storage_root / "docker" / "registry" / "v2" / "repositories"
        self.repositories_root.mkdir(parents=True)

    def add_repository(
        self,
        name: str,
        tags: Optional[Dict[str, Tuple[str, Iterable[str]]]] = None,
        revisions: Iterable[str] = (),
    ) -> Path:
        """Create a repository.

        Args:
            name: Repository path, e.g. "library/nginx"
            tags: tag -> (current digest, history digests)
            revisions: digests present in the revision store
        """
        manifests = self.repositories_root / name / "_manifests"
        (manifests / "revisions" / "sha256").mkdir(parents=True)
        (manifests / "tags").mkdir(parents=True)
        (self.repositories_root / name / "_layers" / "sha256").mkdir(parents=True)
        for digest in revisions:
            revision = manifests / "revisions" / "sha256" / digest
            revision.mkdir()
            (revision / "link").write_text(f"sha256:{digest}")
        for tag, (current, history) in (tags or {}).items():
            tag_dir = manifests / "tags" / tag
            (tag_dir / "current").mkdir(parents=True)
            (tag_dir / "current" / "link").write_text(f"sha256:{current}")
            for digest in history:
                entry = tag_dir / "index" / "sha256" / digest
                entry.mkdir(parents=True)
                (entry / "link").write_text(f"sha256:{digest}")
        return self.repositories_root / name

    def revision_dir(self, repository: str, digest: str) -> Path:
        return self.repositories_root / repository / "_manifests" / "revisions" / "sha256" / digest

    def history_dir(self, repository: str, tag: str, digest: str) -> Path:
        return self.repositories_root / repository / "_manifests" / "tags" / tag / "index" / "sha256" / digest

    def tag_dir(self, repository: str, tag: str) -> Path:
        return self.repositories_root / repository / "_manifests" / "tags" / tag

    def snapshot(self) -> set:
        """Every path under the storage root, for before/after comparisons."""
        return {p.relative_to(self.storage_root).as_posix() for p in self.storage_root.rglob("*")}


@pytest.fixture
def registry(tmp_path):
    """A fresh, empty registry storage tree"""
    return RegistryTreeBuilder(tmp_path / "registry-data")
