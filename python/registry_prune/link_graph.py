"""
Read-only scanner for the registry's on-disk link graph.

Layout of one repository under <root>/docker/registry/v2/repositories/:

    <repo>/_manifests/revisions/sha256/<digest>/        one dir per stored manifest
    <repo>/_manifests/tags/<tag>/current/link           "sha256:<digest>"
    <repo>/_manifests/tags/<tag>/index/sha256/<digest>/  one dir per history entry

Nothing in this module modifies the filesystem.
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Set

from registry_prune.error_utils import NoSuchRepositoryError, ScanError
from registry_prune.logging_utils import get_logger

logger = get_logger(__name__)

REPOSITORIES_SUBPATH = Path("docker", "registry", "v2", "repositories")
DIGEST_ALGORITHM = "sha256"
DIGEST_PATTERN = re.compile(r"[0-9a-f]+")

# Directories inside a repository that belong to the repository itself
RESERVED_DIRS = ("_manifests", "_layers", "_uploads")


@dataclass(frozen=True)
class TagState:
    """A tag's current pointer and every digest it ever pointed to."""

    name: str
    current: str
    history: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class LinkGraph:
    """In-memory snapshot of one repository's tags and manifest revisions."""

    repository: str
    tags: Dict[str, TagState] = field(default_factory=dict)
    revisions: FrozenSet[str] = frozenset()

    def current_digests(self) -> Set[str]:
        return {state.current for state in self.tags.values()}

    def with_history(self, tag: str, history: Iterable[str]) -> "LinkGraph":
        """Return a copy of the graph where tag's history index is replaced."""
        tags = dict(self.tags)
        tags[tag] = replace(tags[tag], history=frozenset(history))
        return replace(self, tags=tags)


class RepositoryLayout:
    """Path helpers for one repository under the repositories root"""

    def __init__(self, repositories_root: Path, repository: str):
        self.repositories_root = Path(repositories_root)
        self.repository = repository

    @property
    def repository_dir(self) -> Path:
        return self.repositories_root / self.repository

    @property
    def manifests_dir(self) -> Path:
        return self.repository_dir / "_manifests"

    @property
    def revisions_dir(self) -> Path:
        return self.manifests_dir / "revisions" / DIGEST_ALGORITHM

    @property
    def tags_dir(self) -> Path:
        return self.manifests_dir / "tags"

    def tag_dir(self, tag: str) -> Path:
        return self.tags_dir / tag

    def current_link(self, tag: str) -> Path:
        return self.tag_dir(tag) / "current" / "link"

    def history_dir(self, tag: str) -> Path:
        return self.tag_dir(tag) / "index" / DIGEST_ALGORITHM

    def revision_path(self, digest: str) -> Path:
        return self.revisions_dir / digest

    def history_entry_path(self, tag: str, digest: str) -> Path:
        return self.history_dir(tag) / digest

    def exists(self) -> bool:
        return self.repository_dir.is_dir()

    def list_tags(self) -> List[str]:
        """Names of the tag directories, sorted; empty when there are none.

        Raises:
            ScanError: if the tags directory cannot be listed
        """
        if not self.tags_dir.is_dir():
            return []
        try:
            return sorted(entry.name for entry in self.tags_dir.iterdir() if entry.is_dir())
        except OSError as e:
            raise ScanError(f"Cannot list tags of {self.repository}: {e}") from e


def repositories_root_for(storage_root: Path) -> Path:
    """Map a registry storage root to its repositories directory."""
    return Path(storage_root) / REPOSITORIES_SUBPATH


def read_current_link(path: Path) -> str:
    """Read a tag's current/link record and return the bare hex digest.

    Raises:
        ScanError: if the record is missing, unreadable or malformed
    """
    try:
        content = path.read_text().strip()
    except OSError as e:
        raise ScanError(f"Cannot read current pointer {path}: {e}") from e

    algorithm, sep, digest = content.partition(":")
    if not sep or algorithm != DIGEST_ALGORITHM or not DIGEST_PATTERN.fullmatch(digest):
        raise ScanError(f"Malformed current pointer in {path}: {content!r}")
    return digest


def list_digest_dirs(path: Path) -> FrozenSet[str]:
    """Digest directory names directly under path; a missing directory yields none."""
    if not path.is_dir():
        return frozenset()
    try:
        return frozenset(
            entry.name for entry in path.iterdir()
            if entry.is_dir() and DIGEST_PATTERN.fullmatch(entry.name)
        )
    except OSError as e:
        raise ScanError(f"Cannot list {path}: {e}") from e


def scan_repository(layout: RepositoryLayout) -> LinkGraph:
    """Build the LinkGraph of one repository.

    Args:
        layout: RepositoryLayout of the repository to scan

    Returns:
        LinkGraph with every tag's current digest and history, and the revision set

    Raises:
        NoSuchRepositoryError: if the repository directory does not exist
        ScanError: if a tag's current pointer is missing or malformed
    """
    if not layout.exists():
        raise NoSuchRepositoryError(layout.repository)

    tags = {}
    for tag in layout.list_tags():
        current = read_current_link(layout.current_link(tag))
        tags[tag] = TagState(name=tag, current=current, history=list_digest_dirs(layout.history_dir(tag)))

    revisions = list_digest_dirs(layout.revisions_dir)
    logger.debug(
        f"Scanned {layout.repository}: {len(tags)} tags, {len(revisions)} revisions"
    )
    return LinkGraph(repository=layout.repository, tags=tags, revisions=revisions)


def discover_repositories(repositories_root: Path) -> List[str]:
    """Find every repository under the repositories root.

    A repository is any directory owning a _manifests directory, so nested
    names such as "library/nginx" are found. Symlinked directories are not
    followed. Sorted by name.
    """
    root = Path(repositories_root)
    found = []
    pending = [root]
    while pending:
        current = pending.pop()
        for entry in current.iterdir():
            if entry.is_symlink() or not entry.is_dir() or entry.name in RESERVED_DIRS:
                continue
            if (entry / "_manifests").is_dir():
                found.append(entry.relative_to(root).as_posix())
            pending.append(entry)
    return sorted(found)
