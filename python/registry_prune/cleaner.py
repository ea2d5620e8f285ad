"""
Per-target cleanup of a registry's repositories directory.

Each target is handled in one of four modes:

    REMOVE_REPOSITORY  -x with a bare repository, or with the repository's only tag
    REMOVE_TAG         -x with repository:tag; siblings and revisions untouched
    PRUNE_REPOSITORY   bare repository: prune revisions no tag references
    COMPACT_TAG        repository:tag: drop the tag's stale history, then prune
                       revisions on the whole repository

Errors in one target are logged and counted; the remaining targets still run.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from registry_prune.error_utils import CleanupError, DeletionError, NoSuchRepositoryError, NoSuchTagError
from registry_prune.link_graph import LinkGraph, RepositoryLayout, scan_repository
from registry_prune.logging_utils import get_logger
from registry_prune.pruner import Pruner, PruneResult
from registry_prune.reachability import compact_history, find_orphaned_revisions, find_stale_history
from registry_prune.reference import ImageReference


class CleanupMode(Enum):
    REMOVE_REPOSITORY = "remove-repository"
    REMOVE_TAG = "remove-tag"
    PRUNE_REPOSITORY = "prune-repository"
    COMPACT_TAG = "compact-tag"


def select_mode(reference: ImageReference, remove: bool, existing_tags: List[str]) -> CleanupMode:
    """Pick the cleanup mode for one target.

    Args:
        reference: Target repository and optional tag
        remove: True when -x was given
        existing_tags: Tag names currently present in the repository

    Returns:
        The CleanupMode to run
    """
    if remove:
        if reference.tag is None or existing_tags == [reference.tag]:
            return CleanupMode.REMOVE_REPOSITORY
        return CleanupMode.REMOVE_TAG
    if reference.tag is None:
        return CleanupMode.PRUNE_REPOSITORY
    return CleanupMode.COMPACT_TAG


@dataclass
class TargetResult:
    """Outcome of cleaning one target"""

    target: str
    mode: Optional[CleanupMode] = None
    removed: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class CleanupSummary:
    """Aggregated outcome of cleaning several targets"""

    results: List[TargetResult] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for result in self.results if not result.succeeded)

    @property
    def removed_count(self) -> int:
        return sum(result.removed for result in self.results)


class RegistryCleaner:
    """Runs the per-target cleanup modes against a repositories root"""

    def __init__(self, repositories_root: Path, pruner: Pruner, remove: bool = False):
        self.repositories_root = Path(repositories_root)
        self.pruner = pruner
        self.remove = remove
        self.logger = get_logger(self.__class__.__name__)

    def layout(self, repository: str) -> RepositoryLayout:
        return RepositoryLayout(self.repositories_root, repository)

    def clean_target(self, reference: ImageReference) -> TargetResult:
        """Clean one target.

        Raises:
            CleanupError: NoSuchRepositoryError, NoSuchTagError, ScanError or DeletionError
        """
        layout = self.layout(reference.repository)
        if not layout.exists():
            raise NoSuchRepositoryError(reference.repository)

        mode = select_mode(reference, self.remove, layout.list_tags())
        result = TargetResult(target=str(reference), mode=mode)
        self.logger.info(f"Cleaning {reference} ({mode.value})")

        if mode is CleanupMode.REMOVE_REPOSITORY:
            result.removed = self.pruner.prune([layout.repository_dir]).count
        elif mode is CleanupMode.REMOVE_TAG:
            self._require_tag(layout, reference.tag)
            # Revisions orphaned by this removal are left for the next repository-wide run
            result.removed = self.pruner.prune([layout.tag_dir(reference.tag)]).count
        elif mode is CleanupMode.PRUNE_REPOSITORY:
            result.removed = self._prune_revisions(layout, scan_repository(layout)).count
        else:
            result.removed = self._compact_tag(layout, reference.tag)
        return result

    def _require_tag(self, layout: RepositoryLayout, tag: str) -> None:
        if not layout.current_link(tag).is_file():
            raise NoSuchTagError(layout.repository, tag)

    def _prune_revisions(self, layout: RepositoryLayout, graph: LinkGraph) -> PruneResult:
        orphans = find_orphaned_revisions(graph)
        if not orphans:
            self.logger.info(f"No orphaned revisions in {layout.repository}")
        return self.pruner.prune(layout.revision_path(digest) for digest in orphans)

    def _compact_tag(self, layout: RepositoryLayout, tag: str) -> int:
        self._require_tag(layout, tag)
        graph = scan_repository(layout)
        stale = find_stale_history(graph, tag)
        self.logger.info(f"{len(stale)} stale history entries for {layout.repository}:{tag}")

        # If this raises, the compacted graph below would not match the disk
        history = self.pruner.prune(layout.history_entry_path(tag, digest) for digest in stale)
        revisions = self._prune_revisions(layout, compact_history(graph, tag))
        return history.count + revisions.count

    def clean_all(self, references: Iterable[ImageReference]) -> CleanupSummary:
        """Clean every target, isolating per-target failures."""
        summary = CleanupSummary()
        for reference in references:
            try:
                summary.results.append(self.clean_target(reference))
            except CleanupError as e:
                self.logger.error(f"ERROR: {e}")
                removed = e.result.count if isinstance(e, DeletionError) and e.result else 0
                summary.results.append(TargetResult(target=str(reference), removed=removed, error=str(e)))
        return summary
