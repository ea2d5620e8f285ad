"""
Deletion of link-graph entries with dry-run support.

Every path handed to the Pruner is one self-contained unit: a digest
directory, a tag directory or a whole repository directory.
"""

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Tuple

from registry_prune.error_utils import DeletionError
from registry_prune.logging_utils import get_logger, log_planned


@dataclass
class PruneResult:
    """Outcome of one prune call"""

    dry_run: bool = False
    planned: List[Path] = field(default_factory=list)
    removed: List[Path] = field(default_factory=list)
    failed: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of paths removed, or that would be removed in dry-run mode."""
        return len(self.planned) if self.dry_run else len(self.removed)


class Pruner:
    """Removes paths recursively, or only reports them in dry-run mode"""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run
        self.logger = get_logger(self.__class__.__name__)

    def prune(self, paths: Iterable[Path]) -> PruneResult:
        """Remove every path in order.

        Already-absent paths count as removed. A failing path does not stop the
        remaining ones.

        Args:
            paths: Paths to remove

        Returns:
            PruneResult listing what was planned and removed

        Raises:
            DeletionError: after all paths were attempted, if any of them failed
        """
        result = PruneResult(dry_run=self.dry_run, planned=[Path(p) for p in paths])

        for path in result.planned:
            if self.dry_run:
                log_planned(self.logger, f"remove '{path}'")
                continue
            try:
                self._remove(path)
                result.removed.append(path)
            except OSError as e:
                self.logger.error(f"Failed to remove '{path}': {e}")
                result.failed.append((path, str(e)))

        if result.failed:
            raise DeletionError(
                f"Failed to remove {len(result.failed)} of {len(result.planned)} paths",
                result=result,
            )
        return result

    def _remove(self, path: Path) -> None:
        try:
            if path.is_symlink() or path.is_file():
                path.unlink()
            elif path.is_dir():
                shutil.rmtree(path)
            else:
                self.logger.debug(f"Already absent: '{path}'")
                return
        except FileNotFoundError:
            self.logger.debug(f"Already absent: '{path}'")
            return
        self.logger.info(f"removed '{path}'")
