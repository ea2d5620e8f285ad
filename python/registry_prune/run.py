"""
End-to-end cleanup run against a registry container.

Sequence:
1. validate every target (no side effects on failure)
2. check preconditions and resolve the storage root (no side effects on failure)
3. stop the registry container
4. clean each target, counting per-target errors
5. run the registry garbage collector, whatever step 4 reported
6. start the registry container, whatever steps 4 and 5 reported

If the process is killed between steps 3 and 6 the container stays stopped;
restart it by hand with `docker start CONTAINER`.
"""

from typing import List, Optional, Sequence

from registry_prune.cleaner import CleanupSummary, RegistryCleaner
from registry_prune.config_manager import ConfigManager
from registry_prune.docker_client import ControlPlane
from registry_prune.error_utils import ControlPlaneError, UsageError
from registry_prune.link_graph import discover_repositories
from registry_prune.logging_utils import get_logger, log_banner, log_planned
from registry_prune.preconditions import PreconditionChecker, RegistryStorage
from registry_prune.pruner import Pruner
from registry_prune.reference import ImageReference, validate_references
from registry_prune.registry_maintenance import run_registry_garbage_collection
from registry_prune.report_utils import format_cleanup_summary


class RegistryCleanupRun:
    """One invocation of the cleaner against a registry container"""

    def __init__(
        self,
        control_plane: ControlPlane,
        config: ConfigManager,
        container: str,
        targets: Sequence[str] = (),
        dry_run: bool = False,
        remove: bool = False,
    ):
        self.control_plane = control_plane
        self.config = config
        self.container = container
        self.targets = list(targets)
        self.dry_run = dry_run
        self.remove = remove
        self.logger = get_logger(self.__class__.__name__)
        self.summary: Optional[CleanupSummary] = None
        self.gc_succeeded: Optional[bool] = None

    def validate(self) -> List[ImageReference]:
        """Validate targets and options before anything is touched.

        Raises:
            InvalidReferenceError: for the first malformed target
            UsageError: when -x is given without any target
        """
        references = validate_references(self.targets)
        if self.remove and not references:
            raise UsageError("The -x option requires that you specify at least one repository")
        return references

    def execute(self) -> int:
        """Run the whole sequence and return the number of errors.

        Raises:
            InvalidReferenceError, UsageError, PreconditionError: before any change is made
            ControlPlaneError: if the container cannot be stopped or restarted
        """
        references = self.validate()
        storage = PreconditionChecker(self.control_plane, self.config).resolve_storage(self.container)

        mode = "DRY RUN" if self.dry_run else "Cleaning"
        log_banner(self.logger, f"{mode} registry {self.container} at {storage.storage_root}")

        errors = 0
        self._stop()
        try:
            try:
                self.summary = self._clean(storage, references)
                errors += self.summary.error_count
            finally:
                self.gc_succeeded = run_registry_garbage_collection(
                    self.control_plane, storage.storage_root, self.config, dry_run=self.dry_run
                )
                if not self.gc_succeeded:
                    errors += 1
            # Must be logged before _start, which may raise
            self.logger.info("\n" + format_cleanup_summary(self.summary, dry_run=self.dry_run))
        finally:
            self._start()
        return errors

    def _clean(self, storage: RegistryStorage, references: List[ImageReference]) -> CleanupSummary:
        if not references:
            references = [
                ImageReference(repository) for repository in discover_repositories(storage.repositories_root)
            ]
            self.logger.info(f"Cleaning all {len(references)} repositories")

        cleaner = RegistryCleaner(storage.repositories_root, Pruner(dry_run=self.dry_run), remove=self.remove)
        return cleaner.clean_all(references)

    def _stop(self) -> None:
        if self.dry_run:
            log_planned(self.logger, f"stop container {self.container}")
            return
        self.logger.info(f"Stopping container {self.container}")
        self.control_plane.stop(self.container)

    def _start(self) -> None:
        if self.dry_run:
            log_planned(self.logger, f"start container {self.container}")
            return
        self.logger.info(f"Starting container {self.container}")
        try:
            self.control_plane.start(self.container)
        except ControlPlaneError as e:
            self.logger.error(e.message)
            self.logger.error(f"Restart the registry manually: docker start {self.container}")
            raise
