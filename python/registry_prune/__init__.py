"""
Offline pruning of a Docker Distribution (registry:2) filesystem store.

Removes manifest revisions and tag history entries that no tag can reach,
then runs the registry's garbage collector while the container is stopped.
"""

from registry_prune.cleaner import CleanupMode, RegistryCleaner
from registry_prune.reference import ImageReference, parse_reference, validate_references
from registry_prune.run import RegistryCleanupRun

__all__ = [
    "CleanupMode",
    "ImageReference",
    "RegistryCleaner",
    "RegistryCleanupRun",
    "parse_reference",
    "validate_references",
]

__version__ = "2.4.0"
