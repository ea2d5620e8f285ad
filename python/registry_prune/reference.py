"""
Validation of repository[:tag] references.

Grammar, from the Docker image spec and the distribution API spec:
- Tag values are limited to [a-zA-Z0-9_.-], may not start with . or -, and are
  limited to 127 characters.
- A repository name is made of one or more "/"-separated path components, each
  matching [a-z0-9]+(?:[._-][a-z0-9]+)*. The full reference must be shorter
  than 256 characters.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from registry_prune.error_utils import InvalidReferenceError

MAX_REFERENCE_LENGTH = 256
MAX_TAG_LENGTH = 128
DEFAULT_TAG = "latest"

TAG_PATTERN = re.compile(r"[a-zA-Z0-9]+([._-][a-zA-Z0-9_]+)*")
REPOSITORY_COMPONENT_PATTERN = re.compile(r"[a-z0-9]+([._-][a-z0-9]+)*")


@dataclass(frozen=True)
class ImageReference:
    """A validated cleanup target. tag is None when only a repository was given."""

    repository: str
    tag: Optional[str] = None

    @property
    def effective_tag(self) -> str:
        return self.tag if self.tag is not None else DEFAULT_TAG

    def __str__(self) -> str:
        return f"{self.repository}:{self.tag}" if self.tag is not None else self.repository


def parse_reference(reference: str) -> ImageReference:
    """Parse and validate a repository[:tag] string.

    Args:
        reference: Raw positional argument, e.g. "library/nginx:1.25"

    Returns:
        ImageReference with tag set only if the reference contained one

    Raises:
        InvalidReferenceError: naming the first rule the reference violates
    """
    repository, sep, tag = reference.partition(":")
    explicit_tag = tag if sep else None
    checked_tag = tag if sep else DEFAULT_TAG

    if len(reference) >= MAX_REFERENCE_LENGTH:
        raise InvalidReferenceError(
            reference, f"reference must be shorter than {MAX_REFERENCE_LENGTH} characters"
        )
    if len(checked_tag) >= MAX_TAG_LENGTH:
        raise InvalidReferenceError(reference, f"tag must be shorter than {MAX_TAG_LENGTH} characters")
    if not TAG_PATTERN.fullmatch(checked_tag):
        raise InvalidReferenceError(reference, f"tag '{checked_tag}' contains invalid characters")

    for component in repository.split("/"):
        if not REPOSITORY_COMPONENT_PATTERN.fullmatch(component):
            raise InvalidReferenceError(
                reference, f"repository path component '{component}' is invalid"
            )

    return ImageReference(repository=repository, tag=explicit_tag)


def validate_references(references: Iterable[str]) -> List[ImageReference]:
    """Validate every reference before anything is touched; the first invalid one raises."""
    return [parse_reference(reference) for reference in references]
