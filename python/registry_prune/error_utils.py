"""
Error types and actionable error messages for registry pruning.

Fatal errors (invalid references, usage errors, failed preconditions) abort a
run before the registry container is touched. Per-target errors derive from
CleanupError; they are counted and never stop the remaining targets.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCategory(Enum):
    """Categories of errors for better error handling"""
    PERMISSION = "permission"
    COMPATIBILITY = "compatibility"
    CONTROL_PLANE = "control_plane"
    UNKNOWN = "unknown"


class RegistryPruneError(Exception):
    """Base class for all errors raised by registry_prune"""


class ActionableError(RegistryPruneError):
    """Exception with actionable guidance for users"""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.UNKNOWN,
                 suggestions: Optional[List[str]] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize actionable error

        Args:
            message: Primary error message
            category: Error category for classification
            suggestions: List of suggested fixes
            details: Additional context information
        """
        self.message = message
        self.category = category
        self.suggestions = suggestions or []
        self.details = details or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message with suggestions"""
        lines = [f"❌ {self.message}"]

        if self.suggestions:
            lines.append("\n💡 Suggested fixes:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"   {i}. {suggestion}")

        if self.details:
            lines.append("\n📋 Additional details:")
            for key, value in self.details.items():
                lines.append(f"   {key}: {value}")

        return "\n".join(lines)


class ConfigValidationError(RegistryPruneError):
    """Raised when configuration validation fails"""


class InvalidReferenceError(RegistryPruneError):
    """A repository[:tag] argument violates the naming grammar."""

    def __init__(self, reference: str, rule: str):
        self.reference = reference
        self.rule = rule
        super().__init__(f"Invalid Docker repository/tag: {reference} ({rule})")


class UsageError(RegistryPruneError):
    """Invalid combination of command-line options."""


class PreconditionError(ActionableError):
    """The environment is not safe to prune; nothing has been touched."""


class ControlPlaneError(ActionableError):
    """A docker CLI invocation failed."""


class CleanupError(RegistryPruneError):
    """Per-target failure; counted, does not halt the run."""


class NoSuchRepositoryError(CleanupError):
    def __init__(self, repository: str):
        self.repository = repository
        super().__init__(f"No such repository: {repository}")


class NoSuchTagError(CleanupError):
    def __init__(self, repository: str, tag: str):
        self.repository = repository
        self.tag = tag
        super().__init__(f"No such tag: {tag} in repository {repository}")


class ScanError(CleanupError):
    """The on-disk link graph could not be read reliably."""


class DeletionError(CleanupError):
    """One or more paths could not be removed."""

    def __init__(self, message: str, result: Any = None):
        self.result = result
        super().__init__(message)


def create_control_plane_error(operation: str, error: Exception,
                               stderr: Optional[str] = None) -> ControlPlaneError:
    """Create actionable error for docker CLI failures"""
    error_str = f"{error} {stderr or ''}".lower()

    suggestions = [
        "Verify the docker CLI is installed and on PATH (or set DOCKER)",
        "Check that the Docker daemon is running (docker info)",
        "Verify the container name is correct (docker ps -a)",
    ]

    if "permission denied" in error_str:
        suggestions.insert(0, "Run as root or as a member of the docker group")

    if "no such container" in error_str or "no such object" in error_str:
        suggestions.insert(0, "The container does not exist; check the CONTAINER argument")

    return ControlPlaneError(
        message=f"Docker operation failed: {operation}",
        category=ErrorCategory.CONTROL_PLANE,
        suggestions=suggestions,
        details={
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
            "stderr": (stderr or "").strip(),
        },
    )


def create_precondition_error(check: str, message: str, suggestions: Optional[List[str]] = None,
                              category: ErrorCategory = ErrorCategory.COMPATIBILITY,
                              details: Optional[Dict[str, Any]] = None) -> PreconditionError:
    """Create actionable error for a failed precondition check"""
    return PreconditionError(
        message=message,
        category=category,
        suggestions=suggestions or [],
        details={"check": check, **(details or {})},
    )


def create_config_error(field: str, value: Any, reason: str) -> ConfigValidationError:
    """Create a configuration error naming the offending field"""
    return ConfigValidationError(
        f"Configuration error: Invalid value for '{field}' ({value!r}): {reason}"
    )
