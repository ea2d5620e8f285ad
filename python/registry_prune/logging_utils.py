"""
Logging helpers shared by the cleaner, the pruner and the CLI.

Dry-run output is prefixed with DRY_RUN_PREFIX everywhere so a dry run can
be grepped for what a real run would do.
"""

import logging
import traceback
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'
DRY_RUN_PREFIX = "DRY RUN: "


def setup_logging(level: int = logging.INFO, fmt: Optional[str] = None) -> None:
	"""Configure root logging once. Later calls only change the level (--verbose)."""
	root = logging.getLogger()
	if root.handlers:
		root.setLevel(level)
		return
	logging.basicConfig(level=level, format=fmt or LOG_FORMAT)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	setup_logging()
	return logging.getLogger(name or "registry_prune")


def log_planned(logger: logging.Logger, action: str) -> None:
	"""Log an action that a dry run skips, e.g. log_planned(logger, "stop container registry")."""
	logger.info(f"{DRY_RUN_PREFIX}would {action}")


def log_banner(logger: logging.Logger, title: str, width: int = 60) -> None:
	"""Log a title framed by separator lines, used to mark run phases."""
	logger.info("=" * width)
	logger.info(f"   {title}")
	logger.info("=" * width)


def log_exception(logger: logging.Logger, message: str = "An error occurred", exc_info: Optional[BaseException] = None) -> None:
	"""Log an unexpected failure with its traceback.

	Args:
		logger: Logger instance to use
		message: Summary line logged first
		exc_info: The exception; when None, the one currently being handled
	"""
	logger.error(message)
	if exc_info is None:
		logger.error(traceback.format_exc())
		return

	# ActionableError carries its own suggestions in .message/.suggestions
	suggestions = getattr(exc_info, "suggestions", None)
	logger.error(f"{type(exc_info).__name__}: {getattr(exc_info, 'message', exc_info)}")
	for suggestion in suggestions or []:
		logger.error(f"   - {suggestion}")
	logger.error("".join(traceback.format_exception(type(exc_info), exc_info, exc_info.__traceback__)))
