"""
Formatting of cleanup results for the end-of-run report.
"""

from tabulate import tabulate

from registry_prune.cleaner import CleanupSummary
from registry_prune.logging_utils import DRY_RUN_PREFIX


def format_cleanup_summary(summary: CleanupSummary, dry_run: bool = False) -> str:
    """Render per-target results as a grid table.

    Args:
        summary: CleanupSummary returned by RegistryCleaner.clean_all
        dry_run: Label the count column as planned rather than removed

    Returns:
        The table followed by a totals line
    """
    headers = ["Target", "Mode", "Would remove" if dry_run else "Removed", "Status"]
    rows = [
        [
            result.target,
            result.mode.value if result.mode else "-",
            result.removed,
            "ok" if result.succeeded else f"error: {result.error}",
        ]
        for result in summary.results
    ]
    table = tabulate(rows, headers=headers, tablefmt="grid")
    mode = DRY_RUN_PREFIX if dry_run else ""
    totals = (
        f"{mode}{len(summary.results)} targets, {summary.removed_count} entries "
        f"{'to remove' if dry_run else 'removed'}, {summary.error_count} errors"
    )
    return f"{table}\n{totals}"
