"""Unit tests for registry_prune/report_utils.py"""

from registry_prune.cleaner import CleanupMode, CleanupSummary, TargetResult
from registry_prune.report_utils import format_cleanup_summary


class TestFormatCleanupSummary:
    """Tests for the end-of-run table"""

    def test_lists_each_target(self):
        summary = CleanupSummary(results=[
            TargetResult(target="app", mode=CleanupMode.PRUNE_REPOSITORY, removed=3),
            TargetResult(target="ghost", error="No such repository: ghost"),
        ])

        report = format_cleanup_summary(summary)

        assert "app" in report
        assert "prune-repository" in report
        assert "error: No such repository: ghost" in report
        assert report.splitlines()[-1] == "2 targets, 3 entries removed, 1 errors"

    def test_dry_run_labels(self):
        summary = CleanupSummary(results=[TargetResult(target="app:v1", mode=CleanupMode.COMPACT_TAG, removed=2)])

        report = format_cleanup_summary(summary, dry_run=True)

        assert "Would remove" in report
        assert report.splitlines()[-1] == "DRY RUN: 1 targets, 2 entries to remove, 0 errors"
