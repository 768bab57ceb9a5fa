"""
Human-readable rendering of pass summaries.
"""

from typing import Iterable

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .schemas import (
    AICategorizationSummary,
    ExtractionSummary,
    PassSummary,
    PipelineSummary,
    RevertSummary,
    SyncSummary,
)

TITLES = {
    "categorize": "Commit Categorization",
    "calculate-weights": "Commit Weight Calculation",
    "sync-weights": "Commit Weight Synchronization",
    "ai-categorize": "AI-Powered Commit Categorization",
}


def render_header(console: Console, pass_name: str, dry_run: bool, repo_filter) -> None:
    mode = "DRY RUN (no changes)" if dry_run else "LIVE (will update database)"
    console.print(
        Panel.fit(
            f"Mode: {mode}\nRepository filter: {escape(repo_filter or 'All repositories')}",
            title=TITLES.get(pass_name, pass_name),
            style="bold blue",
        )
    )


def _counter_rows(summary: PassSummary) -> Iterable[tuple]:
    verb = "Would update" if summary.dry_run else "Updated"
    yield "Total commits processed", summary.total
    yield f"{verb}", summary.mutated
    yield "Skipped", summary.skipped
    if summary.failed:
        yield "Failed writes", summary.failed

    if isinstance(summary, ExtractionSummary):
        yield "Already categorized", summary.already_categorized
        yield "No pattern matched", summary.no_match
        if summary.rejected_invalid:
            yield "Rejected (invalid)", summary.rejected_invalid
        if summary.bookkeeping_failures:
            yield "Category upserts failed", summary.bookkeeping_failures
        if summary.total:
            yield "Total category coverage", f"{summary.coverage_percent}%"
    elif isinstance(summary, RevertSummary):
        yield "Revert commits found", summary.reverts_found
        yield "Commits set to weight=0", summary.commits_zeroed
        if summary.unlinked_references:
            yield "Unlinked references", summary.unlinked_references
    elif isinstance(summary, SyncSummary):
        yield "Categories processed", summary.categories_processed
        if summary.skipped_reverted:
            yield "Reverted commits (skipped)", summary.skipped_reverted
    elif isinstance(summary, AICategorizationSummary):
        yield "Successfully categorized", summary.categorized
        yield "New categories created", summary.new_categories
        if summary.errors:
            yield "Errors", summary.errors


def render_summary(console: Console, summary: PassSummary, verbose: bool = False) -> None:
    """Print the counters, breakdown and (optionally) planned writes of a pass."""
    if summary.dry_run or verbose:
        for write in summary.planned_writes:
            prefix = "[DRY RUN] Would update" if summary.dry_run else "Updated"
            console.print(f"{prefix} {escape(write.describe())}")

    for warning in summary.warnings:
        console.print(f"[yellow][WARNING][/yellow] {escape(warning)}")

    table = Table(
        title=f"{TITLES.get(summary.pass_name, summary.pass_name)} Summary",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    for label, value in _counter_rows(summary):
        table.add_row(label, str(value))
    console.print(table)

    if isinstance(summary, SyncSummary) and summary.breakdown:
        breakdown = Table(title="Per-Category Breakdown", header_style="bold cyan")
        breakdown.add_column("Category", style="yellow")
        breakdown.add_column("Weight", justify="right")
        breakdown.add_column("Commits", justify="right")
        breakdown.add_column("Updated", justify="right")
        breakdown.add_column("Reverted skipped", justify="right")
        for stat in summary.breakdown:
            breakdown.add_row(
                escape(stat.name),
                str(stat.weight),
                str(stat.commits),
                str(stat.updated),
                str(stat.reverted_skipped),
            )
        console.print(breakdown)

    if summary.dry_run:
        console.print("✓ Dry run complete - no changes made")
    else:
        console.print("✓ Changes committed to database")


def render_pipeline(console: Console, result: PipelineSummary, verbose: bool = False) -> None:
    for summary in result.passes:
        render_header(console, summary.pass_name, result.dry_run, result.repo_filter)
        render_summary(console, summary, verbose=verbose)
