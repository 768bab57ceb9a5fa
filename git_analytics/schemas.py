"""
Pass summaries for the categorization and weighting passes.

Every mutating pass returns a summary. Its ``planned_writes`` list holds the
"would update" decisions, and dry-run and live runs produce the same list for
the same starting state.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class PlannedWrite(BaseModel):
    """A single commit mutation decided by a pass."""

    commit_id: Optional[int] = None
    commit_hash: Optional[str] = None
    category: Optional[str] = None
    field: str
    old_value: Any = None
    new_value: Any = None
    reason: str = ""

    def describe(self) -> str:
        if self.commit_hash:
            target = self.commit_hash[:8]
        elif self.category:
            target = f"category={self.category}"
        else:
            target = f"id={self.commit_id}"
        return (
            f"{target}: {self.field} {self.old_value} -> {self.new_value}"
            + (f" ({self.reason})" if self.reason else "")
        )


class PassSummary(BaseModel):
    """Counters shared by every pass."""

    pass_name: str
    dry_run: bool = False
    repo_filter: Optional[str] = None
    total: int = 0
    mutated: int = 0
    skipped: int = 0
    failed: int = 0
    planned_writes: List[PlannedWrite] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ExtractionSummary(PassSummary):
    """Result of a pattern-based categorization pass."""

    pass_name: str = "categorize"
    already_categorized: int = 0
    rejected_invalid: int = 0
    no_match: int = 0
    categories: Dict[str, int] = Field(default_factory=dict)
    bookkeeping_failures: int = 0

    @property
    def coverage_percent(self) -> float:
        """Share of commits in scope that carry a category after the pass."""
        if self.total == 0:
            return 0.0
        categorized = self.already_categorized + self.mutated
        return round(categorized / self.total * 100, 1)


class RevertSummary(PassSummary):
    """Result of a revert-linkage weight pass."""

    pass_name: str = "calculate-weights"
    reverts_found: int = 0
    unlinked_references: int = 0
    commits_zeroed: int = 0


class CategorySyncStat(BaseModel):
    """Per-category line of the synchronizer report."""

    name: str
    weight: int
    commits: int
    updated: int = 0
    reverted_skipped: int = 0


class SyncSummary(PassSummary):
    """Result of a category-weight synchronization pass."""

    pass_name: str = "sync-weights"
    categories_processed: int = 0
    skipped_reverted: int = 0
    breakdown: List[CategorySyncStat] = Field(default_factory=list)


class AICategorizationSummary(PassSummary):
    """Result of an AI fallback categorization pass."""

    pass_name: str = "ai-categorize"
    categorized: int = 0
    errors: int = 0
    new_categories: int = 0


class PipelineSummary(BaseModel):
    """Ordered summaries of a full pipeline run."""

    dry_run: bool = False
    repo_filter: Optional[str] = None
    passes: List[PassSummary] = Field(default_factory=list)

    @property
    def total_mutated(self) -> int:
        return sum(summary.mutated for summary in self.passes)
