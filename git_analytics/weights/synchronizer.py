"""
Category-weight synchronizer.

Propagates each category's administrator-set weight onto the commits that
carry the category. Commits at weight 0 were zeroed by revert linkage (or by
an earlier sync to a zero-weight category) and are never raised again: revert
state always wins over category weight.

Run the revert calculator before this pass; the ordering is the caller's
responsibility (see ``git_analytics.pipeline``).
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import CategoryModel
from ..db.services import CategoryService, CommitService
from ..schemas import CategorySyncStat, PlannedWrite, SyncSummary

logger = structlog.get_logger()


class CategoryWeightSynchronizer:
    """Overwrites commit weights with their category's weight."""

    pass_name = "sync-weights"

    def __init__(self, db: Session):
        self.db = db
        self.commit_service = CommitService(db)
        self.category_service = CategoryService(db)

    def run(
        self, dry_run: bool = False, repo_filter: Optional[str] = None
    ) -> SyncSummary:
        """Synchronize every category, in name order."""
        summary = SyncSummary(dry_run=dry_run, repo_filter=repo_filter)
        log = logger.bind(pass_name=self.pass_name, dry_run=dry_run, repo_filter=repo_filter)

        try:
            categories = self.category_service.list_categories()
            if not categories:
                summary.warnings.append(
                    "No categories found in database. Run categorization first."
                )
                log.warning("no_categories_found")
                self.db.rollback()
                return summary

            log.info("sync_start", categories=len(categories))
            for category in categories:
                self._process_category(category, summary, log)

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        summary.breakdown.sort(key=lambda stat: -stat.commits)
        log.info(
            "sync_complete",
            categories=summary.categories_processed,
            total=summary.total,
            updated=summary.mutated,
            skipped_reverted=summary.skipped_reverted,
        )
        return summary

    def _process_category(
        self, category: CategoryModel, summary: SyncSummary, log
    ) -> None:
        name = category.name
        weight = category.weight
        summary.categories_processed += 1

        counts = self.commit_service.count_by_category(
            name, summary.repo_filter, target_weight=weight
        )
        summary.total += counts["total"]
        summary.skipped_reverted += counts["reverted"]
        summary.skipped += counts["total"] - counts["out_of_sync"]

        if counts["non_reverted"] == 0:
            log.debug("category_without_commits", category=name)
            return

        stat = CategorySyncStat(
            name=name,
            weight=weight,
            commits=counts["non_reverted"],
            reverted_skipped=counts["reverted"],
        )
        summary.breakdown.append(stat)

        if counts["out_of_sync"] == 0:
            return

        summary.planned_writes.append(
            PlannedWrite(
                category=name,
                field="weight",
                new_value=weight,
                reason=f"{counts['out_of_sync']} commits",
            )
        )

        if not summary.dry_run:
            try:
                with self.db.begin_nested():
                    self.commit_service.bulk_set_category_weight(
                        name, weight, summary.repo_filter
                    )
            except SQLAlchemyError as e:
                summary.failed += counts["out_of_sync"]
                log.error("category_sync_failed", category=name, error=str(e))
                return

        stat.updated = counts["out_of_sync"]
        summary.mutated += counts["out_of_sync"]
