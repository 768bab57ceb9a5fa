"""
AI fallback categorization.

Categorizes the commits the pattern-based extractor could not, by asking a
``CategorizationClient``. Commits are processed in batches; each batch is
written inside its own savepoint so a store error loses one batch only.

No model vendor ships with this package and the CLI has no AI command. An
orchestrator plugs one in by subclassing ``CategorizationClient`` with a
``complete(prompt)`` method, then runs the pass on its own session::

    settings = get_settings()
    client = MyClient(**client_options(settings))
    with open_session() as session:
        AICategorizer(session, client, batch_size=settings.ai_batch_size).run()
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import CommitModel
from ..db.services import CategoryService, CommitService
from ..schemas import AICategorizationSummary, PlannedWrite
from .ai_client import CategorizationClient, CategorizationError, CommitContext

logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 50
AI_CATEGORY_DESCRIPTION = "Created by AI categorization"


class AICategorizer:
    """Runs a CategorizationClient over uncategorized commits."""

    pass_name = "ai-categorize"

    def __init__(
        self,
        db: Session,
        client: CategorizationClient,
        batch_size: int = DEFAULT_BATCH_SIZE,
        force: bool = False,
        limit: Optional[int] = None,
    ):
        self.db = db
        self.client = client
        self.batch_size = max(1, batch_size)
        self.force = force
        self.limit = limit
        self.commit_service = CommitService(db)
        self.category_service = CategoryService(db)

    def run(
        self, dry_run: bool = False, repo_filter: Optional[str] = None
    ) -> AICategorizationSummary:
        summary = AICategorizationSummary(dry_run=dry_run, repo_filter=repo_filter)
        log = logger.bind(pass_name=self.pass_name, dry_run=dry_run, repo_filter=repo_filter)

        try:
            commits = self.commit_service.list_uncategorized(
                repo_filter, force=self.force, limit=self.limit
            )
            existing = self.category_service.names_by_usage()
            log.info("ai_categorize_start", commits=len(commits), force=self.force)

            for start in range(0, len(commits), self.batch_size):
                batch = commits[start : start + self.batch_size]
                if dry_run:
                    for commit in batch:
                        self._process_commit(commit, existing, summary, log)
                else:
                    self._process_batch(batch, existing, summary, log)

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info(
            "ai_categorize_complete",
            processed=summary.total,
            categorized=summary.categorized,
            new_categories=summary.new_categories,
            errors=summary.errors,
        )
        return summary

    def _process_batch(
        self,
        batch: List[CommitModel],
        existing: List[str],
        summary: AICategorizationSummary,
        log,
    ) -> None:
        categorized_before = summary.categorized
        mutated_before = summary.mutated
        new_before = summary.new_categories
        known_before = list(existing)
        try:
            with self.db.begin_nested():
                for commit in batch:
                    self._process_commit(commit, existing, summary, log)
        except SQLAlchemyError as e:
            log.error("ai_batch_failed", size=len(batch), error=str(e))
            summary.errors += len(batch)
            summary.failed += len(batch)
            summary.categorized = categorized_before
            summary.mutated = mutated_before
            summary.new_categories = new_before
            existing[:] = known_before

    def _process_commit(
        self,
        commit: CommitModel,
        existing: List[str],
        summary: AICategorizationSummary,
        log,
    ) -> None:
        summary.total += 1
        context = CommitContext(hash=commit.hash, subject=commit.subject)
        try:
            result = self.client.categorize(context, existing)
        except CategorizationError as e:
            summary.errors += 1
            summary.failed += 1
            log.warning("ai_categorization_failed", commit=commit.hash[:8], error=str(e))
            return

        if result.category == commit.category:
            summary.skipped += 1
            return

        summary.planned_writes.append(
            PlannedWrite(
                commit_id=commit.id,
                commit_hash=commit.hash,
                field="category",
                old_value=commit.category,
                new_value=result.category,
                reason=f"AI ({result.confidence}%): {result.reason}",
            )
        )

        if result.category not in existing:
            created = summary.dry_run or self.category_service.create_if_missing(
                result.category, result.reason or AI_CATEGORY_DESCRIPTION
            )
            if created:
                summary.new_categories += 1
            existing.append(result.category)

        if not summary.dry_run:
            self.commit_service.set_category(
                commit.id, result.category, ai_confidence=result.confidence
            )
            self.category_service.increment_usage(result.category)

        summary.categorized += 1
        summary.mutated += 1
        log.debug(
            "ai_categorized",
            commit=commit.hash[:8],
            category=result.category,
            confidence=result.confidence,
        )
