"""
Pattern-based commit categorization.

Derives a business-domain category from a commit subject. Three heuristics
are tried in order and the first one that yields a candidate wins:

1. Pipe delimiter:   "BILLING | Fix payment processor"  -> BILLING
2. Bracket prefix:   "[CS] Update widget"               -> CS
3. Leading caps:     "SECURITY Fix vulnerability"       -> SECURITY

The candidate is then checked by the CategoryValidator. A rejected candidate
means "no category"; weaker heuristics are not consulted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.services import CategoryService, CommitService
from ..schemas import ExtractionSummary, PlannedWrite
from .validator import CategoryValidator, get_default_validator

logger = structlog.get_logger()

PIPE_DELIMITER = " | "
# Common all-caps verbs that open a subject without naming a domain
STOP_WORDS = frozenset({"MERGE", "FIX", "ADD", "UPDATE", "REMOVE", "DELETE"})
CATEGORY_DESCRIPTION = "Created by pattern-based categorization"

_BRACKET_PREFIX = re.compile(r"\A\[([^\]]+)\]")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of running the heuristics on one subject."""

    category: Optional[str] = None
    candidate: Optional[str] = None
    rule: Optional[str] = None
    rejection_reason: Optional[str] = None

    @property
    def rejected(self) -> bool:
        return self.rejection_reason is not None


def extract_candidate(subject: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(candidate, rule)`` for a subject, before validation."""
    if subject is None or not subject.strip():
        return None, None

    if PIPE_DELIMITER in subject:
        candidate = subject.split(PIPE_DELIMITER, 1)[0].strip().upper()
        if candidate:
            return candidate, "pipe"

    match = _BRACKET_PREFIX.match(subject)
    if match:
        return match.group(1).strip().upper(), "bracket"

    first_token = _WHITESPACE.split(subject, maxsplit=1)[0]
    if (
        len(first_token) >= 2
        and first_token == first_token.upper()
        and first_token not in STOP_WORDS
    ):
        return first_token, "caps"

    return None, None


def extract_category(
    subject: Optional[str], validator: Optional[CategoryValidator] = None
) -> ExtractionResult:
    """Extract and validate a category. Never raises on malformed subjects."""
    validator = validator or CategoryValidator()
    candidate, rule = extract_candidate(subject)
    if candidate is None:
        return ExtractionResult()

    reason = validator.rejection_reason(candidate)
    if reason != "valid":
        return ExtractionResult(candidate=candidate, rule=rule, rejection_reason=reason)

    return ExtractionResult(category=candidate, candidate=candidate, rule=rule)


class CategoryExtractor:
    """Categorizes commits in bulk from their subjects.

    Commits that already carry a category are skipped unless ``force`` is set,
    in which case they are re-derived and overwritten when the result differs.
    """

    pass_name = "categorize"

    def __init__(
        self,
        db: Session,
        validator: Optional[CategoryValidator] = None,
        force: bool = False,
    ):
        self.db = db
        self.validator = validator or get_default_validator()
        self.force = force
        self.commit_service = CommitService(db)
        self.category_service = CategoryService(db)

    def run(
        self, dry_run: bool = False, repo_filter: Optional[str] = None
    ) -> ExtractionSummary:
        """Categorize every commit in scope.

        All commit writes of a live run are committed together. Dry runs make
        the same decisions and write nothing.
        """
        summary = ExtractionSummary(dry_run=dry_run, repo_filter=repo_filter)
        log = logger.bind(pass_name=self.pass_name, dry_run=dry_run, repo_filter=repo_filter)

        try:
            commits = self.commit_service.list_commits(repo_filter)
            log.info("categorize_start", commits=len(commits), force=self.force)

            accepted: List[str] = []
            for commit in commits:
                summary.total += 1
                if commit.category and not self.force:
                    summary.already_categorized += 1
                    summary.skipped += 1
                    continue

                result = extract_category(commit.subject, self.validator)
                if result.rejected:
                    summary.rejected_invalid += 1
                    log.debug(
                        "category_rejected",
                        commit=commit.hash[:8],
                        candidate=result.candidate,
                        reason=result.rejection_reason,
                    )
                elif result.category is None:
                    summary.no_match += 1

                if result.category is None or result.category == commit.category:
                    if commit.category:
                        summary.already_categorized += 1
                    summary.skipped += 1
                    continue

                summary.planned_writes.append(
                    PlannedWrite(
                        commit_id=commit.id,
                        commit_hash=commit.hash,
                        field="category",
                        old_value=commit.category,
                        new_value=result.category,
                        reason=f"{result.rule} pattern",
                    )
                )
                summary.categories[result.category] = (
                    summary.categories.get(result.category, 0) + 1
                )
                summary.mutated += 1

                if not dry_run:
                    self.commit_service.set_category(commit.id, result.category)
                    accepted.append(result.category)

            if dry_run:
                self.db.rollback()
            else:
                summary.bookkeeping_failures = self.record_category_usage(accepted)
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        log.info(
            "categorize_complete",
            total=summary.total,
            categorized=summary.mutated,
            already_categorized=summary.already_categorized,
            rejected=summary.rejected_invalid,
        )
        return summary

    def record_category_usage(self, names: Iterable[str]) -> int:
        """Upsert a category row per accepted categorization.

        Best-effort: each upsert runs in its own savepoint, and a failure is
        logged and counted without affecting the commit writes.

        Returns:
            The number of failed upserts.
        """
        failures = 0
        for name in names:
            try:
                with self.db.begin_nested():
                    self.category_service.record_usage(name, CATEGORY_DESCRIPTION)
            except SQLAlchemyError as e:
                failures += 1
                logger.debug("category_upsert_failed", category=name, error=str(e))
        return failures
