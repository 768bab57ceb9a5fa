"""
Revert-linkage weight calculator.

A revert commit and the commit(s) it reverts both end at weight 0. Reverts
are linked to originals through cross-reference identifiers in the subject:

    CS | Add banner (!100)                    <- original, weight 0
    Revert "CS | Add banner (!100)" (!101)    <- revert, weight 0

Matching is a plain substring search on subjects within the revert's own
repository; there is no forge API behind the ingested data.
"""

from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import CommitModel
from ..db.services import CommitService
from ..schemas import PlannedWrite, RevertSummary

logger = structlog.get_logger()

REVERTED_WEIGHT = 0

_REVERT = re.compile(r"\bRevert\b", re.IGNORECASE)
_UNREVERT = re.compile(r"\bUnrevert\b", re.IGNORECASE)
# GitLab merge requests: (!12345)
_GITLAB_REFERENCE = re.compile(r"\(!(\d+)\)", re.ASCII)
# GitHub pull requests: (#12345)
_GITHUB_REFERENCE = re.compile(r"\(#(\d+)\)", re.ASCII)


def is_revert_subject(subject: Optional[str]) -> bool:
    """Return True for revert commits. Unrevert commits are not reverts."""
    if not subject:
        return False
    return bool(_REVERT.search(subject)) and not _UNREVERT.search(subject)


def extract_references(subject: Optional[str]) -> List[str]:
    """Extract normalized cross-reference identifiers ("!NNN", "#NNN").

    GitLab identifiers come first, then GitHub ones, each in order of
    appearance, without duplicates.
    """
    if not subject:
        return []

    references = [f"!{number}" for number in _GITLAB_REFERENCE.findall(subject)]
    references += [f"#{number}" for number in _GITHUB_REFERENCE.findall(subject)]
    return list(dict.fromkeys(references))


def find_originals(
    reference: str, candidates: Iterable[CommitModel], exclude_id: Optional[int] = None
) -> List[CommitModel]:
    """Commits whose subject contains ``reference``, excluding ``exclude_id``."""
    return [
        commit
        for commit in candidates
        if commit.id != exclude_id and reference in (commit.subject or "")
    ]


class RevertWeightCalculator:
    """Zeroes the weight of revert commits and the commits they revert.

    Loads every commit in scope into memory and scans it once. Idempotent:
    commits already at weight 0 are never written again.
    """

    pass_name = "calculate-weights"

    def __init__(self, db: Session):
        self.db = db
        self.commit_service = CommitService(db)

    def run(
        self, dry_run: bool = False, repo_filter: Optional[str] = None
    ) -> RevertSummary:
        """Detect reverts in scope and zero linked weights.

        A failed write of one commit is logged and counted, and only that
        write is rolled back; the rest of the pass is committed.
        """
        summary = RevertSummary(dry_run=dry_run, repo_filter=repo_filter)
        log = logger.bind(pass_name=self.pass_name, dry_run=dry_run, repo_filter=repo_filter)

        try:
            commits = self.commit_service.list_commits(repo_filter)
            log.info("revert_scan_start", commits=len(commits))

            by_repository: Dict[int, List[CommitModel]] = defaultdict(list)
            for commit in commits:
                by_repository[commit.repository_id].append(commit)
            # Weights as this pass has left them so far
            weights = {commit.id: commit.weight for commit in commits}

            for commit in commits:
                summary.total += 1
                if not is_revert_subject(commit.subject):
                    continue
                summary.reverts_found += 1
                self._process_revert(
                    commit, by_repository[commit.repository_id], weights, summary, log
                )

            if dry_run:
                self.db.rollback()
            else:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        summary.skipped = summary.total - summary.mutated - summary.failed
        log.info(
            "revert_scan_complete",
            total=summary.total,
            reverts_found=summary.reverts_found,
            zeroed=summary.commits_zeroed,
            failed=summary.failed,
        )
        return summary

    def _process_revert(
        self,
        revert: CommitModel,
        repository_commits: List[CommitModel],
        weights: Dict[int, int],
        summary: RevertSummary,
        log,
    ) -> None:
        references = extract_references(revert.subject)
        if not references:
            message = (
                f"Revert commit found but no PR/MR number: {revert.hash[:8]} - {revert.subject}"
            )
            summary.warnings.append(message)
            log.warning("revert_without_reference", commit=revert.hash[:8])
            return

        for reference in references:
            originals = find_originals(reference, repository_commits, exclude_id=revert.id)
            if not originals:
                summary.unlinked_references += 1
                summary.warnings.append(
                    f"No original commit found for PR {reference} in revert: {revert.hash[:8]}"
                )
                log.warning(
                    "revert_reference_unlinked",
                    commit=revert.hash[:8],
                    reference=reference,
                )
                continue

            self._zero_weight(revert, "Revert commit", weights, summary, log)
            for original in originals:
                self._zero_weight(
                    original, f"Reverted by {revert.hash[:8]}", weights, summary, log
                )

    def _zero_weight(
        self,
        commit: CommitModel,
        reason: str,
        weights: Dict[int, int],
        summary: RevertSummary,
        log,
    ) -> None:
        current = weights[commit.id]
        if current == REVERTED_WEIGHT:
            return

        summary.planned_writes.append(
            PlannedWrite(
                commit_id=commit.id,
                commit_hash=commit.hash,
                field="weight",
                old_value=current,
                new_value=REVERTED_WEIGHT,
                reason=reason,
            )
        )

        if not summary.dry_run:
            try:
                with self.db.begin_nested():
                    self.commit_service.set_weight(commit.id, REVERTED_WEIGHT)
            except SQLAlchemyError as e:
                summary.failed += 1
                log.error("weight_update_failed", commit=commit.hash[:8], error=str(e))
                # Attempted once per pass; a re-run picks it up again.
                weights[commit.id] = REVERTED_WEIGHT
                return

        weights[commit.id] = REVERTED_WEIGHT
        summary.mutated += 1
        summary.commits_zeroed += 1
