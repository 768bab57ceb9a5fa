"""
Ordered pass runner.

The passes must run in this order within one pipeline pass:

1. CategoryExtractor         assigns categories
2. RevertWeightCalculator    zeroes reverted commits
3. CategoryWeightSynchronizer applies category weights, never raising a zero

Each pass commits its own writes; a failure stops the pipeline after the
last completed pass, and re-running is safe because every pass is idempotent.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .categorization.extractor import CategoryExtractor
from .categorization.validator import CategoryValidator
from .config import Settings, get_settings
from .schemas import PipelineSummary
from .weights.revert_linker import RevertWeightCalculator
from .weights.synchronizer import CategoryWeightSynchronizer

logger = logging.getLogger(__name__)


def run_pipeline(
    db: Session,
    settings: Optional[Settings] = None,
    dry_run: bool = False,
    repo_filter: Optional[str] = None,
    force: bool = False,
) -> PipelineSummary:
    """Run categorize, calculate-weights and sync-weights in order."""
    settings = settings or get_settings()
    validator = CategoryValidator(prevent_numeric=settings.prevent_numeric_categories)

    passes = [
        CategoryExtractor(db, validator=validator, force=force),
        RevertWeightCalculator(db),
        CategoryWeightSynchronizer(db),
    ]

    result = PipelineSummary(dry_run=dry_run, repo_filter=repo_filter)
    for step in passes:
        logger.info(f"Running pass {step.pass_name} (dry_run={dry_run})")
        result.passes.append(step.run(dry_run=dry_run, repo_filter=repo_filter))

    logger.info(f"Pipeline complete: {result.total_mutated} writes")
    return result
