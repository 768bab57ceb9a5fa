"""
Git Analytics

Commit categorization and weighting for ingested git history.
"""

import importlib.metadata

__version__ = importlib.metadata.version("git-analytics")

from .categorization import CategoryExtractor, CategoryValidator, extract_category
from .pipeline import run_pipeline
from .schemas import (
    ExtractionSummary,
    PipelineSummary,
    PlannedWrite,
    RevertSummary,
    SyncSummary,
)
from .weights import CategoryWeightSynchronizer, RevertWeightCalculator

__all__ = [
    "CategoryExtractor",
    "CategoryValidator",
    "CategoryWeightSynchronizer",
    "ExtractionSummary",
    "PipelineSummary",
    "PlannedWrite",
    "RevertSummary",
    "RevertWeightCalculator",
    "SyncSummary",
    "extract_category",
    "run_pipeline",
]
