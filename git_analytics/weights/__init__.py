"""
Commit weighting: revert linkage and category-weight synchronization.
"""

from .revert_linker import (
    RevertWeightCalculator,
    extract_references,
    find_originals,
    is_revert_subject,
)
from .synchronizer import CategoryWeightSynchronizer

__all__ = [
    "RevertWeightCalculator",
    "extract_references",
    "find_originals",
    "is_revert_subject",
    "CategoryWeightSynchronizer",
]
