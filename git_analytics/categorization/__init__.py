"""
Commit categorization: validation, pattern extraction and AI fallback.
"""

from .ai_categorizer import AICategorizer
from .ai_client import (
    CategorizationAPIError,
    CategorizationClient,
    CategorizationConfigurationError,
    CategorizationError,
    CategorizationResult,
    CategorizationTimeoutError,
    CommitContext,
    client_options,
)
from .extractor import CategoryExtractor, ExtractionResult, extract_category
from .validator import CategoryValidator, get_default_validator

__all__ = [
    "AICategorizer",
    "CategorizationAPIError",
    "CategorizationClient",
    "CategorizationConfigurationError",
    "CategorizationError",
    "CategorizationResult",
    "CategorizationTimeoutError",
    "CommitContext",
    "client_options",
    "CategoryExtractor",
    "ExtractionResult",
    "extract_category",
    "CategoryValidator",
    "get_default_validator",
]
