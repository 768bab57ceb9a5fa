"""
Category name validation.

Shared by the pattern-based extractor and the AI fallback categorizer so that
both reject the same look-alike false positives: version numbers, issue
numbers and other mostly-numeric noise.

Rules, evaluated in order (the first failing rule is the rejection reason):
1. nil or empty
2. longer than 50 characters
3. shorter than 2 characters
4. when numeric prevention is enabled:
   a. purely numeric ("2023")
   b. version-shaped ("2.58.0")
   c. issue-shaped ("#117")
   d. any other leading "#" ("#HASHTAG")
   e. more than half digits ("1234AB")
5. no alphabetic character

Digits and letters are ASCII only, so "١٢٣" is neither numeric nor alphabetic.
"""

from __future__ import annotations

import re
import string
from typing import Optional

MIN_LENGTH = 2
MAX_LENGTH = 50
MAX_DIGIT_RATIO = 0.5

VALID = "valid"

_PURELY_NUMERIC = re.compile(r"\A\d+\Z", re.ASCII)
_VERSION_LIKE = re.compile(r"\A\d+\.\d+", re.ASCII)
_ISSUE_LIKE = re.compile(r"\A#\d+\Z", re.ASCII)
_HAS_LETTER = re.compile(r"[A-Z]", re.IGNORECASE | re.ASCII)


def _digit_ratio(candidate: str) -> float:
    return sum(1 for char in candidate if char in string.digits) / len(candidate)


class CategoryValidator:
    """Accepts or rejects candidate category names.

    ``prevent_numeric`` is passed in explicitly rather than read from the
    environment; callers take it from ``Settings.prevent_numeric_categories``.
    """

    def __init__(self, prevent_numeric: bool = True):
        self.prevent_numeric = prevent_numeric

    def is_valid(self, candidate: Optional[str]) -> bool:
        """Return True if ``candidate`` is a usable business-domain category."""
        return self.rejection_reason(candidate) == VALID

    def rejection_reason(self, candidate: Optional[str]) -> str:
        """Return why ``candidate`` was rejected, or ``"valid"``."""
        if not candidate:
            return "nil or empty"
        if len(candidate) > MAX_LENGTH:
            return f"too long (>{MAX_LENGTH} chars)"
        if len(candidate) < MIN_LENGTH:
            return f"too short (<{MIN_LENGTH} chars)"

        if self.prevent_numeric:
            if _PURELY_NUMERIC.match(candidate):
                return "purely numeric"
            if _VERSION_LIKE.match(candidate):
                return "looks like version number"
            if _ISSUE_LIKE.match(candidate):
                return "looks like issue number"
            if candidate.startswith("#"):
                return "starts with # symbol"
            if _digit_ratio(candidate) > MAX_DIGIT_RATIO:
                return "too many digits (>50%)"

        if not _HAS_LETTER.search(candidate):
            return "contains no letters"

        return VALID

    def __repr__(self) -> str:
        return f"CategoryValidator(prevent_numeric={self.prevent_numeric})"


def get_default_validator() -> CategoryValidator:
    """Build a validator from application settings.

    Settings are loaded lazily to keep this module free of import-time state.
    """
    from ..config import get_settings

    return CategoryValidator(prevent_numeric=get_settings().prevent_numeric_categories)
