"""Client contract for AI-assisted commit categorization.

Transports (hosted APIs, local model servers) subclass
``CategorizationClient`` and implement ``complete``. Prompt construction,
retries and response parsing live here so every transport validates
categories the same way as the pattern-based extractor.
"""

import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, TypeVar

from .validator import CategoryValidator

T = TypeVar("T")

DEFAULT_CONFIDENCE = 50
DEFAULT_BUSINESS_IMPACT = 100

_CATEGORY = re.compile(
    r"CATEGORY:\s*([A-Z0-9#][A-Z0-9._\s#-]*?)(?:\n|$)", re.IGNORECASE | re.ASCII
)
_CONFIDENCE = re.compile(r"CONFIDENCE:\s*(\d+)", re.ASCII)
_BUSINESS_IMPACT = re.compile(r"BUSINESS_IMPACT:\s*(\d+)", re.IGNORECASE | re.ASCII)
_REASON = re.compile(
    r"REASON:\s*(.+?)(?:\n|DESCRIPTION:|$)", re.IGNORECASE | re.DOTALL | re.MULTILINE
)
_DESCRIPTION = re.compile(r"DESCRIPTION:\s*(.+?)(?:\n\n|$)", re.IGNORECASE | re.DOTALL)


class CategorizationError(Exception):
    """Base error for AI categorization failures."""


class CategorizationTimeoutError(CategorizationError):
    """The model did not answer within the configured timeout."""


class CategorizationAPIError(CategorizationError):
    """The model call failed or returned an unusable answer."""


class CategorizationConfigurationError(CategorizationError):
    """The client was constructed with invalid settings."""


@dataclass
class CommitContext:
    """What the model gets to see about a commit."""

    hash: str
    subject: str
    files: List[str] = field(default_factory=list)
    diff: Optional[str] = None
    diff_truncated: bool = False


@dataclass
class CategorizationResult:
    """Parsed model answer."""

    category: str
    confidence: int = DEFAULT_CONFIDENCE
    business_impact: int = DEFAULT_BUSINESS_IMPACT
    reason: str = "No reason provided"
    description: Optional[str] = None


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def client_options(settings) -> dict:
    """Constructor keyword arguments for a client, taken from ``Settings``."""
    return {
        "timeout": settings.ai_timeout,
        "retries": settings.ai_retries,
        "temperature": settings.ai_temperature,
        "validator": CategoryValidator(
            prevent_numeric=settings.prevent_numeric_categories
        ),
    }


class CategorizationClient(ABC):
    """Abstract base class for AI categorization clients."""

    def __init__(
        self,
        timeout: int = 30,
        retries: int = 3,
        temperature: float = 0.1,
        validator: Optional[CategoryValidator] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout = timeout
        self.retries = retries
        self.temperature = temperature
        self.validator = validator or CategoryValidator()
        self._sleep = sleep
        self.validate_configuration()

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Send ``prompt`` to the model and return the raw text answer.

        Implementations must honour ``self.timeout`` and raise
        ``CategorizationTimeoutError`` when it is exceeded.
        """

    def categorize(
        self, commit: CommitContext, existing_categories: Sequence[str]
    ) -> CategorizationResult:
        """Categorize one commit, preferring ``existing_categories``."""
        prompt = self.build_prompt(commit, existing_categories)
        response = self.with_retry(lambda: self.complete(prompt))
        return self.parse_response(response)

    def validate_configuration(self) -> None:
        if self.timeout <= 0:
            raise CategorizationConfigurationError("Timeout must be positive")
        if self.retries < 0:
            raise CategorizationConfigurationError("Retries must be non-negative")
        if not 0 <= self.temperature <= 2:
            raise CategorizationConfigurationError("Temperature must be between 0 and 2")

    def with_retry(self, call: Callable[[], T]) -> T:
        """Run ``call`` with exponential backoff.

        Timeouts are not retried.
        """
        attempts = 0
        while True:
            attempts += 1
            try:
                return call()
            except CategorizationTimeoutError:
                raise
            except Exception as e:
                if attempts >= self.retries:
                    raise CategorizationAPIError(
                        f"LLM request failed after {attempts} attempts: {e}"
                    ) from e
                self._sleep(2**attempts)

    def build_prompt(
        self, commit: CommitContext, existing_categories: Sequence[str]
    ) -> str:
        if commit.files:
            files_section = "MODIFIED FILES:\n" + "\n".join(f"- {f}" for f in commit.files)
        else:
            files_section = "MODIFIED FILES: (not available)"

        if commit.diff:
            truncated = " [TRUNCATED TO 10KB]" if commit.diff_truncated else ""
            diff_section = f"DIFF (changes made){truncated}:\n```\n{commit.diff}\n```"
        else:
            diff_section = "DIFF: (not available)"

        if existing_categories:
            categories_section = "EXISTING CATEGORIES (prefer these):\n" + ", ".join(
                existing_categories
            )
        else:
            categories_section = (
                "EXISTING CATEGORIES: (none yet - you can create the first one)"
            )

        return f"""You are a commit categorization assistant. Analyze this commit, assign ONE category, and write a description.

COMMIT DETAILS:
- Subject: "{commit.subject}"
- Hash: {commit.hash}

{files_section}

{diff_section}

{categories_section}

INSTRUCTIONS:
1. If this clearly fits an existing category, return that category name
2. Only create a NEW category if none of the existing ones fit well
3. Categories should be SHORT (1-2 words), UPPERCASE, business-focused
4. Consider file paths and diff as strong signals (e.g., app/jobs/billing/* -> BILLING)
5. Provide a confidence score (0-100) for your categorization
6. Categories must start with a LETTER, not a number or special character
7. AVOID: version numbers (2.58.0), issue numbers (#6802), years (2023), purely numeric values
8. PREFER: business domains (BILLING, SECURITY), technical areas (API, DATABASE), or features (AUTH, REPORTING)
9. Write a DESCRIPTION (2-4 sentences) explaining what changed and why
10. Assess the BUSINESS_IMPACT (0-100): configuration 0-30, refactors 31-60, features, bugs and security fixes 61-100. Use 100 unless clearly config or refactor work.

RESPONSE FORMAT (respond with ONLY this format, no extra text):
CATEGORY: <category_name>
CONFIDENCE: <0-100>
BUSINESS_IMPACT: <0-100>
REASON: <brief explanation>
DESCRIPTION: <2-4 sentence description of the changes>
"""

    def parse_response(self, response: str) -> CategorizationResult:
        """Parse a model answer.

        Raises:
            CategorizationAPIError: if no category is present or it fails validation.
        """
        match = _CATEGORY.search(response or "")
        if not match:
            raise CategorizationAPIError("Could not extract category from LLM response")

        category = match.group(1).strip().upper()
        if not self.validator.is_valid(category):
            reason = self.validator.rejection_reason(category)
            raise CategorizationAPIError(
                f"Invalid category generated by LLM: '{category}' ({reason})"
            )

        confidence_match = _CONFIDENCE.search(response)
        confidence = int(confidence_match.group(1)) if confidence_match else DEFAULT_CONFIDENCE

        impact_match = _BUSINESS_IMPACT.search(response)
        impact = int(impact_match.group(1)) if impact_match else DEFAULT_BUSINESS_IMPACT

        reason_match = _REASON.search(response)
        description_match = _DESCRIPTION.search(response)

        return CategorizationResult(
            category=category,
            confidence=_clamp(confidence),
            business_impact=_clamp(impact),
            reason=reason_match.group(1).strip() if reason_match else "No reason provided",
            description=description_match.group(1).strip() if description_match else None,
        )
