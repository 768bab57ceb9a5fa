"""
Tests for category name validation.

Verifies:
- Literal accept/reject cases for numeric look-alikes
- Rule order (the first failing rule is the reported reason)
- Numeric prevention can be switched off
- is_valid() and rejection_reason() always agree
"""

import itertools

import pytest

from git_analytics.categorization.validator import CategoryValidator, get_default_validator


@pytest.fixture
def validator():
    return CategoryValidator()


class TestNumericRejection:
    """Version-, issue- and mostly-numeric names are rejected."""

    @pytest.mark.parametrize(
        "candidate,reason",
        [
            ("2.58.0", "looks like version number"),
            ("#117", "looks like issue number"),
            ("123", "purely numeric"),
            ("12345ABC", "too many digits (>50%)"),
        ],
    )
    def test_rejected(self, validator, candidate, reason):
        assert validator.is_valid(candidate) is False
        assert validator.rejection_reason(candidate) == reason

    @pytest.mark.parametrize("candidate", ["2FA", "I18N", "3D", "BILLING", "CS", "API-V2"])
    def test_accepted(self, validator, candidate):
        assert validator.is_valid(candidate) is True
        assert validator.rejection_reason(candidate) == "valid"

    def test_half_digits_is_allowed(self, validator):
        """The digit ratio threshold is strictly greater than one half."""
        assert validator.is_valid("12AB") is True
        assert validator.rejection_reason("123AB") == "too many digits (>50%)"


class TestRuleOrder:
    """The first failing rule determines the reason."""

    def test_empty_and_none(self, validator):
        assert validator.rejection_reason(None) == "nil or empty"
        assert validator.rejection_reason("") == "nil or empty"

    def test_length_bounds(self, validator):
        assert validator.rejection_reason("A" * 51) == "too long (>50 chars)"
        assert validator.is_valid("A" * 50) is True
        assert validator.rejection_reason("A") == "too short (<2 chars)"

    def test_long_numeric_reports_length_first(self, validator):
        assert validator.rejection_reason("1" * 60) == "too long (>50 chars)"

    def test_hashtag_rejected_as_leading_hash(self, validator):
        """Leading '#' wins over the no-letters rule."""
        assert validator.rejection_reason("#HASHTAG") == "starts with # symbol"
        assert validator.rejection_reason("##") == "starts with # symbol"

    def test_version_before_digit_ratio(self, validator):
        assert validator.rejection_reason("1.2BETA") == "looks like version number"

    def test_no_letters(self, validator):
        assert validator.rejection_reason("..") == "contains no letters"
        assert validator.rejection_reason("-_-") == "contains no letters"


class TestNonAsciiCharacters:
    """Only ASCII digits and letters count."""

    def test_superscript_digits_are_not_digits(self, validator):
        assert validator.rejection_reason("²²A") == "valid"

    def test_arabic_indic_digits_are_not_numeric(self, validator):
        assert validator.rejection_reason("١٢٣") == "contains no letters"

    def test_kelvin_sign_is_not_a_letter(self, validator):
        assert validator.rejection_reason("\u212a\u212a") == "contains no letters"


class TestNumericPreventionDisabled:
    """With prevention off only the length and letter rules apply."""

    def test_numeric_rules_skipped(self):
        validator = CategoryValidator(prevent_numeric=False)

        assert validator.is_valid("12345ABC") is True
        assert validator.is_valid("#HASHTAG") is True
        assert validator.is_valid("2.58.0A") is True

    def test_letter_rule_still_applies(self):
        validator = CategoryValidator(prevent_numeric=False)

        assert validator.rejection_reason("123") == "contains no letters"
        assert validator.rejection_reason("2.58.0") == "contains no letters"

    def test_default_validator_reads_settings(self, monkeypatch):
        from git_analytics import config

        monkeypatch.setattr(config.settings, "prevent_numeric_categories", False)

        assert get_default_validator().prevent_numeric is False


class TestTotality:
    """is_valid() agrees with rejection_reason() on every input."""

    def test_short_strings_over_small_alphabet(self, validator):
        alphabet = "A1#."
        for length in range(0, 5):
            for chars in itertools.product(alphabet, repeat=length):
                candidate = "".join(chars)
                assert validator.is_valid(candidate) == (
                    validator.rejection_reason(candidate) == "valid"
                )

    @pytest.mark.parametrize("length", [0, 1, 2, 25, 50, 51, 60])
    def test_lengths_up_to_sixty(self, validator, length):
        for candidate in ("A" * length, "1" * length, "#" * length, "." * length):
            assert validator.is_valid(candidate) == (
                validator.rejection_reason(candidate) == "valid"
            )
