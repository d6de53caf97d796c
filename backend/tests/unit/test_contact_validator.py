"""
Unit tests for the rule-based ContactValidator
Phone/email/name checks and suspicious name patterns
"""
import pytest

from salescrm.domain.models.contact import ContactCreate
from salescrm.domain.models.quality import IssueSource, NameCompleteness
from salescrm.domain.services.contact_validator import (
    ContactValidator,
    is_valid_email,
    match_suspicious_patterns,
    name_completeness,
    normalize_phone,
)


class TestPhoneNormalization:
    """Tests for normalize_phone"""

    def test_international_number_is_formatted_e164(self):
        assert normalize_phone("+1 (650) 253-0000", "MX") == "+16502530000"

    def test_national_number_uses_region(self):
        assert normalize_phone("650 253 0000", "US") == "+16502530000"

    @pytest.mark.parametrize("phone", [None, "", "   ", "abc", "123", "+1 555"])
    def test_unusable_numbers_return_none(self, phone):
        assert normalize_phone(phone, "US") is None


class TestEmailValidation:
    """Tests for is_valid_email (syntax only)"""

    def test_well_formed_email(self):
        assert is_valid_email("ana.ruiz@example.com") is True

    @pytest.mark.parametrize("email", [None, "", "not-an-email", "ana@", "@example.com"])
    def test_malformed_email(self, email):
        assert is_valid_email(email) is False


class TestNameChecks:
    """Tests for name completeness and suspicious patterns"""

    def test_name_completeness_levels(self):
        assert name_completeness("Ana Ruiz") == NameCompleteness.FULL
        assert name_completeness("  Ana  ") == NameCompleteness.PARTIAL
        assert name_completeness("Al") == NameCompleteness.NONE
        assert name_completeness(None) == NameCompleteness.NONE

    @pytest.mark.parametrize("name,label", [
        ("Test User", "placeholder_prefix"),
        ("demo account", "placeholder_prefix"),
        ("FAKE Person", "placeholder_prefix"),
        ("12345", "digits_only"),
        ("Annna Lopez", "repeated_characters"),
        ("Juan asdf", "keyboard_mash"),
        ("Qwerty Smith", "keyboard_mash"),
        ("Al", "too_short"),
        ("juan", "all_lowercase"),
        ("JUAN", "all_uppercase"),
    ])
    def test_each_pattern_is_detected(self, name, label):
        assert label in match_suspicious_patterns(name)

    def test_regular_name_matches_nothing(self):
        assert match_suspicious_patterns("Juan Perez") == []

    def test_name_is_trimmed_before_matching(self):
        assert "too_short" in match_suspicious_patterns("  Al  ")
        assert match_suspicious_patterns("   ") == []


class TestContactValidator:
    """Tests for ContactValidator.validate"""

    def setup_method(self):
        self.validator = ContactValidator(default_region="US")

    def test_clean_contact_has_no_issues(self):
        report = self.validator.validate({
            "name": "Juan Perez", "phone": "+16502530000", "email": "juan@example.com"
        })

        assert report.phone_valid is True
        assert report.normalized_phone == "+16502530000"
        assert report.email_valid is True
        assert report.name_completeness == NameCompleteness.FULL
        assert report.is_suspicious_by_pattern is False
        assert report.issues == []
        assert report.recommendations == []

    def test_missing_email_is_not_an_issue(self):
        report = self.validator.validate({"name": "Juan Perez", "phone": "+16502530000"})

        assert report.email_present is False
        assert report.email_valid is False
        assert report.issues == []

    def test_invalid_email_adds_issue_and_recommendation(self):
        report = self.validator.validate({
            "name": "Juan Perez", "phone": "+16502530000", "email": "juan-at-example"
        })

        assert report.email_valid is False
        assert any("email" in i.message.lower() for i in report.issues)
        assert len(report.recommendations) == len(report.issues)

    def test_invalid_phone_flags_incomplete_basic_information(self):
        report = self.validator.validate({"name": "Juan Perez", "phone": "12"})

        messages = [i.message for i in report.issues]
        assert report.phone_valid is False
        assert any("phone" in m.lower() for m in messages)
        assert "Incomplete basic information (name and/or phone)." in messages

    def test_pattern_issue_comes_last_and_is_tagged(self):
        report = self.validator.validate({"name": "test123", "phone": "+16502530000"})

        assert report.is_suspicious_by_pattern is True
        assert report.matched_patterns == ["placeholder_prefix"]
        assert report.issues[-1].source == IssueSource.PATTERN.value
        assert all(i.source == IssueSource.VALIDATOR.value for i in report.issues[:-1])

    def test_accepts_pydantic_models(self):
        report = self.validator.validate(ContactCreate(name="Juan Perez", phone="6502530000"))

        assert report.phone_valid is True
        assert report.normalized_phone == "+16502530000"

    @pytest.mark.parametrize("contact", [None, {}, 42, "Juan", {"name": 123, "phone": ["+16502530000"]}])
    def test_malformed_input_never_raises(self, contact):
        report = self.validator.validate(contact)

        assert report.phone_valid is False
        assert report.name_present is False
        assert report.is_suspicious_by_pattern is False
        assert len(report.issues) >= 2
