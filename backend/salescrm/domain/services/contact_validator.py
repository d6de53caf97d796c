"""
Contact Validator
Deterministic checks on a contact's phone, email and name.

No I/O. Malformed input (missing fields, wrong types, None) is reported
as invalid data, never raised.
"""
import re
import logging
from typing import Any, List, Optional, Tuple

import phonenumbers
from phonenumbers import NumberParseException
from email_validator import validate_email, EmailNotValidError

from salescrm.domain.models.contact import extract_contact_fields
from salescrm.domain.models.quality import (
    IssueSource,
    NameCompleteness,
    QualityIssue,
    ValidationReport,
)

logger = logging.getLogger(__name__)


# Name patterns typical of test, placeholder or keyboard-mash data
SUSPICIOUS_NAME_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ("placeholder_prefix", re.compile(r"^(test|demo|fake)", re.IGNORECASE)),
    ("digits_only", re.compile(r"^\d+$")),
    ("repeated_characters", re.compile(r"(.)\1{2,}")),
    ("keyboard_mash", re.compile(r"asdf|qwerty", re.IGNORECASE)),
    ("too_short", re.compile(r"^.{1,2}$")),
    ("all_lowercase", re.compile(r"^[a-z]+$")),
    ("all_uppercase", re.compile(r"^[A-Z]+$")),
]

MIN_NAME_LENGTH = 3


def normalize_phone(phone: Optional[str], region: str = "MX") -> Optional[str]:
    """
    Parse a phone number and format it as E.164.

    Returns None when the number cannot be parsed or is not a valid,
    dialable number for its region.
    """
    if not phone or not phone.strip():
        return None
    try:
        parsed = phonenumbers.parse(phone.strip(), region)
    except NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def is_valid_email(email: Optional[str]) -> bool:
    """Syntax check only; no DNS lookups"""
    if not email or not email.strip():
        return False
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def match_suspicious_patterns(name: Optional[str]) -> List[str]:
    """Names of every suspicious pattern the trimmed name matches"""
    if not name:
        return []
    trimmed = name.strip()
    if not trimmed:
        return []
    return [label for label, pattern in SUSPICIOUS_NAME_PATTERNS if pattern.search(trimmed)]


def name_completeness(name: Optional[str]) -> NameCompleteness:
    trimmed = (name or "").strip()
    if len(trimmed) < MIN_NAME_LENGTH:
        return NameCompleteness.NONE
    if " " in trimmed:
        return NameCompleteness.FULL
    return NameCompleteness.PARTIAL


class ContactValidator:
    """
    Rule-based contact validation.

    Produces a ValidationReport with the checks the scorer needs plus
    validator- and pattern-tagged issues, in that order.
    """

    def __init__(self, default_region: str = "MX"):
        self.default_region = default_region

    def validate(self, contact: Any) -> ValidationReport:
        fields = extract_contact_fields(contact)
        name = fields["name"]
        phone = fields["phone"]
        email = fields["email"]

        issues: List[QualityIssue] = []
        recommendations: List[QualityIssue] = []

        def flag(source: IssueSource, issue: str, recommendation: str) -> None:
            issues.append(QualityIssue(source=source, message=issue))
            recommendations.append(QualityIssue(source=source, message=recommendation))

        # Phone
        normalized_phone = normalize_phone(phone, self.default_region)
        phone_valid = normalized_phone is not None
        if not phone_valid:
            flag(
                IssueSource.VALIDATOR,
                f"Invalid or missing phone number: {phone or 'N/A'}",
                "Verify and correct the phone number, using international format where possible."
            )

        # Email (absence is neither penalized nor rewarded)
        email_present = bool(email and email.strip())
        email_valid = email_present and is_valid_email(email)
        if email_present and not email_valid:
            flag(
                IssueSource.VALIDATOR,
                f"Invalid email format: {email}",
                "Correct the email format or remove it if it is wrong."
            )

        # Name
        completeness = name_completeness(name)
        if completeness == NameCompleteness.PARTIAL:
            flag(
                IssueSource.VALIDATOR,
                f"Name looks incomplete: {name}",
                "Record the contact's full name (first and last name)."
            )
        elif completeness == NameCompleteness.NONE:
            flag(
                IssueSource.VALIDATOR,
                f"Name missing or too short: {name or 'N/A'}",
                "Record the contact's full name."
            )

        name_present = bool(name and name.strip())
        if not (phone_valid and name_present):
            flag(
                IssueSource.VALIDATOR,
                "Incomplete basic information (name and/or phone).",
                "Fill in all required contact fields."
            )

        # Suspicious name patterns
        matched = match_suspicious_patterns(name)
        if matched:
            flag(
                IssueSource.PATTERN,
                f"Name \"{name}\" looks suspicious ({', '.join(matched)}).",
                "Review the authenticity of the contact's name."
            )
            logger.debug(f"Suspicious name patterns for contact {fields['id']}: {matched}")

        return ValidationReport(
            phone_valid=phone_valid,
            normalized_phone=normalized_phone,
            email_present=email_present,
            email_valid=email_valid,
            name_present=name_present,
            name_completeness=completeness,
            is_suspicious_by_pattern=bool(matched),
            matched_patterns=matched,
            issues=issues,
            recommendations=recommendations,
        )
