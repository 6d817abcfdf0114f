"""
Degree Validation & Domain Matching

Pure functions with no I/O. Field validation collects every problem
instead of stopping at the first one, so single uploads can report all
invalid fields and bulk uploads can report every row independently.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from email_validator import EmailNotValidError, validate_email

REQUIRED_FIELDS = ("degree_type", "major", "graduation_date", "student_email")


@dataclass(frozen=True)
class FieldError:
    """A single field-level validation failure."""

    field: str
    message: str


def normalize_email(email: str) -> str:
    """Canonical form of a student email: stripped and lower-cased."""
    return email.strip().lower()


def normalize_domain(domain: str) -> str:
    """
    Canonical form of a university domain: lower-cased with a leading "@".

    Example: "Foo.EDU" -> "@foo.edu"
    """
    domain = domain.strip().lower()
    if not domain.startswith("@"):
        domain = f"@{domain}"
    return domain


def email_domain(email: str) -> str | None:
    """Everything from (and including) the first "@", lower-cased."""
    at = email.find("@")
    if at == -1:
        return None
    return email[at:].lower()


def validate_domain_match(email: str, university_domain: str) -> bool:
    """
    Check a student email against a university's registered domain.

    Purely string-level: the host part must equal the domain exactly,
    case-insensitively. Sub-domains and look-alike suffixes do not match.

        validate_domain_match("Student@Foo.EDU", "@foo.edu")          -> True
        validate_domain_match("student@foo.edu.evil.com", "@foo.edu") -> False
    """
    domain = email_domain(email.strip())
    if domain is None:
        return False
    return domain == university_domain.lower()


def parse_graduation_date(value: Any) -> date | None:
    """
    Parse an ISO 8601 date (or datetime) into a date.

    Returns None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def is_valid_email(email: str) -> bool:
    """Syntactic email check (no DNS or deliverability lookups)."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_degree_fields(fields: Mapping[str, Any]) -> list[FieldError]:
    """
    Validate one degree submission.

    Requires a non-empty degree_type and major, a parseable graduation_date
    and a syntactically valid student_email.

    Returns:
        Every field error found (empty list when the submission is valid)
    """
    errors: list[FieldError] = []

    for field in ("degree_type", "major"):
        if _is_blank(fields.get(field)):
            errors.append(FieldError(field, f"{field} is required"))

    graduation_date = fields.get("graduation_date")
    if _is_blank(graduation_date):
        errors.append(FieldError("graduation_date", "graduation_date is required"))
    elif parse_graduation_date(graduation_date) is None:
        errors.append(
            FieldError("graduation_date", "graduation_date must be a valid ISO 8601 date")
        )

    student_email = fields.get("student_email")
    if _is_blank(student_email):
        errors.append(FieldError("student_email", "student_email is required"))
    elif not is_valid_email(str(student_email).strip()):
        errors.append(FieldError("student_email", "student_email is not a valid email address"))

    return errors


def missing_fields(fields: Mapping[str, Any]) -> list[str]:
    """Names of required fields that are absent or blank."""
    return [field for field in REQUIRED_FIELDS if _is_blank(fields.get(field))]
