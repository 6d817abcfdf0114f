"""
Unit tests for degree field validation and domain matching.
"""

from datetime import date, datetime

import pytest

from diploma_api.modules.degrees.validation import (
    email_domain,
    missing_fields,
    normalize_domain,
    normalize_email,
    parse_graduation_date,
    validate_degree_fields,
    validate_domain_match,
)


class TestDomainMatch:
    """Tests for validate_domain_match."""

    @pytest.mark.parametrize(
        ("email", "domain", "expected"),
        [
            ("student@foo.edu", "@foo.edu", True),
            ("Student@Foo.EDU", "@foo.edu", True),
            ("student@foo.edu", "@FOO.EDU", True),
            ("  student@foo.edu  ", "@foo.edu", True),
            ("student@foo.edu.evil.com", "@foo.edu", False),
            ("student@cs.foo.edu", "@foo.edu", False),
            ("student@notfoo.edu", "@foo.edu", False),
            ("student@bar.edu", "@foo.edu", False),
            ("no-at-sign", "@foo.edu", False),
        ],
    )
    def test_domain_match(self, email, domain, expected):
        assert validate_domain_match(email, domain) is expected

    def test_email_domain_includes_at(self):
        assert email_domain("a@Foo.Edu") == "@foo.edu"

    def test_email_domain_missing_at(self):
        assert email_domain("foo.edu") is None


class TestNormalization:
    def test_normalize_email_strips_and_lowercases(self):
        assert normalize_email("  Alice@Foo.EDU ") == "alice@foo.edu"

    def test_normalize_domain_adds_at(self):
        assert normalize_domain("Foo.EDU") == "@foo.edu"

    def test_normalize_domain_keeps_existing_at(self):
        assert normalize_domain("@foo.edu") == "@foo.edu"


class TestParseGraduationDate:
    def test_iso_date(self):
        assert parse_graduation_date("2024-06-01") == date(2024, 6, 1)

    def test_iso_datetime(self):
        assert parse_graduation_date("2024-06-01T10:30:00Z") == date(2024, 6, 1)

    def test_date_and_datetime_objects(self):
        assert parse_graduation_date(date(2024, 6, 1)) == date(2024, 6, 1)
        assert parse_graduation_date(datetime(2024, 6, 1, 12, 0)) == date(2024, 6, 1)

    @pytest.mark.parametrize("value", ["", "   ", "June 2024", "2024-13-01", None, 20240601])
    def test_invalid_values(self, value):
        assert parse_graduation_date(value) is None


class TestValidateDegreeFields:
    """Tests for validate_degree_fields."""

    def test_valid_submission_has_no_errors(self, valid_fields):
        assert validate_degree_fields(valid_fields) == []

    def test_reports_every_problem(self):
        """All missing and malformed fields are reported together."""
        errors = validate_degree_fields(
            {
                "degree_type": "",
                "major": None,
                "graduation_date": "not-a-date",
                "student_email": "not-an-email",
            }
        )

        assert [error.field for error in errors] == [
            "degree_type",
            "major",
            "graduation_date",
            "student_email",
        ]
        assert "ISO 8601" in errors[2].message

    def test_missing_email(self, valid_fields):
        del valid_fields["student_email"]
        errors = validate_degree_fields(valid_fields)
        assert len(errors) == 1
        assert errors[0].field == "student_email"
        assert errors[0].message == "student_email is required"

    def test_missing_fields_lists_blank_values(self):
        assert missing_fields({"degree_type": "BSc", "major": "  "}) == [
            "major",
            "graduation_date",
            "student_email",
        ]
