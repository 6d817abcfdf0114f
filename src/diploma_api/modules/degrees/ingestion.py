"""
Bulk Degree Ingestion

Turns an uploaded CSV into staged draft records. Every row is validated
independently and all problems are reported together; the caller persists
the staged records only when no row failed.

Expected header (camelCase or snake_case both accepted):

    degreeType,major,graduationDate,studentEmail
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from diploma_api.modules.degrees.models import DegreeStatus
from diploma_api.modules.degrees.validation import (
    REQUIRED_FIELDS,
    is_valid_email,
    missing_fields,
    normalize_email,
    parse_graduation_date,
    validate_domain_match,
)

logger = logging.getLogger(__name__)

DUPLICATE_IN_UPLOAD = "duplicate in upload"

# Accepted spellings for each column, mapped to the attribute name
HEADER_ALIASES: dict[str, str] = {
    "degreetype": "degree_type",
    "degree_type": "degree_type",
    "major": "major",
    "graduationdate": "graduation_date",
    "graduation_date": "graduation_date",
    "studentemail": "student_email",
    "student_email": "student_email",
}


class TableParseError(ValueError):
    """Raised when an upload cannot be read as a degree table at all."""


@dataclass(frozen=True)
class RowError:
    """A problem with one data row (1-based, header excluded)."""

    row: int
    reason: str
    field: str | None = None


@dataclass
class StagedDegree:
    """Validated attributes for a draft record awaiting insertion."""

    university_id: int
    student_email: str
    degree_type: str
    major: str
    graduation_date: date
    status: DegreeStatus = DegreeStatus.DRAFT

    def as_dict(self) -> dict[str, Any]:
        return {
            "university_id": self.university_id,
            "student_email": self.student_email,
            "degree_type": self.degree_type,
            "major": self.major,
            "graduation_date": self.graduation_date,
            "status": self.status,
        }


@dataclass
class IngestionResult:
    staged: list[StagedDegree] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        """True when every row passed and the batch may be persisted."""
        return not self.errors and bool(self.staged)


def _canonical_header(name: str | None) -> str | None:
    if name is None:
        return None
    key = name.strip().lower()
    return HEADER_ALIASES.get(key, key)


def parse_table(content: bytes) -> list[dict[str, str]]:
    """
    Parse CSV bytes into a list of row dicts keyed by attribute name.

    UTF-8 with or without BOM. Header names are trimmed and mapped through
    HEADER_ALIASES, values are trimmed, fully blank lines are skipped.

    Raises:
        TableParseError: If the content is not UTF-8, is empty, or is
            missing one of the required columns
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise TableParseError("File must be UTF-8 encoded CSV") from e

    if not text.strip():
        raise TableParseError("File is empty")

    reader = csv.DictReader(io.StringIO(text), skipinitialspace=True)
    try:
        fieldnames = reader.fieldnames
    except csv.Error as e:
        raise TableParseError(f"Malformed CSV header: {e}") from e
    if fieldnames is None:
        raise TableParseError("File is empty")

    headers = [_canonical_header(name) for name in fieldnames]
    missing = [name for name in REQUIRED_FIELDS if name not in headers]
    if missing:
        raise TableParseError(f"Missing required column(s): {', '.join(missing)}")

    rows: list[dict[str, str]] = []
    try:
        for raw in reader:
            row: dict[str, str] = {}
            for key, value in raw.items():
                name = _canonical_header(key)
                # Extra trailing cells land under the None key
                if name is None or isinstance(value, list):
                    continue
                row[name] = (value or "").strip()
            if not any(row.values()):
                continue
            rows.append(row)
    except csv.Error as e:
        raise TableParseError(f"Malformed CSV at line {reader.line_num}: {e}") from e

    return rows


def ingest_rows(
    rows: list[dict[str, Any]],
    university_id: int,
    university_domain: str,
) -> IngestionResult:
    """
    Validate parsed rows and stage draft records.

    For each row, in order:
        1. missing required fields
        2. malformed graduation date or email
        3. email domain must match the university's domain
        4. the lower-cased email must not have appeared on an earlier row

    A row contributes at most one error. Duplicate detection only looks at
    this upload, not at records already stored.
    """
    result = IngestionResult()
    seen_emails: set[str] = set()

    for index, row in enumerate(rows, start=1):
        # Every well-formed email counts as seen, even on rows that fail
        raw_email = str(row.get("student_email") or "").strip()
        email = normalize_email(raw_email) if raw_email and is_valid_email(raw_email) else None
        is_duplicate = email is not None and email in seen_emails
        if email is not None:
            seen_emails.add(email)

        missing = missing_fields(row)
        if missing:
            result.errors.append(
                RowError(
                    row=index,
                    field=missing[0],
                    reason=f"Missing required field(s): {', '.join(missing)}",
                )
            )
            continue

        graduation_date = parse_graduation_date(row["graduation_date"])
        if graduation_date is None:
            result.errors.append(
                RowError(
                    row=index,
                    field="graduation_date",
                    reason=f"Invalid graduation date: {row['graduation_date']}",
                )
            )
            continue

        if email is None:
            result.errors.append(
                RowError(row=index, field="student_email", reason=f"Invalid email: {raw_email}")
            )
            continue

        if not validate_domain_match(raw_email, university_domain):
            result.errors.append(
                RowError(
                    row=index,
                    field="student_email",
                    reason=f"Email domain does not match {university_domain}",
                )
            )
            continue

        if is_duplicate:
            result.errors.append(
                RowError(row=index, field="student_email", reason=DUPLICATE_IN_UPLOAD)
            )
            continue

        result.staged.append(
            StagedDegree(
                university_id=university_id,
                student_email=email,
                degree_type=str(row["degree_type"]).strip(),
                major=str(row["major"]).strip(),
                graduation_date=graduation_date,
            )
        )

    logger.debug(
        f"Ingested {len(rows)} rows for university {university_id}: "
        f"{len(result.staged)} staged, {len(result.errors)} errors"
    )
    return result
