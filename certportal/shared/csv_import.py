"""Parse uploaded participant rosters.

The format is deliberately plain: one header line, comma separated values,
no quoting. ``email`` and ``fullname`` are required columns; ``organization``
and ``eventid`` are optional. Header names are matched case-insensitively.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

REQUIRED_HEADERS: tuple[str, ...] = ("email", "fullname")
OPTIONAL_HEADERS: tuple[str, ...] = ("organization", "eventid")

SAMPLE_ROWS: tuple[tuple[str, ...], ...] = (
    ("fullName", "email", "organization"),
    ("Ada Lovelace", "ada@example.com", "Analytical Engines"),
)


class CsvFormatError(ValueError):
    """The file as a whole cannot be read as a roster."""


@dataclass(frozen=True)
class ParticipantCandidate:
    full_name: str
    email: str
    organization: str | None
    event_id: str | None


@dataclass(frozen=True)
class ValidRow:
    line: int
    candidate: ParticipantCandidate

    valid = True

    @property
    def errors(self) -> list[str]:
        return []

    @property
    def full_name(self) -> str:
        return self.candidate.full_name

    @property
    def email(self) -> str:
        return self.candidate.email

    @property
    def organization(self) -> str | None:
        return self.candidate.organization

    @property
    def event_id(self) -> str | None:
        return self.candidate.event_id


@dataclass(frozen=True)
class InvalidRow:
    line: int
    raw: dict[str, str]
    errors: list[str] = field(default_factory=list)
    event_id: str | None = None

    valid = False

    @property
    def full_name(self) -> str:
        return self.raw.get("fullname", "")

    @property
    def email(self) -> str:
        return self.raw.get("email", "")

    @property
    def organization(self) -> str | None:
        return self.raw.get("organization") or None


CsvRow = Union[ValidRow, InvalidRow]


@dataclass(frozen=True)
class CsvParseResult:
    rows: list[CsvRow]

    @property
    def invalid_count(self) -> int:
        return sum(1 for row in self.rows if not row.valid)

    @property
    def all_valid(self) -> bool:
        return self.invalid_count == 0

    @property
    def valid_rows(self) -> list[ValidRow]:
        return [row for row in self.rows if isinstance(row, ValidRow)]

    @property
    def error_summary(self) -> str | None:
        count = self.invalid_count
        if not count:
            return None
        return f"{count} rows contain errors. Please fix them before uploading."


def _split(line: str) -> list[str]:
    return [value.strip() for value in line.split(",")]


def _validate(values: dict[str, str]) -> list[str]:
    errors: list[str] = []
    email = values.get("email", "")
    if not email:
        errors.append("Email is required")
    elif "@" not in email:
        errors.append("Invalid email format")
    if not values.get("fullname"):
        errors.append("Full name is required")
    return errors


def parse_participants_csv(text: str, event_id: str | None = None) -> CsvParseResult:
    """Turn raw CSV text into ordered candidate rows.

    ``event_id`` is the event chosen on the upload form; a non-empty
    ``eventid`` column value on a row takes precedence over it.
    Raises :class:`CsvFormatError` for problems that make the whole file
    unusable (missing header/data, missing or duplicate headers, ragged
    rows).
    """

    lines = [line.rstrip("\r") for line in (text or "").split("\n")]
    while lines and not lines[0].strip():
        lines.pop(0)
    data_lines = [line for line in lines[1:] if line.strip()]
    if not lines or not data_lines:
        raise CsvFormatError(
            "CSV file must contain a header row and at least one data row"
        )

    headers = [header.lower() for header in _split(lines[0])]
    duplicates = sorted({name for name in headers if name and headers.count(name) > 1})
    if duplicates:
        raise CsvFormatError(f"Duplicate headers: {', '.join(duplicates)}")
    missing = [name for name in REQUIRED_HEADERS if name not in headers]
    if missing:
        raise CsvFormatError(f"Missing required headers: {', '.join(missing)}")

    rows: list[CsvRow] = []
    for index, line in enumerate(lines[1:], start=1):
        if not line.strip():
            continue
        values = _split(line)
        if len(values) != len(headers):
            raise CsvFormatError(f"Row {index} has incorrect number of columns")
        mapped = dict(zip(headers, values))
        row_event = mapped.get("eventid") or event_id or None
        errors = _validate(mapped)
        if errors:
            rows.append(InvalidRow(line=index, raw=mapped, errors=errors, event_id=row_event))
            continue
        rows.append(
            ValidRow(
                line=index,
                candidate=ParticipantCandidate(
                    full_name=mapped["fullname"],
                    email=mapped["email"],
                    organization=mapped.get("organization") or None,
                    event_id=row_event,
                ),
            )
        )
    return CsvParseResult(rows=rows)


def sample_csv() -> str:
    return "\n".join(",".join(row) for row in SAMPLE_ROWS) + "\n"
