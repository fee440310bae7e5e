import pytest

from certportal.shared.csv_import import (
    CsvFormatError,
    InvalidRow,
    ValidRow,
    parse_participants_csv,
    sample_csv,
)


def test_parses_valid_rows_in_file_order():
    text = (
        "fullName,email,organization\n"
        "Ada Lovelace,ada@example.com,Engines\n"
        "Alan Turing,alan@example.com,\n"
    )
    result = parse_participants_csv(text, "event-1")
    assert result.all_valid
    assert [row.line for row in result.rows] == [1, 2]
    first, second = result.rows
    assert isinstance(first, ValidRow)
    assert first.full_name == "Ada Lovelace"
    assert first.email == "ada@example.com"
    assert first.organization == "Engines"
    assert first.event_id == "event-1"
    assert second.organization is None


def test_headers_are_case_insensitive_and_trimmed():
    text = " EMAIL , FullName \n x@y.com , Grace Hopper \n"
    result = parse_participants_csv(text)
    assert result.rows[0].email == "x@y.com"
    assert result.rows[0].full_name == "Grace Hopper"
    assert result.rows[0].event_id is None


def test_row_event_column_wins_over_selected_event():
    text = "fullname,email,eventId\nA,a@x.com,evt-row\nB,b@x.com,\n"
    result = parse_participants_csv(text, "evt-form")
    assert [row.event_id for row in result.rows] == ["evt-row", "evt-form"]


def test_row_errors_accumulate():
    text = "fullname,email\n,\nBob,bob-at-example\nCarol,carol@x.com\n"
    result = parse_participants_csv(text)
    assert result.invalid_count == 2
    assert not result.all_valid
    empty, bad_email, ok = result.rows
    assert isinstance(empty, InvalidRow)
    assert empty.errors == ["Email is required", "Full name is required"]
    assert bad_email.errors == ["Invalid email format"]
    assert ok.valid
    assert result.error_summary == (
        "2 rows contain errors. Please fix them before uploading."
    )
    assert [row.email for row in result.valid_rows] == ["carol@x.com"]


def test_blank_lines_are_skipped():
    text = "\n\nfullname,email\n\nA,a@x.com\n\n"
    result = parse_participants_csv(text)
    assert len(result.rows) == 1
    assert result.error_summary is None


@pytest.mark.parametrize(
    "text",
    ["", "fullname,email\n", "fullname,email\n\n  \n"],
)
def test_header_without_data_is_rejected(text):
    with pytest.raises(CsvFormatError) as exc:
        parse_participants_csv(text)
    assert str(exc.value) == (
        "CSV file must contain a header row and at least one data row"
    )


def test_missing_required_headers():
    with pytest.raises(CsvFormatError) as exc:
        parse_participants_csv("name,organization\nA,B\n")
    assert str(exc.value) == "Missing required headers: email, fullname"


def test_duplicate_headers_are_rejected():
    with pytest.raises(CsvFormatError) as exc:
        parse_participants_csv("email,fullname,Email\na@x.com,A,\n")
    assert str(exc.value) == "Duplicate headers: email"


def test_ragged_row_rejects_whole_file():
    text = "fullname,email\nA,a@x.com\nB,b@x.com,extra\n"
    with pytest.raises(CsvFormatError) as exc:
        parse_participants_csv(text)
    assert str(exc.value) == "Row 2 has incorrect number of columns"


def test_windows_line_endings():
    result = parse_participants_csv("fullname,email\r\nA,a@x.com\r\n")
    assert result.rows[0].email == "a@x.com"


def test_sample_csv_parses():
    result = parse_participants_csv(sample_csv())
    assert result.all_valid
    assert result.rows[0].email == "ada@example.com"
