import pytest

from certportal.backend import BackendError
from certportal.shared.bulk_upload import (
    INVALID_ROWS_MESSAGE,
    MISSING_EVENT_MESSAGE,
    UploadRefused,
    upload_participants,
)
from certportal.shared.csv_import import CsvParseResult, parse_participants_csv


def test_upload_upserts_and_refreshes(memory_backend):
    parsed = parse_participants_csv(
        "fullname,email,organization\nAda,ADA@example.com,Engines\nAlan,alan@example.com,\n"
    )
    refreshed = []
    result = upload_participants(
        memory_backend, parsed, "event-1", on_complete=lambda: refreshed.append(True)
    )
    assert result.count == 2
    assert result.message == "Successfully uploaded 2 participants"
    assert result.event_id == "event-1"
    assert set(result.ids_by_email) == {"ada@example.com", "alan@example.com"}
    assert refreshed == [True]
    assert memory_backend.calls == ["upsert_participants", "participants_by_emails"]
    ada = memory_backend.find_participant_by_email("ada@example.com")
    assert ada.full_name == "Ada"


def test_existing_email_is_updated_not_duplicated(memory_backend):
    upload_participants(
        memory_backend, parse_participants_csv("fullname,email\nOld,a@x.com\n"), "e"
    )
    first_id = memory_backend.find_participant_by_email("a@x.com").id
    upload_participants(
        memory_backend,
        parse_participants_csv("fullname,email,organization\nNew,a@x.com,Org\n"),
        "e",
    )
    assert len(memory_backend.participants) == 1
    participant = memory_backend.find_participant_by_email("a@x.com")
    assert participant.id == first_id
    assert participant.full_name == "New"
    assert participant.organization == "Org"


def test_duplicate_rows_collapse_last_wins(memory_backend):
    parsed = parse_participants_csv(
        "fullname,email\nFirst,dup@x.com\nSecond,DUP@x.com\n"
    )
    result = upload_participants(memory_backend, parsed, "e")
    assert result.count == 2
    assert len(memory_backend.participants) == 1
    assert memory_backend.find_participant_by_email("dup@x.com").full_name == "Second"


def test_event_from_rows_is_enough(memory_backend):
    parsed = parse_participants_csv("fullname,email,eventid\nA,a@x.com,evt-9\n")
    result = upload_participants(memory_backend, parsed)
    assert result.event_id == "evt-9"


def test_invalid_rows_block_upload(memory_backend):
    parsed = parse_participants_csv("fullname,email\nA,not-an-email\nB,b@x.com\n")
    with pytest.raises(UploadRefused) as exc:
        upload_participants(memory_backend, parsed, "e")
    assert str(exc.value) == INVALID_ROWS_MESSAGE
    assert memory_backend.calls == []


def test_missing_event_blocks_upload(memory_backend):
    parsed = parse_participants_csv("fullname,email\nA,a@x.com\n")
    with pytest.raises(UploadRefused) as exc:
        upload_participants(memory_backend, parsed)
    assert str(exc.value) == MISSING_EVENT_MESSAGE
    assert memory_backend.calls == []


def test_empty_roster_blocks_upload(memory_backend):
    with pytest.raises(UploadRefused):
        upload_participants(memory_backend, CsvParseResult(rows=[]), "e")
    assert memory_backend.calls == []


def test_backend_failure_propagates_without_refresh(memory_backend):
    memory_backend.fail_on["upsert_participants"] = "connection reset"
    refreshed = []
    parsed = parse_participants_csv("fullname,email\nA,a@x.com\n")
    with pytest.raises(BackendError) as exc:
        upload_participants(
            memory_backend, parsed, "e", on_complete=lambda: refreshed.append(True)
        )
    assert str(exc.value) == "connection reset"
    assert refreshed == []
    assert memory_backend.participants == {}
