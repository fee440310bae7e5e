from datetime import date

import pytest

from certportal.backend import BackendError, ParticipantUpsert
from certportal.shared.search import SearchError, search_certificates


@pytest.fixture
def seeded(memory_backend):
    event = memory_backend.insert_event(
        name="Expo",
        description=None,
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 2),
        created_by="admin",
    )
    memory_backend.upsert_participants(
        [
            ParticipantUpsert("ada@example.com", "Ada"),
            ParticipantUpsert("nocert@example.com", "Nobody"),
        ]
    )
    ada = memory_backend.find_participant_by_email("ada@example.com")
    for number in ("TEKRON-1-2025", "TEKRON-2-2025"):
        memory_backend.insert_certificate(
            participant_id=ada.id,
            event_id=event.id,
            certificate_number=number,
            issue_date=date(2025, 3, 5),
            template_data={"participantName": "Ada"},
        )
    memory_backend.calls.clear()
    return memory_backend


def test_search_by_email_is_case_insensitive(seeded):
    outcome = search_certificates(seeded, "  ADA@example.com ", "email")
    assert outcome.found
    assert outcome.message == "Found 2 certificate(s)"
    # newest first
    assert [r.certificate_number for r in outcome.results] == [
        "TEKRON-2-2025",
        "TEKRON-1-2025",
    ]
    assert outcome.results[0].event.name == "Expo"


def test_unknown_email(seeded):
    outcome = search_certificates(seeded, "ghost@example.com", "email")
    assert not outcome.found
    assert outcome.message == "No participant found with email: ghost@example.com"


def test_participant_without_certificates(seeded):
    outcome = search_certificates(seeded, "nocert@example.com", "email")
    assert outcome.results == []
    assert outcome.message == "No certificates found for email: nocert@example.com"


def test_search_by_number_is_exact(seeded):
    outcome = search_certificates(seeded, "TEKRON-1-2025", "id")
    assert [r.certificate_number for r in outcome.results] == ["TEKRON-1-2025"]
    miss = search_certificates(seeded, "tekron-1-2025", "id")
    assert miss.message == "No certificate found with ID: tekron-1-2025"


def test_blank_query_makes_no_backend_call(seeded):
    with pytest.raises(SearchError) as exc:
        search_certificates(seeded, "   ", "email")
    assert str(exc.value) == "Please enter a search term"
    assert seeded.calls == []


def test_unknown_mode_is_rejected(seeded):
    with pytest.raises(ValueError):
        search_certificates(seeded, "x", "name")


def test_orphaned_certificates_are_hidden(seeded):
    ada = seeded.find_participant_by_email("ada@example.com")
    del seeded.participants[ada.id]
    outcome = search_certificates(seeded, "TEKRON-1-2025", "id")
    assert outcome.results == []


def test_backend_errors_propagate(seeded):
    seeded.fail_on["certificates_by_number"] = "timeout"
    with pytest.raises(BackendError):
        search_certificates(seeded, "TEKRON-1-2025", "id")
