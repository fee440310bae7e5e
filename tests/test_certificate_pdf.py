from datetime import date, datetime, timezone
from io import BytesIO

import pytest
from PyPDF2 import PdfReader

from certportal.backend import (
    CertificateRecord,
    CertificateWithRelations,
    EventRecord,
    ParticipantRecord,
)
from certportal.shared.certificate_pdf import (
    ACHIEVEMENT,
    PARTICIPATION,
    CertificateRenderError,
    certificate_filename,
    render_achievement,
    render_participation,
)
from certportal.shared.certificates import TemplateData

STAMP = datetime(2025, 3, 5, 12, 0, tzinfo=timezone.utc)


def _text(pdf: bytes) -> str:
    reader = PdfReader(BytesIO(pdf))
    assert len(reader.pages) == 1
    return reader.pages[0].extract_text()


def _joined(template_data):
    return CertificateWithRelations(
        certificate=CertificateRecord(
            id="c1",
            participant_id="p1",
            event_id="e1",
            certificate_number="TEKRON-77-2025",
            issue_date=date(2025, 3, 5),
            template_data=template_data,
            created_at=STAMP,
        ),
        participant=ParticipantRecord(
            id="p1",
            email="ada@example.com",
            full_name="Ada Live",
            organization=None,
            created_at=STAMP,
        ),
        event=EventRecord(
            id="e1",
            name="Live Expo",
            description=None,
            start_date=date(2025, 3, 1),
            end_date=date(2025, 3, 2),
            created_at=STAMP,
            created_by="admin",
        ),
    )


TEMPLATE = TemplateData(
    participant_name="Ada Lovelace",
    event_name="Analytical Expo",
    issue_date="2025-03-05",
    certifying_authority="Board of Engines",
    position="1st",
    venue="London",
    custom_text="Splendid work.",
)


def test_achievement_contains_interpolated_text():
    text = _text(render_achievement(TEMPLATE, "TEKRON-77-2025"))
    assert "CERTIFICATE" in text
    assert "Ada Lovelace" in text
    assert "Analytical Expo" in text
    assert "for securing 1st position in" in text
    assert "held on 5 March 2025 at" in text
    assert "London" in text
    assert "Board of Engines" in text
    assert "Certificate #: TEKRON-77-2025" in text


def test_achievement_accepts_stored_payload():
    pdf = render_achievement(TEMPLATE.to_dict(), "TEKRON-77-2025", mark="ACME")
    text = _text(pdf)
    assert "ACME" in text
    assert "2025" in text


def test_rendering_is_deterministic():
    first = render_achievement(TEMPLATE, "TEKRON-77-2025")
    second = render_achievement(TEMPLATE, "TEKRON-77-2025")
    assert first == second
    assert first.startswith(b"%PDF")


def test_long_names_still_render():
    long_name = "Bartholomew " * 8
    data = TemplateData(
        participant_name=long_name.strip(),
        event_name="Expo",
        issue_date="2025-03-05",
    )
    assert render_achievement(data, "N-1-2025").startswith(b"%PDF")


def test_missing_template_data_raises():
    with pytest.raises(CertificateRenderError):
        render_achievement(None, "TEKRON-1-2025")
    with pytest.raises(CertificateRenderError) as exc:
        render_participation(_joined(None))
    assert str(exc.value) == "Certificate template data not found"


def test_participation_uses_snapshot_names():
    text = _text(render_participation(_joined(TEMPLATE.to_dict())))
    assert "CERTIFICATE OF PARTICIPATION" in text
    assert "Ada Lovelace" in text
    assert "Analytical Expo" in text
    assert "Ada Live" not in text
    assert "Issue Date: 5 March 2025" in text
    assert "Certificate #: TEKRON-77-2025" in text


def test_participation_falls_back_to_joined_names():
    text = _text(render_participation(_joined({"issueDate": "2025-03-05"})))
    assert "Ada Live" in text
    assert "Live Expo" in text
    assert "Certificate Authority" in text


def test_filenames():
    assert certificate_filename("TEKRON-1-2025", ACHIEVEMENT) == (
        "tekron_certificate_TEKRON-1-2025.pdf"
    )
    assert certificate_filename("TEKRON-1-2025", PARTICIPATION) == (
        "certificate_TEKRON-1-2025.pdf"
    )
    assert certificate_filename("a/b c") == "certificate_a_b_c.pdf"
