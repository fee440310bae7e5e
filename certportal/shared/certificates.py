from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Mapping

from flask import current_app, has_app_context

from ..backend.base import Backend, CertificateRecord, EventRecord, ParticipantRecord
from ..constants import (
    CERT_NUMBER_RANGE,
    DEFAULT_AUTHORITY,
    DEFAULT_CERT_PREFIX,
    DEFAULT_CUSTOM_TEXT,
    DEFAULT_POSITION,
    DEFAULT_VENUE,
)
from .time import parse_iso_date, today_utc

# stored JSON keys, as the payload has always been written
_JSON_KEYS: dict[str, str] = {
    "participant_name": "participantName",
    "event_name": "eventName",
    "issue_date": "issueDate",
    "certifying_authority": "certifyingAuthority",
    "position": "position",
    "venue": "venue",
    "custom_text": "customText",
}

EDITABLE_FIELDS: tuple[str, ...] = (
    "certifying_authority",
    "position",
    "venue",
    "custom_text",
)


@dataclass(frozen=True)
class TemplateData:
    """Snapshot of what a certificate says, frozen at generation time."""

    participant_name: str
    event_name: str
    issue_date: str
    certifying_authority: str | None = None
    position: str | None = None
    venue: str | None = None
    custom_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for attr, key in _JSON_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "TemplateData | None":
        if data is None:
            return None
        kwargs = {attr: data.get(key) for attr, key in _JSON_KEYS.items()}
        kwargs["participant_name"] = kwargs["participant_name"] or ""
        kwargs["event_name"] = kwargs["event_name"] or ""
        kwargs["issue_date"] = kwargs["issue_date"] or ""
        return cls(**kwargs)


@dataclass(frozen=True)
class CertificateDraft:
    participant_id: str
    event_id: str
    certificate_number: str
    issue_date: date
    template_data: TemplateData


def _configured_prefix() -> str:
    if has_app_context():
        return current_app.config.get("CERT_NUMBER_PREFIX") or DEFAULT_CERT_PREFIX
    return DEFAULT_CERT_PREFIX


def generate_certificate_number(
    prefix: str | None = None,
    today: date | None = None,
    rng: random.Random | None = None,
) -> str:
    """``PREFIX-<0..9999>-<year>``; collisions are possible and not checked."""
    rng = rng or random
    year = (today or today_utc()).year
    return f"{prefix or _configured_prefix()}-{rng.randrange(CERT_NUMBER_RANGE)}-{year}"


def assemble_certificate(
    participant: ParticipantRecord,
    event: EventRecord,
    overrides: Mapping[str, Any] | None = None,
    *,
    today: date | None = None,
    rng: random.Random | None = None,
) -> CertificateDraft:
    overrides = {k: v for k, v in (overrides or {}).items() if v not in (None, "")}
    if isinstance(overrides.get("issue_date"), str):
        overrides["issue_date"] = overrides["issue_date"].strip()
    issue_date = parse_iso_date(overrides.get("issue_date")) or today or today_utc()
    number = (overrides.get("certificate_number") or "").strip() or (
        generate_certificate_number(today=today, rng=rng)
    )
    template = TemplateData(
        participant_name=participant.full_name,
        event_name=event.name,
        issue_date=issue_date.isoformat(),
        certifying_authority=DEFAULT_AUTHORITY,
        position=DEFAULT_POSITION,
        venue=DEFAULT_VENUE,
        custom_text=DEFAULT_CUSTOM_TEXT,
    )
    edits = {name: overrides[name] for name in EDITABLE_FIELDS if name in overrides}
    if edits:
        template = replace(template, **edits)
    return CertificateDraft(
        participant_id=participant.id,
        event_id=event.id,
        certificate_number=number,
        issue_date=issue_date,
        template_data=template,
    )


def issue_certificate(backend: Backend, draft: CertificateDraft) -> CertificateRecord:
    """Persist the draft as a new certificate row."""
    record = backend.insert_certificate(
        participant_id=draft.participant_id,
        event_id=draft.event_id,
        certificate_number=draft.certificate_number,
        issue_date=draft.issue_date,
        template_data=draft.template_data.to_dict(),
    )
    if has_app_context():
        current_app.logger.info(
            "[CERT] issued number=%s participant=%s event=%s id=%s",
            record.certificate_number,
            record.participant_id,
            record.event_id,
            record.id,
        )
    return record
