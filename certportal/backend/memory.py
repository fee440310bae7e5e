from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable, Sequence

from ..shared.passwords import hash_password, password_problem, verify_password
from .base import (
    AuthSession,
    AuthUser,
    Backend,
    BackendError,
    CertificateRecord,
    CertificateWithRelations,
    EventRecord,
    ParticipantRecord,
    ParticipantUpsert,
)

_EPOCH = datetime(2025, 1, 1, tzinfo=timezone.utc)


class InMemoryBackend(Backend):
    """Dict-backed backend with the same contract as the SQLAlchemy one.

    Ids are sequential and timestamps advance one second per write, so
    ordering is deterministic. ``calls`` records every operation name;
    ``fail_on`` maps an operation name to the message it should fail with.
    """

    def __init__(self) -> None:
        self.events: dict[str, EventRecord] = {}
        self.participants: dict[str, ParticipantRecord] = {}
        self.certificates: dict[str, CertificateRecord] = {}
        self.users: dict[str, dict[str, str]] = {}
        self.session: AuthSession | None = None
        self.calls: list[str] = []
        self.fail_on: dict[str, str] = {}
        self._counter = 0

    def _record(self, op: str) -> None:
        self.calls.append(op)
        message = self.fail_on.get(op)
        if message:
            raise BackendError(message)

    def _next(self, prefix: str) -> tuple[str, datetime]:
        self._counter += 1
        stamp = _EPOCH + timedelta(seconds=self._counter)
        return f"{prefix}-{self._counter:04d}", stamp

    def _join(self, cert: CertificateRecord) -> CertificateWithRelations | None:
        participant = self.participants.get(cert.participant_id)
        event = self.events.get(cert.event_id)
        if participant is None or event is None:
            return None
        return CertificateWithRelations(cert, participant, event)

    def _joined(self, certs: Iterable[CertificateRecord]) -> list[CertificateWithRelations]:
        ordered = sorted(certs, key=lambda c: c.created_at, reverse=True)
        return [row for row in (self._join(c) for c in ordered) if row is not None]

    # events
    def list_events(self) -> list[EventRecord]:
        self._record("list_events")
        return sorted(self.events.values(), key=lambda e: e.created_at, reverse=True)

    def get_event(self, event_id: str) -> EventRecord | None:
        self._record("get_event")
        return self.events.get(event_id)

    def insert_event(
        self,
        *,
        name: str,
        description: str | None,
        start_date: date,
        end_date: date,
        created_by: str,
    ) -> EventRecord:
        self._record("insert_event")
        event_id, stamp = self._next("event")
        event = EventRecord(
            id=event_id,
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            created_at=stamp,
            created_by=created_by,
        )
        self.events[event_id] = event
        return event

    # participants
    def list_participants(self) -> list[ParticipantRecord]:
        self._record("list_participants")
        return sorted(
            self.participants.values(), key=lambda p: p.created_at, reverse=True
        )

    def get_participant(self, participant_id: str) -> ParticipantRecord | None:
        self._record("get_participant")
        return self.participants.get(participant_id)

    def find_participant_by_email(self, email: str) -> ParticipantRecord | None:
        self._record("find_participant_by_email")
        email_lc = (email or "").strip().lower()
        for participant in self.participants.values():
            if participant.email == email_lc:
                return participant
        return None

    def upsert_participants(self, rows: Sequence[ParticipantUpsert]) -> None:
        self._record("upsert_participants")
        by_email = {p.email: p for p in self.participants.values()}
        for row in rows:
            email = row.email.strip().lower()
            existing = by_email.get(email)
            if existing:
                updated = ParticipantRecord(
                    id=existing.id,
                    email=email,
                    full_name=row.full_name,
                    organization=row.organization,
                    created_at=existing.created_at,
                )
            else:
                participant_id, stamp = self._next("participant")
                updated = ParticipantRecord(
                    id=participant_id,
                    email=email,
                    full_name=row.full_name,
                    organization=row.organization,
                    created_at=stamp,
                )
            self.participants[updated.id] = updated
            by_email[email] = updated

    def participants_by_emails(self, emails: Iterable[str]) -> list[ParticipantRecord]:
        self._record("participants_by_emails")
        wanted = {(e or "").strip().lower() for e in emails}
        return [p for p in self.participants.values() if p.email in wanted]

    # certificates
    def insert_certificate(
        self,
        *,
        participant_id: str,
        event_id: str,
        certificate_number: str,
        issue_date: date,
        template_data: dict[str, Any] | None,
    ) -> CertificateRecord:
        self._record("insert_certificate")
        if participant_id not in self.participants:
            raise BackendError("Participant does not exist", code="23503")
        if event_id not in self.events:
            raise BackendError("Event does not exist", code="23503")
        cert_id, stamp = self._next("certificate")
        cert = CertificateRecord(
            id=cert_id,
            participant_id=participant_id,
            event_id=event_id,
            certificate_number=certificate_number,
            issue_date=issue_date,
            template_data=dict(template_data) if template_data is not None else None,
            created_at=stamp,
        )
        self.certificates[cert_id] = cert
        return cert

    def get_certificate(self, certificate_id: str) -> CertificateWithRelations | None:
        self._record("get_certificate")
        cert = self.certificates.get(certificate_id)
        return self._join(cert) if cert else None

    def certificates_for_participant(
        self, participant_id: str
    ) -> list[CertificateWithRelations]:
        self._record("certificates_for_participant")
        return self._joined(
            c for c in self.certificates.values() if c.participant_id == participant_id
        )

    def certificates_by_number(
        self, certificate_number: str
    ) -> list[CertificateWithRelations]:
        self._record("certificates_by_number")
        return self._joined(
            c
            for c in self.certificates.values()
            if c.certificate_number == certificate_number
        )

    def list_certificates(self) -> list[CertificateWithRelations]:
        self._record("list_certificates")
        return self._joined(self.certificates.values())

    # auth
    def sign_in(self, email: str, password: str) -> AuthUser:
        self._record("sign_in")
        email_lc = (email or "").strip().lower()
        user = self.users.get(email_lc)
        if not user or not verify_password(password, user["password_hash"]):
            raise BackendError("Invalid login credentials", code="invalid_credentials")
        self.session = AuthSession(user_id=user["id"], email=email_lc)
        return AuthUser(id=user["id"], email=email_lc)

    def sign_up(self, email: str, password: str) -> AuthUser:
        self._record("sign_up")
        problem = password_problem(password)
        if problem:
            raise BackendError(problem, code="weak_password")
        email_lc = (email or "").strip().lower()
        if email_lc in self.users:
            raise BackendError("User already registered", code="user_exists")
        user_id = str(uuid.uuid5(uuid.NAMESPACE_URL, f"mailto:{email_lc}"))
        self.users[email_lc] = {"id": user_id, "password_hash": hash_password(password)}
        self.session = AuthSession(user_id=user_id, email=email_lc)
        return AuthUser(id=user_id, email=email_lc)

    def sign_out(self) -> None:
        self._record("sign_out")
        self.session = None

    def get_session(self) -> AuthSession | None:
        self._record("get_session")
        return self.session

    def get_user(self) -> AuthUser | None:
        self._record("get_user")
        if self.session is None:
            return None
        return AuthUser(id=self.session.user_id, email=self.session.email)
