from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Any, Iterable, MutableMapping, Sequence

from flask import current_app
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..constants import BACKEND_SESSION_KEY
from ..models import AuthUser as AuthUserModel
from ..models import Certificate, Event, Participant, new_id
from ..shared.passwords import check_and_upgrade, hash_password, password_problem
from ..shared.time import now_utc
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

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# rows per statement; sqlite caps bound parameters at 32766
BATCH_SIZE = 1000


def _batches(items: Sequence[Any]):
    for start in range(0, len(items), BATCH_SIZE):
        yield items[start : start + BATCH_SIZE]


def _event_record(row: Event) -> EventRecord:
    return EventRecord(
        id=row.id,
        name=row.name,
        description=row.description,
        start_date=row.start_date,
        end_date=row.end_date,
        created_at=row.created_at,
        created_by=row.created_by,
    )


def _participant_record(row: Participant) -> ParticipantRecord:
    return ParticipantRecord(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        organization=row.organization,
        created_at=row.created_at,
    )


def _certificate_record(row: Certificate) -> CertificateRecord:
    return CertificateRecord(
        id=row.id,
        participant_id=row.participant_id,
        event_id=row.event_id,
        certificate_number=row.certificate_number,
        issue_date=row.issue_date,
        template_data=row.template_data,
        created_at=row.created_at,
    )


class SQLAlchemyBackend(Backend):
    """Backend over the portal's own relational database.

    ``session_store`` is where the signed-in backend session lives between
    requests (the Flask session in the app, a dict in scripts).
    """

    def __init__(self, db, session_store: MutableMapping[str, Any]):
        self.db = db
        self.session_store = session_store

    @contextmanager
    def _translate_errors(self):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            detail = str(getattr(exc, "orig", None) or exc)
            current_app.logger.warning("[BACKEND-FAIL] %s", detail)
            raise BackendError(detail) from exc

    def _joined_query(self):
        return (
            self.db.session.query(Certificate, Participant, Event)
            .join(Participant, Participant.id == Certificate.participant_id)
            .join(Event, Event.id == Certificate.event_id)
        )

    @staticmethod
    def _joined(rows) -> list[CertificateWithRelations]:
        return [
            CertificateWithRelations(
                certificate=_certificate_record(cert),
                participant=_participant_record(participant),
                event=_event_record(event),
            )
            for cert, participant, event in rows
        ]

    # events
    def list_events(self) -> list[EventRecord]:
        with self._translate_errors():
            rows = self.db.session.query(Event).order_by(Event.created_at.desc()).all()
        return [_event_record(row) for row in rows]

    def get_event(self, event_id: str) -> EventRecord | None:
        with self._translate_errors():
            row = self.db.session.get(Event, event_id)
        return _event_record(row) if row else None

    def insert_event(
        self,
        *,
        name: str,
        description: str | None,
        start_date: date,
        end_date: date,
        created_by: str,
    ) -> EventRecord:
        event = Event(
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            created_by=created_by,
        )
        with self._translate_errors():
            self.db.session.add(event)
            self.db.session.commit()
        return _event_record(event)

    # participants
    def list_participants(self) -> list[ParticipantRecord]:
        with self._translate_errors():
            rows = (
                self.db.session.query(Participant)
                .order_by(Participant.created_at.desc())
                .all()
            )
        return [_participant_record(row) for row in rows]

    def get_participant(self, participant_id: str) -> ParticipantRecord | None:
        with self._translate_errors():
            row = self.db.session.get(Participant, participant_id)
        return _participant_record(row) if row else None

    def find_participant_by_email(self, email: str) -> ParticipantRecord | None:
        email_lc = (email or "").strip().lower()
        with self._translate_errors():
            row = (
                self.db.session.query(Participant)
                .filter(func.lower(Participant.email) == email_lc)
                .one_or_none()
            )
        return _participant_record(row) if row else None

    def upsert_participants(self, rows: Sequence[ParticipantUpsert]) -> None:
        if not rows:
            return
        dialect = self.db.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise BackendError(f"Upsert is not supported on {dialect}")
        created_at = now_utc()
        values = [
            {
                "id": new_id(),
                "email": row.email.strip().lower(),
                "full_name": row.full_name,
                "organization": row.organization,
                "created_at": created_at,
            }
            for row in rows
        ]
        with self._translate_errors():
            for batch in _batches(values):
                stmt = insert(Participant.__table__).values(batch)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[Participant.__table__.c.email],
                    set_={
                        "full_name": stmt.excluded.full_name,
                        "organization": stmt.excluded.organization,
                    },
                )
                self.db.session.execute(stmt)
            self.db.session.commit()

    def participants_by_emails(self, emails: Iterable[str]) -> list[ParticipantRecord]:
        wanted = sorted({(e or "").strip().lower() for e in emails if e})
        if not wanted:
            return []
        rows: list[Participant] = []
        with self._translate_errors():
            for batch in _batches(wanted):
                rows.extend(
                    self.db.session.query(Participant)
                    .filter(Participant.email.in_(batch))
                    .all()
                )
        return [_participant_record(row) for row in rows]

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
        with self._translate_errors():
            if self.db.session.get(Participant, participant_id) is None:
                raise BackendError("Participant does not exist", code="23503")
            if self.db.session.get(Event, event_id) is None:
                raise BackendError("Event does not exist", code="23503")
            cert = Certificate(
                participant_id=participant_id,
                event_id=event_id,
                certificate_number=certificate_number,
                issue_date=issue_date,
                template_data=template_data,
            )
            self.db.session.add(cert)
            self.db.session.commit()
        return _certificate_record(cert)

    def get_certificate(self, certificate_id: str) -> CertificateWithRelations | None:
        with self._translate_errors():
            rows = self._joined_query().filter(Certificate.id == certificate_id).all()
        joined = self._joined(rows)
        return joined[0] if joined else None

    def certificates_for_participant(
        self, participant_id: str
    ) -> list[CertificateWithRelations]:
        with self._translate_errors():
            rows = (
                self._joined_query()
                .filter(Certificate.participant_id == participant_id)
                .order_by(Certificate.created_at.desc())
                .all()
            )
        return self._joined(rows)

    def certificates_by_number(
        self, certificate_number: str
    ) -> list[CertificateWithRelations]:
        with self._translate_errors():
            rows = (
                self._joined_query()
                .filter(Certificate.certificate_number == certificate_number)
                .order_by(Certificate.created_at.desc())
                .all()
            )
        return self._joined(rows)

    def list_certificates(self) -> list[CertificateWithRelations]:
        with self._translate_errors():
            rows = self._joined_query().order_by(Certificate.created_at.desc()).all()
        return self._joined(rows)

    # auth
    def _lookup_user(self, email: str) -> AuthUserModel | None:
        email_lc = (email or "").strip().lower()
        return (
            self.db.session.query(AuthUserModel)
            .filter(func.lower(AuthUserModel.email) == email_lc)
            .one_or_none()
        )

    def _establish(self, user: AuthUserModel) -> AuthUser:
        self.session_store[BACKEND_SESSION_KEY] = {
            "user_id": user.id,
            "email": user.email,
            "issued_at": now_utc().isoformat(),
        }
        return AuthUser(id=user.id, email=user.email)

    def sign_in(self, email: str, password: str) -> AuthUser:
        with self._translate_errors():
            user = self._lookup_user(email)
        ok, upgraded = check_and_upgrade(password, user.password_hash if user else None)
        if not ok:
            raise BackendError("Invalid login credentials", code="invalid_credentials")
        if upgraded:
            with self._translate_errors():
                user.password_hash = upgraded
                self.db.session.commit()
        return self._establish(user)

    def sign_up(self, email: str, password: str) -> AuthUser:
        problem = password_problem(password)
        if problem:
            raise BackendError(problem, code="weak_password")
        with self._translate_errors():
            if self._lookup_user(email) is not None:
                raise BackendError("User already registered", code="user_exists")
            user = AuthUserModel(email=email, password_hash=hash_password(password))
            self.db.session.add(user)
            self.db.session.commit()
        return self._establish(user)

    def sign_out(self) -> None:
        self.session_store.pop(BACKEND_SESSION_KEY, None)

    def get_session(self) -> AuthSession | None:
        data = self.session_store.get(BACKEND_SESSION_KEY)
        if not isinstance(data, dict) or not data.get("user_id"):
            return None
        with self._translate_errors():
            user = self.db.session.get(AuthUserModel, data["user_id"])
        if user is None:
            self.session_store.pop(BACKEND_SESSION_KEY, None)
            return None
        return AuthSession(
            user_id=user.id,
            email=user.email,
            metadata={"issued_at": data.get("issued_at")},
        )

    def get_user(self) -> AuthUser | None:
        session = self.get_session()
        if session is None:
            return None
        return AuthUser(id=session.user_id, email=session.email)
