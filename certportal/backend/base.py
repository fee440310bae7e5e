"""Contract between the portal and its hosted data/auth backend.

Every page and service talks to the backend through :class:`Backend`; the
production implementation wraps SQLAlchemy, the in-memory one backs the
test-suite. Reads that embed participants and events use inner-join
semantics, so a certificate whose participant or event has gone away is
simply not returned.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterable, Sequence


class BackendError(RuntimeError):
    """A failed backend call; ``str(exc)`` is the backend's own message."""

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class EventRecord:
    id: str
    name: str
    description: str | None
    start_date: date
    end_date: date
    created_at: datetime
    created_by: str


@dataclass(frozen=True)
class ParticipantRecord:
    id: str
    email: str
    full_name: str
    organization: str | None
    created_at: datetime


@dataclass(frozen=True)
class ParticipantUpsert:
    email: str
    full_name: str
    organization: str | None = None


@dataclass(frozen=True)
class CertificateRecord:
    id: str
    participant_id: str
    event_id: str
    certificate_number: str
    issue_date: date
    template_data: dict[str, Any] | None
    created_at: datetime


@dataclass(frozen=True)
class CertificateWithRelations:
    certificate: CertificateRecord
    participant: ParticipantRecord
    event: EventRecord

    @property
    def id(self) -> str:
        return self.certificate.id

    @property
    def certificate_number(self) -> str:
        return self.certificate.certificate_number

    @property
    def issue_date(self) -> date:
        return self.certificate.issue_date

    @property
    def template_data(self) -> dict[str, Any] | None:
        return self.certificate.template_data


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str


@dataclass(frozen=True)
class AuthSession:
    user_id: str
    email: str
    metadata: dict[str, Any] = field(default_factory=dict)


class Backend(ABC):
    """Operations the portal needs from its backend."""

    # events
    @abstractmethod
    def list_events(self) -> list[EventRecord]: ...

    @abstractmethod
    def get_event(self, event_id: str) -> EventRecord | None: ...

    @abstractmethod
    def insert_event(
        self,
        *,
        name: str,
        description: str | None,
        start_date: date,
        end_date: date,
        created_by: str,
    ) -> EventRecord: ...

    # participants
    @abstractmethod
    def list_participants(self) -> list[ParticipantRecord]: ...

    @abstractmethod
    def get_participant(self, participant_id: str) -> ParticipantRecord | None: ...

    @abstractmethod
    def find_participant_by_email(self, email: str) -> ParticipantRecord | None: ...

    @abstractmethod
    def upsert_participants(self, rows: Sequence[ParticipantUpsert]) -> None:
        """Insert or update every row in one call, keyed on ``email``."""

    @abstractmethod
    def participants_by_emails(
        self, emails: Iterable[str]
    ) -> list[ParticipantRecord]: ...

    # certificates
    @abstractmethod
    def insert_certificate(
        self,
        *,
        participant_id: str,
        event_id: str,
        certificate_number: str,
        issue_date: date,
        template_data: dict[str, Any] | None,
    ) -> CertificateRecord: ...

    @abstractmethod
    def get_certificate(self, certificate_id: str) -> CertificateWithRelations | None: ...

    @abstractmethod
    def certificates_for_participant(
        self, participant_id: str
    ) -> list[CertificateWithRelations]: ...

    @abstractmethod
    def certificates_by_number(
        self, certificate_number: str
    ) -> list[CertificateWithRelations]: ...

    @abstractmethod
    def list_certificates(self) -> list[CertificateWithRelations]: ...

    # auth
    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthUser: ...

    @abstractmethod
    def sign_up(self, email: str, password: str) -> AuthUser: ...

    @abstractmethod
    def sign_out(self) -> None: ...

    @abstractmethod
    def get_session(self) -> AuthSession | None: ...

    @abstractmethod
    def get_user(self) -> AuthUser | None: ...
