from flask import current_app

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

EXTENSION_KEY = "certportal.backend"


def get_backend() -> Backend:
    """Return the backend bound to the running application."""
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "AuthSession",
    "AuthUser",
    "Backend",
    "BackendError",
    "CertificateRecord",
    "CertificateWithRelations",
    "EventRecord",
    "ParticipantRecord",
    "ParticipantUpsert",
    "EXTENSION_KEY",
    "get_backend",
]
