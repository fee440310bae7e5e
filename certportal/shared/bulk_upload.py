from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from flask import current_app, has_app_context

from ..backend.base import Backend, ParticipantUpsert
from .csv_import import CsvParseResult

MISSING_EVENT_MESSAGE = (
    "Event ID is required. Either select an event or include eventId column in your CSV."
)
INVALID_ROWS_MESSAGE = "Please fix all errors before uploading"


class UploadRefused(ValueError):
    """The parsed roster cannot be sent to the backend as it stands."""


@dataclass(frozen=True)
class UploadResult:
    count: int
    event_id: str | None
    ids_by_email: dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return f"Successfully uploaded {self.count} participants"


def _log(message: str, *args) -> None:
    if has_app_context():
        current_app.logger.info(message, *args)


def upload_participants(
    backend: Backend,
    parsed: CsvParseResult,
    event_id: str | None = None,
    on_complete: Callable[[], None] | None = None,
) -> UploadResult:
    """Upsert every parsed row as a participant in one backend call.

    Emails are lowercased and duplicates inside the batch collapse to the
    last occurrence. A :class:`~certportal.backend.BackendError` from the
    upsert means nothing was committed; it propagates unchanged.
    """

    if not parsed.all_valid:
        raise UploadRefused(INVALID_ROWS_MESSAGE)
    rows = parsed.valid_rows
    if not rows:
        raise UploadRefused("There are no participants to upload")
    if not event_id and not any(row.event_id for row in rows):
        raise UploadRefused(MISSING_EVENT_MESSAGE)

    batch: dict[str, ParticipantUpsert] = {}
    for row in rows:
        email = row.email.strip().lower()
        batch.pop(email, None)
        batch[email] = ParticipantUpsert(
            email=email,
            full_name=row.full_name,
            organization=row.organization,
        )

    backend.upsert_participants(list(batch.values()))
    found = backend.participants_by_emails(batch.keys())
    ids_by_email = {p.email: p.id for p in found}

    result = UploadResult(
        count=len(rows),
        event_id=event_id or next((r.event_id for r in rows if r.event_id), None),
        ids_by_email=ids_by_email,
    )
    _log(
        "[UPLOAD] participants rows=%s unique=%s event=%s",
        result.count,
        len(batch),
        result.event_id,
    )
    if on_complete is not None:
        on_complete()
    return result
