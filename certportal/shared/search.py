from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app, has_app_context

from ..backend.base import Backend, CertificateWithRelations

SEARCH_MODES = ("email", "id")


class SearchError(ValueError):
    """The search request itself is unusable."""


@dataclass(frozen=True)
class SearchOutcome:
    query: str
    mode: str
    results: list[CertificateWithRelations] = field(default_factory=list)
    message: str = ""

    @property
    def found(self) -> bool:
        return bool(self.results)


def search_certificates(backend: Backend, query: str, mode: str = "email") -> SearchOutcome:
    """Find certificates by participant email or exact certificate number."""

    if mode not in SEARCH_MODES:
        raise ValueError(f"Unknown search mode: {mode!r}")
    raw = query or ""
    if not raw.strip():
        raise SearchError("Please enter a search term")

    if mode == "email":
        participant = backend.find_participant_by_email(raw.strip().lower())
        if participant is None:
            outcome = SearchOutcome(
                raw, mode, [], f"No participant found with email: {raw}"
            )
        else:
            results = backend.certificates_for_participant(participant.id)
            outcome = SearchOutcome(
                raw,
                mode,
                results,
                f"Found {len(results)} certificate(s)"
                if results
                else f"No certificates found for email: {raw}",
            )
    else:
        results = backend.certificates_by_number(raw.strip())
        outcome = SearchOutcome(
            raw,
            mode,
            results,
            f"Found {len(results)} certificate(s)"
            if results
            else f"No certificate found with ID: {raw}",
        )

    if has_app_context():
        current_app.logger.info(
            "[SEARCH] mode=%s results=%s", mode, len(outcome.results)
        )
    return outcome
