"""Who is signed in, and are they an administrator.

The gate never stores credentials. It keeps ``{identity, isAdmin}`` in a
durable mapping (the signed session cookie in the app) so a reload starts
from the last known state, then reconciles with the backend's live session
through :meth:`SessionGate.check_session`. Administrator status is derived
purely from the email's domain suffix.
"""

from __future__ import annotations

import enum
import logging
from typing import MutableMapping

from ..backend.base import Backend, BackendError
from ..constants import (
    ACCESS_DENIED_MESSAGE,
    AUTH_STORAGE_KEY,
    DEFAULT_ADMIN_SUFFIX,
    INVALID_CREDENTIALS_MESSAGE,
    RATE_LIMIT_MESSAGE,
)

logger = logging.getLogger("certportal.auth")


class GateStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    RESOLVED = "resolved"


class AuthError(Exception):
    """Sign-in or sign-up failed; ``str(exc)`` is shown to the user."""


class AccessDenied(AuthError, PermissionError):
    """The identity authenticated but is not allowed to stay signed in."""


def is_admin_email(email: str | None, suffix: str = DEFAULT_ADMIN_SUFFIX) -> bool:
    if not email or not suffix:
        return False
    return email.strip().lower().endswith(suffix.lower())


def _friendly(exc: BackendError) -> str:
    message = str(exc)
    if message == "Invalid login credentials":
        return INVALID_CREDENTIALS_MESSAGE
    if "rate limit" in message.lower():
        return RATE_LIMIT_MESSAGE
    return message


class SessionGate:
    def __init__(
        self,
        backend: Backend,
        storage: MutableMapping,
        admin_suffix: str = DEFAULT_ADMIN_SUFFIX,
    ):
        self.backend = backend
        self.storage = storage
        self.admin_suffix = admin_suffix
        self.status = GateStatus.UNINITIALIZED
        self.identity: str | None = None
        self.is_admin = False
        self.error: str | None = None
        self._rehydrate()

    # durable state
    def _rehydrate(self) -> None:
        saved = self.storage.get(AUTH_STORAGE_KEY)
        if isinstance(saved, dict):
            self.identity = saved.get("identity") or None
            self.is_admin = bool(saved.get("isAdmin")) and self.identity is not None

    def _persist(self) -> None:
        if self.identity is None:
            self.storage.pop(AUTH_STORAGE_KEY, None)
        else:
            self.storage[AUTH_STORAGE_KEY] = {
                "identity": self.identity,
                "isAdmin": self.is_admin,
            }

    def _set(self, identity: str | None) -> None:
        self.identity = identity
        self.is_admin = identity is not None and is_admin_email(identity, self.admin_suffix)
        self._persist()

    @property
    def resolved(self) -> bool:
        return self.status is GateStatus.RESOLVED

    @property
    def authenticated(self) -> bool:
        return self.identity is not None

    # operations
    def check_session(self) -> None:
        self.status = GateStatus.LOADING
        try:
            session = self.backend.get_session()
            user = self.backend.get_user() if session else None
            self._set(user.email if user else None)
            self.error = None
        except BackendError as exc:
            self.error = str(exc)
            self._set(None)
        finally:
            self.status = GateStatus.RESOLVED

    def sign_in(self, email: str, password: str) -> None:
        self.status = GateStatus.LOADING
        self.error = None
        try:
            if not email or not password:
                raise AuthError("Email and password are required")
            try:
                user = self.backend.sign_in(email, password)
            except BackendError as exc:
                raise AuthError(_friendly(exc)) from exc
            if not is_admin_email(user.email, self.admin_suffix):
                self.backend.sign_out()
                self._set(None)
                logger.info("[AUTH-FAIL] email=%s reason=not_admin", user.email)
                raise AccessDenied(ACCESS_DENIED_MESSAGE)
            self._set(user.email)
            logger.info("[AUTH] signed in email=%s", user.email)
        except AuthError as exc:
            self.error = str(exc)
            raise
        finally:
            self.status = GateStatus.RESOLVED

    def sign_up(self, email: str, password: str) -> None:
        self.status = GateStatus.LOADING
        self.error = None
        try:
            if not email or not password:
                raise AuthError("Email and password are required")
            if not is_admin_email(email, self.admin_suffix):
                raise AuthError(
                    f"Only {self.admin_suffix} email addresses are allowed for registration"
                )
            try:
                user = self.backend.sign_up(email, password)
            except BackendError as exc:
                raise AuthError(_friendly(exc)) from exc
            self._set(user.email)
            logger.info("[AUTH] registered email=%s", user.email)
        except AuthError as exc:
            self.error = str(exc)
            raise
        finally:
            self.status = GateStatus.RESOLVED

    def sign_out(self) -> None:
        self.status = GateStatus.LOADING
        try:
            self.backend.sign_out()
            self._set(None)
            self.error = None
        except BackendError as exc:
            self.error = str(exc)
        finally:
            self.status = GateStatus.RESOLVED
