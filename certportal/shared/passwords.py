"""Password hashing for the portal's own auth store.

New hashes use bcrypt_sha256. Plain bcrypt hashes still verify and are
handed back for upgrade on the next successful sign-in.
"""

import logging

from passlib.context import CryptContext
from passlib.handlers import bcrypt as passlib_bcrypt

MIN_PASSWORD_LENGTH = 6

logging.getLogger("passlib.handlers.bcrypt").setLevel(logging.ERROR)


def _tolerate_long_secrets() -> None:
    # bcrypt>=4.1 raises on secrets over 72 bytes and passlib's backend
    # self-test sends one; report that as a mismatch.
    backend = passlib_bcrypt._BcryptBackend
    if getattr(backend, "_certportal_patched", False):
        return
    original = backend.verify.__func__

    def verify(cls, secret, hash, **context):
        try:
            return original(cls, secret, hash, **context)
        except ValueError as exc:
            if "longer than 72 bytes" not in str(exc):
                raise
            return False

    backend.verify = classmethod(verify)
    backend._workrounds_initialized = True
    backend._certportal_patched = True


_tolerate_long_secrets()

pwd_ctx = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")


def password_problem(plain: str | None) -> str | None:
    if len(plain or "") < MIN_PASSWORD_LENGTH:
        return f"Password should be at least {MIN_PASSWORD_LENGTH} characters"
    return None


def hash_password(plain: str) -> str:
    return pwd_ctx.hash(plain)


def check_and_upgrade(plain: str | None, hashed: str | None) -> tuple[bool, str | None]:
    """Verify ``plain``; the second item is a fresh hash when ``hashed`` is outdated."""
    if not plain or not hashed:
        return False, None
    try:
        return pwd_ctx.verify_and_update(plain, hashed)
    except ValueError:
        return False, None


def verify_password(plain: str | None, hashed: str | None) -> bool:
    return check_and_upgrade(plain, hashed)[0]
