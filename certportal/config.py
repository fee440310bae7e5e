from __future__ import annotations

import os
from typing import Mapping

from .constants import MAX_UPLOAD_BYTES

REQUIRED_ENV: tuple[str, ...] = ("DATABASE_URL", "SECRET_KEY")

BACKEND_CHOICES = ("sqlalchemy", "memory")


class ConfigError(RuntimeError):
    """Raised when the environment cannot serve the portal."""


def missing_env(environ: Mapping[str, str] | None = None) -> list[str]:
    env = os.environ if environ is None else environ
    return [name for name in REQUIRED_ENV if not (env.get(name) or "").strip()]


def check_required_env(environ: Mapping[str, str] | None = None) -> None:
    missing = missing_env(environ)
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}"
        )


def load_config(environ: Mapping[str, str] | None = None) -> dict:
    """Build the Flask config mapping from the environment.

    ``check_required_env`` must have passed first; optional settings fall
    back to the portal defaults.
    """

    env = os.environ if environ is None else environ
    backend = (env.get("CERTPORTAL_BACKEND") or "sqlalchemy").strip().lower()
    if backend not in BACKEND_CHOICES:
        raise ConfigError(f"Unsupported CERTPORTAL_BACKEND: {backend!r}")
    return {
        "SECRET_KEY": env["SECRET_KEY"],
        "SQLALCHEMY_DATABASE_URI": env["DATABASE_URL"],
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "MAX_CONTENT_LENGTH": MAX_UPLOAD_BYTES,
        "MAX_FORM_MEMORY_SIZE": MAX_UPLOAD_BYTES,
        "PREFERRED_URL_SCHEME": "https",
        "ADMIN_EMAIL_SUFFIX": (env.get("ADMIN_EMAIL_SUFFIX") or "@admin.com").strip(),
        "CERT_NUMBER_PREFIX": (env.get("CERT_NUMBER_PREFIX") or "TEKRON").strip(),
        "CERTPORTAL_BACKEND": backend,
        "LOG_LEVEL": (env.get("LOG_LEVEL") or "INFO").upper(),
    }
