import secrets
from functools import wraps

from flask import abort, request, session


def generate_csrf_token() -> str:
    token = session.get("_csrf_token")
    if not token:
        token = secrets.token_hex(16)
        session["_csrf_token"] = token
    return token


def csrf_protected(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if request.method == "POST":
            expected = session.get("_csrf_token")
            if not expected or request.form.get("csrf_token") != expected:
                abort(400)
        return fn(*args, **kwargs)

    return wrapper
