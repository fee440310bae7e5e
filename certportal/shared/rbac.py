from functools import wraps

from flask import current_app, g, redirect, request, session, url_for

from ..backend import get_backend
from .auth_gate import SessionGate


def current_gate() -> SessionGate:
    """The per-request session gate, built on first use."""
    gate = g.get("auth_gate")
    if gate is None:
        gate = SessionGate(
            get_backend(),
            session,
            current_app.config.get("ADMIN_EMAIL_SUFFIX", "@admin.com"),
        )
        g.auth_gate = gate
    return gate


def admin_required(fn):
    """Reconcile with the backend session; only administrators pass."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        gate = current_gate()
        if not gate.resolved:
            gate.check_session()
        if not gate.authenticated or not gate.is_admin:
            current_app.logger.info(
                "[AUTH-FAIL] path=%s identity=%s reason=not_admin",
                request.path,
                gate.identity,
            )
            return redirect(url_for("auth.login", next=request.path))
        return fn(*args, **kwargs, current_user=gate)

    return wrapper
