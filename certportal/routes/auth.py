from __future__ import annotations

from flask import (
    Blueprint,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    url_for,
)

from ..shared.auth_gate import AccessDenied, AuthError
from ..shared.csrf import csrf_protected
from ..shared.rbac import current_gate

bp = Blueprint("auth", __name__)

MODES = ("signin", "signup")


def _safe_next(value: str | None) -> str:
    if value and value.startswith("/") and not value.startswith("//"):
        return value
    return url_for("admin.dashboard")


@bp.route("/login", methods=["GET", "POST"])
@csrf_protected
def login():
    gate = current_gate()
    mode = request.values.get("mode", "signin")
    if mode not in MODES:
        mode = "signin"
    next_url = _safe_next(request.values.get("next"))

    if request.method == "GET":
        if not gate.resolved:
            gate.check_session()
        if gate.authenticated and gate.is_admin:
            return redirect(next_url)
        return render_template("auth/login.html", mode=mode, next_url=next_url)

    email = (request.form.get("email") or "").strip()
    password = request.form.get("password") or ""
    try:
        if mode == "signup":
            gate.sign_up(email, password)
        else:
            gate.sign_in(email, password)
    except AccessDenied as exc:
        flash(str(exc), "error")
        return render_template(
            "auth/login.html", mode=mode, next_url=next_url, email=email
        ), 403
    except AuthError as exc:
        current_app.logger.info(
            "[AUTH-FAIL] email=%s mode=%s reason=%s", email, mode, exc
        )
        flash(str(exc), "error")
        return render_template(
            "auth/login.html", mode=mode, next_url=next_url, email=email
        )
    if mode == "signup":
        flash("Account created. You are now signed in.", "success")
    return redirect(next_url)


@bp.post("/logout")
@csrf_protected
def logout():
    gate = current_gate()
    identity = gate.identity
    gate.sign_out()
    if gate.error:
        current_app.logger.info("[AUTH-FAIL] sign-out email=%s reason=%s", identity, gate.error)
        flash(gate.error, "error")
    else:
        current_app.logger.info("[AUTH] signed out email=%s", identity)
        flash("You have been signed out.", "info")
    return redirect(url_for("home.index"))
