from __future__ import annotations

from io import BytesIO

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    url_for,
)

from ..backend import BackendError, get_backend
from ..constants import RENDER_FAILED_MESSAGE
from ..shared.certificate_pdf import (
    PARTICIPATION,
    CertificateRenderError,
    certificate_filename,
    render_participation,
)
from ..shared.csrf import csrf_protected
from ..shared.search import SEARCH_MODES, SearchError, search_certificates

bp = Blueprint("search", __name__, url_prefix="/search")


@bp.route("", methods=["GET", "POST"])
@csrf_protected
def search():
    mode = request.values.get("mode", "email")
    if mode not in SEARCH_MODES:
        mode = "email"
    query = request.form.get("query", "") if request.method == "POST" else ""
    outcome = None
    if request.method == "POST":
        try:
            outcome = search_certificates(get_backend(), query, mode)
        except SearchError as exc:
            flash(str(exc), "error")
        except BackendError as exc:
            current_app.logger.exception("[SEARCH] backend failure mode=%s", mode)
            flash(str(exc), "error")
        else:
            flash(outcome.message, "success" if outcome.found else "info")
    return render_template(
        "search.html",
        mode=mode,
        modes=SEARCH_MODES,
        query=query,
        outcome=outcome,
    )


@bp.get("/certificates/<certificate_id>/download")
def download(certificate_id: str):
    try:
        certificate = get_backend().get_certificate(certificate_id)
    except BackendError as exc:
        current_app.logger.exception("[CERT-FAIL] lookup id=%s", certificate_id)
        flash(str(exc), "error")
        return redirect(url_for("search.search"))
    if certificate is None:
        abort(404)
    try:
        pdf = render_participation(certificate)
    except CertificateRenderError as exc:
        current_app.logger.info(
            "[CERT-FAIL] render id=%s reason=%s", certificate_id, exc
        )
        flash(RENDER_FAILED_MESSAGE, "error")
        return redirect(url_for("search.search"))
    current_app.logger.info(
        "[CERT] download number=%s id=%s", certificate.certificate_number, certificate.id
    )
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=certificate_filename(certificate.certificate_number, PARTICIPATION),
    )
