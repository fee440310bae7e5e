from __future__ import annotations

from io import BytesIO

from flask import (
    Blueprint,
    Response,
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
from ..constants import (
    DEFAULT_AUTHORITY,
    DEFAULT_CUSTOM_TEXT,
    DEFAULT_POSITION,
    DEFAULT_VENUE,
    RENDER_FAILED_MESSAGE,
)
from ..shared.bulk_upload import UploadRefused, upload_participants
from ..shared.certificate_pdf import (
    ACHIEVEMENT,
    CertificateRenderError,
    certificate_filename,
    render_achievement,
)
from ..shared.certificates import (
    EDITABLE_FIELDS,
    assemble_certificate,
    generate_certificate_number,
    issue_certificate,
)
from ..shared.csrf import csrf_protected
from ..shared.csv_import import CsvFormatError, parse_participants_csv, sample_csv
from ..shared.rbac import admin_required
from ..shared.time import parse_iso_date, today_utc

bp = Blueprint("admin", __name__, url_prefix="/admin")


def _safely(label: str, fn, default):
    try:
        return fn()
    except BackendError as exc:
        current_app.logger.exception("[BACKEND-FAIL] %s", label)
        flash(str(exc), "error")
        return default


@bp.get("")
@admin_required
def dashboard(current_user):
    backend = get_backend()
    events = _safely("dashboard events", backend.list_events, [])
    participants = _safely("dashboard participants", backend.list_participants, [])
    certificates = _safely("dashboard certificates", backend.list_certificates, [])
    return render_template(
        "admin/dashboard.html",
        event_count=len(events),
        participant_count=len(participants),
        certificate_count=len(certificates),
        recent_certificates=certificates[:5],
    )


# events
def _event_form_errors(form) -> tuple[list[str], dict]:
    errors: list[str] = []
    name = (form.get("name") or "").strip()
    description = (form.get("description") or "").strip() or None
    if not name:
        errors.append("Event name is required")
    try:
        start = parse_iso_date(form.get("start_date"))
        end = parse_iso_date(form.get("end_date"))
    except ValueError:
        start = end = None
        errors.append("Dates must use the YYYY-MM-DD format")
    else:
        if start is None or end is None:
            errors.append("Start and end dates are required")
        elif end < start:
            errors.append("End date must be on or after the start date")
    return errors, {
        "name": name,
        "description": description,
        "start_date": start,
        "end_date": end,
    }


@bp.route("/events", methods=["GET", "POST"])
@admin_required
@csrf_protected
def events(current_user):
    backend = get_backend()
    form = {}
    if request.method == "POST":
        form = request.form
        errors, values = _event_form_errors(request.form)
        if not errors:
            user = _safely("current user", backend.get_user, None)
            try:
                event = backend.insert_event(
                    created_by=user.id if user else current_user.identity,
                    **values,
                )
            except BackendError as exc:
                current_app.logger.exception("[EVENT] insert failed name=%s", values["name"])
                errors.append(str(exc))
            else:
                current_app.logger.info(
                    "[EVENT] created id=%s name=%s by=%s",
                    event.id,
                    event.name,
                    current_user.identity,
                )
                flash(f"Event '{event.name}' created", "success")
                return redirect(url_for("admin.events"))
        for message in errors:
            flash(message, "error")
    return render_template(
        "admin/events.html",
        events=_safely("list events", backend.list_events, []),
        form=form,
    )


# participants
def _participants_page(status: int = 200, **context):
    backend = get_backend()
    context.setdefault("parsed", None)
    context.setdefault("csv_text", "")
    context.setdefault("event_id", "")
    return (
        render_template(
            "admin/participants.html",
            participants=_safely("list participants", backend.list_participants, []),
            events=_safely("list events", backend.list_events, []),
            **context,
        ),
        status,
    )


@bp.get("/participants")
@admin_required
def participants(current_user):
    return _participants_page()


@bp.post("/participants/preview")
@admin_required
@csrf_protected
def participants_preview(current_user):
    event_id = (request.form.get("event_id") or "").strip()
    upload = request.files.get("csv_file")
    if upload is None or not upload.filename:
        flash("Please choose a CSV file", "error")
        return _participants_page(400, event_id=event_id)
    if not upload.filename.lower().endswith(".csv"):
        flash("Please upload a CSV file", "error")
        return _participants_page(400, event_id=event_id)
    try:
        text = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        flash("CSV file must be UTF-8 encoded", "error")
        return _participants_page(400, event_id=event_id)
    try:
        parsed = parse_participants_csv(text, event_id or None)
    except CsvFormatError as exc:
        current_app.logger.info(
            "[CSV] rejected file=%s reason=%s", upload.filename, exc
        )
        flash(str(exc), "error")
        return _participants_page(400, event_id=event_id)
    current_app.logger.info(
        "[CSV] parsed file=%s rows=%s invalid=%s",
        upload.filename,
        len(parsed.rows),
        parsed.invalid_count,
    )
    if parsed.error_summary:
        flash(parsed.error_summary, "error")
    return _participants_page(parsed=parsed, csv_text=text, event_id=event_id)


@bp.post("/participants/upload")
@admin_required
@csrf_protected
def participants_upload(current_user):
    event_id = (request.form.get("event_id") or "").strip()
    text = request.form.get("csv_text") or ""
    try:
        parsed = parse_participants_csv(text, event_id or None)
    except CsvFormatError as exc:
        flash(str(exc), "error")
        return _participants_page(400, event_id=event_id)
    try:
        result = upload_participants(get_backend(), parsed, event_id or None)
    except UploadRefused as exc:
        flash(str(exc), "error")
        return _participants_page(
            400, parsed=parsed, csv_text=text, event_id=event_id
        )
    except BackendError as exc:
        current_app.logger.exception("[UPLOAD] backend failure event=%s", event_id)
        flash(str(exc), "error")
        return _participants_page(
            502, parsed=parsed, csv_text=text, event_id=event_id
        )
    flash(result.message, "success")
    return redirect(url_for("admin.participants"))


@bp.get("/participants/sample.csv")
@admin_required
def participants_sample(current_user):
    return Response(
        sample_csv(),
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=participants_sample.csv"},
    )


# certificates
DEFAULT_FIELDS = {
    "certifying_authority": DEFAULT_AUTHORITY,
    "position": DEFAULT_POSITION,
    "venue": DEFAULT_VENUE,
    "custom_text": DEFAULT_CUSTOM_TEXT,
}


def _certificate_form_values(form=None) -> dict:
    values = dict(DEFAULT_FIELDS)
    values["issue_date"] = today_utc().isoformat()
    values["event_id"] = ""
    values["certificate_number"] = generate_certificate_number()
    if form is not None:
        for name in (*EDITABLE_FIELDS, "issue_date", "event_id", "certificate_number"):
            if name in form:
                values[name] = form.get(name, "").strip()
    return values


@bp.route("/participants/<participant_id>/certificate", methods=["GET", "POST"])
@admin_required
@csrf_protected
def certificate_form(current_user, participant_id: str):
    backend = get_backend()
    try:
        participant = backend.get_participant(participant_id)
    except BackendError as exc:
        current_app.logger.exception("[CERT-FAIL] participant lookup id=%s", participant_id)
        flash(str(exc), "error")
        return redirect(url_for("admin.participants"))
    if participant is None:
        abort(404)
    events = _safely("list events", backend.list_events, [])

    if request.method == "GET":
        return render_template(
            "admin/certificate_form.html",
            participant=participant,
            events=events,
            values=_certificate_form_values(),
        )

    values = _certificate_form_values(request.form)
    action = request.form.get("action", "preview")

    def _form(status: int):
        return (
            render_template(
                "admin/certificate_form.html",
                participant=participant,
                events=events,
                values=values,
            ),
            status,
        )

    event = next((e for e in events if e.id == values["event_id"]), None)
    if event is None:
        flash("Please select an event", "error")
        return _form(400)
    try:
        draft = assemble_certificate(participant, event, values)
    except ValueError:
        flash("Issue date must use the YYYY-MM-DD format", "error")
        return _form(400)

    mark = current_app.config["CERT_NUMBER_PREFIX"]
    if action == "generate":
        try:
            record = issue_certificate(backend, draft)
        except BackendError as exc:
            current_app.logger.exception(
                "[CERT-FAIL] insert participant=%s event=%s", participant.id, event.id
            )
            flash(str(exc), "error")
            return _form(502)
        number = record.certificate_number
        payload = record.template_data
    else:
        number = draft.certificate_number
        payload = draft.template_data

    try:
        pdf = render_achievement(payload, number, mark=mark)
    except CertificateRenderError as exc:
        current_app.logger.info("[CERT-FAIL] render number=%s reason=%s", number, exc)
        flash(RENDER_FAILED_MESSAGE, "error")
        return _form(500)
    return send_file(
        BytesIO(pdf),
        mimetype="application/pdf",
        as_attachment=action == "generate",
        download_name=certificate_filename(number, ACHIEVEMENT),
    )


@bp.get("/certificates")
@admin_required
def certificates(current_user):
    rows = _safely("list certificates", get_backend().list_certificates, [])
    return render_template("admin/certificates.html", certificates=rows)
