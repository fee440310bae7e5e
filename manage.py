import logging
import os

import click
from flask import current_app
from flask.cli import FlaskGroup
from flask_migrate import Migrate

from certportal.app import create_app, db
from certportal.backend import BackendError, get_backend
from certportal.config import ConfigError, check_required_env
from certportal.constants import ROBOTS_TXT
from certportal.shared.auth_gate import AuthError, SessionGate
from certportal.shared.certificate_pdf import render_achievement
from certportal.shared.certificates import assemble_certificate, issue_certificate

migrate = Migrate()
logger = logging.getLogger("certportal.build")


def create_portal_app():
    app = create_app()
    migrate.init_app(app, db)
    return app


cli = FlaskGroup(create_app=create_portal_app)


def _cli_backend():
    """Backend for one-off commands; no browser session to attach to."""
    if current_app.config["CERTPORTAL_BACKEND"] == "sqlalchemy":
        from certportal.backend.sqlalchemy_backend import SQLAlchemyBackend

        return SQLAlchemyBackend(db, {})
    return get_backend()


@cli.command("check-env", with_appcontext=False)
def check_env():
    """Fail when required environment variables are missing."""
    try:
        check_required_env()
    except ConfigError as exc:
        raise click.ClickException(str(exc))
    click.echo("Environment OK")


@cli.command("verify-build", with_appcontext=False)
@click.option(
    "--dist",
    "dist",
    default="dist",
    show_default=True,
    type=click.Path(file_okay=False),
)
@click.option(
    "--robots/--no-robots",
    default=True,
    help="Write a default robots.txt when the build has none",
)
def verify_build(dist: str, robots: bool):
    """Check the built static bundle before deploying it."""
    problems = []
    if not os.path.isdir(dist):
        problems.append(f"{dist} directory missing")
    else:
        if not os.path.isfile(os.path.join(dist, "index.html")):
            problems.append(f"{dist}/index.html missing")
        if not os.path.isdir(os.path.join(dist, "assets")):
            problems.append(f"{dist}/assets directory missing")
    if problems:
        for problem in problems:
            logger.error("[BUILD] %s", problem)
        raise click.ClickException("; ".join(problems))

    if robots:
        robots_path = os.path.join(dist, "robots.txt")
        if not os.path.exists(robots_path):
            try:
                with open(robots_path, "w", encoding="utf-8") as fh:
                    fh.write(ROBOTS_TXT)
                logger.info("[BUILD] wrote %s", robots_path)
            except OSError:
                logger.exception("[BUILD] could not write %s", robots_path)
    click.echo("Build OK")


@cli.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True, prompt=True, hide_input=True)
def create_admin(email: str, password: str):
    """Register an administrator account."""
    gate = SessionGate(
        _cli_backend(), {}, current_app.config["ADMIN_EMAIL_SUFFIX"]
    )
    try:
        gate.sign_up(email, password)
    except AuthError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Created admin {gate.identity}")


@cli.command("gen-cert")
@click.option("--email", "email", required=True)
@click.option("--event", "event_id", required=True)
@click.option("--out", "out", required=True, type=click.Path(dir_okay=False))
@click.option("--position")
@click.option("--venue")
def gen_cert(email: str, event_id: str, out: str, position, venue):
    """Issue an achievement certificate and write its PDF."""
    backend = _cli_backend()
    try:
        participant = backend.find_participant_by_email(email.strip().lower())
        event = backend.get_event(event_id)
    except BackendError as exc:
        raise click.ClickException(str(exc))
    if not participant or not event:
        raise click.ClickException("Participant or event not found")
    draft = assemble_certificate(
        participant, event, {"position": position, "venue": venue}
    )
    try:
        record = issue_certificate(backend, draft)
    except BackendError as exc:
        raise click.ClickException(str(exc))
    pdf = render_achievement(
        record.template_data,
        record.certificate_number,
        mark=current_app.config["CERT_NUMBER_PREFIX"],
    )
    with open(out, "wb") as fh:
        fh.write(pdf)
    click.echo(f"{record.certificate_number} {out}")


if __name__ == "__main__":
    cli()
