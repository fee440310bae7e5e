import logging

from flask import Flask, render_template, session
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

from . import models  # noqa: E402,F401  registers tables on db.metadata
from .backend import EXTENSION_KEY  # noqa: E402
from .config import check_required_env, load_config  # noqa: E402
from .shared.csrf import generate_csrf_token  # noqa: E402
from .shared.rbac import current_gate  # noqa: E402
from .shared.time import fmt_dt, fmt_issue_date  # noqa: E402

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, app.config.get("LOG_LEVEL", "INFO"), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    app.logger.setLevel(level)
    logging.getLogger("certportal").setLevel(level)


def _build_backend(app: Flask):
    if app.config["CERTPORTAL_BACKEND"] == "memory":
        from .backend.memory import InMemoryBackend

        app.logger.warning("[BACKEND] using in-memory backend; data is not persisted")
        return InMemoryBackend()
    from .backend.sqlalchemy_backend import SQLAlchemyBackend

    return SQLAlchemyBackend(db, session)


def create_app(overrides: dict | None = None, backend=None) -> Flask:
    """Application factory.

    Refuses to build an app (and so to serve any page) when the required
    environment is missing. ``backend`` replaces the configured backend,
    which is how the tests inject a fake.
    """

    check_required_env()
    app = Flask(__name__, template_folder="templates")
    app.config.update(load_config())
    if overrides:
        app.config.update(overrides)
    _configure_logging(app)

    app.jinja_env.filters["fmt_dt"] = fmt_dt
    app.jinja_env.filters["fmt_issue_date"] = fmt_issue_date
    app.jinja_env.globals["csrf_token"] = generate_csrf_token

    db.init_app(app)
    app.extensions[EXTENSION_KEY] = backend or _build_backend(app)

    @app.before_request
    def load_gate():
        current_gate()

    @app.context_processor
    def inject_identity():
        gate = current_gate()
        return {
            "current_identity": gate.identity,
            "current_is_admin": gate.is_admin,
        }

    @app.errorhandler(404)
    def not_found(_error):
        return render_template("not_found.html"), 404

    from .routes.admin import bp as admin_bp
    from .routes.auth import bp as auth_bp
    from .routes.home import bp as home_bp
    from .routes.search import bp as search_bp

    app.register_blueprint(home_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(admin_bp)

    app.logger.info(
        "[BOOT] backend=%s admin_suffix=%s",
        type(app.extensions[EXTENSION_KEY]).__name__,
        app.config["ADMIN_EMAIL_SUFFIX"],
    )
    return app
