import pathlib

import pytest
import sqlalchemy as sa
from flask_migrate import Migrate, upgrade

from certportal.app import create_app, db

MIGRATIONS = pathlib.Path(__file__).resolve().parent.parent / "migrations"


@pytest.mark.slow
def test_initial_migration_builds_schema(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'portal.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    app = create_app({"SQLALCHEMY_DATABASE_URI": url})
    Migrate(app, db, directory=str(MIGRATIONS))

    with app.app_context():
        upgrade()
        inspector = sa.inspect(db.engine)
        tables = set(inspector.get_table_names())
        indexes = {ix["name"] for ix in inspector.get_indexes("certificates")}
        db.engine.dispose()

    assert {"events", "participants", "certificates", "auth_users", "alembic_version"} <= tables
    assert "ix_certificates_certificate_number" in indexes
