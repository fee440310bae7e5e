import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import make_url

from certportal.app import create_app, db

config = context.config
fileConfig(config.config_file_name, disable_existing_loggers=False)
logger = logging.getLogger("alembic.env")

portal = create_app()

with portal.app_context():
    target_metadata = db.metadata


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or portal.config["SQLALCHEMY_DATABASE_URI"]


def _skip_empty_autogenerate(context_, revision, directives):
    # `flask db migrate` with no model changes should not write a revision file
    if getattr(config.cmd_opts, "autogenerate", False):
        script = directives[0]
        if script.upgrade_ops.is_empty():
            directives[:] = []
            logger.info("[MIGRATE] no schema changes detected")


def _configure_options(url: str) -> dict:
    # sqlite cannot ALTER most constraints in place; alembic rebuilds the table
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": make_url(url).get_backend_name() == "sqlite",
        "process_revision_directives": _skip_empty_autogenerate,
    }


def run_migrations_offline() -> None:
    url = _database_url()
    logger.info("[MIGRATE] offline against %s", make_url(url).render_as_string(hide_password=True))
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    with portal.app_context():
        engine = db.engine
        logger.info("[MIGRATE] online against %s", engine.url.render_as_string(hide_password=True))
        with engine.connect() as connection:
            context.configure(
                connection=connection,
                **_configure_options(str(engine.url)),
            )
            with context.begin_transaction():
                context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
