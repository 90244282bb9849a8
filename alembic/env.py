from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from tutorslot.config import settings
from tutorslot.database import Base
from tutorslot.models.session import NO_OVERLAP_CONSTRAINT
from tutorslot import models  # noqa: F401 - registers tutors, students, tutoring_sessions

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# tutorslot.config always yields a URL (sqlite default); % must be escaped for configparser.
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL.replace("%", "%%"))

target_metadata = Base.metadata


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _include_object(obj, name, type_, reflected, compare_to):
    # The per-tutor exclusion constraint is hand-written in the migration
    # (PostgreSQL only) and has no counterpart on the models.
    if name == NO_OVERLAP_CONSTRAINT:
        return False
    return True


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=_is_sqlite(url),
        include_object=_include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER most constraints in place.
            render_as_batch=connection.dialect.name == "sqlite",
            include_object=_include_object,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
