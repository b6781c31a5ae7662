from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from src.common.model import BaseModel, import_model_modules

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Interpret the config file for Python logging.
# This line sets up loggers basically.
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

import_model_modules()
target_metadata = BaseModel.metadata


def get_url() -> str:
    """
    An explicit sqlalchemy.url (tests) wins over the application settings
    """
    configured = config.get_main_option('sqlalchemy.url')
    if configured:
        return configured

    from src.network.database.session import get_database_url

    return get_database_url().render_as_string(hide_password=False)


class MissingMigrationMessage(Exception): ...


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL
    and not an Engine, though an Engine is acceptable
    here as well.  By skipping the Engine creation
    we don't even need a DBAPI to be available.

    Calls to context.execute() here emit the given string to the
    script output.

    """
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={'paramstyle': 'named'},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode.

    In this scenario we need to create an Engine
    and associate a connection with the context.
    """
    configuration = config.get_section(config.config_ini_section) or {}
    configuration['sqlalchemy.url'] = get_url()

    if hasattr(config.cmd_opts, 'message'):
        if not config.cmd_opts.message:
            raise MissingMigrationMessage("Missing migration message!\n Add with `make migrations m='some message'`")

    connectable = engine_from_config(
        configuration,
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # sqlite can't ALTER most things in place
            render_as_batch=connection.dialect.name == 'sqlite',
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
