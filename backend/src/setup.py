def run():
    """
    Run before every entry point:
        fastapi server
        alembic migrations
        ipython shell
        tests
    """
    from loguru import logger

    from src.common.logs import configure_logging

    configure_logging()
    configure_models()
    configure_database()

    logger.info('application setup complete ✅')


def teardown():
    teardown_database()


def configure_models():
    """
    When using declarative we need to run this for our entry points
    to have context on our models / relationships example when
    traversing "user.id" as a foreign key
    """
    from src.common.model import import_model_modules

    import_model_modules()


def configure_database():
    """
    Engines and session makers are built once per process
    """
    from src.network import database

    database.initialize()


def teardown_database():
    from src.network import database

    database.teardown()
