import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# ruff: noqa: E402
from src import settings
from src.common.logs import configure_logging

configure_logging()
from alembic import command
from alembic.config import Config
from loguru import logger

if settings.ENVIRONMENT == 'production':
    raise Exception('🛑 STOP! 🛑 You likely did not mean to do this on production...')


def main():
    """
    Walks the schema all the way down and back up to head
    """
    config = Config(os.path.join(settings.BASE_DIR, 'alembic.ini'))
    config.set_main_option('script_location', os.path.join(settings.BASE_DIR, 'migrations'))

    logger.info('Downgrading database to base...')
    command.downgrade(config, 'base')
    logger.info('Upgrading database to head...')
    command.upgrade(config, 'head')
    logger.info('Database reset ✅')


if __name__ == '__main__':
    main()
