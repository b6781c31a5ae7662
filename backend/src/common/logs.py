import json
import logging
import sys
from typing import Any

from loguru import logger

from src import settings
from src.common import context

_LEVEL_ICONS = {
    logging.DEBUG: '🔬',
    logging.WARNING: '⚠️',
    logging.ERROR: '💣💥',
    logging.CRITICAL: '🚨',
}


class InterceptHandler(logging.Handler):
    """
    Default handler from examples in loguru documentation.
    Passes stdlib log records (uvicorn, sqlalchemy, httpx) to loguru.
    https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
    """

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def deployed_log_formatter(record: dict[str, Any]) -> str:
    """
    Formats a machine readable log, one json document per line
    """
    if record['exception'] is not None:
        exc = record['exception']
        record['exception'] = None
        record['extra']['error'] = {
            'exception_type': type(exc.value).__name__ if exc.value else str(exc.type),
            'message': str(exc.value),
        }

    record['extra']['timestamp'] = record['time'].strftime('%Y-%m-%dT%H:%M:%S,%f')
    record['extra']['message'] = record['message']
    record['extra']['level'] = record['level'].name
    record['extra']['logger'] = record['name']

    # Set in request middleware, some loggers fire before it binds
    request_id = record['extra'].get('request_id') or context.get_safe_request_id() or ''
    record['extra']['request_id'] = request_id
    record['extra']['user_id'] = context.get_safe_user_id() or ''
    record['extra']['org_id'] = context.get_safe_org_id() or ''

    record['extra']['serialized'] = json.dumps(record['extra'], default=str)
    return '{extra[serialized]}\n'


def local_log_formatter(record: dict[str, Any]) -> str:
    """
    Formats a log record for local development console
    """
    level = record['level'].no
    duration = record['extra'].get('duration', None)
    if duration is None:
        icon = _LEVEL_ICONS.get(level, '✏️')
        log_format = (
            '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> '
            f'| {icon} '
            ' <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> '
            '- <level>{message}</level>\n'
        )
    else:
        # Request logs show the endpoint duration unless something went wrong
        meta = _LEVEL_ICONS.get(level, f'⏱️ {duration}s') if level >= logging.WARNING else f'⏱️ {duration}s'
        log_format = (
            '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> '
            f'| <magenta>{meta}</magenta> '
            '- <level>{message}</level>\n'
        )

    if record['exception'] is not None:
        if settings.DEBUG:
            from rich.console import Console
            from rich.traceback import Traceback

            exc_type, exc_value, exc_tb = record['exception']
            Console().print(
                Traceback.from_exception(
                    exc_type=exc_type,
                    exc_value=exc_value,
                    traceback=exc_tb,
                    show_locals=True,
                    locals_max_length=5,
                    locals_max_string=25,
                    locals_hide_dunder=True,
                    max_frames=10,
                )
            )
        else:
            log_format += '{exception}\n'
    return log_format


def configure_logging() -> None:
    # Intercept everything at the root logger
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(settings.LOG_LEVEL)

    # Remove every other logger's handlers and propagate to root logger
    for name in logging.root.manager.loggerDict.keys():
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    log_formatter = deployed_log_formatter if settings.IS_DEPLOYED_ENV else local_log_formatter

    logger.remove()
    logger.add(
        sys.stdout,
        serialize=False,
        backtrace=False,
        diagnose=False,
        level=settings.LOG_LEVEL,
        format=log_formatter,
    )
    # This logger only duplicates since we have middleware we are appending context too
    logging.getLogger('uvicorn.access').propagate = False
    logger.info(f'logging level: {settings.LOG_LEVEL}')
