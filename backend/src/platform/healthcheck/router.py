from typing import Callable

from fastapi import APIRouter, Response
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

from src.network.database import ReadOnlySession, db

router = APIRouter()

_PROBE = text('SELECT 1')


def _probe_request_session() -> None:
    db.session.execute(_PROBE)


def _probe_read_only_session() -> None:
    with ReadOnlySession() as session:
        session.execute(_PROBE)


_DATABASE_PROBES: list[tuple[str, Callable[[], None]]] = [
    ('Regular DB', _probe_request_session),
    ('Read-only DB', _probe_read_only_session),
]


@router.get('/api')
def status_get(response: Response) -> str:
    """
    Used by the load balancer and deploy scripts, keep it dependency free.
    """
    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    return '⏱️ Claudometer is counting... ⏱️'


@router.get('/database')
def database_health_check(response: Response) -> str:
    """
    One line per engine, 503 when any of them can't answer a SELECT 1
    """
    lines = []
    is_healthy = True
    for label, probe in _DATABASE_PROBES:
        try:
            probe()
        except SQLAlchemyError as e:
            logger.error(f'healthcheck: {label} unavailable: {e}')
            lines.append(f'❌ {label} is sad: {e}')
            is_healthy = False
        else:
            lines.append(f'✅ {label} is happy')

    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    response.status_code = status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE
    return '<br>'.join(lines)
