import time
import uuid

from fastapi import status
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.common import context


def get_user_ip_address_from_header(forwarded_header: str | None) -> str:
    """
    Expects the result of "x-forwarded-for" which will be
    a list of IPs separated by a ',' accounting for all
    proxy servers encountered
    """
    user_ip = forwarded_header.split(',')[0] if forwarded_header else ''
    return user_ip.strip()


def _client_address(request: Request) -> str:
    if request.client is None:
        return 'unknown'
    return f'{request.client.host}:{request.client.port}'


def _get_request_log_meta(request: Request, start_time: float, status_code: int) -> dict:
    return dict(
        endpoint=request.url.path,
        http_method=request.method,
        http_status_code=status_code,
        duration=round(time.time() - start_time, 3),
        user_agent=request.headers.get('user-agent', 'unknown'),
        user_ip=get_user_ip_address_from_header(request.headers.get('x-forwarded-for')),
    )


def _get_request_id(request: Request) -> str:
    # Set by the load balancer in deployed environments
    return request.headers.get('X-Request-ID', str(uuid.uuid4()))


class RequestResponseMiddleware(BaseHTTPMiddleware):
    """
    Inject request id to context and log one line per request
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.time()
        request_id = _get_request_id(request)
        context.set_request_id(request_id)

        summary = f'{_client_address(request)} {request.method.upper()} {request.url.path}'
        with logger.contextualize(request_id=request_id):
            try:
                response = await call_next(request)
            except Exception:
                logger.error(
                    f'{summary} {status.HTTP_500_INTERNAL_SERVER_ERROR}',
                    **_get_request_log_meta(request, start_time, status.HTTP_500_INTERNAL_SERVER_ERROR),
                )
                raise

            level = response.status_code // 100
            if level == 5:
                log = logger.error
            elif level == 4:
                log = logger.warning
            else:
                log = logger.info
            log(
                f'{summary} {response.status_code}',
                **_get_request_log_meta(request, start_time, response.status_code),
            )

        response.headers['X-Request-ID'] = request_id
        return response
