from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.common import context


class HTTPAppContextMiddleware(BaseHTTPMiddleware):
    """
    Fresh application context for every request. Guards fill in the
    caller once the bearer token resolves.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        token = context.initialize(breadcrumb=f'{request.method} {request.url.path}')
        try:
            return await call_next(request)
        finally:
            context.reset(token)
