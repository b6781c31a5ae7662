from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src import settings


def build_security_headers() -> dict[str, str]:
    """
    Headers stamped on every response. The API never renders HTML so
    everything is locked down as far as it goes.
    """
    headers = {
        # No framing, no sniffing, no leaking the path to third parties
        'X-Frame-Options': 'DENY',
        'X-Content-Type-Options': 'nosniff',
        'Referrer-Policy': 'strict-origin-when-cross-origin',
        'Permissions-Policy': 'camera=(), geolocation=(), microphone=(), payment=(), usb=()',
        'Cache-Control': 'no-store',
    }
    if settings.CSP_POLICY:
        headers['Content-Security-Policy'] = settings.CSP_POLICY
    if settings.ENABLE_HSTS:
        headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)

        if settings.ENABLE_SECURITY_HEADERS:
            for header, value in build_security_headers().items():
                response.headers.setdefault(header, value)

        return response
