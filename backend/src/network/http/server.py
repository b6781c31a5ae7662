from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from loguru import logger
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.errors import ServerErrorMiddleware

from src import settings
from src.common.exceptions import (
    APIException,
    InternalException,
    api_exception_handler,
    inbound_validation_exception_handler,
    internal_exception_handler,
)
from src.common.middleware import HTTPAppContextMiddleware
from src.common.request import RequestResponseMiddleware
from src.common.security_headers import SecurityHeadersMiddleware
from src.network.database.middleware import HTTPSessionManagerMiddleware
from src.network.http.router import api_router

# Probed every few seconds, not worth a transaction each
UNTRACED_PATHS = frozenset({'/healthcheck/api', '/healthcheck/database'})


def traces_sampler(sampling_context: dict[str, Any]) -> float:
    asgi_scope = sampling_context.get('asgi_scope') or {}
    if asgi_scope.get('path') in UNTRACED_PATHS:
        return 0
    return settings.SENTRY_DEFAULT_SAMPLE_RATE


def configure_sentry() -> None:
    if settings.USE_MOCK_SENTRY_CLIENT:
        logger.info('sentry disabled, using mock client')
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        # 4xx responses are the caller's problem
        ignore_errors=[APIException],
        environment=settings.ENVIRONMENT,
        integrations=[StarletteIntegration(), FastApiIntegration()],
        traces_sampler=traces_sampler,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    from src.setup import configure_database, teardown

    # No-op when launch.py already ran setup
    configure_database()
    logger.info(f'{app.title} is ready!')
    if settings.IS_LOCAL:
        logger.info(f'check out API docs here: {settings.HOST}/docs')

    yield

    teardown()
    logger.info('💀 Shutting down!')


def register_middlewares(app: FastAPI) -> None:
    """
    Starlette wraps each added middleware around the previous ones, so the
    last one added sees the request first:
        CORS -> app context -> request logging -> db session -> security headers
    """
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(HTTPSessionManagerMiddleware, commit_on_success=settings.ATOMIC_REQUESTS)
    app.add_middleware(RequestResponseMiddleware)
    app.add_middleware(HTTPAppContextMiddleware)

    if settings.DEBUG:
        # Traceback pages instead of bare 500s
        app.add_middleware(ServerErrorMiddleware, debug=True)

    if settings.BACKEND_CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=settings.CORS_ALLOWED_METHODS,
            allow_headers=settings.CORS_ALLOWED_HEADERS,
        )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, inbound_validation_exception_handler)
    app.add_exception_handler(InternalException, internal_exception_handler)
    app.add_exception_handler(APIException, api_exception_handler)


def create_server() -> FastAPI:
    configure_sentry()

    docs_enabled = settings.IS_LOCAL
    app = FastAPI(
        title=settings.API_TITLE,
        description=settings.API_DESCRIPTION,
        version='0.0.1',
        lifespan=lifespan,
        openapi_url=f'{settings.API_PREFIX}/openapi.json' if docs_enabled else None,
        docs_url='/docs' if docs_enabled else None,
        redoc_url='/redoc' if docs_enabled else None,
        generate_unique_id_function=lambda route: route.name,
        redirect_slashes=False,
        separate_input_output_schemas=False,
    )
    register_middlewares(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix=settings.API_PREFIX)
    return app


server = create_server()
