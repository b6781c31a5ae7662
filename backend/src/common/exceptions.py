import re
from typing import Any

import sentry_sdk
from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class InternalException(Exception):
    """
    All internal exceptions should inherit from this. We are handled
    vaguely publicly
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Internal failure.'
    default_code = 'internal_failure'

    def __init__(self, message: str | None = None, context: dict[Any, Any] | Any = None):
        self.message = message or self.default_detail
        self.context = context or dict()
        super().__init__(self.message)

    def __str__(self) -> str:
        return f'{self.__class__.__name__}({self.message})'


class APIException(Exception):
    """
    API view layer exceptions
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid Request.'
    default_code = 'invalid_request'

    def __init__(self, message: str | None = None, code: int | None = None, error_type: str | None = None):
        self.message = message or self.default_detail
        self.code = code or self.status_code
        self.error_type = error_type
        super().__init__(self.message)


async def internal_exception_handler(request: Request, exc: InternalException) -> JSONResponse:
    """
    Registered at the app level, details stay in the logs
    """
    logger.opt(exception=exc).error(f'{exc} context={exc.context}')
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({'detail': exc.default_detail}),
    )


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    content = {'detail': exc.message}
    if exc.error_type:
        content['error_type'] = exc.error_type
    return JSONResponse(
        status_code=exc.code,
        content=jsonable_encoder(content),
    )


def _validation_fingerprint(details: list[dict[str, Any]]) -> list[str]:
    """
    "missing:body.claude.daily.3.date" -> "missing:body.claude.daily.date"
    so every index of a malformed list groups into one sentry issue
    """
    generalized = set()
    for error in details:
        if 'loc' not in error:
            continue
        field_path = '.'.join(str(part) for part in error['loc'])
        clean_path = re.sub(r'\.[0-9]+(?=\.|$)', '', field_path)
        generalized.add(f"{error['type']}:{clean_path}")
    return sorted(generalized)


async def inbound_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    This catches pydantic validation errors and is registered at the app level
    """
    details = exc.errors()

    fingerprint = _validation_fingerprint(list(details))
    with sentry_sdk.new_scope() as scope:
        if fingerprint:
            scope.fingerprint = [request.url.path] + fingerprint
        # We want to know about these
        sentry_sdk.capture_exception(exc)

    modified_details = [
        {
            'loc': error['loc'],
            'message': error['msg'],
            'input': error.get('input'),
            'type': error['type'],
        }
        for error in details
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({'detail': modified_details}),
    )
