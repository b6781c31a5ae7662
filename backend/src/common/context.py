"""
Used to track global application context
Request information
Who submitted / queried
Used for request logging and error reporting.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict

from sentry_sdk import set_tag as set_sentry_tag
from sentry_sdk import set_user as set_sentry_user

from src.common.enum import BaseEnum

_app_context: ContextVar[Dict[str, Any] | None] = ContextVar('_app_context', default=None)

_caller_type_key = 'caller_type'
_user_id_key = 'user_id'
_org_id_key = 'org_id'
_request_id_key = 'request_id'
_breadcrumb_key = 'breadcrumb'


class AppContextCallerType(BaseEnum):
    UNKNOWN = 'UNKNOWN'  # Default but should be overridden by every entry point
    CLI = 'C'  # Claudometer agent holding a CLI token
    DEVICE = 'D'  # Third party tool holding a device token
    SYSTEM = 'S'  # Tests, shell, migrations


def initialize(
    caller_type: AppContextCallerType = AppContextCallerType.UNKNOWN,
    user_id: str | None = None,
    request_id: str | None = None,
    breadcrumb: str | None = None,
) -> Token[Dict[str, Any] | None]:
    return _app_context.set(
        {
            _caller_type_key: caller_type,
            _user_id_key: user_id,
            _org_id_key: None,
            _request_id_key: request_id,
            _breadcrumb_key: breadcrumb,
        }
    )


def reset(token: Token[Dict[str, Any] | None]) -> None:
    _app_context.reset(token)


def _get_context() -> Dict[str, Any]:
    app_ctx = _app_context.get()
    if app_ctx is None:
        raise RuntimeError('Application context not initialized')
    return app_ctx


def set_caller(caller_type: AppContextCallerType, user_id: str, org_id: str | None = None) -> None:
    app_ctx = _get_context()
    app_ctx[_caller_type_key] = caller_type
    app_ctx[_user_id_key] = user_id
    app_ctx[_org_id_key] = org_id
    set_sentry_user(dict(id=user_id))
    if org_id:
        set_sentry_tag('org_id', org_id)


def set_request_id(request_id: str) -> None:
    _get_context()[_request_id_key] = request_id
    set_sentry_tag('request_id', request_id)


def get_caller_type() -> AppContextCallerType:
    return AppContextCallerType(_get_context()[_caller_type_key])


def get_request_id() -> str:
    return str(_get_context()[_request_id_key])


def get_safe_request_id() -> str | None:
    """
    safely accessible at anypoint in application lifecycle
    """
    app_ctx = _app_context.get()
    if app_ctx:
        return app_ctx.get(_request_id_key)
    return None


def get_safe_user_id() -> str | None:
    """
    Safely accessible at anypoint in application lifecycle
    """
    app_ctx = _app_context.get()
    if app_ctx:
        return app_ctx.get(_user_id_key)
    return None


def get_safe_org_id() -> str | None:
    app_ctx = _app_context.get()
    if app_ctx:
        return app_ctx.get(_org_id_key)
    return None


def get_breadcrumb() -> str | None:
    breadcrumb = _get_context()[_breadcrumb_key]
    return str(breadcrumb) if breadcrumb is not None else None
