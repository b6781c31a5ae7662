from typing import Any, Callable, TypeVar

from src.network.database.session import DatabaseMode

_ROUTE_DATABASE_MODE_KEY = '_database_mode'

_Endpoint = TypeVar('_Endpoint', bound=Callable[..., Any])


def read_only_route(func: _Endpoint) -> _Endpoint:
    """
    Marks a fastapi route as read-only for database access.
    Checked by HTTPSessionManagerMiddleware to pick the engine.

    Example:
        @read_only_route
        @router.get('/me')
        def get_my_metrics():
            ...
    """
    setattr(func, _ROUTE_DATABASE_MODE_KEY, DatabaseMode.READ_ONLY)
    return func


def endpoint_database_mode(endpoint: Callable[..., Any] | None) -> DatabaseMode:
    if endpoint is None:
        return DatabaseMode.READ_WRITE

    return getattr(endpoint, _ROUTE_DATABASE_MODE_KEY, DatabaseMode.READ_WRITE)
