from typing import Any, Callable, Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import BaseRoute, Match
from starlette.types import ASGIApp, Scope

from src.network.database.decorator import endpoint_database_mode
from src.network.database.session import DatabaseMode, db

# Routes checked for every request: path parameters first, or no path of their own
_ANY_SEGMENT = '_params'


class HTTPSessionManagerMiddleware(BaseHTTPMiddleware):
    """
    One session (and transaction) per request. Committed when the
    response is a success, rolled back on any 4xx / 5xx.
    """

    def __init__(
        self,
        app: ASGIApp,
        commit_on_success: bool = True,
    ):
        super().__init__(app)
        self.commit_on_success = commit_on_success
        self._route_groups: Dict[str, List[BaseRoute]] = {}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        database_mode = self._determine_database_mode(request=request)
        with db(commit_on_success=self.commit_on_success, mode=database_mode):
            response = await call_next(request)
            if response.status_code >= 400:
                db.session.rollback()

        return response

    def _determine_database_mode(self, request: Request) -> DatabaseMode:
        """
        Read-only designated routes go straight to the replica engine
        """
        return endpoint_database_mode(self._match_endpoint(request=request))

    def _match_endpoint(self, request: Request) -> Callable[..., Any] | None:
        """
        In starlette all route matching occurs after middlewares run
        https://github.com/encode/starlette/issues/685
        Routes are grouped by first path segment to keep this cheap.
        """
        if not self._route_groups:
            self._route_groups = self._group_routes_by_first_path_segment(request.app.routes)

        first_part = next((part for part in request.url.path.split('/') if part), '')
        routes_to_check = self._route_groups.get(first_part, []) + self._route_groups.get(_ANY_SEGMENT, [])

        for route in routes_to_check:
            endpoint = resolve_endpoint(route, request.scope)
            if endpoint is not None:
                return endpoint
        return None

    def _group_routes_by_first_path_segment(self, routes: List[BaseRoute]) -> Dict[str, List[BaseRoute]]:
        grouped: Dict[str, List[BaseRoute]] = {}

        for route in routes:
            path = getattr(route, 'path', '')
            first_part = next((part for part in path.split('/') if part), '')

            # Handle routes with parameter as first segment like /{param}/...
            # and wrappers (mounts, included routers) that carry no path
            if not first_part or first_part.startswith('{'):
                first_part = _ANY_SEGMENT

            grouped.setdefault(first_part, []).append(route)

        return grouped


def resolve_endpoint(route: BaseRoute, scope: Scope) -> Callable[..., Any] | None:
    """
    Endpoint that would serve `scope` under `route`. Mounts and router
    wrappers are descended into with the child scope they produce, their
    own `endpoint` is the wrapped app.
    """
    match, child_scope = route.matches(scope)
    if match != Match.FULL:
        return None

    nested_routes = getattr(route, 'routes', None)
    if not nested_routes:
        return child_scope.get('endpoint', getattr(route, 'endpoint', None))

    nested_scope = {**scope, **child_scope}
    for nested_route in nested_routes:
        endpoint = resolve_endpoint(nested_route, nested_scope)
        if endpoint is not None:
            return endpoint
    return None
