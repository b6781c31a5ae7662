from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from src.common import context
from src.common.model import BaseModel
from src.core.authentication import AuthenticationService, ResolvedIdentity
from src.core.organization import OrganizationService
from src.core.service import CoreService
from src.network.database.session import db as session_manager
from src.network.database.session import get_engine


def truncate_tables() -> None:
    with get_engine().begin() as connection:
        for table in reversed(BaseModel.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope='function', autouse=True)
def db():
    """
    Requests run on the client's own thread with their own session, so
    nothing here can be rolled back. Fixtures commit, tables are emptied
    after every test.
    """
    token = context.initialize(
        caller_type=context.AppContextCallerType.SYSTEM,
        user_id='user-system',
        breadcrumb='testing',
    )
    yield session_manager
    context.reset(token)
    truncate_tables()


@pytest.fixture(scope='module')
def client() -> TestClient:
    from src.network.http.server import server

    # No context manager, the lifespan would dispose the engine on exit
    return TestClient(server)


@pytest.fixture(scope='function')
def organization(organization_factory):
    org = organization_factory.build()
    with session_manager(commit_on_success=True):
        return OrganizationService.factory().ensure_organization(org.id, org.name)


def _provision(caller: ResolvedIdentity) -> ResolvedIdentity:
    with session_manager(commit_on_success=True):
        CoreService.factory().ensure_identity(caller)
    return caller


@pytest.fixture(scope='function')
def identity(organization, user_factory) -> ResolvedIdentity:
    user = user_factory.build()
    return _provision(
        ResolvedIdentity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            org_id=organization.id,
            org_name=organization.name,
        )
    )


@pytest.fixture(scope='function')
def make_identity(organization, user_factory):
    def _make_identity(org_id: str | None = None, org_name: str | None = None, **user_fields) -> ResolvedIdentity:
        user = user_factory.build(**user_fields)
        return _provision(
            ResolvedIdentity(
                user_id=user.id,
                email=user.email,
                name=user.name,
                org_id=org_id or organization.id,
                org_name=org_name or organization.name,
            )
        )

    return _make_identity


def auth_headers(token: str) -> dict[str, str]:
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def cli_headers(identity) -> dict[str, str]:
    """
    Bearer headers for `identity` holding a fresh CLI token
    """
    return auth_headers(AuthenticationService.issue_cli_token(identity))


@pytest.fixture(scope='function')
def expired_cli_headers(identity) -> dict[str, str]:
    expired_at = datetime.now(tz=timezone.utc) - timedelta(hours=1)
    return auth_headers(AuthenticationService.issue_cli_token(identity, expires_at=expired_at))


@pytest.fixture(scope='function')
def device_headers(client, cli_headers) -> dict[str, str]:
    """
    Links a device through the API the way a third party tool would
    """
    response = client.post('/api/devices/linking-codes', json={'deviceName': 'Laptop'}, headers=cli_headers)
    assert response.status_code == 200, response.json()
    response = client.post('/api/devices/link', json={'code': response.json()['code'], 'source': 'openclaw'})
    assert response.status_code == 200, response.json()
    return auth_headers(response.json()['token'])
