import os
import sys
import tempfile

from sqlalchemy.orm import Session

# Test Environment Overrides will override .env files
# THESE MUST BE IMPORTED BEFORE ANYTHING
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
TEST_DATABASE_PATH = os.path.join(tempfile.gettempdir(), 'claudometer-test.db')

EXPECTED_SECRET_KEY = 'test'
os.environ.setdefault('SECRET_KEY', 'test')
os.environ.setdefault('ENVIRONMENT', 'testing')
os.environ.setdefault('COMPANY_NAME', 'TestCompany')
os.environ.setdefault('DATABASE_URL', f'sqlite:///{TEST_DATABASE_PATH}')
os.environ.setdefault('ATOMIC_REQUESTS', 'True')
os.environ.setdefault('USE_MOCK_SENTRY_CLIENT', 'True')
os.environ.setdefault('USE_MOCK_CLERK_CLIENT', 'True')

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from src import setup

setup.run()

# Import models to ensure they're registered
from src.common.model import BaseModel, import_model_modules

# Import all model modules to register them with SQLAlchemy
import_model_modules()

import pytest

from src.common import context
from src.core.authentication import ResolvedIdentity
from src.core.service import CoreService
from src.network import database
from src.platform.clerk import MockClerkClient

# Add fixtures here
pytest_plugins = [
    'tests.factories.core.organization',
    'tests.factories.core.user',
    'tests.factories.app.metrics',
]

# ruff: noqa: E402
from src import settings
from src.network.database.session import db as session_manager
from src.network.database.session import get_engine

# When src files are imported before the above patching, tests will use
# incorrect database settings as well as non mocked services.
if settings.SECRET_KEY != EXPECTED_SECRET_KEY:
    print(settings.SECRET_KEY, EXPECTED_SECRET_KEY)
    raise ValueError(
        'Patching of environment variables failed.\n'
        'This will cause unexpected test failures'
        'Check all src imports are delayed until after patching.\n'
    )


@pytest.fixture(scope='session', autouse=True)
def create_tables():
    """
    Fresh schema once per run, tests roll back (or truncate) after themselves
    """
    database.initialize()
    engine = get_engine()
    BaseModel.metadata.drop_all(engine)
    BaseModel.metadata.create_all(engine)
    yield
    BaseModel.metadata.drop_all(get_engine())


@pytest.fixture(autouse=True)
def reset_clerk_members():
    MockClerkClient.reset()
    yield
    MockClerkClient.reset()


@pytest.fixture(scope='function', autouse=True)
def db() -> Session:
    # This needs to be set first for fixtures to be able to create
    token = context.initialize(
        caller_type=context.AppContextCallerType.SYSTEM,
        user_id='user-system',
        breadcrumb='testing',
    )
    database.initialize()

    with session_manager(commit_on_success=False):
        session = session_manager.session

        # Patch commit() to prevent accidental commits in tests
        # This allows production code to use db.session.commit() naturally
        # without breaking test rollbacks
        def no_op_commit():
            # In tests, flush changes but don't actually commit
            # This makes the changes visible within the transaction
            # but keeps them rollbackable
            session.flush()

        session.commit = no_op_commit

        yield session_manager.session

    session.rollback()
    context.reset(token)


@pytest.fixture(scope='function')
def organization(organization_factory):
    from src.core.organization import OrganizationService

    org = organization_factory.build()
    return OrganizationService.factory().ensure_organization(org.id, org.name)


@pytest.fixture(scope='function')
def identity(organization, user_factory) -> ResolvedIdentity:
    """
    A CLI caller in `organization`, provisioned locally
    """
    user = user_factory.build(org_id=organization.id)
    caller = ResolvedIdentity(
        user_id=user.id,
        email=user.email,
        name=user.name,
        org_id=organization.id,
        org_name=organization.name,
    )
    CoreService.factory().ensure_identity(caller)
    return caller


@pytest.fixture(scope='function')
def make_identity(organization, user_factory):
    """
    Builds (and provisions) extra callers, in `organization` by default
    """

    def _make_identity(org_id: str | None = None, org_name: str | None = None, **user_fields) -> ResolvedIdentity:
        user = user_factory.build(**user_fields)
        caller = ResolvedIdentity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            org_id=org_id or organization.id,
            org_name=org_name or organization.name,
        )
        CoreService.factory().ensure_identity(caller)
        return caller

    return _make_identity
