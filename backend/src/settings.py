import os
from datetime import timedelta

from decouple import Choices, config

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BASE_MODULE = 'src'
SRC_DIR = os.path.join(BASE_DIR, BASE_MODULE)

COMPANY_NAME = config('COMPANY_NAME', default='Claudometer')

# API Documentation
API_TITLE = config('API_TITLE', default=f'{COMPANY_NAME} API')
API_DESCRIPTION = config('API_DESCRIPTION', default='Usage metrics and leaderboards')

HOST = config('HOST', default='http://127.0.0.1:8000')
SERVER_HOST = config('SERVER_HOST', default='127.0.0.1')
SERVER_PORT = config('SERVER_PORT', default=8000, cast=int)
SECRET_KEY = config('SECRET_KEY', default='secret')
DEBUG = config('DEBUG', default=False, cast=bool)
ENVIRONMENT = config('ENVIRONMENT', default='local', cast=Choices(['local', 'testing', 'staging', 'production']))
IS_LOCAL = ENVIRONMENT == 'local'
IS_PRODUCTION = ENVIRONMENT == 'production'
IS_STAGING = ENVIRONMENT == 'staging'
IS_TESTING = ENVIRONMENT == 'testing'  # Set in tests/conftest.py
IS_DEPLOYED_ENV = IS_PRODUCTION or IS_STAGING

BACKEND_CORS_ORIGINS = config(
    'BACKEND_CORS_ORIGINS', default='http://localhost:3000', cast=lambda v: list(v.split(','))
)
CORS_ALLOWED_METHODS = config(
    'CORS_ALLOWED_METHODS', default='GET,POST,PUT,PATCH,DELETE,OPTIONS', cast=lambda v: list(v.split(','))
)
CORS_ALLOWED_HEADERS = config(
    'CORS_ALLOWED_HEADERS',
    default='Accept,Accept-Language,Content-Type,Content-Language,Authorization,X-Requested-With',
    cast=lambda v: list(v.split(',')),
)

# Security Headers Configuration
ENABLE_SECURITY_HEADERS = config('ENABLE_SECURITY_HEADERS', default=True, cast=bool)
ENABLE_HSTS = config('ENABLE_HSTS', default=IS_DEPLOYED_ENV, cast=bool)
# The API only serves JSON so nothing needs to be loaded
CSP_POLICY = config('CSP_POLICY', default="default-src 'none'; frame-ancestors 'none'")

API_PREFIX = ''

ATOMIC_REQUESTS = config('ATOMIC_REQUESTS', default=True, cast=bool)
LOG_LEVEL = config('LOG_LEVEL', 'INFO')

# Identity
JWT_SECRET = config('JWT_SECRET', default=SECRET_KEY)
JWT_ALGORITHM = 'HS256'
CLI_TOKEN_LIFETIME = timedelta(days=config('CLI_TOKEN_LIFETIME_DAYS', default=90, cast=int))
LINKING_CODE_LIFETIME = timedelta(minutes=config('LINKING_CODE_TTL_MINUTES', default=15, cast=int))
DEFAULT_DEVICE_SOURCE = config('DEFAULT_DEVICE_SOURCE', default='openclaw')

# Database
# DATABASE_URL wins (Railway / tests), otherwise build a postgres url from parts
DATABASE_URL = config('DATABASE_URL', default=None)
DB_NAME = config('DB_NAME', default='claudometer')
DB_USER = config('DB_USER', default='claudometer')
DB_PASSWORD = config('DB_PASSWORD', default='dev1')
DB_HOST = config('DB_HOST', default='127.0.0.1')
DB_PORT = config('DB_PORT', default=5432, cast=int)
DB_HOST_RO = config('DB_HOST_RO', default=DB_HOST)
DB_LOG_STATEMENTS = config('DB_LOG_STATEMENTS', default=False, cast=bool)
DB_STATEMENT_TIMEOUT_MS = config('DB_STATEMENT_TIMEOUT_MS', default=30000, cast=int)
DB_CONNECT_TIMEOUT_SECONDS = config('DB_CONNECT_TIMEOUT_SECONDS', default=10, cast=int)

# Aggregation
# Every "day" boundary is computed in this timezone regardless of where users are
REFERENCE_TIMEZONE = config('REFERENCE_TIMEZONE', default='America/Los_Angeles')
LEADERBOARD_DEFAULT_LIMIT = config('LEADERBOARD_DEFAULT_LIMIT', default=10, cast=int)
LEADERBOARD_MAX_LIMIT = config('LEADERBOARD_MAX_LIMIT', default=100, cast=int)
ACTIVITY_DEFAULT_DAYS = config('ACTIVITY_DEFAULT_DAYS', default=30, cast=int)

# Models are imported from these boundaries for alembic / create_all
BOUNDARIES = [
    'core.organization',
    'core.user',
    'core.membership',
    'core.authentication',
    'app.metrics',
]

# Clerk
CLERK_SECRET_KEY = config('CLERK_SECRET_KEY', default=None)
CLERK_API_URL = config('CLERK_API_URL', default='https://api.clerk.com/v1')
CLERK_TIMEOUT_SECONDS = config('CLERK_TIMEOUT_SECONDS', default=5.0, cast=float)
CLERK_PAGE_SIZE = config('CLERK_PAGE_SIZE', default=100, cast=int)

# Sentry
SENTRY_DSN = config('SENTRY_DSN', default=None)
SENTRY_DEFAULT_SAMPLE_RATE = config('SENTRY_DEFAULT_SAMPLE_RATE', default=1, cast=int)

# Mocks
USE_MOCK_SENTRY_CLIENT = config('USE_MOCK_SENTRY_CLIENT', default=False, cast=bool)
USE_MOCK_CLERK_CLIENT = config('USE_MOCK_CLERK_CLIENT', default=False, cast=bool)
