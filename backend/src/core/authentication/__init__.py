from src.core.authentication.constants import CLAUDE_CODE_SOURCE, CredentialKind
from src.core.authentication.domains import (
    CliTokenContent,
    DeviceRead,
    DeviceTokenRead,
    LinkingCodeRead,
    ResolvedIdentity,
)
from src.core.authentication.exceptions import (
    AuthError,
    AuthTokenExpired,
    AuthTokenInvalid,
    DeviceNotFound,
    DeviceTokenRevoked,
    LinkingCodeInvalid,
)
from src.core.authentication.guards import (
    authenticate_caller,
    authenticate_cli_user,
    authenticate_device,
    oauth,
)
from src.core.authentication.models import DeviceToken, LinkingCode
from src.core.authentication.services.authentication_service import AuthenticationService
from src.core.authentication.services.device_service import DeviceService
from src.core.authentication.services.identity_service import IdentityService

__all__ = [
    # Constants
    'CLAUDE_CODE_SOURCE',
    'CredentialKind',
    # Domains
    'CliTokenContent',
    'DeviceRead',
    'DeviceTokenRead',
    'LinkingCodeRead',
    'ResolvedIdentity',
    # Exceptions
    'AuthError',
    'AuthTokenExpired',
    'AuthTokenInvalid',
    'DeviceNotFound',
    'DeviceTokenRevoked',
    'LinkingCodeInvalid',
    # Guards
    'authenticate_caller',
    'authenticate_cli_user',
    'authenticate_device',
    'oauth',
    # Models
    'DeviceToken',
    'LinkingCode',
    # Services
    'AuthenticationService',
    'DeviceService',
    'IdentityService',
]
