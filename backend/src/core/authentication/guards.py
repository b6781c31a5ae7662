from typing import Optional

from fastapi import Depends, Request, status
from fastapi.security import OAuth2PasswordBearer
from fastapi.security.utils import get_authorization_scheme_param
from loguru import logger

from src.common import context
from src.common.exceptions import APIException
from src.core.authentication.constants import CredentialKind
from src.core.authentication.domains import ResolvedIdentity
from src.core.authentication.exceptions import AuthError, AuthTokenExpired, DeviceTokenRevoked
from src.core.authentication.services.identity_service import IdentityService


class OAuth2Token(OAuth2PasswordBearer):
    async def __call__(self, request: Request) -> Optional[str]:
        # Check for existence of raw token
        authorization = request.headers.get('Authorization')
        scheme, token = get_authorization_scheme_param(authorization)
        if not authorization or scheme.lower() != 'bearer':
            if self.auto_error:
                raise APIException(
                    code=status.HTTP_403_FORBIDDEN,
                    message='Not authenticated',
                )
            else:
                return None
        return token


oauth = OAuth2Token(
    scheme_name='bearer-token',
    tokenUrl='api/devices/link',
    description='CLI token from the dashboard or a linked device token',
)

_CALLER_TYPE_BY_CREDENTIAL = {
    CredentialKind.CLI: context.AppContextCallerType.CLI,
    CredentialKind.DEVICE: context.AppContextCallerType.DEVICE,
}


def authenticate_caller(
    token: str = Depends(oauth),
    identity_service: IdentityService = Depends(IdentityService.factory),
) -> ResolvedIdentity:
    try:
        identity = identity_service.resolve_submission(token)
    except AuthTokenExpired:
        raise APIException(
            code=status.HTTP_401_UNAUTHORIZED,
            message='Expired access token',
        )
    except DeviceTokenRevoked as e:
        logger.info(str(e))
        raise APIException(
            code=status.HTTP_401_UNAUTHORIZED,
            message='Device has been unlinked',
        )
    except AuthError:
        raise APIException(
            code=status.HTTP_401_UNAUTHORIZED,
            message='Invalid access token',
        )

    # Update global context with the authenticated caller
    context.set_caller(
        caller_type=_CALLER_TYPE_BY_CREDENTIAL[identity.credential_kind],
        user_id=identity.user_id,
        org_id=identity.org_id,
    )
    return identity


def authenticate_device(identity: ResolvedIdentity = Depends(authenticate_caller)) -> ResolvedIdentity:
    """
    External routes are reserved for linked devices
    """
    if identity.credential_kind != CredentialKind.DEVICE:
        raise APIException(
            code=status.HTTP_401_UNAUTHORIZED,
            message='Device token required',
        )
    return identity


def authenticate_cli_user(identity: ResolvedIdentity = Depends(authenticate_caller)) -> ResolvedIdentity:
    """
    Devices can't mint more devices
    """
    if identity.credential_kind != CredentialKind.CLI:
        raise APIException(
            code=status.HTTP_403_FORBIDDEN,
            message='This action requires a signed in user',
        )
    return identity
