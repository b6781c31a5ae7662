import uuid
from datetime import datetime, timezone

import jwt
from pydantic import ValidationError

from src import settings
from src.core.authentication.constants import CLI_TOKEN_TYPE
from src.core.authentication.domains import CliTokenContent, ResolvedIdentity
from src.core.authentication.exceptions import AuthTokenExpired, AuthTokenInvalid


class AuthenticationService:
    """
    CLI tokens are HS256 JWTs handed to the agent by the dashboard. They
    carry enough of the identity (email, name, org) to provision the user
    and organization on first submission without calling the identity
    provider.
    """

    _JWT_SIGNING_ALGORITHM = settings.JWT_ALGORITHM

    @classmethod
    def factory(cls) -> 'AuthenticationService':
        return cls()

    @classmethod
    def issue_cli_token(cls, identity: ResolvedIdentity, expires_at: datetime | None = None) -> str:
        expires_at = expires_at or datetime.now(tz=timezone.utc) + settings.CLI_TOKEN_LIFETIME
        return cls._create_token(
            sub=identity.user_id,
            expire=expires_at,
            email=identity.email,
            name=identity.name,
            org_id=identity.org_id,
            org_name=identity.org_name,
        )

    @classmethod
    def verify_cli_token(cls, token: str) -> CliTokenContent:
        try:
            payload = jwt.decode(
                token,
                settings.JWT_SECRET,
                algorithms=[cls._JWT_SIGNING_ALGORITHM],
                options={'require': ['exp', 'sub']},
            )
        except jwt.ExpiredSignatureError:
            raise AuthTokenExpired()
        except jwt.InvalidTokenError:
            raise AuthTokenInvalid()

        if payload.get('type') != CLI_TOKEN_TYPE:
            raise AuthTokenInvalid(f"Unexpected token type: {payload.get('type')}")

        try:
            return CliTokenContent.model_validate(payload)
        except ValidationError as e:
            raise AuthTokenInvalid('Malformed token claims', context={'errors': e.errors()})

    @classmethod
    def _create_token(
        cls,
        sub: str,
        expire: datetime,
        email: str = '',
        name: str | None = None,
        org_id: str | None = None,
        org_name: str | None = None,
        secret_key: str | None = None,
    ) -> str:
        secret_key = secret_key or settings.JWT_SECRET
        now = int(datetime.now(tz=timezone.utc).timestamp())
        jwt_content = {
            'jti': str(uuid.uuid4()),
            'exp': int(expire.timestamp()),
            'iat': now,
            'sub': sub,
            'email': email,
            'name': name,
            'orgId': org_id,
            'orgName': org_name,
            'type': CLI_TOKEN_TYPE,
        }
        return jwt.encode(jwt_content, secret_key, algorithm=cls._JWT_SIGNING_ALGORITHM)
