from src.core.authentication.constants import CLAUDE_CODE_SOURCE, CredentialKind
from src.core.authentication.domains import ResolvedIdentity
from src.core.authentication.exceptions import AuthTokenInvalid
from src.core.authentication.services.authentication_service import AuthenticationService
from src.core.authentication.services.device_service import DeviceService
from src.core.organization import OrganizationService
from src.core.user import UserNotFound, UserService
from src.platform.clerk import BaseClerkClient, OrganizationMember, get_clerk_client


def is_jwt(credential: str) -> bool:
    return credential.count('.') == 2


class IdentityService:
    """
    Turns a bearer credential into the caller's identity and answers who
    belongs to an organization. Everything upstream of the ledger asks
    here and never looks at tokens directly.
    """

    def __init__(
        self,
        authentication_service: AuthenticationService,
        device_service: DeviceService,
        user_service: UserService,
        organization_service: OrganizationService,
        clerk_client: BaseClerkClient,
    ):
        self.authentication_service = authentication_service
        self.device_service = device_service
        self.user_service = user_service
        self.organization_service = organization_service
        self.clerk_client = clerk_client

    @classmethod
    def factory(cls) -> 'IdentityService':
        return cls(
            authentication_service=AuthenticationService.factory(),
            device_service=DeviceService.factory(),
            user_service=UserService.factory(),
            organization_service=OrganizationService.factory(),
            clerk_client=get_clerk_client(),
        )

    def resolve_submission(self, credential: str) -> ResolvedIdentity:
        """
        CLI tokens are JWTs, anything else is treated as a device token.
        Raises AuthError (or a subclass) when the credential is no good.
        """
        credential = (credential or '').strip()
        if not credential:
            raise AuthTokenInvalid('Empty credential')

        if is_jwt(credential):
            return self._resolve_cli_token(credential)
        return self._resolve_device_token(credential)

    def list_org_members(self, org_id: str) -> list[OrganizationMember]:
        return self.clerk_client.list_organization_members(org_id)

    def _resolve_cli_token(self, credential: str) -> ResolvedIdentity:
        token = self.authentication_service.verify_cli_token(credential)
        return ResolvedIdentity(
            user_id=token.sub,
            email=token.email,
            name=token.name,
            org_id=token.org_id,
            org_name=token.org_name,
            credential_kind=CredentialKind.CLI,
            source=CLAUDE_CODE_SOURCE,
        )

    def _resolve_device_token(self, credential: str) -> ResolvedIdentity:
        device = self.device_service.verify_device_token(credential)
        try:
            user = self.user_service.get_user_for_id(device.user_id)
        except UserNotFound:
            raise AuthTokenInvalid(f'Device {device.id} belongs to an unknown user')

        org_name = None
        if device.org_id:
            organization = self.organization_service.get_for_id_or_none(device.org_id)
            org_name = organization.name if organization else None

        return ResolvedIdentity(
            user_id=user.id,
            email=user.email,
            name=user.name,
            org_id=device.org_id,
            org_name=org_name,
            credential_kind=CredentialKind.DEVICE,
            source=device.source,
            device_id=device.id,
        )
