from loguru import logger

from src.common.nanoid import NanoIdType
from src.core.authentication import IdentityService, ResolvedIdentity
from src.core.membership import MembershipService
from src.core.organization import OrganizationService
from src.core.user import UserCreate, UserRead, UserService
from src.platform.clerk import MembershipSyncError


class CoreService:
    """
    Service for cross-domain operations that span multiple services.

    Keeps users, organizations and memberships in step with what the
    identity provider says, both from the caller's own token and from
    the organization member listing.
    """

    def __init__(
        self,
        identity_service: IdentityService,
        organization_service: OrganizationService,
        user_service: UserService,
        membership_service: MembershipService,
    ):
        self.identity_service = identity_service
        self.organization_service = organization_service
        self.user_service = user_service
        self.membership_service = membership_service

    @classmethod
    def factory(cls) -> 'CoreService':
        return cls(
            identity_service=IdentityService.factory(),
            organization_service=OrganizationService.factory(),
            user_service=UserService.factory(),
            membership_service=MembershipService.factory(),
        )

    def ensure_identity(self, identity: ResolvedIdentity) -> UserRead:
        """
        Organization first (users point at it), then the user, then the
        membership tying them together
        """
        if identity.org_id:
            self.organization_service.ensure_organization(identity.org_id, identity.org_name)

        user = self.user_service.ensure_user(
            user_id=identity.user_id,
            email=identity.email,
            name=identity.name,
            org_id=identity.org_id,
        )

        if identity.org_id:
            self.membership_service.ensure_memberships(identity.org_id, [identity.user_id])
        return user

    def sync_org_members(self, org_id: NanoIdType) -> int:
        """
        Best effort, an unreachable identity provider leaves the local
        membership list as it was. Returns the number of members seen.
        """
        try:
            members = self.identity_service.list_org_members(org_id)
        except MembershipSyncError as e:
            logger.warning(f'membership sync skipped for {org_id}: {e}')
            return 0

        self.user_service.ensure_users_exist(
            [UserCreate(id=member.user_id, email=member.email, name=member.name, org_id=org_id) for member in members]
        )
        self.membership_service.ensure_memberships(org_id, [member.user_id for member in members])
        logger.debug(f'membership sync for {org_id}: {len(members)} members')
        return len(members)
