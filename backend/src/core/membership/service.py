from typing import List, Sequence

from src.common.nanoid import NanoIdType
from src.core.membership.domains import MembershipRead
from src.core.membership.models import Membership


class MembershipService:
    @classmethod
    def factory(cls) -> 'MembershipService':
        return cls()

    def list_memberships_for_user(self, user_id: NanoIdType) -> List[MembershipRead]:
        return Membership.list(Membership.user_id == user_id)

    def list_memberships_for_organization(self, organization_id: NanoIdType) -> List[MembershipRead]:
        return Membership.list(Membership.organization_id == organization_id, ordering=['user_id'])

    def is_member(self, user_id: NanoIdType, organization_id: NanoIdType) -> bool:
        return Membership.count(Membership.user_id == user_id, Membership.organization_id == organization_id) > 0

    def ensure_memberships(self, organization_id: NanoIdType, user_ids: Sequence[NanoIdType]) -> None:
        """
        Idempotent, pairs that already exist are skipped
        """
        if not user_ids:
            return
        Membership.bulk_create_ignore(
            [{'organization_id': organization_id, 'user_id': user_id} for user_id in dict.fromkeys(user_ids)],
            conflict_columns=['organization_id', 'user_id'],
        )
