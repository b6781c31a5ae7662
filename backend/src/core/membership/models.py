from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.common.model import BaseModel
from src.core.membership.constants import MEMBERSHIP_PK_ABBREV
from src.core.membership.domains import MembershipCreate, MembershipRead


class Membership(BaseModel[MembershipRead, MembershipCreate]):
    """
    Who belongs to which organization. Kept apart from metric rows so
    org leaderboards can list members that never submitted anything.
    """

    organization_id: Mapped[str] = mapped_column(
        ForeignKey('organization.id', ondelete='CASCADE'), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    __pk_abbrev__ = MEMBERSHIP_PK_ABBREV
    __read_domain__ = MembershipRead
    __create_domain__ = MembershipCreate

    __table_args__ = (
        # a user cannot be related to the same organization twice
        UniqueConstraint('organization_id', 'user_id'),
    )
