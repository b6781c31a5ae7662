from src.core.membership.constants import MEMBERSHIP_PK_ABBREV
from src.core.membership.domains import MembershipCreate, MembershipRead
from src.core.membership.models import Membership
from src.core.membership.service import MembershipService

__all__ = [
    'MEMBERSHIP_PK_ABBREV',
    'Membership',
    'MembershipCreate',
    'MembershipRead',
    'MembershipService',
]
