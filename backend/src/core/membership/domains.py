from datetime import datetime
from typing import Optional

from pydantic import Field

from src.common.domain import BaseDomain
from src.common.nanoid import NanoId, NanoIdType
from src.core.membership.constants import MEMBERSHIP_PK_ABBREV


class MembershipCreate(BaseDomain):
    id: Optional[NanoIdType] = Field(default_factory=lambda: NanoId.gen(abbrev=MEMBERSHIP_PK_ABBREV))
    organization_id: NanoIdType
    user_id: NanoIdType


class MembershipRead(MembershipCreate):
    id: NanoIdType
    created_at: datetime
    modified_at: Optional[datetime] = None
