from datetime import datetime
from typing import Optional

from src.common.domain import BaseDomain
from src.common.nanoid import NanoIdType


class OrganizationCreate(BaseDomain):
    # Ids are issued by the identity provider (org_2ab...)
    id: NanoIdType
    name: str


class OrganizationRead(OrganizationCreate):
    created_at: datetime
    modified_at: Optional[datetime] = None
