from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from src.common.model import BaseModel
from src.core.authentication.constants import (
    DEVICE_TOKEN_PK_ABBREV,
    LINKING_CODE_LENGTH,
    LINKING_CODE_PK_ABBREV,
)
from src.core.authentication.domains import (
    DeviceTokenCreate,
    DeviceTokenRead,
    LinkingCodeCreate,
    LinkingCodeRead,
)
from src.core.user.models import HasUser


class DeviceToken(HasUser, BaseModel[DeviceTokenRead, DeviceTokenCreate]):
    """
    Long lived credential for a third party tool. Only the sha256 of the
    secret is stored.
    """

    org_id: Mapped[Optional[str]] = mapped_column(ForeignKey('organization.id'), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(length=200), nullable=True)
    source: Mapped[str] = mapped_column(String(length=50), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(length=64), nullable=False, unique=True)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __pk_abbrev__ = DEVICE_TOKEN_PK_ABBREV
    __read_domain__ = DeviceTokenRead
    __create_domain__ = DeviceTokenCreate


class LinkingCode(HasUser, BaseModel[LinkingCodeRead, LinkingCodeCreate]):
    """
    Short single use code typed into a device to mint a DeviceToken
    """

    code: Mapped[str] = mapped_column(String(length=LINKING_CODE_LENGTH), nullable=False, unique=True)
    org_id: Mapped[Optional[str]] = mapped_column(ForeignKey('organization.id'), nullable=True)
    device_name: Mapped[Optional[str]] = mapped_column(String(length=200), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    consumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __pk_abbrev__ = LINKING_CODE_PK_ABBREV
    __read_domain__ = LinkingCodeRead
    __create_domain__ = LinkingCodeCreate
