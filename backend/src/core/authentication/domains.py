from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.common.domain import BaseDomain
from src.common.nanoid import NanoId, NanoIdType
from src.core.authentication.constants import (
    CLAUDE_CODE_SOURCE,
    CLI_TOKEN_TYPE,
    DEVICE_TOKEN_PK_ABBREV,
    LINKING_CODE_PK_ABBREV,
    CredentialKind,
)


class ResolvedIdentity(BaseModel):
    """
    Who is calling, resolved from a bearer credential
    """

    user_id: str
    email: str = ''
    name: str | None = None
    org_id: str | None = None
    org_name: str | None = None
    credential_kind: CredentialKind = CredentialKind.CLI
    source: str = CLAUDE_CODE_SOURCE
    device_id: str | None = None


class CliTokenContent(BaseModel):
    """
    Claims carried by a CLI token, `orgId` / `orgName` keep the
    casing the agent and dashboard already use
    """

    sub: str
    email: str = ''
    name: str | None = None
    org_id: str | None = Field(default=None, alias='orgId')
    org_name: str | None = Field(default=None, alias='orgName')
    type: str = CLI_TOKEN_TYPE
    exp: int
    iat: int | None = None

    model_config = {'populate_by_name': True}


# Device tokens
class DeviceTokenCreate(BaseDomain):
    id: Optional[NanoIdType] = Field(default_factory=lambda: NanoId.gen(abbrev=DEVICE_TOKEN_PK_ABBREV))
    user_id: NanoIdType
    org_id: NanoIdType | None = None
    name: str | None = None
    source: str
    token_hash: str


class DeviceTokenRead(DeviceTokenCreate):
    id: NanoIdType
    last_used_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime


class DeviceRead(BaseDomain):
    """
    Public view of a device, never includes the hash
    """

    id: NanoIdType
    name: str | None = None
    source: str
    last_used_at: datetime | None = None
    created_at: datetime


# Linking codes
class LinkingCodeCreate(BaseDomain):
    id: Optional[NanoIdType] = Field(default_factory=lambda: NanoId.gen(abbrev=LINKING_CODE_PK_ABBREV))
    code: str
    user_id: NanoIdType
    org_id: NanoIdType | None = None
    device_name: str | None = None
    expires_at: datetime


class LinkingCodeRead(LinkingCodeCreate):
    id: NanoIdType
    consumed_at: datetime | None = None
    created_at: datetime


# Request / response payloads
class LinkingCodeRequest(BaseDomain):
    device_name: str | None = None


class LinkingCodeResponse(BaseDomain):
    code: str
    expires_at: datetime


class LinkDeviceRequest(BaseDomain):
    code: str
    device_name: str | None = None
    source: str | None = None


class LinkDeviceResponse(BaseDomain):
    token: str
    device: DeviceRead
    user_id: NanoIdType
    org_id: NanoIdType | None = None
