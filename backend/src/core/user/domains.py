import datetime

from pydantic import model_validator

from src.common.domain import BaseDomain
from src.common.nanoid import NanoIdType


class UserUpdate(BaseDomain):
    name: str | None = None
    email: str | None = None
    org_id: NanoIdType | None = None

    @model_validator(mode='after')
    def strip_name(self):
        self.name = self.name.strip() if self.name else None
        return self


class UserCreate(UserUpdate):
    # Ids are issued by the identity provider (user_2ab...)
    id: NanoIdType
    email: str


class UserRead(UserCreate):
    created_at: datetime.datetime
    modified_at: datetime.datetime | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email
