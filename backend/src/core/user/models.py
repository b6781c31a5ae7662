from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.ext.declarative import declared_attr
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.common.model import BaseModel
from src.core.user.constants import USER_PK_ABBREV
from src.core.user.domains import UserCreate, UserRead


class User(BaseModel[UserRead, UserCreate]):
    name: Mapped[Optional[str]] = mapped_column(String(length=200), nullable=True)
    email: Mapped[str] = mapped_column(String(length=320), nullable=False, index=True)
    # Current / default organization, memberships hold the full list
    org_id: Mapped[Optional[str]] = mapped_column(ForeignKey('organization.id'), nullable=True)

    __pk_abbrev__ = USER_PK_ABBREV
    __read_domain__ = UserRead
    __create_domain__ = UserCreate


class HasUser:
    """
    Mixin for user relationships in other domains
    """

    user_id: Mapped[str] = mapped_column(ForeignKey('user.id'), nullable=False, index=True)

    @declared_attr
    def user(self) -> Mapped['User']:
        return relationship('User')
