from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.common.model import BaseModel
from src.core.organization.constants import ORGANIZATION_PK_ABBREV
from src.core.organization.domains import OrganizationCreate, OrganizationRead


class Organization(BaseModel[OrganizationRead, OrganizationCreate]):
    name: Mapped[str] = mapped_column(String(length=200), nullable=False)

    __pk_abbrev__ = ORGANIZATION_PK_ABBREV
    __read_domain__ = OrganizationRead
    __create_domain__ = OrganizationCreate
