from src.core.organization.constants import ORGANIZATION_PK_ABBREV
from src.core.organization.domains import OrganizationCreate, OrganizationRead
from src.core.organization.exceptions import OrganizationNotFound
from src.core.organization.models import Organization
from src.core.organization.service import OrganizationService

__all__ = [
    'ORGANIZATION_PK_ABBREV',
    'Organization',
    'OrganizationCreate',
    'OrganizationRead',
    'OrganizationNotFound',
    'OrganizationService',
]
