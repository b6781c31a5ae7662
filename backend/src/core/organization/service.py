from src.common.nanoid import NanoIdType
from src.core.organization.domains import OrganizationCreate, OrganizationRead
from src.core.organization.exceptions import OrganizationNotFound
from src.core.organization.models import Organization


class OrganizationService:
    @classmethod
    def factory(cls) -> 'OrganizationService':
        return cls()

    def get_for_id(self, organization_id: NanoIdType) -> OrganizationRead:
        organization = Organization.get_or_none(id=organization_id)
        if organization is None:
            raise OrganizationNotFound(message=f'Organization not found with id: {organization_id}')
        return organization

    def get_for_id_or_none(self, organization_id: NanoIdType) -> OrganizationRead | None:
        return Organization.get_or_none(id=organization_id)

    def ensure_organization(self, organization_id: NanoIdType, name: str | None) -> OrganizationRead:
        """
        Created lazily the first time a submission references it, the
        name is refreshed from the identity provider on every reference
        """
        existing = Organization.get_or_none(id=organization_id)
        if existing is None:
            return Organization.create(OrganizationCreate(id=organization_id, name=name or organization_id))

        if name and existing.name != name:
            return Organization.update(organization_id, name=name)
        return existing
