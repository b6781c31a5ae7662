from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

from src import settings
from src.platform.clerk.domains import OrganizationMember
from src.platform.clerk.exceptions import MembershipSyncError


class BaseClerkClient(ABC):
    @abstractmethod
    def list_organization_members(self, organization_id: str) -> list[OrganizationMember]:
        """Every member of an organization, raises MembershipSyncError when unreachable."""
        pass


def parse_membership(membership: dict[str, Any]) -> OrganizationMember | None:
    """
    Clerk membership -> member. `public_user_data.identifier` is the
    primary email address for email based sign ins.
    """
    public_user_data = membership.get('public_user_data') or {}
    user_id = public_user_data.get('user_id')
    if not user_id:
        return None

    full_name = ' '.join(
        part for part in (public_user_data.get('first_name'), public_user_data.get('last_name')) if part
    )
    return OrganizationMember(
        user_id=user_id,
        email=public_user_data.get('identifier') or '',
        name=full_name or None,
    )


class ClerkClient(BaseClerkClient):
    """Production client for the Clerk backend API."""

    def __init__(self, secret_key: str | None, api_url: str, timeout: float, page_size: int):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.page_size = page_size

    def list_organization_members(self, organization_id: str) -> list[OrganizationMember]:
        if not self.secret_key:
            raise MembershipSyncError('CLERK_SECRET_KEY is not configured')

        members: list[OrganizationMember] = []
        offset = 0
        while True:
            payload = self._get(
                f'/organizations/{organization_id}/memberships',
                params={'limit': self.page_size, 'offset': offset},
            )
            page = payload.get('data') or []
            for membership in page:
                member = parse_membership(membership)
                if member is not None:
                    members.append(member)

            offset += len(page)
            if not page or offset >= payload.get('total_count', 0):
                break

        logger.info(f'fetched {len(members)} clerk members for {organization_id}')
        return members

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = httpx.get(
                f'{self.api_url}{path}',
                params=params,
                headers={'Authorization': f'Bearer {self.secret_key}'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise MembershipSyncError(f'Clerk request failed: {e}', context={'path': path}) from e


class MockClerkClient(BaseClerkClient):
    """
    Mock client for testing. Members are registered per organization
    on the class so every instance sees the same directory.
    """

    members: dict[str, list[OrganizationMember]] = {}
    fail = False

    @classmethod
    def register_member(cls, organization_id: str, user_id: str, email: str, name: str | None = None) -> None:
        cls.members.setdefault(organization_id, []).append(
            OrganizationMember(user_id=user_id, email=email, name=name)
        )

    @classmethod
    def reset(cls) -> None:
        cls.members = {}
        cls.fail = False

    def list_organization_members(self, organization_id: str) -> list[OrganizationMember]:
        if self.fail:
            raise MembershipSyncError('Mock Clerk outage')
        logger.info(f'Mock Clerk members for {organization_id}')
        return list(self.members.get(organization_id, []))


def get_clerk_client() -> BaseClerkClient:
    """Get the appropriate Clerk client based on settings."""
    if settings.USE_MOCK_CLERK_CLIENT:
        return MockClerkClient()
    return ClerkClient(
        secret_key=settings.CLERK_SECRET_KEY,
        api_url=settings.CLERK_API_URL,
        timeout=settings.CLERK_TIMEOUT_SECONDS,
        page_size=settings.CLERK_PAGE_SIZE,
    )
