from src.platform.clerk.client import BaseClerkClient, ClerkClient, MockClerkClient, get_clerk_client
from src.platform.clerk.domains import OrganizationMember
from src.platform.clerk.exceptions import MembershipSyncError

__all__ = [
    'BaseClerkClient',
    'ClerkClient',
    'MockClerkClient',
    'get_clerk_client',
    'OrganizationMember',
    'MembershipSyncError',
]
