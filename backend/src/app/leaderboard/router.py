from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from src.app.leaderboard.constants import LeaderboardScope
from src.app.leaderboard.domains import LeaderboardResponse
from src.app.leaderboard.exceptions import LeaderboardOrganizationMissing, NotOrganizationMember
from src.app.leaderboard.service import LeaderboardService, resolve_scope
from src.app.metrics import Period
from src.common.exceptions import APIException
from src.core.authentication import ResolvedIdentity, authenticate_caller
from src.core.organization import OrganizationNotFound

router = APIRouter()


# Not read only, org scope syncs members from the identity provider first
@router.get('', response_model=LeaderboardResponse)
def get_leaderboard(
    response: Response,
    metric: Optional[str] = None,
    period: str = Period.ALL.value,
    scope: Optional[str] = None,
    limit: Optional[int] = None,
    org_id: Optional[str] = Query(default=None, alias='orgId'),
    identity: ResolvedIdentity = Depends(authenticate_caller),
    leaderboard_service: LeaderboardService = Depends(LeaderboardService.factory),
) -> LeaderboardResponse:
    """Ranked users for a metric and period, across the caller's org or everyone."""
    resolved_org_id = None
    try:
        if resolve_scope(scope) == LeaderboardScope.ORG:
            resolved_org_id = leaderboard_service.resolve_organization(identity, requested_org_id=org_id)
        leaderboard = leaderboard_service.get_leaderboard(
            metric=metric,
            period=period,
            scope=scope,
            org_id=resolved_org_id,
            limit=limit,
        )
    except (OrganizationNotFound, LeaderboardOrganizationMissing):
        raise APIException(
            code=status.HTTP_404_NOT_FOUND,
            message='Organization not found',
        )
    except NotOrganizationMember:
        raise APIException(
            code=status.HTTP_403_FORBIDDEN,
            message='Not a member of this organization',
        )

    # Varies by caller, never cache
    response.headers['Cache-Control'] = 'no-store'
    return leaderboard
