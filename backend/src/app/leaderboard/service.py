import datetime
from typing import Any

from loguru import logger

from src import settings
from src.app.leaderboard.constants import DEFAULT_SCOPE, LeaderboardScope
from src.app.leaderboard.domains import LeaderboardEntry, LeaderboardResponse
from src.app.leaderboard.exceptions import LeaderboardOrganizationMissing, NotOrganizationMember
from src.app.metrics import DailyMetric, LedgerStore, MemberTotal, period_clauses, resolve_metric, resolve_period
from src.common.nanoid import NanoIdType
from src.core.authentication import ResolvedIdentity
from src.core.membership import MembershipService
from src.core.organization import OrganizationNotFound, OrganizationService
from src.core.service import CoreService


def resolve_scope(scope: Any) -> LeaderboardScope:
    return LeaderboardScope.coerce(scope, default=DEFAULT_SCOPE)


def clamp_limit(limit: int | None) -> int:
    if limit is None:
        return settings.LEADERBOARD_DEFAULT_LIMIT
    return max(1, min(limit, settings.LEADERBOARD_MAX_LIMIT))


def to_entry(member_total: MemberTotal) -> LeaderboardEntry:
    return LeaderboardEntry(
        id=member_total.user_id,
        name=member_total.name,
        email=member_total.email,
        value=member_total.value,
        reported_at=member_total.reported_at,
    )


class LeaderboardService:
    def __init__(
        self,
        core_service: CoreService,
        ledger_store: LedgerStore,
        organization_service: OrganizationService,
        membership_service: MembershipService,
    ):
        self.core_service = core_service
        self.ledger_store = ledger_store
        self.organization_service = organization_service
        self.membership_service = membership_service

    @classmethod
    def factory(cls) -> 'LeaderboardService':
        return cls(
            core_service=CoreService.factory(),
            ledger_store=LedgerStore.factory(),
            organization_service=OrganizationService.factory(),
            membership_service=MembershipService.factory(),
        )

    def resolve_organization(self, identity: ResolvedIdentity, requested_org_id: NanoIdType | None) -> NanoIdType:
        """
        Which org an org scoped leaderboard is for. The caller's own org
        unless they ask for another one they belong to.
        """
        if requested_org_id and requested_org_id != identity.org_id:
            if self.organization_service.get_for_id_or_none(requested_org_id) is None:
                raise OrganizationNotFound(f'Organization not found with id: {requested_org_id}')
            if not self.membership_service.is_member(identity.user_id, requested_org_id):
                raise NotOrganizationMember(f'{identity.user_id} is not a member of {requested_org_id}')
            return requested_org_id

        if not identity.org_id:
            raise LeaderboardOrganizationMissing(f'{identity.user_id} has no organization')

        # First dashboard visit can come before the first submission
        self.core_service.ensure_identity(identity)
        return identity.org_id

    def get_leaderboard(
        self,
        metric: Any = None,
        period: Any = None,
        scope: Any = None,
        org_id: NanoIdType | None = None,
        limit: int | None = None,
        as_of: datetime.date | None = None,
    ) -> LeaderboardResponse:
        """
        Ranked users for one metric over one period. Org scope lists every
        member (zero filled), global scope only users with activity. Ties
        are broken by user id so the order is stable.
        """
        resolved_metric = resolve_metric(metric)
        resolved_period = resolve_period(period)
        resolved_scope = resolve_scope(scope)
        limit = clamp_limit(limit)
        clauses = period_clauses(DailyMetric.date, resolved_period, as_of=as_of)

        if resolved_scope == LeaderboardScope.ORG:
            if not org_id:
                raise LeaderboardOrganizationMissing('Org scope requires an organization')
            # Pull in teammates who haven't submitted yet so they show up at zero
            self.core_service.sync_org_members(org_id)
            totals = self.ledger_store.sum_by_org_members(org_id, resolved_metric, clauses, limit)
        else:
            totals = self.ledger_store.sum_global(resolved_metric, clauses, limit)

        logger.debug(
            f'leaderboard metric={resolved_metric} period={resolved_period} '
            f'scope={resolved_scope} org={org_id} entries={len(totals)}'
        )
        return LeaderboardResponse(
            leaderboard=[to_entry(total) for total in totals],
            metric=resolved_metric.value,
            period=resolved_period.value,
            scope=resolved_scope.value,
        )
