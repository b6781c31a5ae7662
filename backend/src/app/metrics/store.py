import datetime
from typing import Any, Sequence

from sqlalchemy import and_, func
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement

from src.app.metrics.constants import DEFAULT_LEADERBOARD_METRIC, LeaderboardMetric
from src.app.metrics.domains import (
    ActivityDay,
    DailyMetricRecord,
    MemberTotal,
    MetricTotals,
)
from src.app.metrics.models import DailyMetric
from src.common.nanoid import NanoIdType
from src.core.membership import Membership
from src.core.user import User
from src.network.database import db

# Metric names come from query strings, only these ever reach SQL
_METRIC_COLUMNS: dict[LeaderboardMetric, 'InstrumentedAttribute[int]'] = {
    LeaderboardMetric.CLAUDE_TOKENS: DailyMetric.claude_tokens,
    LeaderboardMetric.CLAUDE_MESSAGES: DailyMetric.claude_messages,
    LeaderboardMetric.GIT_COMMITS: DailyMetric.git_commits,
    LeaderboardMetric.GIT_LINES_ADDED: DailyMetric.git_lines_added,
}

RECORD_FIELDS = list(DailyMetricRecord.model_fields)


def resolve_metric(metric: Any) -> LeaderboardMetric:
    return LeaderboardMetric.coerce(metric, default=DEFAULT_LEADERBOARD_METRIC)


def metric_column(metric: Any) -> 'InstrumentedAttribute[int]':
    return _METRIC_COLUMNS[resolve_metric(metric)]


def _summed(column: Any) -> Any:
    return func.coalesce(func.sum(column), 0)


class LedgerStore:
    """
    Reads and writes against the daily ledger. Date windows are passed in
    as clauses on `DailyMetric.date` (see `periods.period_clauses`).
    """

    @classmethod
    def factory(cls) -> 'LedgerStore':
        return cls()

    def upsert(
        self,
        user_id: NanoIdType,
        org_id: NanoIdType | None,
        date: datetime.date,
        record: DailyMetricRecord,
    ) -> None:
        """
        Replace the (user, date) row with `record`, creating it if needed
        """
        DailyMetric.upsert(
            values={'user_id': user_id, 'org_id': org_id, 'date': date, **record.model_dump()},
            conflict_columns=['user_id', 'date'],
            replace_columns=['org_id', *RECORD_FIELDS],
        )

    def get_for_user_and_date(self, user_id: NanoIdType, date: datetime.date) -> DailyMetricRecord | None:
        row = (
            DailyMetric.get_query(DailyMetric.user_id == user_id, DailyMetric.date == date)
            # Upserts bypass the identity map, reload whatever it holds
            .populate_existing()
            .one_or_none()
        )
        if row is None:
            return None
        return DailyMetricRecord(**{field: getattr(row, field) for field in RECORD_FIELDS})

    def sum_by_user(self, user_id: NanoIdType, date_clauses: Sequence[ColumnElement[bool]] = ()) -> MetricTotals:
        row = (
            db.session.query(
                *[_summed(getattr(DailyMetric, field)).label(field) for field in RECORD_FIELDS],
                func.max(DailyMetric.modified_at).label('reported_at'),
            )
            .filter(DailyMetric.user_id == user_id, *date_clauses)
            .one()
        )
        return MetricTotals(
            **{field: int(getattr(row, field)) for field in RECORD_FIELDS},
            reported_at=row.reported_at,
        )

    def sum_by_org_members(
        self,
        org_id: NanoIdType,
        metric: Any,
        date_clauses: Sequence[ColumnElement[bool]],
        limit: int,
    ) -> list[MemberTotal]:
        """
        Every member of the org, members without ledger rows in the window
        are ranked with zero
        """
        value = _summed(metric_column(metric))
        rows = (
            db.session.query(
                User.id,
                User.name,
                User.email,
                value.label('value'),
                func.max(DailyMetric.modified_at).label('reported_at'),
            )
            .select_from(Membership)
            .join(User, User.id == Membership.user_id)
            # Window goes in the join so members with no rows survive
            .outerjoin(DailyMetric, and_(DailyMetric.user_id == User.id, *date_clauses))
            .filter(Membership.organization_id == org_id)
            .group_by(User.id, User.name, User.email)
            .order_by(value.desc(), User.id.asc())
            .limit(limit)
            .all()
        )
        return [self._to_member_total(row) for row in rows]

    def sum_global(
        self,
        metric: Any,
        date_clauses: Sequence[ColumnElement[bool]],
        limit: int,
    ) -> list[MemberTotal]:
        """
        All users with a non zero value in the window
        """
        value = _summed(metric_column(metric))
        rows = (
            db.session.query(
                User.id,
                User.name,
                User.email,
                value.label('value'),
                func.max(DailyMetric.modified_at).label('reported_at'),
            )
            .select_from(DailyMetric)
            .join(User, User.id == DailyMetric.user_id)
            .filter(*date_clauses)
            .group_by(User.id, User.name, User.email)
            .having(value != 0)
            .order_by(value.desc(), User.id.asc())
            .limit(limit)
            .all()
        )
        return [self._to_member_total(row) for row in rows]

    def daily_activity_for_user(self, user_id: NanoIdType, since: datetime.date) -> list[ActivityDay]:
        return self._daily_activity(DailyMetric.user_id == user_id, DailyMetric.date >= since)

    def daily_activity_for_org(self, org_id: NanoIdType, since: datetime.date) -> list[ActivityDay]:
        return self._daily_activity(DailyMetric.org_id == org_id, DailyMetric.date >= since)

    def rank_for_user(self, org_id: NanoIdType, user_id: NanoIdType) -> int | None:
        """
        1 based all time token rank among org members, ties share a rank.
        None until the user has reported anything.
        """
        totals = dict(
            db.session.query(DailyMetric.user_id, _summed(DailyMetric.claude_tokens))
            .join(Membership, Membership.user_id == DailyMetric.user_id)
            .filter(Membership.organization_id == org_id)
            .group_by(DailyMetric.user_id)
            .all()
        )
        if user_id not in totals:
            return None
        return 1 + sum(1 for total in totals.values() if total > totals[user_id])

    def _daily_activity(self, *clauses: ColumnElement[bool]) -> list[ActivityDay]:
        rows = (
            db.session.query(
                DailyMetric.date,
                _summed(DailyMetric.claude_messages).label('claude_messages'),
                _summed(DailyMetric.claude_tokens).label('claude_tokens'),
                _summed(DailyMetric.git_commits).label('git_commits'),
                _summed(DailyMetric.git_lines_added).label('git_lines_added'),
            )
            .filter(*clauses)
            .group_by(DailyMetric.date)
            .order_by(DailyMetric.date.asc())
            .all()
        )
        return [
            ActivityDay(
                date=row.date,
                claude_messages=int(row.claude_messages),
                claude_tokens=int(row.claude_tokens),
                git_commits=int(row.git_commits),
                git_lines_added=int(row.git_lines_added),
            )
            for row in rows
        ]

    @staticmethod
    def _to_member_total(row: Any) -> MemberTotal:
        return MemberTotal(
            user_id=row.id,
            name=row.name,
            email=row.email,
            value=int(row.value),
            reported_at=row.reported_at,
        )
