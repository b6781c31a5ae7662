import datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.elements import ColumnElement

from src import settings
from src.app.metrics.constants import DEFAULT_PERIOD, MISSING_PERIOD, PERIOD_LOOKBACK_DAYS, Period


def reference_today(now: datetime.datetime | None = None) -> datetime.date:
    """
    Today's date in the reference timezone. Ledger dates are compared
    against this, never against the server's or the user's clock.
    """
    reference_tz = ZoneInfo(settings.REFERENCE_TIMEZONE)
    if now is None:
        return datetime.datetime.now(reference_tz).date()
    if now.tzinfo is None:
        now = now.replace(tzinfo=datetime.timezone.utc)
    return now.astimezone(reference_tz).date()


def resolve_period(period: Any) -> Period:
    if period is None:
        return MISSING_PERIOD
    return Period.coerce(period, default=DEFAULT_PERIOD)


def period_start(period: Period, as_of: datetime.date) -> datetime.date | None:
    """
    Inclusive lower bound, None when the period is unbounded
    """
    if period == Period.TODAY:
        return as_of
    if period == Period.ALL:
        return None
    return as_of - datetime.timedelta(days=PERIOD_LOOKBACK_DAYS[period])


def period_clauses(
    column: 'InstrumentedAttribute[datetime.date]',
    period: Any,
    as_of: datetime.date | None = None,
) -> list[ColumnElement[bool]]:
    """
    Filter clauses selecting ledger dates inside `period`. Unknown
    periods behave like the month, a missing one like all time.

        DailyMetric.list(*period_clauses(DailyMetric.date, 'week'))
    """
    resolved = resolve_period(period)
    as_of = as_of or reference_today()
    if resolved == Period.TODAY:
        return [column == as_of]

    start = period_start(resolved, as_of)
    if start is None:
        return []
    return [column >= start]
