from src.app.metrics.constants import DEFAULT_PERIOD, MISSING_PERIOD, LeaderboardMetric, Period
from src.app.metrics.domains import (
    DailyMetricRecord,
    DailyUsageSubmission,
    MemberTotal,
    MetricsSubmission,
    MetricTotals,
    UsagePayload,
)
from src.app.metrics.exceptions import MalformedRecordError
from src.app.metrics.models import DailyMetric, MetricsSnapshot
from src.app.metrics.normalizer import normalize
from src.app.metrics.periods import period_clauses, reference_today, resolve_period
from src.app.metrics.service import MetricsService
from src.app.metrics.store import LedgerStore, resolve_metric

__all__ = [
    # Constants
    'DEFAULT_PERIOD',
    'MISSING_PERIOD',
    'LeaderboardMetric',
    'Period',
    # Domains
    'DailyMetricRecord',
    'DailyUsageSubmission',
    'MemberTotal',
    'MetricsSubmission',
    'MetricTotals',
    'UsagePayload',
    # Exceptions
    'MalformedRecordError',
    # Models
    'DailyMetric',
    'MetricsSnapshot',
    # Ledger
    'LedgerStore',
    'normalize',
    'period_clauses',
    'reference_today',
    'resolve_metric',
    'resolve_period',
    # Services
    'MetricsService',
]
