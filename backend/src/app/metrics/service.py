import datetime
from typing import Any

from loguru import logger

from src import settings
from src.app.metrics.constants import Period
from src.app.metrics.domains import (
    ActivityDay,
    ClaudeTotalsPayload,
    DailyMetricRecord,
    DailyUsageCounts,
    DailyUsageResult,
    DailyUsageSubmission,
    DeviceMe,
    DeviceStats,
    MetricsSnapshotCreate,
    MetricsSnapshotRead,
    MetricsSubmission,
    MetricTotals,
    MyMetrics,
    SubmissionResult,
    UsagePayload,
)
from src.app.metrics.models import DailyMetric, MetricsSnapshot
from src.app.metrics.normalizer import apply_entry, normalize, parse_report_date, usage_entry
from src.app.metrics.periods import period_clauses, reference_today, resolve_period
from src.app.metrics.store import LedgerStore
from src.common.nanoid import NanoIdType
from src.core.authentication import ResolvedIdentity
from src.core.service import CoreService
from src.network.database.repository.mixin import utc_now


class MetricsService:
    def __init__(self, core_service: CoreService, ledger_store: LedgerStore):
        self.core_service = core_service
        self.ledger_store = ledger_store

    @classmethod
    def factory(cls) -> 'MetricsService':
        return cls(
            core_service=CoreService.factory(),
            ledger_store=LedgerStore.factory(),
        )

    def submit(self, identity: ResolvedIdentity, submission: MetricsSubmission) -> SubmissionResult:
        """
        Provision the caller, keep the raw snapshot, then replace the
        ledger row for every date in the submission. Runs inside the
        request transaction so a failure leaves nothing half written.
        """
        self.core_service.ensure_identity(identity)
        snapshot = self._save_snapshot(identity, submission)

        records = normalize(submission)
        if submission.usage is not None:
            # Bare usage has no dates, it adds to the day it was reported
            report_date = reference_today(submission.timestamp)
            current = records.get(report_date) or self.ledger_store.get_for_user_and_date(
                identity.user_id, report_date
            )
            records[report_date] = apply_entry(current or DailyMetricRecord(), usage_entry(submission.usage, report_date))

        for date, record in sorted(records.items()):
            self.ledger_store.upsert(
                user_id=identity.user_id,
                org_id=identity.org_id,
                date=date,
                record=record,
            )

        logger.info(
            f'metrics from {identity.user_id} source={identity.source} '
            f'snapshot={snapshot.id} dates={len(records)}'
        )
        return SubmissionResult(snapshot_id=snapshot.id, dates_recorded=len(records))

    def submit_daily(self, identity: ResolvedIdentity, submission: DailyUsageSubmission) -> DailyUsageResult:
        """
        Replace the Claude side of one day with the tool's own count. Git
        numbers for that day are kept.
        """
        report_date = parse_report_date(submission.date)
        usage = submission.usage or UsagePayload()

        self.core_service.ensure_identity(identity)
        snapshot = self._save_snapshot(
            identity,
            MetricsSubmission(usage=usage),
            raw_payload=submission.model_dump(mode='json', by_alias=True, exclude_none=True),
        )

        current = self.ledger_store.get_for_user_and_date(identity.user_id, report_date) or DailyMetricRecord()
        record = current.model_copy(
            update={
                'claude_sessions': usage.sessions,
                'claude_messages': usage.messages,
                'claude_tokens': usage.tokens,
                'claude_tool_calls': usage.tool_calls,
            }
        )
        self.ledger_store.upsert(
            user_id=identity.user_id,
            org_id=identity.org_id,
            date=report_date,
            record=record,
        )

        logger.info(f'daily usage from {identity.user_id} source={identity.source} date={report_date}')
        return DailyUsageResult(
            date=report_date,
            source=identity.source,
            snapshot_id=snapshot.id,
            metrics=DailyUsageCounts(
                sessions=usage.sessions,
                messages=usage.messages,
                tokens=usage.tokens,
                tool_calls=usage.tool_calls,
            ),
        )

    def get_my_metrics(
        self,
        user_id: NanoIdType,
        period: str | None,
        as_of: datetime.date | None = None,
    ) -> MyMetrics:
        resolved = resolve_period(period)
        totals = self.ledger_store.sum_by_user(user_id, period_clauses(DailyMetric.date, resolved, as_of=as_of))
        last_snapshot = self.get_last_snapshot(user_id)
        return MyMetrics(
            **totals.model_dump(),
            period=resolved.value,
            last_synced_at=last_snapshot.reported_at if last_snapshot else None,
        )

    def get_last_snapshot(self, user_id: NanoIdType) -> MetricsSnapshotRead | None:
        return MetricsSnapshot.latest(MetricsSnapshot.user_id == user_id, by=MetricsSnapshot.reported_at)

    def get_user_activity(
        self, user_id: NanoIdType, days: int | None = None, as_of: datetime.date | None = None
    ) -> list[ActivityDay]:
        return self.ledger_store.daily_activity_for_user(user_id, since=self._activity_start(days, as_of))

    def get_org_activity(
        self, org_id: NanoIdType, days: int | None = None, as_of: datetime.date | None = None
    ) -> list[ActivityDay]:
        return self.ledger_store.daily_activity_for_org(org_id, since=self._activity_start(days, as_of))

    def get_device_summary(self, identity: ResolvedIdentity, as_of: datetime.date | None = None) -> DeviceMe:
        as_of = as_of or reference_today()
        stats = {}
        for period in (Period.TODAY, Period.WEEK, Period.ALL):
            clauses = period_clauses(DailyMetric.date, period, as_of=as_of)
            stats[period] = self.ledger_store.sum_by_user(identity.user_id, clauses)

        rank = self.ledger_store.rank_for_user(identity.org_id, identity.user_id) if identity.org_id else None
        return DeviceMe(
            user=identity.name,
            org=identity.org_name,
            today=_to_device_stats(stats[Period.TODAY]),
            week=_to_device_stats(stats[Period.WEEK]),
            total=_to_device_stats(stats[Period.ALL]),
            rank=rank,
        )

    def _save_snapshot(
        self,
        identity: ResolvedIdentity,
        submission: MetricsSubmission,
        raw_payload: dict[str, Any] | None = None,
    ) -> MetricsSnapshotRead:
        claude = submission.claude
        git = submission.git
        usage = submission.usage
        claude_totals = claude.totals if claude and claude.totals else None
        git_totals = git.totals if git and git.totals else None
        if claude_totals is None and usage is not None:
            claude_totals = ClaudeTotalsPayload(**usage.model_dump(exclude={'models'}))
        claude_by_model = (claude.by_model if claude else None) or (usage.models if usage else None) or {}
        if raw_payload is None:
            raw_payload = submission.model_dump(mode='json', by_alias=True, exclude_none=True)

        reported_at = submission.timestamp or utc_now()
        if reported_at.tzinfo is not None:
            reported_at = reported_at.astimezone(datetime.timezone.utc).replace(tzinfo=None)

        return MetricsSnapshot.create(
            MetricsSnapshotCreate(
                user_id=identity.user_id,
                org_id=identity.org_id,
                source=identity.source,
                reported_at=reported_at,
                claude_sessions=claude_totals.sessions if claude_totals else 0,
                claude_messages=claude_totals.messages if claude_totals else 0,
                claude_input_tokens=claude_totals.input_tokens if claude_totals else 0,
                claude_output_tokens=claude_totals.output_tokens if claude_totals else 0,
                claude_cache_read_tokens=claude_totals.cache_read_tokens if claude_totals else 0,
                claude_cache_creation_tokens=claude_totals.cache_creation_tokens if claude_totals else 0,
                claude_tool_calls=claude_totals.tool_calls if claude_totals else 0,
                claude_by_model=claude_by_model,
                git_repos_scanned=(git.repos_scanned if git else None) or 0,
                git_repos_contributed=(git.repos_contributed if git else None) or 0,
                git_commits=git_totals.commits if git_totals else 0,
                git_lines_added=git_totals.lines_added if git_totals else 0,
                git_lines_deleted=git_totals.lines_deleted if git_totals else 0,
                git_files_changed=git_totals.files_changed if git_totals else 0,
                git_by_repo=(git.by_repo if git else None) or [],
                raw_payload=raw_payload,
            )
        )

    @staticmethod
    def _activity_start(days: int | None, as_of: datetime.date | None) -> datetime.date:
        days = days if days and days > 0 else settings.ACTIVITY_DEFAULT_DAYS
        return (as_of or reference_today()) - datetime.timedelta(days=days)


def _to_device_stats(totals: MetricTotals) -> DeviceStats:
    return DeviceStats(
        tokens=totals.claude_tokens,
        messages=totals.claude_messages,
        sessions=totals.claude_sessions,
    )
