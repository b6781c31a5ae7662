import datetime

import pytest

from src.app.metrics import (
    DailyMetricRecord,
    DailyUsageSubmission,
    LedgerStore,
    MalformedRecordError,
    MetricsService,
    MetricsSnapshot,
    MetricsSubmission,
)
from src.app.metrics.models import DailyMetric
from src.core.authentication import ResolvedIdentity
from src.core.membership import MembershipService
from src.core.organization import OrganizationService
from src.core.user import UserService

TODAY = datetime.date(2024, 1, 3)


@pytest.fixture
def metrics_service() -> MetricsService:
    return MetricsService.factory()


def _claude_submission(*days) -> MetricsSubmission:
    return MetricsSubmission.model_validate({'claude': {'daily': list(days)}})


@pytest.fixture
def new_caller(organization_factory, user_factory) -> ResolvedIdentity:
    """
    Someone we have never seen, only known through their token
    """
    org = organization_factory.build()
    user = user_factory.build()
    return ResolvedIdentity(user_id=user.id, email=user.email, name=user.name, org_id=org.id, org_name=org.name)


class TestSubmit:
    def test_first_submission_provisions_the_caller(self, metrics_service, new_caller):
        metrics_service.submit(new_caller, _claude_submission({'date': '2024-01-01', 'tokens': 1}))

        assert OrganizationService.factory().get_for_id(new_caller.org_id).name == new_caller.org_name
        user = UserService.factory().get_user_for_id(new_caller.user_id)
        assert user.email == new_caller.email
        assert user.org_id == new_caller.org_id
        assert MembershipService.factory().is_member(new_caller.user_id, new_caller.org_id)

    def test_profile_changes_are_picked_up(self, metrics_service, new_caller):
        metrics_service.submit(new_caller, MetricsSubmission())
        renamed = new_caller.model_copy(update={'name': 'Renamed', 'org_name': 'Renamed Org'})

        metrics_service.submit(renamed, MetricsSubmission())

        assert UserService.factory().get_user_for_id(new_caller.user_id).name == 'Renamed'
        assert OrganizationService.factory().get_for_id(new_caller.org_id).name == 'Renamed Org'

    def test_caller_without_org(self, metrics_service, user_factory):
        user = user_factory.build()
        caller = ResolvedIdentity(user_id=user.id, email=user.email, name=user.name)

        result = metrics_service.submit(caller, _claude_submission({'date': '2024-01-01', 'tokens': 5}))

        assert result.dates_recorded == 1
        assert MembershipService.factory().list_memberships_for_user(user.id) == []
        assert DailyMetric.get(user_id=user.id).org_id is None

    def test_result(self, metrics_service, identity):
        result = metrics_service.submit(
            identity,
            MetricsSubmission.model_validate(
                {
                    'claude': {'daily': [{'date': '2024-01-01', 'tokens': 1}, {'date': '2024-01-02', 'tokens': 1}]},
                    'git': {'dailyArray': [{'date': '2024-01-02', 'commits': 1}]},
                }
            ),
        )

        assert result.success
        assert result.dates_recorded == 2
        assert MetricsSnapshot.get(id=result.snapshot_id).user_id == identity.user_id

    def test_resubmitting_replaces_the_date(self, metrics_service, identity):
        """
        The agent reports running totals for each day, the latest one wins
        """
        metrics_service.submit(identity, _claude_submission({'date': '2024-01-01', 'tokens': 100, 'messages': 5}))
        metrics_service.submit(identity, _claude_submission({'date': '2024-01-01', 'tokens': 50, 'messages': 2}))

        record = LedgerStore.factory().get_for_user_and_date(identity.user_id, datetime.date(2024, 1, 1))
        assert record == DailyMetricRecord(claude_tokens=50, claude_messages=2)

    def test_same_submission_twice_is_idempotent(self, metrics_service, identity):
        submission = _claude_submission({'date': '2024-01-01', 'tokens': 100}, {'date': '2024-01-02', 'tokens': 3})

        metrics_service.submit(identity, submission)
        first = metrics_service.get_my_metrics(identity.user_id, 'all', as_of=TODAY)
        metrics_service.submit(identity, submission)
        second = metrics_service.get_my_metrics(identity.user_id, 'all', as_of=TODAY)

        assert first.claude_tokens == second.claude_tokens == 103
        assert DailyMetric.count(DailyMetric.user_id == identity.user_id) == 2

    def test_entry_without_date_is_skipped(self, metrics_service, identity):
        result = metrics_service.submit(identity, _claude_submission({'sessions': 1, 'messages': 1}))

        assert result.dates_recorded == 0
        assert DailyMetric.count(DailyMetric.user_id == identity.user_id) == 0

    def test_snapshot_keeps_totals_and_payload(self, metrics_service, identity):
        submission = MetricsSubmission.model_validate(
            {
                'timestamp': '2024-01-01T20:00:00+02:00',
                'claude': {
                    'totals': {'sessions': 2, 'inputTokens': 10, 'cacheReadTokens': 3},
                    'byModel': {'opus': {'tokens': 13}},
                },
                'git': {'totals': {'commits': 4, 'filesChanged': 2}, 'reposScanned': 3, 'byRepo': [{'name': 'api'}]},
                'somethingNew': True,
            }
        )

        result = metrics_service.submit(identity, submission)

        snapshot = MetricsSnapshot.get(id=result.snapshot_id)
        assert snapshot.source == 'claude_code'
        assert snapshot.reported_at == datetime.datetime(2024, 1, 1, 18, 0)
        assert snapshot.claude_sessions == 2
        assert snapshot.claude_input_tokens == 10
        assert snapshot.claude_cache_read_tokens == 3
        assert snapshot.claude_by_model == {'opus': {'tokens': 13}}
        assert snapshot.git_commits == 4
        assert snapshot.git_files_changed == 2
        assert snapshot.git_repos_scanned == 3
        assert snapshot.git_by_repo == [{'name': 'api'}]
        assert snapshot.raw_payload['claude']['totals']['inputTokens'] == 10
        assert 'somethingNew' not in snapshot.raw_payload

    def test_snapshot_source_follows_the_device(self, metrics_service, identity):
        device_caller = identity.model_copy(update={'source': 'openclaw'})

        result = metrics_service.submit(device_caller, MetricsSubmission())

        assert MetricsSnapshot.get(id=result.snapshot_id).source == 'openclaw'


class TestThirdPartyUsage:
    # Noon in the reference timezone
    REPORTED_AT = '2024-01-02T20:00:00Z'
    JAN_2 = datetime.date(2024, 1, 2)

    def _openclaw(self, **counters) -> MetricsSubmission:
        return MetricsSubmission.model_validate({'timestamp': self.REPORTED_AT, **counters})

    def test_messages_add_up_on_the_reported_day(self, metrics_service, identity):
        metrics_service.submit(identity, self._openclaw(input=100, output=20))
        result = metrics_service.submit(identity, self._openclaw(input=10, output=5))

        assert result.dates_recorded == 1
        record = LedgerStore.factory().get_for_user_and_date(identity.user_id, self.JAN_2)
        assert record == DailyMetricRecord(claude_tokens=135, claude_messages=2)

    def test_usage_adds_to_agent_days(self, metrics_service, identity):
        metrics_service.submit(identity, _claude_submission({'date': '2024-01-02', 'tokens': 1000, 'sessions': 1}))

        metrics_service.submit(identity, self._openclaw(input=7, output=3))

        record = LedgerStore.factory().get_for_user_and_date(identity.user_id, self.JAN_2)
        assert record == DailyMetricRecord(claude_tokens=1010, claude_messages=1, claude_sessions=1)

    def test_usage_and_daily_entry_for_the_same_day_are_combined(self, metrics_service, identity):
        submission = MetricsSubmission.model_validate(
            {
                'timestamp': self.REPORTED_AT,
                'claude': {'daily': [{'date': '2024-01-02', 'tokens': 50}]},
                'usage': {'inputTokens': 5},
            }
        )

        result = metrics_service.submit(identity, submission)

        assert result.dates_recorded == 1
        record = LedgerStore.factory().get_for_user_and_date(identity.user_id, self.JAN_2)
        assert record.claude_tokens == 55

    def test_snapshot_keeps_the_usage(self, metrics_service, identity):
        submission = MetricsSubmission.model_validate(
            {
                'timestamp': self.REPORTED_AT,
                'sessions': 1,
                'inputTokens': 40,
                'outputTokens': 2,
                'cacheReadTokens': 9,
                'byModel': {'sonnet': {'tokens': 42}},
            }
        )

        result = metrics_service.submit(identity, submission)

        snapshot = MetricsSnapshot.get(id=result.snapshot_id)
        assert snapshot.claude_sessions == 1
        assert snapshot.claude_input_tokens == 40
        assert snapshot.claude_output_tokens == 2
        assert snapshot.claude_cache_read_tokens == 9
        assert snapshot.claude_by_model == {'sonnet': {'tokens': 42}}
        assert snapshot.raw_payload['usage']['inputTokens'] == 40

    def test_daily_report_replaces_claude_usage(self, metrics_service, identity):
        metrics_service.submit(
            identity,
            MetricsSubmission.model_validate(
                {
                    'claude': {'daily': [{'date': '2024-01-02', 'tokens': 1000, 'messages': 9}]},
                    'git': {'dailyArray': [{'date': '2024-01-02', 'commits': 3}]},
                }
            ),
        )

        result = metrics_service.submit_daily(
            identity,
            DailyUsageSubmission.model_validate(
                {'date': '2024-01-02', 'usage': {'sessions': 2, 'input': 30, 'output': 10, 'toolCalls': 1}}
            ),
        )

        assert result.date == self.JAN_2
        assert result.source == identity.source
        assert result.metrics.tokens == 40
        record = LedgerStore.factory().get_for_user_and_date(identity.user_id, self.JAN_2)
        assert record == DailyMetricRecord(
            claude_sessions=2, claude_messages=0, claude_tokens=40, claude_tool_calls=1, git_commits=3
        )

    def test_daily_report_twice_is_idempotent(self, metrics_service, identity):
        submission = DailyUsageSubmission.model_validate({'date': '2024-01-02', 'usage': {'inputTokens': 25}})

        metrics_service.submit_daily(identity, submission)
        metrics_service.submit_daily(identity, submission)

        assert metrics_service.get_my_metrics(identity.user_id, 'all', as_of=TODAY).claude_tokens == 25
        assert MetricsSnapshot.count(MetricsSnapshot.user_id == identity.user_id) == 2

    def test_daily_report_provisions_a_new_caller(self, metrics_service, new_caller):
        metrics_service.submit_daily(new_caller, DailyUsageSubmission.model_validate({'date': '2024-01-02'}))

        assert UserService.factory().get_user_for_id(new_caller.user_id).email == new_caller.email
        record = LedgerStore.factory().get_for_user_and_date(new_caller.user_id, self.JAN_2)
        assert record == DailyMetricRecord()

    @pytest.mark.parametrize('date', [None, '2024-01-02T00:00:00Z'])
    def test_daily_report_needs_a_plain_date(self, metrics_service, identity, date):
        with pytest.raises(MalformedRecordError):
            metrics_service.submit_daily(identity, DailyUsageSubmission(date=date))

        assert MetricsSnapshot.count(MetricsSnapshot.user_id == identity.user_id) == 0


class TestReads:
    def test_my_metrics_period(self, metrics_service, identity):
        metrics_service.submit(
            identity,
            _claude_submission(
                {'date': '2024-01-03', 'tokens': 1, 'sessions': 1},
                {'date': '2023-12-30', 'tokens': 10},
                {'date': '2023-06-01', 'tokens': 100},
            ),
        )

        today = metrics_service.get_my_metrics(identity.user_id, 'today', as_of=TODAY)
        week = metrics_service.get_my_metrics(identity.user_id, 'week', as_of=TODAY)
        everything = metrics_service.get_my_metrics(identity.user_id, 'all', as_of=TODAY)

        assert (today.period, today.claude_tokens, today.claude_sessions) == ('today', 1, 1)
        assert week.claude_tokens == 11
        assert everything.claude_tokens == 111
        assert everything.last_synced_at is not None

    def test_missing_period_is_all_time(self, metrics_service, identity):
        metrics_service.submit(identity, _claude_submission({'date': '2023-11-04', 'tokens': 500}))

        metrics = metrics_service.get_my_metrics(identity.user_id, None, as_of=TODAY)

        assert (metrics.period, metrics.claude_tokens) == ('all', 500)

    def test_bogus_period_is_month(self, metrics_service, identity):
        metrics_service.submit(identity, _claude_submission({'date': '2023-12-10', 'tokens': 7}))

        bogus = metrics_service.get_my_metrics(identity.user_id, 'bogus', as_of=TODAY)
        month = metrics_service.get_my_metrics(identity.user_id, 'month', as_of=TODAY)

        assert bogus == month
        assert bogus.period == 'month'
        assert bogus.claude_tokens == 7

    def test_never_synced(self, metrics_service, identity):
        metrics = metrics_service.get_my_metrics(identity.user_id, None, as_of=TODAY)

        assert metrics.claude_tokens == 0
        assert metrics.last_synced_at is None
        assert metrics.reported_at is None

    def test_last_snapshot_is_the_latest_report(self, metrics_service, identity):
        metrics_service.submit(identity, MetricsSubmission.model_validate({'timestamp': '2024-01-02T00:00:00'}))
        metrics_service.submit(identity, MetricsSubmission.model_validate({'timestamp': '2024-01-01T00:00:00'}))

        assert metrics_service.get_last_snapshot(identity.user_id).reported_at == datetime.datetime(2024, 1, 2)

    def test_activity_window(self, metrics_service, identity, make_identity):
        teammate = make_identity()
        metrics_service.submit(identity, _claude_submission({'date': '2024-01-02', 'messages': 2}))
        metrics_service.submit(teammate, _claude_submission({'date': '2024-01-02', 'messages': 3}))
        metrics_service.submit(identity, _claude_submission({'date': '2023-01-01', 'messages': 9}))

        mine = metrics_service.get_user_activity(identity.user_id, days=7, as_of=TODAY)
        org = metrics_service.get_org_activity(identity.org_id, days=7, as_of=TODAY)
        default_window = metrics_service.get_user_activity(identity.user_id, as_of=TODAY)

        assert [(day.date, day.claude_messages) for day in mine] == [(datetime.date(2024, 1, 2), 2)]
        assert [(day.date, day.claude_messages) for day in org] == [(datetime.date(2024, 1, 2), 5)]
        assert len(default_window) == 1

    def test_device_summary(self, metrics_service, identity, make_identity):
        leader = make_identity()
        metrics_service.submit(leader, _claude_submission({'date': '2024-01-03', 'tokens': 1000}))
        metrics_service.submit(
            identity,
            _claude_submission(
                {'date': '2024-01-03', 'tokens': 10, 'messages': 1, 'sessions': 1},
                {'date': '2024-01-01', 'tokens': 20, 'messages': 2, 'sessions': 1},
                {'date': '2023-01-01', 'tokens': 40, 'messages': 4, 'sessions': 1},
            ),
        )

        summary = metrics_service.get_device_summary(identity, as_of=TODAY)

        assert summary.user == identity.name
        assert summary.org == identity.org_name
        assert summary.today.model_dump() == {'tokens': 10, 'messages': 1, 'sessions': 1}
        assert summary.week.model_dump() == {'tokens': 30, 'messages': 3, 'sessions': 2}
        assert summary.total.model_dump() == {'tokens': 70, 'messages': 7, 'sessions': 3}
        assert summary.rank == 2
