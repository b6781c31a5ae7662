import datetime

from src.app.metrics import DailyUsageSubmission, MetricsSubmission


def test_agent_payload_parses():
    submission = MetricsSubmission.model_validate(
        {
            'timestamp': '2024-01-01T12:00:00Z',
            'claude': {
                'totals': {'sessions': 3, 'messages': 12, 'inputTokens': 100, 'outputTokens': 50},
                'byModel': {'claude-sonnet': {'tokens': 150}},
                'daily': [{'date': '2024-01-01', 'sessions': 3, 'messages': 12, 'tokens': 150, 'toolCalls': 4}],
            },
            'git': {
                'totals': {'commits': 2, 'linesAdded': 30, 'linesDeleted': 3, 'filesChanged': 5},
                'reposScanned': 4,
                'reposContributed': 1,
                'byRepo': [{'name': 'claudometer', 'commits': 2}],
                'dailyArray': [{'date': '2024-01-01', 'commits': 2, 'linesAdded': 30, 'linesDeleted': 3}],
            },
        }
    )

    assert submission.timestamp == datetime.datetime(2024, 1, 1, 12, tzinfo=datetime.timezone.utc)
    assert submission.claude.totals.input_tokens == 100
    assert submission.claude.totals.cache_read_tokens == 0
    assert submission.claude.daily[0].tool_calls == 4
    assert submission.git.repos_scanned == 4
    assert submission.git.daily_array[0].lines_added == 30


def test_unknown_keys_are_ignored():
    submission = MetricsSubmission.model_validate(
        {
            'agentVersion': '9.9.9',
            'claude': {'daily': [{'date': '2024-01-01', 'tokens': 1, 'reasoningTokens': 5}], 'newBlock': {}},
        }
    )

    assert submission.claude.daily[0].tokens == 1


def test_null_counters_become_zero():
    submission = MetricsSubmission.model_validate(
        {'git': {'totals': {'commits': None}, 'dailyArray': [{'date': None, 'commits': None}]}}
    )

    assert submission.git.totals.commits == 0
    assert submission.git.daily_array[0].commits == 0
    assert submission.git.daily_array[0].date is None


def test_non_string_dates_are_stringified():
    submission = MetricsSubmission.model_validate({'claude': {'daily': [{'date': 20240101}]}})

    assert submission.claude.daily[0].date == '20240101'


class TestFlatUsage:
    def test_openclaw_message(self):
        submission = MetricsSubmission.model_validate(
            {
                'timestamp': '2024-01-01T12:00:00Z',
                'input': 120,
                'output': 30,
                'cacheRead': 400,
                'cacheWrite': 10,
                'cost': {'total': 0.02},
            }
        )

        assert submission.claude is None
        assert submission.timestamp == datetime.datetime(2024, 1, 1, 12, tzinfo=datetime.timezone.utc)
        assert submission.usage.input_tokens == 120
        assert submission.usage.output_tokens == 30
        assert submission.usage.cache_read_tokens == 400
        assert submission.usage.cache_creation_tokens == 10
        assert submission.usage.messages == 1
        assert submission.usage.tokens == 150

    def test_openclaw_keeps_an_explicit_message_count(self):
        submission = MetricsSubmission.model_validate({'input': 1, 'messages': 3})

        assert submission.usage.messages == 3
        assert submission.usage.output_tokens == 0

    def test_claude_totals(self):
        submission = MetricsSubmission.model_validate(
            {
                'collectedAt': '2024-01-02T08:00:00Z',
                'sessions': 2,
                'messages': 9,
                'inputTokens': 70,
                'outputTokens': 5,
                'toolCalls': 4,
                'byModel': {'claude-opus': {'tokens': 75}},
            }
        )

        assert submission.timestamp == datetime.datetime(2024, 1, 2, 8, tzinfo=datetime.timezone.utc)
        assert submission.usage.sessions == 2
        assert submission.usage.tool_calls == 4
        assert submission.usage.tokens == 75
        assert submission.usage.models == {'claude-opus': {'tokens': 75}}

    def test_snake_case_totals(self):
        submission = MetricsSubmission.model_validate({'input_tokens': 8, 'output_tokens': 2, 'tool_calls': None})

        assert submission.usage.tokens == 10
        assert submission.usage.tool_calls == 0

    def test_usage_wrapper(self):
        submission = MetricsSubmission.model_validate(
            {
                'timestamp': '2024-01-01T00:00:00Z',
                'usage': {'sessions': 1, 'inputTokens': 5, 'cacheRead': 2, 'models': None},
            }
        )

        assert submission.usage.sessions == 1
        assert submission.usage.input_tokens == 5
        assert submission.usage.cache_read_tokens == 2
        assert submission.usage.models == {}

    def test_agent_payload_has_no_usage(self):
        submission = MetricsSubmission.model_validate(
            {'claude': {'daily': [{'date': '2024-01-01', 'tokens': 1}]}, 'inputTokens': 99}
        )

        assert submission.usage is None
        assert submission.claude.daily[0].tokens == 1

    def test_unrecognised_body_is_empty(self):
        submission = MetricsSubmission.model_validate({'agentVersion': '1.0.0'})

        assert submission.usage is None
        assert submission.claude is None


class TestDailyUsageSubmission:
    def test_parses(self):
        submission = DailyUsageSubmission.model_validate(
            {'date': '2024-01-01', 'usage': {'sessions': 1, 'input': 10, 'output': 5}}
        )

        assert submission.date == '2024-01-01'
        assert submission.usage.tokens == 15

    def test_non_string_date_is_stringified(self):
        assert DailyUsageSubmission.model_validate({'date': 20240101}).date == '20240101'

    def test_everything_optional(self):
        submission = DailyUsageSubmission.model_validate({})

        assert submission.date is None
        assert submission.usage is None
