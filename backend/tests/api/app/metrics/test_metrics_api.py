import datetime

from fastapi import status
from fastapi.testclient import TestClient

from src.app.metrics import reference_today
from src.app.metrics.models import DailyMetric
from src.core.authentication import AuthenticationService
from src.network.database import db


def _day(days_ago: int = 0) -> str:
    return (reference_today() - datetime.timedelta(days=days_ago)).isoformat()


def _payload(*claude_daily, git_daily=()) -> dict:
    return {
        'timestamp': datetime.datetime.now(datetime.timezone.utc).isoformat(),
        'claude': {
            'totals': {'sessions': 1, 'messages': 2, 'inputTokens': 3, 'outputTokens': 4},
            'byModel': {'claude-sonnet': {'tokens': 7}},
            'daily': list(claude_daily),
        },
        'git': {
            'totals': {'commits': 1},
            'reposScanned': 2,
            'reposContributed': 1,
            'byRepo': [{'name': 'claudometer', 'commits': 1}],
            'dailyArray': list(git_daily),
        },
    }


class TestSubmitMetrics:
    def test_submit(self, client: TestClient, cli_headers, identity):
        response = client.post(
            '/api/metrics',
            json=_payload(
                {'date': _day(), 'sessions': 1, 'messages': 5, 'tokens': 100, 'toolCalls': 2},
                git_daily=[{'date': _day(1), 'commits': 3, 'linesAdded': 20, 'linesDeleted': 4}],
            ),
            headers=cli_headers,
        )

        assert response.status_code == status.HTTP_200_OK, response.json()
        content = response.json()
        assert content['success'] is True
        assert content['dates_recorded'] == 2
        assert content['snapshot_id'].startswith('snap-')

    def test_resubmission_replaces(self, client: TestClient, cli_headers, identity):
        for tokens, messages in ((100, 5), (50, 2)):
            response = client.post(
                '/api/metrics',
                json=_payload({'date': _day(), 'tokens': tokens, 'messages': messages}),
                headers=cli_headers,
            )
            assert response.status_code == status.HTTP_200_OK

        content = client.get('/api/metrics/me', params={'period': 'today'}, headers=cli_headers).json()
        assert (content['claude_tokens'], content['claude_messages']) == (50, 2)
        with db():
            assert DailyMetric.count(DailyMetric.user_id == identity.user_id) == 1

    def test_entry_without_date_is_skipped(self, client: TestClient, cli_headers):
        payload = {'claude': {'daily': [{'sessions': 1, 'messages': 1}]}}

        response = client.post('/api/metrics', json=payload, headers=cli_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['dates_recorded'] == 0

    def test_unknown_fields_are_ignored(self, client: TestClient, cli_headers):
        payload = _payload({'date': _day(), 'tokens': 1})
        payload['agentVersion'] = '2.0.0'
        payload['claude']['daily'][0]['reasoningTokens'] = 10

        response = client.post('/api/metrics', json=payload, headers=cli_headers)

        assert response.status_code == status.HTTP_200_OK

    def test_bad_counter_is_rejected(self, client: TestClient, cli_headers, identity):
        response = client.post(
            '/api/metrics',
            json={'claude': {'daily': [{'date': _day(), 'tokens': 'lots'}]}},
            headers=cli_headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()['detail'][0]['loc'] == ['body', 'claude', 'daily', 0, 'tokens']

    def test_missing_token(self, client: TestClient):
        response = client.post('/api/metrics', json=_payload())

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_token(self, client: TestClient):
        response = client.post('/api/metrics', json=_payload(), headers={'Authorization': 'Bearer a.b.c'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()['detail'] == 'Invalid access token'

    def test_expired_token(self, client: TestClient, expired_cli_headers):
        response = client.post('/api/metrics', json=_payload(), headers=expired_cli_headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()['detail'] == 'Expired access token'


class TestMyMetrics:
    def test_periods(self, client: TestClient, cli_headers):
        client.post(
            '/api/metrics',
            json=_payload(
                {'date': _day(), 'tokens': 1},
                {'date': _day(3), 'tokens': 10},
                {'date': _day(90), 'tokens': 100},
            ),
            headers=cli_headers,
        )

        def tokens(period):
            response = client.get('/api/metrics/me', params={'period': period}, headers=cli_headers)
            assert response.status_code == status.HTTP_200_OK
            return response.json()['claude_tokens']

        assert [tokens(period) for period in ('today', 'week', 'month', 'all')] == [1, 11, 11, 111]

    def test_missing_period_is_all_time(self, client: TestClient, cli_headers):
        client.post(
            '/api/metrics',
            json=_payload({'date': _day(), 'tokens': 1}, {'date': _day(60), 'tokens': 500}),
            headers=cli_headers,
        )

        content = client.get('/api/metrics/me', headers=cli_headers).json()

        assert content['period'] == 'all'
        assert content['claude_tokens'] == 501

    def test_bogus_period_is_month(self, client: TestClient, cli_headers):
        client.post('/api/metrics', json=_payload({'date': _day(20), 'tokens': 7}), headers=cli_headers)

        bogus = client.get('/api/metrics/me', params={'period': 'bogus'}, headers=cli_headers).json()
        month = client.get('/api/metrics/me', params={'period': 'month'}, headers=cli_headers).json()

        assert bogus == month
        assert bogus['period'] == 'month'
        assert bogus['claude_tokens'] == 7

    def test_shape(self, client: TestClient, cli_headers):
        client.post('/api/metrics', json=_payload({'date': _day(), 'tokens': 1}), headers=cli_headers)

        content = client.get('/api/metrics/me', headers=cli_headers).json()

        assert set(content) == {
            'claude_sessions',
            'claude_messages',
            'claude_tokens',
            'claude_tool_calls',
            'git_commits',
            'git_lines_added',
            'git_lines_deleted',
            'reported_at',
            'last_synced_at',
            'period',
        }
        assert content['last_synced_at'] is not None


class TestActivity:
    def test_my_activity(self, client: TestClient, cli_headers):
        client.post(
            '/api/metrics',
            json=_payload({'date': _day(1), 'messages': 4}, git_daily=[{'date': _day(1), 'commits': 2}]),
            headers=cli_headers,
        )

        response = client.get('/api/metrics/my-activity', params={'days': 7}, headers=cli_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            'activity': [
                {'date': _day(1), 'claude_messages': 4, 'claude_tokens': 0, 'git_commits': 2, 'git_lines_added': 0}
            ]
        }

    def test_org_activity(self, client: TestClient, cli_headers, make_identity):
        teammate = make_identity()
        teammate_headers = {'Authorization': f'Bearer {AuthenticationService.issue_cli_token(teammate)}'}
        client.post('/api/metrics', json=_payload({'date': _day(), 'messages': 1}), headers=cli_headers)
        client.post('/api/metrics', json=_payload({'date': _day(), 'messages': 2}), headers=teammate_headers)

        activity = client.get('/api/metrics/activity', headers=cli_headers).json()['activity']

        assert [(day['date'], day['claude_messages']) for day in activity] == [(_day(), 3)]
