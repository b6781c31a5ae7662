import datetime

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from src.app.metrics import MetricsSnapshot, reference_today
from src.network.database import db


def _payload(tokens: int, days_ago: int = 0) -> dict:
    date = (reference_today() - datetime.timedelta(days=days_ago)).isoformat()
    return {'claude': {'daily': [{'date': date, 'tokens': tokens, 'messages': 1, 'sessions': 1}]}}


def test_device_submission(client: TestClient, device_headers, identity):
    response = client.post('/api/metrics/external', json=_payload(10), headers=device_headers)

    assert response.status_code == status.HTTP_200_OK
    with db():
        snapshot = MetricsSnapshot.get(id=response.json()['snapshot_id'])
    assert snapshot.user_id == identity.user_id
    assert snapshot.source == 'openclaw'


def test_cli_tokens_are_not_devices(client: TestClient, cli_headers):
    response = client.post('/api/metrics/external', json=_payload(10), headers=cli_headers)

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()['detail'] == 'Device token required'


def test_devices_can_use_the_main_route(client: TestClient, device_headers):
    response = client.post('/api/metrics', json=_payload(10), headers=device_headers)

    assert response.status_code == status.HTTP_200_OK


def test_device_summary(client: TestClient, device_headers, identity):
    client.post('/api/metrics/external', json=_payload(10), headers=device_headers)
    client.post('/api/metrics/external', json=_payload(20, days_ago=2), headers=device_headers)
    client.post('/api/metrics/external', json=_payload(40, days_ago=60), headers=device_headers)

    response = client.get('/api/metrics/external/me', headers=device_headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        'user': identity.name,
        'org': identity.org_name,
        'today': {'tokens': 10, 'messages': 1, 'sessions': 1},
        'week': {'tokens': 30, 'messages': 2, 'sessions': 2},
        'total': {'tokens': 70, 'messages': 3, 'sessions': 3},
        'rank': 1,
    }


def test_summary_before_any_submission(client: TestClient, device_headers):
    content = client.get('/api/metrics/external/me', headers=device_headers).json()

    assert content['total'] == {'tokens': 0, 'messages': 0, 'sessions': 0}
    assert content['rank'] is None


def test_unknown_device_token(client: TestClient):
    response = client.get('/api/metrics/external/me', headers={'Authorization': 'Bearer not-a-real-device'})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()['detail'] == 'Invalid access token'


def test_openclaw_messages(client: TestClient, device_headers, identity):
    message = {'input': 300, 'output': 45, 'cacheRead': 1200, 'cacheWrite': 0, 'cost': {'total': 0.01}}

    first = client.post('/api/metrics/external', json=message, headers=device_headers)
    second = client.post('/api/metrics/external', json=message, headers=device_headers)

    assert first.status_code == second.status_code == status.HTTP_200_OK
    assert second.json()['dates_recorded'] == 1
    content = client.get('/api/metrics/external/me', headers=device_headers).json()
    assert content['today'] == {'tokens': 690, 'messages': 2, 'sessions': 0}
    with db():
        snapshot = MetricsSnapshot.get(id=first.json()['snapshot_id'])
    assert snapshot.claude_cache_read_tokens == 1200


def test_usage_wrapper(client: TestClient, device_headers):
    response = client.post(
        '/api/metrics/external',
        json={'usage': {'sessions': 1, 'messages': 4, 'input_tokens': 10, 'output_tokens': 10}},
        headers=device_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    content = client.get('/api/metrics/external/me', headers=device_headers).json()
    assert content['today'] == {'tokens': 20, 'messages': 4, 'sessions': 1}


def test_claude_totals(client: TestClient, device_headers):
    response = client.post(
        '/api/metrics/external',
        json={'sessions': 2, 'messages': 6, 'inputTokens': 100, 'outputTokens': 1},
        headers=device_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    content = client.get('/api/metrics/external/me', headers=device_headers).json()
    assert content['total'] == {'tokens': 101, 'messages': 6, 'sessions': 2}


class TestDailyReport:
    def test_replaces_the_day(self, client: TestClient, device_headers, identity):
        date = (reference_today() - datetime.timedelta(days=1)).isoformat()
        client.post('/api/metrics/external', json=_payload(500, days_ago=1), headers=device_headers)

        for tokens in (80, 60):
            response = client.post(
                '/api/metrics/external/daily',
                json={'date': date, 'usage': {'sessions': 1, 'messages': 3, 'input': tokens, 'output': 0}},
                headers=device_headers,
            )
            assert response.status_code == status.HTTP_200_OK

        content = response.json()
        assert content['success'] is True
        assert content['date'] == date
        assert content['source'] == 'openclaw'
        assert content['metrics'] == {'sessions': 1, 'messages': 3, 'tokens': 60, 'tool_calls': 0}
        summary = client.get('/api/metrics/external/me', headers=device_headers).json()
        assert summary['total'] == {'tokens': 60, 'messages': 3, 'sessions': 1}

    def test_missing_date(self, client: TestClient, device_headers):
        response = client.post('/api/metrics/external/daily', json={'usage': {'input': 1}}, headers=device_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['detail'] == 'Missing required field: date'

    @pytest.mark.parametrize('date', ['2024/01/01', '2024-01-01T10:00:00Z', '2024-02-30', 20240101])
    def test_bad_date(self, client: TestClient, device_headers, date):
        response = client.post(
            '/api/metrics/external/daily', json={'date': date, 'usage': {'input': 1}}, headers=device_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['detail'] == 'Invalid date format. Expected YYYY-MM-DD'

    def test_bad_date_writes_nothing(self, client: TestClient, device_headers, identity):
        client.post('/api/metrics/external/daily', json={'date': 'today'}, headers=device_headers)

        with db():
            assert MetricsSnapshot.count(MetricsSnapshot.user_id == identity.user_id) == 0

    def test_needs_a_device_token(self, client: TestClient, cli_headers):
        response = client.post('/api/metrics/external/daily', json={'date': '2024-01-01'}, headers=cli_headers)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
