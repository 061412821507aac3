"""
Tests for the HTTP API

Tests cover:
- Authentication (session cookie and bearer token)
- Submission endpoints and their validation errors
- Stats, SKP and admin endpoints
- Role checks on admin endpoints
- CLI commands
"""

import json

import pytest

from learnxp_app import db

from learnxp_app.modules.learning_history.models import SessionRecord
from conftest import course_payload, login, quiz_answer, quiz_payload


PROTECTED = [
    ('post', '/api/xp-save/quiz'),
    ('post', '/api/xp-save/course'),
    ('post', '/api/xp-save/course/complete'),
    ('get', '/api/xp-stats'),
    ('get', '/api/skp/history'),
    ('post', '/api/skp/streak-bonus'),
    ('get', '/api/skp/badges'),
    ('get', '/api/admin/xp-settings'),
    ('post', '/api/admin/xp-settings'),
    ('get', '/api/admin/xp-verification'),
]


@pytest.mark.parametrize('method, url', PROTECTED)
def test_requires_authentication(client, method, url):
    response = getattr(client, method)(url, json={})
    assert response.status_code == 401
    payload = response.get_json()
    assert payload['success'] is False
    assert payload['code'] == 'UNAUTHENTICATED'


def test_bearer_token_authenticates(client, learner):
    response = client.get('/api/xp-stats', headers={'Authorization': 'Bearer learner-token'})
    assert response.status_code == 200


def test_unknown_bearer_token_is_rejected(client, learner):
    response = client.get('/api/xp-stats', headers={'Authorization': 'Bearer wrong'})
    assert response.status_code == 401


def test_unknown_api_path_is_json_404(client):
    response = client.get('/api/does-not-exist')
    assert response.status_code == 404
    assert response.get_json()['code'] == 'NOT_FOUND'


class TestQuizEndpoint:

    def test_submit_quiz(self, client, learner):
        login(client, learner.user_id)
        response = client.post('/api/xp-save/quiz', json=quiz_payload(
            [quiz_answer(True), quiz_answer(True), quiz_answer(True, 'expert')],
            start_time='2024-05-01T10:00:00Z', end_time='2024-05-01T10:02:30Z',
        ))
        payload = response.get_json()

        assert response.status_code == 200
        assert payload['success'] is True
        assert payload['base_xp'] == 70
        assert payload['bonus_xp'] == 30
        assert payload['total_xp'] == 100
        assert payload['skp_earned'] == 80
        assert payload['wisdom_cards_awarded'] == 1
        assert payload['accuracy'] == 100.0
        assert payload['streak_bonus']['streak_days'] == 1

        record = db.session.get(SessionRecord, payload['session_id'])
        assert record.duration_seconds == 150

    @pytest.mark.parametrize('body', [
        {'answers': []},
        {'answers': [{'is_correct': True}], 'total_questions': 1},
        {'answers': [quiz_answer()], 'total_questions': 2},
        {'answers': [quiz_answer()], 'duration': 'long'},
    ])
    def test_bad_payloads(self, client, learner, body):
        login(client, learner.user_id)
        response = client.post('/api/xp-save/quiz', json=body)
        assert response.status_code == 400
        assert response.get_json()['code'] == 'VALIDATION_ERROR'
        assert SessionRecord.query.count() == 0

    def test_non_json_body(self, client, learner):
        login(client, learner.user_id)
        response = client.post('/api/xp-save/quiz', data='answers', content_type='text/plain')
        assert response.status_code == 400


class TestCourseEndpoints:

    def test_first_then_review(self, client, learner, catalog):
        login(client, learner.user_id)
        first = client.post('/api/xp-save/course', json=course_payload('s1')).get_json()
        review = client.post('/api/xp-save/course', json=course_payload('s1')).get_json()

        assert first['is_first_completion'] is True
        assert first['earned_xp'] == 25
        assert first['unit'] == {'course_id': 'py101', 'genre_id': 'g1', 'theme_id': 't1', 'session_id': 's1'}
        assert review['is_first_completion'] is False
        assert review['earned_xp'] == 0

    def test_missing_fields(self, client, learner, catalog):
        login(client, learner.user_id)
        response = client.post('/api/xp-save/course', json={'course_id': 'py101'})
        payload = response.get_json()
        assert response.status_code == 400
        assert 'session_id' in payload['details']['errors']

    def test_complete_course(self, client, learner, catalog):
        login(client, learner.user_id)
        incomplete = client.post('/api/xp-save/course/complete', json={'course_id': 'py101'})
        assert incomplete.status_code == 400

        client.post('/api/xp-save/course', json=course_payload('s1'))
        client.post('/api/xp-save/course', json=course_payload('s2'))
        response = client.put('/api/xp-save/course/complete', json={'course_id': 'py101'})
        payload = response.get_json()
        assert response.status_code == 200
        # the cascade already paid the bonus
        assert payload['already_completed'] is True

    def test_complete_course_needs_course_id(self, client, learner):
        login(client, learner.user_id)
        assert client.post('/api/xp-save/course/complete', json={}).status_code == 400


class TestReadEndpoints:

    def test_xp_stats(self, client, learner):
        login(client, learner.user_id)
        client.post('/api/xp-save/quiz', json=quiz_payload([quiz_answer(True, category='math')]))

        payload = client.get('/api/xp-stats').get_json()
        assert payload['overall']['total_xp'] == 40
        assert payload['overall']['level']['level'] == 1
        assert payload['categories'][0]['category_id'] == 'math'
        assert payload['subcategories'][0]['subcategory_id'] == 'algebra'
        assert len(payload['daily']) == 1
        assert payload['current_streak'] == 1
        assert payload['skp']['balance'] == payload['overall']['skp_balance']

    def test_xp_stats_for_new_user(self, client, learner):
        login(client, learner.user_id)
        payload = client.get('/api/xp-stats').get_json()
        assert payload['overall']['total_xp'] == 0
        assert payload['daily'] == []
        assert payload['current_streak'] == 0

    def test_skp_history_and_streak(self, client, learner):
        login(client, learner.user_id)
        client.post('/api/xp-save/quiz', json=quiz_payload([quiz_answer()] * 3))

        history = client.get('/api/skp/history?page=1').get_json()
        sources = [t['source'] for t in history['transactions']]
        assert 'streak_1days_v1' in sources
        assert any(s.startswith('quiz_') for s in sources)
        assert history['totals']['balance'] == 80 + 10

        streak = client.post('/api/skp/streak-bonus').get_json()
        assert streak['streak_days'] == 1
        assert streak['newly_awarded_skp'] == 0

    def test_badges(self, client, learner, catalog):
        login(client, learner.user_id)
        client.post('/api/xp-save/course', json=course_payload('s1'))
        client.post('/api/xp-save/course', json=course_payload('s2'))
        badges = client.get('/api/skp/badges').get_json()['badges']
        assert [b['badge_code'] for b in badges] == ['course_py101']


class TestAdminEndpoints:

    def test_settings_require_admin(self, client, learner):
        login(client, learner.user_id)
        assert client.get('/api/admin/xp-settings').status_code == 403
        assert client.post('/api/admin/xp-settings', json={'XP_QUIZ_BASIC': 1}).status_code == 403

    def test_admin_updates_settings(self, client, admin):
        login(client, admin.user_id)
        current = client.get('/api/admin/xp-settings').get_json()
        assert current['version'] == 1
        assert 'quiz_xp' in current['groups']

        response = client.post('/api/admin/xp-settings', json={'settings': {'XP_QUIZ_BASIC': 11}})
        payload = response.get_json()
        assert response.status_code == 200
        assert payload['rates']['version'] == 2
        assert payload['rates']['xp']['quiz']['basic'] == 11

        bad = client.post('/api/admin/xp-settings', json={'settings': {'XP_QUIZ_BASIC': -1}})
        assert bad.status_code == 400

    def test_verify_self(self, client, learner):
        login(client, learner.user_id)
        client.post('/api/xp-save/quiz', json=quiz_payload([quiz_answer()]))
        payload = client.get('/api/admin/xp-verification').get_json()
        assert payload['scope'] == 'user'
        assert payload['user_id'] == learner.user_id
        assert payload['health_score'] == 100
        assert len(payload['recent_sessions']) == 1

    def test_learner_cannot_verify_others(self, client, learner, other_learner):
        login(client, learner.user_id)
        response = client.get(f'/api/admin/xp-verification?user_id={other_learner.user_id}')
        assert response.status_code == 403
        assert client.get('/api/admin/xp-verification?all=1').status_code == 403

    def test_admin_verifies_anyone(self, client, admin, learner):
        login(client, admin.user_id)
        single = client.get(f'/api/admin/xp-verification?user_id={learner.user_id}')
        assert single.status_code == 200
        everyone = client.get('/api/admin/xp-verification?all=1').get_json()
        assert everyone['scope'] == 'all'
        assert everyone['truncated'] is False
        assert everyone['health_score'] == 100

    def test_bad_user_id(self, client, admin):
        login(client, admin.user_id)
        assert client.get('/api/admin/xp-verification?user_id=abc').status_code == 400


class TestCli:

    def test_rates_command(self, app):
        result = app.test_cli_runner().invoke(args=['ledger', 'rates'])
        assert result.exit_code == 0
        assert json.loads(result.output)['version'] == 1

    def test_verify_command(self, app, learner):
        result = app.test_cli_runner().invoke(args=['ledger', 'verify', '--user-id', str(learner.user_id)])
        assert result.exit_code == 0
        assert json.loads(result.output)['health_score'] == 100
