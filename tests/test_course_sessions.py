"""
Tests for course sessions and the first-completion determinator

Tests cover:
- First completion vs review pricing
- Concurrent first completions (race conflict)
- Theme / course completion cascade
- Difficulty clamping for bad catalog data
- A failed progress marker update after the reward is committed
"""

import pytest

from learnxp_app import db
from learnxp_app.core.error_handlers import PersistenceError, ValidationError
from learnxp_app.core.signals import first_completion_conflict
from learnxp_app.modules.gamification.models import SKPTransaction, UserBadge
from learnxp_app.modules.learning.services.submission_service import SubmissionService
from learnxp_app.modules.learning_history.models import SessionRecord
from learnxp_app.modules.progress.interface import ProgressInterface
from learnxp_app.modules.progress.models import CourseCompletion, ProgressMarker, ThemeCompletion
from learnxp_app.modules.rate_table.config import RateTableDefaultConfig
from learnxp_app.modules.stats.models import UserXPStats
from learnxp_app.modules.verification.services.verifier import VerifierService
from conftest import course_payload


def _first_completions(user_id, unit_key):
    return SessionRecord.query.filter_by(user_id=user_id, unit_key=unit_key, is_first_completion=True).count()


def test_first_completion_then_review(app, learner, catalog):
    first = SubmissionService.submit_course_session(learner, course_payload('s1'))

    assert first['is_first_completion'] is True
    assert first['earned_xp'] == RateTableDefaultConfig.XP_COURSE_INTERMEDIATE
    assert first['skp_earned'] == RateTableDefaultConfig.SKP_COURSE_CORRECT
    assert first['difficulty'] == 'intermediate'

    review = SubmissionService.submit_course_session(learner, course_payload('s1'))

    assert review['is_first_completion'] is False
    assert review['earned_xp'] == 0
    assert review['skp_earned'] == 0
    assert _first_completions(learner.user_id, 'py101_g1_t1_s1') == 1

    marker = ProgressMarker.query.filter_by(user_id=learner.user_id, session_id='s1').one()
    assert marker.completed is True


def test_first_completion_with_failed_quiz(app, learner, catalog):
    result = SubmissionService.submit_course_session(learner, course_payload('s1', quiz_correct=False))

    assert result['is_first_completion'] is True
    assert result['earned_xp'] == 0
    assert result['skp_earned'] == RateTableDefaultConfig.SKP_COURSE_INCORRECT

    # the unit is done: a later correct attempt is a review
    again = SubmissionService.submit_course_session(learner, course_payload('s1'))
    assert again['is_first_completion'] is False
    assert again['earned_xp'] == 0


def test_concurrent_first_completion_pays_once(app, learner, catalog, monkeypatch):
    SubmissionService.submit_course_session(learner, course_payload('s1'))

    # A request that read the marker before the first one committed
    monkeypatch.setattr(ProgressInterface, 'is_first_completion', staticmethod(lambda user_id, unit: True))
    conflicts = []

    def on_conflict(sender, **kwargs):
        conflicts.append(kwargs)

    with first_completion_conflict.connected_to(on_conflict):
        late = SubmissionService.submit_course_session(learner, course_payload('s1'))

    assert late['is_first_completion'] is False
    assert late['earned_xp'] == 0
    assert late['skp_earned'] == 0
    assert len(conflicts) == 1
    assert conflicts[0]['unit_key'] == 'py101_g1_t1_s1'

    assert _first_completions(learner.user_id, 'py101_g1_t1_s1') == 1
    records = SessionRecord.query.filter_by(user_id=learner.user_id, unit_key='py101_g1_t1_s1').all()
    assert len(records) == 2
    assert all(r.status == SessionRecord.STATUS_FINALIZED for r in records)
    course_entries = SKPTransaction.query.filter(SKPTransaction.user_id == learner.user_id,
                                                 SKPTransaction.source.startswith('course_', autoescape=True))
    assert course_entries.count() == 1


def test_users_do_not_share_completion(app, learner, other_learner, catalog):
    SubmissionService.submit_course_session(learner, course_payload('s1'))
    result = SubmissionService.submit_course_session(other_learner, course_payload('s1'))
    assert result['is_first_completion'] is True


def test_completion_cascade_pays_course_bonus_once(app, learner, catalog):
    first = SubmissionService.submit_course_session(learner, course_payload('s1'))
    assert first['completion_cascade'] == {'theme_completed': False, 'course_completion': None}

    last = SubmissionService.submit_course_session(learner, course_payload('s2'))
    cascade = last['completion_cascade']
    assert cascade['theme_completed'] is True
    assert cascade['course_completion']['completion_bonus_xp'] == RateTableDefaultConfig.XP_BONUS_COURSE_COMPLETION
    assert cascade['course_completion']['already_completed'] is False

    assert ThemeCompletion.query.filter_by(user_id=learner.user_id).count() == 1
    assert CourseCompletion.query.filter_by(user_id=learner.user_id, course_id='py101').count() == 1
    badge = UserBadge.query.filter_by(user_id=learner.user_id).one()
    assert badge.badge_code == 'course_py101'
    assert badge.title == 'Pythonista'

    repeat = SubmissionService.complete_course(learner, 'py101')
    assert repeat['already_completed'] is True
    assert repeat['completion_bonus_xp'] == 0
    assert SKPTransaction.query.filter_by(user_id=learner.user_id, source='course_complete_py101').count() == 1


def test_complete_course_requires_every_unit(app, learner, catalog):
    SubmissionService.submit_course_session(learner, course_payload('s1'))
    with pytest.raises(ValidationError):
        SubmissionService.complete_course(learner, 'py101')
    with pytest.raises(ValidationError):
        SubmissionService.complete_course(learner, None)


def test_unknown_difficulty_is_clamped(app, learner, catalog):
    result = SubmissionService.submit_course_session(learner, course_payload('s1', course_id='odd'))

    assert result['difficulty'] == 'basic'
    assert result['earned_xp'] == RateTableDefaultConfig.XP_COURSE_BASIC
    record = db.session.get(SessionRecord, result['session_record_id'])
    assert record.difficulty_clamped is True


@pytest.mark.parametrize('missing', ['course_id', 'session_id', 'category_id', 'confirmation_quiz_correct'])
def test_missing_fields_write_nothing(app, learner, catalog, missing):
    payload = course_payload('s1')
    del payload[missing]
    with pytest.raises(ValidationError):
        SubmissionService.submit_course_session(learner, payload)
    assert SessionRecord.query.count() == 0


def test_marker_failure_keeps_committed_reward(app, learner, catalog, monkeypatch):
    real_mark_completed = ProgressInterface.mark_completed
    calls = []

    def flaky_mark_completed(user_id, unit):
        calls.append(unit.key)
        if len(calls) == 1:
            raise PersistenceError(operation='mark_completed')
        return real_mark_completed(user_id, unit)

    monkeypatch.setattr(ProgressInterface, 'mark_completed', staticmethod(flaky_mark_completed))

    first = SubmissionService.submit_course_session(learner, course_payload('s1'))
    assert first['is_first_completion'] is True
    assert first['earned_xp'] == RateTableDefaultConfig.XP_COURSE_INTERMEDIATE

    stats = db.session.get(UserXPStats, learner.user_id)
    assert stats.course_xp == RateTableDefaultConfig.XP_COURSE_INTERMEDIATE

    # The marker lagged behind; the resubmission is still a review and repairs it
    retry = SubmissionService.submit_course_session(learner, course_payload('s1'))
    assert retry['is_first_completion'] is False
    assert retry['earned_xp'] == 0
    assert _first_completions(learner.user_id, 'py101_g1_t1_s1') == 1

    marker = ProgressMarker.query.filter_by(user_id=learner.user_id, session_id='s1').one()
    assert marker.completed is True
    assert VerifierService.verify_user(learner.user_id).health_score == 100
