"""
Tests for the consistency verifier

Tests cover:
- Clean history scores 100
- Drift in each scope is detected and weighted
- Advisory warnings do not lower the score
- The check never writes
"""

from datetime import timedelta

import pytest

from learnxp_app import db
from learnxp_app.modules.gamification.models import SKPTransaction
from learnxp_app.modules.gamification.services.skp_ledger_service import SKPLedgerService
from learnxp_app.modules.learning.services.submission_service import SubmissionService
from learnxp_app.modules.learning_history.models import AnswerRecord, SessionRecord
from learnxp_app.modules.stats.models import DailyActivityRecord, UserCategoryXPStats, UserXPStats
from learnxp_app.modules.verification.logics.health_score import compute_health_score
from learnxp_app.modules.verification.services.verifier import VerifierService
from learnxp_app.modules.verification.tasks import run_integrity_audit
from learnxp_app.utils.time_utils import user_today
from conftest import course_payload, quiz_answer, quiz_payload


@pytest.fixture
def history(app, learner, catalog):
    """A realistic mix: quizzes, first completions, a review and a finished course."""
    SubmissionService.submit_quiz_session(learner, quiz_payload([
        quiz_answer(True, 'basic', 'math', 'algebra'),
        quiz_answer(True, 'advanced', 'math', 'geometry'),
        quiz_answer(True, 'expert', 'physics', 'optics'),
    ]))
    SubmissionService.submit_quiz_session(learner, quiz_payload([
        quiz_answer(False, 'basic', 'math', 'algebra'),
        quiz_answer(True, 'intermediate', 'math', 'algebra'),
    ], duration=45))
    SubmissionService.submit_course_session(learner, course_payload('s1'))
    SubmissionService.submit_course_session(learner, course_payload('s1'))
    SubmissionService.submit_course_session(learner, course_payload('s2', quiz_correct=False))
    SKPLedgerService.spend(learner.user_id, 20, 'spend_hint_1')
    return learner


class TestHealthScore:

    def test_no_mismatch_is_100(self):
        assert compute_health_score([]) == 100

    def test_weights(self):
        assert compute_health_score([('global', True)]) == 70
        assert compute_health_score([('category', True), ('subcategory', True), ('daily', False)]) == 83
        assert compute_health_score([('global', False), ('category', False)]) == 87

    def test_floor_at_zero(self):
        assert compute_health_score([('global', True)] * 5) == 0


def test_clean_history_is_healthy(history):
    report = VerifierService.verify_user(history.user_id)

    assert report.health_score == 100
    assert report.critical_issues == []
    assert report.warnings == []
    assert report.checks['total_xp']['expected'] == report.checks['total_xp']['actual'] > 0
    assert len(report.recent_sessions) == 5
    assert len(report.recent_answers) == 8

    # rebuilt from events: answer XP (quiz answers and course confirmations) + bonus XP
    answer_xp = sum(a.earned_xp for a in AnswerRecord.query.filter_by(user_id=history.user_id))
    bonus_xp = sum(s.bonus_xp for s in SessionRecord.query.filter_by(user_id=history.user_id)) + 50
    assert db.session.get(UserXPStats, history.user_id).total_xp == answer_xp + bonus_xp


def test_course_confirmation_answers_carry_course_xp(history):
    confirmations = (AnswerRecord.query.filter_by(user_id=history.user_id)
                     .filter(AnswerRecord.question_id.startswith('course_confirmation_', autoescape=True))
                     .order_by(AnswerRecord.answer_id).all())

    assert [(a.question_id, a.earned_xp, a.is_correct) for a in confirmations] == [
        ('course_confirmation_s1', 25, True),
        ('course_confirmation_s1', 0, True),
        ('course_confirmation_s2', 0, False),
    ]
    row = UserCategoryXPStats.query.filter_by(user_id=history.user_id, category_id='programming').one()
    assert row.course_xp == 25


def test_missing_confirmation_answer_is_critical(history):
    confirmation = AnswerRecord.query.filter_by(question_id='course_confirmation_s1', earned_xp=25).one()
    db.session.delete(confirmation)
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    assert any('confirmation_xp' in issue for issue in report.critical_issues)
    assert any(issue.startswith('category[programming].course_xp') for issue in report.critical_issues)


def test_global_xp_drift_is_critical(history):
    stats = db.session.get(UserXPStats, history.user_id)
    stats.total_xp += 5
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    assert report.health_score == 70
    assert len(report.critical_issues) == 1
    assert report.critical_issues[0].startswith('global.total_xp')


def test_counter_drift_is_a_warning(history):
    stats = db.session.get(UserXPStats, history.user_id)
    stats.quiz_sessions_completed += 1
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    assert report.health_score == 90
    assert report.critical_issues == []
    assert len(report.warnings) == 1


def test_category_and_daily_drift(history):
    row = UserCategoryXPStats.query.filter_by(user_id=history.user_id, category_id='math').one()
    row.quiz_xp -= 10
    daily = DailyActivityRecord.query.filter_by(user_id=history.user_id).one()
    daily.course_sessions += 1
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    # category quiz_xp critical (10) + daily course_sessions warning (2)
    assert report.health_score == 88
    assert report.critical_issues == ['category[math].quiz_xp: recorded 50, rebuilt from events 60']


def test_missing_ledger_entry_is_critical(history):
    entry = SKPTransaction.query.filter(SKPTransaction.user_id == history.user_id,
                                        SKPTransaction.source.startswith('quiz_', autoescape=True)).first()
    db.session.delete(entry)
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    assert report.health_score < 100
    assert any('quiz_skp_ledger' in issue for issue in report.critical_issues)


def test_stray_daily_row_is_detected(history):
    db.session.add(DailyActivityRecord(user_id=history.user_id,
                                       activity_date=user_today(history) - timedelta(days=3),
                                       quiz_sessions=1, quiz_xp_earned=10, total_xp_earned=10))
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    assert any(issue.startswith('daily[') for issue in report.critical_issues)


def test_duplicate_first_completion_is_critical(history):
    original = SessionRecord.query.filter_by(user_id=history.user_id, unit_key='py101_g1_t1_s1',
                                             is_first_completion=True).one()
    clone = SessionRecord(
        user_id=history.user_id, kind='course', status=SessionRecord.STATUS_FINALIZED,
        category_id=original.category_id, subcategory_id=original.subcategory_id,
        difficulty=original.difficulty, course_id='py101', genre_id='g1', theme_id='t1',
        unit_session_id='s1', unit_key=original.unit_key, activity_date=original.activity_date,
        is_first_completion=True, first_completion_key=None,
    )
    db.session.add(clone)
    db.session.commit()

    report = VerifierService.verify_user(history.user_id)
    assert any('first_completions' in issue for issue in report.critical_issues)


def test_advisories_do_not_lower_score(app, learner, catalog):
    SubmissionService.submit_course_session(learner, course_payload('s1', course_id='odd'))
    SubmissionService.submit_course_session(
        learner, course_payload('s1', course_id='odd', client_first_completion_hint=True)
    )
    started = '2024-05-01T10:00:00Z'
    for _ in range(2):
        SubmissionService.submit_quiz_session(learner, quiz_payload([quiz_answer()], start_time=started))

    report = VerifierService.verify_user(learner.user_id)
    assert report.health_score == 100
    assert report.critical_issues == []
    joined = ' '.join(report.warnings)
    assert 'clamped' in joined
    assert 'first-completion hint' in joined
    assert 'duplicate quiz submission' in joined


def test_unfinalized_session_is_advisory(app, learner):
    db.session.add(SessionRecord(user_id=learner.user_id, kind='quiz', activity_date=user_today(learner)))
    db.session.commit()

    report = VerifierService.verify_user(learner.user_id)
    assert report.health_score == 100
    assert any('never finalized' in w for w in report.warnings)


def test_verification_is_read_only(history):
    before = db.session.get(UserXPStats, history.user_id).to_dict()
    counts = (SessionRecord.query.count(), AnswerRecord.query.count(), SKPTransaction.query.count())

    VerifierService.verify_user(history.user_id)
    VerifierService.verify_all()

    db.session.expire_all()
    assert db.session.get(UserXPStats, history.user_id).to_dict() == before
    assert (SessionRecord.query.count(), AnswerRecord.query.count(), SKPTransaction.query.count()) == counts


def test_verify_all_takes_lowest_score(history, other_learner):
    SubmissionService.submit_quiz_session(other_learner, quiz_payload([quiz_answer()]))
    stats = db.session.get(UserXPStats, other_learner.user_id)
    stats.bonus_xp += 1
    db.session.commit()

    summary = VerifierService.verify_all()
    assert summary.users_total == 2
    assert summary.truncated is False
    # only the bonus partition drifts; total_xp was left alone
    assert summary.health_score == 70
    data = summary.to_dict()
    assert [u['user_id'] for u in data['users']] == [other_learner.user_id]


def test_verify_all_respects_time_budget(history):
    summary = VerifierService.verify_all(time_budget=-1)
    assert summary.truncated is True
    assert summary.reports == []
    assert summary.to_dict()['users_checked'] == 0


def test_scheduled_audit(app, history, monkeypatch):
    from learnxp_app.core.extensions import scheduler

    monkeypatch.setattr(scheduler, 'app', app, raising=False)
    assert run_integrity_audit() == 100
