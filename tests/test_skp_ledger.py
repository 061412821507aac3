"""
Tests for the SKP ledger

Tests cover:
- Balance equals ledger earned minus spent
- Idempotent credits per source
- Spending rules
"""

import pytest

from learnxp_app import db
from learnxp_app.core.error_handlers import ValidationError
from learnxp_app.modules.gamification.logics.ledger_logic import source_kind
from learnxp_app.modules.gamification.services.skp_ledger_service import SKPLedgerService
from learnxp_app.modules.learning.services.submission_service import SubmissionService
from learnxp_app.modules.stats.models import UserXPStats
from conftest import course_payload, quiz_answer, quiz_payload


def _assert_balance_matches(user_id):
    totals = SKPLedgerService.get_totals(user_id)
    stats = db.session.get(UserXPStats, user_id)
    assert totals['earned'] == stats.total_skp
    assert totals['spent'] == stats.skp_spent
    assert totals['balance'] == stats.skp_balance


def test_balance_follows_ledger(app, learner, catalog):
    SubmissionService.submit_quiz_session(learner, quiz_payload([quiz_answer(True)] * 3))
    _assert_balance_matches(learner.user_id)

    SubmissionService.submit_quiz_session(learner, quiz_payload([quiz_answer(False), quiz_answer(True)]))
    SubmissionService.submit_course_session(learner, course_payload('s1'))
    SubmissionService.submit_course_session(learner, course_payload('s2', quiz_correct=False))
    _assert_balance_matches(learner.user_id)

    SKPLedgerService.spend(learner.user_id, 25, 'spend_shop_1', 'Hint pack')
    _assert_balance_matches(learner.user_id)

    by_kind = SKPLedgerService.get_earned_by_kind(learner.user_id)
    assert by_kind['quiz'] > 0
    assert by_kind['course'] == 10 + 2
    assert by_kind['bonus'] == 50  # course completion
    assert by_kind['streak'] == 10  # one active day at the default rate


def test_same_source_credits_once(app, learner):
    assert SKPLedgerService.credit(learner.user_id, 10, 'quiz_1') is not None
    assert SKPLedgerService.credit(learner.user_id, 10, 'quiz_1') is None
    assert SKPLedgerService.get_totals(learner.user_id)['earned'] == 10
    _assert_balance_matches(learner.user_id)


def test_zero_credit_is_skipped(app, learner):
    assert SKPLedgerService.credit(learner.user_id, 0, 'quiz_2') is None
    assert SKPLedgerService.get_totals(learner.user_id) == {'earned': 0, 'spent': 0, 'balance': 0}


@pytest.mark.parametrize('amount', [0, -5, 'lots', 1000])
def test_invalid_spend_rejected(app, learner, amount):
    SKPLedgerService.credit(learner.user_id, 30, 'quiz_3')
    with pytest.raises(ValidationError):
        SKPLedgerService.spend(learner.user_id, amount, 'spend_x')
    assert SKPLedgerService.get_totals(learner.user_id)['balance'] == 30


def test_history_newest_first(app, learner):
    for record_id in range(1, 4):
        SKPLedgerService.credit(learner.user_id, record_id, f'quiz_{record_id}')
    entries, total = SKPLedgerService.get_history(learner.user_id, page=1, per_page=2)
    assert total == 3
    assert [e.source for e in entries] == ['quiz_3', 'quiz_2']


@pytest.mark.parametrize('source, kind', [
    ('quiz_12', 'quiz'),
    ('course_40', 'course'),
    ('course_complete_py101', 'bonus'),
    ('streak_12days_v2', 'streak'),
    ('spend_shop_1', 'spend'),
])
def test_source_kind(source, kind):
    assert source_kind(source) == kind
