"""
Tests for the streak bonus

Tests cover:
- Pure streak counting
- Due / owed arithmetic
- Idempotent payment across repeated triggers
- A rate raised during the day is still paid
"""

from datetime import date, timedelta

from learnxp_app import db
from learnxp_app.modules.gamification.logics.streak_logic import (
    calculate_streak_from_dates,
    new_streak_bonus,
    streak_bonus_due,
)
from learnxp_app.modules.gamification.models import SKPTransaction
from learnxp_app.modules.gamification.services.streak_bonus_service import StreakBonusService
from learnxp_app.modules.rate_table.services.rate_table_service import RateTableService
from learnxp_app.modules.stats.models import DailyActivityRecord, UserXPStats
from learnxp_app.utils.time_utils import user_today


class TestStreakLogic:

    def test_consecutive_days(self):
        today = date(2024, 1, 10)
        dates = [today - timedelta(days=i) for i in range(5)]
        assert calculate_streak_from_dates(dates, today) == 5

    def test_gap_breaks_streak(self):
        today = date(2024, 1, 10)
        assert calculate_streak_from_dates([today, today - timedelta(days=2)], today) == 1

    def test_no_activity_today_means_zero(self):
        today = date(2024, 1, 10)
        assert calculate_streak_from_dates([today - timedelta(days=1)], today) == 0

    def test_accepts_iso_strings(self):
        assert calculate_streak_from_dates(['2024-01-10', '2024-01-09', 'garbage'], date(2024, 1, 10)) == 2

    def test_due_amounts(self):
        assert streak_bonus_due(12, 5, 50) == 110
        assert streak_bonus_due(9, 5, 50) == 45
        assert streak_bonus_due(20, 5, 50) == 200
        assert streak_bonus_due(0, 5, 50) == 0

    def test_owed_never_negative(self):
        assert new_streak_bonus(110, 0) == 110
        assert new_streak_bonus(110, 110) == 0
        assert new_streak_bonus(50, 110) == 0


def _seed_streak(user, days, today=None):
    today = today or user_today(user)
    for offset in range(days):
        db.session.add(DailyActivityRecord(user_id=user.user_id, activity_date=today - timedelta(days=offset),
                                           quiz_sessions=1))
    db.session.commit()


def test_twelve_day_streak_paid_once(app, learner, admin):
    RateTableService.update_rates({'SKP_DAILY_STREAK_BONUS': 5, 'SKP_TEN_DAY_STREAK_BONUS': 50},
                                  user_id=admin.user_id)
    _seed_streak(learner, 12)

    first = StreakBonusService.compute_and_award(learner.user_id)
    assert first == {'streak_days': 12, 'newly_awarded_skp': 110, 'total_due': 110, 'already_paid': 0}

    for _ in range(3):
        again = StreakBonusService.compute_and_award(learner.user_id)
        assert again['newly_awarded_skp'] == 0
        assert again['already_paid'] == 110

    entries = SKPTransaction.query.filter_by(user_id=learner.user_id).all()
    assert [(e.source, e.amount) for e in entries] == [('streak_12days_v2', 110)]
    assert db.session.get(UserXPStats, learner.user_id).streak_skp == 110


def test_raised_rate_pays_the_difference_same_day(app, learner, admin):
    RateTableService.update_rates({'SKP_DAILY_STREAK_BONUS': 5, 'SKP_TEN_DAY_STREAK_BONUS': 50},
                                  user_id=admin.user_id)
    _seed_streak(learner, 12)
    StreakBonusService.compute_and_award(learner.user_id)

    RateTableService.update_rates({'SKP_DAILY_STREAK_BONUS': 20}, user_id=admin.user_id)
    second = StreakBonusService.compute_and_award(learner.user_id)

    assert second == {'streak_days': 12, 'newly_awarded_skp': 180, 'total_due': 290, 'already_paid': 110}
    entries = SKPTransaction.query.filter_by(user_id=learner.user_id).order_by(SKPTransaction.transaction_id).all()
    assert [(e.source, e.amount) for e in entries] == [('streak_12days_v2', 110), ('streak_12days_v3', 180)]
    assert db.session.get(UserXPStats, learner.user_id).streak_skp == 290

    assert StreakBonusService.compute_and_award(learner.user_id)['newly_awarded_skp'] == 0


def test_next_day_pays_only_the_difference(app, learner):
    today = user_today(learner)
    _seed_streak(learner, 3, today=today - timedelta(days=1))
    # yesterday's view of the streak
    db.session.add(DailyActivityRecord(user_id=learner.user_id, activity_date=today, quiz_sessions=0))
    db.session.commit()
    assert StreakBonusService.compute_and_award(learner.user_id)['streak_days'] == 0

    row = DailyActivityRecord.query.filter_by(user_id=learner.user_id, activity_date=today).one()
    row.quiz_sessions = 1
    db.session.commit()

    result = StreakBonusService.compute_and_award(learner.user_id)
    assert result['streak_days'] == 4
    assert result['newly_awarded_skp'] == 40


def test_course_trigger_skips_inactive_day(app, learner):
    result = StreakBonusService.award_if_active_today(learner.user_id)
    assert result['newly_awarded_skp'] == 0
    assert SKPTransaction.query.count() == 0
