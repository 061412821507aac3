"""
Tests for the rate table

Tests cover:
- Code defaults when nothing is stored
- Admin overrides and version bumps
- Validation of override values
- Cache behaviour
"""

import pytest

from learnxp_app import db
from learnxp_app.core.error_handlers import ValidationError
from learnxp_app.models import AppSettings
from learnxp_app.modules.rate_table.config import RateTableDefaultConfig, SETTINGS_CATEGORY
from learnxp_app.modules.rate_table.services.rate_table_service import RateTableService


def test_defaults_when_nothing_stored(app):
    table = RateTableService.load(force=True)

    assert table.version == 1
    assert table.quiz_xp['basic'] == RateTableDefaultConfig.XP_QUIZ_BASIC
    assert table.course_xp['intermediate'] == RateTableDefaultConfig.XP_COURSE_INTERMEDIATE
    assert table.bonus_xp['accuracy_100'] == RateTableDefaultConfig.XP_BONUS_ACCURACY_100
    assert table.skp['daily_streak_bonus'] == RateTableDefaultConfig.SKP_DAILY_STREAK_BONUS
    assert table.levels['overall'] == RateTableDefaultConfig.LEVEL_THRESHOLD_OVERALL


def test_update_overrides_and_bumps_version(app, admin):
    table = RateTableService.update_rates({'XP_QUIZ_BASIC': 12, 'SKP_DAILY_STREAK_BONUS': '5'},
                                          user_id=admin.user_id)

    assert table.version == 2
    assert table.quiz_xp['basic'] == 12
    assert table.skp['daily_streak_bonus'] == 5
    # untouched keys keep their defaults
    assert table.quiz_xp['expert'] == RateTableDefaultConfig.XP_QUIZ_EXPERT

    stored = db.session.get(AppSettings, 'XP_QUIZ_BASIC')
    assert stored.category == SETTINGS_CATEGORY
    assert stored.updated_by == admin.user_id


@pytest.mark.parametrize('changes', [
    {'NOT_A_RATE': 1},
    {'XP_QUIZ_BASIC': -1},
    {'XP_QUIZ_BASIC': 'ten'},
    {'XP_QUIZ_BASIC': True},
    {'LEVEL_THRESHOLD_OVERALL': 0},
    {},
])
def test_invalid_updates_rejected(app, changes):
    with pytest.raises(ValidationError):
        RateTableService.update_rates(changes)
    assert RateTableService.load(force=True).version == 1


def test_invalid_batch_writes_nothing(app):
    with pytest.raises(ValidationError):
        RateTableService.update_rates({'XP_QUIZ_BASIC': 99, 'XP_QUIZ_EXPERT': -5})
    assert RateTableService.load(force=True).quiz_xp['basic'] == RateTableDefaultConfig.XP_QUIZ_BASIC


def test_bad_stored_value_falls_back_to_default(app):
    AppSettings.set('XP_QUIZ_ADVANCED', 'oops', category=SETTINGS_CATEGORY)
    db.session.commit()

    table = RateTableService.load(force=True)
    assert table.quiz_xp['advanced'] == RateTableDefaultConfig.XP_QUIZ_ADVANCED


def test_snapshot_is_cached_until_cleared(app):
    app.config['RATE_TABLE_CACHE_SECONDS'] = 300
    first = RateTableService.load(force=True)

    AppSettings.set('XP_QUIZ_BASIC', 99, category=SETTINGS_CATEGORY)
    db.session.commit()
    assert RateTableService.load() is first

    RateTableService.clear_cache()
    assert RateTableService.load().quiz_xp['basic'] == 99
