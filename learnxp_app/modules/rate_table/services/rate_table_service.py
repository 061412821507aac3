# modules/rate_table/services/rate_table_service.py
import time
from typing import Any, Dict

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ....core.error_handlers import PersistenceError, ValidationError
from ....core.extensions import db
from ....models.app_settings import AppSettings
from ..config import (
    POSITIVE_KEYS,
    RATE_KEYS,
    SETTINGS_CATEGORY,
    VERSION_KEY,
    RateTableDefaultConfig,
)
from ..schemas import RateTable

_CACHE_KEY = 'learnxp.rate_table'


class RateTableService:
    """
    Loads the reward constants: code defaults overlaid with the
    'rate_table' settings rows. The resulting snapshot is cached per app
    for RATE_TABLE_CACHE_SECONDS.
    """

    @staticmethod
    def _cache() -> Dict[str, Any]:
        return current_app.extensions.setdefault(_CACHE_KEY, {'table': None, 'loaded_at': 0.0})

    @staticmethod
    def load(force: bool = False) -> RateTable:
        cache = RateTableService._cache()
        ttl = current_app.config.get('RATE_TABLE_CACHE_SECONDS', 300)
        if not force and cache['table'] is not None and time.monotonic() - cache['loaded_at'] < ttl:
            return cache['table']

        overrides = {}
        for setting in AppSettings.get_by_category(SETTINGS_CATEGORY):
            if setting.key not in RATE_KEYS:
                continue
            try:
                overrides[setting.key] = RateTableService._coerce(setting.key, setting.value)
            except ValidationError as exc:
                current_app.logger.warning(
                    f"Ignoring stored rate '{setting.key}'={setting.value!r}: {exc.message}"
                )

        version = int(AppSettings.get(VERSION_KEY, 1) or 1)
        table = RateTable.from_values(overrides, version=version)

        cache['table'] = table
        cache['loaded_at'] = time.monotonic()
        return table

    @staticmethod
    def clear_cache() -> None:
        cache = RateTableService._cache()
        cache['table'] = None
        cache['loaded_at'] = 0.0

    @staticmethod
    def _coerce(key: str, value: Any) -> int:
        if isinstance(value, bool):
            raise ValidationError(f"{key} must be an integer", errors={key: 'not an integer'})
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an integer", errors={key: 'not an integer'})
        if number < 0:
            raise ValidationError(f"{key} must not be negative", errors={key: 'negative'})
        if key in POSITIVE_KEYS and number == 0:
            raise ValidationError(f"{key} must be greater than zero", errors={key: 'zero'})
        return number

    @staticmethod
    def get_all_configs() -> Dict[str, Dict[str, Any]]:
        """Every rate grouped for the admin screen, with current and default values."""
        table = RateTableService.load()

        def _item(key):
            return {
                'key': key,
                'value': table.raw[key],
                'default': getattr(RateTableDefaultConfig, key),
            }

        groups = {
            'quiz_xp': 'XP_QUIZ_',
            'course_xp': 'XP_COURSE_',
            'bonus_xp': 'XP_BONUS_',
            'skp': 'SKP_',
            'levels': 'LEVEL_THRESHOLD_',
        }
        result = {name: {'items': [_item(k) for k in RATE_KEYS if k.startswith(prefix)]}
                  for name, prefix in groups.items()}
        result['cards'] = {'items': [_item('WISDOM_CARDS_PER_PERFECT_QUIZ'),
                                     _item('BADGES_PER_COURSE_COMPLETION')]}
        return {'version': table.version, 'groups': result}

    @staticmethod
    def update_rates(changes: Dict[str, Any], user_id: int = None) -> RateTable:
        """
        Store overrides and bump the rate version. All keys are validated
        before anything is written.
        """
        if not changes:
            raise ValidationError('No rate changes supplied')

        unknown = sorted(set(changes) - set(RATE_KEYS))
        if unknown:
            raise ValidationError('Unknown rate keys', errors={k: 'unknown key' for k in unknown})
        clean = {key: RateTableService._coerce(key, value) for key, value in changes.items()}

        try:
            for key, value in clean.items():
                AppSettings.set(key, value, category=SETTINGS_CATEGORY, data_type='int', user_id=user_id)
            version = int(AppSettings.get(VERSION_KEY, 1) or 1) + 1
            AppSettings.set(VERSION_KEY, version, category='system', data_type='int', user_id=user_id)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Rate table update failed: {exc}", exc_info=True)
            raise PersistenceError('Rate table update was not saved', operation='update_rates')

        current_app.logger.info(f"Rate table updated to version {version} by user {user_id}: {clean}")
        RateTableService.clear_cache()
        return RateTableService.load(force=True)
