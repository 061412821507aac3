"""
Centralized time helpers.
Timestamps are stored in UTC; calendar days (daily activity, streaks)
are taken in the user's own timezone.
"""
from datetime import date, datetime, timezone

import pytz
from flask import current_app


def utcnow() -> datetime:
    """
    Get the current timezone-aware UTC datetime.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc)


def resolve_timezone(user=None):
    """Return the pytz timezone for ``user``, falling back to SYSTEM_TIMEZONE."""
    tz_name = getattr(user, 'timezone', None) or current_app.config.get('SYSTEM_TIMEZONE', 'UTC')
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        current_app.logger.warning(f"Unknown timezone '{tz_name}', using UTC")
        return pytz.UTC


def user_today(user=None, now: datetime = None) -> date:
    """The calendar date it currently is for ``user``."""
    now = now or utcnow()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(resolve_timezone(user)).date()


def parse_client_timestamp(value):
    """Parse an ISO timestamp sent by a client; ``None`` if absent or unparsable."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
