"""
Streak Logic - Pure functions for streak calculation.

This module contains ONLY pure Python logic.
NO database, NO Flask, NO model dependencies allowed.
"""
from datetime import date, datetime, timedelta
from typing import Iterable, Set, Union


def calculate_streak_from_dates(
    activity_dates: Iterable[Union[date, datetime, str]],
    today: date = None
) -> int:
    """
    Count consecutive active days ending today.

    Args:
        activity_dates: dates that had at least one session (date, datetime or ISO string).
        today: reference day (default: date.today()).

    Returns:
        Streak length. A day without activity today means 0, even if
        yesterday was active.

    Examples:
        >>> from datetime import date
        >>> dates = [date(2024, 1, 3), date(2024, 1, 2), date(2024, 1, 1)]
        >>> calculate_streak_from_dates(dates, today=date(2024, 1, 3))
        3

        >>> # Gap in dates
        >>> dates = [date(2024, 1, 3), date(2024, 1, 1)]  # Missing Jan 2
        >>> calculate_streak_from_dates(dates, today=date(2024, 1, 3))
        1
    """
    learned_dates: Set[date] = set()
    for val in activity_dates or ():
        normalized = _normalize_to_date(val)
        if normalized:
            learned_dates.add(normalized)

    if today is None:
        today = date.today()

    streak = 0
    current_check = today
    while current_check in learned_dates:
        streak += 1
        current_check -= timedelta(days=1)

    return streak


def streak_bonus_due(streak_days: int, daily_rate: int, ten_day_rate: int) -> int:
    """
    Total SKP a streak of ``streak_days`` is worth.

        >>> streak_bonus_due(12, 5, 50)
        110
    """
    if streak_days <= 0:
        return 0
    return streak_days * daily_rate + (streak_days // 10) * ten_day_rate


def new_streak_bonus(due: int, already_paid: int) -> int:
    """What is still owed after earlier streak payments."""
    return max(0, due - already_paid)


def _normalize_to_date(val: Union[date, datetime, str, None]) -> Union[date, None]:
    """
    Normalize various date representations to a date object.

    Args:
        val: Can be date, datetime, ISO string, or None.

    Returns:
        date object or None if conversion fails.
    """
    if val is None:
        return None

    if isinstance(val, datetime):
        return val.date()

    if isinstance(val, date):
        return val

    if isinstance(val, str):
        try:
            return datetime.fromisoformat(val).date()
        except ValueError:
            try:
                return datetime.strptime(val, '%Y-%m-%d').date()
            except ValueError:
                return None

    return None
