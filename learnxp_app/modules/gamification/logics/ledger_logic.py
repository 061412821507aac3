"""
Ledger Logic - source tags of SKP ledger entries.

Pure functions, no database access.
"""

SOURCE_KIND_QUIZ = 'quiz'
SOURCE_KIND_COURSE = 'course'
SOURCE_KIND_STREAK = 'streak'
SOURCE_KIND_BONUS = 'bonus'
SOURCE_KIND_SPEND = 'spend'

STREAK_PREFIX = 'streak_'


def quiz_source(record_id: int) -> str:
    return f'quiz_{record_id}'


def course_source(record_id: int) -> str:
    return f'course_{record_id}'


def course_complete_source(course_id: str) -> str:
    return f'course_complete_{course_id}'


def streak_source(streak_days: int, rate_version: int) -> str:
    """One entry per streak length and rate version, so a raised rate can still be paid."""
    return f'{STREAK_PREFIX}{streak_days}days_v{rate_version}'


def source_kind(source: str) -> str:
    """
    Which SKP bucket an earned entry belongs to.

        >>> source_kind('course_complete_py101')
        'bonus'
        >>> source_kind('course_40')
        'course'
    """
    source = source or ''
    if source.startswith('course_complete_'):
        return SOURCE_KIND_BONUS
    if source.startswith('course_'):
        return SOURCE_KIND_COURSE
    if source.startswith('quiz_'):
        return SOURCE_KIND_QUIZ
    if source.startswith(STREAK_PREFIX):
        return SOURCE_KIND_STREAK
    if source.startswith('spend_'):
        return SOURCE_KIND_SPEND
    return SOURCE_KIND_BONUS


def streak_description(streak_days: int) -> str:
    return (f'Learning streak bonus: {streak_days} consecutive days '
            f'(includes {streak_days // 10} ten-day bonuses)')
