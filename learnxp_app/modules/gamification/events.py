"""
Event Handlers for Gamification Module.

Listens to session signals and schedules the streak bonus outside the
request path. A receiver returns ``{'streak_bonus': result}`` when the
task ran inline, so the caller can echo it back.
"""
from flask import current_app

from ...core.background import run_in_background
from ...core.signals import course_session_completed, quiz_session_completed


@quiz_session_completed.connect
def on_quiz_session_completed(sender, **kwargs):
    """
    Every quiz completion re-evaluates the streak bonus.

    Expected kwargs:
        - user_id: int
        - record_id: int
    """
    from .services.streak_bonus_service import StreakBonusService

    user_id = kwargs.get('user_id')
    if not user_id:
        return None

    result = run_in_background(StreakBonusService.compute_and_award, user_id, task_name='streak_bonus')
    return {'streak_bonus': result} if result is not None else None


@course_session_completed.connect
def on_course_session_completed(sender, **kwargs):
    """
    Course sessions only trigger the streak check when today already
    shows activity.

    Expected kwargs:
        - user_id: int
        - record_id: int
        - is_first_completion: bool
    """
    from .services.streak_bonus_service import StreakBonusService

    user_id = kwargs.get('user_id')
    if not user_id:
        return None

    current_app.logger.debug(f"[Gamification] course session {kwargs.get('record_id')} for user {user_id}")
    result = run_in_background(StreakBonusService.award_if_active_today, user_id,
                               task_name='course_streak_bonus')
    return {'streak_bonus': result} if result is not None else None
