"""
Event Handlers for Progress Module.

A first completion may finish a theme or a whole course; that check runs
in the background so the session response does not wait for it.
"""
from ...core.background import run_in_background
from ...core.signals import course_session_completed


@course_session_completed.connect
def on_course_session_completed(sender, **kwargs):
    """
    Expected kwargs:
        - user_id: int
        - unit: UnitKey
        - is_first_completion: bool
    """
    from .services.course_completion_service import CourseCompletionService

    if not kwargs.get('is_first_completion'):
        return None

    result = run_in_background(CourseCompletionService.run_cascade, kwargs['user_id'], kwargs['unit'],
                               task_name='completion_cascade')
    return {'completion_cascade': result} if result is not None else None
