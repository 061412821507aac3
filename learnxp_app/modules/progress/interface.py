"""
Progress Interface - public API for other modules.
"""
from .services.completion_service import CompletionService
from .services.course_completion_service import CourseCompletionService


class ProgressInterface:

    @staticmethod
    def touch(user_id, unit):
        return CompletionService.touch(user_id, unit)

    @staticmethod
    def is_first_completion(user_id, unit) -> bool:
        return CompletionService.is_first_completion(user_id, unit)

    @staticmethod
    def mark_completed(user_id, unit) -> bool:
        return CompletionService.mark_completed(user_id, unit)

    @staticmethod
    def complete_course(user_id, course_id):
        return CourseCompletionService.complete_course(user_id, course_id)
