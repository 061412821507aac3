from .completion_service import CompletionService
from .course_completion_service import CourseCompletionService

__all__ = ['CompletionService', 'CourseCompletionService']
