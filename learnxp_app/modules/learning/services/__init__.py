from .submission_service import SubmissionService

__all__ = ['SubmissionService']
