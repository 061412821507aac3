"""Validated inputs for the event recorder."""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from ..scoring.logics.calculator import normalize_difficulty


@dataclass(frozen=True)
class UnitKey:
    """A learning unit: course > genre > theme > session."""

    course_id: str
    genre_id: str
    theme_id: str
    session_id: str

    @property
    def key(self) -> str:
        return f"{self.course_id}_{self.genre_id}_{self.theme_id}_{self.session_id}"

    def to_dict(self) -> dict:
        return {
            'course_id': self.course_id,
            'genre_id': self.genre_id,
            'theme_id': self.theme_id,
            'session_id': self.session_id,
        }


def _truthy(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes')
    return bool(value)


@dataclass(frozen=True)
class AnswerInput:
    question_id: str
    is_correct: bool
    category_id: str
    subcategory_id: str
    difficulty: str
    difficulty_clamped: bool = False
    raw_difficulty: Optional[str] = None
    user_answer: Optional[str] = None
    time_spent: int = 0
    is_timeout: bool = False

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], index: int) -> 'AnswerInput':
        """Build from a submitted answer; raises ValueError naming what is missing."""
        if not isinstance(data, Mapping):
            raise ValueError('answer must be an object')

        missing = [f for f in ('category_id', 'subcategory_id', 'difficulty')
                   if data.get(f) in (None, '')]
        if missing:
            raise ValueError(f"missing {', '.join(missing)}")

        difficulty, clamped = normalize_difficulty(data.get('difficulty'))
        try:
            time_spent = max(0, int(data.get('time_spent') or 0))
        except (TypeError, ValueError):
            raise ValueError('time_spent must be a number')

        user_answer = data.get('user_answer')
        return cls(
            question_id=str(data.get('question_id') or f'q{index + 1}'),
            is_correct=_truthy(data.get('is_correct')),
            category_id=str(data['category_id']),
            subcategory_id=str(data['subcategory_id']),
            difficulty=difficulty,
            difficulty_clamped=clamped,
            raw_difficulty=str(data.get('difficulty')),
            user_answer=None if user_answer is None else str(user_answer),
            time_spent=time_spent,
            is_timeout=_truthy(data.get('is_timeout')),
        )


@dataclass(frozen=True)
class QuizSessionMeta:
    total_questions: int
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration_seconds: int = 0


@dataclass(frozen=True)
class CourseSessionInput:
    unit: UnitKey
    category_id: str
    subcategory_id: str
    quiz_correct: bool
    client_first_completion_hint: Optional[bool] = None
    duration_seconds: int = 0
