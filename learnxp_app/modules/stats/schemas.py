from dataclasses import dataclass, fields


@dataclass
class StatsDelta:
    """Increments to apply to one aggregate row. Unused fields stay zero."""

    quiz_xp: int = 0
    course_xp: int = 0
    bonus_xp: int = 0

    quiz_skp: int = 0
    course_skp: int = 0
    bonus_skp: int = 0
    streak_skp: int = 0
    skp_spent: int = 0

    quiz_sessions: int = 0
    course_sessions: int = 0
    questions_answered: int = 0
    questions_correct: int = 0

    wisdom_cards: int = 0
    badges: int = 0
    time_spent_seconds: int = 0

    @property
    def total_xp(self) -> int:
        return self.quiz_xp + self.course_xp + self.bonus_xp

    @property
    def total_skp(self) -> int:
        return self.quiz_skp + self.course_skp + self.bonus_skp + self.streak_skp

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) == 0 for f in fields(self))


@dataclass(frozen=True)
class ScopeUpdate:
    """One planned rollup: which scope, which row, what delta."""

    scope: str
    delta: StatsDelta
    key: object = None
    category_id: str = None

    @property
    def label(self) -> str:
        return self.scope if self.key is None else f"{self.scope}:{self.key}"
