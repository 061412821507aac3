"""Immutable snapshot of the reward constants."""
from dataclasses import dataclass, field
from typing import Dict, Mapping

from .config import DIFFICULTY_LEVELS, RATE_KEYS, RateTableDefaultConfig


@dataclass(frozen=True)
class RateTable:
    """One priced version of every reward constant. Pure data, safe to share."""

    version: int
    quiz_xp: Mapping[str, int]
    course_xp: Mapping[str, int]
    bonus_xp: Mapping[str, int]
    skp: Mapping[str, int]
    levels: Mapping[str, int]
    wisdom_cards_per_perfect_quiz: int = 1
    badges_per_course_completion: int = 1
    raw: Mapping[str, int] = field(default_factory=dict, repr=False)

    @classmethod
    def from_values(cls, values: Mapping[str, int], version: int = 1) -> 'RateTable':
        """Build a table from upper-case keys, filling gaps with the defaults."""
        merged: Dict[str, int] = {key: getattr(RateTableDefaultConfig, key) for key in RATE_KEYS}
        merged.update({k: v for k, v in values.items() if k in merged})

        return cls(
            version=version,
            quiz_xp={d: merged[f'XP_QUIZ_{d.upper()}'] for d in DIFFICULTY_LEVELS},
            course_xp={d: merged[f'XP_COURSE_{d.upper()}'] for d in DIFFICULTY_LEVELS},
            bonus_xp={
                'accuracy_80': merged['XP_BONUS_ACCURACY_80'],
                'accuracy_100': merged['XP_BONUS_ACCURACY_100'],
                'course_completion': merged['XP_BONUS_COURSE_COMPLETION'],
            },
            skp={
                'quiz_correct': merged['SKP_QUIZ_CORRECT'],
                'quiz_incorrect': merged['SKP_QUIZ_INCORRECT'],
                'quiz_perfect_bonus': merged['SKP_QUIZ_PERFECT_BONUS'],
                'quiz_perfect_min_questions': merged['SKP_QUIZ_PERFECT_MIN_QUESTIONS'],
                'course_correct': merged['SKP_COURSE_CORRECT'],
                'course_incorrect': merged['SKP_COURSE_INCORRECT'],
                'course_complete_bonus': merged['SKP_COURSE_COMPLETE_BONUS'],
                'daily_streak_bonus': merged['SKP_DAILY_STREAK_BONUS'],
                'ten_day_streak_bonus': merged['SKP_TEN_DAY_STREAK_BONUS'],
            },
            levels={
                'overall': merged['LEVEL_THRESHOLD_OVERALL'],
                'category': merged['LEVEL_THRESHOLD_CATEGORY'],
                'subcategory': merged['LEVEL_THRESHOLD_SUBCATEGORY'],
            },
            wisdom_cards_per_perfect_quiz=merged['WISDOM_CARDS_PER_PERFECT_QUIZ'],
            badges_per_course_completion=merged['BADGES_PER_COURSE_COMPLETION'],
            raw=merged,
        )

    @classmethod
    def defaults(cls) -> 'RateTable':
        return cls.from_values({}, version=1)

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'xp': {
                'quiz': dict(self.quiz_xp),
                'course': dict(self.course_xp),
                'bonus': dict(self.bonus_xp),
            },
            'skp': dict(self.skp),
            'levels': dict(self.levels),
            'wisdom_cards_per_perfect_quiz': self.wisdom_cards_per_perfect_quiz,
            'badges_per_course_completion': self.badges_per_course_completion,
        }
