from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class QuizReward:
    """Priced quiz session. ``answer_xp`` lines up with the submitted answers."""

    answer_xp: Tuple[int, ...]
    base_xp: int
    bonus_xp: int
    total_xp: int
    skp: int
    wisdom_cards: int
    correct: int
    total: int
    accuracy: float
    bonus_tier: Optional[str] = None
    perfect_bonus_skp: int = 0

    def to_dict(self) -> dict:
        return {
            'base_xp': self.base_xp,
            'bonus_xp': self.bonus_xp,
            'total_xp': self.total_xp,
            'skp': self.skp,
            'wisdom_cards': self.wisdom_cards,
            'accuracy': self.accuracy,
            'bonus_tier': self.bonus_tier,
        }


@dataclass(frozen=True)
class CourseReward:
    xp: int
    skp: int
    is_first_completion: bool
