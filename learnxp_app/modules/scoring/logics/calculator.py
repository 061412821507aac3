"""
Reward Calculator - pure pricing of learning events.

This module contains ONLY pure Python logic.
NO database, NO Flask, NO model dependencies allowed.
"""
from typing import Iterable, Optional, Tuple

from ...rate_table.config import DIFFICULTY_LEVELS
from ...rate_table.schemas import RateTable
from ..schemas import CourseReward, QuizReward

LOWEST_DIFFICULTY = DIFFICULTY_LEVELS[0]
DIFFICULTY_ALIASES = {'beginner': 'basic'}

# Highest tier first; thresholds are inclusive percentages
ACCURACY_TIERS = (('accuracy_100', 100), ('accuracy_80', 80))


def normalize_difficulty(value) -> Tuple[str, bool]:
    """
    Map a catalog difficulty onto the rate-table enum.

    Returns ``(difficulty, clamped)``. Unknown or empty values fall back to
    the lowest tier with ``clamped=True`` so bad content data never blocks
    a completion.

        >>> normalize_difficulty('Advanced')
        ('advanced', False)
        >>> normalize_difficulty('legendary')
        ('basic', True)
    """
    text = str(value or '').strip().lower()
    text = DIFFICULTY_ALIASES.get(text, text)
    if text in DIFFICULTY_LEVELS:
        return text, False
    return LOWEST_DIFFICULTY, True


def accuracy_percent(correct: int, total: int) -> float:
    """Accuracy in percent, rounded to 2 decimals for display and storage."""
    if total <= 0:
        return 0.0
    return round(correct * 100 / total, 2)


def accuracy_bonus_tier(accuracy: float) -> Optional[str]:
    """Bonus tier for an accuracy percentage: 100.0 exact, 80.0 inclusive."""
    for tier, threshold in ACCURACY_TIERS:
        if accuracy >= threshold:
            return tier
    return None


def _tier_from_counts(correct: int, total: int) -> Optional[str]:
    # Integer comparison keeps the boundaries exact for any question count
    for tier, threshold in ACCURACY_TIERS:
        if correct * 100 >= threshold * total:
            return tier
    return None


def calculate_level(xp: int, threshold: int) -> dict:
    """
    Level for an XP amount with a fixed XP-per-level threshold.

        >>> calculate_level(2350, 1000)['level']
        3
    """
    xp = max(0, int(xp or 0))
    threshold = max(1, int(threshold))
    level = xp // threshold + 1
    level_start = (level - 1) * threshold
    return {
        'level': level,
        'level_start_xp': level_start,
        'xp_in_level': xp - level_start,
        'xp_to_next_level': level_start + threshold - xp,
        'threshold': threshold,
    }


class RewardCalculator:
    """Pricing engine for quiz sessions and course sessions."""

    @staticmethod
    def calculate_quiz_reward(answers: Iterable, rates: RateTable) -> QuizReward:
        """
        Price a quiz session.

        Args:
            answers: objects with ``is_correct`` and a normalized ``difficulty``.
            rates: rate table snapshot.

        XP is the difficulty rate per correct answer plus one accuracy bonus.
        SKP is a per-answer rate plus a perfect-score bonus for sessions of
        at least ``quiz_perfect_min_questions`` answers.
        """
        answers = list(answers)
        total = len(answers)
        if total == 0:
            raise ValueError('A quiz session needs at least one answer')

        answer_xp = []
        correct = 0
        for answer in answers:
            if answer.is_correct:
                correct += 1
                difficulty, _ = normalize_difficulty(answer.difficulty)
                answer_xp.append(rates.quiz_xp[difficulty])
            else:
                answer_xp.append(0)

        base_xp = sum(answer_xp)
        tier = _tier_from_counts(correct, total)
        bonus_xp = rates.bonus_xp[tier] if tier else 0
        perfect = correct == total
        wisdom_cards = rates.wisdom_cards_per_perfect_quiz if perfect else 0

        incorrect = total - correct
        skp = correct * rates.skp['quiz_correct'] + incorrect * rates.skp['quiz_incorrect']
        perfect_bonus_skp = 0
        if perfect and total >= rates.skp['quiz_perfect_min_questions']:
            perfect_bonus_skp = rates.skp['quiz_perfect_bonus']
            skp += perfect_bonus_skp

        return QuizReward(
            answer_xp=tuple(answer_xp),
            base_xp=base_xp,
            bonus_xp=bonus_xp,
            total_xp=base_xp + bonus_xp,
            skp=skp,
            wisdom_cards=wisdom_cards,
            correct=correct,
            total=total,
            accuracy=accuracy_percent(correct, total),
            bonus_tier=tier,
            perfect_bonus_skp=perfect_bonus_skp,
        )

    @staticmethod
    def calculate_course_reward(difficulty: str, is_first_completion: bool,
                                quiz_correct: bool, rates: RateTable) -> CourseReward:
        """
        Price a course session. Review sessions earn nothing; a first
        completion earns SKP either way and XP only with a correct
        confirmation quiz.
        """
        if not is_first_completion:
            return CourseReward(xp=0, skp=0, is_first_completion=False)

        difficulty, _ = normalize_difficulty(difficulty)
        xp = rates.course_xp[difficulty] if quiz_correct else 0
        skp = rates.skp['course_correct'] if quiz_correct else rates.skp['course_incorrect']
        return CourseReward(xp=xp, skp=skp, is_first_completion=True)
