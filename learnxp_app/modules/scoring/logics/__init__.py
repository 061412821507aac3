from .calculator import RewardCalculator, normalize_difficulty, calculate_level

__all__ = ['RewardCalculator', 'normalize_difficulty', 'calculate_level']
