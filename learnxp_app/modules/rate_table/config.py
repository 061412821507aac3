# modules/rate_table/config.py

DIFFICULTY_LEVELS = ('basic', 'intermediate', 'advanced', 'expert')


class RateTableDefaultConfig:
    """
    Default reward constants.
    Acts as a fallback for every key missing from the 'rate_table' settings.
    """

    # --- Quiz XP (per correct answer) ---
    XP_QUIZ_BASIC = 10
    XP_QUIZ_INTERMEDIATE = 20
    XP_QUIZ_ADVANCED = 30
    XP_QUIZ_EXPERT = 50

    # --- Course XP (per first completion with a correct confirmation quiz) ---
    XP_COURSE_BASIC = 15
    XP_COURSE_INTERMEDIATE = 25
    XP_COURSE_ADVANCED = 35
    XP_COURSE_EXPERT = 55

    # --- Bonus XP ---
    XP_BONUS_ACCURACY_80 = 20
    XP_BONUS_ACCURACY_100 = 30
    XP_BONUS_COURSE_COMPLETION = 50

    # --- SKP ---
    SKP_QUIZ_CORRECT = 10
    SKP_QUIZ_INCORRECT = 2
    SKP_QUIZ_PERFECT_BONUS = 50
    SKP_QUIZ_PERFECT_MIN_QUESTIONS = 3
    SKP_COURSE_CORRECT = 10
    SKP_COURSE_INCORRECT = 2
    SKP_COURSE_COMPLETE_BONUS = 50
    SKP_DAILY_STREAK_BONUS = 10
    SKP_TEN_DAY_STREAK_BONUS = 100

    # --- Levels (XP per level) ---
    LEVEL_THRESHOLD_OVERALL = 1000
    LEVEL_THRESHOLD_CATEGORY = 500
    LEVEL_THRESHOLD_SUBCATEGORY = 500

    # --- Cards & badges ---
    WISDOM_CARDS_PER_PERFECT_QUIZ = 1
    BADGES_PER_COURSE_COMPLETION = 1


RATE_KEYS = tuple(key for key in vars(RateTableDefaultConfig) if key.isupper())

# Level thresholds are divisors and may not be zero
POSITIVE_KEYS = ('LEVEL_THRESHOLD_OVERALL', 'LEVEL_THRESHOLD_CATEGORY', 'LEVEL_THRESHOLD_SUBCATEGORY')

SETTINGS_CATEGORY = 'rate_table'
VERSION_KEY = 'RATE_TABLE_VERSION'
