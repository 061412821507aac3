"""
Progress module: first-completion markers and course/theme completion.
"""
