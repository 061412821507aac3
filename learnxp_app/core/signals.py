"""
Central Signal Registry for Event-Driven Architecture.

Uses blinker namespaces so modules stay decoupled: the submission
pipeline publishes, gamification and stats subscribe in their events.py.

Usage:
    # Publisher (sender)
    from learnxp_app.core.signals import quiz_session_completed
    quiz_session_completed.send(None, user_id=1, record_id=2, ...)

    # Subscriber (receiver) - in module's events.py
    @quiz_session_completed.connect
    def on_quiz_session_completed(sender, **kwargs):
        ...
"""
from blinker import Namespace

# ============================================
# Learning Event Signals
# ============================================
ledger_signals = Namespace()

# Signal: Fired after a quiz session is recorded, priced and rolled up
# Payload: user_id, record_id, total_xp, bonus_xp, skp_earned
quiz_session_completed = ledger_signals.signal('quiz_session_completed')

# Signal: Fired after a course session is recorded, priced and rolled up
# Payload: user_id, record_id, unit (UnitKey), is_first_completion, earned_xp
course_session_completed = ledger_signals.signal('course_session_completed')

# Signal: Fired when a first-completion claim lost the uniqueness race
# Payload: user_id, record_id, unit_key
first_completion_conflict = ledger_signals.signal('first_completion_conflict')

# Signal: Fired when an SKP ledger entry is written
# Payload: user_id, amount, direction, source
skp_credited = ledger_signals.signal('skp_credited')

# Signal: Fired when one or more rollup scopes could not be updated
# Payload: user_id, record_id, failed_scopes
aggregate_update_failed = ledger_signals.signal('aggregate_update_failed')
