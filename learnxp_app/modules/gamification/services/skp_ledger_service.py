# File: learnxp_app/modules/gamification/services/skp_ledger_service.py
"""
SKP Ledger Service
==================
Append-only log of every SKP credit and debit. The ledger is the ground
truth; the balance held in UserXPStats is a cache of it.
"""
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ....core.error_handlers import PersistenceError, ValidationError
from ....core.extensions import db
from ....core.signals import skp_credited
from ...stats.interface import SCOPE_GLOBAL, ScopeUpdate, StatsDelta, StatsInterface
from ..logics.ledger_logic import (
    SOURCE_KIND_BONUS,
    SOURCE_KIND_COURSE,
    SOURCE_KIND_QUIZ,
    SOURCE_KIND_STREAK,
    STREAK_PREFIX,
    source_kind,
)
from ..models import SKPTransaction

_KIND_TO_DELTA = {
    SOURCE_KIND_QUIZ: 'quiz_skp',
    SOURCE_KIND_COURSE: 'course_skp',
    SOURCE_KIND_STREAK: 'streak_skp',
    SOURCE_KIND_BONUS: 'bonus_skp',
}


class SKPLedgerService:
    """Writes and reads the SKP ledger."""

    @staticmethod
    def record_entry(user_id: int, amount: int, source: str, description: str = None,
                     direction: str = SKPTransaction.DIRECTION_EARNED) -> Optional[SKPTransaction]:
        """
        Append one entry. Returns None when there is nothing to record or
        an entry with the same source already exists.
        """
        if not amount or amount <= 0:
            return None

        entry = SKPTransaction(
            user_id=user_id,
            direction=direction,
            amount=int(amount),
            source=source,
            description=description,
        )
        db.session.add(entry)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.info(f"SKP entry '{source}' already recorded for user {user_id}, skipped")
            return None
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to write SKP entry '{source}' for user {user_id}: {exc}",
                                     exc_info=True)
            raise PersistenceError('SKP could not be recorded, please retry', operation='record_skp')

        skp_credited.send(None, user_id=user_id, amount=entry.amount, direction=direction, source=source)
        return entry

    @staticmethod
    def credit(user_id: int, amount: int, source: str, description: str = None,
               record_id: int = None) -> Optional[SKPTransaction]:
        """Ledger entry first, then the cached balance on the global stats row."""
        entry = SKPLedgerService.record_entry(user_id, amount, source, description)
        if entry is None:
            return None

        delta = StatsDelta(**{_KIND_TO_DELTA[source_kind(source)]: entry.amount})
        StatsInterface.apply_updates(user_id, [ScopeUpdate(SCOPE_GLOBAL, delta)], record_id=record_id)
        return entry

    @staticmethod
    def spend(user_id: int, amount: int, source: str, description: str = None) -> Optional[SKPTransaction]:
        """Debit SKP. The ledger balance must cover the amount."""
        try:
            amount = int(amount)
        except (TypeError, ValueError):
            raise ValidationError('amount must be an integer', errors={'amount': 'not an integer'})
        if amount <= 0:
            raise ValidationError('amount must be positive', errors={'amount': 'not positive'})

        balance = SKPLedgerService.get_totals(user_id)['balance']
        if amount > balance:
            raise ValidationError('Insufficient SKP balance',
                                  errors={'amount': f'balance is {balance}'})

        entry = SKPLedgerService.record_entry(user_id, amount, source, description,
                                              direction=SKPTransaction.DIRECTION_SPENT)
        if entry is not None:
            StatsInterface.apply_updates(user_id, [ScopeUpdate(SCOPE_GLOBAL, StatsDelta(skp_spent=amount))])
        return entry

    @staticmethod
    def _sum(user_id: int, direction: str) -> int:
        total = (
            db.session.query(func.coalesce(func.sum(SKPTransaction.amount), 0))
            .filter(SKPTransaction.user_id == user_id, SKPTransaction.direction == direction)
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def get_totals(user_id: int) -> Dict[str, int]:
        earned = SKPLedgerService._sum(user_id, SKPTransaction.DIRECTION_EARNED)
        spent = SKPLedgerService._sum(user_id, SKPTransaction.DIRECTION_SPENT)
        return {'earned': earned, 'spent': spent, 'balance': earned - spent}

    @staticmethod
    def get_earned_by_kind(user_id: int) -> Dict[str, int]:
        """Earned SKP split into quiz / course / streak / bonus."""
        totals = {kind: 0 for kind in _KIND_TO_DELTA}
        rows = (
            db.session.query(SKPTransaction.source, SKPTransaction.amount)
            .filter(SKPTransaction.user_id == user_id,
                    SKPTransaction.direction == SKPTransaction.DIRECTION_EARNED)
            .all()
        )
        for source, amount in rows:
            totals[source_kind(source)] = totals.get(source_kind(source), 0) + amount
        return totals

    @staticmethod
    def streak_paid_total(user_id: int) -> int:
        """Sum of every streak bonus already paid to the user."""
        total = (
            db.session.query(func.coalesce(func.sum(SKPTransaction.amount), 0))
            .filter(SKPTransaction.user_id == user_id,
                    SKPTransaction.direction == SKPTransaction.DIRECTION_EARNED,
                    SKPTransaction.source.startswith(STREAK_PREFIX, autoescape=True))
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def get_history(user_id: int, page: int = 1, per_page: int = None) -> Tuple[list, int]:
        """Newest entries first."""
        per_page = per_page or current_app.config.get('SKP_HISTORY_PAGE_SIZE', 20)
        pagination = (
            SKPTransaction.query.filter_by(user_id=user_id)
            .order_by(SKPTransaction.created_at.desc(), SKPTransaction.transaction_id.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )
        return pagination.items, pagination.total
