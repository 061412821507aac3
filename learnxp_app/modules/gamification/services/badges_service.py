# File: learnxp_app/modules/gamification/services/badges_service.py
from typing import List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ....core.extensions import db
from ..models import UserBadge


class BadgeService:
    """Badges granted for course completions."""

    @staticmethod
    def award_badge(user_id: int, badge_code: str, title: str = None, course_id: str = None) -> bool:
        """Grant a badge once; returns False if the user already holds it."""
        badge = UserBadge(user_id=user_id, badge_code=badge_code, title=title, course_id=course_id)
        db.session.add(badge)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return False
        current_app.logger.info(f"User {user_id} earned badge '{badge_code}'")
        return True

    @staticmethod
    def get_user_badges(user_id: int) -> List[UserBadge]:
        return UserBadge.query.filter_by(user_id=user_id).order_by(UserBadge.earned_at.desc()).all()
