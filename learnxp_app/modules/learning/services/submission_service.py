# File: learnxp_app/modules/learning/services/submission_service.py
"""
Session submission pipeline.

record event -> decide first completion -> price -> finalize record ->
roll up aggregates -> SKP ledger -> signal background work.

Everything up to and including finalization is the synchronous path and
aborts the request on failure. Rollups and the ledger are best effort:
their failures are logged and left to the integrity verifier.
"""
from collections import OrderedDict
from typing import Any, Dict, List, Mapping, Optional

from flask import current_app

from ....core.error_handlers import PersistenceError, RaceConflict, ValidationError
from ....core.signals import course_session_completed, first_completion_conflict, quiz_session_completed
from ....utils.time_utils import parse_client_timestamp
from ...catalog.interface import CatalogInterface
from ...gamification.interface import GamificationInterface
from ...learning_history.schemas import AnswerInput, CourseSessionInput, QuizSessionMeta, UnitKey
from ...learning_history.services.history_recorder import HistoryRecorder
from ...progress.interface import ProgressInterface
from ...rate_table.interface import RateTableInterface
from ...scoring.logics.calculator import RewardCalculator, normalize_difficulty
from ...scoring.schemas import QuizReward
from ...stats.interface import (
    SCOPE_CATEGORY,
    SCOPE_DAILY,
    SCOPE_GLOBAL,
    SCOPE_SUBCATEGORY,
    ScopeUpdate,
    StatsDelta,
    StatsInterface,
)

COURSE_REQUIRED_FIELDS = ('session_id', 'course_id', 'genre_id', 'theme_id', 'category_id', 'subcategory_id')


def _collect_signal_results(results, key: str) -> Optional[Any]:
    for _receiver, value in results or ():
        if isinstance(value, Mapping) and key in value:
            return value[key]
    return None


def _as_bool(value) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def _duration_seconds(payload: Mapping, started_at, ended_at) -> int:
    raw = payload.get('duration')
    if raw is not None:
        try:
            return max(0, int(raw))
        except (TypeError, ValueError):
            raise ValidationError('duration must be a number of seconds', errors={'duration': 'not a number'})
    if started_at and ended_at and ended_at >= started_at:
        return int((ended_at - started_at).total_seconds())
    return 0


def _quiz_updates(record, answers: List[AnswerInput], reward: QuizReward) -> List[ScopeUpdate]:
    """One global, one daily, and one update per distinct category / subcategory."""
    by_category: Dict[str, StatsDelta] = OrderedDict()
    by_subcategory: Dict[str, tuple] = OrderedDict()
    for answer, xp in zip(answers, reward.answer_xp):
        cat = by_category.setdefault(answer.category_id, StatsDelta(quiz_sessions=1))
        sub_delta = by_subcategory.setdefault(
            answer.subcategory_id, (answer.category_id, StatsDelta(quiz_sessions=1))
        )[1]
        for delta in (cat, sub_delta):
            delta.quiz_xp += xp
            delta.questions_answered += 1
            delta.questions_correct += 1 if answer.is_correct else 0

    updates = [
        ScopeUpdate(SCOPE_GLOBAL, StatsDelta(
            quiz_xp=reward.base_xp,
            bonus_xp=reward.bonus_xp,
            quiz_sessions=1,
            questions_answered=reward.total,
            questions_correct=reward.correct,
            wisdom_cards=reward.wisdom_cards,
        )),
    ]
    updates += [ScopeUpdate(SCOPE_CATEGORY, delta, key=key) for key, delta in by_category.items()]
    updates += [ScopeUpdate(SCOPE_SUBCATEGORY, delta, key=key, category_id=category_id)
                for key, (category_id, delta) in by_subcategory.items()]
    updates.append(ScopeUpdate(SCOPE_DAILY, StatsDelta(
        quiz_xp=reward.base_xp,
        bonus_xp=reward.bonus_xp,
        quiz_sessions=1,
        questions_answered=reward.total,
        questions_correct=reward.correct,
        time_spent_seconds=record.duration_seconds,
    ), key=record.activity_date))
    return updates


def _course_updates(record, xp: int) -> List[ScopeUpdate]:
    def delta():
        return StatsDelta(course_xp=xp, course_sessions=1)

    daily = delta()
    daily.time_spent_seconds = record.duration_seconds
    return [
        ScopeUpdate(SCOPE_GLOBAL, delta()),
        ScopeUpdate(SCOPE_CATEGORY, delta(), key=record.category_id),
        ScopeUpdate(SCOPE_SUBCATEGORY, delta(), key=record.subcategory_id, category_id=record.category_id),
        ScopeUpdate(SCOPE_DAILY, daily, key=record.activity_date),
    ]


def _credit_skp(credit, *args) -> List[str]:
    """Ledger writes after finalization are best effort, like the rollups."""
    try:
        credit(*args)
    except PersistenceError as exc:
        current_app.logger.warning(f"SKP ledger write deferred to reconciliation: {exc.message}")
        return ['skp_ledger']
    return []


class SubmissionService:
    """Entry points behind the session submission API."""

    @staticmethod
    def submit_quiz_session(user, payload: Mapping) -> Dict[str, Any]:
        answers = HistoryRecorder.parse_answers(payload.get('answers'), payload.get('total_questions'))
        started_at = parse_client_timestamp(payload.get('start_time') or payload.get('session_start_time'))
        ended_at = parse_client_timestamp(payload.get('end_time') or payload.get('session_end_time'))
        meta = QuizSessionMeta(
            total_questions=len(answers),
            started_at=started_at,
            ended_at=ended_at,
            duration_seconds=_duration_seconds(payload, started_at, ended_at),
        )

        rates = RateTableInterface.get_rate_table()
        reward = RewardCalculator.calculate_quiz_reward(answers, rates)

        record = HistoryRecorder.record_quiz_session(
            user, meta, answers, answer_xp=reward.answer_xp, rate_table_version=rates.version
        )
        HistoryRecorder.finalize_session(
            record,
            earned_xp=reward.total_xp,
            base_xp=reward.base_xp,
            bonus_xp=reward.bonus_xp,
            earned_skp=reward.skp,
            wisdom_cards=reward.wisdom_cards,
        )

        failed = StatsInterface.apply_updates(user.user_id, _quiz_updates(record, answers, reward),
                                              record_id=record.record_id)
        failed += _credit_skp(GamificationInterface.credit_quiz_skp, user.user_id, record.record_id, reward.skp)

        current_app.logger.info(
            f"Quiz session {record.record_id} user={user.user_id}: {reward.correct}/{reward.total} correct, "
            f"+{reward.total_xp} XP (bonus {reward.bonus_xp}), +{reward.skp} SKP"
        )

        results = quiz_session_completed.send(
            current_app._get_current_object(),
            user_id=user.user_id,
            record_id=record.record_id,
            total_xp=reward.total_xp,
            bonus_xp=reward.bonus_xp,
            skp_earned=reward.skp,
        )

        response = {
            'session_id': record.record_id,
            'total_xp': reward.total_xp,
            'base_xp': reward.base_xp,
            'bonus_xp': reward.bonus_xp,
            'skp_earned': reward.skp,
            'wisdom_cards_awarded': reward.wisdom_cards,
            'accuracy': reward.accuracy,
        }
        if failed:
            response['pending_reconciliation'] = failed
        streak = _collect_signal_results(results, 'streak_bonus')
        if streak is not None:
            response['streak_bonus'] = streak
        return response

    @staticmethod
    def parse_course_payload(payload: Mapping) -> CourseSessionInput:
        missing = [f for f in COURSE_REQUIRED_FIELDS if payload.get(f) in (None, '')]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}",
                                  errors={f: 'required' for f in missing})

        quiz_correct = payload.get('confirmation_quiz_correct', payload.get('is_correct'))
        if quiz_correct is None:
            raise ValidationError('confirmation_quiz_correct is required',
                                  errors={'confirmation_quiz_correct': 'required'})

        started_at = parse_client_timestamp(payload.get('start_time'))
        ended_at = parse_client_timestamp(payload.get('end_time'))
        return CourseSessionInput(
            unit=UnitKey(
                course_id=str(payload['course_id']),
                genre_id=str(payload['genre_id']),
                theme_id=str(payload['theme_id']),
                session_id=str(payload['session_id']),
            ),
            category_id=str(payload['category_id']),
            subcategory_id=str(payload['subcategory_id']),
            quiz_correct=bool(_as_bool(quiz_correct)),
            client_first_completion_hint=_as_bool(payload.get('client_first_completion_hint',
                                                              payload.get('is_first_completion'))),
            duration_seconds=_duration_seconds(payload, started_at, ended_at),
        )

    @staticmethod
    def submit_course_session(user, payload: Mapping) -> Dict[str, Any]:
        course_input = SubmissionService.parse_course_payload(payload)
        unit = course_input.unit

        raw_difficulty = CatalogInterface.get_course_difficulty(unit.course_id)
        difficulty, clamped = normalize_difficulty(raw_difficulty)
        if clamped:
            current_app.logger.warning(
                f"Unknown difficulty '{raw_difficulty}' on course {unit.course_id} priced as '{difficulty}'"
            )

        rates = RateTableInterface.get_rate_table()
        record = HistoryRecorder.record_course_session(
            user, course_input, difficulty, difficulty_clamped=clamped, rate_table_version=rates.version
        )

        ProgressInterface.touch(user.user_id, unit)
        is_first = ProgressInterface.is_first_completion(user.user_id, unit)
        reward = RewardCalculator.calculate_course_reward(difficulty, is_first, course_input.quiz_correct, rates)

        # Re-check right before crediting; a concurrent request may have won meanwhile
        if is_first and not ProgressInterface.is_first_completion(user.user_id, unit):
            current_app.logger.warning(
                f"Unit {unit.key} completed concurrently for user {user.user_id}, "
                f"record {record.record_id} demoted to review"
            )
            reward = RewardCalculator.calculate_course_reward(difficulty, False, course_input.quiz_correct, rates)

        claimed_first = reward.is_first_completion
        try:
            HistoryRecorder.finalize_session(
                record,
                earned_xp=reward.xp,
                base_xp=reward.xp,
                earned_skp=reward.skp,
                first_completion_key=unit.key if claimed_first else None,
            )
        except RaceConflict as conflict:
            current_app.logger.warning(f"{conflict.message}; record {record.record_id} demoted to review")
            first_completion_conflict.send(None, user_id=user.user_id, record_id=record.record_id,
                                           unit_key=unit.key)
            reward = RewardCalculator.calculate_course_reward(difficulty, False, course_input.quiz_correct, rates)
            HistoryRecorder.finalize_session(record, earned_xp=0, base_xp=0, earned_skp=0)

        if claimed_first:
            # Also runs for a demoted loser so the marker is never left behind the claim
            try:
                ProgressInterface.mark_completed(user.user_id, unit)
            except PersistenceError as exc:
                # The claim on the session record is already committed and stays authoritative
                current_app.logger.warning(
                    f"Progress marker for {unit.key} (user {user.user_id}) not updated: {exc.message}; "
                    f"record {record.record_id} keeps its reward"
                )

        hint = course_input.client_first_completion_hint
        if hint is not None and hint != reward.is_first_completion:
            current_app.logger.warning(
                f"[SECURITY] First-completion hint mismatch for user {user.user_id} on {unit.key}: "
                f"client={hint} server={reward.is_first_completion} (record {record.record_id})"
            )

        failed = StatsInterface.apply_updates(user.user_id, _course_updates(record, reward.xp),
                                              record_id=record.record_id)
        if reward.skp:
            failed += _credit_skp(GamificationInterface.credit_course_skp,
                                  user.user_id, record.record_id, reward.skp, unit.key)

        results = course_session_completed.send(
            current_app._get_current_object(),
            user_id=user.user_id,
            record_id=record.record_id,
            unit=unit,
            is_first_completion=reward.is_first_completion,
            earned_xp=reward.xp,
        )

        response = {
            'session_record_id': record.record_id,
            'unit': unit.to_dict(),
            'earned_xp': reward.xp,
            'skp_earned': reward.skp,
            'is_first_completion': reward.is_first_completion,
            'difficulty': difficulty,
        }
        if failed:
            response['pending_reconciliation'] = failed
        streak = _collect_signal_results(results, 'streak_bonus')
        if streak is not None:
            response['streak_bonus'] = streak
        cascade = _collect_signal_results(results, 'completion_cascade')
        if cascade is not None:
            response['completion_cascade'] = cascade
        return response

    @staticmethod
    def complete_course(user, course_id: Optional[str]) -> Dict[str, Any]:
        if not course_id:
            raise ValidationError('course_id is required', errors={'course_id': 'required'})
        return ProgressInterface.complete_course(user.user_id, str(course_id))
