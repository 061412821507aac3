# File: learnxp_app/modules/learning_history/services/history_recorder.py
from typing import Any, List, Optional, Sequence

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ....core.error_handlers import PersistenceError, RaceConflict, ValidationError
from ....core.extensions import db
from ....utils.time_utils import user_today, utcnow
from ..models import AnswerRecord, SessionRecord
from ..schemas import AnswerInput, CourseSessionInput, QuizSessionMeta

COURSE_CONFIRMATION_PREFIX = 'course_confirmation_'


class HistoryRecorder:
    """
    Scribe service for the append-only event log.

    Records are inserted once and finalized once; nothing here updates
    a record after that.
    """

    @staticmethod
    def parse_answers(raw_answers: Any, total_questions: Any) -> List[AnswerInput]:
        """
        Validate a submitted answer list against the declared question count.

        Raises ValidationError before anything is written.
        """
        if not isinstance(raw_answers, list) or not raw_answers:
            raise ValidationError('At least one answer is required', errors={'answers': 'required'})

        if total_questions is None:
            total_questions = len(raw_answers)
        try:
            total_questions = int(total_questions)
        except (TypeError, ValueError):
            raise ValidationError('total_questions must be an integer',
                                  errors={'total_questions': 'not an integer'})
        if total_questions != len(raw_answers):
            raise ValidationError(
                f'Answer count ({len(raw_answers)}) does not match total_questions ({total_questions})',
                errors={'answers': 'count mismatch'}
            )

        answers, errors = [], {}
        for index, raw in enumerate(raw_answers):
            try:
                answers.append(AnswerInput.from_payload(raw, index))
            except ValueError as exc:
                errors[f'answers[{index}]'] = str(exc)
        if errors:
            raise ValidationError('Invalid answers', errors=errors)
        return answers

    @staticmethod
    def record_quiz_session(
        user,
        meta: QuizSessionMeta,
        answers: Sequence[AnswerInput],
        answer_xp: Optional[Sequence[int]] = None,
        rate_table_version: Optional[int] = None,
    ) -> SessionRecord:
        """
        Append one quiz SessionRecord and its AnswerRecords in one commit.

        ``answer_xp`` is the per-answer XP priced for this submission, in
        answer order; it is stored on the answer rows and never changes.
        """
        if not answers:
            raise ValidationError('At least one answer is required', errors={'answers': 'required'})
        if meta.total_questions != len(answers):
            raise ValidationError('Answer count does not match total_questions',
                                  errors={'answers': 'count mismatch'})
        if answer_xp is not None and len(answer_xp) != len(answers):
            raise ValueError('answer_xp must line up with answers')
        answer_xp = list(answer_xp) if answer_xp is not None else [0] * len(answers)

        correct = sum(1 for a in answers if a.is_correct)
        categories = {a.category_id for a in answers}
        subcategories = {a.subcategory_id for a in answers}
        difficulties = {a.difficulty for a in answers}
        duration = meta.duration_seconds or sum(a.time_spent for a in answers)

        record = SessionRecord(
            user_id=user.user_id,
            kind=SessionRecord.KIND_QUIZ,
            status=SessionRecord.STATUS_RECORDED,
            category_id=categories.pop() if len(categories) == 1 else None,
            subcategory_id=subcategories.pop() if len(subcategories) == 1 else None,
            difficulty=difficulties.pop() if len(difficulties) == 1 else 'mixed',
            difficulty_clamped=any(a.difficulty_clamped for a in answers),
            total_questions=len(answers),
            correct_answers=correct,
            accuracy_rate=round(correct * 100 / len(answers), 2),
            duration_seconds=duration,
            started_at=meta.started_at,
            ended_at=meta.ended_at,
            activity_date=user_today(user),
            rate_table_version=rate_table_version,
        )
        answer_rows = [
            AnswerRecord(
                user_id=user.user_id,
                question_id=a.question_id,
                user_answer=a.user_answer,
                is_correct=a.is_correct,
                is_timeout=a.is_timeout,
                time_spent_seconds=a.time_spent,
                category_id=a.category_id,
                subcategory_id=a.subcategory_id,
                difficulty=a.difficulty,
                difficulty_clamped=a.difficulty_clamped,
                earned_xp=xp,
            )
            for a, xp in zip(answers, answer_xp)
        ]

        for answer in answers:
            if answer.difficulty_clamped:
                current_app.logger.warning(
                    f"Unknown difficulty '{answer.raw_difficulty}' on question {answer.question_id} "
                    f"(user {user.user_id}) priced as '{answer.difficulty}'"
                )

        try:
            db.session.add(record)
            db.session.flush()
            for answer_row in answer_rows:
                answer_row.record_id = record.record_id
            db.session.add_all(answer_rows)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to record quiz session for user {user.user_id}: {exc}",
                                     exc_info=True)
            raise PersistenceError(operation='record_quiz_session')

        return record

    @staticmethod
    def record_course_session(
        user,
        course_input: CourseSessionInput,
        difficulty: str,
        difficulty_clamped: bool = False,
        rate_table_version: Optional[int] = None,
    ) -> SessionRecord:
        """Append one course SessionRecord; it carries no reward until finalized."""
        unit = course_input.unit
        record = SessionRecord(
            user_id=user.user_id,
            kind=SessionRecord.KIND_COURSE,
            status=SessionRecord.STATUS_RECORDED,
            category_id=course_input.category_id,
            subcategory_id=course_input.subcategory_id,
            difficulty=difficulty,
            difficulty_clamped=difficulty_clamped,
            course_id=unit.course_id,
            genre_id=unit.genre_id,
            theme_id=unit.theme_id,
            unit_session_id=unit.session_id,
            unit_key=unit.key,
            quiz_correct=course_input.quiz_correct,
            client_first_completion_hint=course_input.client_first_completion_hint,
            total_questions=1,
            correct_answers=1 if course_input.quiz_correct else 0,
            accuracy_rate=100.0 if course_input.quiz_correct else 0.0,
            duration_seconds=course_input.duration_seconds,
            activity_date=user_today(user),
            rate_table_version=rate_table_version,
        )
        try:
            db.session.add(record)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to record course session for user {user.user_id}: {exc}",
                                     exc_info=True)
            raise PersistenceError(operation='record_course_session')
        return record

    @staticmethod
    def finalize_session(
        record: SessionRecord,
        earned_xp: int,
        base_xp: int = 0,
        bonus_xp: int = 0,
        earned_skp: int = 0,
        wisdom_cards: int = 0,
        first_completion_key: Optional[str] = None,
    ) -> bool:
        """
        The single terminal update of a SessionRecord.

        Only a record still in 'recorded' status is touched; returns False
        if it was already finalized. Passing ``first_completion_key`` claims
        the unit's first completion: if another record holds that claim the
        update is rolled back and RaceConflict is raised.

        A course record gets its confirmation-quiz AnswerRecord in the same
        commit, carrying the XP the session earned.
        """
        values = {
            SessionRecord.status: SessionRecord.STATUS_FINALIZED,
            SessionRecord.earned_xp: earned_xp,
            SessionRecord.base_xp: base_xp,
            SessionRecord.bonus_xp: bonus_xp,
            SessionRecord.earned_skp: earned_skp,
            SessionRecord.wisdom_cards_awarded: wisdom_cards,
            SessionRecord.is_first_completion: first_completion_key is not None,
            SessionRecord.first_completion_key: first_completion_key,
            SessionRecord.finalized_at: utcnow(),
        }
        try:
            updated = (
                db.session.query(SessionRecord)
                .filter(SessionRecord.record_id == record.record_id,
                        SessionRecord.status == SessionRecord.STATUS_RECORDED)
                .update(values, synchronize_session=False)
            )
            if updated == 1 and record.kind == SessionRecord.KIND_COURSE:
                db.session.add(HistoryRecorder._confirmation_answer(record, earned_xp))
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise RaceConflict(record.user_id, first_completion_key)
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Failed to finalize session record {record.record_id}: {exc}",
                                     exc_info=True)
            raise PersistenceError('Reward could not be saved, please retry', operation='finalize_session')

        db.session.refresh(record)
        return updated == 1

    @staticmethod
    def _confirmation_answer(record: SessionRecord, earned_xp: int) -> AnswerRecord:
        return AnswerRecord(
            record_id=record.record_id,
            user_id=record.user_id,
            question_id=f'{COURSE_CONFIRMATION_PREFIX}{record.unit_session_id}',
            is_correct=bool(record.quiz_correct),
            time_spent_seconds=record.duration_seconds or 0,
            category_id=record.category_id,
            subcategory_id=record.subcategory_id,
            difficulty=record.difficulty,
            difficulty_clamped=bool(record.difficulty_clamped),
            earned_xp=earned_xp,
        )
