# File: learnxp_app/modules/verification/services/verifier.py
"""
Consistency verifier.

Rebuilds every aggregate from the event log (session and answer records,
course completions) and the SKP ledger, then compares the result with
the rollup rows. Only reads; never writes to any table.
"""
import time
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional

from flask import current_app

from ....core.error_handlers import ConsistencyDrift
from ...gamification.services.skp_ledger_service import SKPLedgerService
from ...learning_history.models import SessionRecord
from ...learning_history.services.history_query_service import HistoryQueryService
from ...progress.models import CourseCompletion
from ...stats.models import DailyActivityRecord
from ...stats.services.stats_query_service import StatsQueryService
from ..logics.health_score import compute_health_score
from ..schemas import HealthReport, VerificationSummary

SCOPE_GLOBAL = 'global'
SCOPE_CATEGORY = 'category'
SCOPE_SUBCATEGORY = 'subcategory'
SCOPE_DAILY = 'daily'

# field -> (stats column, critical)
_GLOBAL_FIELDS = (
    ('total_xp', 'total_xp', True),
    ('quiz_xp', 'quiz_xp', True),
    ('course_xp', 'course_xp', True),
    ('bonus_xp', 'bonus_xp', True),
    ('total_skp', 'total_skp', True),
    ('skp_spent', 'skp_spent', True),
    ('quiz_skp', 'quiz_skp', True),
    ('course_skp', 'course_skp', True),
    ('bonus_skp', 'bonus_skp', True),
    ('streak_skp', 'streak_skp', True),
    ('quiz_sessions', 'quiz_sessions_completed', False),
    ('course_sessions', 'course_sessions_completed', False),
    ('questions_answered', 'quiz_questions_answered', False),
    ('questions_correct', 'quiz_questions_correct', False),
    ('wisdom_cards', 'wisdom_cards_total', False),
    ('badges', 'badges_total', False),
)

_SCOPED_FIELDS = (
    ('total_xp', 'total_xp', True),
    ('quiz_xp', 'quiz_xp', True),
    ('course_xp', 'course_xp', True),
    ('quiz_sessions', 'quiz_sessions_completed', False),
    ('course_sessions', 'course_sessions_completed', False),
    ('questions_answered', 'quiz_questions_answered', False),
    ('questions_correct', 'quiz_questions_correct', False),
)

_DAILY_FIELDS = (
    ('total_xp', 'total_xp_earned', True),
    ('quiz_xp', 'quiz_xp_earned', True),
    ('course_xp', 'course_xp_earned', True),
    ('bonus_xp', 'bonus_xp_earned', True),
    ('quiz_sessions', 'quiz_sessions', False),
    ('course_sessions', 'course_sessions', False),
    ('questions_answered', 'questions_answered', False),
    ('questions_correct', 'questions_correct', False),
    ('time_spent_seconds', 'time_spent_seconds', False),
)

XP_FIELDS = {'total_xp', 'quiz_xp', 'course_xp', 'bonus_xp'}


def _blank() -> Dict[str, int]:
    return defaultdict(int)


def _differs(field: str, expected, actual) -> bool:
    if field in XP_FIELDS:
        return abs((expected or 0) - (actual or 0)) >= 1
    return (expected or 0) != (actual or 0)


class _Rebuild:
    """Totals recomputed from raw events for one user."""

    def __init__(self):
        self.global_totals = _blank()
        self.categories = defaultdict(_blank)
        self.subcategories = defaultdict(_blank)
        self.daily = defaultdict(_blank)


class VerifierService:

    @staticmethod
    def _rebuild(user_id: int, sessions: List[SessionRecord], completions: List[CourseCompletion],
                 report: HealthReport) -> _Rebuild:
        rebuilt = _Rebuild()
        totals = rebuilt.global_totals

        quiz_ids = {s.record_id for s in sessions if s.kind == SessionRecord.KIND_QUIZ}
        answer_xp_by_record = Counter()
        confirmations = Counter()
        for answer in HistoryQueryService.get_answers_for_sessions([s.record_id for s in sessions]):
            answer_xp_by_record[answer.record_id] += answer.earned_xp or 0
            for bucket, key in ((rebuilt.categories, answer.category_id),
                                (rebuilt.subcategories, answer.subcategory_id)):
                row = bucket[key]
                row['total_xp'] += answer.earned_xp or 0
                if answer.record_id not in quiz_ids:
                    row['course_xp'] += answer.earned_xp or 0
                    row['course_sessions'] += 1
                    continue
                row['quiz_xp'] += answer.earned_xp or 0
                row['questions_answered'] += 1
                row['questions_correct'] += 1 if answer.is_correct else 0
                row.setdefault('_records', set()).add(answer.record_id)
            if answer.record_id not in quiz_ids:
                confirmations[answer.record_id] += 1

        for bucket in (rebuilt.categories, rebuilt.subcategories):
            for row in bucket.values():
                row['quiz_sessions'] = len(row.pop('_records', ()))

        for session in sessions:
            day = rebuilt.daily[session.activity_date]
            day['time_spent_seconds'] += session.duration_seconds or 0
            if session.kind == SessionRecord.KIND_QUIZ:
                totals['quiz_xp'] += session.base_xp or 0
                totals['bonus_xp'] += session.bonus_xp or 0
                totals['quiz_sessions'] += 1
                totals['questions_answered'] += session.total_questions or 0
                totals['questions_correct'] += session.correct_answers or 0
                totals['wisdom_cards'] += session.wisdom_cards_awarded or 0
                totals['session_quiz_skp'] += session.earned_skp or 0
                day['quiz_xp'] += session.base_xp or 0
                day['bonus_xp'] += session.bonus_xp or 0
                day['quiz_sessions'] += 1
                day['questions_answered'] += session.total_questions or 0
                day['questions_correct'] += session.correct_answers or 0

                answer_sum = answer_xp_by_record.get(session.record_id, 0)
                if answer_sum != (session.base_xp or 0):
                    report.drifts.append(ConsistencyDrift(
                        SCOPE_GLOBAL, 'base_xp', answer_sum, session.base_xp, critical=True,
                        key=f'session {session.record_id}',
                    ))
            else:
                xp = session.earned_xp or 0
                totals['course_xp'] += xp
                totals['course_sessions'] += 1
                totals['session_course_skp'] += session.earned_skp or 0
                day['course_xp'] += xp
                day['course_sessions'] += 1

                # Category rows are rebuilt from the confirmation answer, so it must match the session
                answer_sum = answer_xp_by_record.get(session.record_id, 0)
                if confirmations[session.record_id] != 1 or answer_sum != xp:
                    report.drifts.append(ConsistencyDrift(
                        SCOPE_GLOBAL, 'confirmation_xp', xp, answer_sum, critical=True,
                        key=f'session {session.record_id}',
                    ))

        for completion in completions:
            totals['bonus_xp'] += completion.completion_bonus_xp or 0
            totals['badges'] += completion.badges_awarded or 0
            if completion.activity_date is not None:
                rebuilt.daily[completion.activity_date]['bonus_xp'] += completion.completion_bonus_xp or 0

        totals['total_xp'] = totals['quiz_xp'] + totals['course_xp'] + totals['bonus_xp']
        for day in rebuilt.daily.values():
            day['total_xp'] = day['quiz_xp'] + day['course_xp'] + day['bonus_xp']

        ledger = SKPLedgerService.get_totals(user_id)
        by_kind = SKPLedgerService.get_earned_by_kind(user_id)
        totals['total_skp'] = ledger['earned']
        totals['skp_spent'] = ledger['spent']
        for kind in ('quiz', 'course', 'bonus', 'streak'):
            totals[f'{kind}_skp'] = by_kind.get(kind, 0)

        # Session prices against what the ledger actually received
        for kind in ('quiz', 'course'):
            priced = totals.pop(f'session_{kind}_skp', 0)
            if priced != by_kind.get(kind, 0):
                report.drifts.append(ConsistencyDrift(
                    SCOPE_GLOBAL, f'{kind}_skp_ledger', priced, by_kind.get(kind, 0), critical=True,
                    key='sessions',
                ))
        return rebuilt

    @staticmethod
    def _compare(report: HealthReport, scope: str, fields, expected: Dict[str, int], row,
                 key: Optional[str] = None) -> Dict[str, Dict[str, int]]:
        checked = {}
        for field, column, critical in fields:
            actual = getattr(row, column, 0) if row is not None else 0
            want = expected.get(field, 0)
            checked[field] = {'expected': want, 'actual': actual or 0}
            if _differs(field, want, actual):
                report.drifts.append(ConsistencyDrift(scope, field, want, actual or 0, critical, key=key))
        return checked

    @staticmethod
    def _compare_scoped(report: HealthReport, scope: str, expected: Dict, rows: Iterable, key_attr: str,
                        fields) -> List[Dict]:
        rows_by_key = {getattr(row, key_attr): row for row in rows}
        results = []
        for key in sorted(set(expected) | set(rows_by_key), key=str):
            checked = VerifierService._compare(report, scope, fields, expected.get(key, {}),
                                               rows_by_key.get(key), key=str(key))
            results.append({key_attr: str(key), 'checks': checked})
        return results

    @staticmethod
    def _duplicate_first_completions(report: HealthReport, sessions: List[SessionRecord]) -> None:
        claims = Counter(s.unit_key for s in sessions
                         if s.kind == SessionRecord.KIND_COURSE and s.is_first_completion)
        for unit_key, count in claims.items():
            if count > 1:
                report.drifts.append(ConsistencyDrift(
                    SCOPE_GLOBAL, 'first_completions', 1, count, critical=True, key=unit_key,
                ))

    @staticmethod
    def _advisories(report: HealthReport, user_id: int, sessions: List[SessionRecord]) -> None:
        clamped = [s.record_id for s in sessions if s.difficulty_clamped]
        if clamped:
            report.advisories.append(
                f"{len(clamped)} session(s) priced with an unknown difficulty clamped to the lowest tier: "
                f"{clamped[:10]}"
            )

        mismatched = [s.record_id for s in sessions
                      if s.kind == SessionRecord.KIND_COURSE
                      and s.client_first_completion_hint is not None
                      and s.client_first_completion_hint != s.is_first_completion]
        if mismatched:
            report.advisories.append(
                f"{len(mismatched)} course session(s) where the client first-completion hint "
                f"disagreed with the server: {mismatched[:10]}"
            )

        submissions = Counter((s.started_at, s.total_questions) for s in sessions
                              if s.kind == SessionRecord.KIND_QUIZ and s.started_at is not None)
        duplicates = sum(count - 1 for count in submissions.values() if count > 1)
        if duplicates:
            report.advisories.append(
                f"{duplicates} suspected duplicate quiz submission(s) (same start time and answer count)"
            )

        pending = HistoryQueryService.count_unfinalized(user_id)
        if pending:
            report.advisories.append(f"{pending} session(s) recorded but never finalized")

    @staticmethod
    def verify_user(user_id: int, include_recent: bool = True) -> HealthReport:
        """Full integrity check of one user's aggregates."""
        report = HealthReport(user_id=user_id)

        sessions = HistoryQueryService.get_finalized_sessions(user_id)
        completions = CourseCompletion.query.filter_by(user_id=user_id).all()
        rebuilt = VerifierService._rebuild(user_id, sessions, completions, report)

        report.checks = VerifierService._compare(
            report, SCOPE_GLOBAL, _GLOBAL_FIELDS, rebuilt.global_totals,
            StatsQueryService.get_global(user_id),
        )
        report.categories = VerifierService._compare_scoped(
            report, SCOPE_CATEGORY, rebuilt.categories,
            StatsQueryService.get_category_rows(user_id), 'category_id', _SCOPED_FIELDS,
        )
        report.subcategories = VerifierService._compare_scoped(
            report, SCOPE_SUBCATEGORY, rebuilt.subcategories,
            StatsQueryService.get_subcategory_rows(user_id), 'subcategory_id', _SCOPED_FIELDS,
        )

        daily_rows = {row.activity_date: row
                      for row in DailyActivityRecord.query.filter_by(user_id=user_id).all()}
        for activity_date in sorted(set(rebuilt.daily) | set(daily_rows)):
            VerifierService._compare(report, SCOPE_DAILY, _DAILY_FIELDS, rebuilt.daily.get(activity_date, {}),
                                     daily_rows.get(activity_date), key=activity_date.isoformat())

        VerifierService._duplicate_first_completions(report, sessions)
        VerifierService._advisories(report, user_id, sessions)

        report.health_score = compute_health_score((d.scope, d.critical) for d in report.drifts)

        if include_recent:
            report.recent_sessions = [s.to_dict() for s in HistoryQueryService.get_recent_sessions(user_id, 5)]
            report.recent_answers = [a.to_dict() for a in HistoryQueryService.get_recent_answers(user_id, 10)]

        if report.drifts:
            current_app.logger.warning(
                f"Integrity check user={user_id}: score {report.health_score}, "
                f"{len(report.critical_issues)} critical, {len(report.drifts) - len(report.critical_issues)} warnings"
            )
        return report

    @staticmethod
    def verify_all(time_budget: float = None) -> VerificationSummary:
        """Check every user with recorded activity until the time budget runs out."""
        if time_budget is None:
            time_budget = current_app.config.get('VERIFY_ALL_TIME_BUDGET_SECONDS', 20)

        user_ids = HistoryQueryService.user_ids_with_activity()
        summary = VerificationSummary(users_total=len(user_ids))
        deadline = time.monotonic() + time_budget
        for user_id in user_ids:
            if time.monotonic() > deadline:
                summary.truncated = True
                current_app.logger.warning(
                    f"Integrity check stopped after {len(summary.reports)}/{len(user_ids)} users (time budget)"
                )
                break
            summary.reports.append(VerifierService.verify_user(user_id, include_recent=False))
        return summary
