import logging

from ...core.extensions import scheduler
from .services.verifier import VerifierService

logger = logging.getLogger(__name__)

AUDIT_JOB_ID = 'ledger_integrity_audit'


def run_integrity_audit():
    """
    Nightly job: verify every user and log the ones that drifted.
    Runs outside any request, so it opens its own app context.
    """
    with scheduler.app.app_context():
        logger.info("Starting ledger integrity audit...")
        try:
            summary = VerifierService.verify_all()
        except Exception as e:
            logger.error(f"Ledger integrity audit failed: {e}", exc_info=True)
            return None

        for report in summary.reports:
            if report.health_score < 100:
                logger.warning(
                    f"User {report.user_id} health score {report.health_score}: "
                    f"{'; '.join(report.critical_issues + report.warnings)}"
                )
        logger.info(
            f"Ledger integrity audit done: {len(summary.reports)}/{summary.users_total} users checked, "
            f"lowest score {summary.health_score}{' (truncated)' if summary.truncated else ''}"
        )
        return summary.health_score


def register_audit_job(app):
    """Register the nightly audit with APScheduler."""
    if not scheduler.get_job(AUDIT_JOB_ID):
        scheduler.add_job(
            id=AUDIT_JOB_ID,
            func=run_integrity_audit,
            trigger='cron',
            hour=app.config.get('INTEGRITY_AUDIT_HOUR', 3),
            minute=0,
            replace_existing=True
        )
        app.logger.info(f"Ledger integrity audit job registered at {app.config.get('INTEGRITY_AUDIT_HOUR', 3):02d}:00.")
