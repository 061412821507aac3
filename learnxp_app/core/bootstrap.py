"""Bootstrap helpers for configuring the Flask application."""

from __future__ import annotations

from flask import Flask

from .error_handlers import AuthError, register_error_handlers
from .extensions import csrf_protect, db, login_manager, migrate, scheduler
from .logging_config import setup_logging
from .module_registry import register_default_modules


def configure_logging(app: Flask) -> None:
    """Attach console (and optionally rotating file) handlers to app.logger."""

    setup_logging(
        app.logger,
        log_level=app.config.get('LOG_LEVEL', 'INFO'),
        log_dir=app.config.get('LOG_DIR'),
        json_format=app.config.get('LOG_JSON', False),
        to_file=app.config.get('LOG_TO_FILE', True),
    )


def _init_scheduler(app: Flask) -> None:
    from apscheduler.schedulers import SchedulerAlreadyRunningError

    from ..modules.verification.tasks import register_audit_job

    try:
        scheduler.init_app(app)
        if not scheduler.running:
            scheduler.start()
        register_audit_job(app)
    except SchedulerAlreadyRunningError:
        app.logger.info("Scheduler already running, skipping re-initialization.")


def register_extensions(app: Flask) -> None:
    """Initialize shared extensions with the Flask app instance."""

    db.init_app(app)
    login_manager.init_app(app)
    csrf_protect.init_app(app)
    migrate.init_app(app, db)

    @login_manager.user_loader
    def load_user(user_id: str):
        from ..models.user import User

        return db.session.get(User, int(user_id))

    @login_manager.request_loader
    def load_user_from_token(request):
        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            return None
        token = header[len('Bearer '):].strip()
        if not token:
            return None
        from ..models.user import User

        return User.query.filter_by(api_token=token).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        raise AuthError()

    if not app.config.get('TESTING') and app.config.get('SCHEDULER_ENABLED', True):
        _init_scheduler(app)


def register_blueprints(app: Flask) -> None:
    """Register all default blueprints with the app."""

    register_default_modules(app)
    register_error_handlers(app)


def register_event_handlers(app: Flask) -> None:
    """Connect the signal receivers of modules that react to session events."""

    from ..modules.gamification import events as gamification_events  # noqa: F401
    from ..modules.progress import events as progress_events  # noqa: F401

    app.logger.debug("Ledger signal receivers connected.")


def register_cli_commands(app: Flask) -> None:
    from ..modules.verification.cli import ledger_cli

    app.cli.add_command(ledger_cli)


def initialize_database(app: Flask) -> None:
    """Create database tables."""

    from .. import models  # noqa: F401
    from ..modules.catalog import models as catalog_models  # noqa: F401
    from ..modules.gamification import models as gamification_models  # noqa: F401
    from ..modules.learning_history import models as history_models  # noqa: F401
    from ..modules.progress import models as progress_models  # noqa: F401
    from ..modules.stats import models as stats_models  # noqa: F401

    db.create_all()
    app.logger.info("Database tables ready.")
