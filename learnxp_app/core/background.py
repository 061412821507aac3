"""
Fire-and-forget execution of secondary bookkeeping.

Tasks only talk to the database, never to in-memory state of the request
that spawned them, so a lost thread costs at most one retryable step.
Each task runs in its own app context, hence its own database session.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from flask import Flask, current_app

from .extensions import db


def _run_task(app: Flask, func: Callable[..., Any], task_name: str, args, kwargs) -> Optional[Any]:
    with app.app_context():
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            db.session.rollback()
            app.logger.error(f"Background task '{task_name}' failed: {exc}", exc_info=True)
            return None


def run_in_background(func: Callable[..., Any], *args, task_name: str = None, **kwargs) -> Optional[Any]:
    """
    Run ``func`` outside the request path.

    With BACKGROUND_TASKS_ASYNC (default) the task runs on a daemon thread
    and ``None`` is returned immediately. Otherwise it runs inline and its
    result is returned. Either way a failure is logged and never raised.
    """
    app = current_app._get_current_object()
    name = task_name or getattr(func, '__name__', 'task')

    if not app.config.get('BACKGROUND_TASKS_ASYNC', True):
        return _run_task(app, func, name, args, kwargs)

    thread = threading.Thread(
        target=_run_task,
        args=(app, func, name, args, kwargs),
        name=f"learnxp-{name}",
        daemon=True,
    )
    thread.start()
    return None
