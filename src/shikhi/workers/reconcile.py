"""arq tasks that replay failed enrollment side effects.

The API records a ReconciliationTask whenever adding or removing a student's
course enrollment fails after the request itself was saved. This worker picks
up open tasks on a schedule and replays them until they succeed or run out of
attempts.
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from shikhi.config import get_settings
from shikhi.database import close_db, get_session_factory, init_db
from shikhi.db.models import ReconciliationTask
from shikhi.enrollments.saga import TASK_ABANDONED, TASK_OPEN, TASK_RESOLVED, replay_task
from shikhi.middleware.logging import setup_logging

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize the database engine on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)
    ctx["session_factory"] = get_session_factory()
    logger.info("Reconciliation worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Dispose of the database engine."""
    await close_db()
    logger.info("Reconciliation worker shut down")


async def reconcile_enrollments(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Replay one batch of open tasks, oldest first."""
    settings = get_settings()
    counts = {TASK_RESOLVED: 0, TASK_OPEN: 0, TASK_ABANDONED: 0}

    async with ctx["session_factory"]() as db:
        result = await db.execute(
            select(ReconciliationTask.id)
            .where(ReconciliationTask.status == TASK_OPEN)
            .order_by(ReconciliationTask.created_at)
            .limit(settings.reconcile_batch_size)
        )
        task_ids = list(result.scalars().all())
        for task_id in task_ids:
            # rollbacks expire loaded rows, so fetch each task fresh
            task = await db.get(ReconciliationTask, task_id)
            status = await replay_task(db, task, settings.reconcile_max_attempts)
            counts[status] = counts.get(status, 0) + 1

    if task_ids:
        logger.info(
            "Reconciled %d tasks: %d resolved, %d still open, %d abandoned",
            len(task_ids),
            counts[TASK_RESOLVED],
            counts[TASK_OPEN],
            counts[TASK_ABANDONED],
        )
    return counts
