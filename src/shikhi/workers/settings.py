"""arq worker settings module.

Import path for arq CLI: arq shikhi.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from shikhi.config import get_settings
from shikhi.workers.reconcile import reconcile_enrollments, shutdown, startup

_settings = get_settings()


class WorkerSettings:
    """arq worker settings for enrollment reconciliation."""

    functions = [reconcile_enrollments]
    cron_jobs = [
        cron(
            reconcile_enrollments,
            minute=set(range(0, 60, max(1, _settings.reconcile_interval_minutes))),
            run_at_startup=True,
            unique=True,
        ),
    ]
    redis_settings = RedisSettings.from_dsn(_settings.redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
