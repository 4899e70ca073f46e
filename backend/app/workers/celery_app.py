"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from app.config import settings

celery_app = Celery(
    "removal_orchestrator",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.workers.tasks.auto_process",
        "app.workers.tasks.reconcile_replies",
        "app.workers.tasks.link_health",
        "app.workers.tasks.maintenance",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes max per task
    task_soft_time_limit=540,  # 9 minutes soft limit
    worker_prefetch_multiplier=1,  # One task at a time for heavy operations
    task_acks_late=True,  # Acknowledge after completion
    task_reject_on_worker_lost=True,
)

# Scheduled tasks (beat schedule)
celery_app.conf.beat_schedule = {
    # Turn eligible exposures into removal requests every 8 hours
    "auto-process-removals": {
        "task": "app.workers.tasks.auto_process.auto_process_removals",
        "schedule": crontab(minute=0, hour="*/8"),
    },
    # Reconcile delivery statuses and aged acknowledgments twice a day
    "reconcile-replies": {
        "task": "app.workers.tasks.reconcile_replies.reconcile_replies",
        "schedule": crontab(minute=30, hour="*/12"),
    },
    # Check opt-out links daily at 6 AM
    "link-health-check": {
        "task": "app.workers.tasks.link_health.check_opt_out_links",
        "schedule": crontab(hour=6, minute=0),
    },
    # Whitelist data processor exposures daily at 4 AM
    "data-processor-cleanup": {
        "task": "app.workers.tasks.maintenance.cleanup_data_processors",
        "schedule": crontab(hour=4, minute=0),
    },
    # Prune execution logs weekly
    "cleanup-cron-logs": {
        "task": "app.workers.tasks.maintenance.cleanup_cron_logs",
        "schedule": crontab(hour=3, minute=0, day_of_week=1),  # Monday 3 AM
    },
}

# Logging configuration
celery_app.conf.worker_hijack_root_logger = False
celery_app.conf.worker_log_format = "[%(asctime)s: %(levelname)s/%(processName)s] %(message)s"
celery_app.conf.worker_task_log_format = (
    "[%(asctime)s: %(levelname)s/%(processName)s] "
    "[%(task_name)s(%(task_id)s)] %(message)s"
)
