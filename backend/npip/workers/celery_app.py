"""
Celery Application Configuration
Queue-based ingestion: a beat tick dispatches due projects to workers
"""

from celery import Celery
from kombu import Queue, Exchange

from npip.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "npip",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "npip.workers.tasks.ingestion_tasks",
    ]
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Result backend settings
    result_expires=3600,  # 1 hour

    # Task execution settings
    task_acks_late=True,  # Acknowledge after task completion
    task_reject_on_worker_lost=True,
    task_time_limit=300,  # 5 minutes max
    task_soft_time_limit=240,  # 4 minutes soft limit

    # Worker settings
    worker_prefetch_multiplier=1,  # Fair distribution
    worker_concurrency=4,

    # Queue configuration
    task_queues=(
        Queue("default", Exchange("default"), routing_key="default"),
        Queue("ingestion", Exchange("ingestion"), routing_key="ingest"),
    ),

    task_default_queue="default",
    task_default_exchange="default",
    task_default_routing_key="default",

    task_routes={
        "npip.workers.tasks.ingestion_tasks.ingest_project": {"queue": "ingestion"},
    },

    # Beat scheduler for periodic tasks
    beat_schedule={
        "dispatch-ingestion-tick": {
            "task": "npip.workers.tasks.ingestion_tasks.dispatch_ingestion_tick",
            "schedule": float(settings.INGESTION_TICK_SECONDS),
        },
    },
)
