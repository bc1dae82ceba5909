"""
Celery application - async task queue with RabbitMQ.
Challenge: Decouple search indexing and consistency sweeps from the HTTP request.
Design: RabbitMQ broker; Redis as result backend.
"""

from celery import Celery

from marketplace.config import get_settings

settings = get_settings()

celery_app = Celery(
    "marketplace",
    broker=settings.celery_broker_url,
    backend=settings.redis_url,
    include=["marketplace.queue.tasks"],
)

# Task settings: retries, time limits, serialization
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    task_time_limit=300,
    task_soft_time_limit=60,
    worker_prefetch_multiplier=1,  # Fair distribution
    beat_schedule={
        "recompute-favorites-counts": {
            "task": "marketplace.queue.tasks.recompute_favorites_task",
            "schedule": float(settings.favorites_sweep_interval_seconds),
        },
    },
)
