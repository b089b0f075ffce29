from celery import Celery
from pulse.config import get_settings

settings = get_settings()

celery_app = Celery(
    "pulse",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["pulse.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=180,
    task_soft_time_limit=150,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "pulse.workers.tasks.analyze_response_sentiment": {"queue": "sentiment"},
    },
)
