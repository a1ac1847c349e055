from celery import Celery
from rendplus.config import settings

celery_app = Celery(
    "rendplus",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["rendplus.workers.tasks"],
)

celery_app.conf.task_acks_late = True
celery_app.conf.timezone = "UTC"
