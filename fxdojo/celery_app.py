from celery import Celery

from fxdojo.core.config import settings
from fxdojo.core.logging import configure_logging

configure_logging()

celery_app = Celery(
    "fxdojo",
    broker=settings.RABBITMQ_URL,
    backend=settings.REDIS_URL,
    include=["fxdojo.tasks.email_tasks", "fxdojo.tasks.subscription_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    beat_schedule={
        "check-expired-subscriptions": {
            "task": "subscriptions.check_expired",
            "schedule": 60 * 60,
        },
    },
)

if __name__ == "__main__":
    celery_app.start()
