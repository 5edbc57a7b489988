from celery import Celery

from moneybuddy.core.config import get_settings

settings = get_settings()

celery = Celery(
    "moneybuddy",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

# Import tasks
celery.conf.imports = ["moneybuddy.tasks"]

# Set task routes
celery.conf.task_routes = {"moneybuddy.tasks.process_event": {"queue": "webhooks"}}
