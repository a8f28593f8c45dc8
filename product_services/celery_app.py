"""
Celery application for background cache maintenance.

This module initializes Celery with Redis as the broker/backend.
Tasks include:
- Scheduled refresh of the product services cache
- Periodic cache statistics logging
"""
from celery import Celery
from celery.schedules import crontab
from product_services.config.settings import settings

# Initialize Celery app
app = Celery(
    "product_services",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "product_services.tasks.maintenance_tasks",
    ]
)

# Celery configuration
app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Broker settings
    broker_connection_retry_on_startup=True,
    broker_connection_retry=True,
    broker_connection_max_retries=10,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    task_routes={
        "product_services.tasks.maintenance_tasks.*": {"queue": "maintenance"},
    },
)

# Scheduled tasks (Beat schedule)
app.conf.beat_schedule = {
    # Re-warm the product services cache before the filtered TTL lapses
    "refresh-product-services-cache": {
        "task": "product_services.tasks.maintenance_tasks.refresh_product_services_cache",
        "schedule": crontab(minute="*/30"),  # Every 30 minutes
        "options": {"queue": "maintenance"},
    },

    # Log hit rate and memory every 5 minutes
    "log-cache-stats": {
        "task": "product_services.tasks.maintenance_tasks.log_cache_stats",
        "schedule": crontab(minute="*/5"),  # Every 5 minutes
        "options": {"queue": "maintenance"},
    },
}

if __name__ == "__main__":
    app.start()
