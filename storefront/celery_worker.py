# storefront/celery_worker.py
from celery import Celery

from storefront.utils.settings import (
    CELERY_BROKER_URL,
    CELERY_RESULT_BACKEND,
    CELERY_TASK_ALWAYS_EAGER,
)

celery_app = Celery(
    "storefront",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# taski musza byc zaimportowane zeby celery je zarejestrowal
celery_app.conf.imports = (
    "storefront.tasks.expire",
    "storefront.services.notification_service",
)

# beat - porzucone zamowienia co 15 min
celery_app.conf.beat_schedule = {
    "expire-stale-orders-every-15-minutes": {
        "task": "storefront.tasks.expire.expire_stale_orders_task",
        "schedule": 15 * 60.0,
    },
}

celery_app.conf.timezone = "UTC"
# dev / testy - taski wykonywane od razu w procesie
celery_app.conf.task_always_eager = CELERY_TASK_ALWAYS_EAGER
