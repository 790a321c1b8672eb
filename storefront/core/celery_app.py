"""
Celery application configuration.

Redis is both the message broker and result backend. Only used when
verification codes are delivered through the queue
(VERIFICATION_NOTIFIER=queue). Verification emails get their own queue so a
backlog of other work never delays a code past its expiry.
"""

from celery import Celery
from kombu import Exchange, Queue
from storefront.core.config import settings

VERIFICATION_EMAIL_QUEUE = "verification_email"

celery_app = Celery(
    "storefront_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    # Queues
    task_queues=(
        Queue("default", Exchange("default"), routing_key="default"),
        Queue(VERIFICATION_EMAIL_QUEUE, Exchange(VERIFICATION_EMAIL_QUEUE), routing_key=VERIFICATION_EMAIL_QUEUE),
    ),
    task_default_queue="default",
    task_routes={
        "send_verification_email_task": {
            "queue": VERIFICATION_EMAIL_QUEUE,
            "routing_key": VERIFICATION_EMAIL_QUEUE,
        },
    },

    task_acks_late=True,
    task_time_limit=60,
    task_soft_time_limit=45,

    result_expires=3600,

    worker_prefetch_multiplier=1,
)

celery_app.autodiscover_tasks(['storefront'])
