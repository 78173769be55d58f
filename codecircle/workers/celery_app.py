from celery import Celery

from codecircle.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "code_circle",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "codecircle.workers.tasks.distribution",
        "codecircle.workers.tasks.penalties",
        "codecircle.workers.tasks.cycle_reset",
    ],
)

celery_app.conf.update(
    task_default_queue="q_normal",
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # crontab entries fire on the groups' wall clock
    timezone=settings.schedule_timezone,
    enable_utc=True,
)


@celery_app.task(name="codecircle.workers.celery_app.ping")
def ping() -> str:
    return "pong"
