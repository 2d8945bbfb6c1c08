"""
Celery application running the grading steps.

Tasks are acknowledged only after they finish and are re-queued if the
worker dies mid-step, giving at-least-once execution of every step.
"""

from celery import Celery

from .config_loader import GraderSettings

app = Celery("drive_grader", include=["drive_grader.tasks"])

app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    result_extended=True,
    timezone="UTC",
)


def configure_app(settings: GraderSettings) -> Celery:
    """
    Point the app at the configured broker, backend and queue.

    The namespace becomes a Redis key prefix so several deployments can
    share one Redis instance.
    """
    prefix = {"global_keyprefix": f"{settings.celery_namespace}:"}
    app.conf.update(
        broker_url=settings.celery_broker_url,
        result_backend=settings.result_backend,
        task_default_queue=settings.task_queue,
        broker_transport_options=prefix,
        result_backend_transport_options=prefix,
    )
    return app
