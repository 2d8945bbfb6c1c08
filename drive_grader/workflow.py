"""
Grading workflow definition.

A grading run is a Celery chain of the four step tasks. Steps run strictly
in order; separate runs execute concurrently on the worker pool.
"""

import logging
import time

from celery import chain
from celery.result import AsyncResult

from .models import GradingRun, GradingWorkflowInput
from .tasks import fetch_submission, grade_submission, save_grading_result, send_notification

logger = logging.getLogger(__name__)


def workflow_id_for(file_id: str) -> str:
    """Run identifier: grade-<file id>-<epoch milliseconds>."""
    return f"grade-{file_id}-{int(time.time() * 1000)}"


def build_grading_workflow(workflow_input: GradingWorkflowInput) -> chain:
    """
    Build the fetch -> grade -> save -> notify chain for one submission.

    Args:
        workflow_input: File, rubric and folder of the run.

    Returns:
        Unsent Celery chain whose final result is the GradingResult dict.
    """
    run = GradingRun(input=workflow_input).model_dump(mode="json")
    return chain(
        fetch_submission.s(run),
        grade_submission.s(),
        save_grading_result.s(),
        send_notification.s(),
    )


def start_grading_workflow(
    workflow_input: GradingWorkflowInput,
    task_queue: str | None = None,
    workflow_id: str | None = None,
) -> AsyncResult:
    """
    Start a grading run without waiting for it.

    Args:
        workflow_input: File, rubric and folder of the run.
        task_queue: Queue to send the steps to (app default if None).
        workflow_id: Id of the run's final result (generated if None).

    Returns:
        AsyncResult of the final step; .get() yields the GradingResult dict.
    """
    workflow_id = workflow_id or workflow_id_for(workflow_input.file_id)
    options = {"queue": task_queue} if task_queue else {}

    handle = build_grading_workflow(workflow_input).apply_async(task_id=workflow_id, **options)
    logger.info("Workflow started: %s", workflow_id)
    return handle
