"""
The four steps of a grading run, as Celery tasks.

Every step takes the GradingRun built so far (as a JSON dict), does its
work, and returns the updated run for the next step. Fetch, grade and save
are retried under STEP_RETRY_POLICY and abort the run once retries are
exhausted. The notification step never fails the run.
"""

import logging

from .celery_app import app
from .exceptions import NotificationFailure
from .models import STEP_RETRY_POLICY, GradingResult, GradingRun, Submission
from .report import format_report, save_report
from .services import get_services
from .utils import report_filename

logger = logging.getLogger(__name__)

STEP_OPTIONS = STEP_RETRY_POLICY.as_task_options()


def _submission(run: GradingRun) -> Submission:
    if run.submission is None:
        raise ValueError(f"Run for {run.input.file_id} has no fetched submission")
    return run.submission


def _result(run: GradingRun) -> GradingResult:
    if run.result is None:
        raise ValueError(f"Run for {run.input.file_id} has no grading result")
    return run.result


def _notify(recipient: str, result: GradingResult) -> None:
    logger.info("Sending notification to: %s", recipient)
    try:
        get_services().notifier.notify(recipient, result)
    except Exception as e:
        raise NotificationFailure(f"Could not notify {recipient}: {e}") from e


@app.task(name="drive_grader.fetch_submission", **STEP_OPTIONS)
def fetch_submission(run: dict) -> dict:
    """Step 1: fetch the submission from storage."""
    grading_run = GradingRun.model_validate(run)
    file_id = grading_run.input.file_id
    logger.info("Fetching submission: %s", file_id)

    submission = get_services().storage.fetch_by_id(file_id)
    logger.info("Fetched submission: %s", submission.file_name)
    return grading_run.model_copy(update={"submission": submission}).model_dump(mode="json")


@app.task(name="drive_grader.grade_submission", **STEP_OPTIONS)
def grade_submission(run: dict) -> dict:
    """Step 2: grade the submission against the run's rubric."""
    grading_run = GradingRun.model_validate(run)
    submission = _submission(grading_run)

    result = get_services().grader.grade(submission, grading_run.input.rubric)
    logger.info(
        "Grading complete for %s. Score: %s/%s",
        submission.file_name,
        result.total_score,
        result.max_score,
    )
    return grading_run.model_copy(update={"result": result}).model_dump(mode="json")


@app.task(name="drive_grader.save_grading_result", **STEP_OPTIONS)
def save_grading_result(run: dict) -> dict:
    """
    Step 3: persist the report.

    The report is always written to the local results directory, which the
    dashboard reads. With UPLOAD_RESULTS it is also uploaded next to the
    submission and shared with the submission's collaborators.
    """
    grading_run = GradingRun.model_validate(run)
    result = _result(grading_run)
    services = get_services()
    logger.info("Saving grading result for: %s", result.file_name)

    location = str(save_report(services.settings.results_dir, result))

    if services.settings.upload_results:
        location = services.storage.write_content(
            grading_run.input.folder_id,
            report_filename(result.file_name),
            format_report(result),
        )
        services.storage.copy_permissions(grading_run.input.file_id, location)

    logger.info("Grading result saved with ID: %s", location)
    return grading_run.model_copy(update={"report_location": location}).model_dump(mode="json")


@app.task(name="drive_grader.send_notification", bind=True, **STEP_RETRY_POLICY.as_task_options(retry_on=()))
def send_notification(self, run: dict) -> dict:
    """
    Step 4: notify the submitter, best effort.

    Failed attempts are retried under the same policy; once attempts run
    out the failure is logged and the run still succeeds.

    Returns:
        The GradingResult dict, which is the result of the whole run.
    """
    grading_run = GradingRun.model_validate(run)
    submission = _submission(grading_run)
    result = _result(grading_run)

    try:
        _notify(submission.submitted_by, result)
    except NotificationFailure as e:
        if not self.request.called_directly and self.request.retries < self.max_retries:
            raise self.retry(exc=e, countdown=STEP_RETRY_POLICY.delay_for(self.request.retries))
        logger.error("Error sending notification for %s: %s", submission.file_name, e)

    logger.info("Workflow complete for: %s", submission.file_name)
    return result.model_dump(mode="json")
