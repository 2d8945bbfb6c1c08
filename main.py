"""
Drive Grader: Rubric grading for Google Drive submissions

Usage:
  main.py worker [--concurrency=N]
  main.py poll
  main.py dashboard [--port=PORT] [--debug]
  main.py trigger <file_id> [--timeout=SECONDS]
  main.py (-h | --help)

Commands:
  worker     Run a Celery worker executing the grading steps.
  poll       Watch the Drive folder and start a grading run per new file.
  dashboard  Serve the results dashboard and JSON API.
  trigger    Grade one file now and wait for the result.

Options:
  --concurrency=N      Worker processes [default: 4].
  --port=PORT          Dashboard port (defaults to DASHBOARD_PORT).
  --debug              Run the dashboard in debug mode.
  --timeout=SECONDS    Seconds to wait for the result [default: 900].
  -h --help            Show this screen.

Settings are read from the environment and from .env.
"""

import logging
import sys
import time

from docopt import docopt

from drive_grader.celery_app import configure_app
from drive_grader.config_loader import GraderSettings, load_settings
from drive_grader.exceptions import ConfigurationError
from drive_grader.llm_grader import resolve_api_key
from drive_grader.logging_config import setup_logging
from drive_grader.models import GradingResult, GradingWorkflowInput
from drive_grader.poller import FileProcessedStore, InMemoryProcessedStore, SubmissionPoller
from drive_grader.rubric_parser import load_rubric_or_default
from drive_grader.services import build_storage
from drive_grader.utils import format_decimal
from drive_grader.workflow import start_grading_workflow

logger = logging.getLogger("drive_grader")


def print_grade_summary(grade: GradingResult) -> None:
    """
    Print a summary of the grade to console.

    Args:
        grade: GradingResult to summarize.
    """
    print(f"\n  {'='*50}")
    print(f"  File: {grade.file_name}")
    print(f"  Score: {format_decimal(grade.total_score)}/{format_decimal(grade.max_score)} ({grade.percentage:.1f}%)")
    print(f"  Status: {'PASSED' if grade.passed else 'NEEDS IMPROVEMENT'}")
    print(f"  {'='*50}")

    for cs in grade.criteria_scores:
        print(f"  {cs.criterion_name}: {format_decimal(cs.score)}/{format_decimal(cs.max_score)}")
        print(f"    {cs.feedback}")

    print(f"\n  Overall Feedback:\n  {grade.feedback}\n")


def run_worker(settings: GraderSettings, concurrency: int) -> int:
    resolve_api_key(settings.openai_api_key)
    app = configure_app(settings)

    logger.info("Starting Celery worker...")
    logger.info("Broker: %s", settings.celery_broker_url)
    logger.info("Namespace: %s", settings.celery_namespace)
    logger.info("Task Queue: %s", settings.task_queue)

    app.worker_main([
        "worker",
        f"--loglevel={settings.log_level}",
        f"--queues={settings.task_queue}",
        f"--concurrency={concurrency}",
    ])
    return 0


def run_poller(settings: GraderSettings) -> int:
    settings.require("google_drive_folder_id")
    configure_app(settings)

    folder_id = settings.google_drive_folder_id
    rubric = load_rubric_or_default(settings.rubric_file)
    storage = build_storage(settings)

    if settings.processed_ids_file:
        processed = FileProcessedStore(settings.processed_ids_file)
    else:
        processed = InMemoryProcessedStore()

    def start_run(file_id: str) -> str:
        workflow_input = GradingWorkflowInput(file_id=file_id, rubric=rubric, folder_id=folder_id)
        return start_grading_workflow(workflow_input, task_queue=settings.task_queue).id

    poller = SubmissionPoller(
        storage=storage,
        processed=processed,
        start_run=start_run,
        folder_id=folder_id,
        interval_seconds=settings.polling_interval_seconds,
    )
    logger.info("Task queue: %s", settings.task_queue)
    poller.run_forever()
    return 0


def run_dashboard(settings: GraderSettings, port: int, debug: bool) -> int:
    from drive_grader.dashboard import create_dashboard

    app = create_dashboard(settings.results_dir, settings.env_file)
    logger.info("Dashboard running at http://localhost:%s", port)
    logger.info("Watching %s for updates", settings.results_dir)
    app.run(debug=debug, port=port)
    return 0


def run_trigger(settings: GraderSettings, file_id: str, timeout: float) -> int:
    settings.require("google_drive_folder_id")
    configure_app(settings)

    workflow_input = GradingWorkflowInput(
        file_id=file_id,
        rubric=load_rubric_or_default(settings.rubric_file),
        folder_id=settings.google_drive_folder_id,
    )
    handle = start_grading_workflow(
        workflow_input,
        task_queue=settings.task_queue,
        workflow_id=f"test-grade-{file_id}-{int(time.time() * 1000)}",
    )
    print(f"Workflow started with ID: {handle.id}")
    print("Waiting for result...")

    result = GradingResult.model_validate(handle.get(timeout=timeout))
    print_grade_summary(result)
    return 0


def main() -> int:
    """
    Main CLI entrypoint.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    arguments = docopt(__doc__)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Error loading configuration: {e}")
        return 1

    setup_logging(settings.log_level)

    try:
        if arguments["worker"]:
            return run_worker(settings, int(arguments["--concurrency"]))
        if arguments["poll"]:
            return run_poller(settings)
        if arguments["dashboard"]:
            port = int(arguments["--port"] or settings.dashboard_port)
            return run_dashboard(settings, port, arguments["--debug"])
        if arguments["trigger"]:
            return run_trigger(settings, arguments["<file_id>"], float(arguments["--timeout"]))
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
