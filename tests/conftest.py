"""Shared fixtures for the Drive Grader tests."""

from datetime import datetime, timezone

import pytest

from drive_grader.models import Criterion, CriterionScore, GradingResult, Rubric, Submission


@pytest.fixture
def single_criterion_rubric():
    """Rubric with one 100-point criterion and a passing score of 60."""
    return Rubric(
        criteria=(Criterion(name="Test", description="Everything", max_points=100),),
        total_points=100,
        passing_score=60,
    )


@pytest.fixture
def essay_rubric():
    """Three-criterion rubric without a passing score."""
    return Rubric(
        criteria=(
            Criterion(name="Content Quality", description="Accurate information", max_points=40),
            Criterion(name="Organization", description="Clear structure", max_points=30, weight=1.5),
            Criterion(name="Writing Quality", description="Grammar and style", max_points=30),
        ),
        total_points=100,
    )


@pytest.fixture
def submission():
    return Submission(
        file_id="1abc123xyz",
        file_name="essay.txt",
        file_content="The mitochondria is the powerhouse of the cell.",
        submitted_by="student@example.com",
        submitted_at=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        mime_type="text/plain",
    )


@pytest.fixture
def grading_result():
    return GradingResult(
        submission_id="1abc123xyz",
        file_name="essay.txt",
        total_score=82,
        max_score=100,
        percentage=82.0,
        passed=True,
        criteria_scores=[
            CriterionScore(criterion_name="Content Quality", score=35, max_score=40, feedback="Accurate and complete."),
            CriterionScore(criterion_name="Organization", score=25, max_score=30, feedback="Good flow.\nIntro is short."),
            CriterionScore(criterion_name="Writing Quality", score=22, max_score=30, feedback="Some typos."),
        ],
        feedback="Solid work overall.",
        graded_at=datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc),
    )


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep real settings out of the tests."""
    for key in (
        "GOOGLE_DRIVE_FOLDER_ID",
        "GOOGLE_APPLICATION_CREDENTIALS",
        "OPENAI_API_KEY",
        "OPENAI_MODEL",
        "RUBRIC_FILE",
        "POLLING_INTERVAL",
        "TASK_QUEUE",
        "CELERY_BROKER_URL",
        "CELERY_RESULT_BACKEND",
        "CELERY_NAMESPACE",
        "DASHBOARD_PORT",
        "RESULTS_DIR",
        "STORAGE_BACKEND",
        "UPLOAD_RESULTS",
        "PROCESSED_IDS_FILE",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
