"""
Pydantic models for the Drive Grader system.

Defines structured data types for rubrics, fetched submissions, grading
results, the payload passed between orchestration steps, and the parsed
report summaries served by the dashboard.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import (
    DEFAULT_PASS_PERCENTAGE,
    RETRY_BACKOFF_COEFFICIENT,
    RETRY_INITIAL_INTERVAL_SECONDS,
    RETRY_MAXIMUM_ATTEMPTS,
    RETRY_MAXIMUM_INTERVAL_SECONDS,
    STEP_TIMEOUT_SECONDS,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Criterion(BaseModel):
    """
    A single gradable dimension of a rubric.

    Attributes:
        name: Criterion title (e.g., "Clarity").
        description: What the grader should look for.
        max_points: Maximum points available for this criterion.
        weight: Optional multiplier, passed to the model as advisory metadata.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Criterion title")
    description: str = Field(default="", description="Criterion description text")
    max_points: float = Field(..., description="Maximum points for this criterion")
    weight: float | None = Field(default=None, description="Advisory weight multiplier")


class Rubric(BaseModel):
    """
    Complete scoring definition.

    Attributes:
        criteria: Ordered list of criteria.
        total_points: Total possible points, used as the result's max score.
        passing_score: Optional absolute passing threshold.
    """

    model_config = ConfigDict(frozen=True)

    criteria: tuple[Criterion, ...] = Field(..., description="Ordered grading criteria")
    total_points: float = Field(..., description="Total possible points")
    passing_score: float | None = Field(default=None, description="Points needed to pass")


class Submission(BaseModel):
    """
    A document fetched from storage, ready to be graded.

    Attributes:
        file_id: Storage identifier of the document.
        file_name: Display name of the document.
        file_content: Text content (or a placeholder for unreadable types).
        submitted_by: Email of the document owner.
        submitted_at: Creation time of the document.
        mime_type: Content type reported by storage.
    """

    file_id: str = Field(..., description="Storage file identifier")
    file_name: str = Field(..., description="Display name")
    file_content: str = Field(default="", description="Text content")
    submitted_by: str = Field(..., description="Submitter identity")
    submitted_at: datetime = Field(..., description="Submission timestamp")
    mime_type: str = Field(default="text/plain", description="Content type")


class CriterionScore(BaseModel):
    """
    Grade result for a single rubric criterion.

    Accepts the camelCase keys the model is asked to answer with
    (criterionName, maxScore) as well as the snake_case field names.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    criterion_name: str = Field(..., description="Name of the graded criterion")
    score: float = Field(..., allow_inf_nan=False, description="Points awarded")
    max_score: float = Field(..., allow_inf_nan=False, description="Maximum possible points")
    feedback: str = Field(default="", description="Feedback for this criterion")

    @field_validator("feedback", mode="before")
    @classmethod
    def _none_feedback(cls, value):
        return "" if value is None else value


class GradingResult(BaseModel):
    """
    Complete grading result for a submission.

    Attributes:
        submission_id: Storage identifier of the graded document.
        file_name: Display name of the graded document.
        total_score: Sum of per-criterion scores.
        max_score: Rubric total points.
        percentage: total_score / max_score * 100.
        passed: Whether the submission met the passing threshold.
        criteria_scores: Per-criterion breakdown, in model order.
        feedback: Overall feedback text.
        graded_at: When the grade was produced.
    """

    submission_id: str = Field(..., description="Graded document identifier")
    file_name: str = Field(..., description="Graded document name")
    total_score: float = Field(..., description="Total points earned")
    max_score: float = Field(..., allow_inf_nan=False, description="Maximum possible points")
    percentage: float = Field(..., description="Score as a percentage")
    passed: bool = Field(..., description="Whether the passing threshold was met")
    criteria_scores: list[CriterionScore] = Field(
        default_factory=list, description="Per-criterion grade breakdowns"
    )
    feedback: str = Field(default="", description="Overall feedback")
    graded_at: datetime = Field(default_factory=_utcnow, description="Grading timestamp")

    @classmethod
    def from_scores(
        cls,
        submission: Submission,
        rubric: Rubric,
        criteria_scores: list[CriterionScore],
        feedback: str,
        graded_at: datetime | None = None,
    ) -> "GradingResult":
        """
        Build a result, computing totals from the scores and the rubric.

        The max score is the rubric's declared total, not the sum of the
        per-criterion maximums.
        """
        total_score = sum(cs.score for cs in criteria_scores)
        max_score = rubric.total_points
        percentage = (total_score / max_score * 100) if max_score > 0 else 0.0

        if rubric.passing_score is not None:
            passed = total_score >= rubric.passing_score
        else:
            passed = percentage >= DEFAULT_PASS_PERCENTAGE

        return cls(
            submission_id=submission.file_id,
            file_name=submission.file_name,
            total_score=total_score,
            max_score=max_score,
            percentage=percentage,
            passed=passed,
            criteria_scores=criteria_scores,
            feedback=feedback,
            graded_at=graded_at or _utcnow(),
        )


class GradingWorkflowInput(BaseModel):
    """Arguments for one orchestration run."""

    file_id: str = Field(..., description="Submission to grade")
    rubric: Rubric = Field(..., description="Rubric to grade against")
    folder_id: str = Field(..., description="Folder the submission was found in")


class GradingRun(BaseModel):
    """
    State carried from step to step of a grading chain.

    Each step fills in its own field and hands the run to the next step.
    """

    input: GradingWorkflowInput
    submission: Submission | None = None
    result: GradingResult | None = None
    report_location: str | None = None


class StoredFile(BaseModel):
    """Listing entry for a file in a storage folder."""

    file_id: str
    name: str
    mime_type: str = ""


class RetryPolicy(BaseModel):
    """
    Declarative retry and timeout policy for one orchestration step.

    The backoff curve is initial_interval * backoff_coefficient ** retry,
    capped at maximum_interval.
    """

    model_config = ConfigDict(frozen=True)

    initial_interval: int = Field(RETRY_INITIAL_INTERVAL_SECONDS, ge=1, description="First retry delay (s)")
    backoff_coefficient: int = Field(RETRY_BACKOFF_COEFFICIENT, ge=1, description="Delay multiplier")
    maximum_interval: int = Field(RETRY_MAXIMUM_INTERVAL_SECONDS, ge=1, description="Delay cap (s)")
    maximum_attempts: int = Field(RETRY_MAXIMUM_ATTEMPTS, ge=1, description="Attempts including the first")
    start_to_close_timeout: int = Field(STEP_TIMEOUT_SECONDS, ge=1, description="Per-attempt time budget (s)")

    def delay_for(self, retry: int) -> int:
        """Seconds to wait before the given retry (0-based)."""
        return min(self.initial_interval * self.backoff_coefficient**retry, self.maximum_interval)

    def as_task_options(self, retry_on: tuple[type[BaseException], ...] = (Exception,)) -> dict:
        """
        Translate the policy into Celery task options.

        Celery's exponential backoff always doubles, so the coefficient must be 2.
        """
        if self.backoff_coefficient != 2:
            raise ValueError("Celery retry_backoff only supports a backoff coefficient of 2")

        return {
            "autoretry_for": retry_on,
            "retry_backoff": self.initial_interval,
            "retry_backoff_max": self.maximum_interval,
            "retry_jitter": False,
            "max_retries": self.maximum_attempts - 1,
            "soft_time_limit": self.start_to_close_timeout,
            "acks_late": True,
            "reject_on_worker_lost": True,
        }


STEP_RETRY_POLICY = RetryPolicy()


class CamelModel(BaseModel):
    """Base for models serialized to the dashboard's camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReportScore(CamelModel):
    """One criterion line parsed back from a report file."""

    criterion_name: str
    score: int | float
    max_score: int | float
    feedback: str = ""


class ReportSummary(CamelModel):
    """
    Dashboard view of one persisted report file.

    Integral numbers are kept as ints so the JSON API answers 82, not 82.0.

    Attributes:
        file_name: Graded document name.
        submission_id: Graded document identifier ("" if absent).
        graded_at: ISO timestamp string as written in the report.
        total_score: Points earned.
        max_score: Points possible.
        percentage: Percentage, as rounded in the report.
        passed: Whether the STATUS line says PASSED.
        detailed_scores: Per-criterion scores and feedback.
        overall_feedback: Overall feedback paragraph.
    """

    file_name: str
    submission_id: str = ""
    graded_at: str = ""
    total_score: int | float
    max_score: int | float
    percentage: int | float
    passed: bool
    detailed_scores: list[ReportScore] = Field(default_factory=list)
    overall_feedback: str = ""
