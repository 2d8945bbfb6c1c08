"""
LLM-based rubric grading.

Builds a deterministic grading prompt from a submission and a rubric, asks a
text model for a JSON score breakdown, and turns the answer into a
GradingResult. A malformed answer never raises: it degrades to a zero-score
result so the orchestration step still produces something to persist.
"""

import json
import logging
import netrc
import os
from typing import Protocol

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from .config import MAX_TOKENS, NO_OVERALL_FEEDBACK, OPENAI_MODEL, PARSE_ERROR_FEEDBACK, REPORT_SEPARATOR
from .exceptions import ConfigurationError, GradingFailure, GradingParseFailure
from .models import CriterionScore, GradingResult, Rubric, Submission
from .rubric_parser import format_rubric_for_llm

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are an expert grader. You answer only with the JSON object you are asked for."

OUTPUT_FORMAT = """{
  "criteriaScores": [
    {
      "criterionName": "name of the criterion",
      "score": numeric_score,
      "maxScore": max_points_for_criterion,
      "feedback": "detailed feedback for this criterion"
    }
  ],
  "overallFeedback": "overall feedback about the submission"
}"""


class TextModel(Protocol):
    """Anything that turns a prompt into generated text."""

    def generate(self, prompt: str) -> str: ...


def resolve_api_key(api_key: str | None = None) -> str:
    """
    Find the OpenAI API key.

    Priority: 1. Argument, 2. .netrc (machine OPENAI), 3. OPENAI_API_KEY.

    Raises:
        ConfigurationError: If no key can be found.
    """
    if api_key is None:
        try:
            auth = netrc.netrc().authenticators("OPENAI")
            if auth:
                api_key = auth[0]  # auth[0] is the login info
        except (FileNotFoundError, netrc.NetrcParseError):
            pass

    api_key = api_key or os.environ.get("OPENAI_API_KEY")

    if not api_key:
        raise ConfigurationError(
            "OpenAI API key required. Set OPENAI_API_KEY environment variable, "
            "add machine OPENAI to your .netrc file, or pass api_key parameter."
        )
    return api_key


class OpenAITextModel:
    """TextModel backed by the OpenAI chat completions API."""

    def __init__(self, model: str = OPENAI_MODEL, api_key: str | None = None) -> None:
        self.model = model
        self.client = OpenAI(api_key=resolve_api_key(api_key))

    def generate(self, prompt: str) -> str:
        """
        Send the prompt and return the answer text.

        Raises:
            GradingFailure: If the API call fails.
        """
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_completion_tokens=MAX_TOKENS,
            )
        except OpenAIError as e:
            raise GradingFailure(f"OpenAI request failed: {e}") from e

        return completion.choices[0].message.content or ""


class LLMGrader:
    """
    Rubric grader driven by a text model.

    Totals, percentage and pass/fail are always computed here from the
    parsed per-criterion scores and the rubric, never read from the model.
    """

    def __init__(self, model: TextModel) -> None:
        """
        Initialize the grader.

        Args:
            model: Text model used to produce the score breakdown.
        """
        self.model = model

    def grade(self, submission: Submission, rubric: Rubric) -> GradingResult:
        """
        Grade a submission against a rubric.

        Args:
            submission: Fetched submission.
            rubric: Rubric to grade against.

        Returns:
            GradingResult; a zero-score result if the answer can't be parsed.

        Raises:
            GradingFailure: If the model call itself fails.
        """
        logger.info("Grading submission: %s", submission.file_name)
        prompt = build_prompt(submission, rubric)
        response_text = self.model.generate(prompt)

        try:
            return parse_response(response_text, submission, rubric)
        except GradingParseFailure as e:
            logger.error("Error parsing grading response for %s: %s", submission.file_name, e)
            logger.debug("Response text: %s", response_text)
            return fallback_result(submission, rubric, str(e))


def build_prompt(submission: Submission, rubric: Rubric) -> str:
    """
    Build the grading prompt.

    Args:
        submission: Submission to embed verbatim.
        rubric: Rubric whose criteria are listed.

    Returns:
        Complete prompt string.
    """
    return f"""You are an expert grader. Grade the following submission according to the provided rubric.

SUBMISSION DETAILS:
File Name: {submission.file_name}
Submitted By: {submission.submitted_by}
Submitted At: {submission.submitted_at.isoformat()}

SUBMISSION CONTENT:
{REPORT_SEPARATOR}
{submission.file_content}
{REPORT_SEPARATOR}

GRADING RUBRIC:
{format_rubric_for_llm(rubric)}


INSTRUCTIONS:
Grade this submission carefully according to each criterion in the rubric.
Provide your response in the following JSON format:

{OUTPUT_FORMAT}

Be fair, thorough, and constructive in your grading and feedback."""


def strip_code_fence(text: str) -> str:
    """
    Remove a markdown code fence wrapped around the answer.

    Handles ```json ... ``` and bare ``` ... ``` blocks, with or without
    surrounding prose.
    """
    text = text.strip()
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0]
    elif "```" in text:
        text = text.split("```", 2)[1]
    return text.strip()


def parse_response(response_text: str, submission: Submission, rubric: Rubric) -> GradingResult:
    """
    Parse the model's answer into a GradingResult.

    Criteria the model omitted are simply absent from the breakdown;
    reordered criteria are kept in model order.

    Raises:
        GradingParseFailure: If the answer is not the expected JSON shape.
    """
    try:
        parsed = json.loads(strip_code_fence(response_text))
    except json.JSONDecodeError as e:
        raise GradingParseFailure(f"Response is not valid JSON: {e}") from e

    if not isinstance(parsed, dict):
        raise GradingParseFailure("Response JSON is not an object")

    raw_scores = parsed.get("criteriaScores") or []
    if not isinstance(raw_scores, list):
        raise GradingParseFailure("criteriaScores is not a list")

    try:
        criteria_scores = [CriterionScore.model_validate(item) for item in raw_scores]
    except ValidationError as e:
        raise GradingParseFailure(f"Invalid criterion score: {e}") from e

    feedback = parsed.get("overallFeedback") or NO_OVERALL_FEEDBACK
    return GradingResult.from_scores(submission, rubric, criteria_scores, str(feedback))


def fallback_result(submission: Submission, rubric: Rubric, reason: str) -> GradingResult:
    """
    Zero-score result used when the answer can't be parsed.

    Every rubric criterion gets a score of 0 and the result never passes.
    """
    criteria_scores = [
        CriterionScore(
            criterion_name=criterion.name,
            score=0,
            max_score=criterion.max_points,
            feedback=PARSE_ERROR_FEEDBACK,
        )
        for criterion in rubric.criteria
    ]
    result = GradingResult.from_scores(
        submission, rubric, criteria_scores, f"Error grading submission: {reason}"
    )
    # A rubric with a passing score of 0 must still not pass a failed grade
    return result.model_copy(update={"passed": False})
