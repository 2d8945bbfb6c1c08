"""
Rubric file parser.

Loads a grading rubric from one of four human-authorable formats
(JSON, YAML, Markdown, plain text), dispatched by file extension.
Validation is limited to presence and type checks.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import (
    CRITERION_HEADING_PATTERN,
    JSON_EXTENSIONS,
    MARKDOWN_EXTENSIONS,
    TEXT_EXTENSIONS,
    YAML_EXTENSIONS,
)
from .exceptions import InvalidRubric, UnsupportedFormat
from .models import Criterion, Rubric
from .utils import format_decimal

logger = logging.getLogger(__name__)


DEFAULT_RUBRIC = Rubric(
    criteria=(
        Criterion(
            name="Completeness",
            description="All required sections and elements are present",
            max_points=25,
        ),
        Criterion(
            name="Accuracy",
            description="Information is correct and well-researched",
            max_points=25,
        ),
        Criterion(
            name="Clarity",
            description="Writing is clear, well-organized, and easy to understand",
            max_points=25,
        ),
        Criterion(
            name="Quality",
            description="Overall quality of work, attention to detail, and professionalism",
            max_points=25,
        ),
    ),
    total_points=100,
    passing_score=60,
)


def load_rubric(rubric_path: Path) -> Rubric:
    """
    Load and parse a rubric file.

    Args:
        rubric_path: Path to a .json, .yaml/.yml, .md/.markdown or .txt rubric.

    Returns:
        Parsed Rubric.

    Raises:
        FileNotFoundError: If the rubric file doesn't exist.
        UnsupportedFormat: If the extension is not recognized.
        InvalidRubric: If the file content is not a valid rubric.
    """
    rubric_path = Path(rubric_path)
    if not rubric_path.exists():
        raise FileNotFoundError(f"Rubric file not found: {rubric_path}")

    ext = rubric_path.suffix.lower()
    content = rubric_path.read_text(encoding="utf-8")

    if ext in JSON_EXTENSIONS:
        return parse_json(content)
    if ext in YAML_EXTENSIONS:
        return parse_yaml(content)
    if ext in MARKDOWN_EXTENSIONS:
        return parse_markdown(content)
    if ext in TEXT_EXTENSIONS:
        return parse_text(content)

    supported = ", ".join(JSON_EXTENSIONS + YAML_EXTENSIONS + MARKDOWN_EXTENSIONS + TEXT_EXTENSIONS)
    raise UnsupportedFormat(f"Unsupported rubric file format: {ext or '(none)'}. Supported formats: {supported}")


def load_rubric_or_default(rubric_path: Path) -> Rubric:
    """
    Load a rubric, falling back to DEFAULT_RUBRIC if it can't be loaded.

    Args:
        rubric_path: Path to the rubric file.

    Returns:
        The parsed rubric, or the built-in default.
    """
    try:
        logger.info("Loading rubric from %s", rubric_path)
        return load_rubric(rubric_path)
    except (FileNotFoundError, InvalidRubric) as e:
        logger.error("Error loading rubric from %s: %s", rubric_path, e)
        logger.info("Using default rubric")
        return DEFAULT_RUBRIC


def parse_json(content: str) -> Rubric:
    """
    Parse a JSON rubric.

    Expected format:
        {"criteria": [{"name": ..., "description": ..., "maxPoints": 30, "weight": 1.5}],
         "totalPoints": 100, "passingScore": 70}
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidRubric(f"Invalid rubric: not valid JSON ({e})") from e

    return _rubric_from_mapping(data)


def parse_yaml(content: str) -> Rubric:
    """Parse a YAML rubric with the same structure as the JSON format."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise InvalidRubric(f"Invalid rubric: not valid YAML ({e})") from e

    return _rubric_from_mapping(data)


def _rubric_from_mapping(data: Any) -> Rubric:
    """
    Validate a decoded JSON/YAML document and build a Rubric.

    Args:
        data: Decoded document.

    Returns:
        Rubric built from the document.

    Raises:
        InvalidRubric: If criteria is missing or not a list, or totalPoints
            is not a number.
    """
    if not isinstance(data, dict):
        raise InvalidRubric("Invalid rubric: expected an object at the top level")

    criteria = data.get("criteria")
    if not isinstance(criteria, list):
        raise InvalidRubric("Invalid rubric: missing or invalid criteria array")

    total_points = data.get("totalPoints")
    if not _is_number(total_points):
        raise InvalidRubric("Invalid rubric: missing or invalid totalPoints")

    passing_score = data.get("passingScore")
    if passing_score is not None and not _is_number(passing_score):
        raise InvalidRubric("Invalid rubric: invalid passingScore")

    try:
        parsed = tuple(
            Criterion(
                name=item["name"],
                description=item.get("description") or "",
                max_points=item["maxPoints"],
                weight=item.get("weight"),
            )
            for item in criteria
        )
        return Rubric(criteria=parsed, total_points=total_points, passing_score=passing_score)
    except (KeyError, TypeError, AttributeError, ValidationError) as e:
        raise InvalidRubric(f"Invalid rubric: malformed criterion ({e})") from e


def parse_markdown(content: str) -> Rubric:
    """
    Parse a Markdown rubric.

    Expected format:

        # Grading Rubric

        Total Points: 100
        Passing Score: 70

        ## Criterion Name (30 points)
        Description of the criterion
        Weight: 1.5

    Description lines under a criterion heading are joined with spaces.
    """
    total_points: int | None = None
    passing_score: int | None = None
    criteria: list[Criterion] = []

    current: dict[str, Any] | None = None
    description_lines: list[str] = []
    heading = re.compile(CRITERION_HEADING_PATTERN)

    def flush() -> None:
        if current is not None:
            criteria.append(Criterion(description=" ".join(description_lines).strip(), **current))
        description_lines.clear()

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if line.startswith("Total Points:"):
            total_points = _parse_int(line[len("Total Points:"):])
            continue

        if line.startswith("Passing Score:"):
            passing_score = _parse_int(line[len("Passing Score:"):])
            continue

        if line.startswith("## "):
            flush()
            match = heading.match(line)
            # A heading without a point value closes the previous criterion
            current = {"name": match.group(1).strip(), "max_points": int(match.group(2))} if match else None
            continue

        if current is None or not line or line.startswith("#"):
            continue

        if line.startswith("Weight:"):
            current["weight"] = _parse_float(line[len("Weight:"):])
            continue

        description_lines.append(line)

    flush()

    if not total_points:
        raise InvalidRubric("Invalid markdown rubric: Total Points not found")
    if not criteria:
        raise InvalidRubric("Invalid markdown rubric: No criteria found")

    return Rubric(criteria=tuple(criteria), total_points=total_points, passing_score=passing_score)


def parse_text(content: str) -> Rubric:
    """
    Parse a plain text rubric.

    Expected format:

        TOTAL POINTS: 100
        PASSING SCORE: 70

        CRITERION: Criterion Name
        POINTS: 30
        DESCRIPTION: Description of the criterion
        WEIGHT: 1.5
    """
    total_points: int | None = None
    passing_score: int | None = None
    criteria: list[Criterion] = []
    current: dict[str, Any] | None = None

    for raw_line in content.splitlines():
        line = raw_line.strip()
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()

        if key == "TOTAL POINTS":
            total_points = _parse_int(value)
        elif key == "PASSING SCORE":
            passing_score = _parse_int(value)
        elif key == "CRITERION":
            if current is not None:
                criteria.append(Criterion(**current))
            current = {"name": value.strip(), "description": "", "max_points": 0}
        elif current is None:
            continue
        elif key == "POINTS":
            current["max_points"] = _parse_int(value) or 0
        elif key == "DESCRIPTION":
            current["description"] = value.strip()
        elif key == "WEIGHT":
            current["weight"] = _parse_float(value)

    if current is not None:
        criteria.append(Criterion(**current))

    if not total_points:
        raise InvalidRubric("Invalid text rubric: TOTAL POINTS not found")
    if not criteria:
        raise InvalidRubric("Invalid text rubric: No criteria found")

    return Rubric(criteria=tuple(criteria), total_points=total_points, passing_score=passing_score)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_int(value: str) -> int | None:
    """Parse the leading integer of a string ("70 pts" -> 70), or None."""
    match = re.match(r"\s*([+-]?\d+)", value)
    return int(match.group(1)) if match else None


def _parse_float(value: str) -> float | None:
    """Parse the leading number of a string ("1.5x" -> 1.5), or None."""
    match = re.match(r"\s*([+-]?(?:\d+\.?\d*|\.\d+))", value)
    return float(match.group(1)) if match else None


def format_rubric_for_llm(rubric: Rubric) -> str:
    """
    Format the rubric as a string for LLM context.

    Args:
        rubric: Parsed Rubric object.

    Returns:
        Formatted string representation.
    """
    lines = [f"Total Points: {format_decimal(rubric.total_points)}"]
    if rubric.passing_score is not None:
        lines.append(f"Passing Score: {format_decimal(rubric.passing_score)}")

    lines.append("")
    lines.append("CRITERIA:")

    for index, criterion in enumerate(rubric.criteria, 1):
        lines.append("")
        lines.append(f"{index}. {criterion.name} ({format_decimal(criterion.max_points)} points)")
        lines.append(f"   Description: {criterion.description}")
        if criterion.weight:
            lines.append(f"   Weight: {format_decimal(criterion.weight)}x")

    return "\n".join(lines)
