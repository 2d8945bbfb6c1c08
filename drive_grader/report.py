"""
Grading report writer and reader.

Reports are plain text files named <submission stem>_GRADED.txt. The
dashboard reads them back with parse_report(), so the layout produced by
format_report() is the contract between the two and must stay stable.
"""

import logging
import re
from datetime import datetime
from pathlib import Path

from .config import REPORT_SEPARATOR, REPORT_SUFFIX
from .exceptions import PersistFailure
from .models import GradingResult, ReportScore, ReportSummary
from .utils import format_decimal, report_filename

logger = logging.getLogger(__name__)

NUMBER = r"(-?\d+(?:\.\d+)?)"
SCORE_PATTERN = re.compile(rf"^SCORE: {NUMBER}/{NUMBER} \({NUMBER}%\)", re.MULTILINE)
CRITERION_LINE_PATTERN = re.compile(rf"^(.+): {NUMBER}/{NUMBER} points$")
STATUS_PASSED = "PASSED"
STATUS_FAILED = "NEEDS IMPROVEMENT"


def format_report(result: GradingResult) -> str:
    """
    Render a grading result as report text.

    The output depends only on the result, so writing the same result
    twice produces identical files.

    Args:
        result: GradingResult to render.

    Returns:
        Report text without trailing newline.
    """
    criteria_blocks = "\n".join(
        f"\n{cs.criterion_name}: {format_decimal(cs.score)}/{format_decimal(cs.max_score)} points\n{cs.feedback}\n"
        for cs in result.criteria_scores
    )

    content = f"""
{REPORT_SEPARATOR}
GRADING RESULT
{REPORT_SEPARATOR}

File: {result.file_name}
Submission ID: {result.submission_id}
Graded At: {result.graded_at.isoformat()}

SCORE: {format_decimal(result.total_score)}/{format_decimal(result.max_score)} ({result.percentage:.1f}%)
STATUS: {STATUS_PASSED if result.passed else STATUS_FAILED}

{REPORT_SEPARATOR}
DETAILED SCORES
{REPORT_SEPARATOR}

{criteria_blocks}

{REPORT_SEPARATOR}
OVERALL FEEDBACK
{REPORT_SEPARATOR}

{result.feedback}

{REPORT_SEPARATOR}
"""
    return content.strip()


def save_report(results_dir: Path, result: GradingResult) -> Path:
    """
    Write a report into the local results directory.

    Args:
        results_dir: Directory holding *_GRADED.txt files.
        result: GradingResult to write.

    Returns:
        Path of the written report.

    Raises:
        PersistFailure: If the file can't be written.
    """
    output_path = Path(results_dir) / report_filename(result.file_name)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(format_report(result), encoding="utf-8")
    except OSError as e:
        raise PersistFailure(f"Error saving grading result to {output_path}: {e}") from e

    logger.info("Grading result saved to: %s", output_path)
    return output_path


def _split_sections(content: str) -> dict[str, str]:
    """
    Map each section title to its body.

    A title is a single line framed by separator lines; the body runs
    until the next separator.
    """
    parts = content.split(REPORT_SEPARATOR)
    sections: dict[str, str] = {}
    # parts alternate: ..., title, body, title, body, ...
    for i in range(1, len(parts) - 1, 2):
        title = parts[i].strip()
        if title and "\n" not in title:
            sections[title] = parts[i + 1]
    return sections


def _field(content: str, label: str) -> str | None:
    match = re.search(rf"^{re.escape(label)}: (.+)$", content, re.MULTILINE)
    return match.group(1).strip() if match else None


def _number(text: str) -> int | float:
    value = float(text)
    return int(value) if value.is_integer() else value


def _parse_detailed_scores(section: str) -> list[ReportScore]:
    """
    Parse "<name>: <score>/<max> points" headers and the feedback under each.

    Criterion blocks are separated by two blank lines, so a header only
    counts at the start of the section or after such a gap. A feedback line
    that happens to look like a header stays feedback.
    """
    scores: list[ReportScore] = []
    current: dict | None = None
    feedback_lines: list[str] = []
    blank_run = 0

    def flush() -> None:
        if current is not None:
            scores.append(ReportScore(feedback="\n".join(feedback_lines).strip(), **current))

    for line in section.splitlines():
        match = CRITERION_LINE_PATTERN.match(line)
        if match and (current is None or blank_run >= 2):
            flush()
            current = {
                "criterion_name": match.group(1).strip(),
                "score": _number(match.group(2)),
                "max_score": _number(match.group(3)),
            }
            feedback_lines = []
        elif current is not None:
            feedback_lines.append(line)
        blank_run = blank_run + 1 if not line.strip() else 0

    flush()
    return scores


def parse_report(content: str) -> ReportSummary | None:
    """
    Parse report text back into a summary.

    Args:
        content: Text produced by format_report().

    Returns:
        ReportSummary, or None if the text has no File or SCORE line.
    """
    file_name = _field(content, "File")
    score_match = SCORE_PATTERN.search(content)
    if file_name is None or score_match is None:
        return None

    status = _field(content, "STATUS") or ""
    sections = _split_sections(content)

    overall = sections.get("OVERALL FEEDBACK")
    return ReportSummary(
        file_name=file_name,
        submission_id=_field(content, "Submission ID") or "",
        graded_at=_field(content, "Graded At") or "",
        total_score=_number(score_match.group(1)),
        max_score=_number(score_match.group(2)),
        percentage=_number(score_match.group(3)),
        passed=status.startswith(STATUS_PASSED),
        detailed_scores=_parse_detailed_scores(sections.get("DETAILED SCORES", "")),
        overall_feedback=overall.strip() if overall is not None else "No overall feedback available",
    )


def _graded_at_key(summary: ReportSummary) -> float:
    try:
        return datetime.fromisoformat(summary.graded_at.replace("Z", "+00:00")).timestamp()
    except ValueError:
        return float("-inf")


def load_reports(results_dir: Path) -> list[ReportSummary]:
    """
    Load every report in a results directory, newest first.

    Unreadable or unparseable files are logged and skipped.

    Args:
        results_dir: Directory holding *_GRADED.txt files.

    Returns:
        Parsed summaries sorted by graded time, descending.
    """
    results_dir = Path(results_dir)
    if not results_dir.is_dir():
        return []

    summaries: list[ReportSummary] = []
    for report_path in sorted(results_dir.glob(f"*{REPORT_SUFFIX}")):
        try:
            summary = parse_report(report_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading %s: %s", report_path, e)
            continue
        if summary is None:
            logger.error("Failed to parse file: %s", report_path)
            continue
        summaries.append(summary)

    summaries.sort(key=_graded_at_key, reverse=True)
    return summaries
