"""
Small formatting helpers shared by the prompt builder and the report writer.
"""

import re
from decimal import Decimal

from .config import REPORT_SUFFIX


def format_decimal(value: float) -> str:
    """
    Format a number without a trailing ".0".

    Integral values render as integers ("75"). Others use the shortest
    plain decimal that reads back as the same float ("7.5", "8.333"),
    never exponent notation.
    """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def report_filename(file_name: str) -> str:
    """
    Name of the report written for a submission.

    Drops the last extension: "essay.docx" -> "essay_GRADED.txt".
    """
    stem = re.sub(r"\.[^/.]+$", "", file_name)
    return f"{stem}{REPORT_SUFFIX}"


def is_report_file(file_name: str) -> bool:
    """Whether a file name looks like a report this system produced."""
    return file_name.endswith(REPORT_SUFFIX)
