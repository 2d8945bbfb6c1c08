"""
Post-grading notifications.

Delivery is best effort: the orchestration step that calls a notifier
logs failures and carries on.
"""

import logging
from typing import Protocol

from .models import GradingResult
from .utils import format_decimal

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def notify(self, recipient: str, result: GradingResult) -> None: ...


class LogNotifier:
    """Notifier that records the notification in the log."""

    def notify(self, recipient: str, result: GradingResult) -> None:
        status = "passed" if result.passed else "needs improvement"
        logger.info(
            "Notification to %s: %s graded %s/%s (%s)",
            recipient,
            result.file_name,
            format_decimal(result.total_score),
            format_decimal(result.max_score),
            status,
        )
