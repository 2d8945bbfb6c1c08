"""
Error taxonomy for the Drive Grader system.

Only FetchFailure, PersistFailure and GradingFailure are allowed to abort a
grading run (after the task queue has exhausted its retries). The rest are
handled where they occur and degrade to a default value.
"""


class GraderError(Exception):
    """Base class for all Drive Grader errors."""


class ConfigurationError(GraderError):
    """A required setting is missing or invalid. Fatal at process start."""


class InvalidRubric(GraderError):
    """A rubric file could not be parsed into a valid Rubric."""


class UnsupportedFormat(InvalidRubric):
    """The rubric file extension is not one of the supported formats."""


class FetchFailure(GraderError):
    """A submission could not be fetched from storage."""


class PersistFailure(GraderError):
    """A grading report could not be written."""


class GradingFailure(GraderError):
    """The model call itself failed (network, auth, quota)."""


class GradingParseFailure(GraderError):
    """The model answered, but the answer could not be parsed into scores."""


class NotificationFailure(GraderError):
    """A post-grading notification could not be delivered."""
