"""
Drive Grader: Automated rubric grading for Google Drive submissions

Polls a Drive folder for new documents, scores each one against a rubric
with an LLM, and writes a formatted report back next to the submission.
Each submission runs as a Celery task chain with per-step retries.
"""

__version__ = "0.1.0"
