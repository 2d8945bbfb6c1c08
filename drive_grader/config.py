"""
Configuration constants for the Drive Grader system.
"""

from pathlib import Path


# OpenAI configuration
# Available models: "gpt-4o", "gpt-4o-mini", "o3-mini"
# gpt-4o-mini is the most cost-effective for grading tasks
OPENAI_MODEL: str = "gpt-4o-mini"
MAX_TOKENS: int = 4096

# Google Drive
DRIVE_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/drive.file",
    "https://www.googleapis.com/auth/drive.metadata",
]
DRIVE_FILE_FIELDS: str = "id, name, mimeType, createdTime, owners"
DRIVE_PERMISSION_FIELDS: str = "permissions(id, type, role, emailAddress)"
SHARE_EMAIL_MESSAGE: str = "Your submission has been graded. Please see the attached grading result."
UNKNOWN_SUBMITTER: str = "Unknown"
PDF_PLACEHOLDER: str = "[PDF file - content extraction not implemented]"
BINARY_PLACEHOLDER: str = "[Binary file - content not readable as text]"

# Report files
REPORT_SUFFIX: str = "_GRADED.txt"
REPORT_SEPARATOR: str = "=" * 80
DEFAULT_RESULTS_DIR: Path = Path("grading-results")

# Grading thresholds
DEFAULT_PASS_PERCENTAGE: float = 60.0
PARSE_ERROR_FEEDBACK: str = "Error parsing grading response"
NO_OVERALL_FEEDBACK: str = "No overall feedback provided."

# Orchestration retry policy, applied to every step of the grading chain
RETRY_INITIAL_INTERVAL_SECONDS: int = 1
RETRY_BACKOFF_COEFFICIENT: int = 2
RETRY_MAXIMUM_INTERVAL_SECONDS: int = 30
RETRY_MAXIMUM_ATTEMPTS: int = 3
STEP_TIMEOUT_SECONDS: int = 10 * 60

# Defaults for environment settings
DEFAULT_TASK_QUEUE: str = "grading-queue"
DEFAULT_BROKER_URL: str = "redis://localhost:6379/0"
DEFAULT_NAMESPACE: str = "default"
DEFAULT_POLLING_INTERVAL_MS: int = 60000
DEFAULT_RUBRIC_FILE: str = "./rubric.json"
DEFAULT_CREDENTIALS_FILE: str = "./credentials.json"
DEFAULT_DASHBOARD_PORT: int = 3001
DEFAULT_ENV_FILE: Path = Path(".env")

# Rubric file extensions
JSON_EXTENSIONS: list[str] = [".json"]
YAML_EXTENSIONS: list[str] = [".yaml", ".yml"]
MARKDOWN_EXTENSIONS: list[str] = [".md", ".markdown"]
TEXT_EXTENSIONS: list[str] = [".txt"]

# Rubric parsing patterns
# Matches: "## Criterion Name (30 points)" or "## Criterion Name (1 point)"
CRITERION_HEADING_PATTERN: str = r"^##\s+(.+?)\s+\((\d+)\s+points?\)"
