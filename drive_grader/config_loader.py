"""
Settings loader for the Drive Grader system.

All runtime settings come from environment variables, optionally read
from a .env file in the working directory.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import (
    DEFAULT_BROKER_URL,
    DEFAULT_CREDENTIALS_FILE,
    DEFAULT_DASHBOARD_PORT,
    DEFAULT_ENV_FILE,
    DEFAULT_NAMESPACE,
    DEFAULT_POLLING_INTERVAL_MS,
    DEFAULT_RESULTS_DIR,
    DEFAULT_RUBRIC_FILE,
    DEFAULT_TASK_QUEUE,
    OPENAI_MODEL,
)
from .exceptions import ConfigurationError


class GraderSettings(BaseSettings):
    """
    Environment-driven configuration.

    Field names map to upper-case environment variables
    (e.g. google_drive_folder_id <- GOOGLE_DRIVE_FOLDER_ID).
    """

    model_config = SettingsConfigDict(env_file=DEFAULT_ENV_FILE, env_file_encoding="utf-8", extra="ignore")

    # Storage
    google_drive_folder_id: Optional[str] = Field(None, description="Folder to watch for submissions")
    google_application_credentials: Path = Field(
        Path(DEFAULT_CREDENTIALS_FILE), description="Service account credentials for the Drive API"
    )
    storage_backend: Literal["drive", "local"] = Field("drive", description="Where submissions live")
    local_storage_root: Path = Field(Path("."), description="Root directory for the local storage backend")
    upload_results: bool = Field(False, description="Also upload reports next to the submission")

    # Grading
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    openai_model: str = Field(OPENAI_MODEL, description="OpenAI model used for grading")
    rubric_file: Path = Field(Path(DEFAULT_RUBRIC_FILE), description="Rubric file path")

    # Task queue
    celery_broker_url: str = Field(DEFAULT_BROKER_URL, description="Celery broker address")
    celery_result_backend: Optional[str] = Field(None, description="Celery result backend (defaults to broker)")
    celery_namespace: str = Field(DEFAULT_NAMESPACE, description="Key prefix isolating this deployment")
    task_queue: str = Field(DEFAULT_TASK_QUEUE, description="Queue the grading steps run on")

    # Poller
    polling_interval: int = Field(DEFAULT_POLLING_INTERVAL_MS, gt=0, description="Poll interval in milliseconds")
    processed_ids_file: Optional[Path] = Field(None, description="Persist processed ids here")

    # Results and dashboard
    results_dir: Path = Field(DEFAULT_RESULTS_DIR, description="Directory for *_GRADED.txt reports")
    dashboard_port: int = Field(DEFAULT_DASHBOARD_PORT, description="Dashboard HTTP port")
    env_file: Path = Field(DEFAULT_ENV_FILE, description=".env file updated by the dashboard")

    log_level: str = Field("INFO", description="Root log level")

    @property
    def polling_interval_seconds(self) -> float:
        return self.polling_interval / 1000

    @property
    def result_backend(self) -> str:
        return self.celery_result_backend or self.celery_broker_url

    def require(self, *names: str) -> None:
        """
        Check that settings are present.

        Raises:
            ConfigurationError: Naming the first missing setting.
        """
        for name in names:
            if not getattr(self, name):
                raise ConfigurationError(f"{name.upper()} environment variable is not set")


def load_settings(**overrides) -> GraderSettings:
    """
    Load settings from the environment and .env.

    Args:
        **overrides: Values taking precedence over the environment.

    Returns:
        GraderSettings object with loaded values.

    Raises:
        ConfigurationError: If a value is present but invalid.
    """
    try:
        return GraderSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
