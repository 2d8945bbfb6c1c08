"""
Wiring of the collaborators used by the grading steps.
"""

from dataclasses import dataclass
from functools import lru_cache

from .config_loader import GraderSettings, load_settings
from .drive import DriveStorage
from .llm_grader import LLMGrader, OpenAITextModel
from .notifier import LogNotifier, Notifier
from .storage import LocalFolderStorage, StorageBackend


@dataclass
class Services:
    settings: GraderSettings
    storage: StorageBackend
    grader: LLMGrader
    notifier: Notifier


def build_storage(settings: GraderSettings) -> StorageBackend:
    """Create the storage backend selected by STORAGE_BACKEND."""
    if settings.storage_backend == "local":
        return LocalFolderStorage(settings.local_storage_root)
    return DriveStorage.from_credentials(settings.google_application_credentials)


def build_services(settings: GraderSettings) -> Services:
    model = OpenAITextModel(model=settings.openai_model, api_key=settings.openai_api_key)
    return Services(
        settings=settings,
        storage=build_storage(settings),
        grader=LLMGrader(model),
        notifier=LogNotifier(),
    )


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Services for this worker process, built on first use."""
    return build_services(load_settings())
