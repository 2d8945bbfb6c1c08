"""
Google Drive storage backend.

Fetches submissions, lists watched folders, uploads grading reports and
shares them with the same people as the original submission.
"""

import io
import logging
from datetime import datetime
from pathlib import Path

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from .config import (
    BINARY_PLACEHOLDER,
    DRIVE_FILE_FIELDS,
    DRIVE_PERMISSION_FIELDS,
    DRIVE_SCOPES,
    PDF_PLACEHOLDER,
    SHARE_EMAIL_MESSAGE,
    UNKNOWN_SUBMITTER,
)
from .exceptions import ConfigurationError, FetchFailure, PersistFailure
from .models import StoredFile, Submission

logger = logging.getLogger(__name__)


def build_drive_service(credentials_path: Path):
    """
    Build an authenticated Drive v3 client from a service account file.

    Raises:
        ConfigurationError: If the credentials file doesn't exist.
    """
    credentials_path = Path(credentials_path)
    if not credentials_path.exists():
        raise ConfigurationError(f"Credentials file not found at {credentials_path}")

    credentials = service_account.Credentials.from_service_account_file(
        str(credentials_path), scopes=DRIVE_SCOPES
    )
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


def _decode(data: bytes | str) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


class DriveStorage:
    """
    StorageBackend backed by the Google Drive v3 API.

    Args:
        service: A googleapiclient Drive resource, see build_drive_service().
    """

    def __init__(self, service) -> None:
        self.service = service

    @classmethod
    def from_credentials(cls, credentials_path: Path) -> "DriveStorage":
        return cls(build_drive_service(credentials_path))

    def list_children(self, folder_id: str) -> list[StoredFile]:
        """
        List non-trashed files in a folder, newest first.

        Follows nextPageToken until the whole folder has been listed.
        """
        files: list[StoredFile] = []
        page_token = None

        while True:
            response = self.service.files().list(
                q=f"'{folder_id}' in parents and trashed = false",
                fields=f"nextPageToken, files({DRIVE_FILE_FIELDS})",
                orderBy="createdTime desc",
                pageToken=page_token,
            ).execute()

            for item in response.get("files", []):
                files.append(
                    StoredFile(file_id=item["id"], name=item.get("name", ""), mime_type=item.get("mimeType", ""))
                )

            page_token = response.get("nextPageToken")
            if not page_token:
                return files

    def fetch_by_id(self, file_id: str) -> Submission:
        """
        Fetch metadata and text content of a file.

        Text and JSON files are downloaded, Google Docs are exported as plain
        text; PDFs and other binaries get a placeholder instead of content.

        Raises:
            FetchFailure: If Drive rejects either request.
        """
        try:
            file = self.service.files().get(fileId=file_id, fields=DRIVE_FILE_FIELDS).execute()
            mime_type = file.get("mimeType", "")

            if "text" in mime_type or "application/json" in mime_type:
                content = _decode(self.service.files().get_media(fileId=file_id).execute())
            elif "document" in mime_type:
                content = _decode(self.service.files().export(fileId=file_id, mimeType="text/plain").execute())
            elif "pdf" in mime_type:
                content = PDF_PLACEHOLDER
            else:
                content = BINARY_PLACEHOLDER
        except HttpError as e:
            raise FetchFailure(f"Error fetching submission {file_id}: {e}") from e

        owners = file.get("owners") or []
        submitted_by = owners[0].get("emailAddress") if owners else None
        created = file.get("createdTime")

        return Submission(
            file_id=file["id"],
            file_name=file.get("name", file_id),
            file_content=content,
            submitted_by=submitted_by or UNKNOWN_SUBMITTER,
            submitted_at=datetime.fromisoformat(created.replace("Z", "+00:00")) if created else datetime.now().astimezone(),
            mime_type=mime_type,
        )

    def write_content(self, folder_id: str, name: str, content: str, mime_type: str = "text/plain") -> str:
        """
        Upload a text file into a folder.

        Returns:
            Id of the created file.

        Raises:
            PersistFailure: If the upload fails.
        """
        media = MediaIoBaseUpload(io.BytesIO(content.encode("utf-8")), mimetype=mime_type)
        try:
            response = self.service.files().create(
                body={"name": name, "parents": [folder_id], "mimeType": mime_type},
                media_body=media,
                fields="id, webViewLink",
            ).execute()
        except HttpError as e:
            raise PersistFailure(f"Error saving {name} to folder {folder_id}: {e}") from e

        logger.info("Grading result uploaded: %s", response.get("webViewLink", response["id"]))
        return response["id"]

    def copy_permissions(self, source_id: str, target_id: str) -> None:
        """
        Share the target file with the source file's collaborators.

        Owners and permissions without an email address are skipped. A failure
        on one permission is logged and does not stop the others.
        """
        try:
            response = self.service.permissions().list(fileId=source_id, fields=DRIVE_PERMISSION_FIELDS).execute()
        except HttpError as e:
            logger.error("Error listing permissions of %s: %s", source_id, e)
            return

        for permission in response.get("permissions", []):
            email = permission.get("emailAddress")
            if permission.get("role") == "owner" or not email:
                continue
            try:
                self.service.permissions().create(
                    fileId=target_id,
                    body={"type": permission["type"], "role": permission["role"], "emailAddress": email},
                    sendNotificationEmail=True,
                    emailMessage=SHARE_EMAIL_MESSAGE,
                ).execute()
            except HttpError as e:
                logger.error("Error copying permission for %s: %s", email, e)
