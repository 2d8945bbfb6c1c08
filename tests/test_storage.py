"""Tests for the local and Google Drive storage backends."""

import os
from unittest.mock import MagicMock

import pytest
from googleapiclient.errors import HttpError
from httplib2 import Response

from drive_grader.config import BINARY_PLACEHOLDER, PDF_PLACEHOLDER, UNKNOWN_SUBMITTER
from drive_grader.drive import DriveStorage, build_drive_service
from drive_grader.exceptions import ConfigurationError, FetchFailure, PersistFailure
from drive_grader.storage import LocalFolderStorage


def http_error(status=404):
    return HttpError(Response({"status": status}), b"error")


class TestLocalFolderStorage:

    @pytest.fixture
    def storage(self, tmp_path):
        (tmp_path / "inbox").mkdir()
        return LocalFolderStorage(tmp_path)

    def test_fetch_text(self, storage, tmp_path):
        (tmp_path / "inbox" / "essay.txt").write_text("Hello world", encoding="utf-8")

        submission = storage.fetch_by_id("inbox/essay.txt")

        assert submission.file_id == "inbox/essay.txt"
        assert submission.file_name == "essay.txt"
        assert submission.file_content == "Hello world"
        assert submission.mime_type == "text/plain"
        assert submission.submitted_by

    def test_fetch_binary(self, storage, tmp_path):
        (tmp_path / "inbox" / "image.png").write_bytes(b"\x89PNG\xff\xfe")
        assert storage.fetch_by_id("inbox/image.png").file_content == BINARY_PLACEHOLDER

    def test_fetch_missing(self, storage):
        with pytest.raises(FetchFailure):
            storage.fetch_by_id("inbox/missing.txt")

    def test_fetch_outside_root(self, storage):
        with pytest.raises(FetchFailure):
            storage.fetch_by_id("../etc/passwd")

    def test_list_newest_first(self, storage, tmp_path):
        inbox = tmp_path / "inbox"
        for i, name in enumerate(["a.txt", "b.txt", "c.txt"]):
            path = inbox / name
            path.write_text(name)
            os.utime(path, (1_700_000_000 + i, 1_700_000_000 + i))
        (inbox / ".hidden").write_text("x")
        (inbox / "sub").mkdir()

        files = storage.list_children("inbox")

        assert [f.name for f in files] == ["c.txt", "b.txt", "a.txt"]
        assert files[0].file_id == "inbox/c.txt"

    def test_list_missing_folder(self, storage):
        assert storage.list_children("nowhere") == []

    def test_write_content(self, storage, tmp_path):
        file_id = storage.write_content("inbox", "essay_GRADED.txt", "report")
        assert file_id == "inbox/essay_GRADED.txt"
        assert (tmp_path / "inbox" / "essay_GRADED.txt").read_text() == "report"

    def test_write_outside_root(self, storage):
        with pytest.raises(PersistFailure):
            storage.write_content("../elsewhere", "x.txt", "report")

    def test_copy_permissions(self, storage, tmp_path):
        source = tmp_path / "inbox" / "a.txt"
        target = tmp_path / "inbox" / "b.txt"
        source.write_text("a")
        target.write_text("b")
        source.chmod(0o640)

        storage.copy_permissions("inbox/a.txt", "inbox/b.txt")

        assert target.stat().st_mode & 0o777 == 0o640

    def test_copy_permissions_missing_is_logged(self, storage):
        storage.copy_permissions("inbox/nope.txt", "inbox/nope2.txt")


class TestDriveStorage:

    @pytest.fixture
    def service(self):
        return MagicMock()

    def test_list_follows_pages(self, service):
        service.files.return_value.list.return_value.execute.side_effect = [
            {"files": [{"id": "1", "name": "a.txt", "mimeType": "text/plain"}], "nextPageToken": "p2"},
            {"files": [{"id": "2", "name": "b.txt", "mimeType": "text/plain"}]},
        ]

        files = DriveStorage(service).list_children("folder")

        assert [f.file_id for f in files] == ["1", "2"]
        calls = service.files.return_value.list.call_args_list
        assert calls[0].kwargs["q"] == "'folder' in parents and trashed = false"
        assert calls[1].kwargs["pageToken"] == "p2"

    def test_fetch_text(self, service):
        files = service.files.return_value
        files.get.return_value.execute.return_value = {
            "id": "1",
            "name": "essay.txt",
            "mimeType": "text/plain",
            "createdTime": "2024-03-01T12:00:00.000Z",
            "owners": [{"emailAddress": "student@example.com"}],
        }
        files.get_media.return_value.execute.return_value = b"Essay body"

        submission = DriveStorage(service).fetch_by_id("1")

        assert submission.file_content == "Essay body"
        assert submission.submitted_by == "student@example.com"
        assert submission.submitted_at.year == 2024
        assert submission.submitted_at.utcoffset().total_seconds() == 0

    def test_fetch_google_doc_exported(self, service):
        files = service.files.return_value
        files.get.return_value.execute.return_value = {
            "id": "1",
            "name": "Essay",
            "mimeType": "application/vnd.google-apps.document",
        }
        files.export.return_value.execute.return_value = b"Exported"

        submission = DriveStorage(service).fetch_by_id("1")

        assert submission.file_content == "Exported"
        assert submission.submitted_by == UNKNOWN_SUBMITTER
        files.export.assert_called_once_with(fileId="1", mimeType="text/plain")

    @pytest.mark.parametrize("mime_type, expected", [
        ("application/pdf", PDF_PLACEHOLDER),
        ("image/png", BINARY_PLACEHOLDER),
    ])
    def test_fetch_placeholders(self, service, mime_type, expected):
        service.files.return_value.get.return_value.execute.return_value = {
            "id": "1",
            "name": "file",
            "mimeType": mime_type,
        }
        assert DriveStorage(service).fetch_by_id("1").file_content == expected
        service.files.return_value.get_media.assert_not_called()

    def test_fetch_http_error(self, service):
        service.files.return_value.get.return_value.execute.side_effect = http_error()
        with pytest.raises(FetchFailure):
            DriveStorage(service).fetch_by_id("1")

    def test_write_content(self, service):
        service.files.return_value.create.return_value.execute.return_value = {"id": "new-id"}

        file_id = DriveStorage(service).write_content("folder", "essay_GRADED.txt", "report")

        assert file_id == "new-id"
        body = service.files.return_value.create.call_args.kwargs["body"]
        assert body == {"name": "essay_GRADED.txt", "parents": ["folder"], "mimeType": "text/plain"}

    def test_write_content_http_error(self, service):
        service.files.return_value.create.return_value.execute.side_effect = http_error(500)
        with pytest.raises(PersistFailure):
            DriveStorage(service).write_content("folder", "x.txt", "report")

    def test_copy_permissions_skips_owner(self, service):
        permissions = service.permissions.return_value
        permissions.list.return_value.execute.return_value = {"permissions": [
            {"type": "user", "role": "owner", "emailAddress": "owner@example.com"},
            {"type": "user", "role": "writer", "emailAddress": "instructor@example.com"},
            {"type": "anyone", "role": "reader"},
            {"type": "user", "role": "reader", "emailAddress": "ta@example.com"},
        ]}
        permissions.create.return_value.execute.side_effect = [http_error(403), {}]

        DriveStorage(service).copy_permissions("src", "dst")

        created = [c.kwargs["body"]["emailAddress"] for c in permissions.create.call_args_list]
        assert created == ["instructor@example.com", "ta@example.com"]
        assert all(c.kwargs["fileId"] == "dst" for c in permissions.create.call_args_list)


def test_build_drive_service_missing_credentials(tmp_path):
    with pytest.raises(ConfigurationError, match="Credentials file not found"):
        build_drive_service(tmp_path / "credentials.json")
