"""Tests for the dashboard JSON API."""

import os
from datetime import datetime, timezone

import pytest

from drive_grader.dashboard import create_dashboard, results_frame, update_env_file
from drive_grader.report import load_reports, save_report


@pytest.fixture
def env_file(tmp_path):
    path = tmp_path / ".env"
    path.write_text("GOOGLE_DRIVE_FOLDER_ID=old-folder\nOPENAI_API_KEY=secret\n")
    return path


@pytest.fixture
def client(tmp_path, env_file):
    app = create_dashboard(tmp_path / "results", env_file)
    app.server.config["TESTING"] = True
    return app.server.test_client()


class TestResultsApi:

    def test_empty(self, client):
        response = client.get("/api/results")
        assert response.status_code == 200
        assert response.get_json() == []

    def test_newest_first(self, client, tmp_path, grading_result):
        save_report(tmp_path / "results", grading_result.model_copy(update={
            "file_name": "old.txt", "graded_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }))
        save_report(tmp_path / "results", grading_result.model_copy(update={
            "file_name": "new.txt", "graded_at": datetime(2024, 2, 1, tzinfo=timezone.utc),
        }))

        data = client.get("/api/results").get_json()

        assert [r["fileName"] for r in data] == ["new.txt", "old.txt"]
        assert data[0]["totalScore"] == 82
        assert type(data[0]["totalScore"]) is int
        assert type(data[0]["detailedScores"][0]["score"]) is int
        assert data[0]["passed"] is True
        assert data[0]["detailedScores"][0]["criterionName"] == "Content Quality"


class TestConfigApi:

    def test_get_reads_env_file(self, client):
        data = client.get("/api/config").get_json()
        assert data == {"folderId": "old-folder", "rubricFile": "./rubric.json", "pollingInterval": "60000"}

    def test_get_environment_overrides_env_file(self, client, monkeypatch):
        monkeypatch.setenv("GOOGLE_DRIVE_FOLDER_ID", "from-environment")
        assert client.get("/api/config").get_json()["folderId"] == "from-environment"

    def test_get_defaults_without_env_file(self, tmp_path):
        app = create_dashboard(tmp_path / "results", tmp_path / "missing.env")
        data = app.server.test_client().get("/api/config").get_json()
        assert data == {"folderId": "", "rubricFile": "./rubric.json", "pollingInterval": "60000"}

    def test_post_requires_fields(self, client):
        response = client.post("/api/config", json={"folderId": "abc"})
        assert response.status_code == 400
        assert "error" in response.get_json()

    def test_post_updates_env_file(self, client, env_file, monkeypatch):
        monkeypatch.setenv("GOOGLE_DRIVE_FOLDER_ID", "old-folder")
        monkeypatch.setenv("RUBRIC_FILE", "./rubric.json")

        response = client.post("/api/config", json={"folderId": "new-folder", "rubricFile": "./rubric.md"})

        assert response.status_code == 200
        body = response.get_json()
        assert body["success"] is True
        assert "restart" in body["message"]
        assert body["config"] == {"folderId": "new-folder", "rubricFile": "./rubric.md"}

        lines = env_file.read_text().splitlines()
        assert "GOOGLE_DRIVE_FOLDER_ID=new-folder" in lines
        assert "RUBRIC_FILE=./rubric.md" in lines
        assert "OPENAI_API_KEY=secret" in lines
        assert os.environ["GOOGLE_DRIVE_FOLDER_ID"] == "new-folder"

        assert client.get("/api/config").get_json()["folderId"] == "new-folder"


def test_update_env_file_creates_file(tmp_path, monkeypatch):
    monkeypatch.setenv("RUBRIC_FILE", "unset")
    path = tmp_path / "fresh.env"
    update_env_file(path, {"RUBRIC_FILE": "./r.txt"})
    assert path.read_text().strip() == "RUBRIC_FILE=./r.txt"


def test_results_frame(tmp_path, grading_result):
    save_report(tmp_path, grading_result)

    df = results_frame(load_reports(tmp_path))

    assert list(df.columns) == ["File", "Score", "Max Score", "Percentage", "Status", "Graded At"]
    assert df.iloc[0]["Status"] == "PASSED"
    assert results_frame([]).empty
