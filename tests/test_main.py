"""Tests for CLI start-up checks."""

from unittest.mock import patch

import pytest

import main
from drive_grader.config_loader import load_settings
from drive_grader.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Empty working directory and home, so no real .env or .netrc is read."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


class TestRunWorker:

    def test_starts_with_netrc_key_only(self, tmp_path):
        netrc_file = tmp_path / ".netrc"
        netrc_file.write_text("machine OPENAI login netrc-key password unused\n")
        netrc_file.chmod(0o600)

        with patch("main.configure_app") as configure_app:
            assert main.run_worker(load_settings(), concurrency=2) == 0

        argv = configure_app.return_value.worker_main.call_args.args[0]
        assert "--concurrency=2" in argv
        assert "--queues=grading-queue" in argv

    def test_starts_with_environment_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")
        with patch("main.configure_app") as configure_app:
            main.run_worker(load_settings(), concurrency=1)
        configure_app.return_value.worker_main.assert_called_once()

    def test_missing_key_stops_worker(self):
        with patch("main.configure_app") as configure_app:
            with pytest.raises(ConfigurationError):
                main.run_worker(load_settings(), concurrency=1)
        configure_app.assert_not_called()
