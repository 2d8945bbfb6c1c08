"""Tests for new-submission discovery."""

from unittest.mock import MagicMock

from drive_grader.models import StoredFile
from drive_grader.poller import FileProcessedStore, InMemoryProcessedStore, SubmissionPoller


def make_poller(files, processed=None, start_run=None, sleep=None):
    storage = MagicMock()
    storage.list_children.return_value = [StoredFile(file_id=fid, name=name) for fid, name in files]
    return SubmissionPoller(
        storage=storage,
        processed=processed if processed is not None else InMemoryProcessedStore(),
        start_run=start_run or MagicMock(side_effect=lambda fid: f"run-{fid}"),
        folder_id="folder",
        interval_seconds=60,
        sleep=sleep or MagicMock(),
    )


class TestPollOnce:

    def test_skips_processed(self):
        start_run = MagicMock(return_value="run")
        processed = InMemoryProcessedStore(["B"])
        poller = make_poller([("A", "a.txt"), ("B", "b.txt"), ("C", "c.txt")], processed, start_run)

        started = poller.poll_once()

        assert started == ["A", "C"]
        assert [c.args[0] for c in start_run.call_args_list] == ["A", "C"]
        assert "A" in processed and "C" in processed
        assert len(processed) == 3

    def test_second_cycle_starts_nothing(self):
        start_run = MagicMock(return_value="run")
        poller = make_poller([("A", "a.txt")], start_run=start_run)

        poller.poll_once()
        assert poller.poll_once() == []
        assert start_run.call_count == 1

    def test_failure_does_not_block_others(self):
        def start_run(file_id):
            if file_id == "A":
                raise RuntimeError("broker down")
            return "run"

        processed = InMemoryProcessedStore()
        poller = make_poller([("A", "a.txt"), ("B", "b.txt")], processed, start_run)

        assert poller.poll_once() == ["B"]
        assert "A" not in processed
        assert "B" in processed

    def test_skips_reports(self):
        poller = make_poller([("A", "a.txt"), ("R", "a_GRADED.txt")])
        assert poller.find_new_submissions() == ["A"]

    def test_empty_folder(self):
        assert make_poller([]).poll_once() == []


class TestRunForever:

    def test_sleeps_between_cycles(self):
        sleep = MagicMock()
        poller = make_poller([("A", "a.txt")], sleep=sleep)

        poller.run_forever(max_cycles=3)

        assert sleep.call_count == 3
        sleep.assert_called_with(60)
        assert poller.storage.list_children.call_count == 3

    def test_listing_error_keeps_polling(self):
        sleep = MagicMock()
        poller = make_poller([], sleep=sleep)
        poller.storage.list_children.side_effect = [RuntimeError("network"), []]

        poller.run_forever(max_cycles=2)

        assert poller.storage.list_children.call_count == 2


class TestFileProcessedStore:

    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "state" / "processed.txt"
        store = FileProcessedStore(path)
        store.add("A")
        store.add("B")
        store.add("A")

        reloaded = FileProcessedStore(path)

        assert "A" in reloaded and "B" in reloaded
        assert len(reloaded) == 2
        assert path.read_text().splitlines() == ["A", "B"]

    def test_missing_file_starts_empty(self, tmp_path):
        assert len(FileProcessedStore(tmp_path / "none.txt")) == 0
