"""Tests for the per-call JSON-lines journal."""

import json

import pytest

from callrelay.core.journal import EventJournal
from callrelay.core.store import CallStore


@pytest.fixture
def journal(tmp_path):
    return EventJournal(tmp_path / "logs")


class TestEventJournal:
    def test_creates_dir_and_appends_lines(self, journal):
        assert journal.write("c1", {"n": 1}) is True
        assert journal.write("c1", {"n": 2}) is True

        lines = journal.path_for("c1").read_text().splitlines()
        assert [json.loads(line) for line in lines] == [{"n": 1}, {"n": 2}]

    def test_one_file_per_call(self, journal):
        journal.write("a", {})
        journal.write("b", {})
        names = sorted(p.name for p in journal.log_dir.iterdir())
        assert names == ["a.log", "b.log"]

    def test_call_id_cannot_escape_log_dir(self, journal):
        path = journal.path_for("../../etc/passwd")
        assert path.parent == journal.log_dir
        journal.write("../../etc/passwd", {"x": 1})
        assert path.exists()

    def test_write_failure_returns_false(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        assert EventJournal(blocker).write("c1", {"n": 1}) is False

    def test_store_journals_under_resolved_key(self, journal):
        store = CallStore(journal=journal)
        store.append(None, {"orphan": True})
        assert journal.path_for("global").exists()
        line = journal.path_for("global").read_text().strip()
        assert json.loads(line) == {"orphan": True}
