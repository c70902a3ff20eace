"""Unit tests for the command-line entry point."""

from pathlib import Path

import pytest

from storythreads import config
from storythreads.__main__ import main
from storythreads.models import Post
from storythreads.store import ThreadDB
from storythreads.threads import ThreadStore


@pytest.fixture
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "cli.sqlite3"
    monkeypatch.setattr(
        config,
        "profile_paths",
        lambda profile: {
            "config": tmp_path / "threads.yml",
            "db": path,
            "feed": tmp_path / "feed.jsonl",
        },
    )
    return path


class TestShow:
    def test_lists_threads(self, db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        db = ThreadDB(db_path)
        store = ThreadStore(persist=db.persist)
        store.process_item(Post(id="1", title="Fed raises interest rates", timestamp=1760000000))
        store.process_item(Post(id="2", title="Fed raises interest rates", timestamp=1760000100))

        main(["show", "--status", "active"])

        out = capsys.readouterr().out
        assert "raises • interest • rates • Fed" in out
        assert "(active, 1 updates)" in out
        assert "follow_up: New development: Fed raises interest rates" in out

    def test_missing_database(self, db_path: Path) -> None:
        with pytest.raises(SystemExit):
            main(["show"])


class TestNoCommand:
    def test_prints_help_and_exits(self) -> None:
        with pytest.raises(SystemExit):
            main([])
