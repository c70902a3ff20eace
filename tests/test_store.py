"""Unit tests for the SQLite thread snapshot store."""

from pathlib import Path

from storythreads.models import Post
from storythreads.store import ThreadDB
from storythreads.threads import ThreadStore


def _post(post_id: str, title: str, priority: float | None = None) -> Post:
    return Post(
        id=post_id,
        title=title,
        source="stocks",
        timestamp=1760000000,
        priority_score=priority,
    )


class TestThreadDB:
    def test_persist_and_load(self, tmp_path: Path, clock) -> None:
        db = ThreadDB(tmp_path / "nested" / "threads.sqlite3")
        thread = ThreadStore(clock=clock).create_new_thread(_post("1", "NVDA earnings beat expectations"))

        db.persist(thread)

        [loaded] = db.threads()
        assert loaded == thread

    def test_upsert_replaces_snapshot(self, tmp_path: Path, clock) -> None:
        db = ThreadDB(tmp_path / "threads.sqlite3")
        store = ThreadStore(clock=clock, persist=db.persist)
        first = store.process_item(_post("1", "Fed raises interest rates"))
        store.process_item(_post("2", "Fed raises interest rates"))

        assert db.count() == 1
        [loaded] = db.threads()
        assert loaded.id == first.thread_id
        assert loaded.update_count == 1

    def test_filter_by_status_and_order(self, tmp_path: Path, clock) -> None:
        db = ThreadDB(tmp_path / "threads.sqlite3")
        store = ThreadStore(clock=clock, persist=db.persist)
        low = store.create_new_thread(_post("1", "Apple unveils headset", priority=0.2))
        high = store.create_new_thread(_post("2", "Tesla recalls sedans", priority=0.9))
        gone = store.create_new_thread(_post("3", "Boeing delays deliveries", priority=0.5))
        store.archive_thread(gone.id)

        assert [t.id for t in db.threads(status="active")] == [high.id, low.id]
        assert [t.id for t in db.threads(status="archived")] == [gone.id]
        assert db.count() == 3

    def test_merge_deletes_secondary_row(self, tmp_path: Path, clock) -> None:
        db = ThreadDB(tmp_path / "threads.sqlite3")
        store = ThreadStore(clock=clock, persist=db.persist, on_delete=db.delete)
        primary = store.create_new_thread(_post("1", "Fed raises interest rates"))
        secondary = store.create_new_thread(_post("2", "Powell signals more hikes"))

        store.merge_threads(primary.id, secondary.id)

        [loaded] = db.threads()
        assert loaded.id == primary.id
        assert loaded.related_threads == [secondary.id]

    def test_rescoring_refreshes_stored_significance(self, tmp_path: Path, clock) -> None:
        db = ThreadDB(tmp_path / "threads.sqlite3")
        store = ThreadStore(clock=clock, persist=db.persist)
        store.create_new_thread(_post("1", "Apple unveils headset", priority=0.9))
        clock.advance(hours=30)

        store.recalculate_all_significance()

        [stored] = db.threads()
        assert stored.significance_score == store.get_active_threads()[0].significance_score
        assert stored.significance_score < 0.9
