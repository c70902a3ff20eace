"""Unit tests for the lifecycle scheduler."""

import threading

import pytest

from storythreads.models import Post
from storythreads.scheduler import ThreadLifecycleScheduler
from storythreads.threads import ThreadStore


class _FlakyStore:
    """Stands in for a ThreadStore whose cleanup fails on the first call."""

    def __init__(self) -> None:
        self.calls = 0
        self.rescored = 0
        self.second_call = threading.Event()

    def cleanup_old_threads(self) -> int:
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("boom")
        self.second_call.set()
        return 0

    def recalculate_all_significance(self) -> int:
        self.rescored += 1
        return 0


class TestRunOnce:
    def test_archives_stale_threads(self, clock) -> None:
        store = ThreadStore(clock=clock)
        store.create_new_thread(
            Post(id="1", title="Apple unveils headset", timestamp=clock.now, priority_score=0.1)
        )
        clock.advance(hours=100)

        assert ThreadLifecycleScheduler(store).run_once()
        assert store.get_active_threads() == []
        assert len(store.get_archived_threads()) == 1

    def test_failure_is_caught(self) -> None:
        flaky = _FlakyStore()
        scheduler = ThreadLifecycleScheduler(flaky)  # type: ignore[arg-type]
        assert not scheduler.run_once()
        assert scheduler.run_once()

    def test_recalculation_is_opt_in(self) -> None:
        flaky = _FlakyStore()
        flaky.calls = 1
        ThreadLifecycleScheduler(flaky).run_once()  # type: ignore[arg-type]
        assert flaky.rescored == 0
        ThreadLifecycleScheduler(flaky, recalculate_significance=True).run_once()  # type: ignore[arg-type]
        assert flaky.rescored == 1


class TestBackgroundLoop:
    def test_keeps_running_after_failed_cycle(self) -> None:
        flaky = _FlakyStore()
        scheduler = ThreadLifecycleScheduler(flaky, interval_seconds=0.01)  # type: ignore[arg-type]
        scheduler.start()
        try:
            assert flaky.second_call.wait(timeout=5)
            assert scheduler.is_running
        finally:
            scheduler.stop()
        assert not scheduler.is_running

    def test_rejects_non_positive_interval(self) -> None:
        with pytest.raises(ValueError):
            ThreadLifecycleScheduler(ThreadStore(), interval_seconds=0)
