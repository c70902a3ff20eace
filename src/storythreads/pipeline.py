"""Pipeline orchestration — wires feed → thread detection → maintenance → persistence."""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from storythreads import config
from storythreads.feed import load_posts
from storythreads.models import Post, UpdateType
from storythreads.store import ThreadDB
from storythreads.threads import ThreadStore

logger = logging.getLogger(__name__)


def _setup_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


class TimelineEntry(BaseModel):
    timestamp: datetime
    stage: str
    details: str


class WorkflowResult(BaseModel):
    success: bool
    thread_id: str = ""
    is_new_thread: bool = False
    is_update: bool = False
    update_type: UpdateType | None = None
    error: str | None = None
    timeline: list[TimelineEntry] = Field(default_factory=list)


class _ReplayClock:
    """Store clock that reports the timestamp of the post being replayed."""

    def __init__(self) -> None:
        self.now = datetime.now(UTC)

    def __call__(self) -> datetime:
        return self.now


def _dedupe(posts: list[Post], store: ThreadStore) -> list[Post]:
    """Drop posts already threaded by an earlier run."""
    seen = store.seen_post_ids()
    new_posts = [post for post in posts if post.id not in seen]
    logger.info(
        "Dedupe: %d total → %d new (filtered %d seen)",
        len(posts),
        len(new_posts),
        len(posts) - len(new_posts),
    )
    return new_posts


class ThreadWorkflow:
    """Runs each post through detection, then a maintenance pass on the store."""

    def __init__(self, store: ThreadStore) -> None:
        self._store = store
        self._timeline: list[TimelineEntry] = []

    def process(self, post: Post) -> WorkflowResult:
        self._timeline = []
        self._log_stage("START", f"Beginning workflow for post: {post.title[:50]}")

        try:
            result = self._store.process_item(post)
        except Exception as exc:
            logger.exception("Thread detection failed for post %s", post.id)
            self._log_stage("ERROR", f"Workflow failed: {exc}")
            return WorkflowResult(success=False, error=str(exc), timeline=list(self._timeline))

        kind = "NEW" if result.is_new_thread else "UPDATE"
        self._log_stage("THREAD_DETECTION", f"Thread result: {kind} ({result.thread_id})")

        self._perform_maintenance()

        self._log_stage("COMPLETE", f"Workflow completed for thread {result.thread_id}")
        return WorkflowResult(
            success=True,
            thread_id=result.thread_id,
            is_new_thread=result.is_new_thread,
            is_update=result.is_update,
            update_type=result.update_type,
            timeline=list(self._timeline),
        )

    def _perform_maintenance(self) -> None:
        try:
            archived = self._store.cleanup_old_threads()
            rescored = self._store.recalculate_all_significance()
        except Exception:
            logger.exception("Thread maintenance failed")
            self._log_stage("MAINTENANCE", "Thread maintenance failed")
            return
        self._log_stage(
            "MAINTENANCE",
            f"Archived {archived} threads, rescored {rescored} active threads",
        )

    def _log_stage(self, stage: str, details: str) -> None:
        self._timeline.append(TimelineEntry(timestamp=datetime.now(UTC), stage=stage, details=details))
        logger.debug("[%s] %s", stage, details)


def run_pipeline(
    profile: str = config.DEFAULT_PROFILE,
    feed_path: Path | None = None,
    dry_run: bool = False,
) -> ThreadStore:
    """Process a feed for *profile* and persist the resulting threads.

    Threads already in the profile's database are loaded first and posts
    they contain are skipped, so re-running over the same feed is a no-op.
    Posts are replayed in timestamp order and each post's own timestamp is
    the store's "now", which keeps the update window and archival age
    meaningful for historical feeds.
    """
    _setup_logging()
    logger.info("=== storythreads pipeline start [profile=%s] ===", profile)

    # ── 0. Resolve profile paths ──────────────────────────────────────
    paths = config.profile_paths(profile)
    feed_path = feed_path or paths["feed"]

    # ── 1. Load thread config ─────────────────────────────────────────
    thread_config = config.load_thread_config(paths["config"])

    # ── 2. Build the store (with persistence unless dry-run) ─────────
    clock = _ReplayClock()
    if dry_run:
        logger.info("Dry-run mode — threads will not be persisted.")
        store = ThreadStore(thread_config, clock=clock)
        if paths["db"].exists():
            store.load_threads(ThreadDB(db_path=paths["db"]).threads())
    else:
        db = ThreadDB(db_path=paths["db"])
        store = ThreadStore(thread_config, persist=db.persist, on_delete=db.delete, clock=clock)
        store.load_threads(db.threads())

    # ── 3. Load feed ──────────────────────────────────────────────────
    posts = _dedupe(load_posts(feed_path), store)
    if not posts:
        logger.warning("No new posts loaded from %s — nothing to do.", feed_path)
        return store

    # ── 4. Thread each post ───────────────────────────────────────────
    workflow = ThreadWorkflow(store)
    failures = 0
    for post in sorted(posts, key=lambda p: p.timestamp):
        clock.now = post.timestamp
        result = workflow.process(post)
        if not result.success:
            failures += 1
            continue
        logger.info(
            "  [%s] %s → %s%s",
            post.id,
            post.title[:60],
            result.thread_id,
            f" ({result.update_type})" if result.is_update else " (new)",
        )

    stats = store.stats()
    logger.info(
        "=== storythreads pipeline done [profile=%s] — %d active, %d archived, %d failed ===",
        profile,
        stats["active_threads"],
        stats["archived_threads"],
        failures,
    )
    return store
