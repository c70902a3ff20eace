"""In-memory story thread store: detection, lifecycle and queries."""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from storythreads.config import ThreadConfigUpdate, ThreadManagementConfig, merge_config
from storythreads.features import extract_keywords_and_entities, generate_thread_topic
from storythreads.matcher import ThreadMatcher
from storythreads.models import (
    OriginalPost,
    Post,
    ProcessResult,
    SourcePost,
    StoryThread,
    StoryUpdate,
    ThreadMatchResult,
    UpdateChanges,
)
from storythreads.significance import (
    DEFAULT_ENTITY_IMPORTANCE,
    calculate_significance,
    recency,
)

logger = logging.getLogger(__name__)

PersistHook = Callable[[StoryThread], None]
DeleteHook = Callable[[str], None]


class ThreadInvariantError(RuntimeError):
    """Raised when the store's collections are found in an impossible state."""


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ThreadStore:
    """Owns the active and archived story threads.

    All mutations and queries run under a single re-entrant lock, so
    :meth:`process_item` is atomic with respect to the lifecycle scheduler
    and other ingesting threads. Queries return deep copies.

    *persist* is called with a snapshot of each thread after it is created,
    updated, archived or merged into; *on_delete* with the id of a thread
    removed by a merge. Hook failures are logged and never undo the change.
    """

    def __init__(
        self,
        config: ThreadManagementConfig | None = None,
        *,
        persist: PersistHook | None = None,
        on_delete: DeleteHook | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config or ThreadManagementConfig()
        self._matcher = ThreadMatcher(self._config)
        self._persist = persist
        self._on_delete = on_delete
        self._clock = clock
        self._lock = threading.RLock()
        # Insertion-ordered; matching iterates in creation order.
        self._active: dict[str, StoryThread] = {}
        self._archived: dict[str, StoryThread] = {}

    @property
    def config(self) -> ThreadManagementConfig:
        return self._config

    # ── detection ───────────────────────────────────────────────────────

    def detect_existing_thread(self, post: Post) -> ThreadMatchResult:
        with self._lock:
            return self._matcher.detect_existing_thread(
                post, self._active.values(), self._clock()
            )

    def find_similar_threads(self, keywords: list[str], entities: list[str]) -> list[StoryThread]:
        with self._lock:
            similar = self._matcher.find_similar_threads(keywords, entities, self._active.values())
            return [t.model_copy(deep=True) for t in similar]

    # ── ingestion ───────────────────────────────────────────────────────

    def process_item(self, post: Post) -> ProcessResult:
        """Attach *post* to its best-matching thread or start a new one."""
        with self._lock:
            match = self.detect_existing_thread(post)

            if match.is_match and match.thread_id:
                update_type = match.suggested_update_type or "new_development"
                update = StoryUpdate(
                    id=_new_id("update"),
                    thread_id=match.thread_id,
                    timestamp=self._clock(),
                    update_type=update_type,
                    source_post=SourcePost(
                        id=post.id,
                        title=post.title,
                        content=post.body,
                        source=post.source,
                    ),
                    summary=f"New development: {post.title}",
                    significance=post.significance,
                    changes=UpdateChanges(added=[f"Update from {post.source or 'unknown source'}"]),
                )
                self.add_update_to_thread(match.thread_id, update)
                return ProcessResult(
                    thread_id=match.thread_id,
                    is_new_thread=False,
                    is_update=True,
                    update_type=update_type,
                )

            thread = self.create_new_thread(post)
            return ProcessResult(thread_id=thread.id, is_new_thread=True, is_update=False)

    def create_new_thread(self, post: Post) -> StoryThread:
        keywords, entities = extract_keywords_and_entities(post.text)
        now = self._clock()
        thread = StoryThread(
            id=_new_id("thread"),
            topic=generate_thread_topic(keywords, entities),
            keywords=keywords,
            entities=entities,
            created_at=now,
            last_updated=now,
            significance_score=post.significance,
            original_post=OriginalPost(
                id=post.id,
                title=post.title,
                content=post.body,
                timestamp=post.timestamp,
            ),
        )

        with self._lock:
            if thread.id in self._active or thread.id in self._archived:
                raise ThreadInvariantError(f"Duplicate thread id {thread.id}")
            self._active[thread.id] = thread
            logger.info("Created new story thread %s: %s", thread.id, thread.topic)
            self._emit(thread)
            return thread.model_copy(deep=True)

    def add_update_to_thread(self, thread_id: str, update: StoryUpdate) -> bool:
        """Append *update* and rescore the thread. Returns False if not active."""
        with self._lock:
            thread = self._active.get(thread_id)
            if thread is None:
                logger.warning("Cannot add update %s: thread %s is not active", update.id, thread_id)
                return False

            thread.updates.append(update)
            thread.last_updated = self._clock()
            thread.update_count += 1
            # A brand-new update is maximally recent.
            thread.significance_score = calculate_significance(
                update.significance,
                1.0,
                DEFAULT_ENTITY_IMPORTANCE,
                thread.update_count,
            )
            logger.info("Added update to thread %r: %s", thread.topic, update.summary)
            self._emit(thread)
            return True

    # ── lifecycle ───────────────────────────────────────────────────────

    def archive_thread(self, thread_id: str) -> bool:
        with self._lock:
            thread = self._active.pop(thread_id, None)
            if thread is None:
                logger.warning("Cannot archive thread %s: not active", thread_id)
                return False
            self._archive(thread)
            logger.info("Archived thread %s: %s", thread.id, thread.topic)
            self._emit(thread)
            return True

    def merge_threads(self, primary_id: str, secondary_id: str) -> bool:
        """Fold *secondary_id* into *primary_id* and delete the secondary.

        The secondary is dropped outright rather than archived or marked
        ``merged``; its id is recorded in the primary's ``related_threads``.
        """
        with self._lock:
            primary = self._active.get(primary_id)
            secondary = self._active.get(secondary_id)
            if primary is None or secondary is None or primary_id == secondary_id:
                logger.warning(
                    "Cannot merge threads %s + %s: both must be distinct active threads",
                    primary_id, secondary_id,
                )
                return False

            primary.keywords = list(dict.fromkeys(primary.keywords + secondary.keywords))
            primary.entities = list(dict.fromkeys(primary.entities + secondary.entities))
            primary.updates = primary.updates + secondary.updates
            # +1 counts the merge itself as an update.
            primary.update_count = primary.update_count + secondary.update_count + 1
            primary.last_updated = self._clock()
            primary.related_threads.append(secondary_id)

            del self._active[secondary_id]
            logger.info("Merged threads %r + %r", primary.topic, secondary.topic)

            self._emit(primary)
            if self._on_delete is not None:
                try:
                    self._on_delete(secondary_id)
                except Exception:
                    logger.exception("Delete hook failed for merged thread %s", secondary_id)
            return True

    def cleanup_old_threads(self) -> int:
        """Archive threads that are both stale and insignificant.

        Returns the number of threads archived.
        """
        with self._lock:
            archival = self._config.archival
            cutoff = self._clock() - timedelta(hours=archival.max_age_hours)

            to_archive = [
                thread for thread in self._active.values()
                if thread.last_updated < cutoff
                and thread.significance_score < archival.min_significance_to_keep
            ]
            for thread in to_archive:
                del self._active[thread.id]
                self._archive(thread)

            if to_archive:
                logger.info("Auto-archived %d old threads", len(to_archive))
            for thread in to_archive:
                self._emit(thread)
            return len(to_archive)

    def update_thread_significance(self, thread_id: str) -> bool:
        """Decay or reinforce a thread's score from its current recency.

        The current score is fed back in as the engagement input, so repeated
        calls compound: a fresh thread drifts upward, a stale one decays.
        This is not a recompute from source signals.
        """
        with self._lock:
            thread = self._active.get(thread_id)
            if thread is None:
                logger.warning("Cannot rescore thread %s: not active", thread_id)
                return False
            thread.significance_score = calculate_significance(
                thread.significance_score,
                recency(thread.last_updated, self._clock()),
                DEFAULT_ENTITY_IMPORTANCE,
                thread.update_count,
            )
            self._emit(thread)
            return True

    def recalculate_all_significance(self) -> int:
        with self._lock:
            thread_ids = list(self._active)
            for thread_id in thread_ids:
                self.update_thread_significance(thread_id)
            return len(thread_ids)

    # ── queries ─────────────────────────────────────────────────────────

    def get_active_threads(self) -> list[StoryThread]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._active.values()]

    def get_archived_threads(self) -> list[StoryThread]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._archived.values()]

    def get_thread_by_id(self, thread_id: str) -> StoryThread | None:
        with self._lock:
            thread = self._active.get(thread_id) or self._archived.get(thread_id)
            return thread.model_copy(deep=True) if thread is not None else None

    def get_recent_updates(self, hours: float = 24) -> list[StoryUpdate]:
        """Updates across active threads from the last *hours*, newest first."""
        with self._lock:
            cutoff = self._clock() - timedelta(hours=hours)
            recent = [
                update.model_copy(deep=True)
                for thread in self._active.values()
                for update in thread.updates
                if update.timestamp >= cutoff
            ]
        recent.sort(key=lambda u: u.timestamp, reverse=True)
        return recent

    def get_threads_by_topic(self, topic: str) -> list[StoryThread]:
        needle = topic.lower()
        with self._lock:
            return [
                t.model_copy(deep=True)
                for t in self._active.values()
                if needle in t.topic.lower()
            ]

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "active_threads": len(self._active),
                "archived_threads": len(self._archived),
                "active_updates": sum(len(t.updates) for t in self._active.values()),
            }

    def seen_post_ids(self) -> set[str]:
        """Ids of every post already threaded, as an original post or an update."""
        with self._lock:
            seen: set[str] = set()
            for thread in (*self._active.values(), *self._archived.values()):
                seen.add(thread.original_post.id)
                seen.update(update.source_post.id for update in thread.updates)
            return seen

    # ── configuration ───────────────────────────────────────────────────

    def update_config(self, partial: ThreadConfigUpdate | Mapping[str, Any]) -> ThreadManagementConfig:
        """Merge *partial* into the current config.

        Raises :class:`~storythreads.config.ConfigurationError` and keeps the
        previous config if the result does not validate. Existing threads are
        not re-evaluated.
        """
        with self._lock:
            self._config = merge_config(self._config, partial)
            self._matcher.config = self._config
            logger.info("Updated story thread configuration")
            return self._config

    def load_threads(self, threads: Iterable[StoryThread]) -> int:
        """Restore previously persisted *threads* without firing the persist hook.

        Threads are restored in creation order; archived ones go to the archive,
        everything else is active. Raises
        :class:`ThreadInvariantError` if an id is already held.
        """
        with self._lock:
            count = 0
            for thread in sorted(threads, key=lambda t: t.created_at):
                if thread.id in self._active or thread.id in self._archived:
                    raise ThreadInvariantError(f"Duplicate thread id {thread.id}")
                restored = thread.model_copy(deep=True)
                if restored.status == "archived":
                    self._archived[restored.id] = restored
                else:
                    self._active[restored.id] = restored
                count += 1
            if count:
                logger.info("Loaded %d stored story threads", count)
            return count

    def reset(self) -> None:
        """Drop every thread and restore the default configuration."""
        with self._lock:
            self._active.clear()
            self._archived.clear()
            self._config = ThreadManagementConfig()
            self._matcher.config = self._config
            logger.info("Cleared all story thread state")

    # ── private ─────────────────────────────────────────────────────────

    def _archive(self, thread: StoryThread) -> None:
        if thread.id in self._archived:
            raise ThreadInvariantError(f"Thread {thread.id} is already archived")
        thread.status = "archived"
        self._archived[thread.id] = thread

    def _emit(self, thread: StoryThread) -> None:
        if self._persist is None:
            return
        try:
            self._persist(thread.model_copy(deep=True))
        except Exception:
            logger.exception("Persist hook failed for thread %s", thread.id)
