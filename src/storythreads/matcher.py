"""Match incoming posts against active story threads."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from storythreads.config import ThreadManagementConfig
from storythreads.features import extract_keywords_and_entities
from storythreads.models import Post, StoryThread, ThreadMatchResult, UpdateType
from storythreads.significance import hours_between
from storythreads.similarity import jaccard_similarity

logger = logging.getLogger(__name__)

_FOLLOW_UP_TOPIC_SIMILARITY = 0.8
_CLARIFICATION_ENTITY_SIMILARITY = 0.9
_SIMILAR_THREAD_MIN_SCORE = 0.3


def _suggest_update_type(topic_similarity: float, entity_similarity: float) -> UpdateType:
    if topic_similarity > _FOLLOW_UP_TOPIC_SIMILARITY:
        return "follow_up"
    if entity_similarity > _CLARIFICATION_ENTITY_SIMILARITY:
        return "clarification"
    return "new_development"


class ThreadMatcher:
    """Scores a post's fingerprint against each thread within the update window."""

    def __init__(self, config: ThreadManagementConfig) -> None:
        self.config = config

    # ── public ──────────────────────────────────────────────────────────

    def detect_existing_thread(
        self,
        post: Post,
        threads: Iterable[StoryThread],
        now: datetime,
    ) -> ThreadMatchResult:
        """Return the best-matching thread for *post*, if any qualifies.

        A thread qualifies when its topic or entity similarity clears the
        configured threshold and it was updated within the update window.
        Among qualifying threads the highest average similarity wins; ties go
        to the first thread in iteration order.
        """
        detection = self.config.detection
        keywords, entities = extract_keywords_and_entities(post.text)

        best = ThreadMatchResult()
        for thread in threads:
            topic_similarity = jaccard_similarity(keywords, thread.keywords)
            entity_similarity = jaccard_similarity(entities, thread.entities)

            hours_since_update = hours_between(thread.last_updated, now)
            within_window = hours_since_update <= detection.max_update_window_hours

            confidence = (topic_similarity + entity_similarity) / 2

            is_topic_match = topic_similarity >= detection.topic_similarity_threshold
            is_entity_match = entity_similarity >= detection.entity_overlap_threshold

            if not ((is_topic_match or is_entity_match) and within_window):
                continue
            if confidence <= best.confidence:
                continue

            reasons: list[str] = []
            if is_topic_match:
                reasons.append(f"Topic similarity: {topic_similarity * 100:.1f}%")
            if is_entity_match:
                reasons.append(f"Entity overlap: {entity_similarity * 100:.1f}%")

            best = ThreadMatchResult(
                is_match=True,
                thread_id=thread.id,
                confidence=confidence,
                match_reasons=reasons,
                suggested_update_type=_suggest_update_type(topic_similarity, entity_similarity),
            )

        if best.is_match:
            logger.debug(
                "Post %s matched thread %s (%.2f): %s",
                post.id, best.thread_id, best.confidence, "; ".join(best.match_reasons),
            )
        return best

    @staticmethod
    def find_similar_threads(
        keywords: list[str],
        entities: list[str],
        threads: Iterable[StoryThread],
    ) -> list[StoryThread]:
        """Threads whose averaged similarity exceeds 0.3, most similar first.

        Looser than :meth:`detect_existing_thread`: no time window and no
        per-dimension thresholds.
        """
        scored: list[tuple[float, StoryThread]] = []
        for thread in threads:
            similarity = (
                jaccard_similarity(keywords, thread.keywords)
                + jaccard_similarity(entities, thread.entities)
            ) / 2
            if similarity > _SIMILAR_THREAD_MIN_SCORE:
                scored.append((similarity, thread))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [thread for _, thread in scored]
