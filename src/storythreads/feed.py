"""Read ingestion feeds (JSON lines) into :class:`Post` items."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from storythreads.models import Post

logger = logging.getLogger(__name__)


def load_posts(path: str | Path) -> list[Post]:
    """Parse a ``.jsonl`` feed, one post object per line.

    Each line needs ``id``, ``title`` and ``timestamp`` (Unix seconds or ISO
    8601); ``body``, ``source`` and ``priority_score`` are optional. Blank
    lines and ``#`` comments are ignored; invalid lines are skipped with a
    warning.
    """
    p = Path(path)
    if not p.exists():
        logger.warning("Feed not found, skipping: %s", p)
        return []

    posts: list[Post] = []
    for lineno, raw in enumerate(p.read_text(encoding="utf-8").splitlines(), start=1):
        stripped = raw.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            posts.append(Post.model_validate_json(stripped))
        except ValidationError as exc:
            logger.warning("Skipping invalid feed line %s:%d (%d errors)", p, lineno, exc.error_count())

    logger.info("Loaded %d posts from %s", len(posts), p)
    return posts
