"""Thread significance scoring."""

from __future__ import annotations

from datetime import datetime

# ── Weights (tuneable) ─────────────────────────────────────────────────────
_W_ENGAGEMENT = 0.4
_W_RECENCY = 0.3
_W_ENTITY_IMPORTANCE = 0.2
_UPDATE_BOOST_STEP = 0.1
_UPDATE_BOOST_CAP = 0.3

RECENCY_WINDOW_HOURS = 24.0
# Placeholder until entities carry a real importance signal.
DEFAULT_ENTITY_IMPORTANCE = 0.7


def calculate_significance(
    engagement: float,
    recency: float,
    entity_importance: float,
    update_count: int,
) -> float:
    """Weighted significance score, clamped to at most 1.0."""
    update_boost = min(update_count * _UPDATE_BOOST_STEP, _UPDATE_BOOST_CAP)
    raw = (
        engagement * _W_ENGAGEMENT
        + recency * _W_RECENCY
        + entity_importance * _W_ENTITY_IMPORTANCE
        + update_boost
    )
    return min(raw, 1.0)


def hours_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 3600


def recency(last_updated: datetime, now: datetime) -> float:
    """Linear decay from 1.0 to 0.0 over :data:`RECENCY_WINDOW_HOURS`."""
    return max(0.0, 1.0 - hours_between(last_updated, now) / RECENCY_WINDOW_HOURS)
