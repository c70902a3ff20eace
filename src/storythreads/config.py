"""Centralised configuration loaded from environment variables, dotenv and YAML profiles."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

load_dotenv()

logger = logging.getLogger(__name__)

# ── Paths ──────────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# ── Runtime ────────────────────────────────────────────────────────────────
DEFAULT_PROFILE: str = os.getenv("STORYTHREADS_PROFILE", "default")
CONFIG_DIR: Path = Path(os.getenv("STORYTHREADS_CONFIG_DIR", str(PROJECT_ROOT / "config")))
DB_BASE: Path = Path(os.getenv("STORYTHREADS_DB_DIR", str(PROJECT_ROOT / "var")))
CLEANUP_INTERVAL_SECONDS: float = float(os.getenv("STORYTHREADS_CLEANUP_INTERVAL_SECONDS", "3600"))
LOG_LEVEL: str = os.getenv("STORYTHREADS_LOG_LEVEL", "INFO")


class ConfigurationError(ValueError):
    """Raised when a thread configuration fails validation."""


# ── Thread management config ───────────────────────────────────────────────


class DetectionConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    topic_similarity_threshold: float = Field(0.7, ge=0.0, le=1.0)
    # Declared but not consulted by the matcher.
    keyword_overlap_threshold: float = Field(0.4, ge=0.0, le=1.0)
    entity_overlap_threshold: float = Field(0.3, ge=0.0, le=1.0)
    max_update_window_hours: float = Field(24.0, gt=0)
    # Declared but not consulted by the matcher.
    min_significance_for_update: float = Field(0.5, ge=0.0, le=1.0)


class ArchivalConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_age_hours: float = Field(72.0, gt=0)
    min_significance_to_keep: float = Field(0.6, ge=0.0, le=1.0)


class UpdateLimits(BaseModel):
    """Update throttling knobs. Neither is enforced on the update path."""

    model_config = ConfigDict(extra="forbid")

    max_updates_per_thread: int = Field(10, ge=1)
    cooldown_minutes: float = Field(15.0, ge=0)


class ThreadManagementConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    # Target ceiling only; nothing archives to enforce it.
    max_active_threads: int = Field(50, ge=1)
    archival: ArchivalConfig = Field(default_factory=ArchivalConfig)
    updates: UpdateLimits = Field(default_factory=UpdateLimits)


# ── Partial updates ────────────────────────────────────────────────────────


class DetectionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    topic_similarity_threshold: float | None = None
    keyword_overlap_threshold: float | None = None
    entity_overlap_threshold: float | None = None
    max_update_window_hours: float | None = None
    min_significance_for_update: float | None = None


class ArchivalUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_age_hours: float | None = None
    min_significance_to_keep: float | None = None


class UpdateLimitsUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_updates_per_thread: int | None = None
    cooldown_minutes: float | None = None


class ThreadConfigUpdate(BaseModel):
    """Typed partial of :class:`ThreadManagementConfig`; ``None`` means "keep"."""

    model_config = ConfigDict(extra="forbid")

    detection: DetectionUpdate | None = None
    max_active_threads: int | None = None
    archival: ArchivalUpdate | None = None
    updates: UpdateLimitsUpdate | None = None


def merge_config(
    current: ThreadManagementConfig,
    partial: ThreadConfigUpdate | Mapping[str, Any],
) -> ThreadManagementConfig:
    """Merge *partial* into *current* field by field and validate the result.

    Raises :class:`ConfigurationError` if the partial or the merged config is
    invalid. *current* is never modified.
    """
    try:
        if not isinstance(partial, ThreadConfigUpdate):
            partial = ThreadConfigUpdate.model_validate(dict(partial))

        merged = current.model_dump()
        for section, value in partial.model_dump(exclude_none=True).items():
            if isinstance(value, dict):
                merged[section].update(value)
            else:
                merged[section] = value
        return ThreadManagementConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid thread configuration: {exc}") from exc


def load_thread_config(path: Path) -> ThreadManagementConfig:
    """Load a ``threads.yml`` profile, falling back to defaults when absent.

    The file may set any subset of the config fields, e.g.::

        detection:
          topic_similarity_threshold: 0.6
        archival:
          max_age_hours: 48
    """
    if not path.exists():
        logger.warning("Thread config not found, using defaults: %s", path)
        return ThreadManagementConfig()

    with open(path) as fh:
        raw: dict[str, Any] | None = yaml.safe_load(fh)

    if not raw:
        return ThreadManagementConfig()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping, got {type(raw).__name__}")

    return merge_config(ThreadManagementConfig(), raw)


def profile_paths(profile: str) -> dict[str, Path]:
    """Return resolved paths for a given profile name.

    Keys: ``config``, ``db``, ``feed``.
    """
    profile_dir = CONFIG_DIR / profile
    return {
        "config": profile_dir / "threads.yml",
        "db": DB_BASE / f"{profile}.sqlite3",
        "feed": profile_dir / "feed.jsonl",
    }
