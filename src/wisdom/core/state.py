# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Session state persisted across server restarts.

Stored at ``<project_root>/.wisdom/state.json``. Outside a project nothing
is written and the state lives only in memory. Losing this file is
harmless, so read and write failures are logged and never raised.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .lru_cache import RecentList

logger = logging.getLogger(__name__)

STATE_FILE = Path(".wisdom") / "state.json"
MAX_RECENT_ITEMS = 10
TAG_CACHE_TTL = timedelta(hours=1)


class TagCacheEntry(BaseModel):
    uuid: str
    name: str
    category: str
    cached_at: datetime

    @field_validator("cached_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class PersistedState(BaseModel):
    """On-disk shape of the state file."""

    current_project: str | None = None
    recent_fragments: list[str] = Field(default_factory=list)
    recent_projects: list[str] = Field(default_factory=list)
    tag_cache: dict[str, TagCacheEntry] = Field(default_factory=dict)
    last_activity: datetime | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SessionState:
    """Recent entities, current project and a short-lived tag name cache."""

    def __init__(
        self,
        project_root: Path | None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.path = project_root / STATE_FILE if project_root else None
        self._clock = clock
        state = self._load()
        self._current_project = state.current_project
        self._recent_fragments: RecentList[str] = RecentList(MAX_RECENT_ITEMS, state.recent_fragments)
        self._recent_projects: RecentList[str] = RecentList(MAX_RECENT_ITEMS, state.recent_projects)
        self._tag_cache = dict(state.tag_cache)
        self._last_activity = state.last_activity

    def _load(self) -> PersistedState:
        if self.path is None or not self.path.exists():
            return PersistedState()
        try:
            with open(self.path, encoding="utf-8") as f:
                return PersistedState.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable session state at {self.path}: {e}")
            return PersistedState()

    def _save(self) -> None:
        self._last_activity = self._clock()
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                f.write(self.snapshot().model_dump_json(indent=2))
        except OSError as e:
            logger.warning(f"Could not save session state to {self.path}: {e}")

    def snapshot(self) -> PersistedState:
        return PersistedState(
            current_project=self._current_project,
            recent_fragments=self._recent_fragments.to_list(),
            recent_projects=self._recent_projects.to_list(),
            tag_cache=dict(self._tag_cache),
            last_activity=self._last_activity,
        )

    # -- Current project ---------------------------------------------------

    @property
    def current_project(self) -> str | None:
        return self._current_project

    def set_current_project(self, project_uuid: str | None) -> None:
        self._current_project = project_uuid
        if project_uuid:
            self._recent_projects.push(project_uuid)
        self._save()

    # -- Recent activity ---------------------------------------------------

    @property
    def recent_fragments(self) -> list[str]:
        return self._recent_fragments.to_list()

    @property
    def recent_projects(self) -> list[str]:
        return self._recent_projects.to_list()

    def add_recent_fragment(self, fragment_uuid: str) -> None:
        self._recent_fragments.push(fragment_uuid)
        self._save()

    def add_recent_project(self, project_uuid: str) -> None:
        self._recent_projects.push(project_uuid)
        self._save()

    @property
    def last_activity(self) -> datetime | None:
        return self._last_activity

    # -- Tag cache ---------------------------------------------------------

    def get_cached_tag(self, name: str) -> TagCacheEntry | None:
        """Cached tag for ``name``, or None when absent or older than an hour."""
        entry = self._tag_cache.get(name)
        if entry is None:
            return None
        if self._clock() - entry.cached_at > TAG_CACHE_TTL:
            del self._tag_cache[name]
            self._save()
            return None
        return entry

    def cache_tag(self, name: str, uuid: str, category: str) -> None:
        self._tag_cache[name] = TagCacheEntry(uuid=uuid, name=name, category=category, cached_at=self._clock())
        self._save()

    def clear_tag_cache(self) -> None:
        self._tag_cache = {}
        self._save()

    def clear(self) -> None:
        self._current_project = None
        self._recent_fragments = RecentList(MAX_RECENT_ITEMS)
        self._recent_projects = RecentList(MAX_RECENT_ITEMS)
        self._tag_cache = {}
        self._save()

    def to_dict(self) -> dict[str, Any]:
        return self.snapshot().model_dump(mode="json")
