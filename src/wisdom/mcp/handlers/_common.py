# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Shared helpers for tool handler modules."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ...core.validity import truncate
from ...gateway.types import Fragment, Page

# Short previews in listings
LIST_PREVIEW_LENGTH = 100


def fragment_preview(fragment: Fragment, length: int | None = None) -> dict[str, Any]:
    """Compact listing entry for a fragment."""
    return {
        "uuid": fragment.uuid,
        "content": truncate(fragment.content, length) if length else fragment.content,
        "creator": fragment.creator.to_string(),
        "confidence": fragment.confidence,
        "state": fragment.state.value,
        "trust_score": fragment.trust_summary.score,
    }


def page_result(key: str, page: Page[Any], render: Callable[[Any], dict[str, Any]]) -> dict[str, Any]:
    """Standard listing result: ``{"success": True, key: [...], "total": ...}``."""
    result: dict[str, Any] = {
        "success": True,
        key: [render(item) for item in page.items],
        "total": page.total if page.total is not None else len(page.items),
    }
    if page.limit is not None:
        result["limit"] = page.limit
    if page.offset is not None:
        result["offset"] = page.offset
    if page.next_cursor:
        result["next_cursor"] = page.next_cursor
    return result


def entity_result(key: str, entity: Any, **extra: Any) -> dict[str, Any]:
    """Single-entity result: ``{"success": True, key: entity.to_dict(), ...}``."""
    return {"success": True, key: entity.to_dict(), **extra}
