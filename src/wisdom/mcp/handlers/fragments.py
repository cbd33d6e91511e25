# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Fragment tools: create, read, search and signature verification."""

from __future__ import annotations

import logging
from typing import Any

from ...core.payloads import PayloadBuilder
from ...core.validity import PREVIEW_LENGTH
from ...crypto.keys import from_base64
from ...crypto.signing import sign_fragment, verify_fragment
from ...gateway.types import EvidenceType, Fragment
from ..context import ServerContext
from ..requests import (
    CreateFragmentRequest,
    ListFragmentsRequest,
    SearchFragmentsRequest,
    UUIDRequest,
)
from ._common import LIST_PREVIEW_LENGTH, entity_result, fragment_preview, page_result

logger = logging.getLogger(__name__)


def sign_and_store(
    ctx: ServerContext,
    builder: PayloadBuilder,
    private_key: bytes,
    content: str,
    source_transform: str | None,
    tags: list[str] | None = None,
    confidence: float | None = None,
    evidence_type: EvidenceType | None = None,
    project: str | None = None,
) -> Fragment:
    """Build, sign and submit one fragment, recording it in session state.

    Falls back to the configured default transform and default tags.
    """
    fragment = builder.fragment(
        content,
        source_transform or ctx.config.default_transform,
        tags=ctx.config.default_tags if tags is None else tags,
        confidence=confidence,
        evidence_type=evidence_type,
    )
    fragment.signature = sign_fragment(fragment, private_key)
    created = ctx.gateway.create_fragment(fragment, project=project)
    ctx.remember(created)
    ctx.state.add_recent_fragment(created.uuid)
    logger.debug(f"Stored fragment {created.uuid}")
    return created


def fragment_create(ctx: ServerContext, req: CreateFragmentRequest) -> dict[str, Any]:
    builder, private_key = ctx.require_signer()
    project = ctx.current_project(req.project)
    created = sign_and_store(
        ctx,
        builder,
        private_key,
        req.content,
        req.source_transform,
        tags=req.tags,
        confidence=req.confidence,
        evidence_type=req.evidence_type,
        project=project,
    )
    return entity_result("fragment", created, project=project)


def fragment_get(ctx: ServerContext, req: UUIDRequest) -> dict[str, Any]:
    fragment = ctx.gateway.get_fragment(req.uuid)
    ctx.remember(fragment)
    return entity_result("fragment", fragment)


def fragment_search(ctx: ServerContext, req: SearchFragmentsRequest) -> dict[str, Any]:
    """Full-text search, scoped to the current project unless another is given."""
    page = ctx.gateway.search_fragments(
        query=req.query,
        tags=req.tags,
        author=req.author,
        project=ctx.current_project(req.project),
        state=req.state.value if req.state else None,
        limit=req.limit,
        offset=req.offset,
    )
    ctx.remember(*page.items)
    return page_result("fragments", page, lambda f: fragment_preview(f, PREVIEW_LENGTH))


def fragment_list(ctx: ServerContext, req: ListFragmentsRequest) -> dict[str, Any]:
    project = ctx.current_project(req.project)
    if project:
        page = ctx.gateway.search_fragments(project=project, limit=req.limit, offset=req.offset)
    else:
        page = ctx.gateway.list_fragments(limit=req.limit, offset=req.offset)
    ctx.remember(*page.items)
    return page_result("fragments", page, lambda f: fragment_preview(f, LIST_PREVIEW_LENGTH))


def fragment_verify(ctx: ServerContext, req: UUIDRequest) -> dict[str, Any]:
    """Check a stored fragment's signature against its creator's public key.

    The signable payload is rebuilt from the stored fields, so any change
    to content, tags, transform or confidence after signing is detected.
    """
    fragment = ctx.gateway.get_fragment(req.uuid)
    agent = ctx.gateway.get_agent(fragment.creator.entity)
    ctx.remember(fragment, agent)

    result: dict[str, Any] = {
        "success": True,
        "uuid": fragment.uuid,
        "creator": fragment.creator.to_string(),
        "schema_version": fragment.schema_version,
    }
    try:
        public_key = from_base64(agent.public_key)
    except ValueError as e:
        logger.warning(f"Agent {agent.uuid} has an undecodable public key: {e}")
        result["valid"] = False
        result["reason"] = "creator public key is not valid base64"
        return result

    result["valid"] = verify_fragment(fragment, public_key)
    if not result["valid"]:
        result["reason"] = "signature does not match the stored fragment"
    return result
