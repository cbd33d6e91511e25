# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Tag tools: create, look up, apply to fragments, and request suggestions."""

from __future__ import annotations

import logging
from typing import Any

from ...core.exceptions import NotFoundError, ValidationException
from ...core.payloads import PayloadBuilder, is_uuid
from ...crypto.signing import sign_relation, sign_tag
from ...gateway.types import AddressDomain, RelationType, Tag, TagCategory
from ...transform.delegation import tag_suggestion_request
from ..context import ServerContext
from ..requests import CreateTagRequest, GetTagRequest, ListTagsRequest, SuggestTagsRequest, TagFragmentRequest
from ._common import entity_result, page_result

logger = logging.getLogger(__name__)

SUGGESTION_TAG_LIMIT = 100


def _tag_summary(tag: Tag) -> dict[str, Any]:
    return {"uuid": tag.uuid, "name": tag.name, "category": tag.category}


def find_tag_uuid(ctx: ServerContext, name: str) -> str | None:
    """UUID of the tag called ``name``.

    Consults the session tag cache first and caches what the gateway
    returns. None when no such tag exists.
    """
    cached = ctx.state.get_cached_tag(name)
    if cached is not None:
        return cached.uuid

    tag = ctx.gateway.get_tag_by_name(name)
    if tag is None:
        return None
    ctx.remember(tag)
    ctx.state.cache_tag(tag.name, tag.uuid, tag.category)
    return tag.uuid


def create_signed_tag(
    ctx: ServerContext,
    builder: PayloadBuilder,
    private_key: bytes,
    name: str,
    category: TagCategory,
    content: str = "",
) -> Tag:
    tag = builder.tag(name, category, content)
    tag.signature = sign_tag(tag, private_key)
    created = ctx.gateway.create_tag(tag)
    ctx.remember(created)
    ctx.state.cache_tag(created.name, created.uuid, created.category)
    logger.info(f"Created tag {created.name!r} ({created.uuid})")
    return created


def tag_create(ctx: ServerContext, req: CreateTagRequest) -> dict[str, Any]:
    builder, private_key = ctx.require_signer()
    created = create_signed_tag(ctx, builder, private_key, req.name, req.category, req.description)
    return entity_result("tag", created)


def tag_get(ctx: ServerContext, req: GetTagRequest) -> dict[str, Any]:
    """Fetch a tag by UUID, or by exact name when no UUID is given."""
    if req.uuid:
        tag = ctx.gateway.get_tag(req.uuid)
    elif req.name:
        tag = ctx.gateway.get_tag_by_name(req.name)
        if tag is None:
            raise NotFoundError("Tag", req.name)
        ctx.state.cache_tag(tag.name, tag.uuid, tag.category)
    else:
        raise ValidationException("Either uuid or name must be provided", field="uuid")
    ctx.remember(tag)
    return entity_result("tag", tag)


def tag_list(ctx: ServerContext, req: ListTagsRequest) -> dict[str, Any]:
    page = ctx.gateway.list_tags(
        category=req.category.value if req.category else None, limit=req.limit, offset=req.offset
    )
    ctx.remember(*page.items)
    return page_result("tags", page, _tag_summary)


def tag_fragment(ctx: ServerContext, req: TagFragmentRequest) -> dict[str, Any]:
    """Apply a tag to a fragment with a RELATED_TO relation.

    ``tag`` is used as a UUID when it looks like one, otherwise resolved
    as a tag name.
    """
    builder, private_key = ctx.require_signer()

    if is_uuid(req.tag):
        tag_uuid = req.tag.lower()
    else:
        tag_uuid = find_tag_uuid(ctx, req.tag)
        if tag_uuid is None:
            raise NotFoundError("Tag", req.tag)

    relation = builder.relation(
        req.fragment,
        tag_uuid,
        RelationType.RELATED_TO,
        target_domain=AddressDomain.TAG,
    )
    relation.signature = sign_relation(relation, private_key)
    created = ctx.gateway.create_relation(relation)
    ctx.remember(created)
    return {
        "success": True,
        "uuid": created.uuid,
        "fragment": req.fragment,
        "tag": tag_uuid,
        "message": "Tag applied to fragment",
    }


def tag_suggest(ctx: ServerContext, req: SuggestTagsRequest) -> dict[str, Any]:
    """Hand tag analysis to the host, with the existing tags as candidates."""
    page = ctx.gateway.list_tags(limit=SUGGESTION_TAG_LIMIT)
    ctx.remember(*page.items)
    request = tag_suggestion_request(
        req.content,
        existing_tags=[_tag_summary(t) for t in page.items],
        max_suggestions=req.max_suggestions,
    )
    return {"success": True, **request.to_dict()}
