# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Transform tools.

Encoding content into fragments and decoding fragments into another
language are delegated to the host: these tools return a request with
instructions, and ``wisdom_store_transformed_fragments`` signs and stores
what the host produced.
"""

from __future__ import annotations

import logging
from typing import Any

from ...core.exceptions import GatewayError
from ...core.validity import truncate
from ...crypto.signing import sign_transform
from ...gateway.types import Transform
from ...transform.delegation import decode_request, encode_request
from ...transform.presets import get_preset, select_preset
from ..context import ServerContext
from ..requests import (
    CreateTransformRequest,
    ListTransformsRequest,
    SelectPresetRequest,
    StoreTransformedFragmentsRequest,
    TransformFromFragmentRequest,
    TransformToFragmentRequest,
    UUIDRequest,
)
from ._common import LIST_PREVIEW_LENGTH, entity_result, page_result
from .fragments import sign_and_store

logger = logging.getLogger(__name__)

GENERAL_DOMAIN = "general"
TRANSFORMED_CONFIDENCE = 0.8


def _transform_summary(transform: Transform) -> dict[str, Any]:
    return {
        "uuid": transform.uuid,
        "name": transform.name,
        "description": transform.description,
        "transform_to": transform.transform_to,
        "transform_from": transform.transform_from,
        "version": transform.version,
    }


def transform_to_fragment(ctx: ServerContext, req: TransformToFragmentRequest) -> dict[str, Any]:
    """Ask the host to encode content into English fragments.

    Uses the given transform, else the first transform for a non-general
    domain, else no specification.
    """
    domain = None if req.domain == GENERAL_DOMAIN else req.domain
    spec = ctx.transform_spec(req.transform_uuid, domain=domain)
    request = encode_request(req.content, spec, source_language=req.source_language, domain=req.domain)
    return {"success": True, **request.to_dict()}


def transform_from_fragment(ctx: ServerContext, req: TransformFromFragmentRequest) -> dict[str, Any]:
    """Ask the host to decode a fragment into ``target_language``.

    Without an explicit transform, the transform that produced the
    fragment supplies the specification.
    """
    fragment = ctx.gateway.get_fragment(req.fragment_uuid)
    ctx.remember(fragment)
    transform_uuid = req.transform_uuid or (fragment.transform.entity if fragment.transform else None)
    spec = ctx.transform_spec(transform_uuid)
    request = decode_request(fragment.uuid, fragment.content, req.target_language, spec)
    return {"success": True, **request.to_dict()}


def store_transformed_fragments(ctx: ServerContext, req: StoreTransformedFragmentsRequest) -> dict[str, Any]:
    """Sign and store the fragments produced by an encode request.

    Fragments are stored one by one. If the gateway rejects one, those
    already stored stay stored and the result lists them together with
    the index that failed.
    """
    builder, private_key = ctx.require_signer()
    project = ctx.current_project(req.project)

    stored: list[dict[str, Any]] = []
    for index, item in enumerate(req.fragments):
        try:
            created = sign_and_store(
                ctx,
                builder,
                private_key,
                item.content,
                req.source_transform,
                confidence=TRANSFORMED_CONFIDENCE,
                project=project,
            )
        except GatewayError as e:
            logger.error(f"Storing fragment {index + 1}/{len(req.fragments)} failed: {e.message}")
            return {
                "success": False,
                "error": f"Gateway error: {e.message}",
                "failed_index": index,
                "stored": len(stored),
                "fragments": stored,
            }
        stored.append(
            {"uuid": created.uuid, "content": truncate(created.content, LIST_PREVIEW_LENGTH), "type": item.type}
        )

    return {"success": True, "stored": len(stored), "project": project, "fragments": stored}


def transform_get(ctx: ServerContext, req: UUIDRequest) -> dict[str, Any]:
    transform = ctx.gateway.get_transform(req.uuid)
    ctx.remember(transform)
    return entity_result("transform", transform)


def transform_list(ctx: ServerContext, req: ListTransformsRequest) -> dict[str, Any]:
    page = ctx.gateway.list_transforms(domain=req.domain, limit=req.limit, offset=req.offset)
    ctx.remember(*page.items)
    return page_result("transforms", page, _transform_summary)


def transform_create(ctx: ServerContext, req: CreateTransformRequest) -> dict[str, Any]:
    builder, private_key = ctx.require_signer()
    transform = builder.transform(
        req.name,
        req.description,
        req.transform_to,
        req.transform_from,
        additional_data=req.additional_data,
        tags=req.tags,
    )
    transform.signature = sign_transform(transform, private_key)
    created = ctx.gateway.create_transform(transform)
    ctx.remember(created)
    return entity_result("transform", created)


def preset_select(ctx: ServerContext, req: SelectPresetRequest) -> dict[str, Any]:
    key = select_preset(req.fragment_type, req.context_pressure)
    preset = get_preset(key)
    return {
        "success": True,
        "fragment_type": req.fragment_type.upper(),
        "context_pressure": req.context_pressure,
        "preset": key,
        "details": preset.to_dict() if preset else None,
    }
