# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Relation tools: typed edges between entities."""

from __future__ import annotations

from typing import Any

from ...crypto.signing import sign_relation
from ...gateway.types import FRAGMENT_TYPES, AddressDomain, Relation, RelationType, TagCategory
from ..context import ServerContext
from ..requests import CreateRelationRequest, GetRelationsRequest, LinkAnswerRequest, TypeFragmentRequest
from ._common import entity_result
from .tags import create_signed_tag, find_tag_uuid


def _submit(ctx: ServerContext, relation: Relation, private_key: bytes) -> Relation:
    relation.signature = sign_relation(relation, private_key)
    created = ctx.gateway.create_relation(relation)
    ctx.remember(created)
    return created


def relation_create(ctx: ServerContext, req: CreateRelationRequest) -> dict[str, Any]:
    builder, private_key = ctx.require_signer()
    relation = builder.relation(
        req.source,
        req.target,
        req.relation_type,
        content=req.content,
        confidence=req.confidence,
        source_domain=req.source_domain,
        target_domain=req.target_domain,
    )
    return entity_result("relation", _submit(ctx, relation, private_key))


def relation_get(ctx: ServerContext, req: GetRelationsRequest) -> dict[str, Any]:
    relations = ctx.gateway.get_relations_for_entity(req.entity, req.direction)
    ctx.remember(*relations)
    return {
        "success": True,
        "entity": req.entity,
        "direction": req.direction or "both",
        "relations": [r.to_dict() for r in relations],
        "count": len(relations),
    }


def fragment_type(ctx: ServerContext, req: TypeFragmentRequest) -> dict[str, Any]:
    """Type a fragment with a TYPED_AS relation to its ``type:<name>`` tag.

    The type tag is created on first use.
    """
    builder, private_key = ctx.require_signer()
    tag_name = FRAGMENT_TYPES[req.fragment_type]

    tag_uuid = find_tag_uuid(ctx, tag_name)
    created_tag = tag_uuid is None
    if tag_uuid is None:
        tag_uuid = create_signed_tag(
            ctx, builder, private_key, tag_name, TagCategory.TYPE, f"Fragments of type {req.fragment_type}"
        ).uuid

    relation = builder.relation(
        req.fragment,
        tag_uuid,
        RelationType.TYPED_AS,
        content=req.fragment_type,
        target_domain=AddressDomain.TAG,
    )
    created = _submit(ctx, relation, private_key)
    return {
        "success": True,
        "uuid": created.uuid,
        "fragment": req.fragment,
        "fragment_type": req.fragment_type,
        "type_tag": tag_name,
        "type_tag_uuid": tag_uuid,
        "type_tag_created": created_tag,
        "message": f"Fragment typed as {req.fragment_type}",
    }


def link_answer(ctx: ServerContext, req: LinkAnswerRequest) -> dict[str, Any]:
    """Record that ``answer`` answers ``question`` (SUPPORTS, answer to question)."""
    builder, private_key = ctx.require_signer()
    relation = builder.relation(req.answer, req.question, RelationType.SUPPORTS, content="answer_to_question")
    created = _submit(ctx, relation, private_key)
    return {
        "success": True,
        "uuid": created.uuid,
        "question": req.question,
        "answer": req.answer,
        "message": "Answer linked to question via SUPPORTS relation",
    }
