# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Validity tools: evidence balance, contradictions, derivation chains and
task context loading.

The gateway supplies relations and fragments; the analysis itself lives
in ``wisdom.core.validity``.
"""

from __future__ import annotations

from typing import Any

from ...core.validity import (
    SEARCH_LIMIT,
    check_derivation_chain,
    compute_evidence_balance,
    contradicting_relations,
    contradiction_entry,
    select_context,
    truncate,
)
from ...gateway.types import Relation
from ..context import ServerContext
from ..requests import CheckDerivationChainRequest, FragmentIdRequest, LoadContextRequest


def _incoming(ctx: ServerContext, fragment_id: str) -> list[Relation]:
    relations = ctx.gateway.get_relations_for_entity(fragment_id, "target")
    ctx.remember(*relations)
    return relations


def _outgoing(ctx: ServerContext, fragment_id: str) -> list[Relation]:
    relations = ctx.gateway.get_relations_for_entity(fragment_id, "source")
    ctx.remember(*relations)
    return relations


def evidence_balance(ctx: ServerContext, req: FragmentIdRequest) -> dict[str, Any]:
    """Weigh supporting against contradicting evidence for a thesis fragment."""
    fragment = ctx.gateway.get_fragment(req.fragment_id)
    ctx.remember(fragment)
    balance = compute_evidence_balance(fragment.uuid, _incoming(ctx, fragment.uuid))

    result = balance.to_dict()
    del result["thesis_id"]
    return {
        "success": True,
        "thesis": {
            "uuid": fragment.uuid,
            "content": truncate(fragment.content),
            "confidence": fragment.confidence,
            "evidence_type": fragment.evidence_type.value,
        },
        **result,
    }


def find_contradictions(ctx: ServerContext, req: FragmentIdRequest) -> dict[str, Any]:
    """CONTRADICTS relations toward a fragment, with their source fragments.

    A source that cannot be loaded is reported as a placeholder entry.
    """
    fragment = ctx.gateway.get_fragment(req.fragment_id)
    ctx.remember(fragment)
    relations = contradicting_relations(fragment.uuid, _incoming(ctx, fragment.uuid))
    entries = [contradiction_entry(r, ctx.lookup_fragment(r.source.entity)) for r in relations]
    return {
        "success": True,
        "fragment_id": fragment.uuid,
        "contradiction_count": len(entries),
        "contradictions": entries,
    }


def derivation_chain(ctx: ServerContext, req: CheckDerivationChainRequest) -> dict[str, Any]:
    report = check_derivation_chain(
        req.fragment_id,
        relations_of=lambda fragment_id: _outgoing(ctx, fragment_id),
        fetch_fragment=ctx.lookup_fragment,
        max_depth=req.max_depth,
    )
    return {"success": True, **report.to_dict()}


def load_context_for_task(ctx: ServerContext, req: LoadContextRequest) -> dict[str, Any]:
    """Most relevant fragments for a task that fit in the token budget."""
    page = ctx.gateway.search_fragments(
        query=req.task_description,
        project=ctx.current_project(req.project),
        limit=SEARCH_LIMIT,
    )
    ctx.remember(*page.items)
    selection = select_context(req.task_description, page.items, req.token_budget, req.min_confidence)
    return {"success": True, **selection.to_dict()}
