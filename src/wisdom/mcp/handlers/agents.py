# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Agent and trust tools.

Trust-path calculation is not implemented: ``calculate_trust`` reports a
fragment's aggregated trust score, or an agent's reputation recentred on
zero, and says so in its result.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from ...core.exceptions import GatewayNotFoundError, NotFoundError, PreconditionError
from ...core.payloads import trust_expression
from ...crypto.signing import sign_trust_vote
from ...gateway.types import Agent, VoteType
from ..context import ServerContext
from ..requests import (
    CalculateTrustRequest,
    FragmentRefRequest,
    OptionalUUIDRequest,
    PageRequest,
    TrustAgentRequest,
    VoteOnFragmentRequest,
)
from ._common import page_result

logger = logging.getLogger(__name__)

# Reputation is 0..1 with 0.5 neutral
NEUTRAL_REPUTATION = 0.5


def agent_get(ctx: ServerContext, req: OptionalUUIDRequest) -> dict[str, Any]:
    uuid = req.uuid or ctx.config.agent_uuid
    if not uuid:
        raise PreconditionError("No agent UUID specified and no current agent configured.", remedy="wisdom_whoami")
    agent = ctx.gateway.get_agent(uuid)
    ctx.remember(agent)
    return {"success": True, "agent": agent.to_dict(), "is_current": agent.uuid == ctx.config.agent_uuid}


def agent_list(ctx: ServerContext, req: PageRequest) -> dict[str, Any]:
    page = ctx.gateway.list_agents(limit=req.limit, offset=req.offset)
    ctx.remember(*page.items)
    current = ctx.config.agent_uuid

    def render(agent: Agent) -> dict[str, Any]:
        return {
            "uuid": agent.uuid,
            "description": agent.description,
            "reputation_score": agent.reputation_score,
            "is_current": agent.uuid == current,
            "created_at": agent.created_at,
        }

    return page_result("agents", page, render)


def trust_agent(ctx: ServerContext, req: TrustAgentRequest) -> dict[str, Any]:
    """Validate a trust expression towards another agent.

    Updating the agent's trust map on the gateway is not supported yet, so
    nothing is submitted.
    """
    builder, _ = ctx.require_signer()
    expression = trust_expression(req.trust_level, req.confidence)
    ctx.gateway.get_agent(builder.agent_uuid)

    sign = "+" if expression.trust > 0 else ""
    return {
        "success": True,
        "source_agent": builder.agent_uuid,
        "target_agent": req.target_agent,
        "trust_expression": expression.to_dict(),
        "message": f"Trust expressed: {sign}{expression.trust} (confidence: {expression.confidence})",
        "submitted": False,
        "note": "Trust map updates are not supported by the gateway yet; the expression was validated only.",
    }


def vote_on_fragment(ctx: ServerContext, req: VoteOnFragmentRequest) -> dict[str, Any]:
    builder, private_key = ctx.require_signer()
    vote = builder.trust_vote(req.fragment, req.vote_type, req.comment)
    vote.signature = sign_trust_vote(vote, private_key)
    created = ctx.gateway.create_trust_vote(vote)
    ctx.remember(created)
    return {
        "success": True,
        "vote": created.to_dict(),
        "message": f"Vote cast: {created.vote_type.value}",
    }


def fragment_votes(ctx: ServerContext, req: FragmentRefRequest) -> dict[str, Any]:
    votes = ctx.gateway.get_votes_for_target(req.fragment)
    ctx.remember(*votes)
    counts = Counter(v.vote_type for v in votes)
    return {
        "success": True,
        "fragment": req.fragment,
        "votes": [v.to_dict() for v in votes],
        "summary": {
            "total": len(votes),
            "verifications": counts[VoteType.VERIFY],
            "contestations": counts[VoteType.CONTEST],
            "retractions": counts[VoteType.RETRACT],
        },
    }


def calculate_trust(ctx: ServerContext, req: CalculateTrustRequest) -> dict[str, Any]:
    """Effective trust in a fragment or agent, seen from ``perspective``.

    Tries the entity as a fragment first, then as an agent.

    Raises:
        NotFoundError: If the UUID is neither.
    """
    perspective = req.perspective or ctx.require_agent()

    try:
        fragment = ctx.gateway.get_fragment(req.entity)
    except GatewayNotFoundError:
        logger.debug(f"{req.entity} is not a fragment, trying agents")
    else:
        ctx.remember(fragment)
        return {
            "success": True,
            "entity": req.entity,
            "entity_type": "fragment",
            "perspective": perspective,
            "trust_summary": fragment.trust_summary.to_dict(),
            "effective_trust": fragment.trust_summary.score,
            "note": "Trust-path calculation not yet implemented. Using direct trust summary.",
        }

    try:
        agent = ctx.gateway.get_agent(req.entity)
    except GatewayNotFoundError:
        raise NotFoundError("Entity", req.entity) from None
    ctx.remember(agent)
    return {
        "success": True,
        "entity": req.entity,
        "entity_type": "agent",
        "perspective": perspective,
        "reputation_score": agent.reputation_score,
        "effective_trust": agent.reputation_score - NEUTRAL_REPUTATION,
        "note": "Trust-path calculation not yet implemented. Using reputation score.",
    }
